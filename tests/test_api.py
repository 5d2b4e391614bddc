"""End-to-end tests of the JSON API through the ASGI app."""

from typing import Any

import pytest

from cineverse.app import App
from cineverse.testing import TestClient

from conftest import bearer, login, register

API = "/api/v1"


async def make_admin(app: App, client: TestClient, username: str = "boss") -> str:
    user = await register(client, username)
    await app.context.db.update("users", {"role": "admin"}, {"id": user["id"]})
    return await login(client, username)


async def create_movie(client: TestClient, token: str, **fields: Any) -> dict[str, Any]:
    payload = {"title": "Dune", "release_date": "2021-10-22", "runtime": 155, "popularity": 90.5, **fields}
    response = await client.post(f"{API}/admin/movies", json=payload, headers=bearer(token))
    assert response.status == 201, response.body_text
    return response.json_body()["data"]


class TestSystem:
    async def test_health(self, client: TestClient) -> None:
        response = await client.get(f"{API}/health")
        body = response.json_body()
        assert response.status == 200
        assert body["status"] == "healthy"
        assert body["environment"] == "testing"
        assert response.header("Access-Control-Allow-Origin") == "*"

    async def test_docs(self, client: TestClient) -> None:
        body = (await client.get(f"{API}/docs")).json_body()
        assert body["endpoints"]["movies"] == "/api/v1/movies"

    async def test_unknown_endpoint_is_json_404(self, client: TestClient) -> None:
        response = await client.get(f"{API}/nothing-here")
        assert response.status == 404
        assert response.json_body()["error"] is True

    async def test_preflight(self, client: TestClient) -> None:
        response = await client.request("OPTIONS", f"{API}/movies/1/rating")
        assert response.status == 204
        assert "Authorization" in response.header("Access-Control-Allow-Headers")


class TestAuthFlow:
    async def test_register_and_login(self, client: TestClient) -> None:
        user = await register(client, "alice")
        assert user["username"] == "alice"
        assert "password" not in user

        response = await client.post(f"{API}/auth/login", json={"login": "alice", "password": "secret123"})
        data = response.json_body()["data"]
        assert response.status == 200
        assert data["token"]
        assert data["token_type"] == "Bearer"
        assert "password" not in data["user"]

    async def test_register_validation_envelope(self, client: TestClient) -> None:
        response = await client.post(f"{API}/auth/register", json={"username": "al"})
        body = response.json_body()
        assert response.status == 422
        assert body["error"] is True
        assert {"username", "email", "password"} <= set(body["errors"])

    async def test_bad_credentials(self, client: TestClient) -> None:
        await register(client, "alice")
        response = await client.post(f"{API}/auth/login", json={"login": "alice", "password": "wrong-pass"})
        assert response.status == 401
        assert response.json_body()["message"] == "Invalid credentials"

    async def test_lockout_returns_423(self, client: TestClient) -> None:
        await register(client, "alice")
        for _ in range(5):
            await client.post(f"{API}/auth/login", json={"login": "alice", "password": "wrong-pass"})
        response = await client.post(f"{API}/auth/login", json={"login": "alice", "password": "secret123"})
        assert response.status == 423

    async def test_me_requires_token(self, client: TestClient) -> None:
        response = await client.get(f"{API}/auth/me")
        assert response.status == 401

    async def test_me(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.get(f"{API}/auth/me", headers=bearer(token))
        assert response.json_body()["data"]["user"]["username"] == "alice"

    async def test_token_rejected_after_logout(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.post(f"{API}/auth/logout", headers=bearer(token))
        assert response.status == 200
        response = await client.get(f"{API}/user/profile", headers=bearer(token))
        assert response.status == 401

    async def test_refresh_revokes_old_token(self, client: TestClient) -> None:
        await register(client, "alice")
        old = await login(client)
        response = await client.post(f"{API}/auth/refresh", headers=bearer(old))
        new = response.json_body()["data"]["token"]
        assert new != old
        assert (await client.get(f"{API}/auth/me", headers=bearer(new))).status == 200
        assert (await client.get(f"{API}/auth/me", headers=bearer(old))).status == 401

    async def test_forgot_password_same_answer(self, client: TestClient) -> None:
        await register(client, "alice")
        known = await client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})
        unknown = await client.post(f"{API}/auth/forgot-password", json={"email": "ghost@example.com"})
        assert known.status == unknown.status == 200
        assert known.json_body() == unknown.json_body()

    async def test_reset_password_confirmation(self, client: TestClient) -> None:
        response = await client.post(
            f"{API}/auth/reset-password",
            json={"token": "abc", "password": "new-secret-1", "password_confirmation": "other"},
        )
        assert response.status == 422

    async def test_remember_cookie_set(self, client: TestClient) -> None:
        await register(client, "alice")
        response = await client.post(
            f"{API}/auth/login", json={"login": "alice", "password": "secret123", "remember": True}
        )
        assert any(c.name == "remember_token" for c in response.cookies)
        assert "remember_token" in client.cookies


class TestUser:
    async def test_profile_update(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.put(
            f"{API}/user/profile",
            json={"first_name": "Alice", "language": "rw"},
            headers=bearer(token),
        )
        user = response.json_body()["data"]["user"]
        assert user["first_name"] == "Alice"
        assert user["language"] == "rw"

    async def test_profile_rejects_unknown_language(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.put(f"{API}/user/profile", json={"language": "xx"}, headers=bearer(token))
        assert response.status == 422

    async def test_statistics_without_subscription(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        data = (await client.get(f"{API}/user/statistics", headers=bearer(token))).json_body()["data"]
        assert data["watchlist"] == 0
        assert data["subscription"] is None

    async def test_activities(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        data = (await client.get(f"{API}/user/activities", headers=bearer(token))).json_body()["data"]
        assert [row["activity_type"] for row in data["data"]] == ["login", "register"]


class TestMovies:
    async def test_genres_seeded(self, client: TestClient) -> None:
        response = await client.get(f"{API}/movies/genres")
        slugs = [g["slug"] for g in response.json_body()["data"]]
        assert slugs == ["action", "comedy", "documentary", "drama", "horror", "science-fiction"]

    async def test_catalog_flow(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        movie = await create_movie(client, admin, genre_ids=[3])
        movie_id = movie["id"]
        assert movie["slug"].startswith("dune-")
        assert movie["release_year"] == 2021

        listing = (await client.get(f"{API}/movies")).json_body()["data"]
        assert listing["total"] == 1

        detail = (await client.get(f"{API}/movies/{movie_id}")).json_body()["data"]
        assert detail["title"] == "Dune"
        assert [g["slug"] for g in detail["genres"]] == ["drama"]

        by_genre = (await client.get(f"{API}/movies/genre/drama")).json_body()["data"]
        assert by_genre["genre"]["slug"] == "drama"
        assert by_genre["total"] == 1

        found = (await client.get(f"{API}/movies/search?q=dun")).json_body()["data"]
        assert found["total"] == 1

    async def test_non_numeric_id_not_routed(self, client: TestClient) -> None:
        response = await client.get(f"{API}/movies/not-a-number")
        assert response.status == 404

    async def test_unknown_movie(self, client: TestClient) -> None:
        response = await client.get(f"{API}/movies/999")
        assert response.status == 404
        assert response.json_body()["message"] == "Movie not found"

    async def test_draft_hidden(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        movie = await create_movie(client, admin, status="draft")
        assert (await client.get(f"{API}/movies/{movie['id']}")).status == 404

    async def test_search_requires_term(self, client: TestClient) -> None:
        assert (await client.get(f"{API}/movies/search")).status == 422

    async def test_watchlist(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        movie_id = (await create_movie(client, admin))["id"]
        await register(client, "alice")
        token = await login(client)

        first = await client.post(f"{API}/movies/{movie_id}/watchlist", headers=bearer(token))
        again = await client.post(f"{API}/movies/{movie_id}/watchlist", headers=bearer(token))
        assert first.status == 201
        assert again.status == 200

        listed = (await client.get(f"{API}/user/watchlist", headers=bearer(token))).json_body()["data"]
        assert [m["id"] for m in listed["data"]] == [movie_id]

        removed = await client.delete(f"{API}/movies/{movie_id}/watchlist", headers=bearer(token))
        missing = await client.delete(f"{API}/movies/{movie_id}/watchlist", headers=bearer(token))
        assert removed.status == 200
        assert missing.status == 404

    async def test_watchlist_requires_auth(self, client: TestClient) -> None:
        assert (await client.post(f"{API}/movies/1/watchlist")).status == 401

    async def test_ratings_replace_and_average(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        movie_id = (await create_movie(client, admin))["id"]
        await client.post(f"{API}/movies/{movie_id}/rating", json={"rating": 6}, headers=bearer(admin))

        await register(client, "alice")
        token = await login(client)
        await client.post(f"{API}/movies/{movie_id}/rating", json={"rating": 10}, headers=bearer(token))
        response = await client.post(f"{API}/movies/{movie_id}/rating", json={"rating": 9}, headers=bearer(token))
        data = response.json_body()["data"]
        assert data["vote_count"] == 2
        assert data["vote_average"] == 7.5

        mine = (await client.get(f"{API}/movies/{movie_id}/rating", headers=bearer(token))).json_body()
        assert mine["data"]["rating"] == 9

    @pytest.mark.parametrize("rating", [0, 11, "ten"])
    async def test_rating_bounds(self, app: App, client: TestClient, rating: Any) -> None:
        admin = await make_admin(app, client)
        movie_id = (await create_movie(client, admin))["id"]
        response = await client.post(
            f"{API}/movies/{movie_id}/rating", json={"rating": rating}, headers=bearer(admin)
        )
        assert response.status == 422

    async def test_reviews(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        movie_id = (await create_movie(client, admin))["id"]
        response = await client.post(
            f"{API}/movies/{movie_id}/review",
            json={"title": "Epic", "content": "Sand, worms and a great score."},
            headers=bearer(admin),
        )
        assert response.status == 201
        reviews = (await client.get(f"{API}/movies/{movie_id}/reviews", headers=bearer(admin))).json_body()
        assert reviews["data"]["data"][0]["username"] == "boss"

    async def test_similar(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        dune = (await create_movie(client, admin, genre_ids=[6]))["id"]
        arrival = (await create_movie(client, admin, title="Arrival", genre_ids=[6, 3]))["id"]
        await create_movie(client, admin, title="Superbad", genre_ids=[2])
        similar = (await client.get(f"{API}/movies/{dune}/similar")).json_body()["data"]
        assert [m["id"] for m in similar] == [arrival]

    async def test_trending_refreshes_after_create(self, app: App, client: TestClient) -> None:
        assert (await client.get(f"{API}/public/movies/trending")).json_body()["data"] == []
        admin = await make_admin(app, client)
        await create_movie(client, admin)
        trending = (await client.get(f"{API}/public/movies/trending")).json_body()["data"]
        assert [m["title"] for m in trending] == ["Dune"]


class TestSearch:
    async def test_autocomplete(self, app: App, client: TestClient) -> None:
        admin = await make_admin(app, client)
        await create_movie(client, admin)
        await create_movie(client, admin, title="Dunkirk")
        await create_movie(client, admin, title="Arrival")
        data = (await client.get(f"{API}/search/autocomplete?q=Dun")).json_body()["data"]
        assert sorted(data) == ["Dune", "Dunkirk"]


class TestPayments:
    async def test_plans(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        plans = (await client.get(f"{API}/payment/plans", headers=bearer(token))).json_body()["data"]
        assert [p["slug"] for p in plans] == ["basic", "standard", "premium"]
        assert plans[2]["features"][0] == "4K quality"

    async def test_subscribe_then_webhook_activates(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.post(
            f"{API}/payment/subscribe",
            json={"plan_id": 2, "payment_method": "mtn_mobile_money", "phone": "0788 123 456"},
            headers=bearer(token),
        )
        assert response.status == 202
        data = response.json_body()["data"]
        assert data["status"] == "pending"
        assert data["reference"].startswith("CV_")

        current = (await client.get(f"{API}/payment/subscription", headers=bearer(token))).json_body()
        assert current["data"]["subscription"] is None

        hook = await client.post(
            f"{API}/webhooks/mtn-mobile-money",
            json={"externalId": data["reference"], "financialTransactionId": "fin-1", "status": "SUCCESSFUL"},
        )
        assert hook.status == 200
        assert hook.json_body()["data"]["status"] == "completed"

        current = (await client.get(f"{API}/payment/subscription", headers=bearer(token))).json_body()
        assert current["data"]["subscription"]["plan_slug"] == "standard"
        assert current["data"]["subscription"]["status"] == "active"

        txns = (await client.get(f"{API}/payment/transactions", headers=bearer(token))).json_body()["data"]
        assert txns["data"][0]["phone_number"] == "250788123456"
        assert txns["data"][0]["status"] == "completed"

        cancelled = await client.post(f"{API}/payment/cancel-subscription", headers=bearer(token))
        assert cancelled.status == 200
        again = await client.post(f"{API}/payment/cancel-subscription", headers=bearer(token))
        assert again.status == 404

    async def test_airtel_failure_webhook(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        data = (
            await client.post(
                f"{API}/payment/subscribe",
                json={"plan_id": 1, "payment_method": "airtel_money", "phone": "731234567"},
                headers=bearer(token),
            )
        ).json_body()["data"]
        hook = await client.post(
            f"{API}/webhooks/airtel-money",
            json={"transaction": {"id": data["reference"], "airtel_money_id": "am-1", "status_code": "TF"}},
        )
        assert hook.json_body()["data"]["status"] == "failed"

    async def test_bad_phone(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.post(
            f"{API}/payment/subscribe",
            json={"plan_id": 1, "payment_method": "mtn_mobile_money", "phone": "12345"},
            headers=bearer(token),
        )
        assert response.status == 422
        assert "phone" in response.json_body()["errors"]

    async def test_unknown_method(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.post(
            f"{API}/payment/subscribe",
            json={"plan_id": 1, "payment_method": "paypal", "phone": "0788123456"},
            headers=bearer(token),
        )
        assert response.status == 422

    async def test_unknown_webhook_reference(self, client: TestClient) -> None:
        response = await client.post(
            f"{API}/webhooks/mtn-mobile-money", json={"externalId": "CV_nope", "status": "SUCCESSFUL"}
        )
        assert response.status == 404

    async def test_other_users_transaction_hidden(self, client: TestClient) -> None:
        await register(client, "alice")
        alice = await login(client, "alice")
        await client.post(
            f"{API}/payment/subscribe",
            json={"plan_id": 1, "payment_method": "mtn_mobile_money", "phone": "0788123456"},
            headers=bearer(alice),
        )
        txn_id = (await client.get(f"{API}/payment/transactions", headers=bearer(alice))).json_body()["data"][
            "data"
        ][0]["id"]
        await register(client, "bob")
        bob = await login(client, "bob")
        assert (await client.get(f"{API}/payment/transactions/{txn_id}", headers=bearer(alice))).status == 200
        assert (await client.get(f"{API}/payment/transactions/{txn_id}", headers=bearer(bob))).status == 404


class TestAnalytics:
    async def test_events_recorded(self, app: App, client: TestClient) -> None:
        response = await client.post(f"{API}/analytics/page-view", json={"url": "/movies"})
        assert response.status == 201
        response = await client.post(f"{API}/analytics/event", json={"event": "play_clicked"})
        assert response.status == 201
        types = await app.context.db.table("analytics_events").order_by("id").pluck("event_type")
        assert types == ["page_view", "event"]


class TestAdmin:
    async def test_regular_user_forbidden(self, client: TestClient) -> None:
        await register(client, "alice")
        token = await login(client)
        response = await client.get(f"{API}/admin/stats", headers=bearer(token))
        assert response.status == 403

    async def test_anonymous_unauthorized(self, client: TestClient) -> None:
        assert (await client.get(f"{API}/admin/stats")).status == 401

    async def test_stats(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        data = (await client.get(f"{API}/admin/stats", headers=bearer(token))).json_body()["data"]
        assert data["total_users"] == 1
        assert data["period_days"] == 30

    async def test_user_management(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        alice = await register(client, "alice")

        listed = (await client.get(f"{API}/admin/users?q=ali", headers=bearer(token))).json_body()["data"]
        assert [u["username"] for u in listed["data"]] == ["alice"]
        assert "password" not in listed["data"][0]

        status = await client.put(
            f"{API}/admin/users/{alice['id']}/status", json={"status": "suspended"}, headers=bearer(token)
        )
        assert status.status == 200
        login_attempt = await client.post(f"{API}/auth/login", json={"login": "alice", "password": "secret123"})
        assert login_attempt.status == 401

        deleted = await client.delete(f"{API}/admin/users/{alice['id']}", headers=bearer(token))
        assert deleted.status == 200
        assert (await client.get(f"{API}/admin/users/{alice['id']}", headers=bearer(token))).status == 404

    async def test_cannot_act_on_self(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        me = (await client.get(f"{API}/auth/me", headers=bearer(token))).json_body()["data"]["user"]
        response = await client.delete(f"{API}/admin/users/{me['id']}", headers=bearer(token))
        assert response.status == 403
        response = await client.put(f"{API}/admin/users/{me['id']}", json={"role": "user"}, headers=bearer(token))
        assert response.status == 403

    async def test_duplicate_email(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        alice = await register(client, "alice")
        response = await client.put(
            f"{API}/admin/users/{alice['id']}", json={"email": "boss@example.com"}, headers=bearer(token)
        )
        assert response.status == 422

    async def test_movie_update_and_delete(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        movie = await create_movie(client, token, genre_ids=[1])
        updated = await client.put(
            f"{API}/admin/movies/{movie['id']}",
            json={"title": "Dune: Part One", "genre_ids": [3, 6]},
            headers=bearer(token),
        )
        data = updated.json_body()["data"]
        assert data["title"] == "Dune: Part One"
        assert sorted(g["slug"] for g in data["genres"]) == ["drama", "science-fiction"]

        assert (await client.delete(f"{API}/admin/movies/{movie['id']}", headers=bearer(token))).status == 200
        assert (await client.get(f"{API}/admin/movies/{movie['id']}", headers=bearer(token))).status == 404

    async def test_settings(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        response = await client.put(
            f"{API}/admin/settings",
            json={"settings": {"maintenance_mode": True, "site_name": "CineVerse RW"}},
            headers=bearer(token),
        )
        assert response.status == 200
        data = (await client.get(f"{API}/admin/settings", headers=bearer(token))).json_body()["data"]
        assert data["maintenance_mode"] is True
        assert data["site_name"] == "CineVerse RW"

    async def test_translations(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        created = await client.post(
            f"{API}/admin/translations",
            json={"language": "rw", "key": "nav.home", "value": "Ahabanza"},
            headers=bearer(token),
        )
        assert created.status == 201

        imported = await client.post(
            f"{API}/admin/translations/import",
            json={"language": "rw", "translations": {"nav.movies": "Filime", "nav.home": "Murugo"}},
            headers=bearer(token),
        )
        assert imported.json_body()["data"]["imported"] == 2

        exported = await client.get(f"{API}/admin/translations/export?language=rw", headers=bearer(token))
        assert exported.json_body() == {"nav.home": "Murugo", "nav.movies": "Filime"}
        assert "translations_rw.json" in exported.header("Content-Disposition")

        bad = await client.post(
            f"{API}/admin/translations",
            json={"language": "de", "key": "nav.home", "value": "Startseite"},
            headers=bearer(token),
        )
        assert bad.status == 422

    async def test_clear_cache(self, app: App, client: TestClient) -> None:
        token = await make_admin(app, client)
        await client.get(f"{API}/movies/genres")
        assert await app.context.cache.has("genres:all")
        response = await client.post(f"{API}/admin/cache/clear", headers=bearer(token))
        assert response.status == 200
        assert not await app.context.cache.has("genres:all")
