"""Tests for the server-rendered pages: CSRF, flash messages, redirects, crawler files."""

import re

from cineverse.testing import TestClient

from conftest import register

_TOKEN = re.compile(r'name="_token" value="([^"]+)"')


async def csrf_token(client: TestClient, path: str) -> str:
    response = await client.get(path)
    assert response.status == 200
    match = _TOKEN.search(response.body_text)
    assert match is not None
    return match.group(1)


class TestCrawlerFiles:
    async def test_health(self, client: TestClient) -> None:
        response = await client.get("/health")
        assert response.json_body()["status"] == "ok"

    async def test_robots(self, client: TestClient) -> None:
        response = await client.get("/robots.txt")
        assert response.content_type.startswith("text/plain")
        assert "Disallow: /admin" in response.body_text
        assert "Sitemap: " in response.body_text

    async def test_sitemap_lists_genres(self, client: TestClient) -> None:
        response = await client.get("/sitemap.xml")
        assert response.content_type.startswith("application/xml")
        assert "/movies/genre/action</loc>" in response.body_text


class TestAppShell:
    async def test_unknown_page_gets_shell(self, client: TestClient) -> None:
        response = await client.get("/some/page")
        assert response.status == 200
        assert 'id="app"' in response.body_text
        assert 'data-path="/some/page"' in response.body_text

    async def test_file_requests_are_404(self, client: TestClient) -> None:
        response = await client.get("/favicon.ico")
        assert response.status == 404


class TestStaticPages:
    async def test_about(self, client: TestClient) -> None:
        response = await client.get("/about")
        assert response.status == 200
        assert "<h1>About</h1>" in response.body_text

    async def test_language_switch_redirects_back(self, client: TestClient) -> None:
        response = await client.get("/lang/rw", headers={"Referer": "/movies"})
        assert response.status == 302
        assert response.header("location") == "/movies"


class TestCsrf:
    async def test_missing_token_rejected(self, client: TestClient) -> None:
        response = await client.post("/contact", data={"name": "Ann", "email": "ann@example.com", "message": "Hi"})
        assert response.status == 403

    async def test_contact_with_token(self, client: TestClient) -> None:
        token = await csrf_token(client, "/contact")
        response = await client.post(
            "/contact",
            data={"_token": token, "name": "Ann", "email": "ann@example.com", "message": "Hi"},
        )
        assert response.status == 302
        assert response.header("location") == "/contact"
        assert "Thank you for your message" in (await client.get("/contact")).body_text

    async def test_header_token_accepted(self, client: TestClient) -> None:
        token = await csrf_token(client, "/contact")
        response = await client.post(
            "/contact",
            data={"name": "Ann", "email": "ann@example.com", "message": "Hi"},
            headers={"X-CSRF-Token": token},
        )
        assert response.status == 302


class TestFormErrors:
    async def test_errors_flashed_and_input_kept(self, client: TestClient) -> None:
        token = await csrf_token(client, "/contact")
        response = await client.post(
            "/contact", data={"_token": token, "name": "Ann", "email": "not-an-email", "message": ""}
        )
        assert response.status == 302
        assert response.header("location") == "/contact"

        page = (await client.get("/contact")).body_text
        assert 'class="field-error"' in page
        assert 'value="Ann"' in page

        # shown once
        assert 'class="field-error"' not in (await client.get("/contact")).body_text


class TestWebAuth:
    async def test_dashboard_requires_login(self, client: TestClient) -> None:
        response = await client.get("/dashboard")
        assert response.status == 302
        assert response.header("location") == "/auth/login"

    async def test_login_flow(self, client: TestClient) -> None:
        await register(client)
        token = await csrf_token(client, "/auth/login")
        response = await client.post(
            "/auth/login", data={"_token": token, "login": "alice", "password": "secret123"}
        )
        assert response.status == 302
        assert response.header("location") == "/dashboard"

        dashboard = await client.get("/dashboard")
        assert dashboard.status == 200
        assert "Hello, alice" in dashboard.body_text
        assert "Welcome back, alice!" in dashboard.body_text

        # signed in: the login page sends you on
        assert (await client.get("/auth/login")).status == 302

    async def test_bad_password_flashes_error(self, client: TestClient) -> None:
        await register(client)
        token = await csrf_token(client, "/auth/login")
        response = await client.post(
            "/auth/login", data={"_token": token, "login": "alice", "password": "wrong-password"}
        )
        assert response.header("location") == "/auth/login"
        page = (await client.get("/auth/login")).body_text
        assert 'class="alert alert-error"' in page
        assert 'value="alice"' in page

    async def test_admin_pages_redirect_regular_users(self, client: TestClient) -> None:
        await register(client)
        token = await csrf_token(client, "/auth/login")
        await client.post("/auth/login", data={"_token": token, "login": "alice", "password": "secret123"})
        response = await client.get("/admin")
        assert response.status == 302
        assert response.header("location") == "/"
