"""Tests for cineverse.routing: template compilation, ordering, groups, middleware."""

import pytest

from cineverse.errors import NotFound
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.routing.pattern import compile_template, join_paths
from cineverse.routing.router import Router

from conftest import make_request


async def _ok(request: Request) -> Response:
    return Response.text("ok")


def _named(label: str):
    async def handler(request: Request) -> Response:
        return Response.text(label)

    return handler


class TestCompileTemplate:
    def test_literal_is_escaped(self) -> None:
        pattern, names = compile_template("/sitemap.xml")
        assert names == ()
        assert pattern.fullmatch("/sitemap.xml")
        assert pattern.fullmatch("/sitemapXxml") is None

    def test_default_segment_stops_at_slash(self) -> None:
        pattern, names = compile_template("/movies/{id}")
        assert names == ("id",)
        assert pattern.fullmatch("/movies/42")
        assert pattern.fullmatch("/movies/42/extra") is None

    def test_constraint_spans_segments(self) -> None:
        pattern, _ = compile_template("/{path}", {"path": ".*"})
        match = pattern.fullmatch("/a/b/c")
        assert match is not None
        assert match.group("p0") == "a/b/c"

    def test_constraint_with_its_own_group(self) -> None:
        pattern, names = compile_template("/{lang}/{slug}", {"lang": "(en|fr)"})
        match = pattern.fullmatch("/fr/dune")
        assert names == ("lang", "slug")
        assert match.group("p0") == "fr"
        assert match.group("p1") == "dune"

    def test_duplicate_param_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            compile_template("/{id}/{id}")

    def test_invalid_constraint_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid constraint"):
            compile_template("/{id}", {"id": "(unclosed"})


class TestJoinPaths:
    def test_prefix_and_root(self) -> None:
        assert join_paths("/movies", "/") == "/movies"

    def test_no_prefix(self) -> None:
        assert join_paths("", "/") == "/"

    def test_slashes_collapse(self) -> None:
        assert join_paths("/api/v1/", "/health") == "/api/v1/health"


class TestMatching:
    def test_params_extracted(self) -> None:
        router = Router()
        router.get("/movies/{movie_id}", _ok, where={"movie_id": r"\d+"})
        found = router.match("GET", "/movies/42")
        assert found is not None
        assert found.path_params == {"movie_id": "42"}

    def test_constraint_rejects(self) -> None:
        router = Router()
        router.get("/movies/{movie_id}", _ok, where={"movie_id": r"\d+"})
        assert router.match("GET", "/movies/dune") is None

    def test_first_registered_wins(self) -> None:
        router = Router()
        first = router.get("/movies/{slug}", _named("param"))
        router.get("/movies/search", _named("literal"))
        assert router.match("GET", "/movies/search").route is first

    def test_method_must_match(self) -> None:
        router = Router()
        router.post("/contact", _ok)
        assert router.match("GET", "/contact") is None

    def test_head_falls_back_to_get(self) -> None:
        router = Router()
        route = router.get("/health", _ok)
        assert router.match("HEAD", "/health").route is route

    def test_trailing_slash_ignored(self) -> None:
        router = Router()
        route = router.get("/movies", _ok)
        assert router.match("GET", "/movies/").route is route

    def test_any_registers_every_method(self) -> None:
        router = Router()
        routes = router.any("/ping", _ok)
        assert [r.method for r in routes] == ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class TestGroups:
    def test_prefix_and_middleware_applied(self) -> None:
        router = Router()

        def build(r: Router) -> None:
            r.get("/me", _ok, ["auth"])

        router.group(build, prefix="/api/v1", middleware=["cors"])
        route = router.routes[0]
        assert route.template == "/api/v1/me"
        assert route.middleware == ("cors", "auth")

    def test_nested_scopes(self) -> None:
        router = Router()
        with router.scoped(prefix="/api"), router.scoped(prefix="/admin", middleware=["admin"]):
            route = router.get("/stats", _ok)
        assert route.template == "/api/admin/stats"
        assert route.middleware == ("admin",)
        assert router.group_depth == 0

    def test_stack_restored_after_builder_raises(self) -> None:
        router = Router()

        def broken(r: Router) -> None:
            r.get("/one", _ok)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            router.group(broken, prefix="/broken")
        assert router.group_depth == 0
        assert router.get("/two", _ok).template == "/two"


class TestConstrain:
    def test_keeps_position(self) -> None:
        router = Router()
        route = router.get("/users/{user_id}", _named("user"))
        router.get("/users/me", _named("me"))
        updated = router.constrain(route, "user_id", r"\d+")
        assert router.routes[0] is updated
        assert router.match("GET", "/users/me").route.template == "/users/me"
        assert router.match("GET", "/users/7").route is updated

    def test_unknown_route(self) -> None:
        router = Router()
        stranger = Router().get("/x", _ok)
        with pytest.raises(ValueError):
            router.constrain(stranger, "id", r"\d+")

    def test_unknown_param(self) -> None:
        router = Router()
        route = router.get("/x/{id}", _ok)
        with pytest.raises(ValueError):
            router.constrain(route, "slug", r"\w+")

    async def test_frozen_after_dispatch(self) -> None:
        router = Router()
        route = router.get("/x/{id}", _ok)
        await router.dispatch(make_request("GET", "/x/1"))
        with pytest.raises(RuntimeError):
            router.constrain(route, "id", r"\d+")
        with pytest.raises(RuntimeError):
            router.get("/y", _ok)


class TestUrlFor:
    def test_builds_path(self) -> None:
        router = Router()
        router.get("/movies/{movie_id}", _ok, name="movies.show")
        assert router.url_for("movies.show", movie_id=5) == "/movies/5"

    def test_missing_param(self) -> None:
        router = Router()
        router.get("/movies/{movie_id}", _ok, name="movies.show")
        with pytest.raises(LookupError):
            router.url_for("movies.show")

    def test_unknown_name(self) -> None:
        with pytest.raises(LookupError):
            Router().url_for("nope")


class TestDispatch:
    async def test_not_found_json_for_api(self) -> None:
        response = await Router().dispatch(make_request("GET", "/api/v1/nothing"))
        assert response.status == 404
        assert response.json_body()["error"] is True

    async def test_middleware_runs_outermost_first(self) -> None:
        calls: list[str] = []

        def recorder(label: str):
            async def mw(request: Request, next):
                calls.append(f"{label}:in")
                response = await next(request)
                calls.append(f"{label}:out")
                return response

            return mw

        async def handler(request: Request) -> Response:
            calls.append("handler")
            return Response.text("ok")

        router = Router()
        router.middleware("outer", recorder("outer"))
        router.middleware("inner", recorder("inner"))
        with router.scoped(middleware=["outer"]):
            router.get("/x", handler, ["inner"])
        response = await router.dispatch(make_request("GET", "/x"))
        assert response.status == 200
        assert calls == ["outer:in", "inner:in", "handler", "inner:out", "outer:out"]

    async def test_middleware_can_short_circuit(self) -> None:
        async def deny(request: Request, next):
            return Response.forbidden()

        router = Router()
        router.middleware("deny", deny)
        router.get("/api/secret", _ok, ["deny"])
        response = await router.dispatch(make_request("GET", "/api/secret"))
        assert response.status == 403

    async def test_unregistered_middleware_is_500(self) -> None:
        router = Router()
        router.get("/api/x", _ok, ["missing"])
        response = await router.dispatch(make_request("GET", "/api/x"))
        assert response.status == 500

    async def test_http_error_keeps_status(self) -> None:
        async def handler(request: Request) -> Response:
            raise NotFound("Movie not found")

        router = Router()
        router.get("/api/movies/{movie_id}", handler)
        response = await router.dispatch(make_request("GET", "/api/movies/1"))
        assert response.status == 404
        assert response.json_body()["message"] == "Movie not found"

    async def test_int_param_converted(self) -> None:
        seen: list[int] = []

        async def handler(request: Request, movie_id: int) -> Response:
            seen.append(movie_id)
            return Response.text("ok")

        router = Router()
        router.get("/movies/{movie_id}", handler)
        await router.dispatch(make_request("GET", "/movies/12"))
        assert seen == [12]

    async def test_unconvertible_int_param_is_404(self) -> None:
        async def handler(request: Request, movie_id: int) -> Response:
            return Response.text("ok")

        router = Router()
        router.get("/movies/{movie_id}", handler)
        response = await router.dispatch(make_request("GET", "/movies/abc"))
        assert response.status == 404

    async def test_dict_return_negotiated(self) -> None:
        async def handler(request: Request) -> dict:
            return {"ok": True}

        router = Router()
        router.get("/x", handler)
        response = await router.dispatch(make_request("GET", "/x"))
        assert response.json_body() == {"ok": True}

    async def test_head_has_no_body(self) -> None:
        router = Router()
        router.get("/x", _ok)
        response = await router.dispatch(make_request("HEAD", "/x"))
        assert response.status == 200
        assert response.body == ""
