"""The route table.

Every URL the platform answers is listed here, mapped to a bound
controller method. Order matters: the first matching route wins, so
literal paths come before the parameter routes that would shadow them.
"""

from cineverse.controllers import Controllers
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.routing.router import Router

ID = {"movie_id": r"\d+"}
API_PREFIX = "/api/v1"


async def _preflight(request: Request) -> Response:
    # cors answers OPTIONS before this runs; reached only without cors
    return Response(status=204)


def register_routes(router: Router, c: Controllers) -> None:
    router.group(lambda r: _api(r, c), prefix=API_PREFIX, middleware=["cors"])
    router.group(lambda r: _web(r, c), middleware=["csrf", "flash_errors"])


def _api(r: Router, c: Controllers) -> None:
    r.get("/health", c.system.health, name="api.health")
    r.get("/docs", c.system.docs, name="api.docs")

    with r.scoped(prefix="/auth", middleware=["throttle"]):
        r.post("/register", c.auth.register)
        r.post("/login", c.auth.login, name="api.login")
        r.post("/logout", c.auth.logout, ["auth"])
        r.post("/refresh", c.auth.refresh, ["auth"])
        r.post("/forgot-password", c.auth.forgot_password)
        r.post("/reset-password", c.auth.reset_password)
        r.post("/verify-email", c.auth.verify_email)
        r.get("/me", c.auth.me, ["auth"])

    with r.scoped(prefix="/user", middleware=["auth"]):
        r.get("/profile", c.user.profile)
        r.put("/profile", c.user.update_profile)
        r.post("/avatar", c.user.avatar)
        r.get("/watchlist", c.user.watchlist)
        r.get("/activities", c.user.activities)
        r.get("/statistics", c.user.statistics)

    with r.scoped(prefix="/movies"):
        r.get("/", c.movies.index)
        r.get("/search", c.movies.search)
        r.get("/trending", c.movies.trending)
        r.get("/popular", c.movies.popular)
        r.get("/top-rated", c.movies.top_rated)
        r.get("/upcoming", c.movies.upcoming)
        r.get("/now-playing", c.movies.now_playing)
        r.get("/genres", c.movies.genres)
        r.get("/genre/{slug}", c.movies.by_genre)
        r.get("/{movie_id}", c.movies.show, where=ID, name="api.movies.show")
        r.get("/{movie_id}/similar", c.movies.similar, where=ID)
        r.get("/{movie_id}/recommendations", c.movies.recommendations, where=ID)
        with r.scoped(middleware=["auth"]):
            r.post("/{movie_id}/watchlist", c.movies.add_to_watchlist, where=ID)
            r.delete("/{movie_id}/watchlist", c.movies.remove_from_watchlist, where=ID)
            r.post("/{movie_id}/rating", c.movies.rate, where=ID)
            r.get("/{movie_id}/rating", c.movies.rating, where=ID)
            r.post("/{movie_id}/review", c.movies.review, where=ID)
            r.get("/{movie_id}/reviews", c.movies.reviews, where=ID)

    with r.scoped(prefix="/payment", middleware=["auth"]):
        r.get("/plans", c.payments.plans)
        r.post("/subscribe", c.payments.subscribe)
        r.get("/subscription", c.payments.subscription)
        r.post("/cancel-subscription", c.payments.cancel_subscription)
        r.get("/transactions", c.payments.transactions)
        r.get("/transactions/{transaction_id}", c.payments.transaction, where={"transaction_id": r"\d+"})

    with r.scoped(prefix="/search"):
        r.get("/movies", c.search.movies)
        r.get("/suggestions", c.search.suggestions)
        r.get("/autocomplete", c.search.autocomplete)

    with r.scoped(prefix="/analytics", middleware=["throttle"]):
        r.post("/event", c.analytics.event)
        r.post("/page-view", c.analytics.page_view)
        r.post("/movie-view", c.analytics.movie_view)

    with r.scoped(prefix="/admin", middleware=["auth", "admin"]):
        _admin_api(r, c)

    with r.scoped(prefix="/public"):
        r.get("/movies/featured", c.public.featured)
        r.get("/movies/trending", c.public.trending)
        r.get("/genres", c.public.genres)
        r.get("/stats", c.public.stats)

    with r.scoped(prefix="/webhooks"):
        r.post("/mtn-mobile-money", c.webhooks.mtn)
        r.post("/airtel-money", c.webhooks.airtel)

    r.register("OPTIONS", "/{path}", _preflight, where={"path": ".*"})


def _admin_api(r: Router, c: Controllers) -> None:
    user_id = {"user_id": r"\d+"}
    translation_id = {"translation_id": r"\d+"}

    r.get("/stats", c.admin.stats)

    r.get("/users", c.admin.users)
    r.get("/users/{user_id}", c.admin.show_user, where=user_id)
    r.put("/users/{user_id}", c.admin.update_user, where=user_id)
    r.put("/users/{user_id}/status", c.admin.user_status, where=user_id)
    r.delete("/users/{user_id}", c.admin.delete_user, where=user_id)
    r.get("/users/{user_id}/activities", c.admin.user_activities, where=user_id)

    r.get("/movies", c.admin.movies)
    r.post("/movies", c.admin.store_movie)
    r.get("/movies/{movie_id}", c.admin.show_movie, where=ID)
    r.put("/movies/{movie_id}", c.admin.update_movie, where=ID)
    r.delete("/movies/{movie_id}", c.admin.delete_movie, where=ID)

    r.get("/analytics/overview", c.admin.analytics_overview)
    r.get("/analytics/users", c.admin.analytics_users)
    r.get("/analytics/movies", c.admin.analytics_movies)
    r.get("/analytics/payments", c.admin.analytics_payments)
    r.get("/analytics/engagement", c.admin.analytics_engagement)

    r.get("/settings", c.admin.settings)
    r.put("/settings", c.admin.update_settings)
    r.post("/cache/clear", c.admin.clear_cache)

    r.get("/translations", c.admin.translations)
    r.post("/translations", c.admin.store_translation)
    r.post("/translations/import", c.admin.import_translations)
    r.get("/translations/export", c.admin.export_translations)
    r.put("/translations/{translation_id}", c.admin.update_translation, where=translation_id)
    r.delete("/translations/{translation_id}", c.admin.delete_translation, where=translation_id)


def _web(r: Router, c: Controllers) -> None:
    r.get("/", c.home.index, name="home")
    r.get("/health", c.home.health)
    r.get("/sitemap.xml", c.home.sitemap)
    r.get("/robots.txt", c.home.robots)
    r.get("/about", c.home.about)
    r.get("/contact", c.home.contact)
    r.post("/contact", c.home.send_contact)
    r.get("/privacy", c.home.privacy)
    r.get("/terms", c.home.terms)
    r.get("/help", c.home.help)
    r.get("/lang/{language}", c.home.language, where={"language": r"[a-z]{2}"})

    with r.scoped(prefix="/auth"):
        r.get("/register", c.auth_pages.register_form)
        r.post("/register", c.auth_pages.register)
        r.get("/login", c.auth_pages.login_form, name="login")
        r.post("/login", c.auth_pages.login)
        r.post("/logout", c.auth_pages.logout)
        r.get("/forgot-password", c.auth_pages.forgot_form)
        r.post("/forgot-password", c.auth_pages.forgot)
        r.get("/reset-password/{token}", c.auth_pages.reset_form)
        r.post("/reset-password", c.auth_pages.reset)
        r.get("/verify-email/{token}", c.auth_pages.verify_email)
        r.post("/resend-verification", c.auth_pages.resend_verification)

    with r.scoped(prefix="/dashboard", middleware=["auth"]):
        r.get("/", c.dashboard.index, name="dashboard")
        r.get("/profile", c.dashboard.profile)
        r.post("/profile", c.dashboard.update_profile)
        r.get("/watchlist", c.dashboard.watchlist)
        r.get("/settings", c.dashboard.settings)
        r.post("/settings", c.dashboard.update_settings)

    with r.scoped(prefix="/movies"):
        r.get("/", c.movie_pages.index)
        r.get("/search", c.movie_pages.search)
        r.get("/genre/{slug}", c.movie_pages.genre)
        r.get("/{movie_id}", c.movie_pages.show, where=ID, name="movies.show")
        with r.scoped(middleware=["auth"]):
            r.post("/{movie_id}/watchlist", c.movie_pages.add_to_watchlist, where=ID)
            r.post("/{movie_id}/watchlist/remove", c.movie_pages.remove_from_watchlist, where=ID)
            r.post("/{movie_id}/rating", c.movie_pages.rate, where=ID)
            r.post("/{movie_id}/review", c.movie_pages.review, where=ID)

    with r.scoped(prefix="/payment", middleware=["auth"]):
        r.get("/plans", c.payment_pages.plans)
        r.post("/subscribe", c.payment_pages.subscribe)
        r.get("/success", c.payment_pages.success)
        r.get("/cancel", c.payment_pages.cancel)

    with r.scoped(prefix="/admin", middleware=["auth", "admin"]):
        r.get("/", c.admin_pages.index)
        r.get("/users", c.admin_pages.users)
        r.get("/movies", c.admin_pages.movies)
        r.get("/analytics", c.admin_pages.analytics)

    r.get("/{path}", c.home.app_shell, where={"path": ".*"}, name="app_shell")
