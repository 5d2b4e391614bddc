"""Controller classes, built once per app around the ``AppContext``."""

from dataclasses import dataclass

from cineverse.context import AppContext
from cineverse.controllers.api.admin import AdminController
from cineverse.controllers.api.analytics import AnalyticsController
from cineverse.controllers.api.auth import AuthController
from cineverse.controllers.api.movies import MovieController
from cineverse.controllers.api.payments import PaymentController, WebhookController
from cineverse.controllers.api.public import PublicController, SystemController
from cineverse.controllers.api.search import SearchController
from cineverse.controllers.api.user import UserController
from cineverse.controllers.web.admin import AdminPages
from cineverse.controllers.web.auth import AuthPages
from cineverse.controllers.web.dashboard import DashboardController
from cineverse.controllers.web.home import HomeController
from cineverse.controllers.web.movies import MoviePages
from cineverse.controllers.web.payment import PaymentPages


@dataclass(frozen=True, slots=True)
class Controllers:
    # API
    auth: AuthController
    user: UserController
    movies: MovieController
    payments: PaymentController
    webhooks: WebhookController
    search: SearchController
    analytics: AnalyticsController
    admin: AdminController
    public: PublicController
    system: SystemController
    # Web
    home: HomeController
    auth_pages: AuthPages
    dashboard: DashboardController
    movie_pages: MoviePages
    payment_pages: PaymentPages
    admin_pages: AdminPages


def build_controllers(ctx: AppContext) -> Controllers:
    return Controllers(
        auth=AuthController(ctx),
        user=UserController(ctx),
        movies=MovieController(ctx),
        payments=PaymentController(ctx),
        webhooks=WebhookController(ctx),
        search=SearchController(ctx),
        analytics=AnalyticsController(ctx),
        admin=AdminController(ctx),
        public=PublicController(ctx),
        system=SystemController(ctx),
        home=HomeController(ctx),
        auth_pages=AuthPages(ctx),
        dashboard=DashboardController(ctx),
        movie_pages=MoviePages(ctx),
        payment_pages=PaymentPages(ctx),
        admin_pages=AdminPages(ctx),
    )
