"""Landing page, static pages and crawler files."""

import logging

from cineverse._internal.clock import utcnow
from cineverse.controllers.web.base import PageController
from cineverse.controllers.web.layout import csrf_field, e, field_error, movie_cards, old
from cineverse.errors import NotFound
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.middleware.flash import back_url
from cineverse.validation import email, max_length, required, validate

logger = logging.getLogger("cineverse.web")

STATIC_PAGES = {
    "about": (
        "About",
        "<p>CineVerse is a streaming catalog built for Rwanda: browse films, "
        "keep a watchlist and subscribe with mobile money.</p>",
    ),
    "privacy": (
        "Privacy Policy",
        "<p>We store the account details you give us and the activity needed to run "
        "the service. We never sell personal data.</p>",
    ),
    "terms": (
        "Terms of Service",
        "<p>Subscriptions renew only when you pay again. Accounts are personal and "
        "must not be shared.</p>",
    ),
    "help": (
        "Help",
        "<p>Pay with MTN Mobile Money or Airtel Money from the plans page. "
        "Approve the request on your phone to activate your subscription.</p>",
    ),
}

SITEMAP_PATHS = ("/", "/movies", "/payment/plans", "/about", "/contact", "/privacy", "/terms", "/help")
SITEMAP_MOVIE_LIMIT = 1000


class HomeController(PageController):
    __slots__ = ()

    async def index(self, request: Request) -> Response:
        await self.viewer(request)
        featured = await self.ctx.catalog.featured(6)
        trending = await self.ctx.catalog.trending(10)
        content = (
            '<form action="/movies/search" method="get">'
            '<input type="search" name="q" placeholder="Search movies"> <button>Search</button></form>'
            f"<h2>Featured</h2>{movie_cards(featured)}"
            f"<h2>Trending</h2>{movie_cards(trending)}"
        )
        return self.page(request, "Welcome", content)

    async def static_page(self, request: Request, slug: str) -> Response:
        await self.viewer(request)
        title, content = STATIC_PAGES[slug]
        return self.page(request, title, content)

    async def about(self, request: Request) -> Response:
        return await self.static_page(request, "about")

    async def privacy(self, request: Request) -> Response:
        return await self.static_page(request, "privacy")

    async def terms(self, request: Request) -> Response:
        return await self.static_page(request, "terms")

    async def help(self, request: Request) -> Response:
        return await self.static_page(request, "help")

    async def contact(self, request: Request) -> Response:
        await self.viewer(request)
        content = (
            f'<form method="post" action="/contact">{csrf_field(request)}'
            f'<label>Name <input name="name" value="{old(request, "name")}"></label>{field_error(request, "name")}'
            f'<label>Email <input type="email" name="email" value="{old(request, "email")}"></label>'
            f'{field_error(request, "email")}'
            f'<label>Subject <input name="subject" value="{old(request, "subject")}"></label>'
            f'<label>Message <textarea name="message">{old(request, "message")}</textarea></label>'
            f'{field_error(request, "message")}'
            "<button type=\"submit\">Send</button></form>"
        )
        return self.page(request, "Contact us", content)

    async def send_contact(self, request: Request) -> Response:
        fields = validate(
            await request.input(),
            {
                "name": [required, max_length(100)],
                "email": [required, email],
                "subject": [max_length(200)],
                "message": [required, max_length(5000)],
            },
        ).raise_for_errors()
        await self.ctx.analytics.track(
            "event",
            request,
            user=await self.viewer(request),
            name="contact_form",
            properties=fields,
        )
        logger.info("Contact message from %s", fields["email"])
        return self.flash_redirect(
            request, "/contact", "success", "Thank you for your message. We will get back to you soon."
        )

    async def language(self, request: Request, language: str) -> Response:
        if language in self.ctx.config.supported_languages:
            request.session.set("language", language)
        return Response.redirect(back_url(request))

    async def sitemap(self, request: Request) -> Response:
        base = self.ctx.config.url.rstrip("/")
        movies = await (
            self.ctx.db.table("movies")
            .select("id", "updated_at")
            .where("status", "published")
            .order_by("id", "DESC")
            .limit(SITEMAP_MOVIE_LIMIT)
            .get()
        )
        genres = await self.ctx.catalog.genres()
        urls = [f"<url><loc>{e(base + path)}</loc></url>" for path in SITEMAP_PATHS]
        urls += [f"<url><loc>{e(base)}/movies/genre/{e(g['slug'])}</loc></url>" for g in genres]
        urls += [
            f"<url><loc>{e(base)}/movies/{m['id']}</loc><lastmod>{e(str(m['updated_at'])[:10])}</lastmod></url>"
            for m in movies
        ]
        xml = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            f"{''.join(urls)}</urlset>"
        )
        return Response.text(xml, content_type="application/xml")

    async def robots(self, request: Request) -> Response:
        base = self.ctx.config.url.rstrip("/")
        body = (
            "User-agent: *\n"
            "Disallow: /admin\n"
            "Disallow: /dashboard\n"
            "Disallow: /api/\n"
            f"Sitemap: {base}/sitemap.xml\n"
        )
        return Response.text(body)

    async def health(self, request: Request) -> Response:
        return Response.json(
            {"status": "ok", "timestamp": utcnow().isoformat(), "version": self.ctx.config.version}
        )

    async def app_shell(self, request: Request, path: str) -> Response:
        """Anything unmatched that is not a file request gets the client app shell."""
        if "." in path or path.startswith("api/"):
            raise NotFound()
        name = e(self.ctx.config.name)
        return Response.html(
            "<!DOCTYPE html><html lang=\"en\"><head><meta charset=\"utf-8\">"
            f"<title>{name}</title></head>"
            f'<body><div id="app" data-path="/{e(path)}">Loading {name}...</div></body></html>'
        )
