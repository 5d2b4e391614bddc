"""Inline HTML for the server-rendered pages.

Pages are small f-string fragments wrapped in one shared layout. Every
interpolated value goes through ``e()``.
"""

from html import escape
from typing import Any

from cineverse.http.request import Request
from cineverse.http.response import Response

FLASH_KINDS = ("success", "error", "info")


def e(value: Any) -> str:
    return "" if value is None else escape(str(value), quote=True)


def csrf_field(request: Request) -> str:
    token = request.session.csrf_token()
    return f'<input type="hidden" name="_token" value="{e(token)}">'


def old(request: Request, name: str, default: Any = "") -> str:
    """Value the user submitted before a failed validation, escaped."""
    values = request.state.get("old_input")
    if values is None:
        values = request.state["old_input"] = request.session.get_flash("old", {}) or {}
    return e(values.get(name, default))


def field_error(request: Request, name: str) -> str:
    errors = request.state.get("field_errors")
    if errors is None:
        errors = request.state["field_errors"] = request.session.get_flash("errors", {}) or {}
    messages = errors.get(name) or []
    return "".join(f'<small class="field-error">{e(m)}</small>' for m in messages)


def _flashes(request: Request) -> str:
    session = request.state.get("session")
    if session is None:
        return ""
    parts = []
    for kind in FLASH_KINDS:
        message = session.get_flash(kind)
        if message:
            parts.append(f'<div class="alert alert-{kind}">{e(message)}</div>')
    # form state is only good for the page right after the redirect
    session.get_flash("errors")
    session.get_flash("old")
    return "".join(parts)


def _nav(request: Request, app_name: str) -> str:
    user = request.state.get("user")
    links = ['<a href="/movies">Movies</a>', '<a href="/payment/plans">Plans</a>']
    if user is None:
        links += ['<a href="/auth/login">Log in</a>', '<a href="/auth/register">Sign up</a>']
    else:
        links.append('<a href="/dashboard">Dashboard</a>')
        if user.is_admin:
            links.append('<a href="/admin">Admin</a>')
        links.append(
            f'<form method="post" action="/auth/logout" class="inline">{csrf_field(request)}'
            '<button type="submit">Log out</button></form>'
        )
    return f'<nav><a class="brand" href="/">{e(app_name)}</a> {" ".join(links)}</nav>'


def render(request: Request, app_name: str, title: str, content: str, *, status: int = 200) -> Response:
    page = (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f"<title>{e(title)} | {e(app_name)}</title></head>"
        f"<body>{_nav(request, app_name)}<main>{_flashes(request)}"
        f"<h1>{e(title)}</h1>{content}</main>"
        f"<footer><a href=\"/about\">About</a> <a href=\"/help\">Help</a> "
        f"<a href=\"/privacy\">Privacy</a> <a href=\"/terms\">Terms</a> "
        f"<a href=\"/contact\">Contact</a></footer></body></html>"
    )
    return Response.html(page, status)


def movie_cards(movies: list[dict[str, Any]]) -> str:
    if not movies:
        return "<p>No movies found.</p>"
    items = "".join(
        f'<li><a href="/movies/{e(m["id"])}">{e(m["title"])}</a>'
        f' <span class="year">{e(m.get("release_year") or "")}</span>'
        f' <span class="rating">{e(m.get("vote_average") or 0)}</span></li>'
        for m in movies
    )
    return f'<ul class="movies">{items}</ul>'


def pager(base: str, page: dict[str, Any]) -> str:
    """Prev/next links for a ``Page.to_dict()`` payload. *base* ends with ``?`` or ``&``."""
    links = []
    current = page["current_page"]
    if current > 1:
        links.append(f'<a href="{e(base)}page={current - 1}">Previous</a>')
    links.append(f"<span>Page {current} of {page['last_page']}</span>")
    if current < page["last_page"]:
        links.append(f'<a href="{e(base)}page={current + 1}">Next</a>')
    return f'<div class="pager">{" ".join(links)}</div>'


def table(headers: tuple[str, ...], rows: list[tuple[Any, ...]]) -> str:
    head = "".join(f"<th>{e(h)}</th>" for h in headers)
    body = "".join("<tr>" + "".join(f"<td>{e(c)}</td>" for c in row) + "</tr>" for row in rows)
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
