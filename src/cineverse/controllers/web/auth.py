"""Sign-up, sign-in and password pages."""

import logging

from cineverse.auth.manager import REMEMBER_COOKIE, REMEMBER_LIFETIME
from cineverse.controllers.web.base import PageController
from cineverse.controllers.web.layout import csrf_field, e, field_error, old
from cineverse.errors import AuthenticationError, ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import email, required, validate

logger = logging.getLogger("cineverse.auth")

HOME_AFTER_LOGIN = "/dashboard"


def _input(request: Request, name: str, label: str, kind: str = "text", keep: bool = True) -> str:
    value = f' value="{old(request, name)}"' if keep else ""
    return (
        f'<label>{e(label)} <input type="{kind}" name="{name}"{value}></label>'
        f"{field_error(request, name)}"
    )


class AuthPages(PageController):
    __slots__ = ()

    async def register_form(self, request: Request) -> Response:
        content = (
            f'<form method="post" action="/auth/register">{csrf_field(request)}'
            f'{_input(request, "username", "Username")}'
            f'{_input(request, "email", "Email", "email")}'
            f'{_input(request, "first_name", "First name")}'
            f'{_input(request, "last_name", "Last name")}'
            f'{_input(request, "phone", "Phone", "tel")}'
            f'{_input(request, "password", "Password", "password", keep=False)}'
            f'{_input(request, "password_confirmation", "Confirm password", "password", keep=False)}'
            '<button type="submit">Create account</button></form>'
            '<p>Already registered? <a href="/auth/login">Log in</a></p>'
        )
        return self.page(request, "Create your account", content)

    async def register(self, request: Request) -> Response:
        data = await request.input()
        if data.get("password") != data.get("password_confirmation"):
            raise ValidationError.single("password_confirmation", "The password confirmation does not match.")
        user = await self.ctx.auth.register(data, request)
        token = await self.ctx.auth.create_verification_token(user["id"])
        logger.debug("Verification link ready for user %d (%d chars)", user["id"], len(token))
        return self.flash_redirect(
            request, "/auth/login", "success", "Account created. Check your email to verify it, then log in."
        )

    async def login_form(self, request: Request) -> Response:
        if await self.viewer(request) is not None:
            return Response.redirect(HOME_AFTER_LOGIN)
        content = (
            f'<form method="post" action="/auth/login">{csrf_field(request)}'
            f'{_input(request, "login", "Username or email")}'
            f'{_input(request, "password", "Password", "password", keep=False)}'
            '<label><input type="checkbox" name="remember" value="1"> Remember me</label>'
            '<button type="submit">Log in</button></form>'
            '<p><a href="/auth/forgot-password">Forgot your password?</a></p>'
        )
        return self.page(request, "Log in", content)

    async def login(self, request: Request) -> Response:
        data = await request.input()
        fields = validate(data, {"login": [required], "password": [required]}).raise_for_errors()
        remember = data.get("remember") in ("1", "on", "true")
        try:
            result = await self.ctx.auth.login(fields["login"], str(data["password"]), remember, request)
        except AuthenticationError as exc:
            request.session.flash("old", {"login": fields["login"]})
            return self.flash_redirect(request, "/auth/login", "error", exc.detail)
        target = request.session.pull("intended_url") or HOME_AFTER_LOGIN
        request.session.flash("success", f"Welcome back, {result.user.username}!")
        response = Response.redirect(target)
        if result.remember_token:
            response = response.with_cookie(
                REMEMBER_COOKIE,
                result.remember_token,
                max_age=REMEMBER_LIFETIME,
                secure=self.ctx.config.session_secure,
            )
        return response

    async def logout(self, request: Request) -> Response:
        await self.ctx.auth.logout(request)
        return Response.redirect("/").without_cookie(REMEMBER_COOKIE)

    async def forgot_form(self, request: Request) -> Response:
        content = (
            f'<form method="post" action="/auth/forgot-password">{csrf_field(request)}'
            f'{_input(request, "email", "Email", "email")}'
            '<button type="submit">Send reset link</button></form>'
        )
        return self.page(request, "Forgot password", content)

    async def forgot(self, request: Request) -> Response:
        fields = validate(await request.input(), {"email": [required, email]}).raise_for_errors()
        result = await self.ctx.auth.request_password_reset(fields["email"])
        return self.flash_redirect(request, "/auth/forgot-password", "success", result.message)

    async def reset_form(self, request: Request, token: str) -> Response:
        content = (
            f'<form method="post" action="/auth/reset-password">{csrf_field(request)}'
            f'<input type="hidden" name="token" value="{e(token)}">'
            f'{_input(request, "password", "New password", "password", keep=False)}'
            f'{_input(request, "password_confirmation", "Confirm password", "password", keep=False)}'
            '<button type="submit">Reset password</button></form>'
        )
        return self.page(request, "Reset password", content)

    async def reset(self, request: Request) -> Response:
        data = await request.input()
        fields = validate(data, {"token": [required], "password": [required]}).raise_for_errors()
        if data.get("password") != data.get("password_confirmation"):
            raise ValidationError.single("password_confirmation", "The password confirmation does not match.")
        await self.ctx.auth.reset_password(fields["token"], str(data["password"]))
        return self.flash_redirect(
            request, "/auth/login", "success", "Your password has been reset. You can log in now."
        )

    async def verify_email(self, request: Request, token: str) -> Response:
        try:
            await self.ctx.auth.verify_email(token)
        except ValidationError as exc:
            return self.flash_redirect(request, "/auth/login", "error", exc.detail)
        return self.flash_redirect(request, "/auth/login", "success", "Your email address is verified.")

    async def resend_verification(self, request: Request) -> Response:
        user = await self.viewer(request)
        if user is None:
            return self.flash_redirect(request, "/auth/login", "error", "Log in to resend the verification email.")
        if user.email_verified:
            return self.flash_redirect(request, HOME_AFTER_LOGIN, "info", "Your email is already verified.")
        await self.ctx.auth.create_verification_token(user.id)
        return self.flash_redirect(request, HOME_AFTER_LOGIN, "success", "A new verification link has been sent.")
