"""``/api/v1/auth``: registration, login and token lifecycle."""

import logging

from cineverse.controllers.base import Controller
from cineverse.errors import ValidationError
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.validation import email, required, validate

logger = logging.getLogger("cineverse.auth")


class AuthController(Controller):
    __slots__ = ()

    async def register(self, request: Request) -> Response:
        data = await request.input()
        user = await self.ctx.auth.register(data, request)
        token = await self.ctx.auth.create_verification_token(user["id"])
        # handed to the mail collaborator; never echoed to the client
        logger.debug("Verification token issued for user %d (%d chars)", user["id"], len(token))
        return Response.success({"user": user}, "User registered successfully", status=201)

    async def login(self, request: Request) -> Response:
        data = await request.input()
        fields = validate(data, {"login": [required], "password": [required]}).raise_for_errors()
        remember = str(data.get("remember", "")).lower() in ("1", "true", "on", "yes")
        result = await self.ctx.auth.login(fields["login"], str(data["password"]), remember, request)
        response = Response.success(result.to_dict(), "Login successful")
        if result.remember_token:
            response = response.with_cookie(
                "remember_token",
                result.remember_token,
                max_age=30 * 24 * 3600,
                secure=self.ctx.config.session_secure,
            )
        return response

    async def logout(self, request: Request) -> Response:
        await self.ctx.auth.logout(request)
        return Response.success(message="Logged out successfully").without_cookie("remember_token")

    async def refresh(self, request: Request) -> Response:
        claims = request.state.get("token_claims")
        if claims is not None:
            await self.ctx.tokens.revoke(claims)
        result = await self.ctx.auth.refresh(self.user(request))
        return Response.success(result.to_dict(), "Token refreshed")

    async def forgot_password(self, request: Request) -> Response:
        fields = validate(await request.input(), {"email": [required, email]}).raise_for_errors()
        result = await self.ctx.auth.request_password_reset(fields["email"])
        return Response.success(message=result.message)

    async def reset_password(self, request: Request) -> Response:
        data = await request.input()
        fields = validate(data, {"token": [required], "password": [required]}).raise_for_errors()
        confirmation = data.get("password_confirmation")
        if confirmation is not None and confirmation != data["password"]:
            raise ValidationError.single("password", "The password confirmation does not match.")
        await self.ctx.auth.reset_password(fields["token"], str(data["password"]))
        return Response.success(message="Password has been reset successfully")

    async def verify_email(self, request: Request) -> Response:
        fields = validate(await request.input(), {"token": [required]}).raise_for_errors()
        user = await self.ctx.auth.verify_email(fields["token"])
        return Response.success({"user": user.to_public()}, "Email verified successfully")

    async def me(self, request: Request) -> Response:
        return Response.success({"user": self.user(request).to_public()})
