"""Account lifecycle: registration, login, lockout, tokens, resets.

The manager holds no per-request state. The current user is resolved
from the request (bearer token, then session, then remember-me cookie)
and cached on ``request.state`` for the rest of that request.

Login outcomes:

- unknown identifier: "Invalid credentials"
- locked account: 423, password not checked
- wrong password: "Invalid credentials", the counter goes up, and the
  account locks once the counter reaches the policy threshold
- inactive account: "Account is not active"
"""

import hmac
import logging
import re
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from cineverse._internal.clock import from_db, to_db, utcnow
from cineverse.auth.models import User
from cineverse.data._mapping import map_row
from cineverse.data.manager import DatabaseManager
from cineverse.errors import AuthenticationError, ValidationError
from cineverse.http.request import Request
from cineverse.security import generate_token, hash_token
from cineverse.security.lockout import LockoutPolicy
from cineverse.security.passwords import hash_password, verify_password
from cineverse.security.tokens import TokenService

logger = logging.getLogger("cineverse.auth")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8
RESET_TOKEN_TTL = timedelta(hours=1)
VERIFICATION_TOKEN_TTL = timedelta(hours=24)
REMEMBER_COOKIE = "remember_token"
REMEMBER_LIFETIME = 30 * 24 * 3600

_PROFILE_FIELDS = ("first_name", "last_name", "phone", "date_of_birth", "gender")
_RESET_MESSAGE = "If the email exists, a reset link has been sent"


@dataclass(frozen=True, slots=True)
class LoginResult:
    user: User
    token: str
    expires_in: int
    remember_token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user.to_public(),
            "token": self.token,
            "token_type": "Bearer",
            "expires_in": self.expires_in,
        }


@dataclass(frozen=True, slots=True)
class ResetRequest:
    """Outcome of a reset request.

    ``message`` is identical whether or not the email exists. ``token``
    is the plaintext for the mail collaborator and is never sent to the
    requester.
    """

    message: str
    token: str | None = None


class AuthManager:
    """Registration, login and token flows over the ``users`` table.

    Usage::

        auth = AuthManager(db, tokens)
        user = await auth.register({"username": "alice", ...})
        result = await auth.login("alice", "secret123", request=request)
    """

    __slots__ = ("_clock", "db", "lockout", "tokens")

    def __init__(
        self,
        db: DatabaseManager,
        tokens: TokenService,
        *,
        lockout: LockoutPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.tokens = tokens
        self.lockout = lockout or LockoutPolicy()
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    # -- Lookups --

    async def find(self, user_id: int) -> User | None:
        row = await self.db.table("users").where("id", user_id).first()
        return None if row is None else _user(row)

    async def find_by_identifier(self, identifier: str) -> User | None:
        row = await (
            self.db.table("users").where("username", identifier).or_where("email", identifier).first()
        )
        return None if row is None else _user(row)

    # -- Registration --

    async def register(self, data: Mapping[str, Any], request: Request | None = None) -> dict[str, Any]:
        """Create an account and return its public fields.

        Raises:
            ValidationError: With one entry per failing field.
        """
        username = str(data.get("username") or "").strip()
        email = str(data.get("email") or "").strip()
        password = str(data.get("password") or "")

        errors: dict[str, list[str]] = {}
        if not username:
            errors.setdefault("username", []).append("The username field is required.")
        elif not 3 <= len(username) <= 50:
            errors.setdefault("username", []).append("The username must be between 3 and 50 characters.")
        if not email:
            errors.setdefault("email", []).append("The email field is required.")
        elif not EMAIL_PATTERN.match(email):
            errors.setdefault("email", []).append("The email must be a valid email address.")
        if not password:
            errors.setdefault("password", []).append("The password field is required.")
        elif len(password) < MIN_PASSWORD_LENGTH:
            errors.setdefault("password", []).append(
                f"The password must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        confirmation = data.get("password_confirmation")
        if confirmation is not None and password and confirmation != password:
            errors.setdefault("password", []).append("The password confirmation does not match.")

        if username and await self.db.table("users").where("username", username).exists():
            errors.setdefault("username", []).append("The username has already been taken.")
        if email and await self.db.table("users").where("email", email).exists():
            errors.setdefault("email", []).append("The email has already been taken.")
        if errors:
            raise ValidationError(errors)

        record: dict[str, Any] = {
            "uuid": str(uuid.uuid4()),
            "username": username,
            "email": email,
            "password": hash_password(password),
            "country": data.get("country") or "RW",
            "language": data.get("language") or "en",
            "role": "user",
            "status": "active",
        }
        for name in _PROFILE_FIELDS:
            value = data.get(name)
            record[name] = str(value).strip() if value not in (None, "") else None

        user_id = await self.db.insert("users", record)
        user = _user(await self.db.table("users").where("id", user_id).first() or {})
        await self.log_activity(user.id, "register", "User account created", request)
        logger.info("Registered user %s (id=%d)", user.username, user.id)
        return user.to_public()

    async def create_verification_token(self, user_id: int) -> str:
        """Issue an email verification token; older ones are dropped (resend)."""
        token = generate_token()
        async with self.db.transaction():
            await self.db.table("email_verification_tokens").where("user_id", user_id).delete()
            await self.db.insert(
                "email_verification_tokens",
                {
                    "user_id": user_id,
                    "token": hash_token(token),
                    "expires_at": to_db(self.now() + VERIFICATION_TOKEN_TTL),
                },
            )
        return token

    async def verify_email(self, token: str) -> User:
        """Mark the token's owner verified.

        Raises:
            ValidationError: For an unknown or expired token.
        """
        row = await (
            self.db.table("email_verification_tokens")
            .where("token", hash_token(token))
            .where("expires_at", ">", to_db(self.now()))
            .first()
        )
        if row is None:
            raise ValidationError.single("token", "Invalid or expired verification token")
        async with self.db.transaction():
            await self.db.update("users", {"email_verified_at": to_db(self.now())}, {"id": row["user_id"]})
            await self.db.table("email_verification_tokens").where("user_id", row["user_id"]).delete()
        user = _user(await self.db.table("users").where("id", row["user_id"]).first() or {})
        await self.log_activity(user.id, "email_verified", "Email address verified")
        return user

    # -- Login --

    async def login(
        self,
        identifier: str,
        password: str,
        remember: bool = False,
        request: Request | None = None,
    ) -> LoginResult:
        """Check credentials, apply lockout, and start an authenticated session.

        Raises:
            AuthenticationError: 401 for bad credentials or an inactive
                account, 423 while the account is locked.
        """
        user = await self.find_by_identifier(identifier)
        if user is None:
            raise AuthenticationError()

        now = self.now()
        locked_until = from_db(user.locked_until)
        if self.lockout.is_locked(locked_until, now):
            raise AuthenticationError(
                "Account is temporarily locked due to too many failed login attempts", status=423
            )

        if not verify_password(password, user.password):
            attempts, lock = self.lockout.register_failure(user.login_attempts, now)
            await self.db.update(
                "users",
                {"login_attempts": attempts, "locked_until": to_db(lock) if lock else None},
                {"id": user.id},
            )
            await self.log_activity(user.id, "failed_login", f"Failed login attempt #{attempts}", request)
            if lock is not None:
                logger.warning("Locked account %s after %d failed attempts", user.username, attempts)
            raise AuthenticationError()

        if not user.is_active:
            raise AuthenticationError("Account is not active")

        await self.db.update(
            "users",
            {
                "login_attempts": 0,
                "locked_until": None,
                "last_login_at": to_db(now),
                "last_login_ip": request.client_ip if request is not None else None,
            },
            {"id": user.id},
        )

        remember_value: str | None = None
        if remember:
            secret = generate_token()
            await self.db.update("users", {"remember_token": hash_token(secret)}, {"id": user.id})
            remember_value = f"{user.id}|{secret}"

        if request is not None:
            self._start_session(request, user)
        await self.log_activity(user.id, "login", "User logged in", request)

        issued = self.tokens.issue(user)
        fresh = await self.find(user.id)
        return LoginResult(
            user=fresh or user,
            token=issued.token,
            expires_in=issued.expires_in,
            remember_token=remember_value,
        )

    def _start_session(self, request: Request, user: User) -> None:
        session = request.state.get("session")
        if session is None:
            return
        session.regenerate()
        session.set("user_id", user.id)
        session.set("username", user.username)
        session.set("role", user.role)
        request.state["user"] = user

    async def refresh(self, user: User) -> LoginResult:
        issued = self.tokens.issue(user)
        return LoginResult(user=user, token=issued.token, expires_in=issued.expires_in)

    async def user_from_remember_cookie(self, value: str | None) -> User | None:
        """The active user a ``<id>|<token>`` remember-me cookie belongs to, if valid."""
        if not value or "|" not in value:
            return None
        raw_id, _, secret = value.partition("|")
        if not raw_id.isdigit() or not secret:
            return None
        user = await self.find(int(raw_id))
        if user is None or not user.is_active or not user.remember_token:
            return None
        if not hmac.compare_digest(user.remember_token, hash_token(secret)):
            return None
        return user

    # -- Current user --

    async def authenticate(self, request: Request) -> User | None:
        """Resolve the caller: bearer token, then session, then remember-me cookie."""
        if "user" in request.state:
            return request.state["user"]

        user: User | None = None
        token = request.bearer_token
        if token is not None:
            try:
                claims = await self.tokens.decode(token)
            except AuthenticationError:
                claims = None
            if claims is not None:
                request.state["token_claims"] = claims
                user = await self.find(int(claims["user_id"]))
        else:
            session = request.state.get("session")
            user_id = session.get("user_id") if session is not None else None
            if user_id is not None:
                user = await self.find(int(user_id))
            if user is None and session is not None:
                user = await self.user_from_remember_cookie(request.cookies.get(REMEMBER_COOKIE))
                if user is not None:
                    self._start_session(request, user)

        if user is not None and not user.is_active:
            user = None
        request.state["user"] = user
        return user

    async def check(self, request: Request | None = None) -> bool:
        return await self.user(request) is not None

    async def user(self, request: Request | None = None) -> User | None:
        if request is None:
            from cineverse.context import get_request

            request = get_request()
        return await self.authenticate(request)

    async def logout(self, request: Request, token_claims: Mapping[str, Any] | None = None) -> None:
        """End the caller's session and revoke the presented bearer token.

        Tokens issued to other clients stay valid until they expire.
        """
        user = await self.authenticate(request)
        claims = token_claims if token_claims is not None else request.state.get("token_claims")
        if claims is not None:
            await self.tokens.revoke(dict(claims))
        if user is not None:
            await self.db.update("users", {"remember_token": None}, {"id": user.id})
            await self.log_activity(user.id, "logout", "User logged out", request)
        session = request.state.get("session")
        if session is not None:
            session.destroy()
        request.state["user"] = None

    # -- Password reset --

    async def request_password_reset(self, email: str) -> ResetRequest:
        row = await self.db.table("users").where("email", email).first()
        if row is None:
            return ResetRequest(_RESET_MESSAGE)

        token = generate_token()
        async with self.db.transaction():
            await self.db.table("password_reset_tokens").where("email", email).delete()
            await self.db.insert(
                "password_reset_tokens",
                {
                    "email": email,
                    "token": hash_token(token),
                    "expires_at": to_db(self.now() + RESET_TOKEN_TTL),
                },
            )
        await self.log_activity(row["id"], "password_reset_requested", "Password reset requested")
        return ResetRequest(_RESET_MESSAGE, token)

    async def reset_password(self, token: str, new_password: str) -> User:
        """Set a new password from a reset token.

        Raises:
            ValidationError: Unknown or expired token, or a short password.
        """
        hashed = hash_token(token)
        row = await (
            self.db.table("password_reset_tokens")
            .where("token", hashed)
            .where("expires_at", ">", to_db(self.now()))
            .first()
        )
        if row is None:
            raise ValidationError.single("token", "Invalid or expired reset token")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError.single(
                "password", f"The password must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        owner = await self.db.table("users").where("email", row["email"]).first()
        if owner is None:
            raise ValidationError.single("token", "Invalid or expired reset token")
        user = _user(owner)

        async with self.db.transaction():
            await self.db.update(
                "users",
                {"password": hash_password(new_password), "login_attempts": 0, "locked_until": None},
                {"id": user.id},
            )
            await self.db.table("password_reset_tokens").where("token", hashed).delete()
        await self.log_activity(user.id, "password_reset", "Password was reset")
        return user

    async def change_password(self, user: User, current: str, new_password: str) -> None:
        if not verify_password(current, user.password):
            raise ValidationError.single("current_password", "The current password is incorrect.")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError.single(
                "password", f"The password must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        await self.db.update("users", {"password": hash_password(new_password)}, {"id": user.id})
        await self.log_activity(user.id, "password_changed", "Password was changed")

    # -- Activity log --

    async def log_activity(
        self, user_id: int, activity_type: str, description: str, request: Request | None = None
    ) -> None:
        await self.db.insert(
            "user_activities",
            {
                "user_id": user_id,
                "activity_type": activity_type,
                "description": description,
                "ip_address": request.client_ip if request is not None else None,
                "user_agent": request.user_agent if request is not None else None,
                "created_at": to_db(self.now()),
            },
        )


def _user(row: dict[str, Any]) -> User:
    return map_row(User, row)
