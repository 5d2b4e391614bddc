"""Bearer tokens: HS256 JWTs via PyJWT, with a revocation denylist.

Claims: ``iss``, ``aud``, ``iat``, ``exp``, ``jti``, ``user_id``,
``username``, ``role``. A revoked token's ``jti`` sits in the cache
until the token would have expired anyway, so the denylist never
outgrows the set of live tokens.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

import jwt

from cineverse.cache.store import Cache
from cineverse.errors import AuthenticationError

logger = logging.getLogger("cineverse.auth")

_REVOKED_PREFIX = "jwt:revoked:"


class TokenSubject(Protocol):
    id: int
    username: str
    role: str


@dataclass(frozen=True, slots=True)
class IssuedToken:
    token: str
    claims: dict[str, Any]
    expires_in: int


class TokenService:
    """Issue, decode and revoke access tokens.

    Usage::

        tokens = TokenService(secret, issuer="https://cineverse.rw", cache=cache)
        issued = tokens.issue(user)
        claims = await tokens.decode(issued.token)
        await tokens.revoke(claims)
    """

    __slots__ = ("_cache", "_secret", "algorithm", "audience", "expiry", "issuer")

    def __init__(
        self,
        secret: str,
        *,
        cache: Cache,
        issuer: str = "cineverse",
        audience: str | None = None,
        expiry: int = 3600,
        algorithm: str = "HS256",
    ) -> None:
        self._secret = secret
        self._cache = cache
        self.issuer = issuer
        self.audience = audience or issuer
        self.expiry = expiry
        self.algorithm = algorithm

    def issue(self, user: TokenSubject) -> IssuedToken:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": now + self.expiry,
            "jti": uuid.uuid4().hex,
            "user_id": user.id,
            "username": user.username,
            "role": user.role,
        }
        token = jwt.encode(claims, self._secret, algorithm=self.algorithm)
        return IssuedToken(token=token, claims=claims, expires_in=self.expiry)

    async def decode(self, token: str) -> dict[str, Any]:
        """Verified claims of *token*.

        Raises:
            AuthenticationError: Bad signature, wrong issuer or audience,
                expired, or revoked.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "jti"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired") from None
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected token: %s", exc)
            raise AuthenticationError("Invalid token") from None
        if await self.is_revoked(claims["jti"]):
            raise AuthenticationError("Token has been revoked")
        return claims

    async def revoke(self, claims: dict[str, Any]) -> None:
        remaining = int(claims.get("exp", 0)) - int(time.time())
        if remaining > 0:
            await self._cache.set(f"{_REVOKED_PREFIX}{claims['jti']}", True, remaining)

    async def is_revoked(self, jti: str) -> bool:
        return bool(await self._cache.get(f"{_REVOKED_PREFIX}{jti}", False))
