"""Accounts: registration, login, lockout, tokens and password resets."""

from cineverse.auth.manager import AuthManager, LoginResult, ResetRequest
from cineverse.auth.models import User

__all__ = ["AuthManager", "LoginResult", "ResetRequest", "User"]
