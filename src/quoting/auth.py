"""Caller identity and role checks.

Operations never look up an ambient session: the application resolves the
caller once through an AuthProvider and passes it to every service call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from src.common.config import settings
from src.common.errors import AuthError
from src.common.logging import log_debug, log_error


@dataclass(frozen=True)
class Caller:
    """Authenticated user on whose behalf an operation runs."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass
class RoleCheck:
    """Result of verify_auth_role."""
    verified: bool
    role: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        if self.verified:
            return {"verified": True, "role": self.role}
        return {"verified": False, "error": self.error}


class AuthProvider(Protocol):
    def get_session(self) -> Optional[Caller]: ...

    def get_user(self) -> Optional[Caller]: ...


def caller_from_user(user: Any) -> Optional[Caller]:
    """Build a Caller from a Supabase auth user object."""
    if user is None:
        return None
    metadata = dict(getattr(user, "user_metadata", None) or {})
    return Caller(
        id=str(user.id),
        email=getattr(user, "email", None),
        role=metadata.get("role"),
        metadata=metadata,
    )


class SupabaseAuth:
    """AuthProvider backed by ``client.auth``."""

    def __init__(self, client):
        self._client = client

    def get_session(self) -> Optional[Caller]:
        session = self._client.auth.get_session()
        if session is None:
            return None
        return caller_from_user(session.user)

    def get_user(self) -> Optional[Caller]:
        try:
            response = self._client.auth.get_user()
        except Exception as e:
            log_error("get_user", e)
            raise AuthError(f"Could not load user: {e}") from e
        if response is None:
            return None
        return caller_from_user(response.user)

    def sign_in(self, email: str, password: str) -> Caller:
        """Sign in with email and password; client failures raise AuthError."""
        try:
            response = self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            log_error("sign_in", e, {"email": email})
            raise AuthError(f"Sign-in failed: {e}") from e
        caller = caller_from_user(response.user)
        if caller is None:
            raise AuthError("Sign-in returned no user")
        return caller


def require_caller(caller: Optional[Caller]) -> Caller:
    """Return ``caller`` or raise AuthError when there is none."""
    if caller is None or not caller.id:
        raise AuthError("User not authenticated")
    return caller


def current_caller(provider: AuthProvider) -> Caller:
    """Resolve the authenticated user through ``provider``."""
    try:
        user = provider.get_user()
    except AuthError:
        raise
    except Exception as e:
        log_error("current_caller", e)
        raise AuthError(f"Could not load user: {e}") from e
    return require_caller(user)


def verify_auth_role(
    provider: AuthProvider,
    allowed_roles: Optional[Iterable[str]] = None,
) -> RoleCheck:
    """Check that the session's role is one of ``allowed_roles``.

    Defaults to ``settings.auth.allowed_roles`` ({admin, sales}). Errors are
    reported as a generic failure; the role is only returned on success.
    """
    context = "verify_auth_role"
    allowed = set(allowed_roles if allowed_roles is not None else settings.auth.allowed_roles)
    try:
        session = provider.get_session()
        if session is None:
            log_debug(context, "No active session found")
            return RoleCheck(verified=False, error="No active session")

        role = session.role
        log_debug(context, "User role from metadata", {"role": role})

        if not role or role not in allowed:
            return RoleCheck(verified=False, error="Invalid or missing role")

        return RoleCheck(verified=True, role=role)
    except Exception as e:
        log_error(context, e)
        return RoleCheck(verified=False, error="Verification failed")
