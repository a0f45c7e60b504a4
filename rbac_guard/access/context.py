"""
RBAC Guard - Principal Context

The authenticated principal of one session. A context is created per
session (console, request, test) and passed explicitly into every guarded
call; it is never shared between sessions.
"""

from dataclasses import dataclass
from typing import Optional

from rbac_guard.exceptions import UnauthenticatedError


SYSTEM_ACTOR = "SYSTEM"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Identity bound to a context after a successful login."""

    id: int
    username: str


class PrincipalContext:
    """
    Holds at most one authenticated principal.

    States: unauthenticated (``principal is None``) and authenticated.
    Used as a context manager, leaving the block tears the session down:

        with PrincipalContext() as ctx:
            auth.login(ctx, "alice", "secret123")
            ...
    """

    def __init__(self) -> None:
        self._principal: Optional[AuthenticatedPrincipal] = None

    @property
    def principal(self) -> Optional[AuthenticatedPrincipal]:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    @property
    def actor_name(self) -> str:
        """Username for audit records, or the system sentinel."""
        if self._principal is None:
            return SYSTEM_ACTOR
        return self._principal.username

    def bind(self, principal: AuthenticatedPrincipal) -> None:
        self._principal = principal

    def clear(self) -> None:
        self._principal = None

    def require(self) -> AuthenticatedPrincipal:
        """Get the bound principal or raise ``UnauthenticatedError``."""
        if self._principal is None:
            raise UnauthenticatedError("not logged in or session expired")
        return self._principal

    def __enter__(self) -> "PrincipalContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()

    def __repr__(self) -> str:
        return f"<PrincipalContext {self.actor_name if self._principal else 'unauthenticated'}>"
