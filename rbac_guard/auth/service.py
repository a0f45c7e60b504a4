"""
Authentication Service

Login/logout state machine over a PrincipalContext:

    Unauthenticated --login (credentials ok, status ACTIVE)--> Authenticated
    Authenticated   --logout / context teardown------------> Unauthenticated

An unknown username and a wrong password both report "invalid credentials";
a frozen account is reported distinctly, and only after its password has
been verified. Unknown usernames are checked against a throwaway hash so they
take as long as a wrong password. A failed login leaves an existing session
bound.
"""

import logging
import secrets
from typing import List, Optional

from rbac_guard.access.audit import AuditSink
from rbac_guard.access.context import AuthenticatedPrincipal, PrincipalContext
from rbac_guard.access.resolver import PermissionResolver
from rbac_guard.auth.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from rbac_guard.db.models import Permission
from rbac_guard.directory import Directory
from rbac_guard.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


INVALID_CREDENTIALS = "invalid credentials"
ACCOUNT_FROZEN = "account is frozen"


class AuthService:
    """Authenticates principals and binds them to a session context."""

    def __init__(
        self,
        directory: Directory,
        resolver: PermissionResolver,
        audit: AuditSink,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ):
        self._directory = directory
        self._resolver = resolver
        self._audit = audit
        self._bcrypt_rounds = bcrypt_rounds
        self._unknown_user_hash: Optional[str] = None

    def _dummy_hash(self) -> str:
        """Hash checked for unknown usernames so they cost the same bcrypt work."""
        if self._unknown_user_hash is None:
            self._unknown_user_hash = hash_password(secrets.token_hex(16), self._bcrypt_rounds)
        return self._unknown_user_hash

    def login(self, context: PrincipalContext, username: str, password: str) -> AuthenticatedPrincipal:
        """
        Authenticate with username/password and bind the principal.

        Every rejected attempt records one FAIL/LOGIN audit event naming the
        attempted username.

        Args:
            context: Session to bind the principal to
            username: Login name
            password: Plain text password

        Returns:
            The bound principal

        Raises:
            AuthenticationError: Blank input, invalid credentials or frozen account
        """
        if username is None or not username.strip():
            self._audit.login_fail(username, "username is blank")
            raise AuthenticationError("username is required")
        if password is None or not password.strip():
            self._audit.login_fail(username, "password is blank")
            raise AuthenticationError("password is required")

        principal = self._directory.find_principal_by_name(username)
        if principal is None:
            verify_password(password, self._dummy_hash())
            self._audit.login_fail(username, "unknown user")
            logger.info("Login failed for %s: unknown user", username)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(password, principal.password_hash):
            self._audit.login_fail(username, "wrong password")
            logger.info("Login failed for %s: wrong password", username)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if principal.is_frozen:
            self._audit.login_fail(username, ACCOUNT_FROZEN)
            logger.info("Login refused for frozen account %s", username)
            raise AuthenticationError(ACCOUNT_FROZEN)

        if context.is_authenticated:
            self.logout(context)
        bound = AuthenticatedPrincipal(id=principal.id, username=principal.username)
        context.bind(bound)
        self._audit.login_success(bound.username)
        logger.info("User %s logged in", bound.username)
        return bound

    def logout(self, context: PrincipalContext) -> None:
        """Unbind the current principal. No-op when not logged in."""
        principal = context.principal
        if principal is None:
            return
        self._audit.logout(principal.username)
        context.clear()
        logger.info("User %s logged out", principal.username)

    def current_principal(self, context: PrincipalContext) -> AuthenticatedPrincipal:
        """
        Get the bound principal.

        Raises:
            UnauthenticatedError: If not logged in
        """
        return context.require()

    def permissions_of(self, context: PrincipalContext) -> List[Permission]:
        """Effective permissions of the logged-in principal."""
        principal = context.require()
        return self._resolver.resolve_permissions(principal.id)
