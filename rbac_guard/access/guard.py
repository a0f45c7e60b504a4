"""
RBAC Guard - Authorization Enforcement

One reusable check-then-act protocol wrapped around every sensitive
operation:

    1. authentication check   (UnauthenticatedError, FAIL event)
    2. permission check       (PermissionDeniedError, FAIL event)
    3. invocation of the operation
    4. success                (CRITICAL or SUCCESS event, result returned)
    5. failure                (FAIL event, error re-raised unchanged)

Steps 1 and 2 always complete before the operation runs, so a rejected
call has no side effect. No lock is held across steps 2-4: a permission
revoked concurrently after the check does not abort an operation already
admitted.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TypeVar, Union

from rbac_guard.access.audit import AuditSink
from rbac_guard.access.codes import AuditAction
from rbac_guard.access.context import SYSTEM_ACTOR, AuthenticatedPrincipal, PrincipalContext
from rbac_guard.access.resolver import PermissionResolver
from rbac_guard.exceptions import (
    PermissionDeniedError,
    PersistenceError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Code = Union[str, Enum]


def _code_value(code: Code) -> str:
    return code.value if isinstance(code, Enum) else str(code)


@dataclass(frozen=True)
class AuditDescriptor:
    """
    What to record for a guarded call.

    Attributes:
        action: Audit action name, e.g. ``CREATE_USER``
        target: Identifier of the object acted upon
        critical: Record success as CRITICAL (roster mutations)
        describe: Builds the success message from the operation's result
        message: Success message used when ``describe`` is not given
    """

    action: Union[str, Enum]
    target: Optional[str] = None
    critical: bool = False
    describe: Optional[Callable[[Any], str]] = None
    message: str = ""

    def success_message(self, result: Any) -> str:
        if self.describe is not None:
            return self.describe(result)
        return self.message or f"{_code_value(self.action)} succeeded"


class AuthorizationGuard:
    """
    Enforces authentication and permission checks around operations.

    Usage:
        guard.enforce(
            ctx,
            PermissionCode.USER_CREATE,
            AuditDescriptor(AuditAction.CREATE_USER, target="bob", critical=True),
            lambda: users.create_user("bob", "secret123"),
        )
    """

    def __init__(self, resolver: PermissionResolver, audit: AuditSink):
        self._resolver = resolver
        self._audit = audit

    def check(self, context: PrincipalContext, required_code: Code) -> AuthenticatedPrincipal:
        """
        Run the authentication and permission checks alone.

        Each rejection records exactly one FAIL event.

        Returns:
            The bound principal.

        Raises:
            UnauthenticatedError: No principal bound to ``context``
            PermissionDeniedError: Principal lacks ``required_code``
        """
        code = _code_value(required_code)

        principal = context.principal
        if principal is None:
            message = f"not logged in, cannot perform operation requiring [{code}]"
            self._audit.fail(SYSTEM_ACTOR, AuditAction.PERMISSION_CHECK, code, message)
            logger.warning("Unauthenticated call requiring %s", code)
            raise UnauthenticatedError(message)

        try:
            granted = self._resolver.resolve(principal.id)
        except PersistenceError as e:
            self._audit.fail(
                principal.username,
                AuditAction.PERMISSION_CHECK,
                code,
                f"permission check failed: {e.message}",
            )
            raise

        if code not in granted:
            message = f"permission denied: requires [{code}]"
            self._audit.fail(principal.username, AuditAction.PERMISSION_CHECK, code, message)
            logger.warning("Permission %s denied to %s", code, principal.username)
            raise PermissionDeniedError(message, required_code=code)

        return principal

    def enforce(
        self,
        context: PrincipalContext,
        required_code: Code,
        descriptor: AuditDescriptor,
        operation: Callable[[], T],
    ) -> T:
        """
        Check, invoke and audit one sensitive operation.

        Args:
            context: Session of the caller
            required_code: Permission code the caller must hold
            descriptor: Audit action/target to record
            operation: Zero-argument callable performing the operation

        Returns:
            The operation's result.

        Raises:
            UnauthenticatedError: No principal bound (operation not invoked)
            PermissionDeniedError: Code missing (operation not invoked)
            Exception: Any error raised by the operation, unchanged
        """
        principal = self.check(context, required_code)

        try:
            result = operation()
        except Exception as e:
            self._audit.fail(
                principal.username,
                descriptor.action,
                descriptor.target,
                f"{_code_value(descriptor.action)} failed: {getattr(e, 'message', None) or e}",
            )
            raise

        message = descriptor.success_message(result)
        if descriptor.critical:
            self._audit.critical(principal.username, descriptor.action, descriptor.target, message)
        else:
            self._audit.success(principal.username, descriptor.action, descriptor.target, message)
        return result
