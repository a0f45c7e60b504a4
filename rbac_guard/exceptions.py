"""
RBAC Guard - Exception Hierarchy
================================

Structured exception types shared by the guard, the business services and
the directory.

Exception Categories:
    - UnauthenticatedError: no principal bound to the calling session
    - AuthenticationError: a login attempt was rejected
    - PermissionDeniedError: the bound principal lacks a permission code
    - NotFoundError: a referenced principal, role or permission is absent
    - ConflictError: uniqueness violation or redundant (un)assignment
    - ValidationError: malformed input
    - PersistenceError: opaque failure of the directory backend
"""

from typing import Any, Dict, Optional


class RbacError(Exception):
    """
    Base exception for all RBAC Guard errors.

    Attributes:
        message: Human-readable error description
        code: Optional error code for programmatic handling
        details: Optional dict with additional context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


# =============================================================================
# ACCESS ERRORS (raised by the guard before the operation runs)
# =============================================================================


class UnauthenticatedError(RbacError):
    """No principal is bound to the current session."""

    pass


class AuthenticationError(UnauthenticatedError):
    """Login rejected: bad credentials or frozen account."""

    pass


class PermissionDeniedError(RbacError):
    """The bound principal lacks the required permission code."""

    def __init__(self, message: str, required_code: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.required_code = required_code


# =============================================================================
# BUSINESS ERRORS (raised inside the wrapped operation)
# =============================================================================


class NotFoundError(RbacError):
    """Referenced principal, role or permission does not exist."""

    pass


class ConflictError(RbacError):
    """Duplicate code/name, or assignment state already as requested."""

    pass


class ValidationError(RbacError):
    """Input failed validation (blank fields, password complexity, code format)."""

    pass


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class PersistenceError(RbacError):
    """The directory backend failed."""

    pass
