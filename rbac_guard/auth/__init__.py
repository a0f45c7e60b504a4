"""Authentication: password hashing and the login/logout service."""

from rbac_guard.auth.passwords import hash_password, verify_password
from rbac_guard.auth.service import ACCOUNT_FROZEN, INVALID_CREDENTIALS, AuthService

__all__ = [
    "hash_password",
    "verify_password",
    "AuthService",
    "ACCOUNT_FROZEN",
    "INVALID_CREDENTIALS",
]
