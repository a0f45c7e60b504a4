"""
Password Hashing

bcrypt hashes carry their own salt, so the stored hash is the whole
credential reference.
"""

import bcrypt

from rbac_guard.config import BCRYPT_MAX_PASSWORD_BYTES as MAX_PASSWORD_BYTES

DEFAULT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Hash a password with a fresh salt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        bcrypt hash as text
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain text password against a stored hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash or over-long password
        return False
