"""Persistence layer: ORM models and session management."""

from rbac_guard.db.models import (
    Base,
    Permission,
    Principal,
    PrincipalStatus,
    Role,
    principal_roles,
    role_permissions,
)
from rbac_guard.db.session import (
    create_db_engine,
    create_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    "Base",
    "Permission",
    "Principal",
    "PrincipalStatus",
    "Role",
    "principal_roles",
    "role_permissions",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
]
