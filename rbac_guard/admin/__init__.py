"""Admin business services for principals, roles and permissions."""

from rbac_guard.admin.service import (
    PermissionService,
    RoleService,
    UserService,
    validate_request,
)

__all__ = [
    "PermissionService",
    "RoleService",
    "UserService",
    "validate_request",
]
