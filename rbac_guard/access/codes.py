"""
RBAC Guard - Permission Codes & Audit Actions

System permission codes (``RESOURCE:ACTION``) and the audit action names
recorded for each guarded operation.
"""

import re
from enum import Enum
from typing import Dict, Set


# ============================================================
# Permissions
# ============================================================


class PermissionCode(str, Enum):
    """System permission codes required by the guarded operations."""

    # User Management
    USER_CREATE = "USER:CREATE"
    USER_DELETE = "USER:DELETE"
    USER_FREEZE = "USER:FREEZE"
    USER_UNFREEZE = "USER:UNFREEZE"
    USER_LIST = "USER:LIST"

    # Role Management
    ROLE_CREATE = "ROLE:CREATE"
    ROLE_DELETE = "ROLE:DELETE"
    ROLE_ASSIGN = "ROLE:ASSIGN"
    ROLE_REVOKE = "ROLE:REVOKE"
    ROLE_LIST = "ROLE:LIST"

    # Permission Management
    PERMISSION_CREATE = "PERMISSION:CREATE"
    PERMISSION_DELETE = "PERMISSION:DELETE"
    PERMISSION_ASSIGN = "PERMISSION:ASSIGN"
    PERMISSION_REVOKE = "PERMISSION:REVOKE"
    PERMISSION_LIST = "PERMISSION:LIST"

    # Audit
    AUDIT_ANALYZE = "AUDIT:ANALYZE"


PERMISSION_DESCRIPTIONS: Dict[PermissionCode, str] = {
    PermissionCode.USER_CREATE: "Create users",
    PermissionCode.USER_DELETE: "Delete users",
    PermissionCode.USER_FREEZE: "Freeze user accounts",
    PermissionCode.USER_UNFREEZE: "Unfreeze user accounts",
    PermissionCode.USER_LIST: "View users",
    PermissionCode.ROLE_CREATE: "Create roles",
    PermissionCode.ROLE_DELETE: "Delete roles",
    PermissionCode.ROLE_ASSIGN: "Assign roles to users",
    PermissionCode.ROLE_REVOKE: "Revoke roles from users",
    PermissionCode.ROLE_LIST: "View roles",
    PermissionCode.PERMISSION_CREATE: "Create permissions",
    PermissionCode.PERMISSION_DELETE: "Delete permissions",
    PermissionCode.PERMISSION_ASSIGN: "Grant permissions to roles",
    PermissionCode.PERMISSION_REVOKE: "Revoke permissions from roles",
    PermissionCode.PERMISSION_LIST: "View permissions",
    PermissionCode.AUDIT_ANALYZE: "Run audit trail analysis",
}


READ_ONLY_CODES: Set[PermissionCode] = {
    PermissionCode.USER_LIST,
    PermissionCode.ROLE_LIST,
    PermissionCode.PERMISSION_LIST,
}


PERMISSION_CODE_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*:[A-Z][A-Z0-9_]*$")


def is_valid_permission_code(code: str) -> bool:
    """Check that ``code`` has the ``RESOURCE:ACTION`` form."""
    return bool(PERMISSION_CODE_PATTERN.match(code))


# ============================================================
# Audit Actions
# ============================================================


class AuditAction(str, Enum):
    """Action names written to the audit trail."""

    # Authentication
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    PERMISSION_CHECK = "PERMISSION_CHECK"

    # User Management
    CREATE_USER = "CREATE_USER"
    DELETE_USER = "DELETE_USER"
    FREEZE_USER = "FREEZE_USER"
    UNFREEZE_USER = "UNFREEZE_USER"
    LIST_USERS = "LIST_USERS"

    # Role Management
    CREATE_ROLE = "CREATE_ROLE"
    DELETE_ROLE = "DELETE_ROLE"
    ASSIGN_ROLE = "ASSIGN_ROLE"
    REVOKE_ROLE = "REVOKE_ROLE"
    LIST_ROLES = "LIST_ROLES"

    # Permission Management
    CREATE_PERMISSION = "CREATE_PERMISSION"
    DELETE_PERMISSION = "DELETE_PERMISSION"
    GRANT_PERMISSION = "GRANT_PERMISSION"
    REVOKE_PERMISSION = "REVOKE_PERMISSION"
    LIST_PERMISSIONS = "LIST_PERMISSIONS"

    # Audit
    ANALYZE_AUDIT = "ANALYZE_AUDIT"


# ============================================================
# Seed Roles
# ============================================================


ADMIN_ROLE_CODE = "ADMIN"
GUEST_ROLE_CODE = "GUEST"
ADMIN_USERNAME = "admin"

ROLE_PERMISSIONS: Dict[str, Set[PermissionCode]] = {
    ADMIN_ROLE_CODE: {
        # All permissions
        *PermissionCode,
    },
    GUEST_ROLE_CODE: set(READ_ONLY_CODES),
}
