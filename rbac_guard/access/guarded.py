"""
RBAC Guard - Guarded Services

Access-controlled facades over the admin services and the audit analyzer.
Every method takes the caller's PrincipalContext first and runs through
``AuthorizationGuard.enforce``; nothing here touches the directory directly.

    users = GuardedUserService(guard, UserService(directory))
    users.create_user(ctx, "bob", "secret123")   # USER:CREATE, CRITICAL event
"""

from typing import List, Tuple

from rbac_guard.access.analyzer import AuditAnomalyAnalyzer
from rbac_guard.access.codes import AuditAction, PermissionCode
from rbac_guard.access.context import PrincipalContext
from rbac_guard.access.guard import AuditDescriptor, AuthorizationGuard
from rbac_guard.admin.service import PermissionService, RoleService, UserService
from rbac_guard.db.models import Permission, Principal, Role


def _count(noun: str):
    return lambda items: f"{len(items)} {noun}"


class GuardedUserService:
    """User management behind ``USER:*`` permissions."""

    def __init__(self, guard: AuthorizationGuard, users: UserService):
        self._guard = guard
        self._users = users

    def create_user(self, context: PrincipalContext, username: str, password: str) -> Principal:
        return self._guard.enforce(
            context,
            PermissionCode.USER_CREATE,
            AuditDescriptor(
                AuditAction.CREATE_USER,
                target=username,
                critical=True,
                describe=lambda p: f"created user {p.username} (id={p.id})",
            ),
            lambda: self._users.create_user(username, password),
        )

    def delete_user(self, context: PrincipalContext, principal_id: int) -> Principal:
        return self._guard.enforce(
            context,
            PermissionCode.USER_DELETE,
            AuditDescriptor(
                AuditAction.DELETE_USER,
                target=str(principal_id),
                critical=True,
                describe=lambda p: f"deleted user {p.username}",
            ),
            lambda: self._users.delete_user(principal_id),
        )

    def freeze_user(self, context: PrincipalContext, principal_id: int) -> Principal:
        return self._guard.enforce(
            context,
            PermissionCode.USER_FREEZE,
            AuditDescriptor(
                AuditAction.FREEZE_USER,
                target=str(principal_id),
                critical=True,
                describe=lambda p: f"froze user {p.username}",
            ),
            lambda: self._users.freeze_user(principal_id),
        )

    def unfreeze_user(self, context: PrincipalContext, principal_id: int) -> Principal:
        return self._guard.enforce(
            context,
            PermissionCode.USER_UNFREEZE,
            AuditDescriptor(
                AuditAction.UNFREEZE_USER,
                target=str(principal_id),
                critical=True,
                describe=lambda p: f"unfroze user {p.username}",
            ),
            lambda: self._users.unfreeze_user(principal_id),
        )

    def list_users(self, context: PrincipalContext) -> List[Principal]:
        return self._guard.enforce(
            context,
            PermissionCode.USER_LIST,
            AuditDescriptor(AuditAction.LIST_USERS, describe=_count("users listed")),
            self._users.list_users,
        )

    def get_user(self, context: PrincipalContext, principal_id: int) -> Principal:
        return self._guard.enforce(
            context,
            PermissionCode.USER_LIST,
            AuditDescriptor(
                AuditAction.LIST_USERS,
                target=str(principal_id),
                describe=lambda p: f"viewed user {p.username}",
            ),
            lambda: self._users.get_user(principal_id),
        )

    def get_user_by_name(self, context: PrincipalContext, username: str) -> Principal:
        return self._guard.enforce(
            context,
            PermissionCode.USER_LIST,
            AuditDescriptor(
                AuditAction.LIST_USERS,
                target=username,
                describe=lambda p: f"viewed user {p.username}",
            ),
            lambda: self._users.get_user_by_name(username),
        )


class GuardedRoleService:
    """Role management and assignment behind ``ROLE:*`` permissions."""

    def __init__(self, guard: AuthorizationGuard, roles: RoleService):
        self._guard = guard
        self._roles = roles

    def create_role(self, context: PrincipalContext, code: str, name: str, description=None) -> Role:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_CREATE,
            AuditDescriptor(
                AuditAction.CREATE_ROLE,
                target=code,
                critical=True,
                describe=lambda r: f"created role {r.code} (id={r.id})",
            ),
            lambda: self._roles.create_role(code, name, description),
        )

    def delete_role(self, context: PrincipalContext, role_id: int) -> Role:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_DELETE,
            AuditDescriptor(
                AuditAction.DELETE_ROLE,
                target=str(role_id),
                critical=True,
                describe=lambda r: f"deleted role {r.code}",
            ),
            lambda: self._roles.delete_role(role_id),
        )

    def assign_role(self, context: PrincipalContext, principal_id: int, role_id: int) -> Tuple[Principal, Role]:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_ASSIGN,
            AuditDescriptor(
                AuditAction.ASSIGN_ROLE,
                target=str(principal_id),
                critical=True,
                describe=lambda pr: f"assigned role {pr[1].code} to user {pr[0].username}",
            ),
            lambda: self._roles.assign_role(principal_id, role_id),
        )

    def revoke_role(self, context: PrincipalContext, principal_id: int, role_id: int) -> Tuple[Principal, Role]:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_REVOKE,
            AuditDescriptor(
                AuditAction.REVOKE_ROLE,
                target=str(principal_id),
                critical=True,
                describe=lambda pr: f"revoked role {pr[1].code} from user {pr[0].username}",
            ),
            lambda: self._roles.revoke_role(principal_id, role_id),
        )

    def list_roles(self, context: PrincipalContext) -> List[Role]:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_LIST,
            AuditDescriptor(AuditAction.LIST_ROLES, describe=_count("roles listed")),
            self._roles.list_roles,
        )

    def get_role(self, context: PrincipalContext, role_id: int) -> Role:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_LIST,
            AuditDescriptor(
                AuditAction.LIST_ROLES,
                target=str(role_id),
                describe=lambda r: f"viewed role {r.code}",
            ),
            lambda: self._roles.get_role(role_id),
        )

    def get_role_by_code(self, context: PrincipalContext, code: str) -> Role:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_LIST,
            AuditDescriptor(
                AuditAction.LIST_ROLES,
                target=code,
                describe=lambda r: f"viewed role {r.code}",
            ),
            lambda: self._roles.get_role_by_code(code),
        )

    def roles_of(self, context: PrincipalContext, principal_id: int) -> List[Role]:
        return self._guard.enforce(
            context,
            PermissionCode.ROLE_LIST,
            AuditDescriptor(
                AuditAction.LIST_ROLES,
                target=str(principal_id),
                describe=_count("roles held"),
            ),
            lambda: self._roles.roles_of(principal_id),
        )


class GuardedPermissionService:
    """Permission management and grants behind ``PERMISSION:*`` permissions."""

    def __init__(self, guard: AuthorizationGuard, permissions: PermissionService):
        self._guard = guard
        self._permissions = permissions

    def create_permission(self, context: PrincipalContext, code: str, description=None) -> Permission:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_CREATE,
            AuditDescriptor(
                AuditAction.CREATE_PERMISSION,
                target=code,
                critical=True,
                describe=lambda p: f"created permission {p.code} (id={p.id})",
            ),
            lambda: self._permissions.create_permission(code, description),
        )

    def delete_permission(self, context: PrincipalContext, permission_id: int) -> Permission:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_DELETE,
            AuditDescriptor(
                AuditAction.DELETE_PERMISSION,
                target=str(permission_id),
                critical=True,
                describe=lambda p: f"deleted permission {p.code}",
            ),
            lambda: self._permissions.delete_permission(permission_id),
        )

    def grant_to_role(
        self, context: PrincipalContext, role_id: int, permission_id: int
    ) -> Tuple[Role, Permission]:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_ASSIGN,
            AuditDescriptor(
                AuditAction.GRANT_PERMISSION,
                target=str(role_id),
                critical=True,
                describe=lambda rp: f"granted permission {rp[1].code} to role {rp[0].code}",
            ),
            lambda: self._permissions.grant_to_role(role_id, permission_id),
        )

    def revoke_from_role(
        self, context: PrincipalContext, role_id: int, permission_id: int
    ) -> Tuple[Role, Permission]:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_REVOKE,
            AuditDescriptor(
                AuditAction.REVOKE_PERMISSION,
                target=str(role_id),
                critical=True,
                describe=lambda rp: f"revoked permission {rp[1].code} from role {rp[0].code}",
            ),
            lambda: self._permissions.revoke_from_role(role_id, permission_id),
        )

    def list_permissions(self, context: PrincipalContext) -> List[Permission]:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_LIST,
            AuditDescriptor(AuditAction.LIST_PERMISSIONS, describe=_count("permissions listed")),
            self._permissions.list_permissions,
        )

    def get_permission(self, context: PrincipalContext, permission_id: int) -> Permission:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_LIST,
            AuditDescriptor(
                AuditAction.LIST_PERMISSIONS,
                target=str(permission_id),
                describe=lambda p: f"viewed permission {p.code}",
            ),
            lambda: self._permissions.get_permission(permission_id),
        )

    def get_permission_by_code(self, context: PrincipalContext, code: str) -> Permission:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_LIST,
            AuditDescriptor(
                AuditAction.LIST_PERMISSIONS,
                target=code,
                describe=lambda p: f"viewed permission {p.code}",
            ),
            lambda: self._permissions.get_permission_by_code(code),
        )

    def permissions_of_role(self, context: PrincipalContext, role_id: int) -> List[Permission]:
        return self._guard.enforce(
            context,
            PermissionCode.PERMISSION_LIST,
            AuditDescriptor(
                AuditAction.LIST_PERMISSIONS,
                target=str(role_id),
                describe=_count("permissions granted"),
            ),
            lambda: self._permissions.permissions_of_role(role_id),
        )


class GuardedAuditService:
    """Audit trail analysis behind ``AUDIT:ANALYZE``."""

    def __init__(self, guard: AuthorizationGuard, analyzer: AuditAnomalyAnalyzer):
        self._guard = guard
        self._analyzer = analyzer

    def analyze(self, context: PrincipalContext) -> List[str]:
        return self._guard.enforce(
            context,
            PermissionCode.AUDIT_ANALYZE,
            AuditDescriptor(
                AuditAction.ANALYZE_AUDIT,
                target=str(self._analyzer.path),
                describe=_count("warnings reported"),
            ),
            self._analyzer.analyze,
        )
