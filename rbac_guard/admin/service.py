"""
Admin Service

Business logic for principal, role and permission management. These services
perform no access control; callers reach them through the guarded facades in
``rbac_guard.access.guarded``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from rbac_guard.admin.schemas import (
    DEFAULT_PASSWORD_MIN_LENGTH,
    CreatePermissionRequest,
    CreateRoleRequest,
    CreateUserRequest,
)
from rbac_guard.auth.passwords import DEFAULT_ROUNDS, hash_password
from rbac_guard.db.models import Permission, Principal, PrincipalStatus, Role
from rbac_guard.directory import Directory
from rbac_guard.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate_request(
    model: Type[M],
    data: Dict[str, Any],
    context: Optional[Dict[str, Any]] = None,
) -> M:
    """
    Validate input against a request schema.

    Raises:
        ValidationError: With the validator messages joined
    """
    try:
        return model.model_validate(data, context=context)
    except PydanticValidationError as e:
        messages = [err["msg"].removeprefix("Value error, ") for err in e.errors()]
        raise ValidationError("; ".join(messages), details={"errors": messages}) from e


def _require_principal(directory: Directory, principal_id: int) -> Principal:
    principal = directory.find_principal_by_id(principal_id)
    if principal is None:
        raise NotFoundError(f"user not found: {principal_id}")
    return principal


def _require_role(directory: Directory, role_id: int) -> Role:
    role = directory.find_role_by_id(role_id)
    if role is None:
        raise NotFoundError(f"role not found: {role_id}")
    return role


def _require_permission(directory: Directory, permission_id: int) -> Permission:
    permission = directory.find_permission_by_id(permission_id)
    if permission is None:
        raise NotFoundError(f"permission not found: {permission_id}")
    return permission


class UserService:
    """Service for principal management."""

    def __init__(
        self,
        directory: Directory,
        password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ):
        self._directory = directory
        self._password_min_length = password_min_length
        self._bcrypt_rounds = bcrypt_rounds

    def create_user(self, username: str, password: str) -> Principal:
        """
        Create an active user.

        Raises:
            ValidationError: Blank/invalid username or weak password
            ConflictError: Username already taken
        """
        request = validate_request(
            CreateUserRequest,
            {"username": username, "password": password},
            context={"password_min_length": self._password_min_length},
        )

        if self._directory.principal_exists(request.username):
            raise ConflictError(f"username already exists: {request.username}")

        principal = self._directory.insert_principal(
            request.username,
            hash_password(request.password, rounds=self._bcrypt_rounds),
        )
        logger.info("Created user %s (id=%s)", principal.username, principal.id)
        return principal

    def delete_user(self, principal_id: int) -> Principal:
        """Delete a user and its role assignments. Returns the deleted user."""
        principal = _require_principal(self._directory, principal_id)
        if not self._directory.delete_principal(principal_id):
            raise NotFoundError(f"user not found: {principal_id}")
        return principal

    def freeze_user(self, principal_id: int) -> Principal:
        principal = _require_principal(self._directory, principal_id)
        if principal.is_frozen:
            raise ConflictError(f"user is already frozen: {principal.username}")
        self._directory.update_status(principal_id, PrincipalStatus.FROZEN)
        return _require_principal(self._directory, principal_id)

    def unfreeze_user(self, principal_id: int) -> Principal:
        principal = _require_principal(self._directory, principal_id)
        if principal.is_active:
            raise ConflictError(f"user is already active: {principal.username}")
        self._directory.update_status(principal_id, PrincipalStatus.ACTIVE)
        return _require_principal(self._directory, principal_id)

    def list_users(self) -> List[Principal]:
        return self._directory.list_principals()

    def get_user(self, principal_id: int) -> Principal:
        return _require_principal(self._directory, principal_id)

    def get_user_by_name(self, username: str) -> Principal:
        principal = self._directory.find_principal_by_name(username)
        if principal is None:
            raise NotFoundError(f"user not found: {username}")
        return principal


class RoleService:
    """Service for roles and principal-role assignment."""

    def __init__(self, directory: Directory):
        self._directory = directory

    # ==================== Roles ====================

    def create_role(self, code: str, name: str, description: Optional[str] = None) -> Role:
        """
        Create a role.

        Raises:
            ValidationError: Blank code or name
            ConflictError: Role code already exists
        """
        request = validate_request(
            CreateRoleRequest,
            {"code": code, "name": name, "description": description},
        )
        if self._directory.role_code_exists(request.code):
            raise ConflictError(f"role code already exists: {request.code}")
        return self._directory.insert_role(request.code, request.name, request.description)

    def delete_role(self, role_id: int) -> Role:
        """Delete a role, its assignments and its grants. Returns the deleted role."""
        role = _require_role(self._directory, role_id)
        if not self._directory.delete_role(role_id):
            raise NotFoundError(f"role not found: {role_id}")
        return role

    def list_roles(self) -> List[Role]:
        return self._directory.list_roles()

    def get_role(self, role_id: int) -> Role:
        return _require_role(self._directory, role_id)

    def get_role_by_code(self, code: str) -> Role:
        role = self._directory.find_role_by_code(code)
        if role is None:
            raise NotFoundError(f"role not found: {code}")
        return role

    # ==================== Assignment ====================

    def assign_role(self, principal_id: int, role_id: int) -> Tuple[Principal, Role]:
        """
        Assign a role to a user.

        Raises:
            NotFoundError: Unknown user or role
            ConflictError: User already holds the role
        """
        principal = _require_principal(self._directory, principal_id)
        role = _require_role(self._directory, role_id)
        if self._directory.principal_has_role(principal_id, role_id):
            raise ConflictError(f"user {principal.username} already holds role {role.code}")
        self._directory.assign_role(principal_id, role_id)
        return principal, role

    def revoke_role(self, principal_id: int, role_id: int) -> Tuple[Principal, Role]:
        """
        Remove a role from a user.

        Raises:
            NotFoundError: Unknown user or role
            ConflictError: User does not hold the role
        """
        principal = _require_principal(self._directory, principal_id)
        role = _require_role(self._directory, role_id)
        if not self._directory.principal_has_role(principal_id, role_id):
            raise ConflictError(f"user {principal.username} does not hold role {role.code}")
        self._directory.revoke_role(principal_id, role_id)
        return principal, role

    def roles_of(self, principal_id: int) -> List[Role]:
        _require_principal(self._directory, principal_id)
        return self._directory.find_roles_for_principal(principal_id)


class PermissionService:
    """Service for permissions and role-permission grants."""

    def __init__(self, directory: Directory):
        self._directory = directory

    # ==================== Permissions ====================

    def create_permission(self, code: str, description: Optional[str] = None) -> Permission:
        """
        Create a permission.

        Raises:
            ValidationError: Code not of the form RESOURCE:ACTION
            ConflictError: Permission code already exists
        """
        request = validate_request(
            CreatePermissionRequest,
            {"code": code, "description": description},
        )
        if self._directory.permission_code_exists(request.code):
            raise ConflictError(f"permission code already exists: {request.code}")
        return self._directory.insert_permission(request.code, request.description)

    def delete_permission(self, permission_id: int) -> Permission:
        """Delete a permission and every grant of it. Returns the deleted permission."""
        permission = _require_permission(self._directory, permission_id)
        if not self._directory.delete_permission(permission_id):
            raise NotFoundError(f"permission not found: {permission_id}")
        return permission

    def list_permissions(self) -> List[Permission]:
        return self._directory.list_permissions()

    def get_permission(self, permission_id: int) -> Permission:
        return _require_permission(self._directory, permission_id)

    def get_permission_by_code(self, code: str) -> Permission:
        permission = self._directory.find_permission_by_code(code)
        if permission is None:
            raise NotFoundError(f"permission not found: {code}")
        return permission

    # ==================== Grants ====================

    def grant_to_role(self, role_id: int, permission_id: int) -> Tuple[Role, Permission]:
        """
        Grant a permission to a role.

        Raises:
            NotFoundError: Unknown role or permission
            ConflictError: Role already has the permission
        """
        role = _require_role(self._directory, role_id)
        permission = _require_permission(self._directory, permission_id)
        if self._directory.role_has_permission(role_id, permission_id):
            raise ConflictError(f"role {role.code} already has permission {permission.code}")
        self._directory.grant_permission(role_id, permission_id)
        return role, permission

    def revoke_from_role(self, role_id: int, permission_id: int) -> Tuple[Role, Permission]:
        """
        Revoke a permission from a role.

        Raises:
            NotFoundError: Unknown role or permission
            ConflictError: Role does not have the permission
        """
        role = _require_role(self._directory, role_id)
        permission = _require_permission(self._directory, permission_id)
        if not self._directory.role_has_permission(role_id, permission_id):
            raise ConflictError(f"role {role.code} does not have permission {permission.code}")
        self._directory.revoke_permission(role_id, permission_id)
        return role, permission

    def permissions_of_role(self, role_id: int) -> List[Permission]:
        _require_role(self._directory, role_id)
        return self._directory.find_permissions_for_role(role_id)
