"""
Directory

Lookup and mutation primitives over principals, roles, permissions and
their associations. Every call runs in its own transaction, so a Directory
may be shared between concurrent sessions.

Backend failures surface as:
    - ConflictError: integrity violation (duplicate code, duplicate row)
    - PersistenceError: any other SQLAlchemy failure
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rbac_guard.db.models import (
    Permission,
    Principal,
    PrincipalStatus,
    Role,
    principal_roles,
    role_permissions,
)
from rbac_guard.db.session import session_scope
from rbac_guard.exceptions import ConflictError, PersistenceError

logger = logging.getLogger(__name__)


class Directory:
    """Persistence collaborator backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except IntegrityError as e:
            logger.warning("Integrity violation: %s", e.orig)
            raise ConflictError(
                "Integrity constraint violated",
                details={"reason": str(e.orig)},
            ) from e
        except SQLAlchemyError as e:
            logger.error("Directory operation failed", exc_info=True)
            raise PersistenceError("Directory operation failed") from e

    # ==================== Principals ====================

    def find_principal_by_id(self, principal_id: int) -> Optional[Principal]:
        with self._transaction() as session:
            return session.get(Principal, principal_id)

    def find_principal_by_name(self, username: str) -> Optional[Principal]:
        with self._transaction() as session:
            return session.scalar(
                select(Principal).where(Principal.username == username)
            )

    def list_principals(self) -> List[Principal]:
        with self._transaction() as session:
            return list(session.scalars(select(Principal).order_by(Principal.id)))

    def principal_exists(self, username: str) -> bool:
        with self._transaction() as session:
            count = session.scalar(
                select(func.count(Principal.id)).where(Principal.username == username)
            )
            return bool(count)

    def insert_principal(
        self,
        username: str,
        password_hash: str,
        status: PrincipalStatus = PrincipalStatus.ACTIVE,
    ) -> Principal:
        with self._transaction() as session:
            principal = Principal(
                username=username,
                password_hash=password_hash,
                status=status.value,
            )
            session.add(principal)
            session.flush()
            return principal

    def delete_principal(self, principal_id: int) -> bool:
        """Delete a principal and its role assignments."""
        with self._transaction() as session:
            principal = session.get(Principal, principal_id)
            if principal is None:
                return False
            session.delete(principal)
            return True

    def update_status(self, principal_id: int, status: PrincipalStatus) -> bool:
        with self._transaction() as session:
            result = session.execute(
                update(Principal)
                .where(Principal.id == principal_id)
                .values(status=status.value)
            )
            return result.rowcount > 0

    # ==================== Roles ====================

    def find_role_by_id(self, role_id: int) -> Optional[Role]:
        with self._transaction() as session:
            return session.get(Role, role_id)

    def find_role_by_code(self, code: str) -> Optional[Role]:
        with self._transaction() as session:
            return session.scalar(select(Role).where(Role.code == code))

    def list_roles(self) -> List[Role]:
        with self._transaction() as session:
            return list(session.scalars(select(Role).order_by(Role.id)))

    def role_code_exists(self, code: str) -> bool:
        with self._transaction() as session:
            count = session.scalar(select(func.count(Role.id)).where(Role.code == code))
            return bool(count)

    def insert_role(self, code: str, name: str, description: Optional[str] = None) -> Role:
        with self._transaction() as session:
            role = Role(code=code, name=name, description=description)
            session.add(role)
            session.flush()
            return role

    def delete_role(self, role_id: int) -> bool:
        """Delete a role together with its assignment and grant rows."""
        with self._transaction() as session:
            role = session.get(Role, role_id)
            if role is None:
                return False
            session.delete(role)
            return True

    # ==================== Permissions ====================

    def find_permission_by_id(self, permission_id: int) -> Optional[Permission]:
        with self._transaction() as session:
            return session.get(Permission, permission_id)

    def find_permission_by_code(self, code: str) -> Optional[Permission]:
        with self._transaction() as session:
            return session.scalar(select(Permission).where(Permission.code == code))

    def list_permissions(self) -> List[Permission]:
        with self._transaction() as session:
            return list(session.scalars(select(Permission).order_by(Permission.id)))

    def permission_code_exists(self, code: str) -> bool:
        with self._transaction() as session:
            count = session.scalar(
                select(func.count(Permission.id)).where(Permission.code == code)
            )
            return bool(count)

    def insert_permission(self, code: str, description: Optional[str] = None) -> Permission:
        with self._transaction() as session:
            permission = Permission(code=code, description=description)
            session.add(permission)
            session.flush()
            return permission

    def delete_permission(self, permission_id: int) -> bool:
        """Delete a permission and every grant of it."""
        with self._transaction() as session:
            permission = session.get(Permission, permission_id)
            if permission is None:
                return False
            session.delete(permission)
            return True

    # ==================== Principal <-> Role ====================

    def find_roles_for_principal(self, principal_id: int) -> List[Role]:
        with self._transaction() as session:
            return list(
                session.scalars(
                    select(Role)
                    .join(principal_roles, Role.id == principal_roles.c.role_id)
                    .where(principal_roles.c.principal_id == principal_id)
                    .order_by(Role.id)
                )
            )

    def principal_has_role(self, principal_id: int, role_id: int) -> bool:
        with self._transaction() as session:
            count = session.scalar(
                select(func.count())
                .select_from(principal_roles)
                .where(
                    principal_roles.c.principal_id == principal_id,
                    principal_roles.c.role_id == role_id,
                )
            )
            return bool(count)

    def assign_role(self, principal_id: int, role_id: int) -> None:
        with self._transaction() as session:
            session.execute(
                insert(principal_roles).values(principal_id=principal_id, role_id=role_id)
            )

    def revoke_role(self, principal_id: int, role_id: int) -> bool:
        with self._transaction() as session:
            result = session.execute(
                delete(principal_roles).where(
                    principal_roles.c.principal_id == principal_id,
                    principal_roles.c.role_id == role_id,
                )
            )
            return result.rowcount > 0

    # ==================== Role <-> Permission ====================

    def find_permissions_for_role(self, role_id: int) -> List[Permission]:
        with self._transaction() as session:
            return list(
                session.scalars(
                    select(Permission)
                    .join(role_permissions, Permission.id == role_permissions.c.permission_id)
                    .where(role_permissions.c.role_id == role_id)
                    .order_by(Permission.id)
                )
            )

    def role_has_permission(self, role_id: int, permission_id: int) -> bool:
        with self._transaction() as session:
            count = session.scalar(
                select(func.count())
                .select_from(role_permissions)
                .where(
                    role_permissions.c.role_id == role_id,
                    role_permissions.c.permission_id == permission_id,
                )
            )
            return bool(count)

    def grant_permission(self, role_id: int, permission_id: int) -> None:
        with self._transaction() as session:
            session.execute(
                insert(role_permissions).values(role_id=role_id, permission_id=permission_id)
            )

    def revoke_permission(self, role_id: int, permission_id: int) -> bool:
        with self._transaction() as session:
            result = session.execute(
                delete(role_permissions).where(
                    role_permissions.c.role_id == role_id,
                    role_permissions.c.permission_id == permission_id,
                )
            )
            return result.rowcount > 0

    # ==================== Maintenance ====================

    def update_password_hash(self, principal_id: int, password_hash: str) -> bool:
        with self._transaction() as session:
            result = session.execute(
                update(Principal)
                .where(Principal.id == principal_id)
                .values(password_hash=password_hash)
            )
            return result.rowcount > 0

    def clear_associations(self) -> None:
        """Remove every role assignment and every permission grant."""
        with self._transaction() as session:
            session.execute(delete(principal_roles))
            session.execute(delete(role_permissions))
