"""
RBAC Guard - Application Wiring

Builds the object graph from Settings:

    Directory -> PermissionResolver -> AuthorizationGuard -> guarded services
    AuditSink is shared by the guard and the AuthService.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from rbac_guard.access.analyzer import AuditAnomalyAnalyzer
from rbac_guard.access.audit import AuditSink
from rbac_guard.access.guard import AuthorizationGuard
from rbac_guard.access.guarded import (
    GuardedAuditService,
    GuardedPermissionService,
    GuardedRoleService,
    GuardedUserService,
)
from rbac_guard.access.resolver import PermissionResolver
from rbac_guard.admin.service import PermissionService, RoleService, UserService
from rbac_guard.auth.service import AuthService
from rbac_guard.config import Settings, get_settings
from rbac_guard.db.session import create_db_engine, create_session_factory, init_db
from rbac_guard.directory import Directory

logger = logging.getLogger(__name__)


@dataclass
class RbacApp:
    """Wired components of one running application."""

    settings: Settings
    engine: Engine
    directory: Directory
    resolver: PermissionResolver
    audit: AuditSink
    guard: AuthorizationGuard
    auth: AuthService
    users: GuardedUserService
    roles: GuardedRoleService
    permissions: GuardedPermissionService
    audit_analysis: GuardedAuditService

    def close(self) -> None:
        self.engine.dispose()


def create_app(settings: Optional[Settings] = None, create_tables: bool = True) -> RbacApp:
    """
    Create and wire the application.

    Args:
        settings: Settings to use (default: ``get_settings()``)
        create_tables: Create missing tables before returning
    """
    settings = settings or get_settings()

    engine = create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    if create_tables:
        init_db(engine)

    directory = Directory(create_session_factory(engine))
    resolver = PermissionResolver(directory)
    audit = AuditSink(settings.AUDIT_LOG_PATH)
    guard = AuthorizationGuard(resolver, audit)

    app = RbacApp(
        settings=settings,
        engine=engine,
        directory=directory,
        resolver=resolver,
        audit=audit,
        guard=guard,
        auth=AuthService(directory, resolver, audit, bcrypt_rounds=settings.BCRYPT_ROUNDS),
        users=GuardedUserService(
            guard,
            UserService(
                directory,
                password_min_length=settings.PASSWORD_MIN_LENGTH,
                bcrypt_rounds=settings.BCRYPT_ROUNDS,
            ),
        ),
        roles=GuardedRoleService(guard, RoleService(directory)),
        permissions=GuardedPermissionService(guard, PermissionService(directory)),
        audit_analysis=GuardedAuditService(guard, AuditAnomalyAnalyzer.from_settings(settings)),
    )
    logger.debug("%s wired (database=%s)", settings.APP_NAME, settings.DATABASE_URL)
    return app
