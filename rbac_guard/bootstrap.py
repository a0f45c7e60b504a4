"""
RBAC Guard - Bootstrap

Seed data created outside the guard: the system permission codes, the
``ADMIN`` and ``GUEST`` roles and the ``admin`` principal. Without this
step no principal could ever hold ``USER:CREATE`` in the first place.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from rbac_guard.access.codes import (
    ADMIN_ROLE_CODE,
    ADMIN_USERNAME,
    GUEST_ROLE_CODE,
    PERMISSION_DESCRIPTIONS,
    ROLE_PERMISSIONS,
    PermissionCode,
)
from rbac_guard.auth.passwords import DEFAULT_ROUNDS, hash_password
from rbac_guard.db.models import PrincipalStatus
from rbac_guard.directory import Directory

logger = logging.getLogger(__name__)


SEED_ROLES = {
    ADMIN_ROLE_CODE: ("Administrator", "Full access to every operation"),
    GUEST_ROLE_CODE: ("Guest", "Read-only access"),
}


@dataclass
class SeedReport:
    """Rows created by one seeding run."""

    permissions_created: int = 0
    roles_created: int = 0
    grants_created: int = 0
    admin_created: bool = False


@dataclass
class ResetReport:
    """Rows removed by one reset run."""

    principals_deleted: int = 0
    roles_deleted: int = 0
    permissions_deleted: int = 0
    audit_log_deleted: bool = False


def seed_defaults(
    directory: Directory,
    admin_password: str,
    rounds: int = DEFAULT_ROUNDS,
) -> SeedReport:
    """
    Create the seed data. Existing rows are left alone, so running this
    repeatedly is safe.

    Args:
        directory: Target directory
        admin_password: Password for a newly created ``admin`` principal
        rounds: bcrypt cost factor

    Returns:
        What was created
    """
    report = SeedReport()

    permission_ids = {}
    for code in PermissionCode:
        permission = directory.find_permission_by_code(code.value)
        if permission is None:
            permission = directory.insert_permission(code.value, PERMISSION_DESCRIPTIONS[code])
            report.permissions_created += 1
        permission_ids[code] = permission.id

    role_ids = {}
    for role_code, (name, description) in SEED_ROLES.items():
        role = directory.find_role_by_code(role_code)
        if role is None:
            role = directory.insert_role(role_code, name, description)
            report.roles_created += 1
        role_ids[role_code] = role.id

    for role_code, codes in ROLE_PERMISSIONS.items():
        role_id = role_ids[role_code]
        for code in sorted(codes, key=lambda c: c.value):
            if not directory.role_has_permission(role_id, permission_ids[code]):
                directory.grant_permission(role_id, permission_ids[code])
                report.grants_created += 1

    admin = directory.find_principal_by_name(ADMIN_USERNAME)
    if admin is None:
        admin = directory.insert_principal(ADMIN_USERNAME, hash_password(admin_password, rounds))
        report.admin_created = True
    if not directory.principal_has_role(admin.id, role_ids[ADMIN_ROLE_CODE]):
        directory.assign_role(admin.id, role_ids[ADMIN_ROLE_CODE])

    logger.info(
        "Seeded %d permission(s), %d role(s), %d grant(s)%s",
        report.permissions_created,
        report.roles_created,
        report.grants_created,
        ", admin user" if report.admin_created else "",
    )
    return report


def reset(
    directory: Directory,
    audit_log_path: Union[str, Path],
    admin_password: str,
    rounds: int = DEFAULT_ROUNDS,
) -> ResetReport:
    """
    Return the directory to its seed state.

    Keeps ``admin``, the seed roles and the system permission codes; deletes
    everything else together with all assignment and grant rows, re-activates
    ``admin`` with ``admin_password``, deletes the audit log and reseeds.
    """
    report = ResetReport()
    system_codes = {code.value for code in PermissionCode}

    directory.clear_associations()

    for principal in directory.list_principals():
        if principal.username != ADMIN_USERNAME:
            directory.delete_principal(principal.id)
            report.principals_deleted += 1

    for role in directory.list_roles():
        if role.code not in SEED_ROLES:
            directory.delete_role(role.id)
            report.roles_deleted += 1

    for permission in directory.list_permissions():
        if permission.code not in system_codes:
            directory.delete_permission(permission.id)
            report.permissions_deleted += 1

    admin = directory.find_principal_by_name(ADMIN_USERNAME)
    if admin is not None:
        directory.update_status(admin.id, PrincipalStatus.ACTIVE)
        directory.update_password_hash(admin.id, hash_password(admin_password, rounds))

    log_path = Path(audit_log_path)
    if log_path.exists():
        log_path.unlink()
        report.audit_log_deleted = True

    seed_defaults(directory, admin_password, rounds)

    logger.warning(
        "Reset removed %d user(s), %d role(s), %d permission(s)",
        report.principals_deleted,
        report.roles_deleted,
        report.permissions_deleted,
    )
    return report
