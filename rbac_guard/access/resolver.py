"""
RBAC Guard - Permission Resolution

Computes a principal's effective permissions as the flat union of the
permission sets of every role assigned to it. There is no role hierarchy:
the union is taken over directly assigned roles only.
"""

import logging
from typing import Dict, FrozenSet, List

from rbac_guard.db.models import Permission
from rbac_guard.directory import Directory

logger = logging.getLogger(__name__)


class PermissionResolver:
    """
    Resolve effective permission codes from role membership.

    Results are recomputed on every call; revoking a role or a grant takes
    effect on the very next check.
    """

    def __init__(self, directory: Directory):
        self._directory = directory

    def resolve_permissions(self, principal_id: int) -> List[Permission]:
        """
        Get the effective permissions of a principal, deduplicated by code.

        Args:
            principal_id: Principal identifier

        Returns:
            Permissions sorted by code. Empty for a principal without roles
            and for an unknown principal id.
        """
        by_code: Dict[str, Permission] = {}
        for role in self._directory.find_roles_for_principal(principal_id):
            for permission in self._directory.find_permissions_for_role(role.id):
                by_code.setdefault(permission.code, permission)
        return [by_code[code] for code in sorted(by_code)]

    def resolve(self, principal_id: int) -> FrozenSet[str]:
        """Get the effective permission codes of a principal."""
        codes = frozenset(p.code for p in self.resolve_permissions(principal_id))
        logger.debug("Principal %s resolves to %d permission(s)", principal_id, len(codes))
        return codes

    def has_permission(self, principal_id: int, code: str) -> bool:
        """Check if a principal holds a specific permission code."""
        return code in self.resolve(principal_id)
