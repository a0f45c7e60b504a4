"""
RBAC Guard - Access Control Core

Permission resolution, session context, the enforcement guard, the audit
trail and its anomaly analyzer. The guarded service facades live in
``rbac_guard.access.guarded``.
"""

from rbac_guard.access.analyzer import AuditAnomalyAnalyzer, LoginAnomaly
from rbac_guard.access.audit import (
    AuditEvent,
    AuditOutcome,
    AuditSeverity,
    AuditSink,
    format_event,
    parse_line,
)
from rbac_guard.access.codes import AuditAction, PermissionCode
from rbac_guard.access.context import SYSTEM_ACTOR, AuthenticatedPrincipal, PrincipalContext
from rbac_guard.access.guard import AuditDescriptor, AuthorizationGuard
from rbac_guard.access.resolver import PermissionResolver

__all__ = [
    "AuditAnomalyAnalyzer",
    "LoginAnomaly",
    "AuditEvent",
    "AuditOutcome",
    "AuditSeverity",
    "AuditSink",
    "format_event",
    "parse_line",
    "AuditAction",
    "PermissionCode",
    "SYSTEM_ACTOR",
    "AuthenticatedPrincipal",
    "PrincipalContext",
    "AuditDescriptor",
    "AuthorizationGuard",
    "PermissionResolver",
]
