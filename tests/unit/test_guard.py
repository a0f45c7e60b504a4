"""
Tests for the Authorization Guard
=================================

Check-then-act ordering and the one-event-per-call audit contract.
"""

from unittest.mock import MagicMock

import pytest

from rbac_guard.access.audit import AuditOutcome, AuditSeverity, AuditSink
from rbac_guard.access.codes import AuditAction, PermissionCode
from rbac_guard.access.context import SYSTEM_ACTOR, AuthenticatedPrincipal, PrincipalContext
from rbac_guard.access.guard import AuditDescriptor, AuthorizationGuard
from rbac_guard.access.resolver import PermissionResolver
from rbac_guard.exceptions import (
    ConflictError,
    PermissionDeniedError,
    PersistenceError,
    UnauthenticatedError,
)


@pytest.fixture
def resolver():
    """Resolver granting USER:LIST and USER:CREATE."""
    mock = MagicMock(spec=PermissionResolver)
    mock.resolve.return_value = frozenset({"USER:LIST", "USER:CREATE"})
    return mock


@pytest.fixture
def guard(resolver, sink):
    return AuthorizationGuard(resolver, sink)


@pytest.fixture
def alice_ctx():
    context = PrincipalContext()
    context.bind(AuthenticatedPrincipal(id=1, username="alice"))
    return context


CREATE = AuditDescriptor(AuditAction.CREATE_USER, target="bob", critical=True, message="created user bob")


class TestAuthenticationCheck:
    """Step 1: no principal bound."""

    def test_rejects_and_skips_operation(self, guard, events):
        """The operation never runs and one FAIL event names SYSTEM."""
        operation = MagicMock()

        with pytest.raises(UnauthenticatedError):
            guard.enforce(PrincipalContext(), PermissionCode.USER_CREATE, CREATE, operation)

        operation.assert_not_called()
        recorded = events()
        assert len(recorded) == 1
        assert recorded[0].severity is AuditSeverity.FAIL
        assert recorded[0].actor == SYSTEM_ACTOR
        assert recorded[0].action == "PERMISSION_CHECK"
        assert recorded[0].target == "USER:CREATE"

    def test_resolver_not_consulted(self, guard, resolver):
        """Authentication is checked before permissions."""
        with pytest.raises(UnauthenticatedError):
            guard.check(PrincipalContext(), "USER:LIST")
        resolver.resolve.assert_not_called()


class TestPermissionCheck:
    """Step 2: principal lacks the code."""

    def test_denies_and_skips_operation(self, guard, alice_ctx, events):
        """Missing code raises PermissionDeniedError with one FAIL event."""
        operation = MagicMock()

        with pytest.raises(PermissionDeniedError) as exc_info:
            guard.enforce(alice_ctx, PermissionCode.USER_DELETE, CREATE, operation)

        operation.assert_not_called()
        assert exc_info.value.required_code == "USER:DELETE"
        recorded = events()
        assert len(recorded) == 1
        assert recorded[0].actor == "alice"
        assert recorded[0].outcome is AuditOutcome.FAIL
        assert "USER:DELETE" in recorded[0].message

    def test_resolver_failure_fails_closed(self, guard, resolver, alice_ctx, events):
        """A backend error during the check blocks the operation."""
        resolver.resolve.side_effect = PersistenceError("Directory operation failed")
        operation = MagicMock()

        with pytest.raises(PersistenceError):
            guard.enforce(alice_ctx, "USER:LIST", CREATE, operation)

        operation.assert_not_called()
        assert [e.severity for e in events()] == [AuditSeverity.FAIL]

    def test_check_returns_principal(self, guard, alice_ctx, events):
        """check() alone records nothing on success."""
        assert guard.check(alice_ctx, "USER:LIST").username == "alice"
        assert events() == []


class TestInvocation:
    """Steps 3-5: the operation runs."""

    def test_critical_success(self, guard, alice_ctx, events):
        """Roster mutations record one CRITICAL event and return the result."""
        result = guard.enforce(alice_ctx, PermissionCode.USER_CREATE, CREATE, lambda: "bob-created")

        assert result == "bob-created"
        recorded = events()
        assert len(recorded) == 1
        assert recorded[0].severity is AuditSeverity.CRITICAL
        assert recorded[0].outcome is AuditOutcome.SUCCESS
        assert recorded[0].action == "CREATE_USER"
        assert recorded[0].message == "created user bob"

    def test_plain_success(self, guard, alice_ctx, events):
        """Non-critical operations record one SUCCESS event."""
        descriptor = AuditDescriptor(AuditAction.LIST_USERS, describe=lambda r: f"{len(r)} users listed")

        guard.enforce(alice_ctx, PermissionCode.USER_LIST, descriptor, lambda: [1, 2, 3])

        recorded = events()
        assert len(recorded) == 1
        assert recorded[0].severity is AuditSeverity.SUCCESS
        assert recorded[0].message == "3 users listed"

    def test_default_success_message(self, guard, alice_ctx, events):
        """Without a message the action name is used."""
        guard.enforce(alice_ctx, "USER:LIST", AuditDescriptor(AuditAction.LIST_USERS), lambda: None)
        assert events()[0].message == "LIST_USERS succeeded"

    def test_failure_reraised_unchanged(self, guard, alice_ctx, events):
        """The operation's error propagates as-is with one FAIL event."""
        error = ConflictError("username already exists: bob")

        def operation():
            raise error

        with pytest.raises(ConflictError) as exc_info:
            guard.enforce(alice_ctx, PermissionCode.USER_CREATE, CREATE, operation)

        assert exc_info.value is error
        recorded = events()
        assert len(recorded) == 1
        assert recorded[0].severity is AuditSeverity.FAIL
        assert recorded[0].action == "CREATE_USER"
        assert recorded[0].message == "CREATE_USER failed: username already exists: bob"

    def test_audit_write_failure_does_not_break_operation(self, resolver, alice_ctx, tmp_path):
        """A broken audit stream never fails the guarded call."""
        guard = AuthorizationGuard(resolver, AuditSink(tmp_path))

        assert guard.enforce(alice_ctx, "USER:CREATE", CREATE, lambda: 42) == 42

    def test_each_call_rechecks(self, guard, resolver, alice_ctx):
        """Permissions are resolved on every call."""
        guard.enforce(alice_ctx, "USER:LIST", CREATE, lambda: None)
        resolver.resolve.return_value = frozenset()

        with pytest.raises(PermissionDeniedError):
            guard.enforce(alice_ctx, "USER:LIST", CREATE, lambda: None)
        assert resolver.resolve.call_count == 2
