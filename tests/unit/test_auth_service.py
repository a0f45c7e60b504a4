"""
Tests for the Authentication Service
====================================

Login/logout state machine and its audit events.
"""

import pytest

from rbac_guard.access.audit import AuditSeverity
from rbac_guard.access.context import PrincipalContext
from rbac_guard.db.models import PrincipalStatus
from rbac_guard.exceptions import AuthenticationError, UnauthenticatedError


@pytest.fixture
def ctx():
    return PrincipalContext()


class TestLogin:
    """Tests for login()."""

    def test_success_binds_principal(self, app, ctx, make_user, events):
        """Correct credentials bind the principal and record SUCCESS/LOGIN."""
        make_user(app.directory, "alice", "secret123")

        principal = app.auth.login(ctx, "alice", "secret123")

        assert ctx.principal == principal
        assert principal.username == "alice"
        last = events()[-1]
        assert (last.severity, last.actor, last.action) == (AuditSeverity.SUCCESS, "alice", "LOGIN")

    def test_wrong_password(self, app, ctx, make_user, events):
        """A wrong password reports invalid credentials."""
        make_user(app.directory, "alice", "secret123")

        with pytest.raises(AuthenticationError, match="invalid credentials"):
            app.auth.login(ctx, "alice", "wrong9999")

        assert not ctx.is_authenticated
        last = events()[-1]
        assert (last.severity, last.actor, last.action) == (AuditSeverity.FAIL, "alice", "LOGIN")
        assert last.message == "login failed: wrong password"

    def test_unknown_user_same_message(self, app, ctx, events):
        """Unknown users get the same message as a wrong password."""
        with pytest.raises(AuthenticationError) as exc_info:
            app.auth.login(ctx, "ghost", "secret123")

        assert exc_info.value.message == "invalid credentials"
        assert events()[-1].actor == "ghost"

    @pytest.mark.parametrize(
        "username, password, expected",
        [
            ("", "secret123", "username is required"),
            ("   ", "secret123", "username is required"),
            ("alice", "", "password is required"),
        ],
    )
    def test_blank_input(self, app, ctx, events, username, password, expected):
        """Blank credentials are rejected with one FAIL event."""
        before = len(events())

        with pytest.raises(AuthenticationError, match=expected):
            app.auth.login(ctx, username, password)

        recorded = events(before)
        assert len(recorded) == 1
        assert recorded[0].severity is AuditSeverity.FAIL

    def test_frozen_account(self, app, ctx, make_user, events):
        """A frozen principal cannot log in even with the right password."""
        make_user(app.directory, "frosty", "secret123", status=PrincipalStatus.FROZEN)

        with pytest.raises(AuthenticationError, match="account is frozen"):
            app.auth.login(ctx, "frosty", "secret123")

        assert not ctx.is_authenticated
        assert events()[-1].message == "login failed: account is frozen"

    def test_frozen_account_wrong_password(self, app, ctx, make_user):
        """Frozen status is only revealed after the password is verified."""
        make_user(app.directory, "frosty", "secret123", status=PrincipalStatus.FROZEN)

        with pytest.raises(AuthenticationError, match="invalid credentials"):
            app.auth.login(ctx, "frosty", "nottheone1")

    def test_unfrozen_account_can_log_in(self, app, ctx, make_user):
        """Unfreezing restores login."""
        user = make_user(app.directory, "frosty", "secret123", status=PrincipalStatus.FROZEN)
        app.directory.update_status(user.id, PrincipalStatus.ACTIVE)

        assert app.auth.login(ctx, "frosty", "secret123").id == user.id

    def test_relogin_logs_out_first(self, app, ctx, make_user, events):
        """Logging in again replaces the bound principal."""
        make_user(app.directory, "alice", "secret123")
        make_user(app.directory, "bob", "secret456")
        app.auth.login(ctx, "alice", "secret123")
        before = len(events())

        app.auth.login(ctx, "bob", "secret456")

        assert ctx.principal.username == "bob"
        assert [(e.actor, e.action) for e in events(before)] == [("alice", "LOGOUT"), ("bob", "LOGIN")]


    def test_failed_relogin_keeps_session(self, app, admin_ctx, events):
        """A rejected login leaves the bound principal and records no LOGOUT."""
        bound = admin_ctx.principal
        before = len(events())

        with pytest.raises(AuthenticationError, match="invalid credentials"):
            app.auth.login(admin_ctx, "admin", "wrong-password1")

        assert admin_ctx.principal == bound
        assert [(e.action, e.severity) for e in events(before)] == [("LOGIN", AuditSeverity.FAIL)]
        assert app.users.list_users(admin_ctx)

    def test_unknown_user_still_verifies_a_hash(self, app, ctx, monkeypatch):
        """Unknown usernames do the same bcrypt check as a wrong password."""
        checked = []

        def fake_verify(password, password_hash):
            checked.append((password, password_hash))
            return False

        monkeypatch.setattr("rbac_guard.auth.service.verify_password", fake_verify)

        with pytest.raises(AuthenticationError, match="invalid credentials"):
            app.auth.login(ctx, "ghost", "secret123")

        assert len(checked) == 1
        assert checked[0][0] == "secret123"
        assert checked[0][1].startswith("$2")


class TestLogout:
    """Tests for logout() and session teardown."""

    def test_logout_clears_context(self, app, admin_ctx, events):
        """Logout unbinds and records SUCCESS/LOGOUT."""
        app.auth.logout(admin_ctx)

        assert not admin_ctx.is_authenticated
        last = events()[-1]
        assert (last.severity, last.action) == (AuditSeverity.SUCCESS, "LOGOUT")

    def test_logout_when_not_logged_in(self, app, ctx, events):
        """Logging out an empty context records nothing."""
        before = len(events())
        app.auth.logout(ctx)
        assert events(before) == []

    def test_context_manager_tears_down(self, app):
        """Leaving the with block unbinds the principal."""
        with PrincipalContext() as context:
            app.auth.login(context, "admin", "admin123")
            assert context.is_authenticated
        assert not context.is_authenticated


class TestCurrentPrincipal:
    """Tests for whoami and my-permissions."""

    def test_current_principal(self, app, admin_ctx):
        assert app.auth.current_principal(admin_ctx).username == "admin"

    def test_current_principal_requires_login(self, app, ctx):
        """An empty context raises UnauthenticatedError."""
        with pytest.raises(UnauthenticatedError):
            app.auth.current_principal(ctx)

    def test_permissions_of_guest(self, app, guest_ctx):
        """A guest holds exactly the three list codes."""
        codes = [p.code for p in app.auth.permissions_of(guest_ctx)]
        assert codes == ["PERMISSION:LIST", "ROLE:LIST", "USER:LIST"]

    def test_permissions_of_requires_login(self, app, ctx):
        with pytest.raises(UnauthenticatedError):
            app.auth.permissions_of(ctx)
