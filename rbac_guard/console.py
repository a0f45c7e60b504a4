"""
RBAC Guard - Interactive Console

Line-oriented shell over the guarded services. The console owns exactly one
PrincipalContext; it is logged out when the shell exits.

    rbac> login admin
    Password:
    ✓ logged in as admin
    rbac> user create bob
"""

import cmd
import getpass
import inspect
import shlex
import sys
from typing import Callable, List, Optional, TextIO

from rbac_guard.access.codes import PermissionCode
from rbac_guard.access.context import PrincipalContext
from rbac_guard.app import RbacApp
from rbac_guard.exceptions import RbacError

USAGE = {
    "user": [
        "user list",
        "user show <id>",
        "user find <username>",
        "user create <username> [password]",
        "user delete <id>",
        "user freeze <id>",
        "user unfreeze <id>",
        "user roles <id>",
    ],
    "role": [
        "role list",
        "role show <id>",
        "role create <code> <name> [description]",
        "role delete <id>",
        "role assign <user-id> <role-id>",
        "role revoke <user-id> <role-id>",
        "role perms <role-id>",
    ],
    "perm": [
        "perm list",
        "perm show <id>",
        "perm create <RESOURCE:ACTION> [description]",
        "perm delete <id>",
        "perm grant <role-id> <perm-id>",
        "perm revoke <role-id> <perm-id>",
    ],
}


class UsageError(Exception):
    """Malformed console command."""


def _to_id(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise UsageError(f"expected a numeric id, got {value!r}") from None


class Console(cmd.Cmd):
    """Interactive shell bound to one session context."""

    prompt = "rbac> "

    def __init__(
        self,
        app: RbacApp,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        read_password: Callable[[str], str] = getpass.getpass,
    ):
        super().__init__(stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.app = app
        self.context = PrincipalContext()
        self._read_password = read_password
        self.intro = f"{app.settings.APP_NAME} console. Type 'help' for commands."

    # ==================== Plumbing ====================

    def run(self) -> None:
        try:
            self.cmdloop()
        finally:
            self.app.auth.logout(self.context)

    def say(self, text: str = "") -> None:
        self.stdout.write(text + "\n")

    def ok(self, text: str) -> None:
        self.say(f"✓ {text}")

    def error(self, text: str) -> None:
        self.say(f"✗ {text}")

    def onecmd(self, line: str) -> bool:
        try:
            return super().onecmd(line)
        except RbacError as e:
            self.error(e.message)
        except UsageError as e:
            self.error(str(e))
        return False

    def emptyline(self) -> bool:
        return False

    def default(self, line: str) -> None:
        self.error(f"unknown command: {line.split()[0]} (try 'help')")

    def _split(self, arg: str) -> List[str]:
        try:
            return shlex.split(arg)
        except ValueError as e:
            raise UsageError(str(e)) from None

    def _dispatch(self, group: str, arg: str) -> None:
        args = self._split(arg)
        if not args:
            raise UsageError("usage: " + "; ".join(USAGE[group]))
        handler = getattr(self, f"_{group}_{args[0]}", None)
        if handler is None:
            raise UsageError(f"unknown {group} command: {args[0]}")
        try:
            inspect.signature(handler).bind(*args[1:])
        except TypeError:
            usage = [u for u in USAGE[group] if u.split()[1] == args[0]]
            raise UsageError("usage: " + "; ".join(usage)) from None
        handler(*args[1:])

    # ==================== Session ====================

    def do_login(self, arg: str) -> None:
        """login <username> [password]: authenticate this session"""
        args = self._split(arg)
        if not args or len(args) > 2:
            raise UsageError("usage: login <username> [password]")
        password = args[1] if len(args) == 2 else self._read_password("Password: ")
        principal = self.app.auth.login(self.context, args[0], password)
        self.ok(f"logged in as {principal.username}")

    def do_logout(self, arg: str) -> None:
        """logout: end the current session"""
        if not self.context.is_authenticated:
            self.error("not logged in")
            return
        self.app.auth.logout(self.context)
        self.ok("logged out")

    def do_whoami(self, arg: str) -> None:
        """whoami: show the logged-in user"""
        principal = self.app.auth.current_principal(self.context)
        self.say(f"{principal.username} (id={principal.id})")

    def do_perms(self, arg: str) -> None:
        """perms: list your effective permissions"""
        permissions = self.app.auth.permissions_of(self.context)
        if not permissions:
            self.say("(no permissions)")
        for permission in permissions:
            self.say(f"  {permission.code:<20} {permission.description or ''}")

    def do_audit(self, arg: str) -> None:
        """audit: analyze the audit trail for login anomalies"""
        warnings = self.app.audit_analysis.analyze(self.context)
        if not warnings:
            self.ok("no login anomalies found")
        for warning in warnings:
            self.say(f"! {warning}")

    def do_quit(self, arg: str) -> bool:
        """quit: leave the console"""
        self.say("bye")
        return True

    do_exit = do_quit
    do_EOF = do_quit

    # ==================== Users ====================

    def do_user(self, arg: str) -> None:
        """user list|show|find|create|delete|freeze|unfreeze|roles"""
        self._dispatch("user", arg)

    def _user_list(self) -> None:
        for p in self.app.users.list_users(self.context):
            self.say(f"  {p.id:>4}  {p.username:<20} {p.status}")

    def _user_show(self, principal_id: str) -> None:
        p = self.app.users.get_user(self.context, _to_id(principal_id))
        self.say(f"  {p.id:>4}  {p.username:<20} {p.status}  created {p.created_at:%Y-%m-%d %H:%M}")

    def _user_find(self, username: str) -> None:
        p = self.app.users.get_user_by_name(self.context, username)
        self.say(f"  {p.id:>4}  {p.username:<20} {p.status}")

    def _user_create(self, username: str, password: Optional[str] = None) -> None:
        if password is None:
            # fail before prompting when the caller cannot create users
            self.app.guard.check(self.context, PermissionCode.USER_CREATE)
            password = self._read_password("Password: ")
        p = self.app.users.create_user(self.context, username, password)
        self.ok(f"created user {p.username} (id={p.id})")

    def _user_delete(self, principal_id: str) -> None:
        p = self.app.users.delete_user(self.context, _to_id(principal_id))
        self.ok(f"deleted user {p.username}")

    def _user_freeze(self, principal_id: str) -> None:
        p = self.app.users.freeze_user(self.context, _to_id(principal_id))
        self.ok(f"froze user {p.username}")

    def _user_unfreeze(self, principal_id: str) -> None:
        p = self.app.users.unfreeze_user(self.context, _to_id(principal_id))
        self.ok(f"unfroze user {p.username}")

    def _user_roles(self, principal_id: str) -> None:
        roles = self.app.roles.roles_of(self.context, _to_id(principal_id))
        if not roles:
            self.say("(no roles)")
        for r in roles:
            self.say(f"  {r.id:>4}  {r.code:<16} {r.name}")

    # ==================== Roles ====================

    def do_role(self, arg: str) -> None:
        """role list|show|create|delete|assign|revoke|perms"""
        self._dispatch("role", arg)

    def _role_list(self) -> None:
        for r in self.app.roles.list_roles(self.context):
            self.say(f"  {r.id:>4}  {r.code:<16} {r.name}")

    def _role_show(self, role_id: str) -> None:
        r = self.app.roles.get_role(self.context, _to_id(role_id))
        self.say(f"  {r.id:>4}  {r.code:<16} {r.name}  {r.description or ''}")

    def _role_create(self, code: str, name: str, description: Optional[str] = None) -> None:
        r = self.app.roles.create_role(self.context, code, name, description)
        self.ok(f"created role {r.code} (id={r.id})")

    def _role_delete(self, role_id: str) -> None:
        r = self.app.roles.delete_role(self.context, _to_id(role_id))
        self.ok(f"deleted role {r.code}")

    def _role_assign(self, principal_id: str, role_id: str) -> None:
        p, r = self.app.roles.assign_role(self.context, _to_id(principal_id), _to_id(role_id))
        self.ok(f"assigned role {r.code} to {p.username}")

    def _role_revoke(self, principal_id: str, role_id: str) -> None:
        p, r = self.app.roles.revoke_role(self.context, _to_id(principal_id), _to_id(role_id))
        self.ok(f"revoked role {r.code} from {p.username}")

    def _role_perms(self, role_id: str) -> None:
        permissions = self.app.permissions.permissions_of_role(self.context, _to_id(role_id))
        if not permissions:
            self.say("(no permissions)")
        for p in permissions:
            self.say(f"  {p.id:>4}  {p.code:<20} {p.description or ''}")

    # ==================== Permissions ====================

    def do_perm(self, arg: str) -> None:
        """perm list|show|create|delete|grant|revoke"""
        self._dispatch("perm", arg)

    def _perm_list(self) -> None:
        for p in self.app.permissions.list_permissions(self.context):
            self.say(f"  {p.id:>4}  {p.code:<20} {p.description or ''}")

    def _perm_show(self, permission_id: str) -> None:
        p = self.app.permissions.get_permission(self.context, _to_id(permission_id))
        self.say(f"  {p.id:>4}  {p.code:<20} {p.description or ''}")

    def _perm_create(self, code: str, description: Optional[str] = None) -> None:
        p = self.app.permissions.create_permission(self.context, code, description)
        self.ok(f"created permission {p.code} (id={p.id})")

    def _perm_delete(self, permission_id: str) -> None:
        p = self.app.permissions.delete_permission(self.context, _to_id(permission_id))
        self.ok(f"deleted permission {p.code}")

    def _perm_grant(self, role_id: str, permission_id: str) -> None:
        r, p = self.app.permissions.grant_to_role(self.context, _to_id(role_id), _to_id(permission_id))
        self.ok(f"granted {p.code} to role {r.code}")

    def _perm_revoke(self, role_id: str, permission_id: str) -> None:
        r, p = self.app.permissions.revoke_from_role(self.context, _to_id(role_id), _to_id(permission_id))
        self.ok(f"revoked {p.code} from role {r.code}")


def run_console(app: RbacApp) -> int:
    Console(app, stdout=sys.stdout).run()
    return 0
