"""
RBAC Guard Test Configuration
=============================

Pytest fixtures shared by the unit tests: an in-memory database, a
temporary audit log and a seeded application with a logged-in admin.
"""

from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from rbac_guard.access.audit import AuditEvent, AuditSink, parse_line
from rbac_guard.access.context import PrincipalContext
from rbac_guard.app import create_app
from rbac_guard.auth.passwords import hash_password
from rbac_guard.bootstrap import seed_defaults
from rbac_guard.config import Settings
from rbac_guard.db.session import create_db_engine, create_session_factory, init_db
from rbac_guard.directory import Directory

ADMIN_PASSWORD = "admin123"
TEST_ROUNDS = 4


def read_events(path: Path) -> List[AuditEvent]:
    """Parse every event in an audit log (empty if the file is missing)."""
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as handle:
        return [event for event in map(parse_line, handle) if event is not None]


def add_user(
    directory: Directory,
    username: str,
    password: str = "secret123",
    roles: Iterable[str] = (),
    status=None,
):
    """Insert a principal directly, bypassing the guard."""
    kwargs = {} if status is None else {"status": status}
    principal = directory.insert_principal(username, hash_password(password, TEST_ROUNDS), **kwargs)
    for code in roles:
        directory.assign_role(principal.id, directory.find_role_by_code(code).id)
    return principal


@pytest.fixture
def audit_path(tmp_path) -> Path:
    """Audit log location inside a not-yet-existing directory."""
    return tmp_path / "logs" / "audit.log"


@pytest.fixture
def settings(audit_path) -> Settings:
    """Settings for an in-memory database and a temporary audit log."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        AUDIT_LOG_PATH=str(audit_path),
        BCRYPT_ROUNDS=TEST_ROUNDS,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
    )


@pytest.fixture
def directory() -> Directory:
    """Empty directory over a fresh in-memory database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield Directory(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def sink(audit_path) -> AuditSink:
    return AuditSink(audit_path)


@pytest.fixture
def app(settings):
    """Wired application with seed data (admin, ADMIN/GUEST, system codes)."""
    application = create_app(settings)
    seed_defaults(application.directory, ADMIN_PASSWORD, TEST_ROUNDS)
    yield application
    application.close()


@pytest.fixture
def admin_ctx(app) -> PrincipalContext:
    """Context logged in as the seeded admin."""
    context = PrincipalContext()
    app.auth.login(context, "admin", ADMIN_PASSWORD)
    return context


@pytest.fixture
def guest_ctx(app) -> PrincipalContext:
    """Context logged in as a principal holding only GUEST."""
    add_user(app.directory, "guest1", "guest1234", roles=["GUEST"])
    context = PrincipalContext()
    app.auth.login(context, "guest1", "guest1234")
    return context


@pytest.fixture
def events(audit_path):
    """Callable returning the events logged so far, optionally after an offset."""

    def _events(since: Optional[int] = None) -> List[AuditEvent]:
        all_events = read_events(audit_path)
        return all_events if since is None else all_events[since:]

    return _events


@pytest.fixture
def make_user():
    """The ``add_user`` helper, for tests that need extra principals."""
    return add_user
