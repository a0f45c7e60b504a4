"""
RBAC Guard - Audit Trail

Append-only audit stream for every guarded call and every login attempt.

Line format (one event per line, UTF-8, newline-terminated):

    2025-11-18T10:00:00 [AUDIT_FAIL] user=alice action=LOGIN target=alice msg=wrong password result=FAIL

The user, action, target and result fields are single tokens: whitespace,
``=`` and ``%`` in them are percent-encoded, and decoded again on parse.
Only the message may contain spaces.

Writing is best-effort: a failure to append is logged and reported to the
caller as ``None``, never raised into the guarded operation.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import unquote

logger = logging.getLogger(__name__)


TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Characters percent-encoded in the single-token fields (user, action, target).
_TOKEN_RESERVED = frozenset("%=")

_FIELDS_PATTERN = re.compile(
    r"^user=(?P<user>\S*) action=(?P<action>\S*) target=(?P<target>\S*) "
    r"msg=(?P<msg>.*) result=(?P<result>\S*)$"
)


# ============================================================
# Audit Event Structure
# ============================================================


class AuditSeverity(str, Enum):
    """Severity of an audit event."""

    SUCCESS = "SUCCESS"     # Completed operation, login, logout
    FAIL = "FAIL"           # Rejected or failed attempt
    CRITICAL = "CRITICAL"   # Completed roster mutation

    @property
    def marker(self) -> str:
        """Bracketed marker written to the stream, e.g. ``AUDIT_FAIL``."""
        return f"AUDIT_{self.value}"

    @classmethod
    def from_marker(cls, marker: str) -> Optional["AuditSeverity"]:
        if not marker.startswith("AUDIT_"):
            return None
        try:
            return cls(marker[len("AUDIT_"):])
        except ValueError:
            return None


class AuditOutcome(str, Enum):
    """Result of an audited action."""

    SUCCESS = "SUCCESS"
    FAIL = "FAIL"


@dataclass(frozen=True)
class AuditEvent:
    """Immutable audit record."""

    timestamp: datetime
    severity: AuditSeverity
    actor: str
    action: str
    target: str
    message: str
    outcome: AuditOutcome

    def to_line(self) -> str:
        """Serialize to a single audit stream line (without newline)."""
        return format_event(self)


def _clean(value: Any) -> str:
    """Render a field: None as empty, enums by value, one line only."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    text = str(value)
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def _escape_token(value: Any) -> str:
    """Render a single-token field: reserved characters and whitespace as %XX."""
    escaped = []
    for char in _clean(value):
        if char in _TOKEN_RESERVED or char.isspace():
            escaped.append("".join(f"%{byte:02X}" for byte in char.encode()))
        else:
            escaped.append(char)
    return "".join(escaped)


def format_event(event: AuditEvent) -> str:
    """Format an event as an audit stream line."""
    return (
        f"{event.timestamp.strftime(TIMESTAMP_FORMAT)} [{event.severity.marker}] "
        f"user={_escape_token(event.actor)} action={_escape_token(event.action)} "
        f"target={_escape_token(event.target)} msg={_clean(event.message)} "
        f"result={_escape_token(event.outcome)}"
    )


def parse_line(line: str) -> Optional[AuditEvent]:
    """
    Parse an audit stream line.

    Returns:
        The event, or None for blank or malformed lines (bad timestamp,
        missing ``[``/``]`` severity marker, unknown severity, missing
        fields). Never raises.
    """
    if not line or not line.strip():
        return None
    line = line.rstrip("\r\n")

    first_space = line.find(" ")
    if first_space < 0:
        return None
    try:
        timestamp = datetime.strptime(line[:first_space], TIMESTAMP_FORMAT)
    except ValueError:
        return None

    level_start = line.find("[", first_space)
    level_end = line.find("]", level_start + 1) if level_start >= 0 else -1
    if level_start < 0 or level_end < 0:
        return None
    severity = AuditSeverity.from_marker(line[level_start + 1:level_end])
    if severity is None:
        return None

    match = _FIELDS_PATTERN.match(line[level_end + 1:].strip())
    if match is None:
        return None
    try:
        outcome = AuditOutcome(match.group("result"))
    except ValueError:
        return None

    return AuditEvent(
        timestamp=timestamp,
        severity=severity,
        actor=unquote(match.group("user")),
        action=unquote(match.group("action")),
        target=unquote(match.group("target")),
        message=match.group("msg"),
        outcome=outcome,
    )


# ============================================================
# Audit Sink
# ============================================================


class AuditSink:
    """
    Appends audit events to the audit stream file.

    Each event is written with a single ``write`` on a file opened in append
    mode; the sink does not serialize concurrent writers itself.
    """

    def __init__(
        self,
        path: Union[str, Path],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._path = Path(path)
        self._clock = clock or datetime.now

    @property
    def path(self) -> Path:
        return self._path

    def emit(
        self,
        severity: AuditSeverity,
        actor: Optional[str],
        action: Union[str, Enum],
        target: Optional[str],
        message: Optional[str],
        outcome: AuditOutcome,
    ) -> Optional[AuditEvent]:
        """
        Record one audit event.

        Returns:
            The written event, or None if the stream could not be written.
        """
        event = AuditEvent(
            timestamp=self._clock().replace(microsecond=0),
            severity=severity,
            actor=_clean(actor),
            action=_clean(action),
            target=_clean(target),
            message=_clean(message),
            outcome=outcome,
        )
        line = format_event(event)

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8", newline="") as handle:
                handle.write(line + "\n")
        except (OSError, ValueError):
            logger.error("Failed to write audit event: %s", line, exc_info=True)
            return None

        logger.debug("AUDIT %s", line)
        return event

    # ==================== Convenience ====================

    def success(self, actor: str, action, target: Optional[str], message: str) -> Optional[AuditEvent]:
        return self.emit(AuditSeverity.SUCCESS, actor, action, target, message, AuditOutcome.SUCCESS)

    def fail(self, actor: str, action, target: Optional[str], message: str) -> Optional[AuditEvent]:
        return self.emit(AuditSeverity.FAIL, actor, action, target, message, AuditOutcome.FAIL)

    def critical(self, actor: str, action, target: Optional[str], message: str) -> Optional[AuditEvent]:
        return self.emit(AuditSeverity.CRITICAL, actor, action, target, message, AuditOutcome.SUCCESS)

    def login_success(self, username: str) -> Optional[AuditEvent]:
        return self.success(username, "LOGIN", username, "login succeeded")

    def login_fail(self, username: Optional[str], reason: str) -> Optional[AuditEvent]:
        return self.fail(username, "LOGIN", username, f"login failed: {reason}")

    def logout(self, username: str) -> Optional[AuditEvent]:
        return self.success(username, "LOGOUT", username, "logged out")
