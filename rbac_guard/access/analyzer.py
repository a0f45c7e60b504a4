"""
RBAC Guard - Audit Anomaly Analyzer

Single streaming pass over the audit trail flagging principals whose failed
logins within one clock hour reach a threshold (possible brute force).

Memory is bounded by the number of distinct (actor, hour) pairs; raw lines
are never buffered. The analyzer only reads, so it can run while the sink
keeps appending.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Tuple, Union

from rbac_guard.access.audit import AuditSeverity, parse_line
from rbac_guard.access.codes import AuditAction
from rbac_guard.config import Settings

logger = logging.getLogger(__name__)


DEFAULT_THRESHOLD = 5
HOUR_FORMAT = "%Y-%m-%d %H:00"

BucketKey = Tuple[str, datetime]


@dataclass(frozen=True)
class LoginAnomaly:
    """Failed logins of one actor within one hour bucket."""

    actor: str
    hour: datetime
    count: int

    def describe(self) -> str:
        return (
            f"High risk: user [{self.actor}] failed to log in {self.count} times "
            f"during hour [{self.hour.strftime(HOUR_FORMAT)}], "
            f"possible brute-force or abnormal login activity"
        )


class AuditAnomalyAnalyzer:
    """Detect excessive login failures per principal per hour."""

    def __init__(self, path: Union[str, Path], threshold: int = DEFAULT_THRESHOLD):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self._path = Path(path)
        self._threshold = threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuditAnomalyAnalyzer":
        return cls(settings.AUDIT_LOG_PATH, settings.AUDIT_LOGIN_FAIL_THRESHOLD)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def threshold(self) -> int:
        return self._threshold

    def bucket_counts(self) -> Dict[BucketKey, int]:
        """
        Count failed logins per (actor, hour) in one forward pass.

        Malformed lines are skipped.

        Raises:
            OSError: The audit file cannot be opened or read
        """
        counts: Dict[BucketKey, int] = defaultdict(int)
        skipped = 0

        with open(self._path, "r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                event = parse_line(line)
                if event is None:
                    if line.strip():
                        skipped += 1
                    continue
                if event.severity is not AuditSeverity.FAIL:
                    continue
                if event.action != AuditAction.LOGIN.value:
                    continue
                hour = event.timestamp.replace(minute=0, second=0, microsecond=0)
                counts[(event.actor, hour)] += 1

        if skipped:
            logger.debug("Skipped %d malformed audit line(s)", skipped)
        return dict(counts)

    def find_anomalies(self) -> List[LoginAnomaly]:
        """Get buckets whose count reaches the threshold, by actor then hour."""
        return [
            LoginAnomaly(actor=actor, hour=hour, count=count)
            for (actor, hour), count in sorted(self.bucket_counts().items())
            if count >= self._threshold
        ]

    def analyze(self) -> List[str]:
        """
        Analyze the audit trail.

        Returns:
            One warning per (actor, hour) at or above the threshold. A missing
            or unreadable audit file yields a single warning instead of an
            error.
        """
        if not self._path.exists():
            return [f"Audit log file not found: {self._path}"]

        try:
            anomalies = self.find_anomalies()
        except OSError as e:
            logger.error("Failed to read audit log %s", self._path, exc_info=True)
            return [f"Failed to read audit log: {e}"]

        if anomalies:
            logger.warning("Audit analysis flagged %d login anomaly(ies)", len(anomalies))
        return [anomaly.describe() for anomaly in anomalies]
