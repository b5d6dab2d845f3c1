"""Backdated commit detection.

A commit is backdated when its claimed author time lags far behind the time
the push carrying it was received. The lag is measured in whole hours,
truncated toward zero, and may be negative when the author clock runs ahead.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from radar.shared.models import Alert, AlertType, Severity, ensure_utc

DEFAULT_SUSPICIOUS_HOURS = 24
DEFAULT_CRITICAL_HOURS = 72


class BackdateResult(BaseModel):
    """Outcome of comparing an author time with the push receipt time.

    Attributes:
        author_date: Author timestamp claimed by the commit
        pushed_at: Push receipt time
        difference_hours: pushed_at - author_date in whole hours, signed
        is_suspicious: Lag exceeds the suspicious threshold
        is_critical: Lag exceeds the critical threshold (implies suspicious)
    """

    author_date: datetime
    pushed_at: datetime
    difference_hours: int = Field(..., description="Signed lag in whole hours")
    is_suspicious: bool = False
    is_critical: bool = False

    @property
    def is_flagged(self) -> bool:
        return self.is_suspicious or self.is_critical

    @property
    def alert_type(self) -> AlertType | None:
        if self.is_critical:
            return AlertType.BACKDATE_CRITICAL
        if self.is_suspicious:
            return AlertType.BACKDATE_SUSPICIOUS
        return None

    @property
    def severity(self) -> Severity | None:
        if self.is_critical:
            return Severity.CRITICAL
        if self.is_suspicious:
            return Severity.WARNING
        return None


def backdate_hours(author_date: datetime, pushed_at: datetime) -> int:
    """Whole hours between author time and push receipt, truncated toward zero."""
    delta = ensure_utc(pushed_at) - ensure_utc(author_date)
    return int(delta.total_seconds() / 3600)


class BackdateDetector:
    """Classifies commits by how far their author time precedes the push.

    Attributes:
        suspicious_hours: Lag above which a commit is suspicious
        critical_hours: Lag above which a commit is critical
    """

    def __init__(
        self,
        suspicious_hours: int = DEFAULT_SUSPICIOUS_HOURS,
        critical_hours: int = DEFAULT_CRITICAL_HOURS,
    ) -> None:
        """Initialize detector with explicit thresholds.

        Args:
            suspicious_hours: Suspicious threshold in hours
            critical_hours: Critical threshold in hours, >= suspicious_hours

        Raises:
            ValueError: If critical_hours is below suspicious_hours
        """
        if critical_hours < suspicious_hours:
            raise ValueError(
                f"critical_hours ({critical_hours}) must be >= suspicious_hours ({suspicious_hours})"
            )
        self.suspicious_hours = suspicious_hours
        self.critical_hours = critical_hours

    def analyze(self, author_date: datetime, pushed_at: datetime) -> BackdateResult:
        """Compare an author timestamp with the push receipt time.

        Args:
            author_date: Author timestamp claimed by the commit
            pushed_at: When the push was received

        Returns:
            BackdateResult; negative lags are never flagged
        """
        diff_hours = backdate_hours(author_date, pushed_at)
        return BackdateResult(
            author_date=ensure_utc(author_date),
            pushed_at=ensure_utc(pushed_at),
            difference_hours=diff_hours,
            is_suspicious=diff_hours > self.suspicious_hours,
            is_critical=diff_hours > self.critical_hours,
        )

    def build_alert(self, result: BackdateResult, commit_sha: str) -> Alert | None:
        """Build the single alert for a flagged commit.

        Args:
            result: Detector result for the commit
            commit_sha: SHA of the commit

        Returns:
            A critical alert for critical lags, a warning alert for suspicious
            ones, or None when the commit is not flagged
        """
        alert_type = result.alert_type
        severity = result.severity
        if alert_type is None or severity is None:
            return None

        return Alert(
            commit_sha=commit_sha,
            alert_type=alert_type,
            severity=severity,
            title="Backdated commit detected",
            description=(
                f"Commit author date is {result.difference_hours} hours older than push time"
            ),
            metadata={
                "author_date": result.author_date.isoformat(),
                "pushed_at": result.pushed_at.isoformat(),
                "backdate_hours": result.difference_hours,
            },
        )
