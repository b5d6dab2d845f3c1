"""Background monitor that flags repositories whose activity streak lapsed."""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from radar.core.logging import get_logger
from radar.shared.models import Alert, AlertType, Repository, Severity, StreakStatus

if TYPE_CHECKING:
    from radar.core.database import DatabaseClient

logger = get_logger(__name__)


def build_streak_alert(repository: Repository, inactivity_hours: int) -> Alert:
    """Build the warning raised when a repository goes quiet."""
    last_activity = repository.last_activity_at
    return Alert(
        repository_id=repository.id,
        alert_type=AlertType.STREAK_AT_RISK,
        severity=Severity.WARNING,
        title="Activity streak at risk",
        description=f"No activity recorded in the last {inactivity_hours} hours",
        metadata={
            "last_activity_at": last_activity.isoformat() if last_activity else None,
            "inactivity_hours": inactivity_hours,
        },
    )


class StreakMonitor:
    """Periodically moves inactive repositories from active to at_risk."""

    def __init__(
        self,
        store: "DatabaseClient",
        inactivity_hours: int = 72,
        interval_minutes: int = 60,
    ) -> None:
        """Initialize streak monitor.

        Args:
            store: Record store
            inactivity_hours: Hours without activity before a streak is at risk
            interval_minutes: How often to run the check
        """
        self.store = store
        self.inactivity_hours = inactivity_hours
        self.interval_minutes = interval_minutes
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the background check loop."""
        self._task = asyncio.create_task(self._check_loop())
        logger.info(
            "streaks.monitor.started",
            inactivity_hours=self.inactivity_hours,
            interval_minutes=self.interval_minutes,
        )

    async def stop(self) -> None:
        """Stop the background check loop."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("streaks.monitor.stopped")

    async def _check_loop(self) -> None:
        while True:
            try:
                await self.check_streaks()
            except Exception as e:
                logger.error("streaks.check.failed", error=str(e), exc_info=True)
            await asyncio.sleep(self.interval_minutes * 60)

    async def check_streaks(self, now: datetime | None = None) -> int:
        """Flag every active repository with no activity within the window.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            Number of repositories moved to at_risk
        """
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(hours=self.inactivity_hours)

        repositories = await self.store.list_inactive_repositories(cutoff)
        flagged = 0

        for repository in repositories:
            if repository.id is None:
                continue
            try:
                await self.store.update_streak_status(repository.id, StreakStatus.AT_RISK)
                await self.store.insert_alert(build_streak_alert(repository, self.inactivity_hours))
                flagged += 1
                logger.info("streaks.repository.at_risk", repo=repository.full_name)
            except Exception as e:
                logger.error(
                    "streaks.repository.failed",
                    repo=repository.full_name,
                    error=str(e),
                    exc_info=True,
                )

        logger.info("streaks.check.completed", checked=len(repositories), flagged=flagged)
        return flagged
