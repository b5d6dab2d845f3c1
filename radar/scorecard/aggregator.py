"""Scorecard aggregation: roll stored facts into one repository health report.

``build_scorecard`` is a pure function of a ``RepositoryFacts`` snapshot and
the reference time. ``ScorecardService`` loads the snapshot from the store.
Nothing is cached; every request recomputes the analyses.
"""

import datetime as dt
from typing import TYPE_CHECKING

from radar.analysis.conventional import analyze_commit_quality
from radar.analysis.distribution import analyze_distribution
from radar.analysis.models import ContributorActivity, DailyActivity
from radar.analysis.volume import analyze_contributor_patterns, analyze_volume
from radar.core.logging import get_logger
from radar.scorecard.models import (
    ActivitySection,
    ActivitySummary,
    AlertSummary,
    CheckResult,
    CheckStatus,
    OverallStatus,
    RepositoryFacts,
    RepositoryInfo,
    Scorecard,
)
from radar.shared.models import (
    ALERT_SEVERITIES,
    AlertType,
    Contributor,
    Repository,
    Severity,
    StreakStatus,
    ensure_utc,
)

if TYPE_CHECKING:
    from radar.core.database import DatabaseClient

logger = get_logger(__name__)

BACKDATE_PENALTY = 20
FORCE_PUSH_PENALTY = 25
HEALTHY_SCORE = 80
WARNING_SCORE = 50
CONVENTIONAL_PASS_PCT = 80
CONVENTIONAL_WARN_PCT = 50


def _penalty_check(name: str, count: int, penalty: int, noun: str) -> CheckResult:
    if count == 0:
        return CheckResult(
            name=name, status=CheckStatus.PASS, score=100, description=f"No {noun} detected"
        )
    score = max(0, 100 - count * penalty)
    return CheckResult(
        name=name,
        status=CheckStatus.FAIL if score < 50 else CheckStatus.WARN,
        score=score,
        description=f"{count} {noun} detected",
    )


def license_check(repository: Repository) -> CheckResult:
    if repository.has_license:
        spdx = repository.license_spdx_id or "unknown"
        return CheckResult(
            name="License Present",
            status=CheckStatus.PASS,
            score=100,
            description=f"Repository has a license ({spdx})",
        )
    return CheckResult(
        name="License Present",
        status=CheckStatus.FAIL,
        score=0,
        description="Repository does not have a license",
    )


def streak_check(status: StreakStatus) -> CheckResult:
    if status == StreakStatus.AT_RISK:
        return CheckResult(
            name="Activity Streak",
            status=CheckStatus.WARN,
            score=50,
            description="Activity streak is at risk",
        )
    if status == StreakStatus.INACTIVE:
        return CheckResult(
            name="Activity Streak",
            status=CheckStatus.FAIL,
            score=0,
            description="Repository is inactive",
        )
    return CheckResult(
        name="Activity Streak",
        status=CheckStatus.PASS,
        score=100,
        description="Repository is actively maintained",
    )


def conventional_check(total_commits: int, conventional_count: int) -> CheckResult:
    if total_commits == 0:
        return CheckResult(
            name="Conventional Commits",
            status=CheckStatus.WARN,
            score=0,
            description="No commits to analyze",
        )

    score = conventional_count * 100 // total_commits
    if score >= CONVENTIONAL_PASS_PCT:
        status = CheckStatus.PASS
    elif score >= CONVENTIONAL_WARN_PCT:
        status = CheckStatus.WARN
    else:
        status = CheckStatus.FAIL

    return CheckResult(
        name="Conventional Commits",
        status=status,
        score=score,
        description=f"{score}% of commits follow conventional format",
    )


def build_checks(facts: RepositoryFacts) -> list[CheckResult]:
    """The five checks, always in the same order."""
    counts = facts.alert_type_counts
    backdates = counts.get(AlertType.BACKDATE_SUSPICIOUS, 0) + counts.get(
        AlertType.BACKDATE_CRITICAL, 0
    )
    force_pushes = counts.get(AlertType.FORCE_PUSH, 0)

    return [
        license_check(facts.repository),
        _penalty_check("No Backdated Commits", backdates, BACKDATE_PENALTY, "backdated commits"),
        _penalty_check("No Force Pushes", force_pushes, FORCE_PUSH_PENALTY, "force pushes"),
        streak_check(facts.repository.streak_status),
        conventional_check(
            facts.commit_stats.total_commits, facts.commit_stats.conventional_count
        ),
    ]


def overall_score(checks: list[CheckResult]) -> int:
    if not checks:
        return 0
    return sum(c.score for c in checks) // len(checks)


def overall_status(score: int, severity_counts: dict[Severity, int]) -> OverallStatus:
    """Any active critical alert forces critical; otherwise by score."""
    if severity_counts.get(Severity.CRITICAL, 0) > 0:
        return OverallStatus.CRITICAL
    if score >= HEALTHY_SCORE:
        return OverallStatus.HEALTHY
    if score >= WARNING_SCORE:
        return OverallStatus.WARNING
    return OverallStatus.CRITICAL


def build_alert_summaries(type_counts: dict[AlertType, int]) -> list[AlertSummary]:
    return [
        AlertSummary(type=alert_type, severity=ALERT_SEVERITIES[alert_type], count=count)
        for alert_type, count in sorted(type_counts.items(), key=lambda item: item[0].value)
        if count > 0
    ]


def _contributor_activities(contributors: list[Contributor]) -> list[ContributorActivity]:
    return [
        ContributorActivity(
            identity=c.display_name,
            commit_count=c.total_commits,
            additions=c.total_additions,
            deletions=c.total_deletions,
        )
        for c in contributors
    ]


def _activity_by_display_name(
    contributors: list[Contributor], activity: dict[str, list[DailyActivity]]
) -> dict[str, list[DailyActivity]]:
    names = {c.email: c.display_name for c in contributors}
    by_name: dict[str, list[DailyActivity]] = {}
    for email, days in activity.items():
        by_name.setdefault(names.get(email, email), []).extend(days)
    return by_name


def build_scorecard(
    facts: RepositoryFacts,
    now: dt.datetime,
    window_start: dt.date | None = None,
    window_end: dt.date | None = None,
) -> Scorecard:
    """Build the health report for one repository.

    Args:
        facts: Snapshot of stored facts for the repository
        now: Reference time for generated_at and days-since-activity
        window_start: Optional first day of the activity window
        window_end: Optional last day of the activity window

    Returns:
        Scorecard

    Raises:
        ValueError: If window_end precedes window_start
    """
    now = ensure_utc(now)
    repo = facts.repository

    checks = build_checks(facts)
    score = overall_score(checks)

    volume = analyze_volume(facts.daily_activity, window_start, window_end)
    patterns = analyze_contributor_patterns(
        _activity_by_display_name(facts.contributors, facts.contributor_activity),
        window_start,
        window_end,
    )

    days_since_activity = 0
    last_activity = repo.last_activity_at
    if last_activity is not None:
        days_since_activity = max(0, int((now - ensure_utc(last_activity)).total_seconds() // 86400))

    counts = facts.alert_type_counts
    return Scorecard(
        repository=RepositoryInfo(
            owner=repo.owner,
            name=repo.name,
            full_name=repo.full_name,
            has_license=repo.has_license,
            license_spdx_id=repo.license_spdx_id,
        ),
        overall_score=score,
        overall_status=overall_status(score, facts.alert_severity_counts),
        checks=checks,
        alerts=build_alert_summaries(counts),
        distribution=analyze_distribution(_contributor_activities(facts.contributors)),
        activity=ActivitySection(volume=volume, contributor_patterns=patterns),
        commit_quality=analyze_commit_quality(facts.commit_messages),
        activity_summary=ActivitySummary(
            total_commits=facts.commit_stats.total_commits,
            last_activity_at=last_activity,
            streak_status=repo.streak_status,
            days_since_activity=days_since_activity,
            force_push_count=counts.get(AlertType.FORCE_PUSH, 0),
            backdate_count=counts.get(AlertType.BACKDATE_SUSPICIOUS, 0)
            + counts.get(AlertType.BACKDATE_CRITICAL, 0),
        ),
        generated_at=now,
    )


class ScorecardService:
    """Loads repository facts from the store and builds scorecards."""

    def __init__(self, store: "DatabaseClient") -> None:
        self.store = store

    async def load_facts(self, repository: Repository) -> RepositoryFacts:
        if repository.id is None:
            return RepositoryFacts(repository=repository)

        repository_id = repository.id
        type_counts, severity_counts = await self.store.count_alerts(repository_id)
        return RepositoryFacts(
            repository=repository,
            commit_stats=await self.store.get_commit_stats(repository_id),
            alert_type_counts=type_counts,
            alert_severity_counts=severity_counts,
            contributors=await self.store.list_contributors(repository_id),
            daily_activity=await self.store.get_daily_activity(repository_id),
            contributor_activity=await self.store.get_contributor_daily_activity(repository_id),
            commit_messages=await self.store.list_commit_messages(repository_id),
        )

    async def get_scorecard(
        self,
        owner: str,
        name: str,
        window_start: dt.date | None = None,
        window_end: dt.date | None = None,
    ) -> Scorecard | None:
        """Build a fresh scorecard for owner/name.

        Returns:
            Scorecard, or None if the repository is unknown

        Raises:
            DatabaseError: If loading facts fails
            ValueError: If window_end precedes window_start
        """
        repository = await self.store.get_repository_by_full_name(owner, name)
        if repository is None:
            logger.info("scorecard.repository.not_found", owner=owner, name=name)
            return None

        facts = await self.load_facts(repository)
        scorecard = build_scorecard(facts, dt.datetime.now(dt.UTC), window_start, window_end)
        logger.info(
            "scorecard.generated",
            repo=repository.full_name,
            score=scorecard.overall_score,
            status=scorecard.overall_status.value,
        )
        return scorecard
