"""Data models for repository scorecards."""

import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, Field

from radar.analysis.models import (
    CommitQualityAnalysis,
    ContributorVolumePattern,
    DailyActivity,
    DistributionAnalysis,
    VolumeAnalysis,
)
from radar.shared.models import (
    AlertType,
    CommitStats,
    Contributor,
    Repository,
    Severity,
    StreakStatus,
)


class CheckStatus(StrEnum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class OverallStatus(StrEnum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class RepositoryFacts(BaseModel):
    """Everything the scorecard needs about one repository.

    Attributes:
        repository: Stored repository
        commit_stats: Commit counters
        alert_type_counts: Alert counts by type (all alerts)
        alert_severity_counts: Alert counts by severity (unacknowledged only)
        contributors: Contributor aggregates
        daily_activity: Commits per UTC day of author date
        contributor_activity: Per-contributor daily buckets keyed by email
        commit_messages: Recent commit messages for quality analysis
    """

    repository: Repository
    commit_stats: CommitStats = Field(default_factory=CommitStats)
    alert_type_counts: dict[AlertType, int] = Field(default_factory=dict)
    alert_severity_counts: dict[Severity, int] = Field(default_factory=dict)
    contributors: list[Contributor] = Field(default_factory=list)
    daily_activity: list[DailyActivity] = Field(default_factory=list)
    contributor_activity: dict[str, list[DailyActivity]] = Field(default_factory=dict)
    commit_messages: list[str] = Field(default_factory=list)


class RepositoryInfo(BaseModel):
    owner: str
    name: str
    full_name: str
    has_license: bool = False
    license_spdx_id: str | None = None


class CheckResult(BaseModel):
    """One scorecard check."""

    name: str
    status: CheckStatus
    score: int = Field(..., ge=0, le=100)
    description: str


class AlertSummary(BaseModel):
    type: AlertType
    severity: Severity
    count: int


class ActivitySummary(BaseModel):
    total_commits: int = 0
    last_activity_at: dt.datetime | None = None
    streak_status: StreakStatus = StreakStatus.ACTIVE
    days_since_activity: int = 0
    force_push_count: int = 0
    backdate_count: int = 0


class ActivitySection(BaseModel):
    """Volume analysis of the repository and of each contributor."""

    volume: VolumeAnalysis
    contributor_patterns: list[ContributorVolumePattern] = Field(default_factory=list)


class Scorecard(BaseModel):
    """Aggregated health report for one repository.

    Attributes:
        repository: Repository identity and license
        overall_score: Integer mean of the check scores
        overall_status: healthy, warning or critical
        checks: The five checks in fixed order
        alerts: Alert counts per type with the type's fixed severity
        distribution: Contribution distribution analysis
        activity: Volume analysis and per-contributor patterns
        commit_quality: Conventional-commit statistics over recent messages
        activity_summary: Headline activity counters
        generated_at: Report generation time
    """

    repository: RepositoryInfo
    overall_score: int
    overall_status: OverallStatus
    checks: list[CheckResult]
    alerts: list[AlertSummary] = Field(default_factory=list)
    distribution: DistributionAnalysis
    activity: ActivitySection
    commit_quality: CommitQualityAnalysis
    activity_summary: ActivitySummary
    generated_at: dt.datetime
