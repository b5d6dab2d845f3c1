"""Data models for Commit Radar persisted facts."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class AlertType(StrEnum):
    """Kinds of alerts raised against a repository."""

    BACKDATE_SUSPICIOUS = "backdate_suspicious"
    BACKDATE_CRITICAL = "backdate_critical"
    FORCE_PUSH = "force_push"
    NO_LICENSE = "no_license"
    STREAK_AT_RISK = "streak_at_risk"
    NON_CONVENTIONAL_COMMIT = "non_conventional_commit"


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class StreakStatus(StrEnum):
    ACTIVE = "active"
    AT_RISK = "at_risk"
    INACTIVE = "inactive"


# Fixed severity reported per alert type in scorecard summaries
ALERT_SEVERITIES: dict[AlertType, Severity] = {
    AlertType.BACKDATE_SUSPICIOUS: Severity.WARNING,
    AlertType.BACKDATE_CRITICAL: Severity.CRITICAL,
    AlertType.FORCE_PUSH: Severity.WARNING,
    AlertType.NO_LICENSE: Severity.INFO,
    AlertType.STREAK_AT_RISK: Severity.WARNING,
    AlertType.NON_CONVENTIONAL_COMMIT: Severity.INFO,
}


class Installation(BaseModel):
    """A GitHub App installation on a user or organization account.

    Attributes:
        installation_id: Platform installation ID
        account_login: Login of the account the app is installed on
        account_type: Account type (User, Organization)
    """

    installation_id: int = Field(..., description="Platform installation ID")
    account_login: str = Field(..., description="Account login")
    account_type: str = Field("User", description="Account type")


class Repository(BaseModel):
    """A monitored repository.

    Attributes:
        id: Internal store ID (None until persisted)
        github_id: Platform repository ID (unique key)
        installation_id: Owning installation, if known
        owner: Repository owner login
        name: Repository name
        full_name: owner/name
        default_branch: Default branch name
        has_license: Whether a license is on record
        license_spdx_id: SPDX identifier of the license, if any
        last_push_at: Receipt time of the latest push
        last_activity_at: Latest activity time (currently the latest push)
        streak_status: active, at_risk or inactive
    """

    id: int | None = Field(None, description="Internal store ID")
    github_id: int = Field(..., description="Platform repository ID")
    installation_id: int | None = Field(None, description="Installation ID")
    owner: str = Field(..., description="Repository owner")
    name: str = Field(..., description="Repository name")
    full_name: str = Field(..., description="owner/name")
    default_branch: str = Field("main", description="Default branch")
    has_license: bool = Field(False, description="License on record")
    license_spdx_id: str | None = Field(None, description="License SPDX ID")
    last_push_at: datetime | None = Field(None, description="Last push receipt time")
    last_activity_at: datetime | None = Field(None, description="Last activity time")
    streak_status: StreakStatus = Field(StreakStatus.ACTIVE, description="Streak status")


class PushRecord(BaseModel):
    """Summary of one received push, stored for auditing."""

    push_id: int | None = None
    ref: str = ""
    before_sha: str = ""
    after_sha: str = ""
    forced: bool = False
    pusher_login: str = ""
    commit_count: int = 0
    distinct_count: int = 0
    received_at: datetime


class CommitFact(BaseModel):
    """A commit observed in a push, with detector results attached.

    Attributes:
        sha: Full commit SHA (unique key)
        repository_id: Internal repository ID (filled in when persisted)
        message: Full commit message
        author_email: Author email (contributor identity key)
        author_name: Author display name
        author_username: Platform login of the author, if known
        author_date: Authored timestamp claimed by the commit
        pushed_at: Receipt time of the push that carried the commit
        additions: Lines added (not carried by push payloads)
        deletions: Lines deleted (not carried by push payloads)
        is_conventional: Message follows the conventional-commit prefix
        conventional_type: Conventional type token, lowercased
        conventional_scope: Conventional scope, if given
        is_breaking: Conventional breaking-change marker present
        is_backdated: Backdate detector flagged the commit
        backdate_hours: pushed_at - author_date in whole hours, signed
    """

    sha: str = Field(..., min_length=1, description="Commit SHA")
    repository_id: int | None = Field(None, description="Internal repository ID")
    message: str = Field("", description="Commit message")
    author_email: str = Field("", description="Author email")
    author_name: str = Field("", description="Author name")
    author_username: str = Field("", description="Author login")
    author_date: datetime = Field(..., description="Author timestamp")
    pushed_at: datetime = Field(..., description="Push receipt time")
    additions: int = Field(0, description="Lines added")
    deletions: int = Field(0, description="Lines deleted")
    is_conventional: bool = Field(False, description="Conventional commit")
    conventional_type: str | None = Field(None, description="Conventional type")
    conventional_scope: str | None = Field(None, description="Conventional scope")
    is_breaking: bool = Field(False, description="Breaking change marker")
    is_backdated: bool = Field(False, description="Flagged as backdated")
    backdate_hours: int = Field(0, description="Signed backdate in hours")

    @field_validator("author_date", "pushed_at")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamps are timezone-aware, adding UTC if naive."""
        return ensure_utc(v)

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


class Contributor(BaseModel):
    """Per-repository contributor aggregate keyed by email.

    Attributes:
        email: Identity key
        login: Platform login (first non-empty value wins)
        name: Display name (first non-empty value wins)
        total_commits: Number of distinct commits attributed
        total_additions: Lines added across commits
        total_deletions: Lines deleted across commits
        first_commit_at: Earliest push receipt time seen
        last_commit_at: Latest push receipt time seen
    """

    email: str = Field(..., description="Identity key")
    login: str = Field("", description="Platform login")
    name: str = Field("", description="Display name")
    total_commits: int = Field(0, description="Total commits")
    total_additions: int = Field(0, description="Total additions")
    total_deletions: int = Field(0, description="Total deletions")
    first_commit_at: datetime | None = Field(None, description="First commit time")
    last_commit_at: datetime | None = Field(None, description="Last commit time")

    @property
    def display_name(self) -> str:
        """Login, else name, else email."""
        return self.login or self.name or self.email

    def merged_with(self, incoming: "Contributor", committed_at: datetime) -> "Contributor":
        """Fold one more commit into this aggregate.

        Existing non-empty login/name values are kept; empty ones are filled
        from the incoming identity.
        """
        first = self.first_commit_at
        if first is None or committed_at < first:
            first = committed_at
        last = self.last_commit_at
        if last is None or committed_at > last:
            last = committed_at
        return self.model_copy(
            update={
                "login": self.login or incoming.login,
                "name": self.name or incoming.name,
                "total_commits": self.total_commits + 1,
                "total_additions": self.total_additions + incoming.total_additions,
                "total_deletions": self.total_deletions + incoming.total_deletions,
                "first_commit_at": first,
                "last_commit_at": last,
            }
        )


class Alert(BaseModel):
    """An append-only alert raised by a detector.

    Attributes:
        id: Internal store ID (None until persisted)
        repository_id: Internal repository ID (filled in when persisted)
        commit_sha: Commit the alert refers to, if any
        alert_type: Kind of alert
        severity: info, warning or critical
        title: Short human-readable title
        description: Longer explanation
        metadata: Detector-specific context
        acknowledged: Set outside the core when an operator acknowledges
        created_at: Store insertion time
    """

    id: int | None = None
    repository_id: int | None = None
    commit_sha: str | None = None
    alert_type: AlertType
    severity: Severity
    title: str
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    acknowledged: bool = False
    created_at: datetime | None = None


class CommitStats(BaseModel):
    """Commit counters for one repository."""

    total_commits: int = 0
    backdated_count: int = 0
    conventional_count: int = 0
    total_additions: int = 0
    total_deletions: int = 0
