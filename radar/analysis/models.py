"""Data models for commit, distribution and volume analyses."""

import datetime as dt

from pydantic import BaseModel, Field


class ConventionalCommit(BaseModel):
    """Result of matching a commit message against the conventional prefix.

    Attributes:
        is_valid: Whether the first line follows type(scope)!: description
        type: Lowercased type token (feat, fix, ...)
        scope: Scope inside the parentheses, if any
        description: Text after the colon
        is_breaking: Whether a ! preceded the colon
    """

    is_valid: bool = Field(False, description="Conventional prefix present")
    type: str | None = Field(None, description="Commit type")
    scope: str | None = Field(None, description="Commit scope")
    description: str | None = Field(None, description="Description text")
    is_breaking: bool = Field(False, description="Breaking change marker")


class CommitQualityAnalysis(BaseModel):
    """Aggregate conventional-commit statistics over a set of messages."""

    total_commits: int = 0
    conventional_count: int = 0
    conventional_pct: float = 0.0
    type_distribution: dict[str, int] = Field(default_factory=dict)
    breaking_changes: int = 0
    average_message_length: float = 0.0
    commits_with_scope: int = 0


class ContributorActivity(BaseModel):
    """Input row for the distribution analysis."""

    identity: str = Field(..., description="Contributor identity (login, name or email)")
    commit_count: int = Field(0, ge=0, description="Commits attributed")
    additions: int = Field(0, ge=0, description="Lines added")
    deletions: int = Field(0, ge=0, description="Lines deleted")


class ContributorShare(BaseModel):
    """A contributor's share of the work, in percent."""

    identity: str
    commits: int = 0
    commit_share: float = 0.0
    additions: int = 0
    deletions: int = 0
    code_share: float = 0.0


class DistributionAnalysis(BaseModel):
    """How commits are spread across contributors.

    Attributes:
        total_contributors: Number of contributors analyzed
        total_commits: Sum of commits across contributors
        gini_coefficient: Inequality of commit shares in [0, 1]; None when
            fewer than two contributors
        commit_std_dev: Population standard deviation of commit counts
        top_contributor: Contributor with the most commits
        contributors: Shares sorted by commit count, descending
        pattern: no_activity, solo, lone_wolf, balanced,
            moderate_imbalance or imbalanced
        pattern_description: Human-readable pattern explanation
    """

    total_contributors: int = 0
    total_commits: int = 0
    gini_coefficient: float | None = None
    commit_std_dev: float = 0.0
    top_contributor: ContributorShare | None = None
    contributors: list[ContributorShare] = Field(default_factory=list)
    pattern: str = "no_activity"
    pattern_description: str = ""


class DailyActivity(BaseModel):
    """One day of activity."""

    date: dt.date
    commits: int = Field(0, ge=0)
    additions: int = Field(0, ge=0)
    deletions: int = Field(0, ge=0)


class DayBreakdown(BaseModel):
    date: dt.date
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    percentage: float = 0.0


class VolumeAnalysis(BaseModel):
    """Temporal shape of activity over an observation window.

    Attributes:
        total_days: Length of the window in days (inclusive)
        active_days: Days with at least one commit
        total_commits: Commits inside the window
        total_additions: Lines added inside the window
        total_deletions: Lines deleted inside the window
        average_commits_per_day: total_commits / total_days
        max_daily_commits: Commits on the busiest day
        consistency_score: 0-100, higher is steadier
        last_day_percentage: Share of commits on the most recent observed day
        final_period_percentage: Share of commits in the final 20% of the window
        window_start: First day of the window
        window_end: Last day of the window
        pattern: no_activity, deadline_dumper, daily_builder,
            moderate_builder, burst_coder or sporadic
        pattern_description: Human-readable pattern explanation
        daily_breakdown: Observed days in date order
    """

    total_days: int = 0
    active_days: int = 0
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    average_commits_per_day: float = 0.0
    max_daily_commits: int = 0
    consistency_score: float = 0.0
    last_day_percentage: float = 0.0
    final_period_percentage: float = 0.0
    window_start: dt.date | None = None
    window_end: dt.date | None = None
    pattern: str = "no_activity"
    pattern_description: str = ""
    daily_breakdown: list[DayBreakdown] = Field(default_factory=list)


class ContributorVolumePattern(BaseModel):
    """A single contributor's work pattern and peak day."""

    identity: str
    pattern: str
    total_commits: int = 0
    daily_average: float = 0.0
    peak_day: dt.date | None = None
    peak_day_commits: int = 0
