"""Shared pytest fixtures for Commit Radar tests."""

import datetime as dt
from collections.abc import Generator
from datetime import datetime
from typing import Any

import pytest

from radar.analysis.models import DailyActivity
from radar.core.config import Settings
from radar.shared.models import (
    Alert,
    AlertType,
    CommitFact,
    CommitStats,
    Contributor,
    Installation,
    PushRecord,
    Repository,
    Severity,
    StreakStatus,
)


class InMemoryStore:
    """Record store double honoring the unique keys of the real schema.

    Commits are unique by SHA, contributors by (repository, email) and
    repositories by platform ID. Alerts are append-only.
    """

    def __init__(self) -> None:
        self.installations: dict[int, Installation] = {}
        self.repositories: dict[int, Repository] = {}
        self.commits: dict[str, CommitFact] = {}
        self.contributors: dict[tuple[int, str], Contributor] = {}
        self.push_events: list[tuple[int, PushRecord]] = []
        self.alerts: list[Alert] = []
        self._next_repo_id = 1
        self.fail_on_sha: set[str] = set()

    def _repo_id_for(self, repository: Repository) -> int:
        for repo_id, existing in self.repositories.items():
            if existing.github_id == repository.github_id:
                return repo_id
        repo_id = self._next_repo_id
        self._next_repo_id += 1
        return repo_id

    async def upsert_installation(self, installation: Installation) -> None:
        self.installations[installation.installation_id] = installation

    async def upsert_repository(self, repository: Repository) -> int:
        repo_id = self._repo_id_for(repository)
        existing = self.repositories.get(repo_id)
        update: dict[str, Any] = {"id": repo_id}
        if existing is not None:
            update.update(
                has_license=existing.has_license,
                license_spdx_id=existing.license_spdx_id,
                last_push_at=existing.last_push_at,
                last_activity_at=existing.last_activity_at,
                streak_status=existing.streak_status,
            )
        self.repositories[repo_id] = repository.model_copy(update=update)
        return repo_id

    async def record_push(self, repository: Repository, received_at: datetime) -> int:
        repo_id = await self.upsert_repository(repository)
        self.repositories[repo_id] = self.repositories[repo_id].model_copy(
            update={
                "last_push_at": received_at,
                "last_activity_at": received_at,
                "streak_status": StreakStatus.ACTIVE,
            }
        )
        return repo_id

    async def insert_push_event(self, repository_id: int, push: PushRecord) -> int:
        self.push_events.append((repository_id, push))
        return len(self.push_events)

    async def insert_commit(self, commit: CommitFact) -> bool:
        if commit.sha in self.fail_on_sha:
            raise RuntimeError(f"store failure for {commit.sha}")
        if commit.sha in self.commits:
            return False
        self.commits[commit.sha] = commit
        return True

    async def upsert_contributor(
        self, repository_id: int, contributor: Contributor, committed_at: datetime
    ) -> None:
        key = (repository_id, contributor.email)
        existing = self.contributors.get(key) or Contributor(email=contributor.email)
        self.contributors[key] = existing.merged_with(contributor, committed_at)

    async def insert_alert(self, alert: Alert) -> int:
        self.alerts.append(alert.model_copy(update={"id": len(self.alerts) + 1}))
        return len(self.alerts)

    async def update_streak_status(self, repository_id: int, status: StreakStatus) -> None:
        self.repositories[repository_id] = self.repositories[repository_id].model_copy(
            update={"streak_status": status}
        )

    async def update_license(
        self, repository_id: int, has_license: bool, spdx_id: str | None
    ) -> None:
        self.repositories[repository_id] = self.repositories[repository_id].model_copy(
            update={"has_license": has_license, "license_spdx_id": spdx_id}
        )

    async def get_repository_by_full_name(self, owner: str, name: str) -> Repository | None:
        for repo in self.repositories.values():
            if repo.owner.lower() == owner.lower() and repo.name.lower() == name.lower():
                return repo
        return None

    async def list_inactive_repositories(self, cutoff: datetime) -> list[Repository]:
        return [
            repo
            for repo in self.repositories.values()
            if repo.streak_status == StreakStatus.ACTIVE
            and repo.last_activity_at is not None
            and repo.last_activity_at < cutoff
        ]

    def _repo_commits(self, repository_id: int) -> list[CommitFact]:
        return [c for c in self.commits.values() if c.repository_id == repository_id]

    async def get_commit_stats(self, repository_id: int) -> CommitStats:
        commits = self._repo_commits(repository_id)
        return CommitStats(
            total_commits=len(commits),
            backdated_count=sum(1 for c in commits if c.is_backdated),
            conventional_count=sum(1 for c in commits if c.is_conventional),
            total_additions=sum(c.additions for c in commits),
            total_deletions=sum(c.deletions for c in commits),
        )

    async def count_alerts(
        self, repository_id: int
    ) -> tuple[dict[AlertType, int], dict[Severity, int]]:
        by_type: dict[AlertType, int] = {}
        by_severity: dict[Severity, int] = {}
        for alert in self.alerts:
            if alert.repository_id != repository_id:
                continue
            by_type[alert.alert_type] = by_type.get(alert.alert_type, 0) + 1
            if not alert.acknowledged:
                by_severity[alert.severity] = by_severity.get(alert.severity, 0) + 1
        return by_type, by_severity

    async def list_contributors(self, repository_id: int) -> list[Contributor]:
        found = [c for (rid, _), c in self.contributors.items() if rid == repository_id]
        return sorted(found, key=lambda c: (-c.total_commits, c.email))

    async def list_commit_messages(self, repository_id: int, limit: int = 1000) -> list[str]:
        return [c.message for c in self._repo_commits(repository_id)][:limit]

    @staticmethod
    def _bucket(commits: list[CommitFact]) -> list[DailyActivity]:
        days: dict[dt.date, DailyActivity] = {}
        for c in commits:
            day = c.author_date.astimezone(dt.UTC).date()
            bucket = days.setdefault(day, DailyActivity(date=day))
            bucket.commits += 1
            bucket.additions += c.additions
            bucket.deletions += c.deletions
        return [days[d] for d in sorted(days)]

    async def get_daily_activity(self, repository_id: int) -> list[DailyActivity]:
        return self._bucket(self._repo_commits(repository_id))

    async def get_contributor_daily_activity(
        self, repository_id: int
    ) -> dict[str, list[DailyActivity]]:
        grouped: dict[str, list[CommitFact]] = {}
        for c in self._repo_commits(repository_id):
            key = c.author_email or c.author_username or c.author_name
            grouped.setdefault(key, []).append(c)
        return {key: self._bucket(commits) for key, commits in grouped.items()}


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def mock_settings() -> Settings:
    """Settings instance with test values."""
    return Settings(
        webhook_secret="test_secret",
        backdate_suspicious_hours=24,
        backdate_critical_hours=72,
        log_level="INFO",
        app_version="0.1.0",
        environment="test",
    )


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the global settings cache before and after each test."""
    import radar.core.config

    radar.core.config._settings = None
    yield
    radar.core.config._settings = None
