"""PostgreSQL record store with connection pooling."""

import asyncio
import json
from datetime import datetime
from importlib import resources
from types import TracebackType
from typing import TYPE_CHECKING, Any, ClassVar

import asyncpg

from radar.analysis.models import DailyActivity
from radar.core.logging import get_logger
from radar.shared.exceptions import DatabaseError
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

if TYPE_CHECKING:
    from radar.core.config import Settings

logger = get_logger(__name__)

_REPOSITORY_COLUMNS = """
    id, github_id, installation_id, owner, name, full_name, default_branch,
    has_license, license_spdx_id, last_push_at, last_activity_at, streak_status
"""


def _row_to_repository(row: Any) -> Repository:
    return Repository(
        id=row["id"],
        github_id=row["github_id"],
        installation_id=row["installation_id"],
        owner=row["owner"],
        name=row["name"],
        full_name=row["full_name"],
        default_branch=row["default_branch"] or "main",
        has_license=bool(row["has_license"]),
        license_spdx_id=row["license_spdx_id"],
        last_push_at=row["last_push_at"],
        last_activity_at=row["last_activity_at"],
        streak_status=StreakStatus(row["streak_status"] or StreakStatus.ACTIVE),
    )


class DatabaseClient:
    """Async PostgreSQL record store.

    Write methods are used by the event router, streak monitor and license
    checker; read methods feed the scorecard. Commits are unique by SHA and
    contributors by (repository, email); alerts are append-only.
    """

    MAX_RETRIES: ClassVar[int] = 3
    RETRY_DELAYS: ClassVar[list[int]] = [2, 4, 8]

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings
        self.pool: asyncpg.Pool | None = None

    async def __aenter__(self) -> "DatabaseClient":
        """Create connection pool with retry logic."""
        settings = self.settings

        for attempt in range(self.MAX_RETRIES):
            try:
                self.pool = await asyncpg.create_pool(
                    host=settings.db_host,
                    port=settings.db_port,
                    database=settings.db_name,
                    user=settings.db_user,
                    password=settings.db_password,
                    min_size=2,
                    max_size=10,
                    timeout=60.0,
                )
                logger.info("database.pool.created", min_size=2, max_size=10)
                return self
            except (asyncpg.PostgresError, OSError) as e:
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning("database.pool.retry", attempt=attempt + 1, error=str(e))
                    await asyncio.sleep(self.RETRY_DELAYS[attempt])
                else:
                    logger.error("database.pool.failed", error=str(e), exc_info=True)
                    raise DatabaseError(f"Failed to create pool: {e}") from e
        raise DatabaseError("Unreachable")

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            logger.info("database.pool.closed")

    async def apply_schema(self) -> None:
        """Create tables and indexes that do not exist yet.

        Raises:
            DatabaseError: If connection pool is not initialized or DDL fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        ddl = resources.files("radar.core").joinpath("schema.sql").read_text()

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(ddl)
                logger.info("database.schema.applied")
        except asyncpg.PostgresError as e:
            logger.error("database.apply_schema.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to apply schema: {e}") from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_installation(self, installation: Installation) -> None:
        """Insert an installation or refresh its account details.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO installations (installation_id, account_login, account_type)
            VALUES ($1, $2, $3)
            ON CONFLICT (installation_id) DO UPDATE SET
                account_login = EXCLUDED.account_login,
                account_type = EXCLUDED.account_type,
                updated_at = NOW()
        """

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    query,
                    installation.installation_id,
                    installation.account_login,
                    installation.account_type,
                )
        except asyncpg.PostgresError as e:
            logger.error("database.upsert_installation.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to upsert installation: {e}") from e

    async def upsert_repository(self, repository: Repository) -> int:
        """Insert a repository or refresh its identity fields.

        Args:
            repository: Repository keyed by platform ID

        Returns:
            Internal repository ID

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO repositories (
                github_id, installation_id, owner, name, full_name, default_branch
            ) VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (github_id) DO UPDATE SET
                installation_id = COALESCE(EXCLUDED.installation_id, repositories.installation_id),
                owner = EXCLUDED.owner,
                name = EXCLUDED.name,
                full_name = EXCLUDED.full_name,
                default_branch = EXCLUDED.default_branch,
                updated_at = NOW()
            RETURNING id
        """

        try:
            async with self.pool.acquire() as conn:
                repository_id: int = await conn.fetchval(
                    query,
                    repository.github_id,
                    repository.installation_id,
                    repository.owner,
                    repository.name,
                    repository.full_name,
                    repository.default_branch,
                )
                return repository_id
        except asyncpg.PostgresError as e:
            logger.error("database.upsert_repository.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to upsert repository: {e}") from e

    async def record_push(self, repository: Repository, received_at: datetime) -> int:
        """Upsert the pushed repository and mark it active as of received_at.

        Args:
            repository: Repository carried by the push payload
            received_at: Push receipt time

        Returns:
            Internal repository ID

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO repositories (
                github_id, installation_id, owner, name, full_name, default_branch,
                last_push_at, last_activity_at, streak_status
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $7, 'active')
            ON CONFLICT (github_id) DO UPDATE SET
                installation_id = COALESCE(EXCLUDED.installation_id, repositories.installation_id),
                owner = EXCLUDED.owner,
                name = EXCLUDED.name,
                full_name = EXCLUDED.full_name,
                last_push_at = EXCLUDED.last_push_at,
                last_activity_at = EXCLUDED.last_activity_at,
                streak_status = 'active',
                updated_at = NOW()
            RETURNING id
        """

        try:
            async with self.pool.acquire() as conn:
                repository_id: int = await conn.fetchval(
                    query,
                    repository.github_id,
                    repository.installation_id,
                    repository.owner,
                    repository.name,
                    repository.full_name,
                    repository.default_branch,
                    received_at,
                )
                return repository_id
        except asyncpg.PostgresError as e:
            logger.error("database.record_push.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to record push: {e}") from e

    async def insert_push_event(self, repository_id: int, push: PushRecord) -> int:
        """Append a push audit row.

        Returns:
            Push event ID

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO push_events (
                repository_id, ref, before_sha, after_sha, forced, pusher_login,
                commit_count, distinct_count, received_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING id
        """

        try:
            async with self.pool.acquire() as conn:
                push_id: int = await conn.fetchval(
                    query,
                    repository_id,
                    push.ref,
                    push.before_sha,
                    push.after_sha,
                    push.forced,
                    push.pusher_login,
                    push.commit_count,
                    push.distinct_count,
                    push.received_at,
                )
                return push_id
        except asyncpg.PostgresError as e:
            logger.error("database.insert_push_event.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to insert push event: {e}") from e

    async def insert_commit(self, commit: CommitFact) -> bool:
        """Insert a commit fact.

        Args:
            commit: Commit with repository_id set

        Returns:
            True if inserted, False if the SHA was already stored

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO commits (
                repository_id, sha, message, author_email, author_name, author_username,
                author_date, pushed_at, additions, deletions, is_conventional,
                conventional_type, conventional_scope, is_breaking, is_backdated,
                backdate_hours
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
            ON CONFLICT (sha) DO NOTHING
            RETURNING id
        """

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    query,
                    commit.repository_id,
                    commit.sha,
                    commit.message,
                    commit.author_email,
                    commit.author_name,
                    commit.author_username,
                    commit.author_date,
                    commit.pushed_at,
                    commit.additions,
                    commit.deletions,
                    commit.is_conventional,
                    commit.conventional_type,
                    commit.conventional_scope,
                    commit.is_breaking,
                    commit.is_backdated,
                    commit.backdate_hours,
                )
                return row is not None
        except asyncpg.PostgresError as e:
            logger.error(
                "database.insert_commit.failed", sha=commit.short_sha, error=str(e), exc_info=True
            )
            raise DatabaseError(f"Failed to insert commit: {e}") from e

    async def upsert_contributor(
        self, repository_id: int, contributor: Contributor, committed_at: datetime
    ) -> None:
        """Count one more commit for a contributor.

        Login and name keep the first non-empty value seen.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO contributors (
                repository_id, email, github_login, name, total_commits,
                total_additions, total_deletions, first_commit_at, last_commit_at
            ) VALUES ($1, $2, NULLIF($3, ''), NULLIF($4, ''), 1, $5, $6, $7, $7)
            ON CONFLICT (repository_id, email) DO UPDATE SET
                github_login = COALESCE(NULLIF(contributors.github_login, ''), EXCLUDED.github_login),
                name = COALESCE(NULLIF(contributors.name, ''), EXCLUDED.name),
                total_commits = contributors.total_commits + 1,
                total_additions = contributors.total_additions + EXCLUDED.total_additions,
                total_deletions = contributors.total_deletions + EXCLUDED.total_deletions,
                first_commit_at = LEAST(contributors.first_commit_at, EXCLUDED.first_commit_at),
                last_commit_at = GREATEST(contributors.last_commit_at, EXCLUDED.last_commit_at),
                updated_at = NOW()
        """

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    query,
                    repository_id,
                    contributor.email,
                    contributor.login,
                    contributor.name,
                    contributor.total_additions,
                    contributor.total_deletions,
                    committed_at,
                )
        except asyncpg.PostgresError as e:
            logger.error("database.upsert_contributor.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to upsert contributor: {e}") from e

    async def insert_alert(self, alert: Alert) -> int:
        """Append an alert.

        Returns:
            Alert ID

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO alerts (
                repository_id, commit_sha, alert_type, severity, title, description, metadata
            ) VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
            RETURNING id
        """

        try:
            async with self.pool.acquire() as conn:
                alert_id: int = await conn.fetchval(
                    query,
                    alert.repository_id,
                    alert.commit_sha,
                    alert.alert_type.value,
                    alert.severity.value,
                    alert.title,
                    alert.description,
                    json.dumps(alert.metadata, default=str),
                )
                logger.info(
                    "database.alert.inserted",
                    alert_type=alert.alert_type.value,
                    severity=alert.severity.value,
                    repository_id=alert.repository_id,
                )
                return alert_id
        except asyncpg.PostgresError as e:
            logger.error("database.insert_alert.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to insert alert: {e}") from e

    async def update_streak_status(self, repository_id: int, status: StreakStatus) -> None:
        """Set a repository's streak status.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            UPDATE repositories SET streak_status = $2, updated_at = NOW()
            WHERE id = $1
        """

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(query, repository_id, status.value)
        except asyncpg.PostgresError as e:
            logger.error("database.update_streak_status.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to update streak status: {e}") from e

    async def update_license(
        self, repository_id: int, has_license: bool, spdx_id: str | None
    ) -> None:
        """Record whether a repository has a license.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            UPDATE repositories
            SET has_license = $2, license_spdx_id = $3, updated_at = NOW()
            WHERE id = $1
        """

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(query, repository_id, has_license, spdx_id)
        except asyncpg.PostgresError as e:
            logger.error("database.update_license.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to update license: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_repository_by_full_name(self, owner: str, name: str) -> Repository | None:
        """Look up a repository by owner and name (case-insensitive).

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = f"""
            SELECT {_REPOSITORY_COLUMNS}
            FROM repositories
            WHERE LOWER(owner) = LOWER($1) AND LOWER(name) = LOWER($2)
            ORDER BY id
            LIMIT 1
        """

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, owner, name)
                return _row_to_repository(row) if row else None
        except asyncpg.PostgresError as e:
            logger.error("database.get_repository.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to get repository: {e}") from e

    async def list_inactive_repositories(self, cutoff: datetime) -> list[Repository]:
        """List active-streak repositories with no activity since cutoff.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = f"""
            SELECT {_REPOSITORY_COLUMNS}
            FROM repositories
            WHERE streak_status = 'active'
              AND last_activity_at IS NOT NULL
              AND last_activity_at < $1
            ORDER BY last_activity_at
        """

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, cutoff)
                return [_row_to_repository(row) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error("database.list_inactive.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to list inactive repositories: {e}") from e

    async def get_commit_stats(self, repository_id: int) -> CommitStats:
        """Commit counters for a repository.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            SELECT
                COUNT(*) AS total_commits,
                COUNT(*) FILTER (WHERE is_backdated) AS backdated_count,
                COUNT(*) FILTER (WHERE is_conventional) AS conventional_count,
                COALESCE(SUM(additions), 0) AS total_additions,
                COALESCE(SUM(deletions), 0) AS total_deletions
            FROM commits
            WHERE repository_id = $1
        """

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, repository_id)
                return CommitStats(**dict(row))
        except asyncpg.PostgresError as e:
            logger.error("database.get_commit_stats.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to get commit stats: {e}") from e

    async def count_alerts(
        self, repository_id: int
    ) -> tuple[dict[AlertType, int], dict[Severity, int]]:
        """Count alerts by type (all) and by severity (unacknowledged only).

        Returns:
            (counts by alert type, counts by severity)

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        by_type_query = """
            SELECT alert_type, COUNT(*) AS count
            FROM alerts WHERE repository_id = $1
            GROUP BY alert_type
        """
        by_severity_query = """
            SELECT severity, COUNT(*) AS count
            FROM alerts WHERE repository_id = $1 AND acknowledged = FALSE
            GROUP BY severity
        """

        try:
            async with self.pool.acquire() as conn:
                type_rows = await conn.fetch(by_type_query, repository_id)
                severity_rows = await conn.fetch(by_severity_query, repository_id)
        except asyncpg.PostgresError as e:
            logger.error("database.count_alerts.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to count alerts: {e}") from e

        by_type: dict[AlertType, int] = {}
        for row in type_rows:
            try:
                by_type[AlertType(row["alert_type"])] = row["count"]
            except ValueError:
                logger.warning("database.alert_type.unknown", alert_type=row["alert_type"])

        by_severity: dict[Severity, int] = {}
        for row in severity_rows:
            try:
                by_severity[Severity(row["severity"])] = row["count"]
            except ValueError:
                logger.warning("database.severity.unknown", severity=row["severity"])

        return by_type, by_severity

    async def list_contributors(self, repository_id: int) -> list[Contributor]:
        """List contributor aggregates, most commits first.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            SELECT email, COALESCE(github_login, '') AS login, COALESCE(name, '') AS name,
                   total_commits, total_additions, total_deletions,
                   first_commit_at, last_commit_at
            FROM contributors
            WHERE repository_id = $1
            ORDER BY total_commits DESC, email
        """

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, repository_id)
                return [Contributor(**dict(row)) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error("database.list_contributors.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to list contributors: {e}") from e

    async def list_commit_messages(self, repository_id: int, limit: int = 1000) -> list[str]:
        """Most recent commit messages for quality analysis.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            SELECT COALESCE(message, '') AS message
            FROM commits
            WHERE repository_id = $1
            ORDER BY author_date DESC
            LIMIT $2
        """

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, repository_id, limit)
                return [row["message"] for row in rows]
        except asyncpg.PostgresError as e:
            logger.error("database.list_commit_messages.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to list commit messages: {e}") from e

    async def get_daily_activity(self, repository_id: int) -> list[DailyActivity]:
        """Commits per UTC calendar day of author date.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            SELECT (author_date AT TIME ZONE 'UTC')::date AS day,
                   COUNT(*) AS commits,
                   COALESCE(SUM(additions), 0) AS additions,
                   COALESCE(SUM(deletions), 0) AS deletions
            FROM commits
            WHERE repository_id = $1
            GROUP BY day
            ORDER BY day
        """

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, repository_id)
                return [
                    DailyActivity(
                        date=row["day"],
                        commits=row["commits"],
                        additions=row["additions"],
                        deletions=row["deletions"],
                    )
                    for row in rows
                ]
        except asyncpg.PostgresError as e:
            logger.error("database.get_daily_activity.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to get daily activity: {e}") from e

    async def get_contributor_daily_activity(
        self, repository_id: int
    ) -> dict[str, list[DailyActivity]]:
        """Commits per UTC calendar day, keyed by author email.

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            SELECT COALESCE(NULLIF(author_email, ''), NULLIF(author_username, ''), author_name, '') AS email,
                   (author_date AT TIME ZONE 'UTC')::date AS day,
                   COUNT(*) AS commits,
                   COALESCE(SUM(additions), 0) AS additions,
                   COALESCE(SUM(deletions), 0) AS deletions
            FROM commits
            WHERE repository_id = $1
            GROUP BY email, day
            ORDER BY email, day
        """

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, repository_id)
        except asyncpg.PostgresError as e:
            logger.error("database.get_contributor_activity.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to get contributor activity: {e}") from e

        activity: dict[str, list[DailyActivity]] = {}
        for row in rows:
            activity.setdefault(row["email"], []).append(
                DailyActivity(
                    date=row["day"],
                    commits=row["commits"],
                    additions=row["additions"],
                    deletions=row["deletions"],
                )
            )
        return activity
