"""Webhook event routing: turn a verified payload into facts and alerts.

Routing happens in two steps. ``route_event`` is pure: it decodes the body,
runs the detectors and returns a ``RoutedEvent`` plan. ``EventRouter`` applies
that plan to the record store, one commit at a time in payload order, so a
failure on one commit never stops its siblings.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError

from radar.analysis.conventional import parse_conventional_commit
from radar.core.logging import get_logger
from radar.detection.backdate import BackdateDetector
from radar.shared.exceptions import PayloadError
from radar.shared.models import (
    Alert,
    AlertType,
    CommitFact,
    Contributor,
    Installation,
    PushRecord,
    Repository,
    Severity,
    ensure_utc,
)
from radar.webhook.payloads import (
    InstallationPayload,
    InstallationRepositoriesPayload,
    PushCommit,
    PushPayload,
    decode_payload,
)

if TYPE_CHECKING:
    from radar.core.database import DatabaseClient
    from radar.detection.license import LicenseChecker

logger = get_logger(__name__)

PUSH = "push"
INSTALLATION = "installation"
INSTALLATION_REPOSITORIES = "installation_repositories"
PING = "ping"


class CommitPlan(BaseModel):
    """Everything to persist for one commit of a push."""

    commit: CommitFact
    contributor: Contributor
    alerts: list[Alert] = Field(default_factory=list)


class RoutedEvent(BaseModel):
    """Facts and alerts derived from one webhook delivery.

    Attributes:
        event_type: Declared event type
        received_at: Wall-clock receipt time used for backdate computation
        action: Payload action for installation events
        ignored: True for event types or actions with nothing to persist
        installation: Installation to upsert
        repositories: Repositories to upsert (installation events)
        removed_repositories: Full names removed from an installation
        push_repository: Repository receiving a push
        push: Push summary
        commits: Per-commit plans in payload order
        alerts: Push-level alerts (force push)
        skipped_commits: Commits that could not be planned, by SHA or index
    """

    event_type: str
    received_at: datetime
    action: str | None = None
    ignored: bool = False
    installation: Installation | None = None
    repositories: list[Repository] = Field(default_factory=list)
    removed_repositories: list[str] = Field(default_factory=list)
    push_repository: Repository | None = None
    push: PushRecord | None = None
    commits: list[CommitPlan] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    skipped_commits: list[str] = Field(default_factory=list)


class RouteResult(BaseModel):
    """What applying a RoutedEvent to the store actually changed."""

    routed: RoutedEvent
    commits_created: int = 0
    commits_duplicate: int = 0
    commits_failed: int = 0
    alerts_created: int = 0
    repositories_stored: int = 0


def _contributor_key(author: Any) -> str:
    return author.email or author.username or author.name


def _plan_commit(
    commit: PushCommit,
    received_at: datetime,
    detector: BackdateDetector,
    flag_non_conventional: bool,
) -> CommitPlan:
    backdate = detector.analyze(commit.timestamp, received_at)
    conventional = parse_conventional_commit(commit.message)

    fact = CommitFact(
        sha=commit.id,
        message=commit.message,
        author_email=commit.author.email,
        author_name=commit.author.name,
        author_username=commit.author.username,
        author_date=commit.timestamp,
        pushed_at=received_at,
        is_conventional=conventional.is_valid,
        conventional_type=conventional.type,
        conventional_scope=conventional.scope,
        is_breaking=conventional.is_breaking,
        is_backdated=backdate.is_flagged,
        backdate_hours=backdate.difference_hours,
    )

    alerts: list[Alert] = []
    backdate_alert = detector.build_alert(backdate, commit.id)
    if backdate_alert is not None:
        alerts.append(backdate_alert)

    if flag_non_conventional and not conventional.is_valid:
        alerts.append(
            Alert(
                commit_sha=commit.id,
                alert_type=AlertType.NON_CONVENTIONAL_COMMIT,
                severity=Severity.INFO,
                title="Non-conventional commit message",
                description="Commit message does not follow the type(scope): description format",
                metadata={"first_line": commit.message.split("\n", 1)[0][:200]},
            )
        )

    contributor = Contributor(
        email=_contributor_key(commit.author),
        login=commit.author.username,
        name=commit.author.name,
    )
    return CommitPlan(commit=fact, contributor=contributor, alerts=alerts)


def _route_push(
    body: bytes,
    routed: RoutedEvent,
    detector: BackdateDetector,
    flag_non_conventional: bool,
) -> RoutedEvent:
    payload = decode_payload(body, PushPayload)
    received_at = routed.received_at

    routed.push_repository = payload.repository.to_repository(payload.installation_id)
    routed.push = PushRecord(
        ref=payload.ref,
        before_sha=payload.before,
        after_sha=payload.after,
        forced=payload.forced,
        pusher_login=payload.pusher.name,
        commit_count=len(payload.commits),
        distinct_count=sum(1 for c in payload.commits if c.get("distinct", True)),
        received_at=received_at,
    )

    for index, raw_commit in enumerate(payload.commits):
        ref = str(raw_commit.get("id") or f"#{index}")
        try:
            commit = PushCommit.model_validate(raw_commit)
            routed.commits.append(
                _plan_commit(commit, received_at, detector, flag_non_conventional)
            )
        except (ValidationError, ValueError, TypeError) as e:
            logger.error("router.commit.invalid", sha=ref, error=str(e))
            routed.skipped_commits.append(ref)

    if payload.forced:
        routed.alerts.append(
            Alert(
                alert_type=AlertType.FORCE_PUSH,
                severity=Severity.WARNING,
                title="Force push detected",
                description="Repository history was rewritten",
                metadata={
                    "ref": payload.ref,
                    "before": payload.before,
                    "after": payload.after,
                    "pusher": payload.pusher.name,
                },
            )
        )

    return routed


def _route_installation(body: bytes, routed: RoutedEvent) -> RoutedEvent:
    payload = decode_payload(body, InstallationPayload)
    routed.action = payload.action

    if payload.action != "created":
        # Cleanup on deletion belongs to the store, not the router
        routed.ignored = True
        return routed

    routed.installation = payload.installation.to_installation()
    routed.repositories = [
        repo.to_repository(payload.installation.id) for repo in payload.repositories
    ]
    return routed


def _route_installation_repositories(body: bytes, routed: RoutedEvent) -> RoutedEvent:
    payload = decode_payload(body, InstallationRepositoriesPayload)
    routed.action = payload.action
    routed.repositories = [
        repo.to_repository(payload.installation.id) for repo in payload.repositories_added
    ]
    routed.removed_repositories = [repo.full_name for repo in payload.repositories_removed]
    return routed


def route_event(
    event_type: str,
    body: bytes,
    received_at: datetime,
    detector: BackdateDetector,
    flag_non_conventional: bool = False,
) -> RoutedEvent:
    """Derive the facts and alerts carried by one webhook delivery.

    Args:
        event_type: Value of the X-GitHub-Event header
        body: Raw (already verified) request body
        received_at: Receipt time of the request; naive values are UTC
        detector: Backdate detector with configured thresholds
        flag_non_conventional: Raise info alerts for non-conventional messages

    Returns:
        RoutedEvent plan; unknown event types come back with ignored=True

    Raises:
        PayloadError: If the body of a handled event type is malformed
    """
    routed = RoutedEvent(event_type=event_type, received_at=ensure_utc(received_at))

    if event_type == PUSH:
        return _route_push(body, routed, detector, flag_non_conventional)
    if event_type == INSTALLATION:
        return _route_installation(body, routed)
    if event_type == INSTALLATION_REPOSITORIES:
        return _route_installation_repositories(body, routed)

    routed.ignored = True
    return routed


class EventRouter:
    """Applies routed webhook events to the record store.

    Attributes:
        store: Record store (DatabaseClient or compatible)
        detector: Backdate detector
        flag_non_conventional: Raise info alerts for non-conventional commits
        license_checker: Optional license checker for newly stored repositories
    """

    def __init__(
        self,
        store: "DatabaseClient",
        detector: BackdateDetector,
        flag_non_conventional: bool = False,
        license_checker: "LicenseChecker | None" = None,
    ) -> None:
        self.store = store
        self.detector = detector
        self.flag_non_conventional = flag_non_conventional
        self.license_checker = license_checker

    async def handle(
        self,
        event_type: str,
        body: bytes,
        received_at: datetime | None = None,
        delivery_id: str = "",
    ) -> RouteResult | None:
        """Process one verified webhook delivery.

        Args:
            event_type: Value of the X-GitHub-Event header
            body: Raw request body
            received_at: Receipt time; stamped now when not supplied
            delivery_id: Value of the X-GitHub-Delivery header

        Returns:
            RouteResult, or None when the payload was malformed and dropped
        """
        # Stamp receipt before any parsing so processing latency never
        # inflates backdate durations
        received_at = received_at or datetime.now(UTC)

        try:
            routed = route_event(
                event_type,
                body,
                received_at,
                self.detector,
                flag_non_conventional=self.flag_non_conventional,
            )
        except PayloadError as e:
            logger.error(
                "router.payload.invalid",
                event_type=event_type,
                delivery_id=delivery_id,
                error=str(e),
            )
            return None

        result = RouteResult(routed=routed)

        if event_type == PING:
            logger.info("router.ping.received", delivery_id=delivery_id)
            return result

        if routed.ignored:
            logger.info(
                "router.event.ignored",
                event_type=event_type,
                action=routed.action,
                delivery_id=delivery_id,
            )
            return result

        if routed.push_repository is not None and routed.push is not None:
            await self._apply_push(routed, routed.push_repository, routed.push, result)
        else:
            await self._apply_installation(routed, result)

        return result

    async def _apply_push(
        self,
        routed: RoutedEvent,
        repo: Repository,
        push: PushRecord,
        result: RouteResult,
    ) -> None:
        logger.info(
            "router.push.processing",
            repo=repo.full_name,
            ref=push.ref,
            commits=len(routed.commits),
            forced=push.forced,
            pusher=push.pusher_login,
        )

        try:
            repository_id = await self.store.record_push(repo, push.received_at)
        except Exception as e:
            logger.error("router.push.store_failed", repo=repo.full_name, error=str(e), exc_info=True)
            return

        try:
            await self.store.insert_push_event(repository_id, push)
        except Exception as e:
            logger.error("router.push_event.failed", repo=repo.full_name, error=str(e), exc_info=True)

        for plan in routed.commits:
            sha = plan.commit.sha
            try:
                created = await self.store.insert_commit(
                    plan.commit.model_copy(update={"repository_id": repository_id})
                )
                if not created:
                    result.commits_duplicate += 1
                    logger.debug("router.commit.duplicate", sha=sha)
                    continue

                result.commits_created += 1
                await self.store.upsert_contributor(
                    repository_id, plan.contributor, routed.received_at
                )
                for alert in plan.alerts:
                    await self.store.insert_alert(
                        alert.model_copy(update={"repository_id": repository_id})
                    )
                    result.alerts_created += 1
            except Exception as e:
                result.commits_failed += 1
                logger.error("router.commit.failed", sha=sha, error=str(e), exc_info=True)

        for alert in routed.alerts:
            try:
                await self.store.insert_alert(
                    alert.model_copy(update={"repository_id": repository_id})
                )
                result.alerts_created += 1
            except Exception as e:
                logger.error(
                    "router.alert.failed",
                    alert_type=alert.alert_type.value,
                    error=str(e),
                    exc_info=True,
                )

    async def _apply_installation(self, routed: RoutedEvent, result: RouteResult) -> None:
        if routed.installation is not None:
            logger.info(
                "router.installation.created",
                installation_id=routed.installation.installation_id,
                account=routed.installation.account_login,
            )
            try:
                await self.store.upsert_installation(routed.installation)
            except Exception as e:
                logger.error("router.installation.store_failed", error=str(e), exc_info=True)

        for repo in routed.repositories:
            try:
                repository_id = await self.store.upsert_repository(repo)
                result.repositories_stored += 1
            except Exception as e:
                logger.error(
                    "router.repository.store_failed", repo=repo.full_name, error=str(e), exc_info=True
                )
                continue

            if self.license_checker is not None:
                await self.license_checker.check(repo.model_copy(update={"id": repository_id}))

        for full_name in routed.removed_repositories:
            logger.info("router.repository.removed", repo=full_name)
