"""Commit Radar main entry point."""

import asyncio
import signal
import sys

from radar.core.config import Settings, get_settings
from radar.core.database import DatabaseClient
from radar.core.logging import get_logger, setup_logging
from radar.detection.backdate import BackdateDetector
from radar.detection.license import LicenseChecker
from radar.detection.streaks import StreakMonitor
from radar.github.client import GitHubClient
from radar.scorecard.aggregator import ScorecardService
from radar.shared.exceptions import ConfigError
from radar.webhook.router import EventRouter
from radar.webhook.server import WebhookServer
from radar.webhook.signature import SignatureVerifier

logger = get_logger(__name__)

# Module-level variables for lifecycle management
database_client: DatabaseClient | None = None
github_client: GitHubClient | None = None
streak_monitor: StreakMonitor | None = None
webhook_server: WebhookServer | None = None


def build_router(
    settings: Settings,
    store: DatabaseClient,
    license_checker: LicenseChecker | None = None,
) -> EventRouter:
    """Wire an EventRouter from configuration values."""
    detector = BackdateDetector(
        suspicious_hours=settings.backdate_suspicious_hours,
        critical_hours=settings.backdate_critical_hours,
    )
    return EventRouter(
        store,
        detector,
        flag_non_conventional=settings.alert_on_non_conventional,
        license_checker=license_checker,
    )


async def startup() -> None:
    """Initialize all components."""
    global database_client, github_client, streak_monitor, webhook_server

    settings = get_settings()
    logger.info(
        "application.starting",
        version=settings.app_version,
        environment=settings.environment,
    )

    database_client = DatabaseClient(settings)
    await database_client.__aenter__()
    await database_client.apply_schema()

    license_checker: LicenseChecker | None = None
    if settings.license_checks_enabled:
        github_client = GitHubClient(settings.github_token)
        await github_client.__aenter__()
        license_checker = LicenseChecker(github_client, database_client)
        logger.info("license.checks.enabled")

    streak_monitor = StreakMonitor(
        database_client,
        inactivity_hours=settings.streak_inactivity_hours,
        interval_minutes=settings.streak_check_interval_minutes,
    )
    await streak_monitor.start()

    webhook_server = WebhookServer(
        host=settings.server_host,
        port=settings.server_port,
        router=build_router(settings, database_client, license_checker),
        verifier=SignatureVerifier(settings.webhook_secret),
        scorecards=ScorecardService(database_client),
    )
    await webhook_server.start()

    logger.info("application.startup.completed")


async def shutdown() -> None:
    """Gracefully shutdown all components."""
    logger.info("application.shutdown.started")

    if webhook_server:
        await webhook_server.stop()

    if streak_monitor:
        await streak_monitor.stop()

    if github_client:
        await github_client.__aexit__(None, None, None)

    if database_client:
        await database_client.__aexit__(None, None, None)

    logger.info("application.shutdown.completed")


def _request_stop(sig: int, stop_requested: asyncio.Event) -> None:
    logger.info("application.signal.received", signal=signal.Signals(sig).name)
    stop_requested.set()


async def main() -> None:
    """Serve until SIGINT or SIGTERM arrives, then shut down."""
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _request_stop, sig, stop_requested)

    try:
        await startup()
        await stop_requested.wait()
    except Exception as e:
        logger.error("application.error.fatal", error=str(e), exc_info=True)
        raise
    finally:
        await shutdown()


def run() -> None:
    """Entry point for running the service."""
    try:
        settings = get_settings()
        setup_logging(log_level=settings.log_level)
        asyncio.run(main())

    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
