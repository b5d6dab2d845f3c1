"""Tests for service wiring in radar.main."""

import asyncio
import signal
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import radar.main
from radar.core.config import Settings
from radar.detection.license import LicenseChecker
from radar.main import build_router, shutdown, startup


@pytest.fixture(autouse=True)
def reset_components() -> Generator[None, None, None]:
    yield
    radar.main.database_client = None
    radar.main.github_client = None
    radar.main.streak_monitor = None
    radar.main.webhook_server = None


def test_build_router_uses_configured_thresholds(store) -> None:
    settings = Settings(
        _env_file=None,
        backdate_suspicious_hours=6,
        backdate_critical_hours=12,
        alert_on_non_conventional=True,
    )

    router = build_router(settings, store)

    assert router.store is store
    assert router.detector.suspicious_hours == 6
    assert router.detector.critical_hours == 12
    assert router.flag_non_conventional is True
    assert router.license_checker is None


@pytest.mark.asyncio
async def test_startup_wires_components_without_github_token() -> None:
    settings = Settings(_env_file=None, webhook_secret="s3cret", server_port=9000)

    with (
        patch("radar.main.get_settings", return_value=settings),
        patch("radar.main.DatabaseClient") as mock_db_cls,
        patch("radar.main.GitHubClient") as mock_github_cls,
        patch("radar.main.StreakMonitor") as mock_monitor_cls,
        patch("radar.main.WebhookServer") as mock_server_cls,
    ):
        db = MagicMock()
        db.__aenter__ = AsyncMock(return_value=db)
        db.apply_schema = AsyncMock()
        mock_db_cls.return_value = db
        mock_monitor_cls.return_value.start = AsyncMock()
        mock_server_cls.return_value.start = AsyncMock()

        await startup()

        db.apply_schema.assert_awaited_once()
        mock_github_cls.assert_not_called()
        mock_monitor_cls.assert_called_once_with(db, inactivity_hours=72, interval_minutes=60)
        mock_monitor_cls.return_value.start.assert_awaited_once()

        server_kwargs = mock_server_cls.call_args.kwargs
        assert server_kwargs["port"] == 9000
        assert server_kwargs["verifier"].enabled is True
        assert server_kwargs["router"].license_checker is None
        assert server_kwargs["scorecards"] is not None


@pytest.mark.asyncio
async def test_startup_enables_license_checks_with_token() -> None:
    settings = Settings(_env_file=None, github_token="ghp_test")

    with (
        patch("radar.main.get_settings", return_value=settings),
        patch("radar.main.DatabaseClient") as mock_db_cls,
        patch("radar.main.GitHubClient") as mock_github_cls,
        patch("radar.main.StreakMonitor") as mock_monitor_cls,
        patch("radar.main.WebhookServer") as mock_server_cls,
    ):
        db = MagicMock()
        db.__aenter__ = AsyncMock(return_value=db)
        db.apply_schema = AsyncMock()
        mock_db_cls.return_value = db
        mock_github_cls.return_value.__aenter__ = AsyncMock()
        mock_monitor_cls.return_value.start = AsyncMock()
        mock_server_cls.return_value.start = AsyncMock()

        await startup()

        mock_github_cls.assert_called_once_with("ghp_test")
        checker = mock_server_cls.call_args.kwargs["router"].license_checker
        assert isinstance(checker, LicenseChecker)


@pytest.mark.asyncio
async def test_shutdown_stops_components_in_order() -> None:
    calls: list[str] = []

    server = MagicMock()
    server.stop = AsyncMock(side_effect=lambda: calls.append("server"))
    monitor = MagicMock()
    monitor.stop = AsyncMock(side_effect=lambda: calls.append("monitor"))
    db = MagicMock()
    db.__aexit__ = AsyncMock(side_effect=lambda *_: calls.append("database"))

    radar.main.webhook_server = server
    radar.main.streak_monitor = monitor
    radar.main.database_client = db

    await shutdown()

    assert calls == ["server", "monitor", "database"]


def test_signal_requests_stop() -> None:
    stop_requested = asyncio.Event()

    radar.main._request_stop(signal.SIGTERM, stop_requested)

    assert stop_requested.is_set()
