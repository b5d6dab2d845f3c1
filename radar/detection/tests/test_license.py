"""Tests for the license checker."""

from unittest.mock import AsyncMock

import pytest

from radar.detection.license import LicenseChecker
from radar.shared.exceptions import GitHubAPIError
from radar.shared.models import AlertType, Repository, Severity


def _repo() -> Repository:
    return Repository(github_id=7, owner="acme", name="widget", full_name="acme/widget")


@pytest.mark.asyncio
async def test_missing_license_raises_info_alert(store) -> None:
    repo_id = await store.upsert_repository(_repo())
    client = AsyncMock()
    client.get_license.return_value = None

    result = await LicenseChecker(client, store).check(store.repositories[repo_id])

    assert result is False
    assert store.repositories[repo_id].has_license is False
    assert len(store.alerts) == 1
    assert store.alerts[0].alert_type == AlertType.NO_LICENSE
    assert store.alerts[0].severity == Severity.INFO
    client.get_license.assert_awaited_once_with("acme", "widget")


@pytest.mark.asyncio
async def test_present_license_is_recorded(store) -> None:
    repo_id = await store.upsert_repository(_repo())
    client = AsyncMock()
    client.get_license.return_value = "MIT"

    result = await LicenseChecker(client, store).check(store.repositories[repo_id])

    assert result is True
    assert store.repositories[repo_id].has_license is True
    assert store.repositories[repo_id].license_spdx_id == "MIT"
    assert store.alerts == []


@pytest.mark.asyncio
async def test_api_failure_is_logged_not_raised(store) -> None:
    repo_id = await store.upsert_repository(_repo())
    client = AsyncMock()
    client.get_license.side_effect = GitHubAPIError("API error: 500")

    result = await LicenseChecker(client, store).check(store.repositories[repo_id])

    assert result is None
    assert store.alerts == []


@pytest.mark.asyncio
async def test_unsaved_repository_is_skipped() -> None:
    client = AsyncMock()

    result = await LicenseChecker(client, AsyncMock()).check(_repo())

    assert result is None
    client.get_license.assert_not_awaited()
