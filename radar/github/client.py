"""Minimal GitHub REST client for repository metadata lookups."""

import asyncio
from typing import Any

import aiohttp

from radar.core.logging import get_logger
from radar.shared.exceptions import GitHubAPIError

logger = get_logger(__name__)

API_ROOT = "https://api.github.com"
UNKNOWN_LICENSE = "NOASSERTION"


class GitHubClient:
    """Read-only GitHub API access used by the license check.

    Network failures are retried with exponential backoff. HTTP error
    statuses are not retried; callers decide what a 404 means.

    Attributes:
        MAX_RETRIES: Attempts per request before giving up
        RETRY_DELAYS: Seconds to wait before each retry
    """

    MAX_RETRIES = 3
    RETRY_DELAYS = [2, 4, 8]

    def __init__(self, token: str) -> None:
        self.token = token
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "GitHubClient":
        self.session = aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "commit-radar",
            }
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self.session:
            await self.session.close()

    async def _get(self, path: str) -> tuple[int, dict[str, Any]]:
        """GET an API path and return (status, JSON body).

        The body is empty for anything but 200. Rate-limit responses raise.

        Raises:
            GitHubAPIError: On rate limiting, missing session, or network
                failure after all retries
        """
        if not self.session:
            raise GitHubAPIError("Session not initialized")

        url = f"{API_ROOT}{path}"
        last_error: aiohttp.ClientError | None = None

        for attempt in range(self.MAX_RETRIES):
            if attempt > 0:
                await asyncio.sleep(self.RETRY_DELAYS[attempt - 1])
            try:
                async with self.session.get(url) as response:
                    if response.status == 200:
                        return 200, await response.json()

                    remaining = response.headers.get("x-ratelimit-remaining")
                    if response.status == 429 or (response.status == 403 and remaining == "0"):
                        logger.warning(
                            "github.ratelimit.hit",
                            path=path,
                            status=response.status,
                            reset=response.headers.get("x-ratelimit-reset"),
                        )
                        raise GitHubAPIError(f"Rate limited: {response.status}")
                    return response.status, {}
            except aiohttp.ClientError as e:
                last_error = e
                logger.warning(
                    "github.request.retry", path=path, attempt=attempt + 1, error=str(e)
                )

        raise GitHubAPIError(f"Network error: {last_error}") from last_error

    async def get_license(self, owner: str, repo: str) -> str | None:
        """Fetch the SPDX identifier of a repository's license.

        Returns:
            SPDX identifier (``NOASSERTION`` when GitHub cannot classify the
            license), or None when the repository has no license file

        Raises:
            GitHubAPIError: If the lookup fails for any other reason
        """
        status, data = await self._get(f"/repos/{owner}/{repo}/license")

        if status == 404:
            logger.info("github.license.not_found", owner=owner, repo=repo)
            return None
        if status != 200:
            raise GitHubAPIError(f"API error: {status}")

        license_info = data.get("license") or {}
        spdx_id: str = license_info.get("spdx_id") or UNKNOWN_LICENSE
        return spdx_id
