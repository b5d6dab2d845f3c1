"""License presence check for newly monitored repositories."""

from typing import TYPE_CHECKING

from radar.core.logging import get_logger
from radar.shared.models import Alert, AlertType, Repository, Severity

if TYPE_CHECKING:
    from radar.core.database import DatabaseClient
    from radar.github.client import GitHubClient

logger = get_logger(__name__)


class LicenseChecker:
    """Records license presence and raises an info alert when missing."""

    def __init__(self, client: "GitHubClient", store: "DatabaseClient") -> None:
        self.client = client
        self.store = store

    async def check(self, repository: Repository) -> bool | None:
        """Look up the repository license and record the outcome.

        Args:
            repository: Stored repository (id must be set)

        Returns:
            True/False for license presence, None if the check failed
        """
        if repository.id is None:
            return None

        try:
            spdx_id = await self.client.get_license(repository.owner, repository.name)
            has_license = spdx_id is not None
            await self.store.update_license(repository.id, has_license, spdx_id)

            if not has_license:
                await self.store.insert_alert(
                    Alert(
                        repository_id=repository.id,
                        alert_type=AlertType.NO_LICENSE,
                        severity=Severity.INFO,
                        title="No license found",
                        description="Repository does not have a license file",
                        metadata={"repo": repository.full_name},
                    )
                )

            logger.info(
                "license.check.completed",
                repo=repository.full_name,
                has_license=has_license,
                spdx_id=spdx_id,
            )
            return has_license
        except Exception as e:
            logger.error(
                "license.check.failed", repo=repository.full_name, error=str(e), exc_info=True
            )
            return None
