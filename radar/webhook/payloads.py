"""Pydantic models for the GitHub webhook payloads the router understands.

Only the fields the router reads are modeled; everything else in a payload is
ignored. Push commits are kept as raw dictionaries at the event level and
validated one by one, so a single malformed commit does not reject the push.
"""

import json
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from radar.shared.exceptions import PayloadError
from radar.shared.models import Installation, Repository, ensure_utc

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class Account(BaseModel):
    login: str = ""
    name: str | None = None
    type: str = "User"


class PayloadRepository(BaseModel):
    """Repository object as it appears in webhook payloads."""

    id: int
    name: str = ""
    full_name: str
    owner: Account | None = None
    default_branch: str | None = None

    def to_repository(self, installation_id: int | None) -> Repository:
        """Convert to a Repository fact.

        Installation payloads omit the owner object, so the owner falls back
        to the first segment of full_name.
        """
        owner_segment, _, name_segment = self.full_name.partition("/")
        owner = self.owner.login if self.owner and self.owner.login else owner_segment
        return Repository(
            github_id=self.id,
            installation_id=installation_id,
            owner=owner,
            name=self.name or name_segment,
            full_name=self.full_name,
            default_branch=self.default_branch or "main",
        )


class PayloadInstallation(BaseModel):
    id: int
    account: Account | None = None

    def to_installation(self) -> Installation:
        account = self.account or Account()
        return Installation(
            installation_id=self.id,
            account_login=account.login,
            account_type=account.type,
        )


class CommitAuthor(BaseModel):
    name: str = ""
    email: str = ""
    username: str = ""


class PushCommit(BaseModel):
    """One commit inside a push event.

    Attributes:
        id: Commit SHA
        message: Full commit message
        timestamp: Author timestamp (ISO 8601 with offset)
        author: Author identity
        distinct: Whether the commit is new to the repository
    """

    id: str = Field(..., min_length=1)
    message: str = ""
    timestamp: datetime
    author: CommitAuthor = Field(default_factory=CommitAuthor)
    distinct: bool = True

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Pusher(BaseModel):
    name: str = ""
    email: str | None = None


class PushPayload(BaseModel):
    """Body of a ``push`` event."""

    ref: str = ""
    before: str = ""
    after: str = ""
    forced: bool = False
    repository: PayloadRepository
    pusher: Pusher = Field(default_factory=Pusher)
    installation: PayloadInstallation | None = None
    commits: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def installation_id(self) -> int | None:
        return self.installation.id if self.installation else None


class InstallationPayload(BaseModel):
    """Body of an ``installation`` event."""

    action: str
    installation: PayloadInstallation
    repositories: list[PayloadRepository] = Field(default_factory=list)


class InstallationRepositoriesPayload(BaseModel):
    """Body of an ``installation_repositories`` event."""

    action: str = ""
    installation: PayloadInstallation
    repositories_added: list[PayloadRepository] = Field(default_factory=list)
    repositories_removed: list[PayloadRepository] = Field(default_factory=list)


def decode_payload(body: bytes, model: type[PayloadT]) -> PayloadT:
    """Decode a raw webhook body into a payload model.

    Args:
        body: Raw JSON body
        model: Payload model to validate against

    Returns:
        Validated payload

    Raises:
        PayloadError: If the body is not JSON or does not match the model
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadError(f"Body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PayloadError(f"Expected a JSON object, got {type(data).__name__}")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise PayloadError(
            f"Invalid {model.__name__}: {e.error_count()} validation error(s)"
        ) from e
