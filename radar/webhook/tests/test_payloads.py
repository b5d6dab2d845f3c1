"""Tests for webhook payload decoding."""

import json

import pytest

from radar.shared.exceptions import PayloadError
from radar.webhook.payloads import (
    InstallationPayload,
    PushCommit,
    PushPayload,
    decode_payload,
)


def test_decode_push_payload() -> None:
    body = json.dumps(
        {
            "ref": "refs/heads/main",
            "before": "a" * 40,
            "after": "b" * 40,
            "forced": True,
            "repository": {
                "id": 42,
                "name": "widget",
                "full_name": "acme/widget",
                "owner": {"login": "acme"},
                "default_branch": "main",
            },
            "pusher": {"name": "alice"},
            "installation": {"id": 9},
            "commits": [{"id": "c1"}],
        }
    ).encode()

    payload = decode_payload(body, PushPayload)

    assert payload.forced is True
    assert payload.installation_id == 9
    assert payload.repository.to_repository(payload.installation_id).owner == "acme"
    assert payload.commits == [{"id": "c1"}]


def test_repository_owner_falls_back_to_full_name() -> None:
    body = json.dumps(
        {
            "action": "created",
            "installation": {"id": 1, "account": {"login": "acme", "type": "Organization"}},
            "repositories": [{"id": 5, "name": "widget", "full_name": "acme/widget"}],
        }
    ).encode()

    payload = decode_payload(body, InstallationPayload)
    repo = payload.repositories[0].to_repository(payload.installation.id)

    assert repo.owner == "acme"
    assert repo.installation_id == 1
    assert payload.installation.to_installation().account_type == "Organization"


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b"\xff\xfe", b'{"ref": "x"}'])
def test_malformed_bodies_raise_payload_error(body: bytes) -> None:
    with pytest.raises(PayloadError):
        decode_payload(body, PushPayload)


def test_push_commit_timestamp_is_normalized_to_aware() -> None:
    commit = PushCommit.model_validate(
        {"id": "abc", "timestamp": "2025-01-09T12:00:00", "author": {"email": "a@x.io"}}
    )

    assert commit.timestamp.tzinfo is not None


def test_push_commit_requires_timestamp() -> None:
    with pytest.raises(ValueError):
        PushCommit.model_validate({"id": "abc"})
