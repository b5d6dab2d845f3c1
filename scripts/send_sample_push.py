#!/usr/bin/env python3
"""Send a signed sample push to a running Commit Radar and print the scorecard.

Reads WEBHOOK_SECRET, SERVER_HOST and SERVER_PORT from a .env file next to
this script (or the environment). Posts a forced push carrying a mix of
conventional, backdated and sloppy commits, then fetches the scorecard.
"""

import asyncio
import json
import os
import sys
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiohttp
from dotenv import load_dotenv

script_dir = Path(__file__).parent
load_dotenv(script_dir / ".env")

from radar.webhook.signature import sign_body  # noqa: E402

OWNER = "radar-demo"
REPO = "sample-service"


def create_fake_commits(now: datetime) -> list[dict]:
    """Commits spanning every backdate band and message style."""
    samples = [
        ("feat(api): add scorecard endpoint", timedelta(minutes=5), "alice@example.com", "alice"),
        ("fix: handle empty pushes", timedelta(hours=2), "alice@example.com", "alice"),
        ("feat!: drop legacy payloads", timedelta(hours=30), "bob@example.com", "bob"),
        ("wip", timedelta(hours=5), "bob@example.com", "bob"),
        ("chore(deps): bump aiohttp", timedelta(days=5), "carol@example.com", ""),
        ("Update README.md", timedelta(hours=1), "carol@example.com", ""),
    ]

    commits = []
    for i, (message, age, email, username) in enumerate(samples):
        author = {"name": email.split("@")[0].title(), "email": email}
        if username:
            author["username"] = username
        commits.append(
            {
                "id": uuid.uuid4().hex + f"{i:08x}",
                "message": message,
                "timestamp": (now - age).isoformat(),
                "author": author,
                "distinct": True,
            }
        )
    return commits


def create_push_payload(now: datetime) -> dict:
    return {
        "ref": "refs/heads/main",
        "before": "a" * 40,
        "after": "b" * 40,
        "forced": True,
        "repository": {
            "id": 424242,
            "name": REPO,
            "full_name": f"{OWNER}/{REPO}",
            "owner": {"login": OWNER},
            "default_branch": "main",
        },
        "pusher": {"name": "alice"},
        "commits": create_fake_commits(now),
    }


async def main() -> None:
    host = os.getenv("SERVER_HOST", "localhost")
    if host == "0.0.0.0":
        host = "localhost"
    base_url = f"http://{host}:{os.getenv('SERVER_PORT', '8080')}"
    secret = os.getenv("WEBHOOK_SECRET", "")

    body = json.dumps(create_push_payload(datetime.now(UTC))).encode()
    headers = {
        "Content-Type": "application/json",
        "X-GitHub-Event": "push",
        "X-GitHub-Delivery": str(uuid.uuid4()),
    }
    if secret:
        headers["X-Hub-Signature-256"] = sign_body(body, secret)
    else:
        print("⚠️  WEBHOOK_SECRET not set, sending unsigned delivery")

    async with aiohttp.ClientSession() as session:
        print(f"📤 Posting push to {base_url}/webhook...")
        async with session.post(f"{base_url}/webhook", data=body, headers=headers) as response:
            print(f"   {response.status}: {await response.text()}")
            if response.status != 200:
                sys.exit(1)

        print(f"\n📊 Fetching scorecard for {OWNER}/{REPO}...")
        async with session.get(
            f"{base_url}/scorecard", params={"repo": f"{OWNER}/{REPO}"}
        ) as response:
            if response.status != 200:
                print(f"❌ {response.status}: {await response.text()}")
                sys.exit(1)
            scorecard = await response.json()

    print(f"   Overall: {scorecard['overall_score']} ({scorecard['overall_status']})")
    for check in scorecard["checks"]:
        print(f"   - {check['name']}: {check['status']} {check['score']} ({check['description']})")
    for alert in scorecard["alerts"]:
        print(f"   ! {alert['type']} x{alert['count']} [{alert['severity']}]")


if __name__ == "__main__":
    asyncio.run(main())
