"""HTTP server for GitHub webhook deliveries and scorecard requests."""

import datetime as dt
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from aiohttp import web

from radar.core.logging import get_logger, set_correlation_id
from radar.shared.exceptions import DatabaseError

if TYPE_CHECKING:
    from radar.scorecard.aggregator import ScorecardService
    from radar.webhook.router import EventRouter
    from radar.webhook.signature import SignatureVerifier

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"


def _parse_date(value: str | None) -> dt.date | None:
    if not value:
        return None
    return dt.date.fromisoformat(value)


class WebhookServer:
    """Async HTTP server for webhook events and scorecards.

    Provides endpoints for:
    - POST /webhook: GitHub webhook deliveries
    - GET /scorecard?repo=owner/name: Repository scorecard
    - GET /health: Health check endpoint

    Deliveries are processed inside the request, so a 200 means the event was
    handled (or deliberately ignored).

    Attributes:
        host: Server host address
        port: Server port
    """

    def __init__(
        self,
        host: str,
        port: int,
        router: "EventRouter",
        verifier: "SignatureVerifier",
        scorecards: "ScorecardService | None" = None,
    ) -> None:
        """Initialize webhook server.

        Args:
            host: Host address to bind to
            port: Port to listen on
            router: Event router applying verified deliveries
            verifier: Webhook signature verifier
            scorecards: Scorecard service; /scorecard returns 503 without it
        """
        self.host = host
        self.port = port
        self.router = router
        self.verifier = verifier
        self.scorecards = scorecards
        self.app: web.Application | None = None
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._running = False

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_post("/webhook", self._handle_webhook)
        app.router.add_get("/scorecard", self._handle_scorecard)
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self.app = self.create_app()

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        self._running = True
        logger.info("webhook.server.started", host=self.host, port=self.port)

    async def stop(self) -> None:
        """Stop the HTTP server gracefully."""
        self._running = False

        if self.site:
            await self.site.stop()

        if self.runner:
            await self.runner.cleanup()

        logger.info("webhook.server.stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy", "service": "commit-radar"})

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Verify and process one webhook delivery.

        Args:
            request: Incoming HTTP request

        Returns:
            401 on signature failure, 400 on unreadable body, 200 otherwise
        """
        received_at = datetime.now(UTC)
        delivery_id = request.headers.get(DELIVERY_HEADER, "")
        event_type = request.headers.get(EVENT_HEADER, "")
        set_correlation_id(delivery_id)

        try:
            body = await request.read()
        except Exception as e:
            logger.error("webhook.read.failed", error=str(e))
            return web.json_response({"error": "Failed to read body"}, status=400)

        result = self.verifier.verify(body, request.headers.get(SIGNATURE_HEADER))
        if not result.accepted:
            return web.json_response({"error": "Unauthorized"}, status=401)

        logger.info(
            "webhook.delivery.received",
            event_type=event_type,
            delivery_id=delivery_id,
            body_len=len(body),
        )

        outcome = await self.router.handle(event_type, body, received_at, delivery_id)
        if outcome is None:
            return web.json_response({"status": "dropped"})
        if outcome.routed.ignored:
            return web.json_response({"status": "ignored"})

        return web.json_response(
            {
                "status": "processed",
                "commits_created": outcome.commits_created,
                "commits_duplicate": outcome.commits_duplicate,
                "alerts_created": outcome.alerts_created,
            }
        )

    async def _handle_scorecard(self, request: web.Request) -> web.Response:
        """Return the scorecard for ?repo=owner/name.

        Args:
            request: Incoming HTTP request

        Returns:
            Scorecard JSON; 400 on bad parameters, 404 for unknown repositories
        """
        if self.scorecards is None:
            return web.json_response({"error": "Scorecards unavailable"}, status=503)

        repo_param = request.query.get("repo", "")
        owner, _, name = repo_param.partition("/")
        if not owner or not name or "/" in name:
            return web.json_response(
                {"error": "repo parameter must be in owner/name format"}, status=400
            )

        try:
            window_start = _parse_date(request.query.get("start"))
            window_end = _parse_date(request.query.get("end"))
        except ValueError:
            return web.json_response({"error": "start/end must be YYYY-MM-DD"}, status=400)

        try:
            scorecard = await self.scorecards.get_scorecard(owner, name, window_start, window_end)
        except DatabaseError as e:
            logger.error("webhook.scorecard.failed", repo=repo_param, error=str(e))
            return web.json_response({"error": "Failed to generate scorecard"}, status=500)
        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)

        if scorecard is None:
            return web.json_response({"error": "Repository not found"}, status=404)

        return web.json_response(text=scorecard.model_dump_json())
