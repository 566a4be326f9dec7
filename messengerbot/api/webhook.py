"""Facebook webhook endpoint.

Every request that reaches the app, whatever its path or method, is a
webhook delivery. The router only translates between Starlette and the
framework-agnostic ``WebhookPipeline``.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from messengerbot.models.messenger import InboundRequest

logger = logging.getLogger(__name__)
router = APIRouter()

WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


async def to_inbound_request(request: Request) -> InboundRequest:
    """Read the raw body and query string of a Starlette request."""
    return InboundRequest(
        method=request.method,
        query_params=dict(request.query_params),
        body=await request.body(),
        correlation_id=getattr(request.state, "correlation_id", None),
    )


@router.api_route("/{path:path}", methods=WEBHOOK_METHODS)
async def handle_webhook(request: Request, path: str) -> PlainTextResponse:
    """Handle Facebook webhook verification and event deliveries."""
    bot = request.app.state.bot
    inbound = await to_inbound_request(request)

    result = bot.pipeline.handle(inbound)

    logger.info("%s /%s -> %s", inbound.method, path, result.status_code)
    return PlainTextResponse(result.body, status_code=result.status_code)
