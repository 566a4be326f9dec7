"""Webhook verification, decoding and dispatch.

Every delivery from the Messenger Platform runs through ``WebhookPipeline``:

1. GET requests are answered by the subscription handshake and stop there.
2. Other methods have their body decoded as UTF-8 JSON.
3. ``entry[0].messaging`` is pulled out of the decoded payload.
4. The batch is published as "receive", each text message as "message".

The platform always gets exactly one response. A body that cannot be
decoded is reported through the "error" channel and answered with 400;
anything else is answered with 200 so the platform does not redeliver.
"""

import json
import time
from collections.abc import Mapping
from typing import Any

import logfire

from messengerbot.constants import (
    ERROR_EVENT,
    HUB_CHALLENGE_PARAM,
    HUB_VERIFY_TOKEN_PARAM,
    MESSAGE_EVENT,
    RECEIVE_EVENT,
    VERIFICATION_FAILED_BODY,
    WEBHOOK_ACK_BODY,
    WEBHOOK_ACK_STATUS,
    WEBHOOK_BAD_REQUEST_BODY,
    WEBHOOK_BAD_REQUEST_STATUS,
)
from messengerbot.events import EventBus
from messengerbot.exceptions import PayloadDecodeError
from messengerbot.logging_config import redact_tokens
from messengerbot.models.config_models import Credentials
from messengerbot.models.messenger import (
    InboundRequest,
    TextMessage,
    VerificationResult,
    WebhookResponse,
)


def verify_subscription(
    credentials: Credentials, query_params: Mapping[str, str]
) -> VerificationResult:
    """Answer the platform's webhook subscription handshake.

    The challenge is echoed back only when ``hub.verify_token`` exactly
    equals the stored verify token. A mismatch is still answered with 200.
    """
    token = query_params.get(HUB_VERIFY_TOKEN_PARAM)
    verified = token == credentials.verify_token

    if verified:
        challenge = query_params.get(HUB_CHALLENGE_PARAM) or ""
        return VerificationResult(
            verified=True,
            response=WebhookResponse(status_code=WEBHOOK_ACK_STATUS, body=challenge),
        )

    return VerificationResult(
        verified=False,
        response=WebhookResponse(
            status_code=WEBHOOK_ACK_STATUS, body=VERIFICATION_FAILED_BODY
        ),
    )


def decode_payload(body: bytes) -> Any:
    """Decode a raw webhook body as UTF-8 JSON.

    Raises:
        PayloadDecodeError: body is not valid UTF-8 or not valid JSON.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise PayloadDecodeError(f"Webhook body is not valid UTF-8: {e}") from e

    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and the int digit limit;
        # RecursionError comes from deeply nested arrays or objects.
        raise PayloadDecodeError(f"Webhook body is not valid JSON: {e}") from e


def extract_messaging_events(payload: Any) -> list[Any]:
    """Return ``entry[0].messaging`` from a decoded payload.

    Any missing link along that path yields an empty list. The events are
    returned as-is, in delivery order.
    """
    if not isinstance(payload, dict):
        return []

    entries = payload.get("entry")
    if not isinstance(entries, list) or not entries:
        return []

    first_entry = entries[0]
    if not isinstance(first_entry, dict):
        return []

    messaging = first_entry.get("messaging")
    if not isinstance(messaging, list):
        return []

    return messaging


def _text_of(event: Any) -> str | None:
    # Presence of a string "text" is what counts; "" is still a text message.
    if not isinstance(event, dict):
        return None
    message = event.get("message")
    if not isinstance(message, dict):
        return None
    text = message.get("text")
    return text if isinstance(text, str) else None


def dispatch_events(bus: EventBus, events: list[Any]) -> int:
    """Publish one "receive" for the batch, then one "message" per text event.

    Returns:
        Number of "message" notifications emitted.
    """
    if not events:
        return 0

    bus.emit(RECEIVE_EVENT, events)

    emitted = 0
    for event in events:
        text = _text_of(event)
        if text is None:
            continue
        bus.emit(
            MESSAGE_EVENT,
            TextMessage(sender=event.get("sender"), message=text, raw=event),
        )
        emitted += 1

    return emitted


class WebhookPipeline:
    """Routes one inbound request through verification, decoding and dispatch."""

    def __init__(self, credentials: Credentials, bus: EventBus):
        self._credentials = credentials
        self._bus = bus

    def handle(self, request: InboundRequest) -> WebhookResponse:
        """Process a single delivery and build the response for the platform."""
        if request.method.upper() == "GET":
            return self._verify(request)

        start_time = time.time()

        try:
            payload = decode_payload(request.body)
        except PayloadDecodeError as e:
            logfire.warn(
                "Webhook payload rejected",
                method=request.method,
                correlation_id=request.correlation_id,
                body_length=len(request.body),
                error=str(e),
            )
            self._bus.emit(ERROR_EVENT, e)
            return WebhookResponse(
                status_code=WEBHOOK_BAD_REQUEST_STATUS, body=WEBHOOK_BAD_REQUEST_BODY
            )

        events = extract_messaging_events(payload)
        messages = dispatch_events(self._bus, events)

        logfire.info(
            "Webhook payload dispatched",
            method=request.method,
            correlation_id=request.correlation_id,
            event_count=len(events),
            message_count=messages,
            response_time_ms=(time.time() - start_time) * 1000,
        )
        return WebhookResponse(status_code=WEBHOOK_ACK_STATUS, body=WEBHOOK_ACK_BODY)

    def _verify(self, request: InboundRequest) -> WebhookResponse:
        result = verify_subscription(self._credentials, request.query_params)
        query = redact_tokens(dict(request.query_params))

        if result.verified:
            logfire.info(
                "Webhook verified successfully",
                correlation_id=request.correlation_id,
                query=query,
            )
        else:
            logfire.warn(
                "Webhook verification failed",
                correlation_id=request.correlation_id,
                query=query,
            )
        return result.response
