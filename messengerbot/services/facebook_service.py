"""Send messages to Facebook Graph API service."""

import time
from typing import Any

import httpx
import logfire

from messengerbot.constants import (
    FACEBOOK_API_TIMEOUT_SECONDS,
    FACEBOOK_GRAPH_API_BASE_URL,
    FACEBOOK_GRAPH_API_VERSION,
    FACEBOOK_SEND_API_PATH,
)
from messengerbot.exceptions import SendFailure
from messengerbot.models.messenger import OutboundMessage, OutboundText


def _decode_response(
    response: httpx.Response, recipient: dict[str, Any]
) -> dict[str, Any]:
    """Decode a 2xx Send API response body."""
    try:
        data = response.json()
    except ValueError as e:
        logfire.error(
            "Facebook API returned a non-JSON body",
            recipient=recipient,
            status_code=response.status_code,
            response_body=response.text[:500],
        )
        raise SendFailure(
            "Send API response is not valid JSON",
            status_code=response.status_code,
            recipient=recipient,
        ) from e
    return data if isinstance(data, dict) else {"response": data}


def send_api_url(api_version: str = FACEBOOK_GRAPH_API_VERSION) -> str:
    """Build the Send API endpoint for a Graph API version."""
    return f"{FACEBOOK_GRAPH_API_BASE_URL}/{api_version}/{FACEBOOK_SEND_API_PATH}"


def build_outbound_message(recipient: dict[str, Any] | str, text: str) -> OutboundMessage:
    """Build the Send API body, wrapping a bare user id as ``{"id": ...}``."""
    if isinstance(recipient, str):
        recipient = {"id": recipient}
    return OutboundMessage(recipient=recipient, message=OutboundText(text=text))


async def send_message(
    page_access_token: str,
    recipient: dict[str, Any] | str,
    text: str,
    *,
    api_version: str = FACEBOOK_GRAPH_API_VERSION,
    timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """
    Send a text message via the Facebook Send API.

    One request, no retries.

    Args:
        page_access_token: Facebook Page access token
        recipient: Identity object (``{"id": ...}``) or user id to send to
        text: Message text to send
        api_version: Graph API version
        timeout: Request timeout in seconds

    Returns:
        Decoded JSON response from the platform

    Raises:
        SendFailure: on a transport error or a non-2xx response
    """
    start_time = time.time()
    payload = build_outbound_message(recipient, text)

    logfire.info(
        "Sending Facebook message",
        recipient=payload.recipient,
        message_length=len(text),
        api_version=api_version,
    )

    url = send_api_url(api_version)
    params = {"access_token": page_access_token}

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                url, params=params, json=payload.model_dump()
            )
            elapsed = time.time() - start_time

            if response.is_success:
                response_data = _decode_response(response, payload.recipient)
                logfire.info(
                    "Facebook message sent successfully",
                    recipient=payload.recipient,
                    status_code=response.status_code,
                    message_id=response_data.get("message_id"),
                    response_time_ms=elapsed * 1000,
                )
            else:
                logfire.error(
                    "Facebook message send failed",
                    recipient=payload.recipient,
                    status_code=response.status_code,
                    response_body=response.text[:500],  # Limit response body length
                    response_time_ms=elapsed * 1000,
                )

            response.raise_for_status()
            return response_data
    except httpx.HTTPStatusError as e:
        elapsed = time.time() - start_time
        logfire.error(
            "Facebook API HTTP error",
            recipient=payload.recipient,
            status_code=e.response.status_code,
            # str(e) embeds the request URL, which carries the access token
            error=e.response.reason_phrase,
            error_type=type(e).__name__,
            response_time_ms=elapsed * 1000,
        )
        raise SendFailure(
            f"Send API returned {e.response.status_code}",
            status_code=e.response.status_code,
            recipient=payload.recipient,
        ) from e
    except httpx.RequestError as e:
        elapsed = time.time() - start_time
        logfire.error(
            "Facebook API request error",
            recipient=payload.recipient,
            error=str(e),
            error_type=type(e).__name__,
            response_time_ms=elapsed * 1000,
        )
        raise SendFailure(
            f"Send API request failed: {e}",
            recipient=payload.recipient,
        ) from e
