"""Incoming/outgoing Facebook Messenger models."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SkipValidation


class InboundRequest(BaseModel):
    """Framework-agnostic view of one webhook delivery."""

    model_config = ConfigDict(frozen=True)

    method: str
    query_params: Mapping[str, str] = Field(default_factory=dict)
    body: bytes = b""
    correlation_id: str | None = None


class WebhookResponse(BaseModel):
    """Plain-text reply sent back to the platform."""

    status_code: int
    body: str = ""


class VerificationResult(BaseModel):
    """Outcome of the subscription handshake."""

    verified: bool
    response: WebhookResponse


class TextMessage(BaseModel):
    """Payload of a "message" notification."""

    sender: Any = None
    message: str
    # Passed through untouched so it is the same object as in the "receive" batch
    raw: SkipValidation[dict[str, Any]]


class OutboundText(BaseModel):
    """Text body of an outgoing message."""

    text: str


class OutboundMessage(BaseModel):
    """Send API request body."""

    recipient: dict[str, Any]
    message: OutboundText
