"""Facebook Messenger bot facade.

Example:
    >>> bot = MessengerBot(page_access_token="...", verify_token="...")
    >>> @bot.on("message")
    ... def echo(result):
    ...     print("You got a message!", result.message)
    >>> bot.listen(port=3000)
"""

from __future__ import annotations

from typing import Any

import logfire
import uvicorn
from fastapi import FastAPI

from messengerbot.config import Settings
from messengerbot.constants import DEFAULT_HOST, DEFAULT_PORT
from messengerbot.events import EventBus, Handler
from messengerbot.models.config_models import Credentials
from messengerbot.models.messenger import InboundRequest, WebhookResponse
from messengerbot.services.facebook_service import send_message
from messengerbot.services.webhook_pipeline import WebhookPipeline


class MessengerBot:
    """Bridges Messenger webhook deliveries to in-process notifications.

    Subscribe with :meth:`on` to ``"receive"`` (the raw batch of messaging
    events), ``"message"`` (one :class:`TextMessage` per text message) and
    ``"error"`` (undecodable deliveries). Reply with :meth:`post_text`.
    """

    def __init__(
        self,
        page_access_token: str,
        verify_token: str,
        *,
        settings: Settings | None = None,
    ):
        self._credentials = Credentials(
            page_access_token=page_access_token, verify_token=verify_token
        )
        self._settings = settings
        self._bus = EventBus()
        self._pipeline = WebhookPipeline(self._credentials, self._bus)
        self._app: FastAPI | None = None

        logfire.info("Messenger bot configured", **self._credentials.masked())

    @classmethod
    def from_settings(cls, settings: Settings) -> MessengerBot:
        """Build a bot from environment-backed settings."""
        return cls(
            page_access_token=settings.facebook_page_access_token,
            verify_token=settings.facebook_verify_token,
            settings=settings,
        )

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def settings(self) -> Settings | None:
        return self._settings

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def pipeline(self) -> WebhookPipeline:
        return self._pipeline

    @property
    def app(self) -> FastAPI:
        """FastAPI application serving the webhook, built on first access."""
        if self._app is None:
            from messengerbot.main import create_app

            self._app = create_app(self)
        return self._app

    def on(self, event: str, handler: Handler | None = None) -> Any:
        """Subscribe ``handler`` to ``event``.

        Without a handler, returns a decorator::

            @bot.on("message")
            async def reply(result): ...
        """
        if handler is not None:
            return self._bus.on(event, handler)

        def decorator(func: Handler) -> Handler:
            return self._bus.on(event, func)

        return decorator

    def off(self, event: str, handler: Handler) -> None:
        """Unsubscribe ``handler`` from ``event``."""
        self._bus.off(event, handler)

    def handle(self, request: InboundRequest) -> WebhookResponse:
        """Run one delivery through the webhook pipeline."""
        return self._pipeline.handle(request)

    async def post_text(
        self, user: dict[str, Any] | str, message: str
    ) -> dict[str, Any]:
        """Send a plain-text message to ``user``.

        Args:
            user: Recipient identity (e.g. the ``sender`` of a received
                message) or a bare user id
            message: Text to send

        Returns:
            The platform's decoded response

        Raises:
            SendFailure: the platform could not be reached or rejected the send
        """
        kwargs: dict[str, Any] = {}
        if self._settings is not None:
            kwargs["api_version"] = self._settings.facebook_graph_api_version
            kwargs["timeout"] = self._settings.facebook_api_timeout_seconds

        return await send_message(
            page_access_token=self._credentials.page_access_token,
            recipient=user,
            text=message,
            **kwargs,
        )

    def listen(
        self, host: str | None = None, port: int | None = None, **uvicorn_kwargs: Any
    ) -> None:
        """Bind and serve the webhook until interrupted."""
        settings = self._settings
        host = host or (settings.host if settings else None) or DEFAULT_HOST
        port = port or (settings.port if settings else None) or DEFAULT_PORT

        logfire.info("Messenger bot listening", host=host, port=port)
        uvicorn.run(self.app, host=host, port=port, **uvicorn_kwargs)

