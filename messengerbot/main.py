"""FastAPI application initialization."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import logfire
import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration

from messengerbot.api import webhook
from messengerbot.config import Settings, get_settings
from messengerbot.constants import GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS
from messengerbot.logging_config import setup_logfire
from messengerbot.middleware.correlation_id import CorrelationIDMiddleware

if TYPE_CHECKING:
    from messengerbot.bot import MessengerBot


def create_app(bot: MessengerBot, settings: Settings | None = None) -> FastAPI:
    """Build the webhook application for ``bot``.

    Settings drive observability only; when neither ``settings`` nor
    ``bot.settings`` is given, Logfire and Sentry are left unconfigured.
    """
    settings = settings or bot.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager with graceful shutdown support."""
        if settings is not None:
            setup_logfire(app, settings)

            if settings.sentry_dsn:
                sentry_sdk.init(
                    dsn=settings.sentry_dsn,
                    traces_sample_rate=settings.sentry_traces_sample_rate,
                    environment=settings.env,
                    integrations=[FastApiIntegration()],
                )

        logfire.info(
            "Application startup complete",
            environment=settings.env if settings else None,
        )

        yield

        # ======================================================================
        # Graceful Shutdown
        # ======================================================================
        pending = len(bot.bus.pending_tasks)
        logfire.info("Application shutdown initiated", pending_tasks=pending)

        if pending:
            completed, cancelled = await bot.bus.drain(
                timeout=GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS
            )
            if cancelled:
                logfire.warn(
                    "Cancelled subscriber tasks after timeout",
                    completed_count=completed,
                    cancelled_count=cancelled,
                )
            else:
                logfire.info(
                    "All subscriber tasks completed",
                    completed_count=completed,
                )

        logfire.info("Application shutdown complete")

    app = FastAPI(
        title="Facebook Messenger Bot",
        description="Messenger Platform webhook adapter",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.bot = bot

    app.add_middleware(CorrelationIDMiddleware)

    # Catch-all: every path is the webhook
    app.include_router(webhook.router, tags=["webhook"])

    return app


def main() -> None:
    """Run a bot configured from the environment that logs incoming messages."""
    from messengerbot.bot import MessengerBot

    settings = get_settings()
    bot = MessengerBot.from_settings(settings)

    @bot.on("message")
    def log_message(result):
        logfire.info(
            "Message received",
            sender=result.sender,
            message_length=len(result.message),
        )

    @bot.on("error")
    def log_error(error):
        logfire.error("Webhook delivery rejected", error=str(error))

    bot.listen()


if __name__ == "__main__":
    main()
