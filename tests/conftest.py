"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Bot: credentials, bot, test_client, recorder
2. Payloads: text_message_event, webhook_payload
3. Infrastructure: mock_settings, mock_logfire (autouse)
"""

import os
from contextlib import contextmanager
from typing import Any
from unittest.mock import MagicMock, Mock

import pytest

# Keep logfire quiet when a test reaches it unconfigured
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from messengerbot.bot import MessengerBot
from messengerbot.config import Settings
from messengerbot.models.config_models import Credentials

PAGE_ACCESS_TOKEN = "T1"
VERIFY_TOKEN = "V1"

LOGFIRE_MODULES = (
    "messengerbot.bot",
    "messengerbot.events",
    "messengerbot.logging_config",
    "messengerbot.main",
    "messengerbot.middleware.correlation_id",
    "messengerbot.services.facebook_service",
    "messengerbot.services.webhook_pipeline",
)


class EventRecorder:
    """Subscribes to every notification channel and records deliveries in order."""

    def __init__(self, bot: MessengerBot):
        self.events: list[tuple[str, Any]] = []
        for name in ("receive", "message", "error"):
            bot.on(name, lambda payload, name=name: self.events.append((name, payload)))

    def named(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]

    @property
    def names(self) -> list[str]:
        return [event for event, _ in self.events]


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture(autouse=True)
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Auto-applied so no test ships spans anywhere. Assert on the returned
    mock's ``info``/``warn``/``error`` calls to check structured logging.
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()

    for module in LOGFIRE_MODULES:
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock application settings."""
    settings = Settings(
        facebook_page_access_token=PAGE_ACCESS_TOKEN,
        facebook_verify_token=VERIFY_TOKEN,
        facebook_graph_api_version="v18.0",
        facebook_api_timeout_seconds=5.0,
        env="local",
        logfire_token=None,
        sentry_dsn=None,
    )

    monkeypatch.setattr("messengerbot.config.get_settings", lambda: settings)
    monkeypatch.setattr("messengerbot.main.get_settings", lambda: settings)
    return settings


# =============================================================================
# Bot
# =============================================================================


@pytest.fixture
def credentials():
    return Credentials(page_access_token=PAGE_ACCESS_TOKEN, verify_token=VERIFY_TOKEN)


@pytest.fixture
def bot():
    """Bot built from explicit tokens, without settings."""
    return MessengerBot(page_access_token=PAGE_ACCESS_TOKEN, verify_token=VERIFY_TOKEN)


@pytest.fixture
def recorder(bot):
    """Records every notification emitted by ``bot``."""
    return EventRecorder(bot)


@pytest.fixture
def test_client(bot):
    """FastAPI TestClient for E2E tests (lifespan not started)."""
    from fastapi.testclient import TestClient

    return TestClient(bot.app)


# =============================================================================
# Payloads
# =============================================================================


@pytest.fixture
def text_message_event():
    """A single messaging event carrying a text message."""
    return {
        "sender": {"id": "u1"},
        "recipient": {"id": "page-123"},
        "timestamp": 1234567890,
        "message": {"mid": "mid.1", "text": "hello"},
    }


@pytest.fixture
def webhook_payload(text_message_event):
    """Webhook envelope wrapping ``text_message_event``."""
    return {
        "object": "page",
        "entry": [
            {
                "id": "page-123",
                "time": 1234567890,
                "messaging": [text_message_event],
            }
        ],
    }
