"""Tests for the MessengerBot facade."""

import json

import httpx
import pydantic
import pytest
import respx

from messengerbot import MessengerBot, SendFailure
from messengerbot.models.messenger import InboundRequest


class TestConstruction:
    """Test credential handling."""

    def test_credentials_are_stored(self, bot):
        assert bot.credentials.page_access_token == "T1"
        assert bot.credentials.verify_token == "V1"

    def test_credentials_are_immutable(self, bot):
        with pytest.raises(pydantic.ValidationError):
            bot.credentials.verify_token = "changed"

    def test_repr_hides_tokens(self):
        bot = MessengerBot(page_access_token="page-secret", verify_token="verify-secret")

        assert "page-secret" not in repr(bot.credentials)
        assert "verify-secret" not in repr(bot.credentials)

    def test_construction_logs_masked_tokens(self, mock_logfire):
        MessengerBot(page_access_token="page-secret", verify_token="verify-secret")

        _, kwargs = mock_logfire.info.call_args
        assert kwargs["page_access_token"] == "pa*******et"
        assert "verify-secret" not in str(kwargs)

    def test_from_settings(self, mock_settings):
        bot = MessengerBot.from_settings(mock_settings)

        assert bot.credentials.page_access_token == mock_settings.facebook_page_access_token
        assert bot.credentials.verify_token == mock_settings.facebook_verify_token
        assert bot.settings is mock_settings

    def test_each_bot_owns_its_bus(self):
        first = MessengerBot(page_access_token="a", verify_token="b")
        second = MessengerBot(page_access_token="a", verify_token="b")

        first.on("message", print)

        assert second.bus.listeners("message") == []


class TestSubscriptions:
    """Test on()/off()."""

    def test_on_with_handler(self, bot):
        calls = []
        bot.on("error", calls.append)

        bot.handle(InboundRequest(method="POST", body=b"{"))

        assert len(calls) == 1

    def test_on_as_decorator(self, bot):
        calls = []

        @bot.on("message")
        def handler(result):
            calls.append(result.message)

        body = {"entry": [{"messaging": [{"sender": {"id": "u1"}, "message": {"text": "hi"}}]}]}
        bot.handle(InboundRequest(method="POST", body=json.dumps(body).encode()))

        assert calls == ["hi"]
        assert handler.__name__ == "handler"

    def test_off(self, bot):
        calls = []
        bot.on("error", calls.append)
        bot.off("error", calls.append)

        bot.handle(InboundRequest(method="POST", body=b"{"))

        assert calls == []

    def test_unknown_event(self, bot):
        with pytest.raises(ValueError):
            bot.on("postback", print)


class TestPostText:
    """Test post_text()."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_text_sends_to_sender(self, bot):
        route = respx.post("https://graph.facebook.com/v18.0/me/messages").mock(
            return_value=httpx.Response(200, json={"message_id": "mid.1"})
        )

        result = await bot.post_text(user={"id": "u1"}, message="hello back")

        assert result == {"message_id": "mid.1"}
        request = route.calls.last.request
        assert request.url.params["access_token"] == "T1"
        assert json.loads(request.content) == {
            "recipient": {"id": "u1"},
            "message": {"text": "hello back"},
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_text_uses_settings(self, mock_settings):
        mock_settings.facebook_graph_api_version = "v2.6"
        bot = MessengerBot.from_settings(mock_settings)
        route = respx.post("https://graph.facebook.com/v2.6/me/messages").mock(
            return_value=httpx.Response(200, json={"message_id": "mid.1"})
        )

        await bot.post_text(user="u1", message="x")

        assert route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_text_failure_is_raised(self, bot):
        respx.post("https://graph.facebook.com/v18.0/me/messages").mock(
            return_value=httpx.Response(400, json={"error": {"message": "bad"}})
        )

        with pytest.raises(SendFailure):
            await bot.post_text(user={"id": "u1"}, message="x")


class TestListen:
    """Test listen()."""

    def test_listen_runs_uvicorn(self, bot, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "messengerbot.bot.uvicorn.run",
            lambda app, **kwargs: calls.append((app, kwargs)),
        )

        bot.listen(port=3000)

        app, kwargs = calls[0]
        assert app is bot.app
        assert kwargs == {"host": "0.0.0.0", "port": 3000}

    def test_listen_defaults_from_settings(self, mock_settings, monkeypatch):
        mock_settings.host = "127.0.0.1"
        mock_settings.port = 9000
        bot = MessengerBot.from_settings(mock_settings)
        calls = []
        monkeypatch.setattr(
            "messengerbot.bot.uvicorn.run",
            lambda app, **kwargs: calls.append(kwargs),
        )

        bot.listen()

        assert calls == [{"host": "127.0.0.1", "port": 9000}]
