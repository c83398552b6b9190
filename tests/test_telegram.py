"""Tests for the Telegram transport."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from lurkbot.bot.commands import INTERNAL_ERROR_TEXT, ParseMode, Reply
from lurkbot.bot.telegram import TelegramBot

TOKEN = "123:abc"


class FakeTelegram:
    """Records Bot API calls made through an httpx.MockTransport."""

    def __init__(self, updates: list[dict[str, Any]] | None = None, poll_status: int = 200) -> None:
        self.updates = updates or []
        self.poll_status = poll_status
        self.sent: list[dict[str, Any]] = []
        self.polls: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        assert request.url.path.startswith(f"/bot{TOKEN}/")
        method = request.url.path.rsplit("/", 1)[-1]
        if method == "getUpdates":
            self.polls.append(request)
            if self.poll_status != 200:
                return httpx.Response(self.poll_status, text="bad gateway")
            updates, self.updates = self.updates, []
            if not updates:
                # stand-in for the server-side long poll
                await asyncio.sleep(0.01)
            return httpx.Response(200, json={"ok": True, "result": updates})
        if method == "sendMessage":
            self.sent.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(404)


def _update(update_id: int, chat_id: int, text: str | None) -> dict[str, Any]:
    message: dict[str, Any] = {"message_id": update_id, "chat": {"id": chat_id, "type": "private"}}
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


def _router(reply: Reply | None = None, side_effect: Any = None) -> MagicMock:
    router = MagicMock()
    router.handle_message = AsyncMock(return_value=reply, side_effect=side_effect)
    return router


def _bot(api: FakeTelegram, router: MagicMock, **kwargs: Any) -> TelegramBot:
    client = httpx.AsyncClient(transport=httpx.MockTransport(api))
    return TelegramBot(TOKEN, router, client=client, **kwargs)


class TestHandleUpdate:
    def test_dispatches_and_replies(self) -> None:
        api = FakeTelegram()
        router = _router(Reply("*report*", ParseMode.MARKDOWN))
        bot = _bot(api, router)

        async def scenario() -> None:
            task = bot.handle_update(_update(1, 42, "/healthcheck"))
            assert task is not None
            await task

        asyncio.run(scenario())
        router.handle_message.assert_awaited_once_with(42, "/healthcheck")
        assert api.sent == [{"chat_id": 42, "text": "*report*", "parse_mode": "Markdown"}]

    def test_plain_reply_has_no_parse_mode(self) -> None:
        api = FakeTelegram()
        bot = _bot(api, _router(Reply("Available commands")))

        async def scenario() -> None:
            await bot.handle_update(_update(1, 42, "/help"))

        asyncio.run(scenario())
        assert api.sent == [{"chat_id": 42, "text": "Available commands"}]

    @pytest.mark.parametrize("update", [
        _update(1, 42, None),
        _update(1, 42, ""),
        {"update_id": 1, "edited_message": {"text": "/help"}},
        {"update_id": 1},
    ])
    def test_ignores_updates_without_text(self, update: dict[str, Any]) -> None:
        router = _router(Reply("x"))
        bot = _bot(FakeTelegram(), router)

        async def scenario() -> Any:
            return bot.handle_update(update)

        assert asyncio.run(scenario()) is None
        router.handle_message.assert_not_called()

    def test_timeout_sends_nothing(self) -> None:
        async def slow(chat_id: int, text: str) -> Reply:
            await asyncio.sleep(5)
            return Reply("late")

        api = FakeTelegram()
        router = MagicMock()
        router.handle_message = slow
        bot = _bot(api, router, command_timeout=0.05)

        async def scenario() -> None:
            await bot.handle_update(_update(1, 42, "/healthcheck"))

        asyncio.run(scenario())
        assert api.sent == []

    def test_handler_error_sends_generic_reply(self) -> None:
        api = FakeTelegram()
        bot = _bot(api, _router(side_effect=RuntimeError("boom")))

        async def scenario() -> None:
            await bot.handle_update(_update(1, 42, "/healthcheck"))

        asyncio.run(scenario())
        assert api.sent == [{"chat_id": 42, "text": INTERNAL_ERROR_TEXT}]
        assert "boom" not in api.sent[0]["text"]


class TestPolling:
    def test_poll_once_returns_updates_and_sends_offset(self) -> None:
        api = FakeTelegram(updates=[_update(7, 42, "/help")])
        bot = _bot(api, _router(Reply("x")), poll_timeout=3)

        updates = asyncio.run(bot.poll_once())
        assert updates == [_update(7, 42, "/help")]
        params = api.polls[0].url.params
        assert params["offset"] == "1"
        assert params["timeout"] == "3"

    def test_poll_once_non_200(self) -> None:
        api = FakeTelegram(poll_status=502)
        bot = _bot(api, _router(Reply("x")))
        assert asyncio.run(bot.poll_once()) is None

    def test_loop_handles_updates_and_advances_offset(self) -> None:
        api = FakeTelegram(updates=[_update(5, 42, "/help"), _update(6, 43, "/help")])
        bot = _bot(api, _router(Reply("help text")), poll_backoff=0.01)

        async def scenario() -> None:
            await bot.start()
            for _ in range(100):
                if len(api.sent) == 2 and len(api.polls) >= 2:
                    break
                await asyncio.sleep(0.01)
            await bot.stop()

        asyncio.run(scenario())
        assert sorted(m["chat_id"] for m in api.sent) == [42, 43]
        assert api.polls[1].url.params["offset"] == "7"

    def test_stop_closes_client(self) -> None:
        api = FakeTelegram()
        bot = _bot(api, _router(Reply("x")), poll_backoff=0.01)

        async def scenario() -> bool:
            await bot.start()
            await asyncio.sleep(0.02)
            await bot.stop()
            return bot._client.is_closed

        assert asyncio.run(scenario()) is True


class TestSendMessage:
    def test_send_failure_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"ok": False, "description": "can't parse entities"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        bot = TelegramBot(TOKEN, _router(Reply("x")), client=client)
        assert asyncio.run(bot.send_message(42, "hi")) is False

    def test_send_transport_error_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        bot = TelegramBot(TOKEN, _router(Reply("x")), client=client)
        assert asyncio.run(bot.send_message(42, "hi")) is False

    def test_requires_token(self) -> None:
        with pytest.raises(ValueError):
            TelegramBot("", _router(Reply("x")))
