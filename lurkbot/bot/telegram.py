"""Telegram transport — long-polls for commands and sends replies.

Uses the Telegram Bot API directly via httpx. Each incoming text message
is handled by its own task, so a slow healthcheck never stalls polling.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from lurkbot.bot.commands import INTERNAL_ERROR_TEXT, CommandRouter, ParseMode, Reply

logger = logging.getLogger(__name__)

# Telegram API base
TELEGRAM_API = "https://api.telegram.org/bot{token}"


class TelegramBot:
    """Bridges Telegram updates to the command router."""

    def __init__(
        self,
        bot_token: str,
        router: CommandRouter,
        poll_timeout: int = 20,
        poll_backoff: float = 5.0,
        command_timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not bot_token:
            raise ValueError("Telegram bot token is required")
        self.bot_token = bot_token
        self.router = router
        self.poll_timeout = poll_timeout
        self.poll_backoff = poll_backoff
        self.command_timeout = command_timeout
        # Long-poll requests must outlive the server-side poll timeout
        self._client = client or httpx.AsyncClient(timeout=poll_timeout + 10)
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._handlers: set[asyncio.Task[None]] = set()
        self._last_update_id = 0

    @property
    def _api(self) -> str:
        return TELEGRAM_API.format(token=self.bot_token)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop(), name="telegram-poller")
        logger.info("Telegram poller started")

    async def run(self) -> None:
        """Start polling and block until stopped."""
        await self.start()
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        for task in list(self._handlers):
            task.cancel()
        if self._handlers:
            await asyncio.gather(*self._handlers, return_exceptions=True)
        await self._client.aclose()
        logger.info("Telegram poller stopped")

    # -- Receiving -------------------------------------------------------------

    async def _poll_loop(self) -> None:
        """Long-poll for updates from Telegram."""
        while self._running:
            try:
                updates = await self.poll_once()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Telegram poll error")
                await asyncio.sleep(self.poll_backoff)
                continue

            if updates is None:
                await asyncio.sleep(self.poll_backoff)
                continue

            for update in updates:
                self._last_update_id = max(self._last_update_id, update.get("update_id", 0))
                self.handle_update(update)

    async def poll_once(self) -> list[dict[str, Any]] | None:
        """One ``getUpdates`` call. Returns None on a non-200 response."""
        params = {
            "offset": self._last_update_id + 1,
            "timeout": self.poll_timeout,
        }
        resp = await self._client.get(f"{self._api}/getUpdates", params=params)
        if resp.status_code != 200:
            logger.warning("Telegram poll error: %d %s", resp.status_code, resp.text[:200])
            return None
        return resp.json().get("result", [])

    def handle_update(self, update: dict[str, Any]) -> asyncio.Task[None] | None:
        """Spawn a handler task for an update carrying a text message."""
        message = update.get("message") or {}
        text = message.get("text")
        chat_id = (message.get("chat") or {}).get("id")
        if not text or chat_id is None:
            return None

        task = asyncio.create_task(
            self._handle_message(int(chat_id), text),
            name=f"telegram-chat-{chat_id}",
        )
        self._handlers.add(task)
        task.add_done_callback(self._handlers.discard)
        return task

    async def _handle_message(self, chat_id: int, text: str) -> None:
        logger.info("Telegram message from chat_id=%s: %s", chat_id, text[:100])
        try:
            reply = await asyncio.wait_for(
                self.router.handle_message(chat_id, text),
                timeout=self.command_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Command from chat_id=%s timed out after %.1fs, no reply sent",
                chat_id, self.command_timeout,
            )
            return
        except Exception:
            logger.exception("Telegram command handler error")
            reply = Reply(INTERNAL_ERROR_TEXT)

        await self.send_message(chat_id, reply.text, reply.parse_mode)

    # -- Sending ---------------------------------------------------------------

    async def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: ParseMode | None = None,
    ) -> bool:
        """Send a text message to ``chat_id``."""
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode.value

        try:
            resp = await self._client.post(f"{self._api}/sendMessage", json=payload)
            if resp.status_code == 200:
                logger.debug("Telegram: message sent to chat_id=%s", chat_id)
                return True
            else:
                logger.warning("Telegram send failed: %d %s", resp.status_code, resp.text[:200])
                return False
        except Exception:
            logger.exception("Telegram send error")
            return False
