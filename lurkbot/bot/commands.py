"""Command routing — maps the first token of a chat message to a handler.

The command set is closed: every ``Command`` member must have a handler,
and anything else routes to ``UnknownCommand``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from lurkbot.health.formatter import NO_VISIBLE_NODES_TEXT, render
from lurkbot.health.orchestrator import HealthcheckOrchestrator

logger = logging.getLogger(__name__)


class Command(str, Enum):
    HELP = "/help"
    HEALTHCHECK = "/healthcheck"


@dataclass(frozen=True)
class UnknownCommand:
    """Any token that is not a registered command label."""

    token: str


RoutedCommand = Union[Command, UnknownCommand]


class ParseMode(str, Enum):
    MARKDOWN = "Markdown"


@dataclass(frozen=True)
class Reply:
    """Text to send back to the chat that issued a command."""

    text: str
    parse_mode: ParseMode | None = None


HELP_TEXT = (
    "Available commands:\n"
    "    /help - view this information\n"
    "    /healthcheck - check the health of all visible nodes"
)

UNKNOWN_COMMAND_TEXT = "Unknown command '{token}'. Try /help to see the list of available commands"
INTERNAL_ERROR_TEXT = "Something went wrong while handling your command, please try again later"


def route(token: str) -> RoutedCommand:
    """Exact label lookup over the command set."""
    for command in Command:
        if command.value == token:
            return command
    return UnknownCommand(token)


def parse_command(text: str) -> RoutedCommand:
    """Route the first whitespace-delimited token of ``text``."""
    parts = (text or "").split(maxsplit=1)
    return route(parts[0] if parts else "")


Handler = Callable[[int], Awaitable[Reply]]


class CommandRouter:
    """Dispatches routed commands to their handlers."""

    def __init__(self, orchestrator: HealthcheckOrchestrator) -> None:
        self.orchestrator = orchestrator
        self._handlers: dict[Command, Handler] = {
            Command.HELP: self._handle_help,
            Command.HEALTHCHECK: self._handle_healthcheck,
        }
        missing = [c.value for c in Command if c not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler registered for: {', '.join(missing)}")

    async def dispatch(self, command: RoutedCommand, chat_id: int) -> Reply:
        logger.info("Handling command %s for chat_id=%s", command, chat_id)
        if isinstance(command, UnknownCommand):
            return self._handle_unknown(command, chat_id)
        return await self._handlers[command](chat_id)

    async def handle_message(self, chat_id: int, text: str) -> Reply:
        """Route and dispatch one incoming chat message."""
        return await self.dispatch(parse_command(text), chat_id)

    # -- Handlers -------------------------------------------------------------

    async def _handle_help(self, chat_id: int) -> Reply:
        return Reply(HELP_TEXT)

    async def _handle_healthcheck(self, chat_id: int) -> Reply:
        report = await self.orchestrator.run(chat_id)
        if report.is_empty:
            return Reply(NO_VISIBLE_NODES_TEXT)
        return Reply(render(report), parse_mode=ParseMode.MARKDOWN)

    def _handle_unknown(self, command: UnknownCommand, chat_id: int) -> Reply:
        logger.warning("Unknown command '%s' sent from chat_id=%s", command.token, chat_id)
        return Reply(UNKNOWN_COMMAND_TEXT.format(token=command.token))
