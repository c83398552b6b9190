"""Chat-facing side of the bot — command routing and the Telegram transport."""

from .commands import Command, CommandRouter, ParseMode, Reply, UnknownCommand, route
from .telegram import TelegramBot
