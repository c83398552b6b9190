"""Entry point for the Lurk healthcheck bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lurkbot.bot.commands import CommandRouter
from lurkbot.bot.telegram import TelegramBot
from lurkbot.config import Settings, settings
from lurkbot.health.formatter import render_plain
from lurkbot.health.orchestrator import HealthcheckOrchestrator, HealthcheckReport
from lurkbot.health.prober import Failed, HealthProber
from lurkbot.nodes.registry import NodeRegistry, NodeRegistryError, build_registry

console = Console()
logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    # httpx logs every request at INFO, which drowns out the long-poll loop
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_registry_or_exit(cfg: Settings) -> NodeRegistry:
    """Build the node registry; a failure here is fatal."""
    try:
        return build_registry(cfg.nodes_file)
    except NodeRegistryError as e:
        console.print(f"[bold red]Cannot load node registry:[/bold red] {e}")
        sys.exit(1)


def build_prober(cfg: Settings) -> HealthProber:
    return HealthProber(
        connect_timeout=cfg.probe_connect_timeout,
        request_timeout=cfg.probe_request_timeout,
        scheme=cfg.probe_scheme,
    )


async def _serve(cfg: Settings, registry: NodeRegistry) -> None:
    async with build_prober(cfg) as prober:
        orchestrator = HealthcheckOrchestrator(
            registry, prober, max_concurrency=cfg.probe_max_concurrency,
        )
        bot = TelegramBot(
            cfg.telegram_bot_token,
            CommandRouter(orchestrator),
            poll_timeout=cfg.poll_timeout,
            poll_backoff=cfg.poll_backoff,
            command_timeout=cfg.command_timeout,
        )
        try:
            await bot.run()
        finally:
            await bot.stop()


def run_server(cfg: Settings) -> None:
    """Start the Telegram bot and poll until interrupted."""
    if not cfg.telegram_bot_token:
        console.print("[bold red]LURKBOT_TELEGRAM_BOT_TOKEN is not set[/bold red]")
        sys.exit(1)

    registry = load_registry_or_exit(cfg)
    console.print(Panel(f"Starting Lurk bot ({len(registry)} nodes)", style="bold green"))
    try:
        asyncio.run(_serve(cfg, registry))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


async def _check(cfg: Settings, registry: NodeRegistry, chat_id: int) -> HealthcheckReport:
    async with build_prober(cfg) as prober:
        orchestrator = HealthcheckOrchestrator(
            registry, prober, max_concurrency=cfg.probe_max_concurrency,
        )
        return await orchestrator.run(chat_id)


def run_check(cfg: Settings, chat_id: int) -> int:
    """Run a single healthcheck and print it. Exit code 2 if any node failed."""
    registry = load_registry_or_exit(cfg)

    with console.status("[bold green]Probing nodes..."):
        report = asyncio.run(_check(cfg, registry, chat_id))

    console.print(Panel(render_plain(report), title="Healthcheck", style="bold blue"))
    return 2 if report.count(Failed) else 0


def list_nodes(cfg: Settings) -> None:
    registry = load_registry_or_exit(cfg)
    table = Table(title="Nodes")
    table.add_column("Host")
    table.add_column("Port", justify="right")
    table.add_column("Healthcheck URL")
    for node in registry:
        table.add_row(node.host, str(node.port), node.http_uri("/healthcheck", cfg.probe_scheme))
    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="Lurk node healthcheck bot")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the Telegram bot")

    check_parser = sub.add_parser("check", help="Run one healthcheck and print the result")
    check_parser.add_argument("--chat-id", type=int, default=0, help="Chat whose visible nodes to probe")

    sub.add_parser("nodes", help="List the node registry")

    args = parser.parse_args()
    configure_logging(settings.log_level)

    if args.command == "serve":
        run_server(settings)
    elif args.command == "check":
        sys.exit(run_check(settings, args.chat_id))
    elif args.command == "nodes":
        list_nodes(settings)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
