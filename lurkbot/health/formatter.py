"""Renders a healthcheck report as a Telegram Markdown reply."""

from __future__ import annotations

from lurkbot.health.orchestrator import HealthcheckEntry, HealthcheckReport
from lurkbot.health.prober import Failed, Responded

HEADER = "*Healthcheck report*"
NO_VISIBLE_NODES_TEXT = "There are no visible nodes available"

SUCCESS_MARKER = "✅"
SOFT_FAILURE_MARKER = "⚠️"
HARD_FAILURE_MARKER = "❌"

# Characters Telegram's legacy Markdown treats as entity delimiters
_MARKDOWN_SPECIAL = ("_", "*", "`", "[")


def escape_markdown(text: str) -> str:
    """Escape Markdown special chars for Telegram."""
    for char in _MARKDOWN_SPECIAL:
        text = text.replace(char, f"\\{char}")
    return text


def render_entry(entry: HealthcheckEntry) -> str:
    node = escape_markdown(str(entry.node))
    outcome = entry.outcome
    if isinstance(outcome, Responded):
        if outcome.status_code == 200:
            return f"{SUCCESS_MARKER} {node} responded with SUCCESS"
        return f"{SOFT_FAILURE_MARKER} {node} responded with `{outcome.status_code}` HTTP status code"
    if isinstance(outcome, Failed):
        return f"{HARD_FAILURE_MARKER} {node} failed with error: {escape_markdown(outcome.reason)}"
    raise TypeError(f"Unknown healthcheck outcome: {outcome!r}")


def render(report: HealthcheckReport) -> str:
    """Header followed by one line per node, separated by blank lines."""
    lines = [render_entry(e) for e in report.entries]
    return "\n\n".join([HEADER, *lines])


def render_plain(report: HealthcheckReport) -> str:
    """Unescaped, marker-free rendering for console output."""
    if report.is_empty:
        return NO_VISIBLE_NODES_TEXT
    lines = []
    for e in report.entries:
        if isinstance(e.outcome, Responded):
            status = "SUCCESS" if e.outcome.status_code == 200 else f"HTTP {e.outcome.status_code}"
            lines.append(f"{e.node}  {status}  ({e.elapsed_ms:.0f}ms)")
        else:
            lines.append(f"{e.node}  FAILED: {e.outcome.reason}  ({e.elapsed_ms:.0f}ms)")
    return "\n".join(lines)
