"""Healthcheck subsystem — prober, orchestrator, formatter."""

from .formatter import NO_VISIBLE_NODES_TEXT, escape_markdown, render, render_plain
from .orchestrator import HealthcheckEntry, HealthcheckOrchestrator, HealthcheckReport
from .prober import Failed, HealthcheckOutcome, HealthProber, Responded
