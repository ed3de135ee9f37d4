"""
Sentry Output
=============

Console rendering, file reports, and cycle publishing sinks.

Modules:
    console  -- Rich console tables and cycle status lines
    report   -- JSON report and CSV threat export
    sinks    -- Log, console, JSON-lines and webhook subscribers
"""

from sentry.output.console import SentryConsoleOutput
from sentry.output.report import SentryReportGenerator, findings_to_csv
from sentry.output.sinks import ConsoleSink, JsonLinesSink, LogSink, WebhookSink

__all__ = [
    "ConsoleSink",
    "JsonLinesSink",
    "LogSink",
    "SentryConsoleOutput",
    "SentryReportGenerator",
    "WebhookSink",
    "findings_to_csv",
]
