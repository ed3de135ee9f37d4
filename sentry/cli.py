"""
Sentry CLI
==========

Click-based command-line interface for the Wi-Fi Sentry threat engine.

Commands:
    sentry analyze SNAPSHOT           One-shot analysis of JSON snapshots
    sentry watch                      Run the periodic scan scheduler
    sentry demo                       Scheduler over the simulated source

Common options:
    --config PATH       TOML configuration file
    --quiet             Suppress console output
    --verbose           Debug logging

Exit codes for ``analyze``: 0 clean or low/medium only, 1 high findings
or a usage error, 2 critical findings.

References:
    - Click Documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Any, Optional

import click

from shared.config import SentryConfig, SourceConfig
from shared.console import SentryConsole
from shared.logger import SentryLogger
from shared.models import Severity

from sentry import __version__


# ---------------------------------------------------------------------------
# Async helper
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click commands.

    Falls back to a worker thread when an event loop is already running
    (e.g. inside a notebook).
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            future = pool.submit(asyncio.run, coro)
            return future.result()
    return asyncio.run(coro)


def _exit_code(highest: Optional[Severity]) -> int:
    if highest is Severity.CRITICAL:
        return 2
    if highest is Severity.HIGH:
        return 1
    return 0


def _build_source(source: SourceConfig) -> Any:
    from sentry.collectors import (
        JsonSnapshotSource,
        NmcliSnapshotSource,
        SimulatedSnapshotSource,
    )

    if source.kind == "file":
        if not source.path:
            raise click.UsageError("--path is required for the file source")
        return JsonSnapshotSource(source.path)
    if source.kind == "nmcli":
        return NmcliSnapshotSource(source.interface)
    if source.kind == "simulated":
        return SimulatedSnapshotSource()
    raise click.UsageError(f"Unknown snapshot source: {source.kind}")


# ---------------------------------------------------------------------------
# CLI Group
# ---------------------------------------------------------------------------


@click.group(
    name="sentry",
    help=(
        "WI-FI SENTRY - Wireless Threat Heuristic Engine\n\n"
        "Classify nearby access points against evil-twin, karma, MAC "
        "spoofing, beacon-flood, near-clone and capability checks, "
        "using prior scans as a baseline."
    ),
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to Wi-Fi Sentry configuration file (TOML).",
)
@click.option(
    "--oui-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="OUI=Vendor properties file merged over the bundled vendor table.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress console output (reports and exit code only).",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(__version__, prog_name="wifisentry")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    oui_file: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """Wi-Fi Sentry - main CLI entry point."""
    ctx.ensure_object(dict)

    try:
        config = SentryConfig.load(config_path) if config_path else SentryConfig()
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if oui_file:
        config.engine.oui_file = oui_file

    settings = config.global_settings
    SentryLogger.configure(
        log_level="DEBUG" if verbose or settings.debug else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
        console_output=not quiet,
    )

    ctx.obj["config"] = config
    ctx.obj["console"] = SentryConsole(quiet=quiet)
    ctx.obj["quiet"] = quiet


# ---------------------------------------------------------------------------
# Analyze Command
# ---------------------------------------------------------------------------


@cli.command(
    name="analyze",
    help=(
        "Analyze a recorded snapshot.\n\n"
        "SNAPSHOT is a JSON file, a WiGLE CSV export, or a directory of "
        "them. The last scan is "
        "analysed; any earlier scans in it, plus every --history file, form "
        "the history window."
    ),
)
@click.argument("snapshot_path", type=click.Path(exists=True))
@click.option(
    "--history", "-H",
    "history_paths",
    multiple=True,
    type=click.Path(exists=True),
    help="Prior snapshot file or directory (repeatable).",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write a JSON report to this path.",
)
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(),
    default=None,
    help="Write a CSV threat export to this path.",
)
@click.pass_context
def analyze(
    ctx: click.Context,
    snapshot_path: str,
    history_paths: tuple[str, ...],
    output: Optional[str],
    csv_path: Optional[str],
) -> None:
    """Analyze a snapshot against its history."""
    config: SentryConfig = ctx.obj["config"]
    console: SentryConsole = ctx.obj["console"]

    from sentry.collectors import load_snapshots
    from sentry.core.engine import ThreatEngine
    from sentry.core.models import HistoryWindow
    from sentry.output import SentryConsoleOutput, SentryReportGenerator

    try:
        scans = load_snapshots(snapshot_path)
        if not scans:
            raise ValueError(f"No snapshots found in {snapshot_path}")
        prior = list(scans[:-1])
        for path in history_paths:
            prior.extend(load_snapshots(path))
        engine = ThreatEngine(config.engine)
    except (OSError, ValueError) as exc:
        console.error(str(exc))
        sys.exit(1)

    snapshot = scans[-1]
    history = HistoryWindow.from_snapshots(prior)
    result = engine.analyze(snapshot, history)

    view = SentryConsoleOutput(console, engine.vendors)
    view.display_banner(__version__)
    console.info(
        f"Analysing {snapshot.network_count} networks against "
        f"{history.size} historic scans"
    )
    view.display_networks(snapshot, result)
    view.display_findings(result)
    view.display_summary(result)

    reports = SentryReportGenerator(config.global_settings.version, engine.vendors)
    if output:
        console.success(f"JSON report: {reports.generate_json(result, output, snapshot=snapshot)}")
    if csv_path:
        console.success(f"CSV export: {reports.generate_csv(result.findings, csv_path)}")

    sys.exit(_exit_code(result.summary.highest_severity))


# ---------------------------------------------------------------------------
# Watch / Demo Commands
# ---------------------------------------------------------------------------


async def _watch(
    config: SentryConfig,
    engine: Any,
    console: SentryConsole,
    quiet: bool,
    history_url: Optional[str],
) -> tuple[int, int]:
    from sentry.collectors import InMemoryHistoryProvider, RemoteHistoryProvider
    from sentry.core.scheduler import ScanScheduler
    from sentry.output import (
        ConsoleSink,
        JsonLinesSink,
        LogSink,
        SentryConsoleOutput,
        WebhookSink,
    )

    source = _build_source(config.source)
    closers = []

    if history_url:
        history: Any = RemoteHistoryProvider(history_url)
        closers.append(history.close)
    else:
        history = InMemoryHistoryProvider(config.scheduler.history_max_records)

    scheduler = ScanScheduler(
        source,
        history,
        engine,
        config.scheduler,
    )
    if isinstance(history, InMemoryHistoryProvider):
        scheduler.on_findings(history.record_report)

    if quiet:
        scheduler.on_findings(LogSink())
    else:
        scheduler.on_findings(ConsoleSink(SentryConsoleOutput(console, engine.vendors)))

    if config.sinks.jsonl_path:
        jsonl = JsonLinesSink(config.sinks.jsonl_path)
        scheduler.on_findings(jsonl)
        scheduler.on_error(jsonl.write_error)
    if config.sinks.webhook_url:
        webhook = WebhookSink(
            config.sinks.webhook_url, timeout=config.sinks.webhook_timeout
        )
        scheduler.on_findings(webhook)
        scheduler.on_error(webhook.send_error)
        closers.append(webhook.close)

    # Ctrl-C asks for a stop at the next Idle boundary instead of cancelling
    loop = asyncio.get_running_loop()
    handled = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, scheduler.stop)
        except (NotImplementedError, RuntimeError, ValueError):
            continue  # no loop signal support here; run() still shields cycles
        handled.append(signum)

    try:
        await scheduler.run()
    finally:
        for signum in handled:
            loop.remove_signal_handler(signum)
        for close in closers:
            await close()
    return scheduler.cycles_completed, scheduler.cycles_failed


def _start_watch(
    ctx: click.Context, history_url: Optional[str] = None
) -> None:
    config: SentryConfig = ctx.obj["config"]
    console: SentryConsole = ctx.obj["console"]
    quiet: bool = ctx.obj["quiet"]

    from sentry.core.engine import ThreatEngine

    try:
        engine = ThreatEngine(config.engine)
    except (OSError, ValueError) as exc:
        console.error(str(exc))
        sys.exit(1)

    console.banner(__version__)
    console.info(
        f"Watching {config.source.kind} source every "
        f"{config.scheduler.interval_seconds:g}s "
        f"({config.scheduler.max_cycles or 'unlimited'} cycles). Ctrl-C to stop."
    )
    try:
        completed, failed = _run_async(
            _watch(config, engine, console, quiet, history_url)
        )
    except KeyboardInterrupt:
        console.warning("Interrupted")
        return
    console.success(f"{completed} cycles completed, {failed} failed")


@cli.command(
    name="watch",
    help=(
        "Run the scan scheduler.\n\n"
        "Acquires a snapshot every --interval seconds, analyses it against "
        "the accumulated history and publishes findings to the console and "
        "any configured sinks."
    ),
)
@click.option(
    "--source", "-s",
    type=click.Choice(["file", "nmcli", "simulated"]),
    default=None,
    help="Snapshot source (default from config).",
)
@click.option("--path", "-p", type=click.Path(), default=None, help="Snapshot JSON/WiGLE CSV file or directory for the file source.")
@click.option("--interface", "-i", type=str, default=None, help="Wireless interface for nmcli.")
@click.option("--interval", type=float, default=None, help="Seconds between cycle starts.")
@click.option("--cycles", "-n", type=int, default=None, help="Stop after this many cycles.")
@click.option("--jsonl", type=click.Path(), default=None, help="Append cycle envelopes to a JSON-lines file.")
@click.option("--webhook", type=str, default=None, help="POST cycle envelopes to this URL.")
@click.option("--history-url", type=str, default=None, help="Fetch the history window from this URL.")
@click.pass_context
def watch(
    ctx: click.Context,
    source: Optional[str],
    path: Optional[str],
    interface: Optional[str],
    interval: Optional[float],
    cycles: Optional[int],
    jsonl: Optional[str],
    webhook: Optional[str],
    history_url: Optional[str],
) -> None:
    """Run periodic scan cycles."""
    config: SentryConfig = ctx.obj["config"]
    if source:
        config.source.kind = source
    if path:
        config.source.path = path
    if interface:
        config.source.interface = interface
    if interval is not None:
        config.scheduler.interval_seconds = interval
    if cycles is not None:
        config.scheduler.max_cycles = cycles
    if jsonl:
        config.sinks.jsonl_path = jsonl
    if webhook:
        config.sinks.webhook_url = webhook
    try:
        config.validate()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    _start_watch(ctx, history_url)


@cli.command(
    name="demo",
    help="Run a few scheduler cycles over the simulated attack script.",
)
@click.option("--cycles", "-n", type=int, default=5, show_default=True, help="Number of cycles.")
@click.option("--interval", type=float, default=1.0, show_default=True, help="Seconds between cycle starts.")
@click.pass_context
def demo(ctx: click.Context, cycles: int, interval: float) -> None:
    """Scheduler demo over simulated scans."""
    config: SentryConfig = ctx.obj["config"]
    config.source.kind = "simulated"
    config.scheduler.max_cycles = cycles
    config.scheduler.interval_seconds = interval
    _start_watch(ctx)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point for the Wi-Fi Sentry CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
