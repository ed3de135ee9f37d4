"""
Wi-Fi Sentry Console Interface
==============================

Rich-powered console abstraction providing a unified presentation layer
for the Sentry CLI and console sink.

The theme defines one ``sentry.<severity>`` style per finding severity,
so every view colours CRITICAL, HIGH, MEDIUM and LOW the same way.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

import datetime as _dt
from typing import Any, Sequence

from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

_SENTRY_THEME = Theme(
    {
        "sentry.banner": "bold bright_cyan",
        "sentry.section": "bold bright_magenta",
        "sentry.success": "bold green",
        "sentry.warning": "bold yellow",
        "sentry.error": "bold red",
        "sentry.info": "bold bright_blue",
        "sentry.dim": "dim white",
        "sentry.highlight": "bold bright_white",
        "sentry.critical": "bold white on red",
        "sentry.high": "bold red",
        "sentry.medium": "bold yellow",
        "sentry.low": "bold bright_cyan",
    }
)

_BANNER_ART = r"""
[bright_cyan]
 ██╗    ██╗██╗      ███████╗██╗    ███████╗███████╗███╗   ██╗████████╗██████╗ ██╗   ██╗
 ██║    ██║██║      ██╔════╝██║    ██╔════╝██╔════╝████╗  ██║╚══██╔══╝██╔══██╗╚██╗ ██╔╝
 ██║ █╗ ██║██║█████╗█████╗  ██║    ███████╗█████╗  ██╔██╗ ██║   ██║   ██████╔╝ ╚████╔╝
 ██║███╗██║██║╚════╝██╔══╝  ██║    ╚════██║██╔══╝  ██║╚██╗██║   ██║   ██╔══██╗  ╚██╔╝
 ╚███╔███╔╝██║      ██║     ██║    ███████║███████╗██║ ╚████║   ██║   ██║  ██║   ██║
  ╚══╝╚══╝ ╚═╝      ╚═╝     ╚═╝    ╚══════╝╚══════╝╚═╝  ╚═══╝   ╚═╝   ╚═╝  ╚═╝   ╚═╝
[/bright_cyan]"""

_TAGLINE = "Wireless Threat Heuristic Engine"


class SentryConsole:
    """Unified console interface for Wi-Fi Sentry.

    Wraps :pyclass:`rich.console.Console` with helpers for every
    presentation need the CLI has.

    Usage::

        con = SentryConsole()
        con.banner()
        con.section("Findings")
        con.success("Cycle complete")
    """

    def __init__(self, *, quiet: bool = False, record: bool = False) -> None:
        """Initialise the console.

        Args:
            quiet:  Suppress all output (useful in library / test mode).
            record: Enable Rich recording for SVG / HTML export.
        """
        self._console = Console(
            theme=_SENTRY_THEME,
            quiet=quiet,
            record=record,
            highlight=False,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    # ------------------------------------------------------------------ #
    #  Banner / sections
    # ------------------------------------------------------------------ #

    def banner(self, version: str = "1.0.0") -> None:
        """Display the Wi-Fi Sentry banner with version and local time."""
        now = _dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        subtitle = (
            f"[sentry.highlight]{_TAGLINE}[/sentry.highlight]\n"
            f"[sentry.dim]Version: {version}  |  {now}[/sentry.dim]"
        )
        panel = Panel(
            Align.center(Text.from_markup(_BANNER_ART + "\n" + subtitle)),
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.print(panel)

    def section(self, title: str) -> None:
        """Print a prominent section header."""
        self._console.rule(
            f"  {title}  ",
            style="sentry.section",
            characters="─",
        )
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Status messages
    # ------------------------------------------------------------------ #

    _PREFIXES = {
        "success": ("sentry.success", "[+]"),
        "info": ("sentry.info", "[*]"),
        "warning": ("sentry.warning", "[!]"),
        "error": ("sentry.error", "[-]"),
        "critical": ("sentry.critical", "[!!]"),
    }

    def _say(self, kind: str, message: str) -> None:
        style, tag = self._PREFIXES[kind]
        self._console.print(f"[{style}]{tag}[/{style}] {escape(message)}")

    def success(self, message: str) -> None:
        self._say("success", message)

    def info(self, message: str) -> None:
        self._say("info", message)

    def warning(self, message: str) -> None:
        self._say("warning", message)

    def error(self, message: str) -> None:
        self._say("error", message)

    def critical(self, message: str) -> None:
        self._say("critical", message)

    # ------------------------------------------------------------------ #
    #  Tables
    # ------------------------------------------------------------------ #

    def key_values(self, title: str, pairs: Sequence[tuple[str, str]]) -> None:
        """Two-column borderless table; values may carry markup."""
        grid = Table(title=title, show_header=False, box=None, padding=(0, 2))
        grid.add_column(style="sentry.dim")
        grid.add_column(justify="right", style="sentry.highlight")
        for key, value in pairs:
            grid.add_row(key, value)
        self._console.print(grid)
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

    def blank(self, count: int = 1) -> None:
        """Print *count* blank lines."""
        for _ in range(count):
            self._console.print()

    def export_text(self) -> str:
        """Recorded output as plain text (requires ``record=True``)."""
        return self._console.export_text()
