"""
Wi-Fi Sentry Structured Logger
==============================

Provides :class:`SentryLogger`, a thin facade over :mod:`logging` used by
every Sentry component.

All component loggers are children of a single ``wifisentry`` parent
logger.  :meth:`SentryLogger.configure` installs the handlers on that
parent once per process:

    * a Rich console handler on stderr (suppressed by ``--quiet``)
    * an optional rotating file handler, plain text or JSON lines

The current operation (for example ``cycle-7`` while the scheduler runs a
cycle) lives in a :class:`contextvars.ContextVar`, so concurrent tasks
never see each other's operation name.

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - PEP 567: Context Variables. https://peps.python.org/pep-0567/
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

ROOT_LOGGER = "wifisentry"

_current_operation: ContextVar[Optional[str]] = ContextVar(
    "sentry_operation", default=None
)

_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
        "log.level.critical": "bold white on red",
    }
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(component)s] %(message)s"


class _ContextFilter(logging.Filter):
    """Stamp ``component`` and ``operation`` onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = record.name.removeprefix(f"{ROOT_LOGGER}.")
        record.operation = _current_operation.get()
        return True


class _JSONLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "msg": record.getMessage(),
        }
        operation = getattr(record, "operation", None)
        if operation:
            entry["operation"] = operation
        fields = getattr(record, "fields", None)
        if fields:
            entry["fields"] = fields
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class SentryLogger:
    """Component logger.

    Keyword arguments other than the stdlib ones (``exc_info``,
    ``stack_info``, ``stacklevel``) are collected into a ``fields`` dict
    and written by the JSON file formatter::

        log = SentryLogger("sentry.core.scheduler")
        log.warning("Cycle %d failed", 3, phase="snapshot")
    """

    _STD_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})

    def __init__(self, component: str) -> None:
        self._component = component
        self._logger = logging.getLogger(f"{ROOT_LOGGER}.{component}")

    @staticmethod
    def configure(
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        console_output: bool = True,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        """(Re)install handlers on the parent ``wifisentry`` logger."""
        root = logging.getLogger(ROOT_LOGGER)
        level = getattr(logging, log_level.upper(), logging.INFO)
        root.setLevel(level)
        root.propagate = False

        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        if console_output:
            console = RichHandler(
                console=Console(theme=_THEME, stderr=True),
                show_path=False,
                rich_tracebacks=True,
                markup=False,
            )
            console.addFilter(_ContextFilter())
            root.addHandler(console)

        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
            handler.addFilter(_ContextFilter())
            handler.setFormatter(
                _JSONLineFormatter() if json_logs else logging.Formatter(_TEXT_FORMAT)
            )
            root.addHandler(handler)

    # ------------------------------------------------------------------ #
    #  Context helpers
    # ------------------------------------------------------------------ #

    @contextmanager
    def operation(self, name: str) -> Iterator[SentryLogger]:
        """Tag records emitted inside the block with *name*."""
        token = _current_operation.set(name)
        try:
            yield self
        finally:
            _current_operation.reset(token)

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.debug("%s took %.3f sec", label, time.perf_counter() - start)

    # ------------------------------------------------------------------ #
    #  Log methods
    # ------------------------------------------------------------------ #

    def _log(self, level: int, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in self._STD_KWARGS}
        extra = {"component": self._component}
        if fields:
            extra["fields"] = fields
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """ERROR record carrying the active exception's traceback."""
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, kwargs)
