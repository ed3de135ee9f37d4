"""
Sentry JSON Snapshot Source
===========================

Loads scan snapshots from JSON files, either for one-shot analysis or
to replay a recorded session through the scheduler.

Accepted layouts:

- a single snapshot object ``{"timestamp": ..., "observations": [...]}``
  (``networks`` is accepted as an alias of ``observations``);
- a bare list of observation objects (timestamped at load time);
- a list of snapshot objects, or ``{"snapshots": [...]}``;
- a WiGLE CSV export (``*.csv``), one snapshot per UTC day;
- a directory of such files, replayed in file-name order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from shared.logger import SentryLogger
from sentry.core.errors import ScanUnavailable
from sentry.core.models import ScanSnapshot
from sentry.collectors.wigle import load_wigle_csv

logger = SentryLogger("sentry.collectors.file_source")

_SUFFIXES = (".json", ".csv")


def _is_snapshot_object(item: Any) -> bool:
    return isinstance(item, dict) and (
        "observations" in item or "networks" in item
    )


def parse_snapshots(raw: Any) -> list[ScanSnapshot]:
    """Turn decoded JSON into snapshots (see module docstring for layouts).

    Raises:
        ValueError: If the structure is not one of the accepted layouts.
    """
    if isinstance(raw, dict) and "snapshots" in raw:
        raw = raw["snapshots"]

    if _is_snapshot_object(raw):
        return [ScanSnapshot.model_validate(raw)]

    if isinstance(raw, list):
        if raw and all(_is_snapshot_object(item) for item in raw):
            return [ScanSnapshot.model_validate(item) for item in raw]
        return [ScanSnapshot.model_validate({"observations": raw})]

    raise ValueError(
        "expected a snapshot object, a list of observations, or a list of snapshots"
    )


def load_snapshots(path: Union[str, Path]) -> list[ScanSnapshot]:
    """Load every snapshot from a file or a directory of ``*.json`` / ``*.csv`` files.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If any file is not valid snapshot JSON.
    """
    target = Path(path)
    if not target.exists():
        raise FileNotFoundError(f"Snapshot path not found: {target}")

    if target.is_dir():
        files = sorted(f for f in target.iterdir() if f.suffix.lower() in _SUFFIXES)
    else:
        files = [target]
    snapshots: list[ScanSnapshot] = []
    for file in files:
        if file.suffix.lower() == ".csv":
            snapshots.extend(load_wigle_csv(file).snapshots)
            continue
        try:
            raw = json.loads(file.read_text(encoding="utf-8"))
            snapshots.extend(parse_snapshots(raw))
        except (json.JSONDecodeError, ValidationError, ValueError) as exc:
            raise ValueError(f"{file}: {exc}") from exc
    logger.debug("Loaded %d snapshots from %s", len(snapshots), target)
    return snapshots


def load_snapshot(path: Union[str, Path]) -> ScanSnapshot:
    """Load exactly the last snapshot stored at *path*."""
    snapshots = load_snapshots(path)
    if not snapshots:
        raise ValueError(f"No snapshots found in {path}")
    return snapshots[-1]


class JsonSnapshotSource:
    """Replays recorded snapshots one per cycle.

    The files are read lazily on the first acquisition.  Once every
    snapshot has been handed out, further acquisitions raise
    :class:`ScanUnavailable` unless *loop* is set.

    Args:
        path: Snapshot file or directory.
        loop: Restart from the first snapshot when exhausted.
    """

    def __init__(self, path: Union[str, Path], *, loop: bool = False) -> None:
        self._path = Path(path)
        self._loop = loop
        self._snapshots: list[ScanSnapshot] | None = None
        self._index = 0

    async def acquire_snapshot(self) -> ScanSnapshot:
        if self._snapshots is None:
            try:
                self._snapshots = load_snapshots(self._path)
            except (OSError, ValueError) as exc:
                raise ScanUnavailable(str(exc)) from exc

        if self._index >= len(self._snapshots):
            if not self._loop or not self._snapshots:
                raise ScanUnavailable(f"No more snapshots in {self._path}")
            self._index = 0

        snapshot = self._snapshots[self._index]
        self._index += 1
        return snapshot

    @property
    def remaining(self) -> int:
        if self._snapshots is None:
            return -1
        return len(self._snapshots) - self._index
