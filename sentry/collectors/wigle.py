"""
Sentry WiGLE CSV Import
=======================

Turns a WiGLE CSV export (``WigleWifi-1.4``) into scan snapshots so that
wardriving logs can seed the history window or be analysed offline.

The export starts with an app-metadata line, followed by the column
header and one row per sighted network::

    WigleWifi-1.4,appRelease=2.64,model=Pixel 7,...
    MAC,SSID,AuthMode,FirstSeen,Channel,RSSI,CurrentLatitude,...,Type
    3c:84:6a:10:20:30,CafeLatte,[WPA2-PSK-CCMP][ESS],2024-05-01 09:12:44,6,-63,...,WIFI

Only ``Type=WIFI`` rows are imported (Bluetooth and cell sightings are
skipped).  Rows are grouped by the UTC calendar day of ``FirstSeen``;
each day becomes one snapshot timestamped at midnight UTC, oldest first.

References:
    - WiGLE. CSV export format, WigleWifi-1.4.
      https://api.wigle.net/csvFormat.html
    - RFC 4180. Common Format and MIME Type for CSV Files.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from shared.logger import SentryLogger
from sentry.core.models import NetworkObservation, ScanSnapshot

logger = SentryLogger("sentry.collectors.wigle")

WIGLE_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%Y-%m-%d",
)


@dataclass(slots=True)
class WigleImport:
    """Result of one CSV import."""

    snapshots: list[ScanSnapshot] = field(default_factory=list)
    imported: int = 0
    skipped: int = 0


def channel_to_frequency(channel: int) -> int:
    """Centre frequency (MHz) for a WiGLE channel number; 0 if unusable.

    Channels above 177 can only be 6 GHz, so they map onto that band.
    """
    if channel == 14:
        return 2484
    if 1 <= channel <= 13:
        return 2407 + channel * 5
    if 36 <= channel <= 177:
        return 5000 + channel * 5
    if channel > 177:
        return 5950 + channel * 5
    return 0


def parse_first_seen(value: str) -> Optional[datetime]:
    value = value.strip()
    for fmt in WIGLE_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def _cell(row: list[str], columns: dict[str, int], name: str, default: str = "") -> str:
    index = columns.get(name)
    if index is None or index >= len(row):
        return default
    return row[index].strip()


def _to_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def parse_wigle_csv(text: str) -> WigleImport:
    """Parse WiGLE CSV *text* into day-grouped snapshots.

    A text without a ``MAC,...`` header (or without MAC / SSID columns)
    yields no snapshots and counts every line as skipped.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    header_index = next(
        (
            i
            for i, line in enumerate(lines)
            if line.lower().startswith(("mac,", '"mac"'))
        ),
        None,
    )
    if header_index is None:
        return WigleImport(skipped=len(lines))

    rows = csv.reader(lines[header_index:])
    header = [name.strip().lower() for name in next(rows)]
    columns = {name: index for index, name in reversed(list(enumerate(header)))}
    if "mac" not in columns or "ssid" not in columns:
        return WigleImport(skipped=len(lines))

    by_day: dict[datetime, list[NetworkObservation]] = {}
    result = WigleImport()
    for row in rows:
        mac = _cell(row, columns, "mac")
        kind = _cell(row, columns, "type", default="WIFI")
        seen = parse_first_seen(_cell(row, columns, "firstseen"))
        if not mac or kind.upper() != "WIFI" or seen is None:
            result.skipped += 1
            continue

        observation = NetworkObservation(
            ssid=_cell(row, columns, "ssid"),
            bssid=mac,
            security=_cell(row, columns, "authmode"),
            rssi=_to_int(_cell(row, columns, "rssi")),
            frequency_mhz=channel_to_frequency(
                _to_int(_cell(row, columns, "channel")) or 0
            ),
            capability_flags=None,
        )
        day = seen.replace(hour=0, minute=0, second=0, microsecond=0)
        by_day.setdefault(day, []).append(observation)
        result.imported += 1

    result.snapshots = [
        ScanSnapshot(timestamp=day, observations=tuple(by_day[day]))
        for day in sorted(by_day)
    ]
    return result


def load_wigle_csv(path: Union[str, Path]) -> WigleImport:
    """Read and parse one WiGLE CSV file.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    target = Path(path)
    if not target.exists():
        raise FileNotFoundError(f"WiGLE export not found: {target}")
    result = parse_wigle_csv(target.read_text(encoding="utf-8", errors="replace"))
    logger.info(
        "Imported %d WiGLE networks into %d daily snapshots from %s "
        "(%d rows skipped)",
        result.imported, len(result.snapshots), target, result.skipped,
    )
    return result
