"""
Sentry NetworkManager Snapshot Source
=====================================

Acquires live scans on Linux through ``nmcli`` in terse mode.  Scanning
is passive from the engine's point of view: ``nmcli`` reports the
beacons NetworkManager has already collected.

NetworkManager reports signal as a 0-100 quality percentage; it is
converted to dBm with ``dBm = quality / 2 - 100``, the same mapping
NetworkManager applies in reverse.

References:
    - NetworkManager nmcli(1) manual, "device wifi list".
      https://networkmanager.dev/docs/api/latest/nmcli.html
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Optional

from shared.logger import SentryLogger
from sentry.core.errors import ScanUnavailable
from sentry.core.models import NetworkObservation, ScanSnapshot

logger = SentryLogger("sentry.collectors.nmcli")

NMCLI_FIELDS = ("SSID", "BSSID", "FREQ", "SIGNAL", "SECURITY")

_FREQ = re.compile(r"(\d+)")


def split_terse(line: str) -> list[str]:
    """Split a terse ``nmcli`` line on unescaped ``:``.

    nmcli escapes ``:`` as ``\\:`` and ``\\`` as ``\\\\`` inside values,
    so escapes are walked left to right rather than matched by lookbehind.
    """
    fields: list[str] = []
    current: list[str] = []
    chars = iter(line)
    for ch in chars:
        if ch == "\\":
            current.append(next(chars, "\\"))
        elif ch == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def quality_to_dbm(quality: int) -> int:
    """Convert a 0-100 signal quality percentage to dBm."""
    quality = max(0, min(100, quality))
    return quality // 2 - 100


def parse_nmcli_line(line: str) -> Optional[NetworkObservation]:
    """Parse one terse ``nmcli`` line; ``None`` for blank or short lines."""
    if not line.strip():
        return None
    fields = split_terse(line)
    if len(fields) < len(NMCLI_FIELDS):
        return None
    ssid, bssid, freq, signal, security = fields[: len(NMCLI_FIELDS)]

    freq_match = _FREQ.search(freq)
    try:
        rssi: Optional[int] = quality_to_dbm(int(signal))
    except ValueError:
        rssi = None

    # nmcli prints "--" for hidden SSIDs and open networks
    return NetworkObservation(
        ssid="" if ssid == "--" else ssid,
        bssid=bssid,
        security="" if security in ("", "--") else security,
        rssi=rssi,
        frequency_mhz=int(freq_match.group(1)) if freq_match else 0,
        capability_flags=None,
    )


def parse_nmcli_output(output: str) -> list[NetworkObservation]:
    observations = []
    for line in output.splitlines():
        obs = parse_nmcli_line(line)
        if obs is not None:
            observations.append(obs)
    return observations


class NmcliSnapshotSource:
    """Live snapshot source backed by ``nmcli device wifi list``.

    Args:
        interface: Wireless interface to list; all interfaces if empty.
        rescan: Ask NetworkManager to rescan before listing.
        timeout: Seconds allowed for the ``nmcli`` process.
    """

    def __init__(
        self,
        interface: str = "",
        *,
        rescan: bool = True,
        timeout: float = 20.0,
    ) -> None:
        self._interface = interface
        self._rescan = rescan
        self._timeout = timeout

    def command(self) -> list[str]:
        cmd = [
            "nmcli",
            "--terse",
            "--fields",
            ",".join(NMCLI_FIELDS),
            "device",
            "wifi",
            "list",
        ]
        if self._interface:
            cmd += ["ifname", self._interface]
        cmd += ["--rescan", "yes" if self._rescan else "no"]
        return cmd

    async def acquire_snapshot(self) -> ScanSnapshot:
        cmd = self.command()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ScanUnavailable(f"nmcli not runnable: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ScanUnavailable(
                f"nmcli did not finish within {self._timeout}s"
            ) from exc

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            if "permission" in message.lower() or "not authorized" in message.lower():
                message += " (scanning may require elevated privileges)"
            raise ScanUnavailable(f"nmcli exited {proc.returncode}: {message}")

        observations = parse_nmcli_output(stdout.decode(errors="replace"))
        logger.debug("nmcli reported %d networks", len(observations))
        return ScanSnapshot(
            timestamp=datetime.now(timezone.utc),
            observations=tuple(observations),
        )
