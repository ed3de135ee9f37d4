"""
Sentry Collectors
=================

Snapshot sources and history providers consumed by the scan scheduler.

Modules:
    file_source  -- JSON snapshot files and directory replay
    wigle        -- WiGLE CSV exports grouped into daily snapshots
    nmcli        -- Live scans through NetworkManager's nmcli
    simulated    -- Scripted demonstration scans
    history      -- In-memory and remote (HTTP) history providers
"""

from sentry.collectors.file_source import JsonSnapshotSource, load_snapshot, load_snapshots
from sentry.collectors.history import InMemoryHistoryProvider, RemoteHistoryProvider
from sentry.collectors.nmcli import NmcliSnapshotSource
from sentry.collectors.simulated import SimulatedSnapshotSource
from sentry.collectors.wigle import WigleImport, load_wigle_csv, parse_wigle_csv

__all__ = [
    "JsonSnapshotSource",
    "InMemoryHistoryProvider",
    "NmcliSnapshotSource",
    "RemoteHistoryProvider",
    "SimulatedSnapshotSource",
    "WigleImport",
    "load_snapshot",
    "load_snapshots",
    "load_wigle_csv",
    "parse_wigle_csv",
]
