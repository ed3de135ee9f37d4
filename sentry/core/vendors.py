"""
Sentry OUI Vendor Directory
===========================

Maps the Organizationally Unique Identifier (first three octets of a
BSSID) to the manufacturer that registered it.  A small table of common
access-point and radio vendors ships with the package; a full registry
can be merged over it from a properties file in the format WiGLE and
the IEEE MA-L exports use::

    # comment
    3C846A=TP-LINK TECHNOLOGIES CO.,LTD.
    00:14:6C=Netgear

Vendor names are informational only.  No check depends on them, so an
unknown prefix simply yields an empty string.

References:
    - IEEE Registration Authority. MA-L (OUI) public listing.
      https://standards-oui.ieee.org/
    - IEEE. (2014). IEEE Std 802-2014. Section 8.2.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping, Optional, Union

from shared.logger import SentryLogger
from sentry.core.radio import UNKNOWN_PREFIX, oui_of

logger = SentryLogger("sentry.core.vendors")

_SEPARATORS = re.compile(r"[:\-.\s]")
_OUI_KEY = re.compile(r"^[0-9A-F]{6}$")


# ---------------------------------------------------------------------------
# Bundled vendor table (access points, routers and common radios)
# ---------------------------------------------------------------------------

BUNDLED_VENDORS: dict[str, str] = {
    "00:03:93": "Apple",
    "00:0B:86": "Aruba Networks",
    "00:0F:66": "Cisco-Linksys",
    "00:11:50": "Belkin",
    "00:13:10": "Cisco-Linksys",
    "00:14:6C": "Netgear",
    "00:18:0A": "Cisco Meraki",
    "00:1A:11": "Google",
    "00:1A:1E": "Aruba Networks",
    "00:1C:F0": "D-Link",
    "00:40:96": "Cisco",
    "00:C0:CA": "Alfa Network",
    "08:00:27": "Oracle VirtualBox",
    "14:CC:20": "TP-Link",
    "18:E8:29": "Ubiquiti",
    "20:E5:2A": "Netgear",
    "24:0A:C4": "Espressif",
    "24:A4:3C": "Ubiquiti",
    "30:AE:A4": "Espressif",
    "3C:84:6A": "TP-Link",
    "50:C7:BF": "TP-Link",
    "6C:F3:7F": "Aruba Networks",
    "80:2A:A8": "Ubiquiti",
    "88:15:44": "Cisco Meraki",
    "94:10:3E": "Belkin",
    "A0:40:A0": "Netgear",
    "A4:CF:12": "Espressif",
    "B0:4E:26": "TP-Link",
    "B8:27:EB": "Raspberry Pi",
    "C0:56:27": "Belkin",
    "DC:A6:32": "Raspberry Pi",
    "E0:CB:BC": "Cisco Meraki",
    "E4:F4:C6": "Netgear",
    "F0:9F:C2": "Ubiquiti",
    "F4:F2:6D": "TP-Link",
    "F4:F5:D8": "Google",
}


def normalise_oui_key(key: str) -> Optional[str]:
    """``"3c846a"`` / ``"3C-84-6A"`` -> ``"3C:84:6A"``; ``None`` if malformed."""
    compact = _SEPARATORS.sub("", key).upper()
    if not _OUI_KEY.match(compact):
        return None
    return ":".join(compact[i:i + 2] for i in range(0, 6, 2))


def parse_vendor_properties(text: str) -> tuple[dict[str, str], int]:
    """Parse ``OUI=Vendor`` lines.

    Blank lines and ``#`` / ``!`` comments are ignored.  Lines without a
    six-hex-digit key or a vendor name are counted as skipped.

    Returns:
        ``(entries, skipped)`` with keys in ``"AA:BB:CC"`` form.
    """
    entries: dict[str, str] = {}
    skipped = 0
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        key, sep, value = line.partition("=")
        oui = normalise_oui_key(key)
        vendor = value.strip()
        if not sep or oui is None or not vendor:
            skipped += 1
            continue
        entries[oui] = vendor
    return entries, skipped


class VendorDirectory:
    """OUI to manufacturer lookup.

    Usage::

        vendors = VendorDirectory.load("oui.properties")
        vendors.lookup("3C:84:6A:11:22:33")   # "TP-Link"

    Args:
        entries: ``"AA:BB:CC" -> vendor`` table. Uses the bundled table if None.
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None) -> None:
        self._entries: dict[str, str] = dict(
            BUNDLED_VENDORS if entries is None else entries
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> VendorDirectory:
        """Bundled table overlaid with the entries of a properties file.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file holds no usable entry at all.
        """
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(f"OUI file not found: {target}")
        entries, skipped = parse_vendor_properties(
            target.read_text(encoding="utf-8", errors="replace")
        )
        if not entries:
            raise ValueError(f"{target}: no OUI=Vendor entries found")
        logger.info(
            "Loaded %d vendor prefixes from %s (%d lines skipped)",
            len(entries), target, skipped,
        )
        return cls({**BUNDLED_VENDORS, **entries})

    def lookup(self, bssid: str) -> str:
        """Vendor for *bssid*'s OUI, ``""`` when unknown or malformed."""
        oui = oui_of(bssid)
        if oui == UNKNOWN_PREFIX:
            return ""
        return self._entries.get(oui, "")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, oui: object) -> bool:
        return isinstance(oui, str) and normalise_oui_key(oui) in self._entries
