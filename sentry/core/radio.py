"""
Sentry Radio Primitives
=======================

Pure parsing helpers for the radio attributes of an access-point
observation: MAC address prefixes, the locally-administered bit, band and
channel from centre frequency, security canonicalisation, WPS detection,
and Wi-Fi standard decoding from optional capability flags.

Every helper is total: malformed input maps to a sentinel (``"unknown"``,
``Band.UNKNOWN``, ``-1``, ``WifiStandard.UNKNOWN``) and never raises.

References:
    - IEEE. (2020). IEEE Std 802.11-2020. Annex E: Country Information
      and Operating Classes.
    - IEEE. (2014). IEEE Std 802-2014. Section 8.2: Universal and local
      administration of MAC addresses.
    - Wi-Fi Alliance. (2020). Wi-Fi 6E: Extending Wi-Fi 6 into 6 GHz.
"""

from __future__ import annotations

import enum
import re
from typing import Optional

UNKNOWN_PREFIX = "unknown"

_HEX_OCTET = re.compile(r"^[0-9A-Fa-f]{2}$")

# Infrastructure / feature tags that carry no security meaning
_NON_SECURITY_TAGS = re.compile(r"\[(?:ESS|BSS|IBSS|WPS)\]")
_WPS_TOKEN = re.compile(r"\bWPS\b")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SecurityProtocol(str, enum.Enum):
    """Closed security classification computed once per observation.

    ``UNKNOWN`` is reserved for observations whose security was never
    recorded; any recorded descriptor without WPA/WEP/SAE/RSN tokens is
    ``OPEN``.
    """

    OPEN = "Open"
    WEP = "WEP"
    WPA = "WPA"
    WPA2 = "WPA2"
    WPA3 = "WPA3"
    UNKNOWN = "Unknown"


class Band(str, enum.Enum):
    """Coarse frequency band an access point operates in."""

    GHZ_2_4 = "2.4 GHz"
    GHZ_5 = "5 GHz"
    GHZ_6 = "6 GHz"
    UNKNOWN = "Unknown"


class WifiStandard(str, enum.Enum):
    """PHY generation decoded from capability flags.

    ``LEGACY`` is an unspecified 802.11a/b/g radio; ``A``, ``B`` and ``G``
    are used when the flags name the amendment explicitly.
    """

    LEGACY = "Legacy (802.11a/b/g)"
    A = "802.11a"
    B = "802.11b"
    G = "802.11g"
    N = "Wi-Fi 4 (802.11n)"
    AC = "Wi-Fi 5 (802.11ac)"
    AX = "Wi-Fi 6 / 6E (802.11ax)"
    BE = "Wi-Fi 7 (802.11be)"
    UNKNOWN = "Unknown"


# ---------------------------------------------------------------------------
# MAC address helpers
# ---------------------------------------------------------------------------


def _octets(bssid: str, count: int) -> Optional[list[str]]:
    parts = (bssid or "").strip().split(":")
    if len(parts) < count:
        return None
    head = parts[:count]
    if any(not _HEX_OCTET.match(part) for part in head):
        return None
    return [part.upper() for part in head]


def oui_of(bssid: str) -> str:
    """First three octets (``"AA:BB:CC"``) or ``"unknown"`` if malformed."""
    octets = _octets(bssid, 3)
    return ":".join(octets) if octets else UNKNOWN_PREFIX


def prefix4_of(bssid: str) -> str:
    """First four octets (``"AA:BB:CC:DD"``) or ``"unknown"`` if malformed."""
    octets = _octets(bssid, 4)
    return ":".join(octets) if octets else UNKNOWN_PREFIX


def is_locally_administered(bssid: str) -> bool:
    """``True`` when bit 1 (mask ``0x02``) of the first octet is set.

    Only a well-formed six-octet MAC qualifies; anything else is ``False``.

    Reference:
        IEEE. (2014). IEEE Std 802-2014. Section 8.2.
    """
    octets = _octets(bssid, 6)
    if not octets or len(bssid.strip().split(":")) != 6:
        return False
    return bool(int(octets[0], 16) & 0x02)


# ---------------------------------------------------------------------------
# Frequency helpers
# ---------------------------------------------------------------------------


def band_from_frequency(frequency_mhz: int) -> Band:
    """Map a centre frequency to its band; ``Band.UNKNOWN`` outside Wi-Fi."""
    if 2400 <= frequency_mhz <= 2499:
        return Band.GHZ_2_4
    if 4900 <= frequency_mhz <= 5924:
        return Band.GHZ_5
    if 5925 <= frequency_mhz <= 7125:
        return Band.GHZ_6
    return Band.UNKNOWN


def channel_from_frequency(frequency_mhz: int) -> int:
    """Wi-Fi channel number, or ``-1`` when not on a known channel raster.

    Reference:
        IEEE. (2020). IEEE Std 802.11-2020. Section 19.3.15 and 27.3.23.
    """
    if frequency_mhz == 2484:
        return 14
    if 2412 <= frequency_mhz <= 2472:
        return (frequency_mhz - 2407) // 5
    if 5160 <= frequency_mhz <= 5885:
        return (frequency_mhz - 5000) // 5
    if 5955 <= frequency_mhz <= 7115:
        return (frequency_mhz - 5950) // 5
    return -1


# ---------------------------------------------------------------------------
# Security helpers
# ---------------------------------------------------------------------------


def normalise_security(descriptor: str) -> str:
    """Uppercase *descriptor* and strip ``[ESS]``/``[BSS]``/``[IBSS]``/``[WPS]``."""
    return _NON_SECURITY_TAGS.sub("", (descriptor or "").upper()).strip()


def classify_security(descriptor: Optional[str]) -> SecurityProtocol:
    """Canonicalise a free-text security descriptor.

    ``None`` means the value was never recorded and yields ``UNKNOWN``.
    """
    if descriptor is None:
        return SecurityProtocol.UNKNOWN
    text = normalise_security(descriptor)
    if "SAE" in text or "WPA3" in text:
        return SecurityProtocol.WPA3
    if "WPA2" in text or "RSN" in text:
        return SecurityProtocol.WPA2
    if "WPA" in text:
        return SecurityProtocol.WPA
    if "WEP" in text:
        return SecurityProtocol.WEP
    return SecurityProtocol.OPEN


def security_label(descriptor: Optional[str]) -> str:
    """Friendly label, distinguishing enterprise (EAP) variants."""
    if descriptor is None:
        return SecurityProtocol.UNKNOWN.value
    text = descriptor.upper()
    if "EAP-SUITE-B" in text:
        return "WPA3-Enterprise"
    if "SAE" in text or "WPA3" in text:
        return "WPA3"
    if "WPA2" in text or "RSN" in text:
        return "WPA2-Enterprise" if "EAP" in text else "WPA2"
    if "WPA" in text:
        return "WPA-Enterprise" if "EAP" in text else "WPA"
    if "WEP" in text:
        return "WEP (insecure)"
    return "Open"


def advertises_wps(*descriptors: Optional[str]) -> bool:
    """``True`` if any descriptor carries a ``[WPS]`` or bare ``WPS`` token."""
    return any(
        descriptor is not None and _WPS_TOKEN.search(descriptor.upper())
        for descriptor in descriptors
    )


# ---------------------------------------------------------------------------
# Wi-Fi standard decoding
# ---------------------------------------------------------------------------

# Numeric codes as reported by Android's ScanResult.getWifiStandard()
_NUMERIC_STANDARDS: dict[int, WifiStandard] = {
    1: WifiStandard.LEGACY,
    4: WifiStandard.N,
    5: WifiStandard.AC,
    6: WifiStandard.AX,
    8: WifiStandard.BE,
}

# Checked newest first so "11ax" is not shadowed by a substring match
_TEXT_STANDARDS: tuple[tuple[re.Pattern[str], WifiStandard], ...] = (
    (re.compile(r"11BE|\bEHT\b|WI-?FI ?7"), WifiStandard.BE),
    (re.compile(r"11AX|\bHE\b|WI-?FI ?6"), WifiStandard.AX),
    (re.compile(r"11AC|\bVHT\b|WI-?FI ?5"), WifiStandard.AC),
    (re.compile(r"11N\b|\bHT\b|WI-?FI ?4"), WifiStandard.N),
    (re.compile(r"LEGACY"), WifiStandard.LEGACY),
    (re.compile(r"11G\b"), WifiStandard.G),
    (re.compile(r"11B\b"), WifiStandard.B),
    (re.compile(r"11A\b"), WifiStandard.A),
)


def parse_wifi_standard(capability_flags: Optional[str]) -> WifiStandard:
    """Decode the Wi-Fi generation from an opaque capability descriptor.

    Accepts the Android integer codes (``"6"``), ``WIFI_STANDARD_11AX``
    style constants, ``802.11ax`` strings, and HT/VHT/HE/EHT tokens.
    Anything else is ``UNKNOWN``.
    """
    if capability_flags is None:
        return WifiStandard.UNKNOWN
    text = str(capability_flags).strip().upper()
    if not text:
        return WifiStandard.UNKNOWN
    if text.isdigit():
        return _NUMERIC_STANDARDS.get(int(text), WifiStandard.UNKNOWN)
    text = text.replace("_", " ")
    for pattern, standard in _TEXT_STANDARDS:
        if pattern.search(text):
            return standard
    return WifiStandard.UNKNOWN


_PRE_AX = frozenset(
    {
        WifiStandard.LEGACY,
        WifiStandard.A,
        WifiStandard.B,
        WifiStandard.G,
        WifiStandard.N,
        WifiStandard.AC,
    }
)


def standard_band_conflict(standard: WifiStandard, band: Band) -> Optional[str]:
    """Describe why *standard* cannot operate on *band*, else ``None``.

    - 802.11ac is 5 GHz only.
    - 6 GHz requires 802.11ax or later.
    - 802.11b/g are 2.4 GHz only.
    - 802.11a is 5 GHz only.
    """
    if standard is WifiStandard.UNKNOWN or band is Band.UNKNOWN:
        return None
    if band is Band.GHZ_6 and standard in _PRE_AX:
        return f"{standard.value} cannot operate on 6 GHz (802.11ax or later required)"
    if band is Band.GHZ_2_4 and standard is WifiStandard.AC:
        return "802.11ac is defined for 5 GHz only"
    if band is Band.GHZ_2_4 and standard is WifiStandard.A:
        return "802.11a is defined for 5 GHz only"
    if band is Band.GHZ_5 and standard in (WifiStandard.B, WifiStandard.G):
        return f"{standard.value} is defined for 2.4 GHz only"
    return None
