"""Tests for the radio parsing helpers."""

import pytest

from sentry.core.radio import (
    Band,
    SecurityProtocol,
    WifiStandard,
    advertises_wps,
    band_from_frequency,
    channel_from_frequency,
    classify_security,
    is_locally_administered,
    oui_of,
    parse_wifi_standard,
    prefix4_of,
    security_label,
    standard_band_conflict,
)


class TestMacPrefixes:
    """OUI / 4-octet prefix extraction and the locally-administered bit."""

    def test_oui_uppercased(self):
        assert oui_of("aa:bb:cc:dd:ee:ff") == "AA:BB:CC"

    def test_prefix4(self):
        assert prefix4_of("aa:bb:cc:dd:ee:ff") == "AA:BB:CC:DD"

    @pytest.mark.parametrize("bssid", ["", "not-a-mac", "AA:BB", "ZZ:BB:CC:DD:EE:FF", "AAA:BB:CC:DD"])
    def test_malformed_is_unknown(self, bssid):
        assert oui_of(bssid) == "unknown"

    def test_prefix4_needs_four_octets(self):
        assert prefix4_of("AA:BB:CC") == "unknown"

    @pytest.mark.parametrize(
        "bssid,expected",
        [
            ("02:00:00:11:22:33", True),
            ("AA:BB:CC:00:00:01", True),
            ("00:14:6C:7E:40:03", False),
            ("B0:4E:26:A1:3B:02", False),
            ("garbage", False),
            ("02:ZZ:QQ:xx", False),
            ("02:00:00:11:22", False),
            ("02:00:00:11:22:33:44", False),
            ("", False),
        ],
    )
    def test_locally_administered(self, bssid, expected):
        assert is_locally_administered(bssid) is expected


class TestFrequency:
    @pytest.mark.parametrize(
        "freq,band",
        [
            (2412, Band.GHZ_2_4),
            (2484, Band.GHZ_2_4),
            (5180, Band.GHZ_5),
            (5885, Band.GHZ_5),
            (5925, Band.GHZ_6),
            (5955, Band.GHZ_6),
            (0, Band.UNKNOWN),
            (900, Band.UNKNOWN),
        ],
    )
    def test_band(self, freq, band):
        assert band_from_frequency(freq) is band

    @pytest.mark.parametrize(
        "freq,channel",
        [(2412, 1), (2437, 6), (2484, 14), (5180, 36), (5745, 149), (5955, 1), (0, -1)],
    )
    def test_channel(self, freq, channel):
        assert channel_from_frequency(freq) == channel


class TestSecurity:
    """Security descriptor canonicalisation."""

    @pytest.mark.parametrize(
        "descriptor,expected",
        [
            (None, SecurityProtocol.UNKNOWN),
            ("", SecurityProtocol.OPEN),
            ("[ESS]", SecurityProtocol.OPEN),
            ("OPEN", SecurityProtocol.OPEN),
            ("[WPS][ESS]", SecurityProtocol.OPEN),
            ("[WPA2-PSK-CCMP][ESS]", SecurityProtocol.WPA2),
            ("[WPA2-PSK-CCMP][WPS][ESS]", SecurityProtocol.WPA2),
            ("[RSN-PSK-CCMP]", SecurityProtocol.WPA2),
            ("[WPA3-SAE-CCMP][ESS]", SecurityProtocol.WPA3),
            ("[SAE]", SecurityProtocol.WPA3),
            ("[WPA-PSK-TKIP]", SecurityProtocol.WPA),
            ("WEP", SecurityProtocol.WEP),
            ("wpa2", SecurityProtocol.WPA2),
        ],
    )
    def test_classify(self, descriptor, expected):
        assert classify_security(descriptor) is expected

    def test_enterprise_labels(self):
        assert security_label("[WPA2-EAP-CCMP]") == "WPA2-Enterprise"
        assert security_label("[WPA2-PSK-CCMP]") == "WPA2"
        assert security_label(None) == "Unknown"
        assert security_label("") == "Open"

    def test_wps_detection(self):
        assert advertises_wps("[WPA2-PSK-CCMP][WPS][ESS]")
        assert advertises_wps(None, "WPS")
        assert not advertises_wps("[WPA2-PSK-CCMP][ESS]")
        assert not advertises_wps(None)


class TestWifiStandard:
    @pytest.mark.parametrize(
        "flags,expected",
        [
            ("1", WifiStandard.LEGACY),
            ("4", WifiStandard.N),
            ("5", WifiStandard.AC),
            ("6", WifiStandard.AX),
            ("8", WifiStandard.BE),
            ("3", WifiStandard.UNKNOWN),
            ("WIFI_STANDARD_11AX", WifiStandard.AX),
            ("WIFI_STANDARD_LEGACY", WifiStandard.LEGACY),
            ("802.11ac", WifiStandard.AC),
            ("802.11n", WifiStandard.N),
            ("802.11g", WifiStandard.G),
            ("802.11b", WifiStandard.B),
            ("802.11a", WifiStandard.A),
            ("802.11be", WifiStandard.BE),
            ("HE", WifiStandard.AX),
            ("VHT", WifiStandard.AC),
            ("EHT", WifiStandard.BE),
            ("Wi-Fi 6", WifiStandard.AX),
            (None, WifiStandard.UNKNOWN),
            ("", WifiStandard.UNKNOWN),
            ("garbage", WifiStandard.UNKNOWN),
        ],
    )
    def test_parse(self, flags, expected):
        assert parse_wifi_standard(flags) is expected

    @pytest.mark.parametrize(
        "standard,band,conflict",
        [
            (WifiStandard.AC, Band.GHZ_2_4, True),
            (WifiStandard.AC, Band.GHZ_5, False),
            (WifiStandard.AX, Band.GHZ_2_4, False),
            (WifiStandard.N, Band.GHZ_6, True),
            (WifiStandard.AC, Band.GHZ_6, True),
            (WifiStandard.AX, Band.GHZ_6, False),
            (WifiStandard.BE, Band.GHZ_6, False),
            (WifiStandard.G, Band.GHZ_5, True),
            (WifiStandard.B, Band.GHZ_5, True),
            (WifiStandard.A, Band.GHZ_2_4, True),
            (WifiStandard.LEGACY, Band.GHZ_5, False),
            (WifiStandard.UNKNOWN, Band.GHZ_6, False),
            (WifiStandard.AC, Band.UNKNOWN, False),
        ],
    )
    def test_band_conflict(self, standard, band, conflict):
        assert (standard_band_conflict(standard, band) is not None) is conflict
