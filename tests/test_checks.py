"""Tests for the individual heuristic checks."""

import pytest

from shared.config import EngineConfig
from sentry.analyzers.correlation import CrossNetworkCorrelator
from sentry.analyzers.history import HistoryDetector
from sentry.analyzers.network import NetworkHeuristics
from sentry.core.vendors import VendorDirectory

OPEN = "[ESS]"


@pytest.fixture
def heuristics():
    return NetworkHeuristics()


@pytest.fixture
def correlator():
    return CrossNetworkCorrelator()


@pytest.fixture
def detector():
    return HistoryDetector()


class TestNetworkHeuristics:
    def test_open_network(self, heuristics, obs, snapshot, context):
        target = obs("Cafe", "00:11:22:33:44:55", security=OPEN)
        assert heuristics.open_network(target, context(snapshot(target))) is not None

    def test_unrecorded_security_is_not_open(self, heuristics, obs, snapshot, context):
        target = obs("Cafe", "00:11:22:33:44:55", security=None)
        assert heuristics.open_network(target, context(snapshot(target))) is None

    def test_secured_is_not_open(self, heuristics, obs, snapshot, context):
        target = obs("Cafe", "00:11:22:33:44:55")
        assert heuristics.open_network(target, context(snapshot(target))) is None

    def test_suspicious_ssid_keywords(self, heuristics, obs, snapshot, context):
        target = obs("Free Airport WiFi", "12:34:56:78:9A:BC")
        hit = heuristics.suspicious_ssid(target, context(snapshot(target)))
        assert hit is not None
        assert hit.evidence["keywords"] == ["free", "airport"]

    def test_suspicious_ssid_case_insensitive(self, heuristics, obs, snapshot, context):
        target = obs("PINEAPPLE", "12:34:56:78:9A:BC")
        assert heuristics.suspicious_ssid(target, context(snapshot(target))) is not None

    def test_benign_and_hidden_ssid(self, heuristics, obs, snapshot, context):
        benign = obs("HomeNetwork", "B0:4E:26:A1:3B:02")
        hidden = obs("", "B0:4E:26:A1:3B:03")
        ctx = context(snapshot(benign, hidden))
        assert heuristics.suspicious_ssid(benign, ctx) is None
        assert heuristics.suspicious_ssid(hidden, ctx) is None

    def test_custom_keywords(self, obs, snapshot, context):
        custom = NetworkHeuristics(EngineConfig(suspicious_keywords=["corp"]))
        target = obs("ACME-Corp", "00:11:22:33:44:55")
        free = obs("Free WiFi", "00:11:22:33:44:56")
        ctx = context(snapshot(target, free))
        assert custom.suspicious_ssid(target, ctx) is not None
        assert custom.suspicious_ssid(free, ctx) is None

    def test_wps(self, heuristics, obs, snapshot, context):
        tagged = obs("Home", "00:11:22:33:44:55", security="[WPA2-PSK-CCMP][WPS][ESS]")
        flagged = obs("Home2", "00:11:22:33:44:56", capability_flags="WPS")
        plain = obs("Home3", "00:11:22:33:44:57")
        ctx = context(snapshot(tagged, flagged, plain))
        assert heuristics.wps_vulnerable(tagged, ctx) is not None
        assert heuristics.wps_vulnerable(flagged, ctx) is not None
        assert heuristics.wps_vulnerable(plain, ctx) is None


class TestMultipleBssids:
    def test_same_ssid_in_snapshot(self, correlator, obs, snapshot, context):
        a = obs("Corp", "00:11:22:00:00:01")
        b = obs("Corp", "00:33:44:00:00:02")
        ctx = context(snapshot(a, b))
        assert correlator.multiple_bssids(a, ctx) is not None
        assert correlator.multiple_bssids(b, ctx) is not None

    def test_union_with_history(self, correlator, obs, snapshot, history, context):
        past = history(snapshot(obs("Corp", "00:11:22:00:00:01"), offset=-60))
        current = obs("Corp", "00:33:44:00:00:02")
        hit = correlator.multiple_bssids(current, context(snapshot(current), past))
        assert hit is not None
        assert hit.evidence["bssids"] == ["00:11:22:00:00:01", "00:33:44:00:00:02"]

    def test_same_bssid_in_history(self, correlator, obs, snapshot, history, context):
        past = history(snapshot(obs("Corp", "00:11:22:00:00:01"), offset=-60))
        current = obs("Corp", "00:11:22:00:00:01")
        assert correlator.multiple_bssids(current, context(snapshot(current), past)) is None

    def test_recent_window(self, correlator, obs, snapshot, history, context):
        config = EngineConfig(recent_window_seconds=120)
        current = obs("Corp", "00:33:44:00:00:02")
        stale = history(snapshot(obs("Corp", "00:11:22:00:00:01"), offset=-3600))
        fresh = history(snapshot(obs("Corp", "00:11:22:00:00:01"), offset=-30))
        assert correlator.multiple_bssids(current, context(snapshot(current), stale, config)) is None
        assert correlator.multiple_bssids(current, context(snapshot(current), fresh, config)) is not None


class TestOuiGrouping:
    @staticmethod
    def _fleet(obs, count, oui="02:11:22"):
        return [obs(f"Net{i}", f"{oui}:00:00:{i:02X}") for i in range(count)]

    def test_many_ssids_one_oui(self, correlator, obs, snapshot, context):
        fleet = self._fleet(obs, 5)
        ctx = context(snapshot(*fleet))
        assert all(correlator.multi_ssid_same_oui(o, ctx) is not None for o in fleet)

    def test_below_threshold(self, correlator, obs, snapshot, context):
        fleet = self._fleet(obs, 4)
        ctx = context(snapshot(*fleet))
        assert all(correlator.multi_ssid_same_oui(o, ctx) is None for o in fleet)

    def test_established_deployment_suppressed(self, correlator, obs, snapshot, history, context):
        fleet = self._fleet(obs, 6)
        past = history(snapshot(*fleet, offset=-60))
        ctx = context(snapshot(*fleet), past)
        assert all(correlator.multi_ssid_same_oui(o, ctx) is None for o in fleet)

    def test_malformed_bssids_never_group(self, correlator, obs, snapshot, context):
        junk = [obs(f"Net{i}", f"bogus-{i}") for i in range(6)]
        ctx = context(snapshot(*junk))
        assert all(correlator.multi_ssid_same_oui(o, ctx) is None for o in junk)

    def test_beacon_flood(self, correlator, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:AA:00:00:00:01"), offset=-60))
        burst = self._fleet(obs, 4, oui="00:22:33")
        ctx = context(snapshot(*burst), past)
        hits = [correlator.beacon_flood(o, ctx) for o in burst]
        assert all(h is not None for h in hits)
        assert len(hits[0].evidence["new_bssids"]) == 4
        assert hits[0].evidence["vendor"] == ""

    def test_vendor_named_in_finding(self, obs, snapshot, context):
        correlator = CrossNetworkCorrelator(vendors=VendorDirectory({"02:11:22": "Hak5"}))
        fleet = self._fleet(obs, 5)
        hit = correlator.multi_ssid_same_oui(fleet[0], context(snapshot(*fleet)))
        assert hit.evidence["oui"] == "02:11:22"
        assert hit.evidence["vendor"] == "Hak5"
        assert "OUI 02:11:22 (Hak5)" in hit.description

    def test_beacon_flood_needs_baseline(self, correlator, obs, snapshot, context):
        burst = self._fleet(obs, 6, oui="00:22:33")
        ctx = context(snapshot(*burst))
        assert all(correlator.beacon_flood(o, ctx) is None for o in burst)

    def test_beacon_flood_below_threshold(self, correlator, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:AA:00:00:00:01"), offset=-60))
        burst = self._fleet(obs, 3, oui="00:22:33")
        ctx = context(snapshot(*burst), past)
        assert all(correlator.beacon_flood(o, ctx) is None for o in burst)


class TestNearClone:
    """Same SSID, same first four octets, different BSSID."""

    def test_same_band_both_flagged(self, correlator, obs, snapshot, context):
        a = obs("Corp", "00:11:22:33:00:01", frequency_mhz=2412)
        b = obs("Corp", "00:11:22:33:00:02", frequency_mhz=2437)
        ctx = context(snapshot(a, b))
        assert correlator.near_clone(a, ctx) is not None
        assert correlator.near_clone(b, ctx) is not None

    def test_different_bands_both_new(self, correlator, obs, snapshot, context):
        a = obs("Corp", "00:11:22:33:00:01", frequency_mhz=2412)
        b = obs("Corp", "00:11:22:33:00:02", frequency_mhz=5180)
        ctx = context(snapshot(a, b))
        assert correlator.near_clone(a, ctx) is None
        assert correlator.near_clone(b, ctx) is None

    def test_different_bands_both_known(self, correlator, obs, snapshot, history, context):
        a = obs("Corp", "00:11:22:33:00:01", frequency_mhz=2412)
        b = obs("Corp", "00:11:22:33:00:02", frequency_mhz=5180)
        ctx = context(snapshot(a, b), history(snapshot(a, b, offset=-60)))
        assert correlator.near_clone(a, ctx) is None
        assert correlator.near_clone(b, ctx) is None

    def test_new_bssid_mimics_known_peer(self, correlator, obs, snapshot, history, context):
        known = obs("Corp", "00:11:22:33:00:01", frequency_mhz=2412)
        newcomer = obs("Corp", "00:11:22:33:00:02", frequency_mhz=5180)
        ctx = context(snapshot(known, newcomer), history(snapshot(known, offset=-60)))
        assert correlator.near_clone(known, ctx) is None
        hit = correlator.near_clone(newcomer, ctx)
        assert hit is not None
        assert hit.evidence["peers"] == ["00:11:22:33:00:01"]

    def test_different_ssid(self, correlator, obs, snapshot, context):
        a = obs("Corp", "00:11:22:33:00:01")
        b = obs("Guest", "00:11:22:33:00:02")
        ctx = context(snapshot(a, b))
        assert correlator.near_clone(a, ctx) is None

    def test_different_prefix(self, correlator, obs, snapshot, context):
        a = obs("Corp", "00:11:22:33:00:01")
        b = obs("Corp", "00:11:22:44:00:02")
        ctx = context(snapshot(a, b))
        assert correlator.near_clone(a, ctx) is None


class TestInconsistentCapabilities:
    @pytest.mark.parametrize(
        "freq,flags,fires",
        [
            (2412, "5", True),
            (5180, "5", False),
            (2412, "6", False),
            (5955, "4", True),
            (5955, "6", False),
            (5180, "802.11g", True),
            (5180, "1", False),
            (0, "5", False),
            (2412, None, False),
        ],
    )
    def test_standard_vs_band(self, correlator, obs, snapshot, context, freq, flags, fires):
        target = obs("Corp", "00:11:22:33:44:55", frequency_mhz=freq, capability_flags=flags)
        hit = correlator.inconsistent_capabilities(target, context(snapshot(target)))
        assert (hit is not None) is fires


class TestSecurityChange:
    def test_secured_to_open(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:11:22:33:44:55"), offset=-60))
        now = obs("Home", "00:11:22:33:44:55", security=OPEN)
        hit = detector.security_change(now, context(snapshot(now), past))
        assert hit is not None
        assert "secured to open" in hit.description

    def test_open_to_secured(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:11:22:33:44:55", security=OPEN), offset=-60))
        now = obs("Home", "00:11:22:33:44:55")
        assert detector.security_change(now, context(snapshot(now), past)) is not None

    def test_newest_recorded_value_wins(self, detector, obs, snapshot, history, context):
        past = history(
            snapshot(obs("Home", "00:11:22:33:44:55", security=OPEN), offset=-120),
            snapshot(obs("Home", "00:11:22:33:44:55"), offset=-60),
            snapshot(obs("Home", "00:11:22:33:44:55", security=None), offset=-30),
        )
        now = obs("Home", "00:11:22:33:44:55")
        assert detector.security_change(now, context(snapshot(now), past)) is None

    def test_unrecorded_current_security(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:11:22:33:44:55"), offset=-60))
        now = obs("Home", "00:11:22:33:44:55", security=None)
        assert detector.security_change(now, context(snapshot(now), past)) is None


class TestEvilTwin:
    def test_open_clone_of_secured_ssid(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Coffee", "AA:BB:CC:00:00:01"), offset=-60))
        twin = obs("Coffee", "AA:BB:CC:00:00:02", security="OPEN")
        hit = detector.evil_twin(twin, context(snapshot(twin), past))
        assert hit is not None
        assert hit.evidence["historic_bssids"] == ["AA:BB:CC:00:00:01"]

    def test_known_bssid_is_not_a_twin(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Coffee", "AA:BB:CC:00:00:01"), offset=-60))
        same = obs("Coffee", "AA:BB:CC:00:00:01", security="OPEN")
        assert detector.evil_twin(same, context(snapshot(same), past)) is None

    def test_never_secured_ssid(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Coffee", "AA:BB:CC:00:00:01", security=OPEN), offset=-60))
        other = obs("Coffee", "AA:BB:CC:00:00:02", security=OPEN)
        assert detector.evil_twin(other, context(snapshot(other), past)) is None


class TestMacSpoofing:
    def test_no_baseline(self, detector, obs, snapshot, context):
        target = obs("Lab", "02:00:00:11:22:33")
        assert detector.mac_spoofing(target, context(snapshot(target))) is None

    def test_new_locally_administered(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Other", "00:11:22:33:44:55"), offset=-60))
        target = obs("Lab", "02:00:00:11:22:33")
        assert detector.mac_spoofing(target, context(snapshot(target), past)) is not None

    def test_known_locally_administered(self, detector, obs, snapshot, history, context):
        target = obs("Lab", "02:00:00:11:22:33")
        past = history(snapshot(target, offset=-60))
        assert detector.mac_spoofing(target, context(snapshot(target), past)) is None

    def test_universal_address(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Other", "00:11:22:33:44:55"), offset=-60))
        target = obs("Lab", "00:00:00:11:22:33")
        assert detector.mac_spoofing(target, context(snapshot(target), past)) is None

    @pytest.mark.parametrize("bssid", ["02:ZZ:QQ:xx", "02:00", "06-00-00-11-22-33"])
    def test_malformed_bssid_never_fires(self, detector, obs, snapshot, history, context, bssid):
        past = history(snapshot(obs("Other", "00:11:22:33:44:55"), offset=-60))
        target = obs("Lab", bssid)
        assert target.oui == "unknown"
        assert detector.mac_spoofing(target, context(snapshot(target), past)) is None


class TestSuspiciousSignal:
    @pytest.fixture
    def past(self, obs, snapshot, history):
        return history(snapshot(obs("Other", "00:11:22:33:44:55"), offset=-60))

    @pytest.mark.parametrize("rssi,fires", [(-35, True), (-40, True), (-41, False)])
    def test_threshold(self, detector, obs, snapshot, context, past, rssi, fires):
        target = obs("Bait", "00:99:88:77:66:55", rssi=rssi)
        hit = detector.suspicious_signal(target, context(snapshot(target), past))
        assert (hit is not None) is fires

    def test_missing_rssi(self, detector, obs, snapshot, context, past):
        target = obs("Bait", "00:99:88:77:66:55", rssi=None)
        assert detector.suspicious_signal(target, context(snapshot(target), past)) is None

    def test_known_bssid(self, detector, obs, snapshot, context, past):
        target = obs("Other", "00:11:22:33:44:55", rssi=-30)
        assert detector.suspicious_signal(target, context(snapshot(target), past)) is None

    def test_no_baseline(self, detector, obs, snapshot, context):
        target = obs("Bait", "00:99:88:77:66:55", rssi=-30)
        assert detector.suspicious_signal(target, context(snapshot(target))) is None


class TestChannelShift:
    def test_band_change(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:11:22:33:44:55", frequency_mhz=2412), offset=-60))
        now = obs("Home", "00:11:22:33:44:55", frequency_mhz=5180)
        hit = detector.channel_shift(now, context(snapshot(now), past))
        assert hit is not None
        assert hit.evidence == {"previous_frequency_mhz": 2412, "current_frequency_mhz": 5180}

    def test_same_band_new_channel(self, detector, obs, snapshot, history, context):
        past = history(snapshot(obs("Home", "00:11:22:33:44:55", frequency_mhz=2412), offset=-60))
        now = obs("Home", "00:11:22:33:44:55", frequency_mhz=2462)
        assert detector.channel_shift(now, context(snapshot(now), past)) is None

    @pytest.mark.parametrize("before,after", [(0, 5180), (2412, 0)])
    def test_unknown_band(self, detector, obs, snapshot, history, context, before, after):
        past = history(snapshot(obs("Home", "00:11:22:33:44:55", frequency_mhz=before), offset=-60))
        now = obs("Home", "00:11:22:33:44:55", frequency_mhz=after)
        assert detector.channel_shift(now, context(snapshot(now), past)) is None


class TestSignalAnomaly:
    BSSID = "00:11:22:33:44:55"

    @pytest.fixture
    def past(self, obs, snapshot, history):
        return history(
            snapshot(obs("Home", self.BSSID, rssi=-80), offset=-120),
            snapshot(obs("Home", self.BSSID, rssi=-70), offset=-60),
        )

    @pytest.mark.parametrize(
        "rssi,direction",
        [(-55, "stronger"), (-85, "weaker"), (-40, "stronger")],
    )
    def test_swing_against_latest_scan(self, detector, obs, snapshot, context, past, rssi, direction):
        now = obs("Home", self.BSSID, rssi=rssi)
        hit = detector.signal_anomaly(now, context(snapshot(now), past))
        assert hit is not None
        assert direction in hit.description
        assert hit.evidence["previous_rssi"] == -70
        assert hit.evidence["delta_db"] == rssi + 70

    def test_below_threshold(self, detector, obs, snapshot, context, past):
        now = obs("Home", self.BSSID, rssi=-56)
        assert detector.signal_anomaly(now, context(snapshot(now), past)) is None

    def test_configurable_threshold(self, obs, snapshot, context, past):
        detector = HistoryDetector(EngineConfig(rssi_anomaly_dbm=5))
        now = obs("Home", self.BSSID, rssi=-64)
        assert detector.signal_anomaly(now, context(snapshot(now), past)) is not None

    def test_missing_rssi_ignored(self, detector, obs, snapshot, history, context):
        absent = history(snapshot(obs("Home", self.BSSID, rssi=None), offset=-60))
        now = obs("Home", self.BSSID, rssi=-30)
        assert detector.signal_anomaly(now, context(snapshot(now), absent)) is None
        gone = obs("Home", self.BSSID, rssi=None)
        past = history(snapshot(obs("Home", self.BSSID, rssi=-30), offset=-60))
        assert detector.signal_anomaly(gone, context(snapshot(gone), past)) is None

    def test_unknown_bssid(self, detector, obs, snapshot, context, past):
        now = obs("Home", "00:99:88:77:66:55", rssi=-30)
        assert detector.signal_anomaly(now, context(snapshot(now), past)) is None
