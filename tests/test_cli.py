"""Tests for the Click command-line interface."""

import json

import pytest
from click.testing import CliRunner

from sentry import __version__
from sentry.cli import cli

WPA2 = "[WPA2-PSK-CCMP][ESS]"


def _snap(timestamp, *networks):
    return {"timestamp": timestamp, "observations": list(networks)}


def _net(ssid, bssid, security=WPA2, frequency=2412):
    return {"ssid": ssid, "bssid": bssid, "security": security, "frequency_mhz": frequency, "rssi": -60}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def twin_file(tmp_path):
    path = tmp_path / "scans.json"
    path.write_text(json.dumps([
        _snap("2024-05-01T12:00:00Z", _net("Coffee", "AA:BB:CC:00:00:01")),
        _snap(
            "2024-05-01T12:01:00Z",
            _net("Coffee", "AA:BB:CC:00:00:01"),
            _net("Coffee", "AA:BB:CC:00:00:02", security="OPEN"),
        ),
    ]))
    return path


class TestAnalyze:
    def test_critical_exit_code_and_reports(self, runner, twin_file, tmp_path):
        report = tmp_path / "report.json"
        threats = tmp_path / "threats.csv"
        result = runner.invoke(
            cli, ["--quiet", "analyze", str(twin_file), "-o", str(report), "--csv", str(threats)]
        )
        assert result.exit_code == 2, result.output
        assert json.loads(report.read_text())["summary"]["highest_severity"] == "CRITICAL"
        assert threats.read_text().startswith("ssid,bssid,type,severity,description,detected_at")

    def test_history_option(self, runner, tmp_path):
        history = tmp_path / "history.json"
        history.write_text(json.dumps(_snap("2024-05-01T12:00:00Z", _net("Coffee", "AA:BB:CC:00:00:01"))))
        current = tmp_path / "current.json"
        current.write_text(json.dumps(_snap(
            "2024-05-01T12:01:00Z", _net("Coffee", "AA:BB:CC:00:00:02", security="OPEN")
        )))
        result = runner.invoke(cli, ["--quiet", "analyze", str(current), "--history", str(history)])
        assert result.exit_code == 2

    def test_clean_scan(self, runner, tmp_path):
        path = tmp_path / "clean.json"
        path.write_text(json.dumps(_snap("2024-05-01T12:00:00Z", _net("Coffee", "00:11:22:33:44:55"))))
        result = runner.invoke(cli, ["analyze", str(path)])
        assert result.exit_code == 0, result.output
        assert "No threats detected" in result.output

    def test_high_exit_code(self, runner, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps([
            _snap("2024-05-01T12:00:00Z", _net("Corp", "00:11:22:33:44:55")),
            _snap("2024-05-01T12:01:00Z", _net("Corp", "00:11:22:33:44:55", security="[ESS]")),
        ]))
        result = runner.invoke(cli, ["--quiet", "analyze", str(path)])
        assert result.exit_code == 1

    def test_malformed_snapshot(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{broken")
        result = runner.invoke(cli, ["analyze", str(path)])
        assert result.exit_code == 1

    def test_missing_config(self, runner, twin_file, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.toml"), "analyze", str(twin_file)])
        assert result.exit_code == 1

    def test_wigle_export_as_history(self, runner, tmp_path):
        export = tmp_path / "wardrive.csv"
        export.write_text(
            "WigleWifi-1.4,appRelease=2.64\n"
            "MAC,SSID,AuthMode,FirstSeen,Channel,RSSI,Type\n"
            "AA:BB:CC:00:00:01,Coffee,[WPA2-PSK-CCMP][ESS],2024-04-30 18:00:00,1,-60,WIFI\n"
        )
        current = tmp_path / "current.json"
        current.write_text(json.dumps(_snap(
            "2024-05-01T12:01:00Z", _net("Coffee", "AA:BB:CC:00:00:02", security="OPEN")
        )))
        result = runner.invoke(cli, ["--quiet", "analyze", str(current), "--history", str(export)])
        assert result.exit_code == 2, result.output

    def test_oui_file_names_vendors(self, runner, twin_file, tmp_path):
        oui_file = tmp_path / "oui.properties"
        oui_file.write_text("AABBCC=Coffee Radios\n")
        report = tmp_path / "report.json"
        result = runner.invoke(
            cli, ["--oui-file", str(oui_file), "analyze", str(twin_file), "-o", str(report)]
        )
        assert result.exit_code == 2, result.output
        networks = json.loads(report.read_text())["networks"]
        assert {n["vendor"] for n in networks} == {"Coffee Radios"}

    def test_empty_oui_file(self, runner, twin_file, tmp_path):
        oui_file = tmp_path / "oui.properties"
        oui_file.write_text("# empty\n")
        result = runner.invoke(cli, ["--oui-file", str(oui_file), "analyze", str(twin_file)])
        assert result.exit_code == 1


class TestWatch:
    def test_demo(self, runner):
        result = runner.invoke(cli, ["--quiet", "demo", "--cycles", "2", "--interval", "0.01"])
        assert result.exit_code == 0, result.output

    def test_file_replay_to_jsonl(self, runner, twin_file, tmp_path):
        feed = tmp_path / "cycles.jsonl"
        result = runner.invoke(
            cli,
            [
                "--quiet", "watch",
                "--source", "file", "--path", str(twin_file),
                "--cycles", "3", "--interval", "0.01",
                "--jsonl", str(feed),
            ],
        )
        assert result.exit_code == 0, result.output
        kinds = [json.loads(line)["type"] for line in feed.read_text().splitlines()]
        # Two recorded scans, then the source is exhausted
        assert kinds == ["scan-result", "scan-result", "error"]

    def test_file_source_needs_path(self, runner):
        result = runner.invoke(cli, ["--quiet", "watch", "--source", "file", "--cycles", "1"])
        assert result.exit_code != 0

    def test_rejects_zero_interval(self, runner):
        result = runner.invoke(cli, ["--quiet", "watch", "--interval", "0", "--cycles", "1"])
        assert result.exit_code == 2
        assert "interval_seconds" in result.output

    def test_rejects_zero_cycles(self, runner):
        result = runner.invoke(cli, ["--quiet", "watch", "--cycles", "0"])
        assert result.exit_code == 2
        assert "max_cycles" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
