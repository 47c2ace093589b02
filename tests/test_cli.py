"""
Tests for the Hotspot Monitor CLI.

This module tests the CLI package: argument parsing, output formatting and
the main entry point against a simulated router.
"""

import argparse
import json
from unittest.mock import patch

import pytest
from conftest import RouterSimulator, make_stats

from hotspot_monitor import HotspotMonitorClient
from hotspot_monitor.battery import BatteryTracker
from hotspot_monitor.cli.args import create_parser, parse_args, validate_args
from hotspot_monitor.cli.formatters import (
    format_battery_for_display,
    format_bytes,
    format_devices_for_display,
    format_json_output,
    format_speed,
    format_speed_test_output,
    format_usage_for_display,
    print_error_suggestions,
    print_json_output,
    print_summary_to_stderr,
)
from hotspot_monitor.cli.main import main
from hotspot_monitor.client.http import DEVICE_LIST_COMMANDS
from hotspot_monitor.exceptions import HotspotConnectionError, HotspotOperationError
from hotspot_monitor.models import SpeedTestResult, SystemStatus
from hotspot_monitor.usage import UsageTracker


def namespace(**overrides):
    values = {"host": "192.168.1.1", "port": 80, "timeout": 5.0, "interval": 2.0, "count": None, "speed_test_duration": 10.0}
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.mark.unit
@pytest.mark.cli
class TestCLIArgs:
    """Test argument parsing module."""

    def test_defaults(self):
        args = create_parser().parse_args([])

        assert args.host == "192.168.1.1"
        assert args.port == 80
        assert args.username == "admin"
        assert args.password == "admin"
        assert args.timeout == 5.0
        assert args.interval == 2.0
        assert args.watch is False
        assert args.count is None
        assert args.reboot is False
        assert args.speed_test is False

    def test_parse_all_args(self):
        args = create_parser().parse_args(
            [
                "--host",
                "192.168.0.1",
                "--port",
                "8080",
                "--username",
                "user",
                "--password",
                "secret",
                "--timeout",
                "2.5",
                "--interval",
                "1",
                "--watch",
                "--count",
                "3",
                "--debug",
                "--quiet",
                "--log-file",
                "monitor.log",
            ]
        )

        assert args.host == "192.168.0.1"
        assert args.port == 8080
        assert args.username == "user"
        assert args.password == "secret"
        assert args.timeout == 2.5
        assert args.interval == 1.0
        assert args.watch is True
        assert args.count == 3
        assert args.debug is True
        assert args.quiet is True
        assert args.log_file == "monitor.log"

    def test_reboot_and_speed_test_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--reboot", "--speed-test"])

    def test_validate_args_valid(self):
        validate_args(namespace())

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"timeout": 0}, "Timeout must be greater than 0"),
            ({"interval": -1}, "Interval must be greater than 0"),
            ({"port": 70000}, "Port must be between 1 and 65535"),
            ({"port": 0}, "Port must be between 1 and 65535"),
            ({"count": 0}, "Count must be at least 1"),
            ({"speed_test_duration": 0}, "Speed test duration must be greater than 0"),
        ],
    )
    def test_validate_args_invalid(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            validate_args(namespace(**overrides))

    def test_parse_args_validates(self):
        with pytest.raises(ValueError, match="Interval must be greater than 0"):
            parse_args(["--interval", "0"])


@pytest.mark.unit
@pytest.mark.cli
class TestFormatters:
    """Test output formatting."""

    @pytest.mark.parametrize(
        "size,expected",
        [(0, "0 B"), (500, "500 B"), (1024, "1 KB"), (1536, "1.5 KB"), (5 * 1024**3, "5 GB")],
    )
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected

    def test_format_speed(self):
        assert format_speed(0) == "0 B/s"
        assert format_speed(2.25 * 1024 * 1024) == "2.25 MB/s"

    def test_format_devices_for_display(self):
        device = make_stats("aa:bb:cc:dd:ee:ff", 1024, 512, download_speed=2048)
        device.active_duration = 5400

        entry = format_devices_for_display([device])[0]

        assert entry["mac"] == "aa:bb:cc:dd:ee:ff"
        assert entry["download_speed_display"] == "2 KB/s"
        assert entry["total_usage_display"] == "1.5 KB"
        assert entry["active_duration_display"] == "1h 30m"

    def test_format_usage_for_display(self):
        assert format_usage_for_display(None) is None

        tracker = UsageTracker()
        tracker.record([make_stats("aa:bb:cc:dd:ee:ff", 0, 0)], 1_700_000_000.0)
        tracker.record([make_stats("aa:bb:cc:dd:ee:ff", 1024, 1024)], 1_700_000_002.0)
        usage = format_usage_for_display(tracker.period())

        assert set(usage) == {"day", "week", "month"}
        assert usage["day"]["total_bytes"] == 2048
        assert usage["day"]["total_display"] == "2 KB"

    def test_format_battery_for_display(self):
        assert format_battery_for_display(None) is None

        tracker = BatteryTracker()
        tracker.record(SystemStatus(battery_percent=80, uptime_seconds=3600), 1_700_000_000.0)
        tracker.record(SystemStatus(battery_percent=78, uptime_seconds=3660), 1_700_000_060.0)
        battery = format_battery_for_display(tracker.stats())

        assert battery["current_level"] == 78
        assert battery["session_duration"] == 3660
        assert battery["day"]["powered_seconds"] == 60
        assert battery["day"]["on_battery_display"] == "01:00"
        assert battery["day"]["average_level"] == pytest.approx(79.0)
        assert set(battery) >= {"day", "week", "month", "average_daily_display"}
        json.dumps(battery)

    def test_format_json_output(self):
        devices = [
            make_stats("aa:bb:cc:dd:ee:ff", 100, 100),
            make_stats("11:22:33:44:55:66", 100, 100, connected=False),
        ]

        output = format_json_output(devices, SystemStatus(network_provider="Glo"), namespace(), 1.5, latency_ms=23)

        assert output["device_count"] == 1
        assert len(output["devices"]) == 2
        assert output["system_status"]["network_provider"] == "Glo"
        assert output["usage"] is None
        assert output["battery"] is None
        assert output["latency_ms"] == 23
        assert output["query_host"] == "192.168.1.1"
        assert output["elapsed_time"] == 1.5
        assert output["configuration"] == {"port": 80, "timeout": 5.0, "interval": 2.0}
        json.dumps(output)

    def test_format_speed_test_output(self):
        result = SpeedTestResult(samples_mbps=[10.123, 20.457], average_mbps=15.29, max_mbps=20.457, total_bytes=2048, duration=10.0)

        output = format_speed_test_output(result, 10.5)

        assert output["speed_test"]["average_mbps"] == 15.29
        assert output["speed_test"]["samples_mbps"] == [10.12, 20.46]
        assert output["speed_test"]["total_display"] == "2 KB"

    def test_print_summary_to_stderr(self, capsys):
        phone = make_stats("aa:bb:cc:dd:ee:ff", 100, 100)
        phone.device_type = "Android"
        devices = [phone, make_stats("11:22:33:44:55:66", 0, 0, connected=False)]
        status = SystemStatus(network_provider="Glo", network_type="LTE", signal_bars=4, battery_percent=76, battery_charging=True, uptime_seconds=39051)

        print_summary_to_stderr(devices, status)

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "HOTSPOT STATUS SUMMARY" in captured.err
        assert "Network: Glo (LTE)" in captured.err
        assert "Battery: 76% (charging)" in captured.err
        assert "Uptime: 10:50:51" in captured.err
        assert "Connected Devices: 1" in captured.err
        assert "Android" in captured.err
        assert "disconnected" in captured.err

    def test_print_json_output(self, capsys):
        print_json_output({"test": "data"})

        assert json.loads(capsys.readouterr().out) == {"test": "data"}

    def test_print_json_output_single_line(self, capsys):
        print_json_output({"a": 1}, indent=None)

        assert capsys.readouterr().out == '{"a": 1}\n'

    def test_print_error_suggestions_normal(self, capsys):
        print_error_suggestions(debug=False)

        assert "Troubleshooting suggestions" in capsys.readouterr().err

    @patch("traceback.print_exc")
    def test_print_error_suggestions_debug(self, mock_traceback, capsys):
        print_error_suggestions(debug=True)

        mock_traceback.assert_called_once()
        assert "Troubleshooting suggestions" not in capsys.readouterr().err


@pytest.mark.cli
@patch("hotspot_monitor.cli.main.setup_logging")
class TestCLIMain:
    """Test the main entry point."""

    def simulated(self, router):
        return lambda args: HotspotMonitorClient(host=args.host, transport=router)

    def test_main_success(self, mock_logging, capsys):
        router = RouterSimulator()
        with patch("hotspot_monitor.cli.main.create_client", self.simulated(router)):
            result = main(["--interval", "0.01"])

        captured = capsys.readouterr()
        output = json.loads(captured.out)
        assert result == 0
        assert output["device_count"] == 2
        assert output["system_status"]["network_provider"] == "Glo"
        assert {d["hostname"] for d in output["devices"]} == {"Pixel-7", "ThinkPad"}
        assert "HOTSPOT STATUS SUMMARY" in captured.err
        assert router.count("sta_info1") == 2

    def test_main_quiet_mode(self, mock_logging, capsys):
        router = RouterSimulator()
        with patch("hotspot_monitor.cli.main.create_client", self.simulated(router)):
            main(["--interval", "0.01", "--quiet"])

        captured = capsys.readouterr()
        assert json.loads(captured.out)["device_count"] == 2
        assert captured.err == ""

    def test_main_watch_with_count(self, mock_logging, capsys):
        router = RouterSimulator()
        with patch("hotspot_monitor.cli.main.create_client", self.simulated(router)):
            result = main(["--watch", "--count", "2", "--interval", "0.02", "--quiet"])

        lines = capsys.readouterr().out.strip().splitlines()
        assert result == 0
        assert len(lines) >= 2
        first = json.loads(lines[0])
        assert first["device_count"] == 2
        assert set(first["usage"]) == {"day", "week", "month"}

    def test_main_reboot(self, mock_logging, capsys):
        router = RouterSimulator()
        with patch("hotspot_monitor.cli.main.create_client", self.simulated(router)):
            result = main(["--reboot", "--quiet"])

        output = json.loads(capsys.readouterr().out)
        assert result == 0
        assert output["success"] is True
        assert output["message"] == "Reboot command sent"

    @patch("hotspot_monitor.cli.main.run_speed_test")
    def test_main_speed_test(self, mock_speed_test, mock_logging, capsys):
        mock_speed_test.return_value = SpeedTestResult(
            samples_mbps=[12.0, 18.0], average_mbps=15.0, max_mbps=18.0, total_bytes=15_000_000, duration=10.0
        )

        result = main(["--speed-test", "--speed-test-duration", "3", "--quiet"])

        output = json.loads(capsys.readouterr().out)
        assert result == 0
        assert output["speed_test"]["average_mbps"] == 15.0
        assert mock_speed_test.call_args.kwargs["duration"] == 3.0

    @patch("hotspot_monitor.cli.main.run_speed_test")
    def test_main_speed_test_failure(self, mock_speed_test, mock_logging, capsys):
        mock_speed_test.side_effect = HotspotOperationError("Speed test could not download any data")

        with pytest.raises(SystemExit) as exc_info:
            main(["--speed-test"])

        assert exc_info.value.code == 1
        assert "Speed test could not download any data" in capsys.readouterr().err

    def test_main_client_error(self, mock_logging, capsys):
        router = RouterSimulator()
        router.failures[",".join(DEVICE_LIST_COMMANDS)] = HotspotConnectionError("Failed to talk to 192.168.1.1:80")

        with patch("hotspot_monitor.cli.main.create_client", self.simulated(router)):
            with pytest.raises(SystemExit) as exc_info:
                main(["--interval", "0.01"])

        err = capsys.readouterr().err
        assert exc_info.value.code == 1
        assert "Failed to talk to 192.168.1.1:80" in err
        assert "Troubleshooting suggestions" in err

    def test_main_invalid_arguments(self, mock_logging, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--timeout", "0"])

        assert exc_info.value.code == 2
        assert "Invalid arguments: Timeout must be greater than 0" in capsys.readouterr().err

    def test_main_keyboard_interrupt(self, mock_logging, capsys):
        with patch("hotspot_monitor.cli.main.parse_args", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main([])

        assert exc_info.value.code == 1
        assert "Operation cancelled by user" in capsys.readouterr().err
