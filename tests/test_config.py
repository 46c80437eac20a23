"""Tests for input validation, Config persistence and manual override decisions."""

import json

import pytest

from osctrack_sdk_python.config import (
    Config,
    JsonSettingsStore,
    MemorySettingsStore,
    OverrideAction,
    evaluate_edit,
    normalize_ip,
    parse_port,
    validate_ip,
)


class TestValidateIp:
    @pytest.mark.parametrize("candidate", ["localhost", "LocalHost", "127.0.0.1", "192.168.1.20", "::1", "fe80::1"])
    def test_valid(self, candidate):
        assert validate_ip(candidate) is True

    @pytest.mark.parametrize("candidate", ["", "999.999.999.999", "vrchat.local", "1.2.3", None, 42])
    def test_invalid(self, candidate):
        assert validate_ip(candidate) is False

    def test_normalize_keeps_localhost(self):
        assert normalize_ip("localhost", "10.0.0.1") == "localhost"

    def test_normalize_falls_back(self):
        assert normalize_ip("not an ip", "10.0.0.1") == "10.0.0.1"


class TestParsePort:
    @pytest.mark.parametrize("candidate,expected", [("9000", 9000), (" 9001 ", 9001), ("0", 0), ("65535", 65535), (9002, 9002)])
    def test_valid(self, candidate, expected):
        assert parse_port(candidate, 1234) == expected

    @pytest.mark.parametrize("candidate", ["", "65536", "-1", "port", "90.5", None, True])
    def test_invalid_keeps_previous(self, candidate):
        assert parse_port(candidate, 1234) == 1234


class TestConfig:
    def test_localhost_is_stored_as_loopback(self):
        config = Config(control_port=0)
        config.target_ip_address = "LOCALHOST"
        assert config.target_ip_address == "127.0.0.1"
        assert Config(target_ip_address="localhost", control_port=0).target_ip_address == "127.0.0.1"

    def test_defaults(self):
        config = Config.load(MemorySettingsStore())
        assert config.target_ip_address == "127.0.0.1"
        assert config.send_port == 9000
        assert 0 < config.control_port <= 65535
        assert config.manual_override is False

    def test_load_ignores_bad_values(self):
        store = MemorySettingsStore({"ipAddress": "nope", "oscPort": "abc", "tcpPort": 5000, "manual": True})
        config = Config.load(store)
        assert config.target_ip_address == "127.0.0.1"
        assert config.send_port == 9000
        assert config.control_port == 5000
        assert config.manual_override is True

    def test_json_round_trip(self, tmp_path):
        path = tmp_path / "settings" / "osc.json"
        Config("localhost", 9100, 5001, True).save(JsonSettingsStore(path))

        assert json.loads(path.read_text()) == {
            "ipAddress": "127.0.0.1",
            "oscPort": 9100,
            "tcpPort": 5001,
            "manual": True,
        }
        config = Config.load(JsonSettingsStore(path))
        assert (config.target_ip_address, config.send_port, config.control_port, config.manual_override) == (
            "127.0.0.1", 9100, 5001, True,
        )

    def test_corrupt_settings_file(self, tmp_path):
        path = tmp_path / "osc.json"
        path.write_text("{not json")
        assert JsonSettingsStore(path).get("oscPort", 9000) == 9000


class TestEvaluateEdit:
    def test_set_both(self):
        config = Config(control_port=0)
        decision = evaluate_edit(config, "192.168.1.30", "9001")
        assert decision.action == OverrideAction.SET
        assert decision.config.target_ip_address == "192.168.1.30"
        assert decision.config.send_port == 9001
        assert decision.config.manual_override is True
        assert config.manual_override is False

    def test_set_ip_only_keeps_port(self):
        decision = evaluate_edit(Config(send_port=9005, control_port=0), "localhost", "")
        assert decision.action == OverrideAction.SET
        assert decision.config.target_ip_address == "127.0.0.1"
        assert decision.config.send_port == 9005

    def test_invalid_input_keeps_previous_values(self):
        config = Config(target_ip_address="10.0.0.1", send_port=9000, control_port=0)
        decision = evaluate_edit(config, "999.999.999.999", "99999")
        assert decision.action == OverrideAction.SET
        assert decision.ip_valid is False
        assert decision.port_valid is False
        assert decision.config.target_ip_address == "10.0.0.1"
        assert decision.config.send_port == 9000

    def test_clear_both(self):
        config = Config(target_ip_address="10.0.0.1", manual_override=True, control_port=0)
        decision = evaluate_edit(config, "  ", None)
        assert decision.action == OverrideAction.CLEAR
        assert decision.config.manual_override is False
        assert decision.config.target_ip_address == "10.0.0.1"
