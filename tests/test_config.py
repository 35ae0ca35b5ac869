"""Tests for config.py — loading, env var expansion, validation."""

import logging

import pytest

from config import (
    Config, DEFAULT_TIER_A, DEFAULT_TIER_B, expand_env_vars, load_config, WebConfig,
)


class TestExpandEnvVars:
    def test_dollar_brace_syntax(self, monkeypatch):
        monkeypatch.setenv("TEST_VAR", "hello")
        assert expand_env_vars("${TEST_VAR}") == "hello"

    def test_dollar_prefix_syntax(self, monkeypatch):
        monkeypatch.setenv("MY_VAR", "world")
        assert expand_env_vars("$MY_VAR") == "world"

    def test_missing_var_becomes_empty(self, monkeypatch):
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)
        assert expand_env_vars("${NONEXISTENT_VAR}") == ""

    def test_nested_dict_and_list(self, monkeypatch):
        monkeypatch.setenv("TOKEN", "abc123")
        result = expand_env_vars({"bot": {"token": "${TOKEN}"}, "hosts": ["$TOKEN", "x"]})
        assert result == {"bot": {"token": "abc123"}, "hosts": ["abc123", "x"]}

    def test_non_string_passthrough(self):
        assert expand_env_vars(42) == 42
        assert expand_env_vars(True) is True
        assert expand_env_vars(None) is None


class TestConfigFromYaml:
    def test_load_basic_yaml(self, config_yaml):
        cfg = Config.from_yaml(config_yaml)
        assert cfg.web.port == 8080
        assert cfg.web.pin == "4321"
        assert cfg.telegram.admin_chat_id == "99999"
        assert cfg.playback.provider_timeout == 3
        assert cfg.playback.ydl_timeout == 15
        assert cfg.watch_limits.enabled is True
        assert cfg.watch_limits.daily_limit_minutes == 120

    def test_missing_sections_use_defaults(self, tmp_path):
        cfg_file = tmp_path / "empty.yaml"
        cfg_file.write_text("web:\n")
        cfg = Config.from_yaml(cfg_file)
        assert cfg.playback.tier_a_instances == DEFAULT_TIER_A
        assert cfg.playback.tier_b_instances == DEFAULT_TIER_B
        assert cfg.watch_limits.enabled is False

    def test_unquoted_pin_becomes_string(self, tmp_path):
        cfg_file = tmp_path / "pin.yaml"
        cfg_file.write_text("web:\n  pin: 1234\n")
        assert Config.from_yaml(cfg_file).web.pin == "1234"

    def test_env_var_expansion_in_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FR_TEST_TOKEN", "env_token_val")
        cfg_file = tmp_path / "env_config.yaml"
        cfg_file.write_text("""\
telegram:
  bot_token: "${FR_TEST_TOKEN}"
  admin_chat_id: "77777"
""")
        cfg = Config.from_yaml(cfg_file)
        assert cfg.telegram.bot_token == "env_token_val"


class TestConfigFromEnv:
    def test_defaults(self, monkeypatch):
        for var in ["FR_WEB_HOST", "FR_WEB_PORT", "FR_BOT_TOKEN", "FR_TIER_A_INSTANCES",
                    "FR_TIER_B_INSTANCES", "FR_CONTROLS_ENABLED", "FR_BASE_URL"]:
            monkeypatch.delenv(var, raising=False)
        cfg = Config.from_env()
        assert cfg.web.host == "0.0.0.0"
        assert cfg.web.port == 8080
        assert cfg.telegram.bot_token == ""
        assert cfg.playback.tier_a_instances == DEFAULT_TIER_A
        assert cfg.watch_limits.enabled is False

    def test_from_env_vars(self, monkeypatch):
        monkeypatch.setenv("FR_WEB_PORT", "9090")
        monkeypatch.setenv("FR_TIER_B_INSTANCES", "https://one.example/, https://two.example")
        monkeypatch.setenv("FR_CONTROLS_ENABLED", "TRUE")
        monkeypatch.setenv("FR_DAILY_LIMIT_MINUTES", "45")
        cfg = Config.from_env()
        assert cfg.web.port == 9090
        assert cfg.playback.tier_b_instances == ["https://one.example", "https://two.example"]
        assert cfg.watch_limits.enabled is True
        assert cfg.watch_limits.daily_limit_minutes == 45


class TestLoadConfig:
    def test_load_from_path_strips_trailing_slash(self, config_yaml):
        cfg = load_config(str(config_yaml))
        assert cfg.playback.tier_a_instances == ["https://pipedapi.example"]

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path/config.yaml")

    def test_fallback_to_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)  # No config.yaml present
        cfg = load_config(None)
        assert isinstance(cfg, Config)

    def test_invalid_timezone_reset(self, tmp_path):
        cfg_file = tmp_path / "tz_config.yaml"
        cfg_file.write_text("watch_limits:\n  timezone: \"Invalid/Timezone\"\n")
        cfg = load_config(str(cfg_file))
        assert cfg.watch_limits.timezone == ""

    def test_non_numeric_admin_chat_id_warning(self, tmp_path, caplog):
        cfg_file = tmp_path / "bad_admin.yaml"
        cfg_file.write_text("telegram:\n  bot_token: \"t\"\n  admin_chat_id: \"not_a_number\"\n")
        with caplog.at_level(logging.WARNING):
            load_config(str(cfg_file))
        assert "not numeric" in caplog.text

    def test_empty_tier_b_warning(self, tmp_path, caplog):
        cfg_file = tmp_path / "no_b.yaml"
        cfg_file.write_text("playback:\n  tier_b_instances: []\n")
        with caplog.at_level(logging.WARNING):
            cfg = load_config(str(cfg_file))
        assert cfg.playback.tier_b_instances == []
        assert "No tier B instances" in caplog.text


class TestWebConfig:
    def test_base_url_from_env(self, monkeypatch):
        monkeypatch.setenv("FR_BASE_URL", "http://10.0.0.1:8080")
        assert WebConfig().base_url == "http://10.0.0.1:8080"

    def test_base_url_explicit_wins(self, monkeypatch):
        monkeypatch.setenv("FR_BASE_URL", "http://10.0.0.1:8080")
        assert WebConfig(base_url="http://custom:9090").base_url == "http://custom:9090"
