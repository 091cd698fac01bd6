"""
Unit Tests for configuration loading
"""

import pytest
import yaml

from zkmail.config import (
    CircuitConfig,
    ConfigManager,
    Environment,
    LogLevel,
    ZKMailConfig,
    config_to_dict,
    create_default_configs,
    get_config,
)
from zkmail.exceptions import ConfigError
from zkmail.params import REFERENCE_PARAMS


class TestCircuitConfig:
    def test_defaults_are_reference_params(self):
        assert CircuitConfig().to_params() == REFERENCE_PARAMS

    def test_custom_patterns(self):
        params = CircuitConfig(max_len=64, patterns={"subject": "Subject:"}).to_params()

        assert params.max_len == 64
        assert params.pattern("subject").literal == b"Subject:"

    @pytest.mark.parametrize(
        "config",
        [
            CircuitConfig(max_len=0),
            CircuitConfig(chunk_size=32),
            CircuitConfig(max_len=4, patterns={"domain": "@gmail.com"}),
            CircuitConfig(patterns={"bad name": "x"}),
            CircuitConfig(patterns={"uni": "é"}),
        ],
    )
    def test_invalid_circuit(self, config):
        with pytest.raises(ConfigError):
            config.to_params()


class TestConfigManager:
    def test_defaults_without_files(self, tmp_path):
        config = ConfigManager(env="testing", config_dir=tmp_path).load_config()

        assert config.environment == Environment.TESTING
        assert config.circuit.max_len == 8192
        assert config.prover.snarkjs_path == "snarkjs"
        assert config.logging.log_level == LogLevel.INFO

    def test_yaml_layering(self, tmp_path):
        (tmp_path / "base.yaml").write_text(
            yaml.dump({"circuit": {"max_len": 256}, "prover": {"build_dir": "out"}})
        )
        (tmp_path / "production.yaml").write_text(
            yaml.dump({"prover": {"proof_timeout": 30}, "logging": {"log_level": "warning"}})
        )

        config = ConfigManager(env="production", config_dir=tmp_path).load_config()

        assert config.circuit.max_len == 256
        assert config.prover.build_dir == "out"
        assert config.prover.proof_timeout == 30
        assert config.logging.log_level == LogLevel.WARNING

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ZKMAIL_PROVER_SNARKJS_PATH", "/opt/snarkjs")
        monkeypatch.setenv("ZKMAIL_CIRCUIT_MAX_LEN", "512")
        monkeypatch.setenv("ZKMAIL_CIRCUIT_PIN_PATTERNS", "false")
        monkeypatch.setenv("ZKMAIL_SKIP_ZKP", "1")

        config = ConfigManager(env="development", config_dir=tmp_path).load_config()

        assert config.prover.snarkjs_path == "/opt/snarkjs"
        assert config.circuit.max_len == 512
        assert config.circuit.pin_patterns is False

    def test_environment_detection(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ZKMAIL_ENV", "production")
        assert ConfigManager(config_dir=tmp_path).env == Environment.PRODUCTION

        monkeypatch.setenv("ZKMAIL_ENV", "staging")
        assert ConfigManager(config_dir=tmp_path).env == Environment.DEVELOPMENT

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "base.yaml").write_text("circuit: [unclosed")

        with pytest.raises(ConfigError, match="Failed to load config"):
            ConfigManager(env="testing", config_dir=tmp_path).load_config()

    def test_invalid_timeout(self, tmp_path):
        (tmp_path / "base.yaml").write_text(yaml.dump({"prover": {"proof_timeout": 0}}))

        with pytest.raises(ConfigError, match="timeout"):
            ConfigManager(env="testing", config_dir=tmp_path).load_config()

    def test_save_and_reload(self, tmp_path):
        manager = ConfigManager(env="testing", config_dir=tmp_path)
        config = ZKMailConfig()
        config.circuit.max_len = 96

        manager.save_config(config)
        reloaded = manager.reload_config()

        assert reloaded.circuit.max_len == 96
        assert reloaded.environment == Environment.DEVELOPMENT

    def test_config_to_dict_is_plain(self):
        data = config_to_dict(ZKMailConfig())

        assert data["environment"] == "development"
        assert data["logging"]["log_level"] == "INFO"
        assert data["circuit"]["patterns"]["domain"] == "@gmail.com"


class TestDefaultConfigs:
    def test_create_default_configs(self, tmp_path):
        create_default_configs(tmp_path)

        assert {p.name for p in tmp_path.glob("*.yaml")} == {
            "base.yaml",
            "development.yaml",
            "testing.yaml",
            "production.yaml",
        }
        config = ConfigManager(env="testing", config_dir=tmp_path).load_config()
        assert config.circuit.max_len == 128

    def test_get_config_uses_config_dir(self, tmp_path, monkeypatch):
        create_default_configs(tmp_path / "config")
        monkeypatch.chdir(tmp_path)

        config = get_config("testing", reload=True)

        assert config.circuit.max_len == 128
        assert get_config() is config
