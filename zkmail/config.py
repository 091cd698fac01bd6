"""
Configuration Management for zkmail

Dataclass settings loaded from YAML files with environment variable overrides.

Loading order (later wins):
1. Built-in defaults
2. ``<config_dir>/base.yaml``
3. ``<config_dir>/<env>.yaml``
4. ``ZKMAIL_<SECTION>_<FIELD>`` environment variables

Usage:
    from zkmail.config import get_config

    config = get_config()
    params = config.circuit.to_params()
    snarkjs = config.prover.snarkjs_path
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigError
from .params import CHUNK_SIZE, MAX_LEN, DEFAULT_PATTERNS, CircuitParams, Pattern

logger = logging.getLogger(__name__)

ENV_PREFIX = "ZKMAIL_"


class Environment(str, Enum):
    """Supported deployment environments"""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Supported logging levels"""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class CircuitConfig:
    """Circuit size and pattern literals"""

    max_len: int = MAX_LEN
    chunk_size: int = CHUNK_SIZE
    patterns: Dict[str, str] = field(
        default_factory=lambda: {p.name: p.text for p in DEFAULT_PATTERNS}
    )
    pin_patterns: bool = True

    def to_params(self) -> CircuitParams:
        try:
            return CircuitParams(
                max_len=self.max_len,
                chunk_size=self.chunk_size,
                patterns=tuple(
                    Pattern(name, text.encode("ascii"))
                    for name, text in self.patterns.items()
                ),
            )
        except (ValueError, UnicodeEncodeError) as e:
            raise ConfigError(f"Invalid circuit configuration: {e}") from e


@dataclass
class ProverConfig:
    """circom / snarkjs backend settings"""

    circom_path: str = "circom"
    snarkjs_path: str = "snarkjs"
    build_dir: str = "build"
    ptau_path: Optional[str] = None
    circomlib_path: str = "node_modules"
    proof_timeout: int = 600
    compile_timeout: int = 1800


@dataclass
class LoggingConfig:
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[str] = None


@dataclass
class ZKMailConfig:
    """Main configuration class containing all settings"""

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    circuit: CircuitConfig = field(default_factory=CircuitConfig)
    prover: ProverConfig = field(default_factory=ProverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate configuration consistency"""
        if not self.circuit.patterns:
            raise ConfigError("At least one pattern must be configured")

        # Raises ConfigError on inconsistent sizes
        self.circuit.to_params()

        if self.prover.proof_timeout <= 0:
            raise ConfigError(
                f"Proof timeout must be positive: {self.prover.proof_timeout}"
            )

        if self.environment == Environment.PRODUCTION and not self.circuit.pin_patterns:
            logger.warning(
                "Pattern signals are not pinned; proofs do not bind pattern literals"
            )

        logger.debug("Configuration validation passed")


SECTIONS = {
    "circuit": CircuitConfig,
    "prover": ProverConfig,
    "logging": LoggingConfig,
}


class ConfigManager:
    """Configuration manager for loading and managing settings"""

    def __init__(self, env: Optional[str] = None, config_dir: Optional[Path] = None):
        self.env = Environment(env) if env else self._detect_environment()
        self.config_dir = Path(config_dir) if config_dir else self._get_default_config_dir()
        self._config_cache: Optional[ZKMailConfig] = None

    def _detect_environment(self) -> Environment:
        """Detect current environment from environment variables"""
        env_var = os.getenv("ZKMAIL_ENV", "development").lower()
        try:
            return Environment(env_var)
        except ValueError:
            logger.warning(
                f"Unknown environment '{env_var}', defaulting to development"
            )
            return Environment.DEVELOPMENT

    def _get_default_config_dir(self) -> Path:
        """Get default configuration directory"""
        locations = [
            Path.cwd() / "config",
            Path.home() / ".zkmail",
        ]

        for location in locations:
            if location.exists():
                return location

        return Path.cwd()

    def load_config(self) -> ZKMailConfig:
        """Load configuration from files and environment variables"""
        if self._config_cache is not None:
            return self._config_cache

        config_dict: Dict[str, Any] = {}

        base_config_path = self.config_dir / "base.yaml"
        if base_config_path.exists():
            config_dict.update(self._load_yaml_config(base_config_path))

        env_config_path = self.config_dir / f"{self.env.value}.yaml"
        if env_config_path.exists():
            env_config = self._load_yaml_config(env_config_path)
            config_dict = self._deep_merge(config_dict, env_config)

        env_overrides = self._load_env_overrides()
        config_dict = self._deep_merge(config_dict, env_overrides)

        config = self._dict_to_config(config_dict)
        config.validate()

        self._config_cache = config
        return config

    def _load_yaml_config(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}") from e

    def _load_env_overrides(self) -> Dict[str, Any]:
        """Load overrides such as ZKMAIL_PROVER_SNARKJS_PATH -> prover.snarkjs_path"""
        overrides: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX) or key == "ZKMAIL_ENV":
                continue

            section, _, name = key[len(ENV_PREFIX) :].lower().partition("_")
            if section not in SECTIONS or not name:
                continue

            overrides.setdefault(section, {})[name] = self._parse_env_value(value)

        return overrides

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type"""
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        if value.isdigit():
            return int(value)

        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            pass

        return value

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> ZKMailConfig:
        """Convert dictionary to configuration object"""
        config = ZKMailConfig()

        if "environment" in config_dict:
            config.environment = Environment(config_dict["environment"])
        else:
            config.environment = self.env

        if "debug" in config_dict:
            config.debug = bool(config_dict["debug"])

        for section_name in SECTIONS:
            if section_name not in config_dict:
                continue

            section = getattr(config, section_name)
            for field_name, field_value in config_dict[section_name].items():
                if hasattr(section, field_name):
                    setattr(section, field_name, field_value)
                else:
                    logger.warning(
                        f"Unknown configuration field: {section_name}.{field_name}"
                    )

        if not isinstance(config.logging.log_level, LogLevel):
            config.logging.log_level = LogLevel(str(config.logging.log_level).upper())

        return config

    def save_config(self, config: ZKMailConfig, path: Optional[Path] = None) -> Path:
        """Save configuration to file"""
        if path is None:
            path = self.config_dir / f"{self.env.value}.yaml"

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(config_to_dict(config), f, default_flow_style=False, indent=2)

        logger.info(f"Configuration saved to {path}")
        return path

    def reload_config(self) -> ZKMailConfig:
        """Reload configuration from files"""
        self._config_cache = None
        return self.load_config()


def config_to_dict(config: ZKMailConfig) -> Dict[str, Any]:
    """Plain-dict (YAML friendly) view of a configuration"""
    result: Dict[str, Any] = {
        "environment": config.environment.value,
        "debug": config.debug,
    }

    for section_name in SECTIONS:
        section = getattr(config, section_name)
        values = {}
        for f in fields(section):
            value = getattr(section, f.name)
            values[f.name] = value.value if isinstance(value, Enum) else value
        result[section_name] = values

    return result


_config: Optional[ZKMailConfig] = None


@lru_cache(maxsize=4)
def get_config_manager(env: Optional[str] = None) -> ConfigManager:
    """Get or create the configuration manager for ``env``"""
    return ConfigManager(env=env)


def get_config(env: Optional[str] = None, reload: bool = False) -> ZKMailConfig:
    """Get current configuration"""
    global _config

    if _config is None or reload or (env and _config.environment.value != env):
        config_manager = get_config_manager(env)
        _config = config_manager.reload_config() if reload else config_manager.load_config()

    return _config


def create_default_configs(config_dir: Path) -> None:
    """Create default configuration files"""
    config_dir.mkdir(parents=True, exist_ok=True)

    configs = {
        "base.yaml": {
            "circuit": {"max_len": MAX_LEN, "chunk_size": CHUNK_SIZE},
            "prover": {"build_dir": "build"},
            "logging": {"log_level": "INFO"},
        },
        "development.yaml": {
            "debug": True,
            "logging": {"log_level": "DEBUG"},
        },
        "testing.yaml": {
            "circuit": {"max_len": 128},
        },
        "production.yaml": {
            "debug": False,
            "prover": {"proof_timeout": 1200},
        },
    }

    for filename, config_data in configs.items():
        config_path = config_dir / filename
        if not config_path.exists():
            with open(config_path, "w", encoding="utf-8") as f:
                yaml.dump(config_data, f, default_flow_style=False, indent=2)
            logger.info(f"Created default config: {config_path}")


__all__ = [
    "ZKMailConfig",
    "CircuitConfig",
    "ProverConfig",
    "LoggingConfig",
    "ConfigManager",
    "Environment",
    "LogLevel",
    "config_to_dict",
    "get_config",
    "get_config_manager",
    "create_default_configs",
]
