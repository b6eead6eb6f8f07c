"""
Configuration Loader for the Voter Aggregates Pipeline

This module provides a centralized way to load and access configuration
settings from a config.yaml file, falling back to built-in defaults.

Usage:
    from ops import Config

    config = Config()
    chunk_size = config.get_processing_setting("chunk_size")
    dashboard = run_pipeline(voters, config=config)
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

from aggregation.chunking import DEFAULT_CHUNK_SIZE
from aggregation.exceptions import ConfigurationError
from aggregation.merger import DEFAULT_DENSITY_SCALE, DEFAULT_HISTORICAL_TURNOUT
from aggregation.pipeline import DEFAULT_MAX_WORKERS

CONFIG_ENV_VAR = "VOTER_AGGREGATES_CONFIG"
PACKAGE_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the voter aggregates pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "processing": {
            "chunk_size": DEFAULT_CHUNK_SIZE,
            "max_workers": DEFAULT_MAX_WORKERS,
            "timeout_seconds": None,
        },
        "analysis": {
            "density_scale": DEFAULT_DENSITY_SCALE,
            "historical_turnout": dict(DEFAULT_HISTORICAL_TURNOUT),
            "current_year": None,
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        search: bool = True,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None and ``search`` is set, looks for:
                        1. Environment variable VOTER_AGGREGATES_CONFIG
                        2. config.yaml in current directory
                        3. ops/config.yaml shipped with the package
            overrides: Dot-notation settings applied on top of the file
                       (e.g. {"processing.chunk_size": 1000})
            search: If False, skip the file lookup and use defaults only
        """
        if config_file is None and search:
            config_file = self._find_config_file()

        self.config_path: Optional[Path] = None
        self.data: Dict[str, Any] = {}

        if config_file is not None:
            self.config_path = Path(config_file).resolve()
            if not self.config_path.exists():
                raise FileNotFoundError(f"Config file not found: {self.config_path}")

            logger.debug(f"Loading config from: {self.config_path}")
            with open(self.config_path, "r") as f:
                loaded = yaml.safe_load(f)

            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ConfigurationError(
                    f"Config file must contain a mapping: {self.config_path}"
                )
            self.data = loaded
        else:
            logger.debug("No config file found, using defaults")

        for key_path, value in (overrides or {}).items():
            self.add_override(key_path, value)

        self.validate()

    @classmethod
    def from_defaults(cls, overrides: Optional[Dict[str, Any]] = None) -> "Config":
        """Config built from DEFAULTS (plus overrides) without reading any file."""
        return cls(overrides=overrides, search=False)

    @staticmethod
    def _find_config_file() -> Optional[Path]:
        env_config = os.environ.get(CONFIG_ENV_VAR)
        if env_config and Path(env_config).exists():
            logger.debug(f"Using config from environment: {env_config}")
            return Path(env_config)
        if Path("config.yaml").exists():
            return Path("config.yaml")
        if PACKAGE_CONFIG.exists():
            return PACKAGE_CONFIG
        return None

    def add_override(self, key_path: str, value: Any) -> None:
        """Set a config value using dot notation."""
        keys = key_path.split(".")
        current = self.data
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value
        logger.debug(f"Added override: {key_path} = {value}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        # Try to get from config first
        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        # If not found in config, try defaults
        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return default if value is None else value

    def get_processing_setting(self, setting_key: str) -> Any:
        """Get processing setting with intelligent defaults."""
        return self.get(f"processing.{setting_key}")

    def get_analysis_setting(self, setting_key: str) -> Any:
        """Get analysis setting with intelligent defaults."""
        return self.get(f"analysis.{setting_key}")

    def validate(self) -> None:
        """
        Check processing and analysis settings.

        Raises:
            ConfigurationError: on the first invalid setting
        """
        for key in ("chunk_size", "max_workers"):
            value = self.get_processing_setting(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(
                    f"{key} must be a positive integer, got {value!r}",
                    config_key=f"processing.{key}",
                )

        timeout = self.get_processing_setting("timeout_seconds")
        if timeout is not None and (
            isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
        ):
            raise ConfigurationError(
                f"timeout_seconds must be a positive number, got {timeout!r}",
                config_key="processing.timeout_seconds",
            )

        scale = self.get_analysis_setting("density_scale")
        if isinstance(scale, bool) or not isinstance(scale, (int, float)) or scale <= 0:
            raise ConfigurationError(
                f"density_scale must be a positive number, got {scale!r}",
                config_key="analysis.density_scale",
            )

        history = self.get_analysis_setting("historical_turnout")
        if not isinstance(history, dict):
            raise ConfigurationError(
                "historical_turnout must map years to turnout percentages",
                config_key="analysis.historical_turnout",
            )

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Config file: {self.config_path or 'defaults'}")
        for section in ("processing", "analysis"):
            logger.debug(f"⚙️ {section}:")
            for key in self.DEFAULTS[section]:
                logger.debug(f"  {key}: {self.get(f'{section}.{key}')}")


# Convenience function for easy importing
def load_config(config_file: Optional[str] = None) -> Config:
    """
    Load configuration from file.

    Args:
        config_file: Path to configuration file

    Returns:
        Config instance
    """
    return Config(config_file)
