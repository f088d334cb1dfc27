"""
Configuration management for the PII vault.

This module provides configuration utilities for controlling behavior
of the vault, including development/production modes, logging and the
worker pool used for bulk decryption.
"""

import logging
import os
import sys
from pathlib import Path
from copy import deepcopy

import yaml

from .errors import VaultConfigError


logger = logging.getLogger(__name__)


class VaultConfig:
    """
    Configuration for the PII vault.

    This class provides access to configuration settings. Cryptographic
    parameters are deliberately absent: stored ciphertext depends on them,
    so they live as constants next to the code that uses them.
    """

    # Default configuration values
    _default_config: dict[str, object] = {
        "mode": "DEV",  # DEV or PROD
        "logging": {
            "level": "WARNING",
        },
        "bulk": {
            "max_workers": 8,
        },
        "address": {
            "default_label": "Address",
            "default_type": "shipping",
        },
    }

    # Instance configuration values, loaded from file or environment
    _config: dict[str, object] = {}

    # Flag indicating if the configuration has been initialized
    _initialized: bool = False

    @classmethod
    def initialize(cls, config_path: str | None = None) -> None:
        """
        Initialize the configuration.

        Args:
            config_path: Optional path to a YAML configuration file
        """
        # Start with default configuration (deep copy to avoid shared nested dictionaries)
        cls._config = deepcopy(cls._default_config)

        if config_path:
            cls._load_from_file(config_path)

        cls._load_from_env()

        cls._initialized = True

    @classmethod
    def _load_from_file(cls, config_path: str) -> None:
        """
        Load configuration from a YAML file.

        Sections that are dictionaries are merged into the defaults, so a
        file only needs to name the values it changes.

        Args:
            config_path: Path to the YAML configuration file
        """
        path = Path(config_path)
        if not path.exists():
            print(f"Configuration file not found: {config_path}", file=sys.stderr)
            sys.exit(1)

        try:
            with open(path, "r") as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            print(f"Error loading configuration file: {e}", file=sys.stderr)
            sys.exit(1)

        if not file_config:
            return
        if not isinstance(file_config, dict):
            print(f"Configuration file must contain a mapping: {config_path}", file=sys.stderr)
            sys.exit(1)

        for section, values in file_config.items():
            current = cls._config.get(section)
            if isinstance(current, dict):
                if not isinstance(values, dict):
                    print(f"Configuration section '{section}' must be a mapping: {config_path}", file=sys.stderr)
                    sys.exit(1)
                current.update(values)
            else:
                cls._config[section] = values

    @classmethod
    def _load_from_env(cls) -> None:
        """Load configuration from environment variables."""
        env_mode = os.environ.get("PII_VAULT_MODE")
        if env_mode in ("DEV", "PROD"):
            cls._config["mode"] = env_mode

        env_level = os.environ.get("PII_VAULT_LOG_LEVEL")
        if env_level:
            cls._config["logging"]["level"] = env_level.upper()

        # Left as text when not a number; get_max_workers() rejects it, so
        # only bulk operations are affected.
        env_workers = os.environ.get("PII_VAULT_MAX_WORKERS")
        if env_workers:
            try:
                cls._config["bulk"]["max_workers"] = int(env_workers)
            except ValueError:
                cls._config["bulk"]["max_workers"] = env_workers

    @classmethod
    def _ensure_initialized(cls) -> None:
        """Ensure the configuration is initialized."""
        if not cls._initialized:
            cls.initialize()

    @classmethod
    def get(cls, key: str, default: object = None) -> object:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve, dots separate sections
            default: Default value to return if key is not found

        Returns:
            The configuration value, or default if not found
        """
        cls._ensure_initialized()

        if "." in key:
            value = cls._config
            for part in key.split("."):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default
            return value

        return cls._config.get(key, default)

    @classmethod
    def is_dev_mode(cls) -> bool:
        """
        Check if the system is in development mode.

        Returns:
            True if in development mode, False otherwise
        """
        return cls.get("mode") == "DEV"

    @classmethod
    def get_max_workers(cls) -> int:
        """
        Get the worker count for bulk operations.

        Returns:
            A positive number of worker threads
        """
        workers = cls.get("bulk.max_workers", 8)
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            raise VaultConfigError(f"bulk.max_workers must be a positive integer, got {workers!r}")
        return workers

    @classmethod
    def get_log_level(cls) -> int:
        """
        Get the configured log level as a ``logging`` constant.

        Returns:
            The numeric log level
        """
        name = str(cls.get("logging.level", "WARNING")).upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise VaultConfigError(f"Unknown log level: {name}")
        return level

    @classmethod
    def configure_logging(cls) -> None:
        """Apply the configured level to the package logger."""
        logging.getLogger("pii_vault").setLevel(cls.get_log_level())
        logger.debug("pii_vault logging configured (mode=%s)", cls.get("mode"))
