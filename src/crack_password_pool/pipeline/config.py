"""
Configuration Loader Module

Loads the YAML configuration of a cracking run and exposes each section
with defaults merged in and guardrails applied.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"

POOL_DEFAULTS = {
    "core_size": None,
    "max_size": None,
    "backlog_size": 1024,
    "keep_alive_seconds": 120,
    "drivers": None,
    "drain_timeout_seconds": 300,
    "thread_name_prefix": "CrackPool-Thread-",
}

DICTIONARY_DEFAULTS = {
    "password_file": "var/dictionaries/passwords.txt",
    "tested_file": "var/dictionaries/tested.txt",
    "length": 4,
    "alphabet": "0123456789abcdefghijklmnopqrstuvwxyz",
}

TESTER_DEFAULTS = {
    "surl": None,
    "verify_url": "https://pan.baidu.com/share/verify",
    "timeout_seconds": 10,
    "success_errnos": [0],
    "wrong_code_errnos": [-9],
    "throttled_errnos": [-62],
    "proxies": [],
    "headers": {},
}

OUTPUT_DEFAULTS = {
    "mirror_file": None,
}

LOGGING_DEFAULTS = {
    "level": "INFO",
    "file": "var/logs/crack_password_pool.log",
    "max_bytes": 10 * 1024 * 1024,
    "backup_count": 5,
}

SUMMARY_DEFAULTS = {
    "enabled": True,
    "base_dir": "var/logs/runs",
}


class ConfigLoader:
    """Handles loading and managing the YAML configuration file."""

    def __init__(self, config_file_path: str = DEFAULT_CONFIG_PATH):
        """
        Initialize the configuration loader.

        Args:
            config_file_path: Path to the YAML configuration file
        """
        self.config_file_path = Path(config_file_path)
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if not self.config_file_path.exists():
                logger.error(f"Configuration file not found: {self.config_file_path}, using defaults")
                self.config_data = {}
                return

            with open(self.config_file_path, "r", encoding="utf-8") as f:
                self.config_data = yaml.safe_load(f) or {}

            if not isinstance(self.config_data, dict):
                logger.error(f"Configuration root must be a mapping: {self.config_file_path}")
                self.config_data = {}
                return

            logger.info(f"Successfully loaded configuration from {self.config_file_path}")

        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error in {self.config_file_path}: {str(e)}")
            self.config_data = {}
        except OSError as e:
            logger.error(f"Error loading configuration file: {str(e)}")
            self.config_data = {}

    def reload_config(self) -> bool:
        """
        Reload configuration from file.

        Returns:
            bool: True if reload produced any configuration
        """
        self._load_config()
        return bool(self.config_data)

    def _section(self, name: str, defaults: Dict[str, Any]) -> Dict[str, Any]:
        section = self.config_data.get(name) or {}
        if not isinstance(section, dict):
            logger.warning(f"Configuration section '{name}' is not a mapping, using defaults")
            section = {}
        return {**defaults, **section}

    def get_pool_config(self) -> Dict[str, Any]:
        """Get worker pool configuration with defaults and guardrails."""
        merged = self._section("pool", POOL_DEFAULTS)

        for key in ("core_size", "max_size", "drivers"):
            value = merged.get(key)
            if value is not None and int(value) < 1:
                logger.warning(f"pool.{key}={value} is below 1, using the default")
                merged[key] = None

        core, max_size = merged.get("core_size"), merged.get("max_size")
        if core is not None and max_size is not None and int(max_size) < int(core):
            logger.warning(f"pool.max_size={max_size} is below core_size={core}, raising it")
            merged["max_size"] = int(core)

        if int(merged["backlog_size"]) < 0:
            merged["backlog_size"] = 0
        if float(merged["keep_alive_seconds"]) <= 0:
            merged["keep_alive_seconds"] = POOL_DEFAULTS["keep_alive_seconds"]
        if float(merged["drain_timeout_seconds"]) <= 0:
            merged["drain_timeout_seconds"] = POOL_DEFAULTS["drain_timeout_seconds"]
        return merged

    def get_dictionary_config(self) -> Dict[str, Any]:
        """Get dictionary file configuration."""
        merged = self._section("dictionary", DICTIONARY_DEFAULTS)
        if int(merged["length"]) < 1:
            merged["length"] = DICTIONARY_DEFAULTS["length"]
        if not merged.get("alphabet"):
            merged["alphabet"] = DICTIONARY_DEFAULTS["alphabet"]
        return merged

    def get_tester_config(self) -> Dict[str, Any]:
        """
        Get tester configuration.

        ``CRACK_SURL`` and ``CRACK_PROXIES`` (comma-separated) in the
        environment override the file.
        """
        merged = self._section("tester", TESTER_DEFAULTS)

        env_surl = os.getenv("CRACK_SURL")
        if env_surl:
            merged["surl"] = env_surl
        env_proxies = os.getenv("CRACK_PROXIES")
        if env_proxies:
            merged["proxies"] = _split_list(env_proxies)

        merged["proxies"] = [p for p in (merged.get("proxies") or []) if p]
        return merged

    def get_output_config(self) -> Dict[str, Any]:
        return self._section("output", OUTPUT_DEFAULTS)

    def get_logging_config(self) -> Dict[str, Any]:
        return self._section("logging", LOGGING_DEFAULTS)

    def get_summary_config(self) -> Dict[str, Any]:
        return self._section("summary", SUMMARY_DEFAULTS)

    def apply_overrides(self, section: str, overrides: Dict[str, Any]) -> None:
        """Write non-None values into a section (in memory only), e.g. from CLI flags."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return
        target = self.config_data.get(section)
        if not isinstance(target, dict):
            target = {}
            self.config_data[section] = target
        target.update(values)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def create_config_loader(config_file_path: Optional[str] = None) -> ConfigLoader:
    """
    Factory function to create a ConfigLoader instance.

    Args:
        config_file_path: Optional custom path to configuration file

    Returns:
        ConfigLoader: Configured loader instance
    """
    if config_file_path is None:
        config_file_path = DEFAULT_CONFIG_PATH

    return ConfigLoader(config_file_path)
