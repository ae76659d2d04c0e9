"""
Configuration loading for ipmifan
"""

import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/ipmifan/config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "ipmi": {
        "program": "ipmitool",
        "sudo": False,
        "host": "localhost",
        "interface": "lanplus",
        "username": "ADMIN",
        "password": "ADMIN",
    },
    "fans": {
        "count": 4,  # highest fan index, fans 0..count are driven
    },
}


class ConfigError(Exception):
    """Raised when a configuration file cannot be used"""
    pass


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML configuration merged over the defaults

    Args:
        config_path: Path to configuration file; defaults are used when it
            is None or the file does not exist

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or a
            section or fans.count has the wrong type
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is None or not os.path.exists(config_path):
        logger.debug(f"No configuration at {config_path}, using defaults")
        return config

    try:
        with open(config_path) as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")

    for section, values in loaded.items():
        if section in DEFAULT_CONFIG:
            # An empty section keeps its defaults
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigError(f"Section '{section}' in {config_path} must be a mapping")
            config[section].update(values)
        else:
            config[section] = values

    count = config["fans"]["count"]
    if isinstance(count, bool) or not isinstance(count, int):
        raise ConfigError(f"fans.count in {config_path} must be an integer, got {count!r}")

    logger.info(f"Loaded configuration from {config_path}")
    return config
