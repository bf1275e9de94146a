"""Configuration loading utilities for defense-grader."""

import copy
import os
from typing import Any, Optional
import logging

import yaml

LOG = logging.getLogger(__name__)

ConfigType = dict[str, Any]

CONFIG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config")


def _merge(orig_conf: Any, new_conf: Any) -> Any:
    """Recursively merge configuration dictionaries."""
    if isinstance(orig_conf, dict) and isinstance(new_conf, dict):
        result = copy.deepcopy(orig_conf)
        for k, v in new_conf.items():
            if k in orig_conf:
                result[k] = _merge(orig_conf[k], v)
            else:
                result[k] = copy.deepcopy(v)
        return result
    return copy.deepcopy(new_conf)


def load_configs(*path_configs: str) -> ConfigType:
    """Load and merge YAML configuration files.

    Args:
        *path_configs: Paths to YAML configuration files, later files win

    Returns:
        Merged configuration dictionary

    Raises:
        TypeError: If a config file doesn't contain a dict
        ValueError: If no configs are loaded
    """
    result: ConfigType = {}
    for path in path_configs:
        path = os.fspath(path)
        if os.path.isfile(path):
            LOG.info("loading config from %s", path)
            with open(path, "r", encoding="utf-8") as f:
                c = yaml.safe_load(f)
                if not isinstance(c, dict):
                    raise TypeError(f"YAML config file {path} must be a dict")
                result = _merge(result, c)
        else:
            LOG.debug("Skipping missing config file %s", repr(path))
    if not result:
        raise ValueError("No configs loaded")
    return result


def load_default_configs(extra_path: Optional[str] = None) -> ConfigType:
    """Load the packaged defaults plus local overrides.

    Files are merged in this order:
    1. config/default.yaml (shipped with the package)
    2. config/local.yaml (local overrides, not committed to git)
    3. ``extra_path`` if given (e.g. from ``--config``)
    """
    paths = [
        os.path.join(CONFIG_DIR, "default.yaml"),
        os.path.join(CONFIG_DIR, "local.yaml"),
    ]
    if extra_path:
        if not os.path.isfile(extra_path):
            raise ValueError(f"Config file not found: {extra_path}")
        paths.append(os.fspath(extra_path))
    return load_configs(*paths)


def get_config(key: str, config: Optional[ConfigType] = None, default: Any = ...) -> Any:
    """Get a configuration value by dot-separated key.

    Args:
        key: Dot-separated path to config value (e.g., "display.decimals")
        config: Configuration dict (if None, loads default configs)
        default: Value returned when the key is missing; raises if omitted

    Returns:
        Configuration value

    Raises:
        KeyError: If key not found in configuration and no default given
    """
    if config is None:
        config = load_default_configs()

    keys = key.split('.')
    value = config
    for i, k in enumerate(keys):
        if not isinstance(value, dict):
            if default is not ...:
                return default
            raise KeyError(f"Cannot access {k} in non-dict value at {'.'.join(keys[:i])}")
        if k not in value:
            if default is not ...:
                return default
            raise KeyError(f"Key {key} not found in configuration")
        value = value[k]
    return value
