"""Tests for config loader functionality."""

import os
import pytest
import tempfile
import yaml

from defense_grader.libs.config_loader import load_configs, load_default_configs, get_config


def _write_yaml(data) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(data, f)
        return f.name


def test_load_single_config():
    """Test loading a single config file."""
    config_data = {
        "display": {"decimals": 3},
        "logging": {"level": "DEBUG"}
    }
    temp_path = _write_yaml(config_data)
    try:
        assert load_configs(temp_path) == config_data
    finally:
        os.unlink(temp_path)


def test_load_multiple_configs_merge():
    """Later files override earlier ones key by key."""
    config1 = {
        "server": {"host": "127.0.0.1", "port": 5000},
        "logging": {"level": "INFO"}
    }
    config2 = {
        "server": {"port": 8080},  # This should override
        "logging": {"format": "%(message)s"}  # This should be added
    }
    expected = {
        "server": {"host": "127.0.0.1", "port": 8080},
        "logging": {"level": "INFO", "format": "%(message)s"}
    }

    temp_path1 = _write_yaml(config1)
    temp_path2 = _write_yaml(config2)
    try:
        assert load_configs(temp_path1, temp_path2) == expected
    finally:
        os.unlink(temp_path1)
        os.unlink(temp_path2)


def test_load_missing_file():
    """Test that missing files are skipped."""
    config_data = {"raters": {"name_template": "Rater #{number}"}}
    temp_path = _write_yaml(config_data)
    try:
        assert load_configs(temp_path, "nonexistent.yaml") == config_data
    finally:
        os.unlink(temp_path)


def test_no_configs_loaded():
    """Test that ValueError is raised when no configs are loaded."""
    with pytest.raises(ValueError, match="No configs loaded"):
        load_configs("nonexistent1.yaml", "nonexistent2.yaml")


def test_invalid_yaml_type():
    """Test that TypeError is raised for non-dict YAML."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        f.write("just a string, not a dict")
        temp_path = f.name

    try:
        with pytest.raises(TypeError, match="must be a dict"):
            load_configs(temp_path)
    finally:
        os.unlink(temp_path)


def test_get_config():
    """Test getting config values by dot-separated key."""
    config = {
        "storage": {
            "directory": "~/.defense_grader",
            "session_key": "thesisDefenseData"
        },
        "display": {"decimals": 2}
    }

    assert get_config("storage.directory", config) == "~/.defense_grader"
    assert get_config("storage.session_key", config) == "thesisDefenseData"
    assert get_config("display.decimals", config) == 2

    with pytest.raises(KeyError):
        get_config("nonexistent.key", config)

    with pytest.raises(KeyError):
        get_config("storage.nonexistent", config)

    with pytest.raises(KeyError):
        get_config("display.decimals.deeper", config)


def test_get_config_default():
    """A default is returned instead of raising for missing keys."""
    config = {"display": {"decimals": 2}}
    assert get_config("display.width", config, 80) == 80
    assert get_config("server.port", config, None) is None
    assert get_config("display.decimals", config, 4) == 2


def test_load_default_configs():
    """The packaged defaults are always available."""
    config = load_default_configs()
    assert get_config("display.decimals", config) == 2
    assert get_config("storage.session_key", config) == "thesisDefenseData"
    assert "{number}" in get_config("raters.name_template", config)


def test_load_default_configs_with_extra_file():
    """An extra config file overrides the packaged defaults."""
    temp_path = _write_yaml({"display": {"decimals": 3}})
    try:
        config = load_default_configs(temp_path)
        assert get_config("display.decimals", config) == 3
        assert get_config("storage.session_key", config) == "thesisDefenseData"
    finally:
        os.unlink(temp_path)


def test_load_default_configs_missing_extra_file():
    with pytest.raises(ValueError, match="Config file not found"):
        load_default_configs("does-not-exist.yaml")
