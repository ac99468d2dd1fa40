#!/usr/bin/env python3
"""Tests for configuration loading and saving."""

import json
import sys
import tempfile
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from bankvocab.utils.config import API_KEY_ENV, ConfigManager


def test_defaults_without_file():
    config_dir = Path(tempfile.mkdtemp())
    config = ConfigManager(config_dir)

    assert config.get("firebase_api_key") is None
    assert config.get_data_path() == str(config_dir / "data.sqlite")
    assert config.get_default_test_size() == 10


def test_set_is_saved(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    config_dir = Path(tempfile.mkdtemp())
    config = ConfigManager(config_dir)
    config.set_api_key("abc")
    config.set("default_test_size", 6)

    reloaded = ConfigManager(config_dir)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_default_test_size() == 6
    assert json.loads((config_dir / "config.json").read_text())["firebase_api_key"] == "abc"


def test_environment_overrides_api_key(monkeypatch):
    config = ConfigManager(Path(tempfile.mkdtemp()))
    config.set_api_key("from-file")
    monkeypatch.setenv(API_KEY_ENV, "from-env")

    assert config.get_api_key() == "from-env"


def test_unreadable_config_falls_back_to_defaults():
    config_dir = Path(tempfile.mkdtemp())
    (config_dir / "config.json").write_text("{broken")

    config = ConfigManager(config_dir)
    assert config.get_default_test_size() == 10


def test_invalid_test_size_uses_default():
    config = ConfigManager(Path(tempfile.mkdtemp()))
    config.set("default_test_size", "lots")
    assert config.get_default_test_size() == 10


if __name__ == "__main__":
    import pytest
    sys.exit(pytest.main([__file__, "-v"]))
