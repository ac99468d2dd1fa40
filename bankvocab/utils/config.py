"""Configuration management for Bank Vocabulary."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

API_KEY_ENV = "BANKVOCAB_FIREBASE_API_KEY"


class ConfigManager:
    """Manages application configuration with persistent storage."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".bankvocab"
        self.config_file = self.config_dir / "config.json"
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._config = self._load_config()

    def _defaults(self) -> Dict[str, Any]:
        return {
            "firebase_api_key": None,
            "data_path": str(self.config_dir / "data.sqlite"),
            "default_test_size": 10,
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file."""
        config = self._defaults()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    stored = json.load(f)
                if isinstance(stored, dict):
                    config.update(stored)
            except (json.JSONDecodeError, IOError) as e:
                logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)

        return config

    def _save_config(self) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self._config, f, indent=2)
        except IOError as e:
            logger.warning("Could not save config: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value and save."""
        self._config[key] = value
        self._save_config()

    def get_api_key(self) -> Optional[str]:
        """Get the identity provider API key, preferring the environment."""
        return os.environ.get(API_KEY_ENV) or self.get("firebase_api_key")

    def set_api_key(self, api_key: str) -> None:
        """Set and save API key."""
        self.set("firebase_api_key", api_key)

    def get_data_path(self) -> str:
        return self.get("data_path")

    def get_default_test_size(self) -> int:
        size = self.get("default_test_size", 10)
        return size if isinstance(size, int) and size > 0 else 10


# Global config manager instance
config = ConfigManager()
