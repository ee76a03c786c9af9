import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from .exceptions import ConfigError

ENV_PREFIX = "RATEWORK_"


class Config:
    def __init__(self, config_path: Optional[Path] = None):
        self._config: Dict[str, Any] = {}
        self._load_defaults()
        self._load_environment_variables()
        if config_path:
            self.load(config_path)
        self.validate(self._config)

    def _load_defaults(self) -> None:
        """Load default configuration values"""
        self._config = {
            "app": {
                "name": "ratework",
                "version": "1.0.0",
                "debug": False,
                "created_at": datetime.now(timezone.utc).isoformat()
            },
            "helpfulness": {
                "z_score": 1.96,
                "verified_multiplier": 1.2,
                "min_votes": 10
            },
            "similarity": {
                "spam_threshold": 0.8,
                "similar_threshold": 0.7,
                "window_days": 30
            },
            "votes": {
                "burst_threshold": 20,
                "burst_window_minutes": 60,
                "new_account_ratio": 0.8,
                "new_account_days": 7,
                "pile_on_min_downvotes": 10,
                "pile_on_factor": 3
            },
            "submission": {
                "min_length": 50,
                "max_length": 5000,
                "max_reviews_per_day": 3,
                "review_cooldown_days": 365
            },
            "engine": {
                "max_workers": 4
            },
            "trends": {
                "cancel_check_interval": 500,
                "top_keywords": 10,
                "polarity_threshold": 0.1
            },
            "logging": {
                "level": "INFO",
                "file": None,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "console_output": False
            }
        }

    def load(self, path: Path) -> None:
        """Load configuration from JSON file"""
        try:
            with open(path, 'r') as f:
                file_config = json.load(f)
                self.update(file_config)
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {str(e)}")

    def save(self, path: Path) -> None:
        """Save configuration to JSON file"""
        with open(path, 'w') as f:
            json.dump(self._config, f, indent=2)

    def _load_environment_variables(self) -> None:
        """Load configuration from environment variables"""
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                # RATEWORK_VOTES_BURST_THRESHOLD -> votes.burst_threshold
                parts = key[len(ENV_PREFIX):].lower().split('_')

                if len(parts) > 2:
                    config_key = f"{parts[0]}.{'_'.join(parts[1:])}"
                else:
                    config_key = '.'.join(parts)

                converted_value = self._convert_value(value)
                self.set(config_key, converted_value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot notation key"""
        try:
            value = self._config
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot notation key"""
        keys = key.split('.')
        d = self._config
        for k in keys[:-1]:
            if k not in d:
                d[k] = {}
            d = d[k]
        d[keys[-1]] = value

    def update(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration with dictionary"""
        def update_recursive(d1, d2):
            for k, v in d2.items():
                if isinstance(v, dict):
                    if k not in d1:
                        d1[k] = {}
                    update_recursive(d1[k], v)
                else:
                    d1[k] = v
            return d1

        update_recursive(self._config, config_dict)

    def validate(self, config: Dict[str, Any]) -> None:
        """Validate configuration values"""
        ratio_keys = {
            "similarity": ("spam_threshold", "similar_threshold"),
            "votes": ("new_account_ratio",),
            "trends": ("polarity_threshold",),
        }
        for section, keys in ratio_keys.items():
            section_config = config.get(section, {})
            for key in keys:
                if key in section_config and not 0 < section_config[key] <= 1:
                    raise ConfigError(f"{section}.{key} must be between 0 and 1")

        positive_keys = {
            "helpfulness": ("z_score", "verified_multiplier", "min_votes"),
            "similarity": ("window_days",),
            "votes": (
                "burst_threshold", "burst_window_minutes", "new_account_days",
                "pile_on_min_downvotes", "pile_on_factor"
            ),
            "submission": ("min_length", "max_length", "max_reviews_per_day"),
            "engine": ("max_workers",),
            "trends": ("cancel_check_interval", "top_keywords"),
        }
        for section, keys in positive_keys.items():
            section_config = config.get(section, {})
            for key in keys:
                if key in section_config and section_config[key] <= 0:
                    raise ConfigError(f"{section}.{key} must be positive")

        if "submission" in config:
            submission = config["submission"]
            if submission.get("min_length", 0) > submission.get("max_length", float("inf")):
                raise ConfigError("submission.min_length cannot exceed submission.max_length")

    @staticmethod
    def _convert_value(value: str) -> Any:
        """Convert string value to appropriate type"""
        if value.lower() == "true":
            return True
        if value.lower() == "false":
            return False

        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            return value
