#!/usr/bin/env python3
"""
Configuration loader for the race recommender.

Loads settings from config.yaml with environment variable overrides.
"""

import os
import re
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml


# Allowlist of environment variables that can be substituted
ALLOWED_ENV_VARS: Set[str] = {
    'RF_RUNNERS_DIR',
    'RF_LOG_LEVEL',
    'RF_LOG_FORMAT',
    'RF_API_KEY',
}

ENV_VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

# runners/scripts -> repository root
PROJECT_ROOT: Path = Path(__file__).parent.parent.parent.resolve()


class Config:
    """Recommender configuration manager."""

    _instance = None
    _config = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self._load_config()

    def _candidate_paths(self):
        return [
            PROJECT_ROOT / 'config.yaml',
            Path.cwd() / 'config.yaml',
            Path.home() / '.racefeed' / 'config.yaml',
        ]

    def _load_config(self):
        """Load configuration from config.yaml, falling back to defaults."""
        config_path = next((p for p in self._candidate_paths() if p.exists()), None)

        defaults = self._get_defaults()
        if config_path is None:
            self._config = defaults
            return

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        self._config = self._merge(defaults, self._process_env_vars(raw_config))

    def reload(self):
        """Re-read configuration (tests and long-running servers)."""
        self._config = None
        self._load_config()

    def _merge(self, base: Dict, override: Dict) -> Dict:
        merged = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = self._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _process_env_vars(self, obj: Any) -> Any:
        """
        Recursively process environment variable substitutions.

        SECURITY: Only allowlisted environment variables can be substituted.
        """
        if isinstance(obj, str):
            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ''
                if var_name not in ALLOWED_ENV_VARS:
                    return default
                return os.environ.get(var_name, default)

            return ENV_VAR_PATTERN.sub(replace, obj)

        elif isinstance(obj, dict):
            return {k: self._process_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [self._process_env_vars(item) for item in obj]

        return obj

    def _get_defaults(self) -> Dict:
        """Return default configuration."""
        return {
            'paths': {
                'runners_dir': os.environ.get('RF_RUNNERS_DIR', 'runners'),
            },
            'logging': {
                'level': os.environ.get('RF_LOG_LEVEL', 'INFO'),
                'format': os.environ.get('RF_LOG_FORMAT', 'human'),
            },
            'feed': {
                'for_you_limit': 10,
                'section_limit': 6,
            },
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example: config.get('feed.section_limit', 6)
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_path(self, key: str) -> Optional[Path]:
        """Get a path configuration, resolving relative paths against the repo root."""
        raw_path = self.get(f'paths.{key}', '')
        if not raw_path:
            return None

        path = Path(os.path.expanduser(raw_path))
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path.resolve()

    def get_runners_dir(self) -> Path:
        """Directory holding per-runner state directories."""
        return self.get_path('runners_dir')

    @property
    def all(self) -> Dict:
        """Return the full configuration dictionary."""
        return self._config


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
