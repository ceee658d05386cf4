#!/usr/bin/env python3
"""Tests for config_loader.py.

Run with: pytest runners/scripts/tests/test_config_loader.py -v
"""

import sys
from pathlib import Path

import pytest

# Add script path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import config_loader
from config_loader import Config, get_config


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point the singleton at a config.yaml under tmp_path."""
    path = tmp_path / 'config.yaml'
    monkeypatch.setattr(Config, '_candidate_paths', lambda self: [path])
    for name in config_loader.ALLOWED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    def load(text=None):
        if text is not None:
            path.write_text(text)
        config = get_config()
        config.reload()
        return config

    yield load

    monkeypatch.undo()
    get_config().reload()


class TestConfig:

    def test_singleton(self):
        assert Config() is Config()
        assert get_config() is Config()

    def test_defaults_without_file(self, config_file):
        config = config_file()
        assert config.get('feed.for_you_limit') == 10
        assert config.get('feed.section_limit') == 6
        assert config.get('logging.level') == 'INFO'
        assert config.get('paths.runners_dir') == 'runners'

    def test_file_overrides_defaults(self, config_file):
        config = config_file("feed:\n  section_limit: 3\n")
        assert config.get('feed.section_limit') == 3
        assert config.get('feed.for_you_limit') == 10

    def test_missing_key_default(self, config_file):
        config = config_file("feed: {}\n")
        assert config.get('api.key') is None
        assert config.get('feed.nope', 'x') == 'x'
        assert config.get('feed.section_limit.deeper', 1) == 1

    def test_empty_file(self, config_file):
        assert config_file("").get('feed.section_limit') == 6

    def test_env_substitution(self, config_file, monkeypatch):
        monkeypatch.setenv('RF_API_KEY', 'secret')
        config = config_file("api:\n  key: ${RF_API_KEY:-}\n")
        assert config.get('api.key') == 'secret'

    def test_env_substitution_default(self, config_file):
        config = config_file("logging:\n  level: ${RF_LOG_LEVEL:-DEBUG}\n")
        assert config.get('logging.level') == 'DEBUG'

    def test_env_not_allowlisted(self, config_file, monkeypatch):
        monkeypatch.setenv('HOME_SECRET', 'leaked')
        config = config_file("api:\n  key: ${HOME_SECRET:-none}\n")
        assert config.get('api.key') == 'none'

    def test_env_in_lists(self, config_file, monkeypatch):
        monkeypatch.setenv('RF_LOG_FORMAT', 'json')
        config = config_file("extra:\n  - ${RF_LOG_FORMAT}\n  - plain\n")
        assert config.get('extra') == ['json', 'plain']

    def test_relative_runners_dir(self, config_file):
        config = config_file("paths:\n  runners_dir: data/runners\n")
        assert config.get_runners_dir() == (config_loader.PROJECT_ROOT / 'data' / 'runners').resolve()

    def test_absolute_runners_dir(self, config_file, tmp_path):
        config = config_file(f"paths:\n  runners_dir: {tmp_path}\n")
        assert config.get_runners_dir() == tmp_path.resolve()

    def test_all(self, config_file):
        assert set(config_file().all) == {'paths', 'logging', 'feed'}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
