"""
Tests for configuration loading.
"""

import logging

from rollsmith.core.config import Config, get_config, reset_config


class TestConfig:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Test defaults when nothing is set."""
        for name in ('ROLLSMITH_CRITICAL', 'ROLLSMITH_FUMBLE', 'ROLLSMITH_MISFIRE',
                     'ROLLSMITH_SEED', 'ROLLSMITH_DEBUG_ROLLS', 'ROLLSMITH_PORT'):
            monkeypatch.delenv(name, raising=False)
        config = Config()
        assert config.critical == 20
        assert config.fumble == 1
        assert config.misfire == 0
        assert config.seed is None
        assert config.debug_rolls is False
        assert config.port == 5000

    def test_environment_overrides(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv('ROLLSMITH_CRITICAL', '19')
        monkeypatch.setenv('ROLLSMITH_SEED', '1234')
        monkeypatch.setenv('ROLLSMITH_DEBUG_ROLLS', 'yes')
        monkeypatch.setenv('ROLLSMITH_LOG_LEVEL', 'debug')
        config = Config()
        assert config.critical == 19
        assert config.seed == 1234
        assert config.debug_rolls is True
        assert config.log_level == 'DEBUG'

    def test_env_file(self, tmp_path, monkeypatch):
        """Test values load from an explicit .env file."""
        # Registered with monkeypatch so the value load_dotenv sets is undone
        monkeypatch.setenv('ROLLSMITH_MISFIRE', '0')
        monkeypatch.delenv('ROLLSMITH_MISFIRE')
        env_file = tmp_path / '.env'
        env_file.write_text('ROLLSMITH_MISFIRE=2\n')
        config = Config(env_file=str(env_file))
        assert config.misfire == 2

    def test_validate(self, monkeypatch, caplog):
        """Test validation rejects bad levels and thresholds."""
        assert Config().validate() is True

        monkeypatch.setenv('ROLLSMITH_FUMBLE', '20')
        with caplog.at_level(logging.ERROR):
            assert Config().validate() is False
        assert any('ROLLSMITH_FUMBLE' in r.message for r in caplog.records)

        monkeypatch.setenv('ROLLSMITH_FUMBLE', '1')
        monkeypatch.setenv('ROLLSMITH_LOG_LEVEL', 'LOUD')
        assert Config().validate() is False


def test_get_config_is_cached():
    """Test get_config returns one instance until reset."""
    config = get_config()
    assert get_config() is config
    reset_config()
    assert get_config() is not config
