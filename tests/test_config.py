"""Tests for configuration handling."""

import stat

import pytest

from pyledger.config import (
    DEFAULT_API_URL,
    DEFAULT_LEDGER_NAME,
    DEFAULT_TIMEOUT,
    Config,
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove pyledger variables from the environment."""
    for name in ("PYLEDGER_API_URL", "PYLEDGER_TIMEOUT", "PYLEDGER_LEDGER_NAME"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def cfg(tmp_path, clean_env):
    """Provide a Config stored in a temporary directory."""
    return Config(config_dir=tmp_path / "pyledger")


class TestDefaults:
    """Tests for values without env or file."""

    def test_defaults(self, cfg):
        """Test that defaults apply when nothing is configured."""
        assert not cfg.is_configured()
        assert cfg.api_url == DEFAULT_API_URL
        assert cfg.timeout == DEFAULT_TIMEOUT
        assert cfg.ledger_name == DEFAULT_LEDGER_NAME

    def test_config_path(self, cfg, tmp_path):
        """Test the location of the config file."""
        assert cfg.get_config_path() == tmp_path / "pyledger" / "config"


class TestSave:
    """Tests for writing the config file."""

    def test_save_and_read(self, cfg):
        """Test that saved values are read back."""
        cfg.save(api_url="http://ledger.local:8000/", ledger_name="Work")

        assert cfg.is_configured()
        assert cfg.api_url == "http://ledger.local:8000"
        assert cfg.ledger_name == "Work"

    def test_save_merges(self, cfg):
        """Test that saving one key keeps the others."""
        cfg.save(api_url="http://a")
        cfg.save(ledger_name="Work")

        assert cfg.api_url == "http://a"
        assert cfg.ledger_name == "Work"

    def test_file_is_private(self, cfg):
        """Test that the config file is only readable by the user."""
        cfg.save(api_url="http://a")

        mode = stat.S_IMODE(cfg.get_config_path().stat().st_mode)
        assert mode == 0o600

    def test_unknown_key(self, cfg):
        """Test that unknown keys are refused."""
        with pytest.raises(ValueError, match="colour"):
            cfg.save(colour="blue")

    def test_comments_and_blank_lines(self, cfg):
        """Test that comments and malformed lines are skipped."""
        path = cfg.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("# comment\n\nnot a pair\ntimeout = 12\n")

        assert cfg.timeout == 12.0


class TestEnvironment:
    """Tests for environment overrides."""

    def test_env_wins_over_file(self, cfg, clean_env):
        """Test that environment variables override the file."""
        cfg.save(api_url="http://file")
        clean_env.setenv("PYLEDGER_API_URL", "http://env")

        assert cfg.api_url == "http://env"

    def test_invalid_timeout_falls_back(self, cfg, clean_env):
        """Test that an unparsable timeout uses the default."""
        clean_env.setenv("PYLEDGER_TIMEOUT", "soon")

        assert cfg.timeout == DEFAULT_TIMEOUT
