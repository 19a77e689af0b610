"""
Tests for trnkit configuration.
"""

import logging

import pytest

from trnkit.config import DEFAULT_CHARSET, MAX_COMMANDS, TurnConfig
from trnkit.trn.structures import Feature


class TestTurnConfig:
    """Tests for TurnConfig defaults and validation."""

    def test_defaults(self):
        """Defaults should match the DOS/Winplan clients."""
        config = TurnConfig()
        assert config.charset == DEFAULT_CHARSET == "cp437"
        assert config.default_version == 1
        assert config.max_commands == MAX_COMMANDS
        assert config.default_features == Feature.WINPLAN

    def test_unknown_charset(self):
        """Should reject codecs Python does not know."""
        with pytest.raises(LookupError):
            TurnConfig(charset="no-such-codec")

    def test_version_range(self):
        with pytest.raises(ValueError):
            TurnConfig(default_version=100)
        with pytest.raises(ValueError):
            TurnConfig(default_version=-1)

    def test_negative_ceiling(self):
        with pytest.raises(ValueError):
            TurnConfig(max_commands=-1)


class TestConfigFromEnv:
    """Tests for TurnConfig.from_env()."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("TRNKIT_CHARSET", "TRNKIT_VERSION", "TRNKIT_MAX_COMMANDS"):
            monkeypatch.delenv(name, raising=False)

    def test_no_variables(self):
        assert TurnConfig.from_env() == TurnConfig()

    def test_all_variables(self, monkeypatch):
        monkeypatch.setenv("TRNKIT_CHARSET", "latin-1")
        monkeypatch.setenv("TRNKIT_VERSION", "12")
        monkeypatch.setenv("TRNKIT_MAX_COMMANDS", "5000")
        config = TurnConfig.from_env()
        assert config.charset == "latin-1"
        assert config.default_version == 12
        assert config.max_commands == 5000

    def test_invalid_values_are_ignored(self, monkeypatch, caplog):
        """Should warn and keep defaults for unusable values."""
        monkeypatch.setenv("TRNKIT_CHARSET", "no-such-codec")
        monkeypatch.setenv("TRNKIT_VERSION", "abc")
        monkeypatch.setenv("TRNKIT_MAX_COMMANDS", "many")
        with caplog.at_level(logging.WARNING, logger="trnkit.config"):
            config = TurnConfig.from_env()
        assert config == TurnConfig()
        assert "TRNKIT_CHARSET" in caplog.text
        assert "TRNKIT_VERSION" in caplog.text
        assert "TRNKIT_MAX_COMMANDS" in caplog.text

    def test_version_out_of_range(self, monkeypatch):
        monkeypatch.setenv("TRNKIT_VERSION", "150")
        assert TurnConfig.from_env().default_version == 1
