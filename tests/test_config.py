"""Config module tests.

Tests PROCWIRE_* environment parsing and the global configuration cache.
"""

from __future__ import annotations

import os
from unittest import mock

from procwire.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DRAIN_TIMEOUT,
    MAX_CHUNK_SIZE,
    Config,
    get_config,
    load_config,
    reload_config,
)


class TestParseChunkSize:
    """Test PROCWIRE_CHUNK_SIZE."""

    def test_unset_means_default(self):
        config = load_config()
        assert config.chunk_size == DEFAULT_CHUNK_SIZE

    def test_explicit_value(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_CHUNK_SIZE": "65536"}):
            config = load_config()
            assert config.chunk_size == 65536

    def test_invalid_value_falls_back(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_CHUNK_SIZE": "lots"}):
            config = load_config()
            assert config.chunk_size == DEFAULT_CHUNK_SIZE

    def test_clamped_low(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_CHUNK_SIZE": "-5"}):
            config = load_config()
            assert config.chunk_size == 1

    def test_clamped_high(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_CHUNK_SIZE": str(MAX_CHUNK_SIZE * 4)}):
            config = load_config()
            assert config.chunk_size == MAX_CHUNK_SIZE


class TestParseDrainTimeout:
    """Test PROCWIRE_DRAIN_TIMEOUT."""

    def test_unset_means_default(self):
        config = load_config()
        assert config.drain_timeout == DEFAULT_DRAIN_TIMEOUT

    def test_explicit_value(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_DRAIN_TIMEOUT": "2.5"}):
            config = load_config()
            assert config.drain_timeout == 2.5

    def test_none_means_unbounded(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_DRAIN_TIMEOUT": "None"}):
            config = load_config()
            assert config.drain_timeout is None

    def test_negative_means_unbounded(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_DRAIN_TIMEOUT": "-1"}):
            config = load_config()
            assert config.drain_timeout is None

    def test_invalid_value_falls_back(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_DRAIN_TIMEOUT": "soon"}):
            config = load_config()
            assert config.drain_timeout == DEFAULT_DRAIN_TIMEOUT


class TestLogDebug:
    """Test PROCWIRE_LOG_DEBUG."""

    def test_default_off(self):
        config = load_config()
        assert config.log_debug is False
        assert config.log_file is None

    def test_on_creates_log_path(self):
        with mock.patch.dict(os.environ, {"PROCWIRE_LOG_DEBUG": "yes"}):
            config = load_config()
            assert config.log_debug is True
            assert config.log_file is not None
            assert "procwire_debug_" in config.log_file

    def test_false_values(self):
        for value in ("false", "0", "no", "off"):
            with mock.patch.dict(os.environ, {"PROCWIRE_LOG_DEBUG": value}):
                assert load_config().log_debug is False


class TestGlobalConfig:
    """Test the global configuration instance."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reload_reads_environment(self):
        before = get_config()
        with mock.patch.dict(os.environ, {"PROCWIRE_CHUNK_SIZE": "512"}):
            after = reload_config()
        assert after is not before
        assert get_config().chunk_size == 512

    def test_repr(self):
        text = repr(Config(chunk_size=10, drain_timeout=None))
        assert "chunk_size=10" in text
        assert "drain_timeout=None" in text
