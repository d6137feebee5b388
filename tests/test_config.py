"""Tests for pgnbase.config module."""

from pathlib import Path

import pytest

from pgnbase.config import DEFAULT_BATCH_SIZE, DEFAULT_DATA_DIR, load_settings, parse_batch_size
from pgnbase.errors import ConfigError


def test_defaults():
    settings = load_settings({})
    assert settings.data_dir == DEFAULT_DATA_DIR
    assert settings.batch_size == DEFAULT_BATCH_SIZE == 50
    assert settings.db_dir == DEFAULT_DATA_DIR / "db"


def test_env_overrides():
    settings = load_settings({"PGNBASE_DATA_DIR": "/srv/pgn", "PGNBASE_BATCH_SIZE": "500"})
    assert settings.data_dir == Path("/srv/pgn")
    assert settings.batch_size == 500


@pytest.mark.parametrize("value", ["0", "-3", "many"])
def test_invalid_batch_size(value):
    with pytest.raises(ConfigError):
        load_settings({"PGNBASE_BATCH_SIZE": value})


def test_parse_batch_size_accepts_ints():
    assert parse_batch_size(10) == 10
