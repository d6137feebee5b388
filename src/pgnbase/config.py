"""Environment-driven settings for pgnbase."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pgnbase.errors import ConfigError

DEFAULT_DATA_DIR = Path.home() / ".pgnbase"
DEFAULT_BATCH_SIZE = 50

DATA_DIR_ENV = "PGNBASE_DATA_DIR"
BATCH_SIZE_ENV = "PGNBASE_BATCH_SIZE"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    batch_size: int = DEFAULT_BATCH_SIZE

    @property
    def db_dir(self) -> Path:
        """Directory holding the converted database files."""
        return self.data_dir / "db"


def parse_batch_size(value: str | int) -> int:
    """Return a positive batch size or raise ConfigError."""
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"batch size must be an integer, got {value!r}") from None
    if size < 1:
        raise ConfigError(f"batch size must be positive, got {size}")
    return size


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    env = os.environ if env is None else env

    data_dir = env.get(DATA_DIR_ENV)
    batch_size = env.get(BATCH_SIZE_ENV)
    return Settings(
        data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
        batch_size=parse_batch_size(batch_size) if batch_size else DEFAULT_BATCH_SIZE,
    )
