"""Shared fixtures for pgnbase tests."""

import duckdb
import pytest

from pgnbase.database import init_db
from pgnbase.importer import persist_batch
from pgnbase.models import GameRecord, Outcome, PlayerSide
from pgnbase.speed import Speed


@pytest.fixture
def db():
    """In-memory DuckDB connection with schema initialized."""
    conn = duckdb.connect(":memory:")
    init_db(conn)
    yield conn
    conn.close()


def _pgn(
    white="alice",
    black="bob",
    white_elo="1500",
    black_elo="1400",
    result="1-0",
    time_control="300+0",
    date="2024.01.15",
    moves="1. e4 e5 2. Nf3 Nc6",
    **extra,
) -> str:
    headers = {
        "Event": "Rated Blitz game",
        "Site": "https://lichess.org/abc123",
        "Date": date,
        "White": white,
        "Black": black,
        "Result": result,
        "WhiteElo": white_elo,
        "BlackElo": black_elo,
        "TimeControl": time_control,
        **extra,
    }
    tags = "\n".join(f'[{key} "{value}"]' for key, value in headers.items() if value is not None)
    terminator = result if result in ("1-0", "0-1", "1/2-1/2", "*") else "*"
    return f"{tags}\n\n{moves} {terminator}\n\n"


@pytest.fixture
def make_pgn():
    """Return a builder for one PGN game; pass ``None`` to drop a header."""
    return _pgn


def _record(
    white="alice",
    black="bob",
    white_rating=1500,
    black_rating=1400,
    speed=Speed.BLITZ,
    outcome=Outcome.WHITE_WINS,
    date="2024.01.15",
    moves=("e4", "e5"),
) -> GameRecord:
    return GameRecord(
        white=PlayerSide(white, white_rating),
        black=PlayerSide(black, black_rating),
        speed=speed,
        date=date,
        site="https://lichess.org/abc123",
        outcome=outcome,
        moves=list(moves),
    )


@pytest.fixture
def make_record():
    return _record


@pytest.fixture
def add_games(db):
    """Persist records into the ``db`` fixture in one batch."""

    def add(*records: GameRecord) -> None:
        persist_batch(db, list(records))

    return add
