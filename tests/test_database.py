"""Tests for pgnbase.database module."""

from pathlib import Path

import duckdb
import pytest

from pgnbase.database import (
    Database,
    configure_bulk_load,
    database_path_for,
    get_connection,
    get_db_info,
    get_info,
    get_or_create_player,
    get_title,
    increment_game_count,
    init_db,
    rename_db,
)
from pgnbase.errors import StorageUnavailableError


def test_init_db_creates_tables(db):
    tables = db.execute(
        "SELECT table_name FROM information_schema.tables WHERE table_schema = 'main'"
    ).fetchall()
    names = {t[0] for t in tables}
    assert names == {"players", "games", "metadata"}


def test_init_db_seeds_title(db):
    assert get_title(db) == "Untitled"


def test_init_db_idempotent(db):
    db.execute("UPDATE metadata SET value = 'Club games' WHERE key = 'title'")
    init_db(db)
    rows = db.execute("SELECT key, value FROM metadata").fetchall()
    assert rows == [("title", "Club games")]


def test_get_or_create_player_reuses_rows(db):
    first = get_or_create_player(db, "magnus")
    second = get_or_create_player(db, "hikaru")
    assert get_or_create_player(db, "magnus") == first
    assert first != second
    assert db.execute("SELECT name, game_count FROM players ORDER BY id").fetchall() == [
        ("magnus", 0),
        ("hikaru", 0),
    ]


def test_player_names_are_case_sensitive(db):
    assert get_or_create_player(db, "Magnus") != get_or_create_player(db, "magnus")


def test_increment_game_count(db):
    player_id = get_or_create_player(db, "magnus")
    assert increment_game_count(db, player_id, 2, 2830) is True
    assert increment_game_count(db, player_id) is True
    assert db.execute("SELECT rating, game_count FROM players").fetchone() == (2830, 3)


def test_increment_game_count_failure_returns_false():
    conn = duckdb.connect(":memory:")
    init_db(conn)
    conn.close()
    assert increment_game_count(conn, 1) is False


def test_games_reject_unknown_outcome(db):
    with pytest.raises(duckdb.Error):
        db.execute(
            "INSERT INTO games (white, black, date, outcome, moves) VALUES (1, 2, '?', 0, '')"
        )


def test_database_path_for():
    db_dir = Path("/data/db")
    assert database_path_for(Path("/in/lichess.pgn.zst"), db_dir) == db_dir / "lichess.duckdb"
    assert database_path_for(Path("club.pgn"), db_dir) == db_dir / "club.duckdb"
    assert database_path_for(Path("club"), db_dir) == db_dir / "club.duckdb"


def test_get_info(db):
    get_or_create_player(db, "magnus")
    info = get_info(db)
    assert info.title == "Untitled"
    assert info.player_count == 1
    assert info.game_count == 0


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "db" / "club.duckdb"
    conn = get_connection(path)
    configure_bulk_load(conn)
    init_db(conn)
    get_or_create_player(conn, "magnus")
    conn.close()
    return path


def test_get_db_info_from_file(db_path):
    info = get_db_info(db_path)
    assert info.description == "club.duckdb"
    assert info.player_count == 1
    assert info.storage_size > 0


def test_rename_db(db_path):
    rename_db(db_path, "Club championship")
    with Database(db_path) as db:
        assert db.info().title == "Club championship"


def test_missing_file_is_storage_error(tmp_path):
    with pytest.raises(StorageUnavailableError):
        get_db_info(tmp_path / "nope.duckdb")
    with pytest.raises(StorageUnavailableError):
        rename_db(tmp_path / "nope.duckdb", "x")
