"""Database operations for pgnbase using DuckDB."""

from pathlib import Path

import duckdb

from pgnbase.errors import StorageUnavailableError
from pgnbase.logging_utils import get_logger
from pgnbase.models import DatabaseInfo, GameRecord
from pgnbase.schema import ALL_DDL, BULK_LOAD_SETTINGS, DEFAULT_TITLE, SEED_METADATA

DB_SUFFIX = ".duckdb"

logger = get_logger(__name__)


class Database:
    """Read-side handle on one database file."""

    def __init__(self, db_path: Path | None = None, *, conn=None):
        self.path = db_path
        self.conn = conn if conn is not None else open_readonly(db_path)

    def info(self) -> DatabaseInfo:
        return get_info(self.conn, self.path)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()


def database_path_for(source: Path, db_dir: Path) -> Path:
    """Return the database file an archive converts to.

    ``games.pgn.zst`` and ``games.pgn`` both map to ``<db_dir>/games.duckdb``.
    """
    return db_dir / Path(source.stem).with_suffix(DB_SUFFIX)


def get_connection(db_path: Path) -> duckdb.DuckDBPyConnection:
    """Open a writable connection, creating the parent directory."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(db_path))


def open_readonly(db_path: Path) -> duckdb.DuckDBPyConnection:
    """Open an existing database file for reading."""
    if not db_path.is_file():
        raise StorageUnavailableError(f"database not found: {db_path}")
    try:
        return duckdb.connect(str(db_path), read_only=True)
    except duckdb.Error as err:
        raise StorageUnavailableError(f"cannot open {db_path}: {err}") from err


def remove_database(db_path: Path) -> None:
    """Delete a database file together with its write-ahead log."""
    for path in (db_path, db_path.with_name(db_path.name + ".wal")):
        path.unlink(missing_ok=True)


def configure_bulk_load(conn: duckdb.DuckDBPyConnection) -> None:
    """Apply connection settings that favour import throughput."""
    for statement in BULK_LOAD_SETTINGS:
        conn.execute(statement)


def init_db(conn: duckdb.DuckDBPyConnection) -> None:
    """Initialize the database schema and seed the metadata table."""
    for ddl in ALL_DDL:
        conn.execute(ddl)
    conn.execute(SEED_METADATA, [DEFAULT_TITLE])


# ---------------------------------------------------------------------------
# Writes (import path)
# ---------------------------------------------------------------------------


def get_or_create_player(conn: duckdb.DuckDBPyConnection, name: str) -> int:
    """Get or create a player and return their ID."""
    row = conn.execute("SELECT id FROM players WHERE name = ?", [name]).fetchone()
    if row:
        return row[0]

    result = conn.execute(
        "INSERT INTO players (name) VALUES (?) RETURNING id", [name]
    ).fetchone()
    return result[0]


def insert_game(
    conn: duckdb.DuckDBPyConnection,
    game: GameRecord,
    white_id: int,
    black_id: int,
    date: str,
) -> int:
    """Insert a parsed game and return its ID."""
    result = conn.execute(
        """
        INSERT INTO games (white, black, white_rating, black_rating, date,
                           speed, site, fen, outcome, moves)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        RETURNING id
        """,
        [
            white_id,
            black_id,
            game.white.rating,
            game.black.rating,
            date,
            int(game.speed) if game.speed is not None else None,
            game.site,
            game.fen,
            int(game.outcome),
            " ".join(game.moves),
        ],
    ).fetchone()
    return result[0]


def increment_game_count(
    conn: duckdb.DuckDBPyConnection,
    player_id: int,
    games: int = 1,
    rating: int | None = None,
) -> bool:
    """Add to a player's game counter and refresh their last-known rating.

    Failures are logged and reported as False; the counter may undercount.
    """
    try:
        conn.execute(
            """
            UPDATE players
            SET game_count = game_count + ?,
                rating = COALESCE(?, rating)
            WHERE id = ?
            """,
            [games, rating, player_id],
        )
    except duckdb.Error as err:
        logger.warning("Could not update game count for player %s: %s", player_id, err)
        return False
    return True


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def get_title(conn: duckdb.DuckDBPyConnection) -> str:
    row = conn.execute("SELECT value FROM metadata WHERE key = 'title'").fetchone()
    return row[0] if row else DEFAULT_TITLE


def set_title(conn: duckdb.DuckDBPyConnection, title: str) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES ('title', ?)", [title]
    )


def get_info(conn: duckdb.DuckDBPyConnection, db_path: Path | None = None) -> DatabaseInfo:
    """Summarize a database: title, file name, row counts and size on disk."""
    player_count = conn.execute("SELECT COUNT(*) FROM players").fetchone()[0]
    game_count = conn.execute("SELECT COUNT(*) FROM games").fetchone()[0]

    storage_size = db_path.stat().st_size if db_path is not None and db_path.exists() else 0
    return DatabaseInfo(
        title=get_title(conn),
        description=db_path.name if db_path is not None else "",
        player_count=player_count,
        game_count=game_count,
        storage_size=storage_size,
    )


def get_db_info(db_path: Path) -> DatabaseInfo:
    """Open ``db_path`` read-only and summarize it."""
    with Database(db_path) as db:
        try:
            return db.info()
        except duckdb.Error as err:
            raise StorageUnavailableError(f"cannot read {db_path}: {err}") from err


def rename_db(db_path: Path, title: str) -> None:
    """Change the human-readable title stored in a database file."""
    if not db_path.is_file():
        raise StorageUnavailableError(f"database not found: {db_path}")
    try:
        conn = duckdb.connect(str(db_path))
    except duckdb.Error as err:
        raise StorageUnavailableError(f"cannot open {db_path}: {err}") from err
    try:
        set_title(conn, title)
    except duckdb.Error as err:
        raise StorageUnavailableError(f"cannot update {db_path}: {err}") from err
    finally:
        conn.close()
