"""Stream PGN archives into a pgnbase database.

The archive is read one game at a time through python-chess's visitor API.
``GameImporter`` turns header and move callbacks into ``GameRecord`` values,
drops the games that cannot be indexed, and hands full batches to
``persist_batch``, which writes each batch in a single transaction.
"""

import asyncio
import bz2
import io
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import chess
import chess.pgn
import duckdb
import zstandard

from pgnbase.config import DEFAULT_BATCH_SIZE, load_settings
from pgnbase.database import (
    configure_bulk_load,
    database_path_for,
    get_connection,
    get_or_create_player,
    increment_game_count,
    init_db,
    insert_game,
    remove_database,
)
from pgnbase.errors import HeaderError, ImportFailedError
from pgnbase.logging_utils import get_logger
from pgnbase.models import UNKNOWN_DATE, UNKNOWN_PLAYER, GameRecord, Outcome, PlayerSide
from pgnbase.speed import Speed

logger = get_logger(__name__)

NO_RATING = "?"
BOT_TITLE = "BOT"


@dataclass
class ImportStats:
    games_read: int = 0
    games_imported: int = 0
    games_skipped: int = 0
    batches: int = 0


# ---------------------------------------------------------------------------
# Batch persistence
# ---------------------------------------------------------------------------


@dataclass
class _PlayerTally:
    games: int = 0
    rating: int | None = None


def persist_batch(conn: duckdb.DuckDBPyConnection, games: Sequence[GameRecord]) -> None:
    """Write a batch of games in one transaction, then update player counters.

    Any storage error inside the transaction rolls the batch back and is
    re-raised. Counter updates run afterwards and are best-effort.
    """
    player_ids: dict[str, int] = {}
    tallies: dict[int, _PlayerTally] = {}

    def resolve(side: PlayerSide) -> int:
        name = side.name or UNKNOWN_PLAYER
        if name not in player_ids:
            player_ids[name] = get_or_create_player(conn, name)
        return player_ids[name]

    conn.begin()
    try:
        for game in games:
            white_id = resolve(game.white)
            black_id = resolve(game.black)
            insert_game(conn, game, white_id, black_id, game.date or UNKNOWN_DATE)

            for player_id, side in {white_id: game.white, black_id: game.black}.items():
                tally = tallies.setdefault(player_id, _PlayerTally())
                tally.games += 1
                if side.rating is not None:
                    tally.rating = side.rating
        conn.commit()
    except duckdb.Error:
        conn.rollback()
        raise

    for player_id, tally in tallies.items():
        increment_game_count(conn, player_id, tally.games, tally.rating)


# ---------------------------------------------------------------------------
# Visitor
# ---------------------------------------------------------------------------


def _parse_rating(key: str, value: str) -> int | None:
    if value == NO_RATING:
        return None
    try:
        return int(value)
    except ValueError:
        raise HeaderError(f"invalid {key}: {value!r}") from None


class GameImporter(chess.pgn.BaseVisitor[bool]):
    """Collects games from ``chess.pgn.read_game`` and writes them in batches.

    The same instance is reused for every game of a stream. ``result()``
    reports whether the last game was kept. Call ``flush()`` once the stream
    is exhausted to write the final partial batch.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection, batch_size: int = DEFAULT_BATCH_SIZE):
        self.conn = conn
        self.batch_size = batch_size
        self.current = GameRecord()
        self.skip = False
        self.skip_reason: str | None = None
        self.batch: list[GameRecord] = []
        self.stats = ImportStats()

    def _mark_skip(self, reason: str) -> None:
        if not self.skip:
            self.skip = True
            self.skip_reason = reason

    def begin_game(self) -> None:
        self.current = GameRecord()
        self.skip = False
        self.skip_reason = None

    def visit_header(self, tagname: str, tagvalue: str) -> None:
        game = self.current

        if tagname == "White":
            game.white.name = tagvalue or None
        elif tagname == "Black":
            game.black.name = tagvalue or None
        elif tagname == "WhiteElo":
            game.white.rating = _parse_rating(tagname, tagvalue)
        elif tagname == "BlackElo":
            game.black.rating = _parse_rating(tagname, tagvalue)
        elif tagname == "TimeControl":
            game.speed = Speed.from_time_control(tagvalue)
        elif tagname in ("Date", "UTCDate"):
            if game.date is None:
                game.date = tagvalue
        elif tagname in ("WhiteTitle", "BlackTitle"):
            if tagvalue == BOT_TITLE:
                self._mark_skip("bot player")
        elif tagname == "Site":
            game.site = tagvalue
        elif tagname == "Result":
            try:
                game.outcome = Outcome.from_result(tagvalue)
            except ValueError:
                self._mark_skip(f"result {tagvalue!r}")
        elif tagname == "FEN":
            game.fen = None if tagvalue == chess.STARTING_FEN else tagvalue

    def end_headers(self):
        if self.current.white.rating is None or self.current.black.rating is None:
            self._mark_skip("missing rating")
        if self.current.outcome is None:
            self._mark_skip("missing result")
        return chess.pgn.SKIP if self.skip else None

    def visit_move(self, board: chess.Board, move: chess.Move) -> None:
        self.current.moves.append(board.san(move))

    def begin_variation(self):
        # stay in the mainline
        return chess.pgn.SKIP

    def handle_error(self, error: Exception) -> None:
        logger.warning("Skipping game with unreadable movetext: %s", error)
        self._mark_skip(f"movetext error: {error}")

    def end_game(self) -> None:
        self.stats.games_read += 1
        if self.skip:
            self.stats.games_skipped += 1
            logger.debug("Skipped game %d: %s", self.stats.games_read, self.skip_reason)
        else:
            self.batch.append(self.current)
            self.stats.games_imported += 1
        self.current = GameRecord()

        if len(self.batch) >= self.batch_size:
            self.flush()

    def result(self) -> bool:
        return not self.skip

    def flush(self) -> None:
        """Write any buffered games."""
        if not self.batch:
            return
        batch, self.batch = self.batch, []
        persist_batch(self.conn, batch)
        self.stats.batches += 1
        logger.debug("Wrote batch %d (%d games)", self.stats.batches, len(batch))


def ingest(
    handle: TextIO,
    conn: duckdb.DuckDBPyConnection,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> ImportStats:
    """Import every game in a PGN text stream into an initialised database."""
    importer = GameImporter(conn, batch_size)
    while chess.pgn.read_game(handle, Visitor=lambda: importer) is not None:
        pass
    importer.flush()
    return importer.stats


# ---------------------------------------------------------------------------
# Archive entry points
# ---------------------------------------------------------------------------


class ZstdFrameReader(io.RawIOBase):
    """Raw stream of decompressed zstd data.

    Concatenated frames are read in order. Running out of input before the
    last frame is complete raises ``zstandard.ZstdError``.
    """

    CHUNK_SIZE = 1 << 20

    def __init__(self, fh):
        self._fh = fh
        self._dctx = zstandard.ZstdDecompressor()
        self._dobj = self._dctx.decompressobj()
        self._buffer = b""
        self._pos = 0
        self._exhausted = False

    def readable(self):
        return True

    def readinto(self, b):
        while self._pos >= len(self._buffer) and not self._exhausted:
            self._fill()
        data = memoryview(self._buffer)[self._pos:self._pos + len(b)]
        n = len(data)
        b[:n] = data
        self._pos += n
        return n

    def _fill(self):
        chunk = self._fh.read(self.CHUNK_SIZE)
        if not chunk:
            self._exhausted = True
            if not self._dobj.eof:
                raise zstandard.ZstdError("compressed stream ended before the end of the frame")
            return
        out = []
        while chunk:
            if self._dobj.eof:
                self._dobj = self._dctx.decompressobj()
            out.append(self._dobj.decompress(chunk))
            chunk = self._dobj.unused_data if self._dobj.eof else b""
        self._buffer = b"".join(out)
        self._pos = 0


@contextmanager
def open_pgn(path: Path) -> Iterator[TextIO]:
    """Open a PGN archive as strict UTF-8 text, decompressing by extension."""
    suffix = path.suffix.lower()

    if suffix == ".bz2":
        with bz2.open(path, "rt", encoding="utf-8", errors="strict") as text:
            yield text
    elif suffix == ".zst":
        with open(path, "rb") as fh, io.TextIOWrapper(
            io.BufferedReader(ZstdFrameReader(fh)), encoding="utf-8", errors="strict"
        ) as text:
            yield text
    else:
        with open(path, encoding="utf-8", errors="strict") as text:
            yield text


def import_archive(
    source: Path,
    data_dir: Path | None = None,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> tuple[Path, ImportStats]:
    """Convert a PGN archive into ``<data_dir>/db/<name>.duckdb``.

    An existing database at the destination is replaced. Any fatal error
    removes the partial file and raises ImportFailedError.
    """
    source = Path(source)
    db_dir = (Path(data_dir) / "db") if data_dir is not None else load_settings().db_dir
    destination = database_path_for(source, db_dir)

    if not source.is_file():
        raise ImportFailedError(f"archive not found: {source}")

    remove_database(destination)
    logger.info("Importing %s into %s", source, destination)

    conn = None
    try:
        conn = get_connection(destination)
        configure_bulk_load(conn)
        init_db(conn)
        with open_pgn(source) as handle:
            stats = ingest(handle, conn, batch_size=batch_size)
    except (
        HeaderError, UnicodeDecodeError, EOFError, OSError, zstandard.ZstdError, duckdb.Error,
    ) as err:
        if conn is not None:
            conn.close()
            conn = None
        remove_database(destination)
        raise ImportFailedError(f"import of {source} failed: {err}") from err
    finally:
        if conn is not None:
            conn.close()

    logger.info(
        "Imported %d of %d games (%d skipped) in %d batches",
        stats.games_imported, stats.games_read, stats.games_skipped, stats.batches,
    )
    return destination, stats


async def import_archive_async(
    source: Path,
    data_dir: Path | None = None,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> tuple[Path, ImportStats]:
    """Run ``import_archive`` on a worker thread so the event loop stays free."""
    return await asyncio.to_thread(import_archive, source, data_dir, batch_size=batch_size)
