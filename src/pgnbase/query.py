"""Filtered, sorted and paginated reads over a pgnbase database.

Filters are compiled once into a ``WHERE`` fragment plus parameters and the
same fragment feeds both the page query and the count query, so a returned
``count`` always matches the unpaginated result set.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

import duckdb

from pgnbase.database import open_readonly
from pgnbase.errors import InvalidQueryError, StorageUnavailableError
from pgnbase.logging_utils import get_logger
from pgnbase.models import Game, GameRow, Outcome, Player, PlayerGameInfo, QueryResponse
from pgnbase.speed import Speed

logger = get_logger(__name__)


class Sides(Enum):
    BLACK_WHITE = "BlackWhite"
    WHITE_BLACK = "WhiteBlack"
    ANY = "Any"


class Sort(Enum):
    DATE = "date"
    RATING = "rating"
    SPEED = "speed"
    OUTCOME = "outcome"


_ORDER_BY = {
    Sort.DATE: "g.date DESC NULLS LAST",
    Sort.RATING: "greatest(g.white_rating, g.black_rating) DESC NULLS LAST",
    Sort.SPEED: "g.speed DESC NULLS LAST",
    Sort.OUTCOME: "g.outcome DESC",
}

_GAME_COLUMNS = (
    "g.id, g.white, g.black, g.white_rating, g.black_rating, g.date, "
    "g.speed, g.site, g.fen, g.outcome, g.moves"
)
_PLAYER_COLUMNS = "{0}.id, {0}.name, {0}.rating, {0}.game_count"

_GAMES_FROM = """
    FROM games g
    JOIN players w ON g.white = w.id
    JOIN players b ON g.black = b.id
"""


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


def _page_bound(name: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise InvalidQueryError(f"{name} must be an integer, got {value!r}") from None
    if value < 0:
        raise InvalidQueryError(f"{name} must not be negative, got {value}")
    return value


def _rating_range(name: str, value: Any) -> tuple[int, int] | None:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidQueryError(f"{name} must be a (low, high) pair, got {value!r}")
    try:
        low, high = (int(v) for v in value)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"{name} must be a (low, high) pair, got {value!r}") from None
    if low > high:
        raise InvalidQueryError(f"{name} is empty: {low} > {high}")
    return low, high


def _enum_value(name: str, value: Any, parse):
    if value is None:
        return None
    try:
        return parse(value)
    except (TypeError, ValueError, KeyError):
        raise InvalidQueryError(f"invalid {name}: {value!r}") from None


def _parse_sides(value: Any) -> Sides:
    if isinstance(value, Sides):
        return value
    return Sides(value)


def _parse_sort(value: Any) -> Sort:
    if isinstance(value, Sort):
        return value
    return Sort(str(value).lower())


def _parse_speed(value: Any) -> Speed:
    if isinstance(value, Speed):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Speed(value)
    return Speed.parse(value)


def _parse_outcome(value: Any) -> Outcome:
    if isinstance(value, Outcome):
        return value
    return Outcome.parse(value)


def _check_keys(cls, data: Mapping[str, Any]) -> None:
    unknown = set(data) - {f.name for f in fields(cls)}
    if unknown:
        raise InvalidQueryError(f"unknown query fields: {', '.join(sorted(unknown))}")


def _flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise InvalidQueryError(f"{name} must be a boolean, got {value!r}")


def _optional_text(name: str, value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise InvalidQueryError(f"{name} must be a string, got {value!r}")


@dataclass
class GameQuery:
    """Declarative game search.

    ``player2``, ``range1``, ``range2`` and ``sides`` are accepted but not
    applied yet.
    """

    skip_count: bool = False
    player1: str | None = None
    player2: str | None = None
    range1: tuple[int, int] | None = None
    range2: tuple[int, int] | None = None
    sides: Sides | None = None
    speed: Speed | None = None
    outcome: Outcome | None = None
    limit: int | None = None
    offset: int | None = None
    sort: Sort | None = None

    def __post_init__(self):
        self.skip_count = _flag("skip_count", self.skip_count)
        self.player1 = _optional_text("player1", self.player1)
        self.player2 = _optional_text("player2", self.player2)
        self.range1 = _rating_range("range1", self.range1)
        self.range2 = _rating_range("range2", self.range2)
        self.sides = _enum_value("sides", self.sides, _parse_sides)
        self.speed = _enum_value("speed", self.speed, _parse_speed)
        self.outcome = _enum_value("outcome", self.outcome, _parse_outcome)
        self.limit = _page_bound("limit", self.limit)
        self.offset = _page_bound("offset", self.offset)
        self.sort = _enum_value("sort", self.sort, _parse_sort)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameQuery":
        """Build a query from untyped input such as decoded JSON."""
        _check_keys(cls, data)
        return cls(**data)


@dataclass
class PlayerQuery:
    skip_count: bool = False
    name: str | None = None
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self):
        self.skip_count = _flag("skip_count", self.skip_count)
        self.name = _optional_text("name", self.name)
        self.limit = _page_bound("limit", self.limit)
        self.offset = _page_bound("offset", self.offset)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerQuery":
        _check_keys(cls, data)
        return cls(**data)


# ---------------------------------------------------------------------------
# SQL composition
# ---------------------------------------------------------------------------


def _where(clauses: list[str]) -> str:
    return f"WHERE {' AND '.join(clauses)}" if clauses else ""


def _paginate(limit: int | None, offset: int | None, params: list) -> str:
    sql = ""
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    if offset is not None:
        sql += " OFFSET ?"
        params.append(offset)
    return sql


def game_filters(query: GameQuery) -> tuple[list[str], list]:
    """Return the WHERE clauses and parameters shared by data and count queries."""
    clauses: list[str] = []
    params: list = []

    if query.player1 is not None:
        clauses.append("w.name = ?")
        params.append(query.player1)

    if query.speed is not None:
        clauses.append("g.speed = ?")
        params.append(int(query.speed))

    if query.outcome is not None:
        clauses.append("g.outcome = ?")
        params.append(int(query.outcome))

    unapplied = [
        name for name in ("player2", "range1", "range2", "sides")
        if getattr(query, name) is not None
    ]
    if unapplied:
        logger.debug("Ignoring unsupported game filters: %s", ", ".join(unapplied))

    return clauses, params


def player_filters(query: PlayerQuery) -> tuple[list[str], list]:
    clauses: list[str] = []
    params: list = []
    if query.name:
        clauses.append("contains(lower(p.name), lower(?))")
        params.append(query.name)
    return clauses, params


def _player_from_row(row: tuple) -> Player:
    return Player(id=row[0], name=row[1], rating=row[2], game_count=row[3])


def _game_row(row: tuple) -> GameRow:
    speed = row[6]
    game = Game(
        id=row[0],
        white=row[1],
        black=row[2],
        white_rating=row[3],
        black_rating=row[4],
        date=row[5],
        speed=Speed(speed) if speed is not None else None,
        site=row[7],
        fen=row[8],
        outcome=Outcome(row[9]),
        moves=row[10],
    )
    return GameRow(game, _player_from_row(row[11:15]), _player_from_row(row[15:19]))


# ---------------------------------------------------------------------------
# Queries on an open connection
# ---------------------------------------------------------------------------


def query_games(
    conn: duckdb.DuckDBPyConnection, query: GameQuery
) -> QueryResponse[list[GameRow]]:
    clauses, params = game_filters(query)
    where = _where(clauses)

    count = None
    if not query.skip_count:
        count = conn.execute(f"SELECT COUNT(*) {_GAMES_FROM} {where}", params).fetchone()[0]

    order = [_ORDER_BY[query.sort]] if query.sort is not None else []
    order.append("g.id")

    data_params = list(params)
    sql = (
        f"SELECT {_GAME_COLUMNS}, {_PLAYER_COLUMNS.format('w')}, {_PLAYER_COLUMNS.format('b')}"
        f" {_GAMES_FROM} {where} ORDER BY {', '.join(order)}"
    )
    sql += _paginate(query.limit, query.offset, data_params)

    rows = conn.execute(sql, data_params).fetchall()
    return QueryResponse(data=[_game_row(row) for row in rows], count=count)


def query_players(
    conn: duckdb.DuckDBPyConnection, query: PlayerQuery
) -> QueryResponse[list[Player]]:
    clauses, params = player_filters(query)
    where = _where(clauses)

    count = None
    if not query.skip_count:
        count = conn.execute(f"SELECT COUNT(*) FROM players p {where}", params).fetchone()[0]

    data_params = list(params)
    sql = f"SELECT {_PLAYER_COLUMNS.format('p')} FROM players p {where} ORDER BY p.id"
    sql += _paginate(query.limit, query.offset, data_params)

    rows = conn.execute(sql, data_params).fetchall()
    return QueryResponse(data=[_player_from_row(row) for row in rows], count=count)


def player_game_info(conn: duckdb.DuckDBPyConnection, player_id: int) -> PlayerGameInfo:
    """Tally wins, losses and draws for a player across both colours.

    This scans every game the player took part in; there is no aggregate
    index behind it.
    """
    row = conn.execute(
        """
        SELECT
            COUNT(*) FILTER (WHERE (white = $id AND outcome = 1)
                                OR (black = $id AND outcome = 2)),
            COUNT(*) FILTER (WHERE (white = $id AND outcome = 2)
                                OR (black = $id AND outcome = 1)),
            COUNT(*) FILTER (WHERE outcome = 3)
        FROM games
        WHERE white = $id OR black = $id
        """,
        {"id": player_id},
    ).fetchone()
    return PlayerGameInfo(won=row[0], lost=row[1], draw=row[2])


# ---------------------------------------------------------------------------
# File-level entry points
# ---------------------------------------------------------------------------


def _run(db_path: Path, fn, *args):
    conn = open_readonly(Path(db_path))
    try:
        return fn(conn, *args)
    except duckdb.Error as err:
        raise StorageUnavailableError(f"query on {db_path} failed: {err}") from err
    finally:
        conn.close()


def get_games(db_path: Path, query: GameQuery | Mapping[str, Any]) -> QueryResponse[list[GameRow]]:
    """Run a game search against a database file."""
    if not isinstance(query, GameQuery):
        query = GameQuery.from_dict(query)
    return _run(db_path, query_games, query)


def get_players(db_path: Path, query: PlayerQuery | Mapping[str, Any]) -> QueryResponse[list[Player]]:
    """List players in a database file."""
    if not isinstance(query, PlayerQuery):
        query = PlayerQuery.from_dict(query)
    return _run(db_path, query_players, query)


def get_player_game_info(db_path: Path, player_id: int) -> PlayerGameInfo:
    if isinstance(player_id, bool) or not isinstance(player_id, int):
        raise InvalidQueryError(f"player id must be an integer, got {player_id!r}")
    return _run(db_path, player_game_info, player_id)
