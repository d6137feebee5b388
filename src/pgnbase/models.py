"""Record and row types shared by the import and query paths."""

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Generic, NamedTuple, TypeVar

from pgnbase.speed import Speed

T = TypeVar("T")

# PGN uses "?" for unknown tag values, including player names.
UNKNOWN_PLAYER = "?"
UNKNOWN_DATE = "????.??.??"


class Outcome(IntEnum):
    """Game result; the integer values are stored in ``games.outcome``."""

    WHITE_WINS = 1
    BLACK_WINS = 2
    DRAW = 3

    @property
    def result(self) -> str:
        return _RESULTS_BY_OUTCOME[self]

    @classmethod
    def from_result(cls, value: str) -> "Outcome":
        """Decode a PGN result token (``1-0``, ``0-1`` or ``1/2-1/2``)."""
        try:
            return _OUTCOMES_BY_RESULT[value]
        except KeyError:
            raise ValueError(f"undecodable result: {value!r}") from None

    @classmethod
    def parse(cls, value: "str | int") -> "Outcome":
        """Accept a PGN result token, a stored code or a member name."""
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        if text in _OUTCOMES_BY_RESULT:
            return _OUTCOMES_BY_RESULT[text]
        aliases = {"white": cls.WHITE_WINS, "black": cls.BLACK_WINS, "draw": cls.DRAW}
        key = text.lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"unknown outcome: {value!r}") from None


_OUTCOMES_BY_RESULT = {
    "1-0": Outcome.WHITE_WINS,
    "0-1": Outcome.BLACK_WINS,
    "1/2-1/2": Outcome.DRAW,
}
_RESULTS_BY_OUTCOME = {outcome: result for result, outcome in _OUTCOMES_BY_RESULT.items()}


# ---------------------------------------------------------------------------
# Ingestion records
# ---------------------------------------------------------------------------


@dataclass
class PlayerSide:
    name: str | None = None
    rating: int | None = None


@dataclass
class GameRecord:
    """One parsed game, waiting to be written."""

    white: PlayerSide = field(default_factory=PlayerSide)
    black: PlayerSide = field(default_factory=PlayerSide)
    speed: Speed | None = None
    date: str | None = None
    site: str | None = None
    fen: str | None = None
    outcome: Outcome | None = None
    moves: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Stored rows
# ---------------------------------------------------------------------------


@dataclass
class Player:
    id: int
    name: str
    rating: int | None
    game_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Game:
    id: int
    white: int
    black: int
    white_rating: int | None
    black_rating: int | None
    date: str
    speed: Speed | None
    site: str | None
    fen: str | None
    outcome: Outcome
    moves: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["speed"] = self.speed.label if self.speed is not None else None
        data["outcome"] = self.outcome.result
        return data


class GameRow(NamedTuple):
    """A game joined with both of its players."""

    game: Game
    white: Player
    black: Player

    def to_dict(self) -> dict:
        return {
            "game": self.game.to_dict(),
            "white": self.white.to_dict(),
            "black": self.black.to_dict(),
        }


@dataclass
class QueryResponse(Generic[T]):
    data: T
    count: int | None = None


@dataclass
class PlayerGameInfo:
    won: int = 0
    lost: int = 0
    draw: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DatabaseInfo:
    title: str
    description: str
    player_count: int
    game_count: int
    storage_size: int

    def to_dict(self) -> dict:
        return asdict(self)
