"""Time-control classification into speed categories."""

import re
from enum import IntEnum

from pgnbase.errors import TimeControlError

NO_CLOCK = "-"

# Estimated number of moves used to weigh the increment.
MOVES_ESTIMATE = 40

_TIME_CONTROL = re.compile(r"(\d+)\+(\d+)", re.ASCII)


class Speed(IntEnum):
    """Speed categories, ordered from fastest to slowest.

    The integer values are stored in the ``games.speed`` column.
    """

    ULTRA_BULLET = 0
    BULLET = 1
    BLITZ = 2
    RAPID = 3
    CLASSICAL = 4
    CORRESPONDENCE = 5

    @property
    def label(self) -> str:
        return self.name.title().replace("_", "")

    @classmethod
    def parse(cls, text: str) -> "Speed":
        """Look up a category by name, e.g. ``"Blitz"`` or ``"ultra_bullet"``."""
        key = re.sub(r"[\s_-]", "", str(text)).lower()
        for speed in cls:
            if speed.name.replace("_", "").lower() == key:
                return speed
        raise ValueError(f"unknown speed: {text!r}")

    @classmethod
    def from_seconds_and_increment(cls, seconds: int, increment: int) -> "Speed":
        total = seconds + MOVES_ESTIMATE * increment

        if total < 30:
            return cls.ULTRA_BULLET
        elif total < 180:
            return cls.BULLET
        elif total < 480:
            return cls.BLITZ
        elif total < 1500:
            return cls.RAPID
        elif total < 21_600:
            return cls.CLASSICAL
        else:
            return cls.CORRESPONDENCE

    @classmethod
    def from_time_control(cls, value: str) -> "Speed":
        """Classify a PGN ``TimeControl`` value such as ``"300+3"`` or ``"-"``."""
        if value == NO_CLOCK:
            return cls.CORRESPONDENCE

        match = _TIME_CONTROL.fullmatch(value)
        if match is None:
            raise TimeControlError(f"invalid time control: {value!r}")
        return cls.from_seconds_and_increment(int(match.group(1)), int(match.group(2)))
