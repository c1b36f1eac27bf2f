from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time

from .errors import InvalidRange

_NOON = time(12, 0)
_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class DateRange:
    """Half-open stay interval ``[start, end)``; ``end`` is the check-out day."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidRange("end date must be after start date")

    def overlaps(self, other: DateRange) -> bool:
        return overlaps(self, other)

    def nights(self) -> int:
        return nights(self)


def overlaps(a: DateRange, b: DateRange) -> bool:
    # Touching endpoints do not overlap: check-out day X frees the room for check-in on X.
    return a.start < b.end and b.start < a.end


def nights(date_range: DateRange) -> int:
    # Anchored at noon so a DST shift never pushes the difference across a day boundary.
    start = datetime.combine(date_range.start, _NOON)
    end = datetime.combine(date_range.end, _NOON)
    return math.ceil((end - start).total_seconds() / _SECONDS_PER_DAY)
