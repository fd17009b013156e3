"""
Half-open time interval used for doctor and room reservations.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from clinicbook.core.domain import ValidationException, ValueObject


@dataclass(frozen=True)
class TimeInterval(ValueObject):
    """
    Interval [start, end) on the clinic timeline. Both bounds carry a timezone.

    Two intervals overlap iff ``a.start < b.end and b.start < a.end``.
    Zero-length intervals never overlap anything, so back-to-back visits
    (09:00-09:20 then 09:20-09:40) are both admitted.
    """

    start: datetime
    end: datetime

    def _validate(self) -> None:
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise ValidationException("Interval bounds must be datetimes", field="start")
        for name, value in (("start", self.start), ("end", self.end)):
            if value.tzinfo is None or value.utcoffset() is None:
                raise ValidationException(f"Interval {name} must be timezone-aware", field=name)
        if self.end < self.start:
            raise ValidationException(
                f"End {self.end.isoformat()} is before start {self.start.isoformat()}",
                field="end",
            )

    @classmethod
    def from_start(cls, start: datetime, end: datetime | None, default_minutes: int) -> "TimeInterval":
        """Build the occupied interval, applying the default duration when end is unknown."""
        if end is None:
            end = start + timedelta(minutes=default_minutes)
        return cls(start=start, end=end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def overlaps(self, other: "TimeInterval") -> bool:
        """Half-open overlap test."""
        if self.is_empty or other.is_empty:
            return False
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
