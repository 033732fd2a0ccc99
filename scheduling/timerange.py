"""Half-open time intervals and UTC helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scheduling.errors import InvalidRangeError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _zone(tz_name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def to_utc(dt: datetime, tz_name: str | None = "UTC") -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=_zone(tz_name)).astimezone(timezone.utc)


def to_local(dt: datetime, tz_name: str | None = "UTC") -> datetime:
    return to_utc(dt).astimezone(_zone(tz_name))


def minute_of_day(dt: datetime, tz_name: str | None = "UTC") -> int:
    local = to_local(dt, tz_name)
    return local.hour * 60 + local.minute


def seconds_of_day(dt: datetime, tz_name: str | None = "UTC") -> float:
    """Seconds since local midnight, keeping sub-minute precision."""
    local = to_local(dt, tz_name)
    return local.hour * 3600 + local.minute * 60 + local.second + local.microsecond / 1_000_000


@dataclass(frozen=True)
class TimeRange:
    """[start, end): start inclusive, end exclusive."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidRangeError("End time must be after start time.")

    @classmethod
    def from_utc(cls, start: datetime, end: datetime) -> "TimeRange":
        return cls(to_utc(start), to_utc(end))

    def overlaps(self, other: "TimeRange") -> bool:
        # touching endpoints do not conflict
        return self.start < other.end and self.end > other.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600
