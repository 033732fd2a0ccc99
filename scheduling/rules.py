"""Rule evaluation logic for resource bookings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from fractions import Fraction

from scheduling.errors import InvalidRangeError
from scheduling.models import Resource
from scheduling.timerange import TimeRange, seconds_of_day, to_local, to_utc


@dataclass
class RuleCheckResult:
    allowed: bool
    reason: str | None = None


def _clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class RuleEngine:
    @staticmethod
    def check_duration(requested: TimeRange, resource: Resource) -> RuleCheckResult:
        duration = requested.duration_minutes

        if duration < resource.min_booking_minutes:
            return RuleCheckResult(
                allowed=False,
                reason=f"Booking must last at least {resource.min_booking_minutes} minutes.",
            )

        if duration > resource.max_booking_minutes:
            return RuleCheckResult(
                allowed=False,
                reason=f"Booking must not exceed {resource.max_booking_minutes} minutes.",
            )

        return RuleCheckResult(allowed=True)

    @staticmethod
    def check_operating_window(requested: TimeRange, resource: Resource, tz_name: str = "UTC") -> RuleCheckResult:
        """Both endpoints must fall inside the window of one local day.

        A booking may start at opening time and end exactly at closing time.
        Bookings crossing local midnight are rejected outright rather than
        checking each endpoint against its own calendar day.
        """
        opens = resource.operating_start_minute
        closes = resource.operating_end_minute
        start_second = seconds_of_day(requested.start, tz_name)
        end_second = seconds_of_day(requested.end, tz_name)

        same_day = to_local(requested.start, tz_name).date() == to_local(requested.end, tz_name).date()

        # compared at full precision: 22:00:30 is past a 22:00 close
        if (
            not same_day
            or not (opens * 60 <= start_second < closes * 60)
            or not (opens * 60 < end_second <= closes * 60)
        ):
            return RuleCheckResult(
                allowed=False,
                reason=f"Requested time is outside operating hours ({_clock(opens)} - {_clock(closes)}).",
            )

        return RuleCheckResult(allowed=True)

    @staticmethod
    def compute_cost(requested: TimeRange, resource: Resource) -> int:
        microseconds = (requested.end - requested.start) // timedelta(microseconds=1)
        return math.ceil(Fraction(microseconds * resource.cost_per_hour, 3_600_000_000))

    @classmethod
    def validate(cls, requested: TimeRange, resource: Resource, *, tz_name: str = "UTC") -> None:
        for check in (
            cls.check_duration(requested, resource),
            cls.check_operating_window(requested, resource, tz_name),
        ):
            if not check.allowed:
                raise InvalidRangeError(check.reason)


def split_into_slots(*, start_time: datetime, end_time: datetime, slot_length_minutes: int) -> list[tuple[datetime, datetime]]:
    slots: list[tuple[datetime, datetime]] = []
    cursor = start_time
    slot_delta = timedelta(minutes=slot_length_minutes)
    while cursor < end_time:
        next_cursor = cursor + slot_delta
        slots.append((cursor, next_cursor))
        cursor = next_cursor
    return slots


def day_slots(resource: Resource, day: date, tz_name: str = "UTC") -> list[TimeRange]:
    """Bookable slots of one operating day, as UTC ranges."""
    midnight = datetime.combine(day, datetime.min.time())
    local_open = midnight + timedelta(minutes=resource.operating_start_minute)
    local_close = midnight + timedelta(minutes=resource.operating_end_minute)
    return [
        TimeRange(to_utc(slot_start, tz_name), to_utc(slot_end, tz_name))
        for slot_start, slot_end in split_into_slots(
            start_time=local_open,
            end_time=local_close,
            slot_length_minutes=resource.min_booking_minutes,
        )
    ]
