"""Tests for half-open time ranges and UTC helpers."""

from datetime import datetime, timezone

import pytest

from conftest import at
from scheduling.errors import InvalidRangeError
from scheduling.timerange import TimeRange, minute_of_day, seconds_of_day, to_utc


class TestTimeRange:
    def test_overlapping_ranges(self):
        assert TimeRange(at(10), at(11, 30)).overlaps(TimeRange(at(11), at(12)))

    def test_contained_range_overlaps(self):
        assert TimeRange(at(9), at(12)).overlaps(TimeRange(at(10), at(11)))

    def test_touching_endpoints_do_not_overlap(self):
        first = TimeRange(at(9), at(10))
        second = TimeRange(at(10), at(11))

        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_contains_is_half_open(self):
        slot = TimeRange(at(9), at(10))

        assert slot.contains(at(9))
        assert slot.contains(at(9, 59))
        assert not slot.contains(at(10))

    @pytest.mark.parametrize("end", [at(10), at(9)])
    def test_end_must_follow_start(self, end):
        with pytest.raises(InvalidRangeError):
            TimeRange(at(10), end)

    def test_durations(self):
        span = TimeRange(at(10), at(11, 30))

        assert span.duration_minutes == 90
        assert span.duration_hours == 1.5


class TestUtcHelpers:
    def test_naive_datetime_is_read_in_zone(self):
        local = datetime(2030, 1, 15, 10, 0)

        assert to_utc(local, "Europe/Oslo") == at(9)

    def test_aware_datetime_is_converted(self):
        assert to_utc(at(9), "Europe/Oslo") == at(9)

    def test_unknown_zone_falls_back_to_utc(self):
        assert to_utc(datetime(2030, 1, 15, 10, 0), "Mars/Olympus_Mons") == at(10)

    def test_minute_of_day(self):
        assert minute_of_day(at(9, 30)) == 570
        assert minute_of_day(at(9, 30), "Europe/Oslo") == 630

    def test_seconds_of_day_keeps_sub_minute_precision(self):
        assert seconds_of_day(at(22).replace(second=30)) == 79230
        assert seconds_of_day(at(9, 30).replace(microsecond=500000), "Europe/Oslo") == 37800.5

    def test_result_is_utc(self):
        assert to_utc(datetime(2030, 1, 15, 10, 0)).tzinfo == timezone.utc
