"""Tests for the reservation timeline."""

import pytest

from conftest import at
from scheduling import timeline
from scheduling.errors import ConflictError, NotFoundError


class TestTimeline:
    @pytest.fixture(autouse=True)
    def setup(self, session_factory, resource, member):
        self.session_factory = session_factory
        self.resource_id = resource.resource_id
        self.user_id = member.user_id
        self.booking_id = self.insert(at(10), at(11))

    def insert(self, start, end, resource_id=None):
        with self.session_factory() as db, db.begin():
            booking = timeline.insert(
                db,
                resource_id=resource_id or self.resource_id,
                start_time=start,
                end_time=end,
                owner_id=self.user_id,
                cost=0,
            )
            return booking.id

    def overlaps(self, start, end):
        with self.session_factory() as db:
            return timeline.overlaps(db, self.resource_id, start, end)

    @pytest.mark.parametrize(
        "start,end",
        [
            (at(10), at(11)),
            (at(9, 30), at(10, 30)),
            (at(10, 30), at(11, 30)),
            (at(10, 15), at(10, 45)),
            (at(9), at(12)),
        ],
    )
    def test_overlapping_intervals(self, start, end):
        assert self.overlaps(start, end)

    @pytest.mark.parametrize("start,end", [(at(9), at(10)), (at(11), at(12))])
    def test_touching_intervals_are_free(self, start, end):
        assert not self.overlaps(start, end)

    def test_other_resource_does_not_conflict(self, make_resource):
        other = make_resource(name="Drill Press")

        self.insert(at(10), at(11), resource_id=other.resource_id)

    def test_insert_rejects_overlap(self):
        with pytest.raises(ConflictError, match="slot no longer available"):
            self.insert(at(10, 30), at(11, 30))

    def test_adjacent_insert_succeeds(self):
        self.insert(at(11), at(12))

        assert self.overlaps(at(11), at(11, 30))

    def test_remove_frees_interval(self):
        with self.session_factory() as db, db.begin():
            timeline.remove(db, self.booking_id)

        assert not self.overlaps(at(10), at(11))

    def test_remove_missing_booking(self):
        with pytest.raises(NotFoundError):
            with self.session_factory() as db, db.begin():
                timeline.remove(db, "missing-booking")

    def test_query_returns_intersecting_bookings_in_order(self):
        self.insert(at(13), at(14))
        self.insert(at(8), at(9))

        with self.session_factory() as db:
            rows = timeline.query(db, self.resource_id, at(8, 30), at(13, 30))

        assert [(b.start_time, b.end_time) for b in rows] == [
            (at(8), at(9)),
            (at(10), at(11)),
            (at(13), at(14)),
        ]

    def test_query_excludes_touching_bookings(self):
        with self.session_factory() as db:
            assert timeline.query(db, self.resource_id, at(11), at(12)) == []

    def test_lock_resource(self):
        with self.session_factory() as db, db.begin():
            assert timeline.lock_resource(db, self.resource_id).id == self.resource_id
            assert timeline.lock_resource(db, "missing") is None
