"""Core booking execution.

Every compound operation (create, cancel, credit approval) runs inside one
``session.begin()`` block: an exception anywhere in it rolls back the ledger
and the timeline together.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Iterator

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from scheduling import catalog, credit_requests, ledger, timeline, waitlist
from scheduling.accounts import get_user, to_out as user_out
from scheduling.errors import (
    AlreadyStartedError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    SchedulingError,
    StorageError,
)
from scheduling.models import Booking, Resource, User
from scheduling.notifier import LoggingNotifier, Notifier
from scheduling.rules import RuleEngine
from scheduling.schema import (
    BookingOut,
    BookingWindowItem,
    CancellationResult,
    CreditRequestOut,
    ResourceAvailabilityResponse,
    ResourceOut,
    Role,
    UserBookingItem,
    UserOut,
    WaitlistEntryOut,
)
from scheduling.timerange import TimeRange, to_utc, utc_now

logger = logging.getLogger(__name__)


@contextmanager
def transaction(session_factory: sessionmaker, action: str) -> Iterator[Session]:
    with session_factory() as db:
        try:
            with db.begin():
                yield db
        except SchedulingError as exc:
            logger.info("Rejected %s: %s", action, exc)
            raise
        except SQLAlchemyError as exc:
            logger.exception("Database error while %s", action)
            raise StorageError(f"Database error while {action}.") from exc


def _booking_out(booking: Booking) -> BookingOut:
    return BookingOut(
        booking_id=booking.id,
        resource_id=booking.resource_id,
        user_id=booking.user_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
        credits_deducted=booking.credits_deducted,
        created_at=booking.created_at,
    )


class BookingEngine:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        tz_name: str = "UTC",
    ) -> None:
        self._session_factory = session_factory
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._tz_name = tz_name

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def create_booking(self, *, resource_id: str, user_id: str, start_time: datetime, end_time: datetime) -> BookingOut:
        with transaction(self._session_factory, "creating booking") as db:
            resource = timeline.lock_resource(db, resource_id)
            if resource is None:
                raise NotFoundError(f"Resource {resource_id} not found.")
            user = db.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found.")

            requested = TimeRange(to_utc(start_time), to_utc(end_time))
            RuleEngine.validate(requested, resource, tz_name=self._tz_name)

            if timeline.overlaps(db, resource.id, requested.start, requested.end):
                raise ConflictError(timeline.SLOT_TAKEN_MESSAGE)

            if user.role_enum.has_admin_privilege:
                cost = 0
            else:
                cost = RuleEngine.compute_cost(requested, resource)
                ledger.debit(db, user.id, cost)

            booking = timeline.insert(
                db,
                resource_id=resource.id,
                start_time=requested.start,
                end_time=requested.end,
                owner_id=user.id,
                cost=cost,
            )
            db.refresh(booking)
            result = _booking_out(booking)

        logger.info(
            "Booked resource %s for user %s from %s to %s (%s credits)",
            result.resource_id,
            result.user_id,
            result.start_time.isoformat(),
            result.end_time.isoformat(),
            result.credits_deducted,
        )
        return result

    def cancel_booking(self, *, booking_id: str, requester_id: str, requester_role: Role | str) -> CancellationResult:
        role = Role(requester_role)
        with transaction(self._session_factory, "cancelling booking") as db:
            booking = db.get(Booking, booking_id, with_for_update=True)
            if booking is None:
                raise NotFoundError(f"Booking {booking_id} not found.")
            if booking.user_id != requester_id and not role.has_admin_privilege:
                raise PermissionDeniedError("Booking does not belong to this user.")
            if booking.start_time <= self._clock():
                raise AlreadyStartedError("Booking has already started and can no longer be cancelled.")

            timeline.lock_resource(db, booking.resource_id)
            cancelled = _booking_out(booking)
            ledger.credit(db, booking.user_id, booking.credits_deducted)
            timeline.remove(db, booking.id)

        logger.info(
            "Cancelled booking %s; refunded %s credits to user %s",
            cancelled.booking_id,
            cancelled.credits_deducted,
            cancelled.user_id,
        )
        notified = self._hand_off_waitlist(cancelled)
        return CancellationResult(
            booking=cancelled,
            refunded_credits=cancelled.credits_deducted,
            notified_entry=notified,
        )

    def _hand_off_waitlist(self, cancelled: BookingOut) -> WaitlistEntryOut | None:
        # runs after the cancellation committed; an entry left behind here is
        # picked up by the next cancellation covering its slot
        try:
            with transaction(self._session_factory, "popping waiting list") as db:
                entry = waitlist.pop_first_for_slot_range(
                    db,
                    cancelled.resource_id,
                    cancelled.start_time,
                    cancelled.end_time,
                )
        except StorageError:
            logger.warning("Waiting list hand-off deferred for booking %s", cancelled.booking_id)
            return None

        if entry is None:
            return None

        try:
            self._notifier.notify_slot_available(entry.user_id, entry.resource_id, entry.slot_start_time)
        except Exception:
            logger.exception("Notifier failed for waiting list entry %s", entry.entry_id)
        return entry

    def bookings_in_window(self, resource_id: str, window_start: datetime, window_end: datetime) -> list[BookingWindowItem]:
        window = TimeRange(to_utc(window_start), to_utc(window_end))
        with transaction(self._session_factory, "reading timeline") as db:
            catalog.get_resource(db, resource_id)
            return [
                BookingWindowItem(start_time=booking.start_time, end_time=booking.end_time)
                for booking in timeline.query(db, resource_id, window.start, window.end)
            ]

    def upcoming_bookings(self, user_id: str) -> list[UserBookingItem]:
        with transaction(self._session_factory, "listing bookings") as db:
            stmt = (
                select(Booking, Resource)
                .join(Resource, Resource.id == Booking.resource_id)
                .where(Booking.user_id == user_id, Booking.start_time >= self._clock())
                .order_by(Booking.start_time.asc())
            )
            return [
                UserBookingItem(
                    **_booking_out(booking).model_dump(),
                    resource_name=resource.name,
                    location=resource.location,
                )
                for booking, resource in db.execute(stmt).all()
            ]

    # ------------------------------------------------------------------
    # Catalog reads
    # ------------------------------------------------------------------

    def list_resources(self) -> list[ResourceOut]:
        with transaction(self._session_factory, "listing resources") as db:
            return [catalog.to_out(resource) for resource in catalog.list_resources(db)]

    def availability(self, resource_id: str, day: date) -> ResourceAvailabilityResponse:
        with transaction(self._session_factory, "reading availability") as db:
            resource = catalog.get_resource(db, resource_id)
            return ResourceAvailabilityResponse(
                resource_id=resource.id,
                date=day,
                slot_length_minutes=resource.min_booking_minutes,
                slots=catalog.availability(db, resource, day, self._tz_name),
            )

    # ------------------------------------------------------------------
    # Waiting list
    # ------------------------------------------------------------------

    def join_waitlist(self, *, resource_id: str, user_id: str, slot_start: datetime) -> WaitlistEntryOut:
        with transaction(self._session_factory, "joining waiting list") as db:
            entry = waitlist.join(
                db,
                resource_id=resource_id,
                user_id=user_id,
                slot_start=to_utc(slot_start),
                created_at=self._clock(),
            )
            return waitlist.to_out(entry)

    def waitlist_entries(self, resource_id: str) -> list[WaitlistEntryOut]:
        with transaction(self._session_factory, "listing waiting list") as db:
            catalog.get_resource(db, resource_id)
            return [waitlist.to_out(entry) for entry in waitlist.entries_for_resource(db, resource_id)]

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    def get_account(self, user_id: str) -> UserOut:
        with transaction(self._session_factory, "reading account") as db:
            return user_out(get_user(db, user_id))

    def submit_credit_request(self, *, user_id: str, amount: int, reason: str) -> CreditRequestOut:
        with transaction(self._session_factory, "submitting credit request") as db:
            request = credit_requests.submit(db, user_id=user_id, amount=amount, reason=reason)
            return credit_requests.to_out(request)

    def pending_credit_requests(self) -> list[CreditRequestOut]:
        with transaction(self._session_factory, "listing credit requests") as db:
            return [credit_requests.to_out(request) for request in credit_requests.list_pending(db)]

    def approve_credit_request(self, request_id: str) -> CreditRequestOut:
        with transaction(self._session_factory, "approving credit request") as db:
            return credit_requests.to_out(credit_requests.approve(db, request_id, now=self._clock()))

    def deny_credit_request(self, request_id: str) -> CreditRequestOut:
        with transaction(self._session_factory, "denying credit request") as db:
            return credit_requests.to_out(credit_requests.deny(db, request_id, now=self._clock()))
