"""Per-resource booking timeline: conflict detection and interval storage."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Select, delete, func, select
from sqlalchemy.orm import Session

from scheduling.errors import ConflictError, NotFoundError
from scheduling.models import Booking, Resource

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "slot no longer available"


def overlap_query(*, resource_id: str, start_time: datetime, end_time: datetime) -> Select:
    return select(Booking).where(
        Booking.resource_id == resource_id,
        Booking.start_time < end_time,
        Booking.end_time > start_time,
    )


def lock_resource(db: Session, resource_id: str) -> Resource | None:
    """Load the resource row FOR UPDATE; serializes writers of its booking set."""
    return db.scalar(select(Resource).where(Resource.id == resource_id).with_for_update())


def overlaps(db: Session, resource_id: str, start_time: datetime, end_time: datetime) -> bool:
    stmt = (
        select(func.count())
        .select_from(Booking)
        .where(
            Booking.resource_id == resource_id,
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        )
    )
    return int(db.scalar(stmt) or 0) > 0


def insert(
    db: Session,
    *,
    resource_id: str,
    start_time: datetime,
    end_time: datetime,
    owner_id: str,
    cost: int,
) -> Booking:
    if overlaps(db, resource_id, start_time, end_time):
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    booking = Booking(
        resource_id=resource_id,
        user_id=owner_id,
        start_time=start_time,
        end_time=end_time,
        credits_deducted=cost,
    )
    db.add(booking)
    db.flush()
    logger.debug("Inserted booking %s on resource %s", booking.id, resource_id)
    return booking


def remove(db: Session, booking_id: str) -> None:
    result = db.execute(delete(Booking).where(Booking.id == booking_id))
    if result.rowcount != 1:
        raise NotFoundError(f"Booking {booking_id} not found.")
    logger.debug("Removed booking %s", booking_id)


def query(db: Session, resource_id: str, window_start: datetime, window_end: datetime) -> list[Booking]:
    stmt = overlap_query(
        resource_id=resource_id,
        start_time=window_start,
        end_time=window_end,
    ).order_by(Booking.start_time.asc())
    return list(db.scalars(stmt))
