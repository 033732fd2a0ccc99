"""Resource catalog reads and resource administration."""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from scheduling import timeline
from scheduling.errors import ConflictError, NotFoundError
from scheduling.models import Booking, Resource, WaitingListEntry
from scheduling.rules import day_slots
from scheduling.schema import ResourceOut, ResourceUpsertRequest, SlotAvailability

logger = logging.getLogger(__name__)


def to_out(resource: Resource) -> ResourceOut:
    return ResourceOut(
        resource_id=resource.id,
        name=resource.name,
        description=resource.description,
        location=resource.location,
        cost_per_hour=resource.cost_per_hour,
        min_booking_minutes=resource.min_booking_minutes,
        max_booking_minutes=resource.max_booking_minutes,
        operating_start_minute=resource.operating_start_minute,
        operating_end_minute=resource.operating_end_minute,
    )


def get_resource(db: Session, resource_id: str) -> Resource:
    resource = db.get(Resource, resource_id)
    if resource is None:
        raise NotFoundError(f"Resource {resource_id} not found.")
    return resource


def list_resources(db: Session) -> list[Resource]:
    return list(db.scalars(select(Resource).order_by(Resource.name.asc())))


def availability(db: Session, resource: Resource, day: date, tz_name: str = "UTC") -> list[SlotAvailability]:
    slots = day_slots(resource, day, tz_name)
    if not slots:
        return []

    booked = timeline.query(db, resource.id, slots[0].start, slots[-1].end)
    return [
        SlotAvailability(
            slot_start=slot.start,
            slot_end=slot.end,
            available=not any(b.start_time < slot.end and b.end_time > slot.start for b in booked),
        )
        for slot in slots
    ]


def upsert_resource(db: Session, model: ResourceUpsertRequest) -> Resource:
    resource = db.get(Resource, model.resource_id) if model.resource_id else None
    if resource is None:
        resource = Resource(id=model.resource_id) if model.resource_id else Resource()
        db.add(resource)

    # existing bookings keep their credits_deducted snapshot
    resource.name = model.name
    resource.description = model.description
    resource.location = model.location
    resource.cost_per_hour = model.cost_per_hour
    resource.min_booking_minutes = model.min_booking_minutes
    resource.max_booking_minutes = model.max_booking_minutes
    resource.operating_start_minute = model.operating_start_minute
    resource.operating_end_minute = model.operating_end_minute

    db.flush()
    logger.info("Saved resource %s (%s)", resource.id, resource.name)
    return resource


def delete_resource(db: Session, resource_id: str, *, now: datetime) -> None:
    resource = timeline.lock_resource(db, resource_id)
    if resource is None:
        raise NotFoundError(f"Resource {resource_id} not found.")

    upcoming = db.scalar(
        select(Booking.id).where(Booking.resource_id == resource_id, Booking.end_time > now).limit(1)
    )
    if upcoming is not None:
        raise ConflictError("Resource has upcoming bookings; cancel them first.")

    db.execute(delete(WaitingListEntry).where(WaitingListEntry.resource_id == resource_id))
    db.execute(delete(Booking).where(Booking.resource_id == resource_id))
    db.delete(resource)
    db.flush()
    logger.info("Deleted resource %s", resource_id)
