"""Waiting list for occupied slots.

Entries never reserve anything: a slot is free or taken only according to the
timeline. An entry is consumed at most once, by the first cancellation that
frees a range covering its slot start.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduling.errors import DuplicateEntryError, NotFoundError
from scheduling.models import Resource, User, WaitingListEntry
from scheduling.schema import WaitlistEntryOut

logger = logging.getLogger(__name__)


def to_out(entry: WaitingListEntry) -> WaitlistEntryOut:
    return WaitlistEntryOut(
        entry_id=entry.id,
        resource_id=entry.resource_id,
        user_id=entry.user_id,
        slot_start_time=entry.slot_start_time,
        created_at=entry.created_at,
    )


def join(
    db: Session,
    *,
    resource_id: str,
    user_id: str,
    slot_start: datetime,
    created_at: datetime | None = None,
) -> WaitingListEntry:
    if db.get(Resource, resource_id) is None:
        raise NotFoundError(f"Resource {resource_id} not found.")
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found.")

    existing = db.scalar(
        select(WaitingListEntry.id).where(
            WaitingListEntry.resource_id == resource_id,
            WaitingListEntry.user_id == user_id,
            WaitingListEntry.slot_start_time == slot_start,
        )
    )
    if existing is not None:
        raise DuplicateEntryError("You are already on the waiting list for this slot.")

    entry = WaitingListEntry(resource_id=resource_id, user_id=user_id, slot_start_time=slot_start)
    if created_at is not None:
        entry.created_at = created_at
    db.add(entry)
    try:
        db.flush()
    except IntegrityError as exc:
        # lost a race against an identical join
        raise DuplicateEntryError("You are already on the waiting list for this slot.") from exc

    logger.info("User %s joined waiting list for resource %s at %s", user_id, resource_id, slot_start.isoformat())
    return entry


def pop_first_for_slot_range(
    db: Session,
    resource_id: str,
    range_start: datetime,
    range_end: datetime,
) -> WaitlistEntryOut | None:
    stmt = (
        select(WaitingListEntry)
        .where(
            WaitingListEntry.resource_id == resource_id,
            WaitingListEntry.slot_start_time >= range_start,
            WaitingListEntry.slot_start_time < range_end,
        )
        .order_by(WaitingListEntry.created_at.asc(), WaitingListEntry.id.asc())
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    entry = db.scalar(stmt)
    if entry is None:
        return None

    popped = to_out(entry)
    db.delete(entry)
    db.flush()
    return popped


def entries_for_resource(db: Session, resource_id: str) -> list[WaitingListEntry]:
    stmt = (
        select(WaitingListEntry)
        .where(WaitingListEntry.resource_id == resource_id)
        .order_by(WaitingListEntry.slot_start_time.asc(), WaitingListEntry.created_at.asc(), WaitingListEntry.id.asc())
    )
    return list(db.scalars(stmt))
