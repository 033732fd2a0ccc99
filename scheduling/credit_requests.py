"""Credit top-up requests and their approval."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from scheduling import ledger
from scheduling.errors import AlreadyActionedError, InvalidAmountError, NotFoundError
from scheduling.models import CreditRequest, User
from scheduling.schema import CreditRequestOut, CreditRequestStatus

logger = logging.getLogger(__name__)


def to_out(request: CreditRequest) -> CreditRequestOut:
    return CreditRequestOut(
        request_id=request.id,
        user_id=request.user_id,
        amount=request.amount,
        reason=request.reason,
        status=CreditRequestStatus(request.status),
        created_at=request.created_at,
        actioned_at=request.actioned_at,
    )


def submit(db: Session, *, user_id: str, amount: int, reason: str) -> CreditRequest:
    if amount <= 0:
        raise InvalidAmountError("A positive amount is required.")
    if not reason or not reason.strip():
        raise InvalidAmountError("A reason is required.")
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found.")

    request = CreditRequest(
        user_id=user_id,
        amount=amount,
        reason=reason.strip(),
        status=CreditRequestStatus.PENDING.value,
    )
    db.add(request)
    db.flush()
    db.refresh(request)
    return request


def list_pending(db: Session) -> list[CreditRequest]:
    stmt = (
        select(CreditRequest)
        .where(CreditRequest.status == CreditRequestStatus.PENDING.value)
        .order_by(CreditRequest.created_at.asc(), CreditRequest.id.asc())
    )
    return list(db.scalars(stmt))


def _transition(db: Session, request_id: str, status: CreditRequestStatus, now: datetime) -> CreditRequest:
    # the status guard lives in the UPDATE itself, so two approvers cannot both win
    result = db.execute(
        update(CreditRequest)
        .where(
            CreditRequest.id == request_id,
            CreditRequest.status == CreditRequestStatus.PENDING.value,
        )
        .values(status=status.value, actioned_at=now)
    )
    if result.rowcount != 1:
        if db.get(CreditRequest, request_id) is None:
            raise NotFoundError(f"Credit request {request_id} not found.")
        raise AlreadyActionedError("Request already actioned.")

    request = db.get(CreditRequest, request_id)
    db.refresh(request)
    return request


def approve(db: Session, request_id: str, *, now: datetime) -> CreditRequest:
    request = _transition(db, request_id, CreditRequestStatus.APPROVED, now)
    ledger.credit(db, request.user_id, request.amount)
    logger.info("Approved credit request %s: +%s credits for user %s", request.id, request.amount, request.user_id)
    return request


def deny(db: Session, request_id: str, *, now: datetime) -> CreditRequest:
    request = _transition(db, request_id, CreditRequestStatus.DENIED, now)
    logger.info("Denied credit request %s", request.id)
    return request
