"""Credit balance operations.

Both mutations run as single UPDATE statements inside the caller's
transaction, so a concurrent writer can never act on a stale balance.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from scheduling.errors import InsufficientCreditsError, InvalidAmountError, NotFoundError
from scheduling.models import User

logger = logging.getLogger(__name__)


def _require_non_negative(amount: int) -> None:
    if amount < 0:
        raise InvalidAmountError(f"Credit amount must not be negative (got {amount}).")


def balance(db: Session, user_id: str) -> int:
    current = db.scalar(select(User.credit_balance).where(User.id == user_id))
    if current is None:
        raise NotFoundError(f"User {user_id} not found.")
    return current


def debit(db: Session, user_id: str, amount: int) -> None:
    _require_non_negative(amount)
    if amount == 0:
        return

    result = db.execute(
        update(User)
        .where(User.id == user_id, User.credit_balance >= amount)
        .values(credit_balance=User.credit_balance - amount)
    )
    if result.rowcount == 1:
        logger.debug("Debited %s credits from user %s", amount, user_id)
        return

    current = balance(db, user_id)
    raise InsufficientCreditsError(
        f"Insufficient credits: {amount} required, {current} available."
    )


def credit(db: Session, user_id: str, amount: int) -> None:
    _require_non_negative(amount)

    result = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(credit_balance=User.credit_balance + amount)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"User {user_id} not found.")
    logger.debug("Credited %s credits to user %s", amount, user_id)
