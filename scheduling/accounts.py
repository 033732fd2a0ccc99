"""User records as seen by the scheduler.

Passwords and tokens belong to the authentication layer; only identity, role
and balance live here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduling.errors import DuplicateEntryError, NotFoundError
from scheduling.models import User
from scheduling.schema import Role, UserOut

logger = logging.getLogger(__name__)


def to_out(user: User) -> UserOut:
    return UserOut(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role_enum,
        credit_balance=user.credit_balance,
    )


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found.")
    return user


def create_user(
    db: Session,
    *,
    email: str,
    full_name: str | None = None,
    role: Role = Role.MEMBER,
    credit_balance: int = 0,
) -> User:
    email = email.strip().lower()
    if db.scalar(select(User.id).where(User.email == email)) is not None:
        raise DuplicateEntryError("User with this email already exists.")

    user = User(email=email, full_name=full_name, role=role.value, credit_balance=credit_balance)
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        raise DuplicateEntryError("User with this email already exists.") from exc

    logger.info("Created %s user %s", role.value, user.id)
    return user


def list_pending_admins(db: Session) -> list[User]:
    stmt = (
        select(User)
        .where(User.role == Role.PENDING_ADMIN.value)
        .order_by(User.created_at.asc(), User.email.asc())
    )
    return list(db.scalars(stmt))


def approve_admin(db: Session, user_id: str) -> User:
    user = db.scalar(
        select(User)
        .where(User.id == user_id, User.role == Role.PENDING_ADMIN.value)
        .with_for_update()
    )
    if user is None:
        raise NotFoundError("Pending user not found.")

    user.role = Role.ADMIN.value
    db.flush()
    logger.info("User %s approved as admin", user.id)
    return user
