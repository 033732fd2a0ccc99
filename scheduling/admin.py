"""Resource and user administration.

These writes sit outside the booking core: the engine only ever reads
resources and never creates users.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from sqlalchemy.orm import sessionmaker

from scheduling import accounts, catalog
from scheduling.engine import transaction
from scheduling.schema import ResourceOut, ResourceUpsertRequest, UserCreateRequest, UserOut
from scheduling.timerange import utc_now


class AdminService:
    def __init__(self, session_factory: sessionmaker, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def upsert_resource(self, model: ResourceUpsertRequest) -> ResourceOut:
        with transaction(self._session_factory, "saving resource") as db:
            return catalog.to_out(catalog.upsert_resource(db, model))

    def delete_resource(self, resource_id: str) -> None:
        with transaction(self._session_factory, "deleting resource") as db:
            catalog.delete_resource(db, resource_id, now=self._clock())

    def create_user(self, model: UserCreateRequest) -> UserOut:
        with transaction(self._session_factory, "creating user") as db:
            user = accounts.create_user(
                db,
                email=model.email,
                full_name=model.full_name,
                role=model.role,
                credit_balance=model.credit_balance,
            )
            return accounts.to_out(user)

    def pending_admins(self) -> list[UserOut]:
        with transaction(self._session_factory, "listing pending admins") as db:
            return [accounts.to_out(user) for user in accounts.list_pending_admins(db)]

    def approve_admin(self, user_id: str) -> UserOut:
        with transaction(self._session_factory, "approving admin") as db:
            return accounts.to_out(accounts.approve_admin(db, user_id))
