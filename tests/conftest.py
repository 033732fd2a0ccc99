"""
Pytest Configuration and Fixtures

Every test gets its own SQLite file with the BEGIN IMMEDIATE hook, so
transactions serialize the same way they do in production.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_API_KEY", "test-api-key")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from datetime import datetime, timedelta, timezone

import pytest

from db.session import build_engine, build_session_factory, init_db
from scheduling.admin import AdminService
from scheduling.engine import BookingEngine
from scheduling.schema import ResourceUpsertRequest, Role, UserCreateRequest


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """An instant on 2030-01-<day> in UTC."""
    return datetime(2030, 1, day, hour, minute, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls = []
        self.fail = False

    def notify_slot_available(self, user_id, resource_id, slot_start):
        if self.fail:
            raise RuntimeError("mail relay down")
        self.calls.append((user_id, resource_id, slot_start))


@pytest.fixture
def db_engine(tmp_path):
    """Provide a fresh SQLite database with the schema created."""
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def clock():
    """Clock frozen at 07:00 UTC on the booking day."""
    return FrozenClock(at(7))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def booking_engine(session_factory, notifier, clock):
    return BookingEngine(session_factory, notifier=notifier, clock=clock)


@pytest.fixture
def admin_service(session_factory, clock):
    return AdminService(session_factory, clock=clock)


@pytest.fixture
def make_user(admin_service):
    """Factory creating users through the admin service."""
    counter = {"n": 0}

    def _make_user(role: Role = Role.MEMBER, balance: int = 0, email: str | None = None):
        counter["n"] += 1
        return admin_service.create_user(
            UserCreateRequest(
                email=email or f"user{counter['n']}@makerspace.test",
                full_name=f"User {counter['n']}",
                role=role,
                credit_balance=balance,
            )
        )

    return _make_user


@pytest.fixture
def make_resource(admin_service):
    """Factory creating resources; defaults follow the catalog defaults (08:00-22:00)."""

    def _make_resource(**overrides):
        data = {
            "name": "Laser Cutter",
            "description": "CO2 laser, 600x400 bed",
            "location": "Workshop A",
            "cost_per_hour": 100,
            "min_booking_minutes": 30,
            "max_booking_minutes": 240,
            "operating_start_minute": 480,
            "operating_end_minute": 1320,
        }
        data.update(overrides)
        return admin_service.upsert_resource(ResourceUpsertRequest(**data))

    return _make_resource


@pytest.fixture
def resource(make_resource):
    return make_resource()


@pytest.fixture
def member(make_user):
    return make_user(balance=200)


@pytest.fixture
def admin_user(make_user):
    return make_user(role=Role.ADMIN)
