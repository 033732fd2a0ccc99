"""Tests for resource and user administration."""

import pytest
from pydantic import ValidationError

from conftest import at
from scheduling.errors import ConflictError, DuplicateEntryError, NotFoundError
from scheduling.schema import ResourceUpsertRequest, Role


class TestResourceAdministration:
    def test_create_assigns_id(self, resource):
        assert resource.resource_id
        assert resource.operating_start_minute == 480
        assert resource.operating_end_minute == 1320

    def test_update_in_place(self, admin_service, booking_engine, resource):
        updated = admin_service.upsert_resource(
            ResourceUpsertRequest(
                resource_id=resource.resource_id,
                name="Laser Cutter (large bed)",
                description="CO2 laser, 1300x900 bed",
                cost_per_hour=150,
            )
        )

        assert updated.resource_id == resource.resource_id
        assert [r.cost_per_hour for r in booking_engine.list_resources()] == [150]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"operating_start_minute": 1320, "operating_end_minute": 480},
            {"min_booking_minutes": 120, "max_booking_minutes": 60},
            {"min_booking_minutes": 50},
            {"max_booking_minutes": 100},
            {"cost_per_hour": -1},
        ],
    )
    def test_invalid_definitions_rejected(self, overrides):
        data = {"name": "Bandsaw", "description": "Wood bandsaw", "cost_per_hour": 20}
        data.update(overrides)

        with pytest.raises(ValidationError):
            ResourceUpsertRequest(**data)

    def test_delete_without_bookings(self, admin_service, booking_engine, resource, member):
        booking_engine.join_waitlist(resource_id=resource.resource_id, user_id=member.user_id, slot_start=at(9))

        admin_service.delete_resource(resource.resource_id)

        assert booking_engine.list_resources() == []

    def test_delete_refused_with_upcoming_booking(self, admin_service, booking_engine, resource, member):
        booking_engine.create_booking(
            resource_id=resource.resource_id, user_id=member.user_id, start_time=at(9), end_time=at(10)
        )

        with pytest.raises(ConflictError):
            admin_service.delete_resource(resource.resource_id)

        assert len(booking_engine.list_resources()) == 1

    def test_delete_allowed_once_bookings_are_past(self, admin_service, booking_engine, resource, member, clock):
        booking_engine.create_booking(
            resource_id=resource.resource_id, user_id=member.user_id, start_time=at(9), end_time=at(10)
        )
        clock.set(at(10))

        admin_service.delete_resource(resource.resource_id)

        assert booking_engine.upcoming_bookings(member.user_id) == []

    def test_delete_unknown_resource(self, admin_service):
        with pytest.raises(NotFoundError):
            admin_service.delete_resource("missing-resource")


class TestUserAdministration:
    def test_email_is_normalized(self, make_user):
        user = make_user(email="  Maker@Example.COM ")

        assert user.email == "maker@example.com"

    def test_duplicate_email_rejected(self, make_user):
        make_user(email="maker@example.com")

        with pytest.raises(DuplicateEntryError):
            make_user(email="MAKER@example.com")

    def test_pending_admin_approval(self, admin_service, make_user):
        pending = make_user(role=Role.PENDING_ADMIN)
        make_user()

        assert [u.user_id for u in admin_service.pending_admins()] == [pending.user_id]

        approved = admin_service.approve_admin(pending.user_id)

        assert approved.role == Role.ADMIN
        assert admin_service.pending_admins() == []

    def test_approve_non_pending_user(self, admin_service, member):
        with pytest.raises(NotFoundError, match="Pending user not found"):
            admin_service.approve_admin(member.user_id)
