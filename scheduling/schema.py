"""Pydantic schemas and enumerations for scheduling flows."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

MINUTES_PER_DAY = 1440


class Role(str, Enum):
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"
    PENDING_ADMIN = "PENDING_ADMIN"

    @property
    def has_admin_privilege(self) -> bool:
        return self in (Role.ADMIN, Role.SUPERADMIN)


class CreditRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"


class Principal(BaseModel):
    """Identity handed over by the authentication layer."""

    user_id: str = Field(min_length=1)
    role: Role = Role.MEMBER


class BookingCreateRequest(BaseModel):
    resource_id: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime


class BookingOut(BaseModel):
    booking_id: str
    resource_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    credits_deducted: int
    created_at: Optional[datetime] = None


class BookingWindowItem(BaseModel):
    start_time: datetime
    end_time: datetime


class BookingWindowResponse(BaseModel):
    resource_id: str
    bookings: list[BookingWindowItem]


class UserBookingItem(BookingOut):
    resource_name: str
    location: Optional[str] = None


class UserBookingListResponse(BaseModel):
    bookings: list[UserBookingItem]


class WaitlistJoinRequest(BaseModel):
    resource_id: str = Field(min_length=1)
    slot_start_time: datetime


class WaitlistEntryOut(BaseModel):
    entry_id: int
    resource_id: str
    user_id: str
    slot_start_time: datetime
    created_at: datetime


class WaitlistEntryListResponse(BaseModel):
    entries: list[WaitlistEntryOut]


class CancellationResult(BaseModel):
    booking: BookingOut
    refunded_credits: int
    notified_entry: Optional[WaitlistEntryOut] = None


class CreditRequestCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: int = Field(gt=0)
    reason: str = Field(min_length=1)


class CreditRequestOut(BaseModel):
    request_id: str
    user_id: str
    amount: int
    reason: str
    status: CreditRequestStatus
    created_at: datetime
    actioned_at: Optional[datetime] = None


class CreditRequestListResponse(BaseModel):
    requests: list[CreditRequestOut]


class UserCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255)
    full_name: Optional[str] = None
    role: Role = Role.MEMBER
    credit_balance: int = Field(default=0, ge=0)


class UserOut(BaseModel):
    user_id: str
    email: str
    full_name: Optional[str] = None
    role: Role
    credit_balance: int


class UserListResponse(BaseModel):
    users: list[UserOut]


class ResourceUpsertRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    resource_id: Optional[str] = None
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: Optional[str] = None
    cost_per_hour: int = Field(ge=0)
    min_booking_minutes: int = Field(default=30, ge=1)
    max_booking_minutes: int = Field(default=240, ge=1)
    operating_start_minute: int = Field(default=480, ge=0, lt=MINUTES_PER_DAY)
    operating_end_minute: int = Field(default=1320, ge=0, lt=MINUTES_PER_DAY)

    @model_validator(mode="after")
    def validate_window(self):
        if self.operating_start_minute >= self.operating_end_minute:
            raise ValueError("operating_start_minute must be earlier than operating_end_minute.")
        if self.min_booking_minutes > self.max_booking_minutes:
            raise ValueError("min_booking_minutes must not exceed max_booking_minutes.")
        span = self.operating_end_minute - self.operating_start_minute
        if span % self.min_booking_minutes != 0:
            raise ValueError("min_booking_minutes must divide the operating window evenly.")
        # a maximum-length booking must still land on slot boundaries
        if self.max_booking_minutes % self.min_booking_minutes != 0:
            raise ValueError("max_booking_minutes must be a multiple of min_booking_minutes.")
        return self


class ResourceOut(BaseModel):
    resource_id: str
    name: str
    description: str
    location: Optional[str] = None
    cost_per_hour: int
    min_booking_minutes: int
    max_booking_minutes: int
    operating_start_minute: int
    operating_end_minute: int


class ResourceListResponse(BaseModel):
    resources: list[ResourceOut]


class SlotAvailability(BaseModel):
    slot_start: datetime
    slot_end: datetime
    available: bool


class ResourceAvailabilityResponse(BaseModel):
    resource_id: str
    date: date
    slot_length_minutes: int
    slots: list[SlotAvailability]


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: Literal["ok", "error"]
    service: str
    version: str
