from __future__ import annotations

import hmac
import logging
from datetime import date, datetime
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Response
from fastapi.responses import JSONResponse

from config import get_settings
from db.session import SessionLocal, validate_db_compatibility
from scheduling.admin import AdminService
from scheduling.engine import BookingEngine
from scheduling.errors import (
    AlreadyActionedError,
    AlreadyStartedError,
    ConflictError,
    DuplicateEntryError,
    InsufficientCreditsError,
    InvalidAmountError,
    InvalidRangeError,
    NotFoundError,
    PermissionDeniedError,
    SchedulingError,
    StorageError,
)
from scheduling.schema import (
    BookingCreateRequest,
    BookingOut,
    BookingWindowResponse,
    CancellationResult,
    CreditRequestCreate,
    CreditRequestListResponse,
    CreditRequestOut,
    ErrorResponse,
    HealthResponse,
    Principal,
    ResourceAvailabilityResponse,
    ResourceListResponse,
    ResourceOut,
    ResourceUpsertRequest,
    Role,
    UserBookingListResponse,
    UserCreateRequest,
    UserListResponse,
    UserOut,
    WaitlistEntryListResponse,
    WaitlistEntryOut,
    WaitlistJoinRequest,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = settings.app_name
APP_VERSION = settings.app_version
API_KEY_HEADER = "X-API-Key"
ADMIN_API_KEY_HEADER = "X-Admin-API-Key"
USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"

ERROR_STATUS_CODES: dict[type[SchedulingError], int] = {
    NotFoundError: 404,
    InvalidRangeError: 400,
    InvalidAmountError: 400,
    ConflictError: 409,
    InsufficientCreditsError: 402,
    PermissionDeniedError: 403,
    AlreadyStartedError: 409,
    DuplicateEntryError: 409,
    AlreadyActionedError: 409,
    StorageError: 503,
}


@lru_cache
def get_booking_engine() -> BookingEngine:
    return BookingEngine(SessionLocal, tz_name=settings.facility_timezone)


@lru_cache
def get_admin_service() -> AdminService:
    return AdminService(SessionLocal)


def verify_api_key(x_api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER)):
    if not x_api_key or not hmac.compare_digest(x_api_key, settings.scheduler_api_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")


def verify_admin_api_key(x_admin_api_key: Optional[str] = Header(default=None, alias=ADMIN_API_KEY_HEADER)):
    if not x_admin_api_key or not hmac.compare_digest(x_admin_api_key, settings.admin_api_key):
        raise HTTPException(status_code=401, detail="Invalid or missing admin API key.")


def get_principal(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    x_user_role: Optional[str] = Header(default=None, alias=USER_ROLE_HEADER),
) -> Principal:
    """Identity forwarded by the authentication gateway; trusted as-is."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication error.")
    try:
        role = Role((x_user_role or Role.MEMBER.value).strip().upper())
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Unknown user role.") from exc
    return Principal(user_id=x_user_id.strip(), role=role)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.role.has_admin_privilege:
        raise HTTPException(status_code=403, detail="Access denied. Admin rights required.")
    return principal


app = FastAPI(title=APP_NAME, version=APP_VERSION)


@app.on_event("startup")
def startup_checks():
    _ = settings.scheduler_api_key
    _ = settings.admin_api_key
    validate_db_compatibility()
    logger.info("%s %s ready (facility timezone %s)", APP_NAME, APP_VERSION, settings.facility_timezone)


@app.exception_handler(SchedulingError)
def handle_scheduling_error(_, exc: SchedulingError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        400,
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=type(exc).__name__, detail=exc.message).model_dump(mode="json"),
    )


@app.get("/health/live", response_model=HealthResponse)
def health_live():
    return HealthResponse(status="ok", service=APP_NAME, version=APP_VERSION)


@app.get("/health/ready", response_model=HealthResponse)
def health_ready():
    try:
        validate_db_compatibility()
    except Exception as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return HealthResponse(status="ok", service=APP_NAME, version=APP_VERSION)


@app.get("/v1/resources", response_model=ResourceListResponse, dependencies=[Depends(verify_api_key)])
def list_resources(engine: BookingEngine = Depends(get_booking_engine)):
    return ResourceListResponse(resources=engine.list_resources())


@app.get(
    "/v1/resources/{resource_id}/availability",
    response_model=ResourceAvailabilityResponse,
    dependencies=[Depends(verify_api_key)],
)
def get_resource_availability(resource_id: str, day: date, engine: BookingEngine = Depends(get_booking_engine)):
    return engine.availability(resource_id, day)


@app.get(
    "/v1/resources/{resource_id}/bookings",
    response_model=BookingWindowResponse,
    dependencies=[Depends(verify_api_key)],
)
def get_resource_bookings(
    resource_id: str,
    start: datetime,
    end: datetime,
    engine: BookingEngine = Depends(get_booking_engine),
):
    return BookingWindowResponse(
        resource_id=resource_id,
        bookings=engine.bookings_in_window(resource_id, start, end),
    )


@app.post("/v1/bookings", response_model=BookingOut, status_code=201, dependencies=[Depends(verify_api_key)])
def create_booking(
    request: BookingCreateRequest,
    principal: Principal = Depends(get_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return engine.create_booking(
        resource_id=request.resource_id,
        user_id=principal.user_id,
        start_time=request.start_time,
        end_time=request.end_time,
    )


@app.post("/v1/bookings/{booking_id}/cancel", response_model=CancellationResult, dependencies=[Depends(verify_api_key)])
def cancel_booking(
    booking_id: str,
    principal: Principal = Depends(get_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return engine.cancel_booking(
        booking_id=booking_id,
        requester_id=principal.user_id,
        requester_role=principal.role,
    )


@app.get("/v1/bookings/my", response_model=UserBookingListResponse, dependencies=[Depends(verify_api_key)])
def my_bookings(principal: Principal = Depends(get_principal), engine: BookingEngine = Depends(get_booking_engine)):
    return UserBookingListResponse(bookings=engine.upcoming_bookings(principal.user_id))


@app.post("/v1/waitlist", response_model=WaitlistEntryOut, status_code=201, dependencies=[Depends(verify_api_key)])
def join_waitlist(
    request: WaitlistJoinRequest,
    principal: Principal = Depends(get_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return engine.join_waitlist(
        resource_id=request.resource_id,
        user_id=principal.user_id,
        slot_start=request.slot_start_time,
    )


@app.post("/v1/credit-requests", response_model=CreditRequestOut, status_code=201, dependencies=[Depends(verify_api_key)])
def submit_credit_request(
    request: CreditRequestCreate,
    principal: Principal = Depends(get_principal),
    engine: BookingEngine = Depends(get_booking_engine),
):
    return engine.submit_credit_request(user_id=principal.user_id, amount=request.amount, reason=request.reason)


@app.get("/v1/users/me", response_model=UserOut, dependencies=[Depends(verify_api_key)])
def current_user(principal: Principal = Depends(get_principal), engine: BookingEngine = Depends(get_booking_engine)):
    return engine.get_account(principal.user_id)


@app.post(
    "/v1/admin/resources",
    response_model=ResourceOut,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_upsert_resource(request: ResourceUpsertRequest, admin: AdminService = Depends(get_admin_service)):
    return admin.upsert_resource(request)


@app.delete(
    "/v1/admin/resources/{resource_id}",
    status_code=204,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_delete_resource(resource_id: str, admin: AdminService = Depends(get_admin_service)):
    admin.delete_resource(resource_id)
    return Response(status_code=204)


@app.get(
    "/v1/admin/resources/{resource_id}/waitlist",
    response_model=WaitlistEntryListResponse,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_resource_waitlist(resource_id: str, engine: BookingEngine = Depends(get_booking_engine)):
    return WaitlistEntryListResponse(entries=engine.waitlist_entries(resource_id))


@app.post(
    "/v1/admin/users",
    response_model=UserOut,
    status_code=201,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_create_user(request: UserCreateRequest, admin: AdminService = Depends(get_admin_service)):
    return admin.create_user(request)


@app.get(
    "/v1/admin/pending-approvals",
    response_model=UserListResponse,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_pending_approvals(admin: AdminService = Depends(get_admin_service)):
    return UserListResponse(users=admin.pending_admins())


@app.post(
    "/v1/admin/users/{user_id}/approve",
    response_model=UserOut,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_approve_user(user_id: str, admin: AdminService = Depends(get_admin_service)):
    return admin.approve_admin(user_id)


@app.get(
    "/v1/admin/credit-requests",
    response_model=CreditRequestListResponse,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_credit_requests(engine: BookingEngine = Depends(get_booking_engine)):
    return CreditRequestListResponse(requests=engine.pending_credit_requests())


@app.post(
    "/v1/admin/credit-requests/{request_id}/approve",
    response_model=CreditRequestOut,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_approve_credit_request(request_id: str, engine: BookingEngine = Depends(get_booking_engine)):
    return engine.approve_credit_request(request_id)


@app.post(
    "/v1/admin/credit-requests/{request_id}/deny",
    response_model=CreditRequestOut,
    dependencies=[Depends(verify_admin_api_key), Depends(require_admin)],
)
def admin_deny_credit_request(request_id: str, engine: BookingEngine = Depends(get_booking_engine)):
    return engine.deny_credit_request(request_id)
