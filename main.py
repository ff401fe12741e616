import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Depends, Query
from uuid import UUID
from datetime import date, timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Property
    CreatePropertyRequest, UpdatePropertyStatusRequest, PropertyResponse, AvailabilityResponse,
    # Booking
    CreateBookingRequest, CancelBookingRequest, BookingResponse, OwnerDashboardResponse,
    # Activity
    ActivityResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, fake_users_db, get_user
from infrastructure.config import settings
from infrastructure.logging_config import setup_logging
from infrastructure.security import verify_password, create_access_token
from domain.auth import User
from domain.enums import BookingStatus, BookingRole
from domain.exceptions import BookingErrorCode

from application.services import (
    AvailabilityService, BookingService, CompletionSweeper, DashboardService, ActivityService,
    PropertyService
)
from infrastructure.repositories.in_memory_repositories import (
    InMemoryBookingRepository, InMemoryPropertyRepository, InMemoryActivityRepository
)

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize repositories
booking_repo = InMemoryBookingRepository()
property_repo = InMemoryPropertyRepository()
activity_repo = InMemoryActivityRepository()


# Dependency injection
def get_availability_service() -> AvailabilityService:
    return AvailabilityService(booking_repo)


def get_booking_service() -> BookingService:
    return BookingService(
        booking_repo,
        property_repo,
        activity_repo,
        availability_service=get_availability_service(),
        activity_timeout=settings.activity_timeout_seconds
    )


def get_dashboard_service() -> DashboardService:
    return DashboardService(booking_repo, property_repo, recent_limit=settings.dashboard_recent_limit)


def get_activity_service() -> ActivityService:
    return ActivityService(activity_repo)


def get_property_service() -> PropertyService:
    return PropertyService(property_repo)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Stays are completed by the system clock only; no endpoint triggers it
    sweeper = CompletionSweeper(get_booking_service(), settings.completion_sweep_interval_seconds)
    app.state.completion_sweeper = sweeper
    await sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("Shutting down %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Booking lifecycle and availability engine for vacation rentals",
    version=settings.app_version,
    lifespan=lifespan
)


ERROR_STATUS_CODES = {
    BookingErrorCode.BOOKING_NOT_FOUND: 404,
    BookingErrorCode.PROPERTY_NOT_FOUND: 404,
    BookingErrorCode.NOT_AUTHORIZED: 403,
    BookingErrorCode.DATES_UNAVAILABLE: 409,
    BookingErrorCode.INVALID_STATUS_TRANSITION: 409,
}


def _http_error(error: ValueError) -> HTTPException:
    """Map a booking error (or plain validation error) to an HTTP error"""
    code = getattr(error, "code", None)
    return HTTPException(status_code=ERROR_STATUS_CODES.get(code, 400), detail=str(error))


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}


@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Get all BookingStatus enum values"""
    return {
        "values": [item.name for item in BookingStatus],
        "description": "Booking status values: PENDING, CONFIRMED, CANCELLED, COMPLETED"
    }


# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        data={"sub": user.username},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user


# ============================================================================
# PROPERTY ENDPOINTS
# ============================================================================

@app.post("/api/properties", response_model=PropertyResponse, status_code=201, tags=["Properties"])
async def create_property(
    request: CreatePropertyRequest,
    service: PropertyService = Depends(get_property_service),
    current_user: User = Depends(get_current_active_user)
):
    """List a property owned by the caller"""
    try:
        property_ = await service.register_property(
            owner_id=current_user.user_id,
            title=request.title,
            price_per_night=request.price_per_night,
            min_nights=request.min_nights,
            max_guests=request.max_guests
        )
        return _property_to_response(property_)
    except ValueError as e:
        raise _http_error(e)


@app.get("/api/properties/{property_id}", response_model=PropertyResponse, tags=["Properties"])
async def get_property(
    property_id: UUID,
    service: PropertyService = Depends(get_property_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get property by ID"""
    try:
        return _property_to_response(await service.get_property(property_id))
    except ValueError as e:
        raise _http_error(e)


@app.patch("/api/properties/{property_id}/status", response_model=PropertyResponse, tags=["Properties"])
async def update_property_status(
    property_id: UUID,
    request: UpdatePropertyStatusRequest,
    service: PropertyService = Depends(get_property_service),
    current_user: User = Depends(get_current_active_user)
):
    """Pause, activate or remove a listing"""
    try:
        property_ = await service.change_status(property_id, current_user.user_id, request.status)
        return _property_to_response(property_)
    except ValueError as e:
        raise _http_error(e)


@app.get("/api/properties/{property_id}/availability", response_model=AvailabilityResponse, tags=["Properties"])
async def check_property_availability(
    property_id: UUID,
    check_in: date = Query(...),
    check_out: date = Query(...),
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check if a property is free for a date range"""
    try:
        available = await service.check_availability(property_id, check_in, check_out)
    except ValueError as e:
        raise _http_error(e)
    return AvailabilityResponse(
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        available=available
    )


# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.post("/api/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    request: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Request a stay; the caller is the guest"""
    try:
        booking = await service.create_booking(
            property_id=request.property_id,
            guest_id=current_user.user_id,
            check_in=request.check_in,
            check_out=request.check_out,
            adults=request.adults,
            children=request.children,
            message=request.message
        )
        return _booking_to_response(booking)
    except ValueError as e:
        raise _http_error(e)


@app.get("/api/bookings/my", response_model=List[BookingResponse], tags=["Bookings"])
async def list_my_bookings(
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """List the caller's bookings as a guest"""
    bookings = await service.list_bookings(current_user.user_id, BookingRole.GUEST)
    return [_booking_to_response(b) for b in bookings]


@app.get("/api/bookings/owner", response_model=List[BookingResponse], tags=["Bookings"])
async def list_owner_bookings(
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """List bookings on the caller's properties"""
    bookings = await service.list_bookings(current_user.user_id, BookingRole.OWNER)
    return [_booking_to_response(b) for b in bookings]


@app.get("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get a booking; only its guest or owner may see it"""
    try:
        return _booking_to_response(await service.get_booking(booking_id, current_user.user_id))
    except ValueError as e:
        raise _http_error(e)


@app.post("/api/bookings/{booking_id}/confirm", response_model=BookingResponse, tags=["Bookings"])
async def confirm_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Owner confirms a pending booking"""
    try:
        booking = await service.confirm_booking(booking_id, current_user.user_id)
        return _booking_to_response(booking)
    except ValueError as e:
        raise _http_error(e)


@app.post("/api/bookings/{booking_id}/cancel", response_model=BookingResponse, tags=["Bookings"])
async def cancel_booking(
    booking_id: UUID,
    request: CancelBookingRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Guest or owner cancels a booking"""
    try:
        booking = await service.cancel_booking(booking_id, current_user.user_id, request.reason)
        return _booking_to_response(booking)
    except ValueError as e:
        raise _http_error(e)


# ============================================================================
# DASHBOARD & ACTIVITY ENDPOINTS
# ============================================================================

@app.get("/api/owner/dashboard", response_model=OwnerDashboardResponse, tags=["Dashboard"])
async def get_owner_dashboard(
    service: DashboardService = Depends(get_dashboard_service),
    current_user: User = Depends(get_current_active_user)
):
    """Summary of the caller's listings and bookings"""
    dashboard = await service.get_owner_dashboard(current_user.user_id)
    return OwnerDashboardResponse(
        total_properties=dashboard.total_properties,
        pending_bookings=dashboard.pending_bookings,
        confirmed_bookings=dashboard.confirmed_bookings,
        completed_bookings=dashboard.completed_bookings,
        total_revenue=dashboard.total_revenue,
        recent_bookings=[_booking_to_response(b) for b in dashboard.recent_bookings]
    )


@app.get("/api/activities", response_model=List[ActivityResponse], tags=["Activities"])
async def list_activities(
    limit: Optional[int] = Query(None, ge=1),
    service: ActivityService = Depends(get_activity_service),
    current_user: User = Depends(get_current_active_user)
):
    """List the caller's activity feed"""
    activities = await service.list_activities(current_user.user_id, limit)
    return [_activity_to_response(a) for a in activities]


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _booking_to_response(booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        booking_id=booking.booking_id,
        property_id=booking.property_id,
        guest_id=booking.guest_id,
        owner_id=booking.owner_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        guests=booking.guests,
        adults=booking.adults,
        children=booking.children,
        total_nights=booking.total_nights,
        price_per_night=booking.price_per_night,
        cleaning_fee=booking.cleaning_fee,
        service_fee=booking.service_fee,
        total_price=booking.total_price,
        status=booking.status.value,
        message=booking.message,
        created_at=booking.created_at,
        updated_at=booking.updated_at
    )


def _property_to_response(property_) -> PropertyResponse:
    """Convert Property entity to PropertyResponse"""
    return PropertyResponse(
        property_id=property_.property_id,
        owner_id=property_.owner_id,
        title=property_.title,
        status=property_.status.value,
        price_per_night=property_.price_per_night,
        min_nights=property_.min_nights,
        max_guests=property_.max_guests,
        created_at=property_.created_at,
        updated_at=property_.updated_at
    )


def _activity_to_response(activity) -> ActivityResponse:
    """Convert Activity entity to ActivityResponse"""
    return ActivityResponse(
        activity_id=activity.activity_id,
        user_id=activity.user_id,
        type=activity.type.value,
        title=activity.title,
        description=activity.description,
        property_id=activity.property_id,
        booking_id=activity.booking_id,
        created_at=activity.created_at
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
