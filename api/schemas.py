"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import PropertyStatus


# ============================================================================
# PROPERTY SCHEMAS
# ============================================================================

class CreatePropertyRequest(BaseModel):
    """Create property request DTO"""
    title: str = Field(min_length=1)
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    min_nights: Optional[int] = Field(None, ge=1)
    max_guests: Optional[int] = Field(None, ge=1)


class UpdatePropertyStatusRequest(BaseModel):
    """Change listing status request DTO"""
    status: PropertyStatus


class PropertyResponse(BaseModel):
    """Property response DTO"""
    property_id: UUID
    owner_id: UUID
    title: str
    status: str
    price_per_night: Optional[Decimal] = None
    min_nights: Optional[int] = None
    max_guests: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class AvailabilityResponse(BaseModel):
    """Availability check response DTO"""
    property_id: UUID
    check_in: date
    check_out: date
    available: bool


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class CreateBookingRequest(BaseModel):
    """Create booking request DTO; the guest is the authenticated caller"""
    property_id: UUID
    check_in: date
    check_out: date
    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)
    message: Optional[str] = None


class CancelBookingRequest(BaseModel):
    """Cancel booking request DTO"""
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    """Booking response DTO"""
    booking_id: UUID
    property_id: UUID
    guest_id: UUID
    owner_id: UUID
    check_in: date
    check_out: date
    guests: int
    adults: int
    children: int
    total_nights: int
    price_per_night: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total_price: Decimal
    status: str
    message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OwnerDashboardResponse(BaseModel):
    """Owner dashboard response DTO"""
    total_properties: int
    pending_bookings: int
    confirmed_bookings: int
    completed_bookings: int
    total_revenue: Decimal
    recent_bookings: List[BookingResponse]


# ============================================================================
# ACTIVITY SCHEMAS
# ============================================================================

class ActivityResponse(BaseModel):
    """Activity response DTO"""
    activity_id: UUID
    user_id: UUID
    type: str
    title: str
    description: Optional[str] = None
    property_id: Optional[UUID] = None
    booking_id: Optional[UUID] = None
    created_at: datetime


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
