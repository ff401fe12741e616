"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field, validator
from uuid import UUID, uuid4
from datetime import datetime, date, timezone
from typing import Optional
from decimal import Decimal

from domain.enums import BookingStatus, PropertyStatus, ActivityType, BLOCKING_STATUSES, TERMINAL_STATUSES
from domain.exceptions import InvalidStatusTransitionError
from domain.value_objects import DateRange, PriceBreakdown, Numeric, to_decimal, round2

CLEANING_FEE_RATE = Decimal("0.30")
SERVICE_FEE_RATE = Decimal("0.10")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(BaseModel):
    """Booking Aggregate Root Entity

    Immutable snapshot of one guest's stay on one property. Every status
    transition returns a new, re-validated Booking and leaves this one as is.
    """

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    property_id: UUID
    guest_id: UUID
    owner_id: UUID

    # Stay
    check_in: date
    check_out: date
    guests: int
    adults: int
    children: int = 0

    # Pricing, fixed at creation
    total_nights: int
    price_per_night: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total_price: Decimal

    status: BookingStatus = BookingStatus.PENDING
    message: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True
        from_attributes = True

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out must be after check-in')
        return v

    @validator('guests')
    def guests_positive(cls, v):
        if v <= 0:
            raise ValueError('guests must be greater than 0')
        return v

    @validator('children', always=True)
    def guests_match_party(cls, v, values):
        if 'guests' in values and 'adults' in values and values['guests'] != values['adults'] + v:
            raise ValueError('guests must equal adults + children')
        return v

    @validator('total_nights')
    def total_nights_positive(cls, v):
        if v <= 0:
            raise ValueError('total_nights must be greater than 0')
        return v

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self) -> "Booking":
        """Owner accepts the request: PENDING -> CONFIRMED"""
        if self.status != BookingStatus.PENDING:
            raise InvalidStatusTransitionError(
                self.status, BookingStatus.CONFIRMED, "only pending bookings can be confirmed"
            )
        return self._transition(BookingStatus.CONFIRMED)

    def cancel(self, by_owner: bool = False) -> "Booking":
        """Guest or owner cancels.

        PENDING -> CANCELLED for either party, CONFIRMED -> CANCELLED for the
        guest only.
        """
        if self.status == BookingStatus.COMPLETED:
            raise InvalidStatusTransitionError(
                self.status, BookingStatus.CANCELLED, "cannot cancel a completed booking"
            )
        if self.status == BookingStatus.CANCELLED:
            raise InvalidStatusTransitionError(
                self.status, BookingStatus.CANCELLED, "booking is already cancelled"
            )
        if by_owner and self.status == BookingStatus.CONFIRMED:
            raise InvalidStatusTransitionError(
                self.status, BookingStatus.CANCELLED, "owner cannot cancel a confirmed booking"
            )
        return self._transition(BookingStatus.CANCELLED)

    def complete(self, now: Optional[datetime] = None) -> "Booking":
        """System marks the stay as finished: CONFIRMED -> COMPLETED, on or after check-out"""
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStatusTransitionError(
                self.status, BookingStatus.COMPLETED, "only confirmed bookings can be completed"
            )
        now = now or utcnow()
        if now.date() < self.check_out:
            raise InvalidStatusTransitionError(
                self.status, BookingStatus.COMPLETED, "cannot complete booking before checkout date"
            )
        return self._transition(BookingStatus.COMPLETED)

    # ==================== QUERY METHODS ====================
    @property
    def date_range(self) -> DateRange:
        return DateRange(check_in=self.check_in, check_out=self.check_out)

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def blocks_calendar(self) -> bool:
        """Check if this booking still holds its dates"""
        return self.status in BLOCKING_STATUSES

    def is_guest(self, user_id: UUID) -> bool:
        return self.guest_id == user_id

    def is_owner(self, user_id: UUID) -> bool:
        return self.owner_id == user_id

    def is_participant(self, user_id: UUID) -> bool:
        return self.is_guest(user_id) or self.is_owner(user_id)

    # ==================== PRICING ====================
    @staticmethod
    def calculate_price(price_per_night: Numeric, total_nights: int) -> PriceBreakdown:
        """Compute the price of a stay.

        The cleaning fee is 30% of a single night regardless of stay length;
        the service fee is 10% of the nightly subtotal. Both are rounded
        half-up to the cent.
        """
        nightly = to_decimal(price_per_night)
        subtotal = nightly * total_nights
        cleaning_fee = round2(nightly * CLEANING_FEE_RATE)
        service_fee = round2(subtotal * SERVICE_FEE_RATE)
        return PriceBreakdown(
            subtotal=subtotal,
            cleaning_fee=cleaning_fee,
            service_fee=service_fee,
            total=subtotal + cleaning_fee + service_fee
        )

    def _transition(self, status: BookingStatus) -> "Booking":
        return Booking(**{**self.model_dump(), "status": status, "updated_at": utcnow()})


class Property(BaseModel):
    """Property listing, as far as the booking core needs to know it"""

    property_id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    title: str
    status: PropertyStatus = PropertyStatus.ACTIVE

    # Booking rules
    price_per_night: Optional[Decimal] = Field(None, ge=0)
    min_nights: Optional[int] = Field(None, ge=1)
    max_guests: Optional[int] = Field(None, ge=1)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True
        from_attributes = True

    @validator('title')
    def title_required(cls, v):
        if not v or not v.strip():
            raise ValueError('Title is required')
        return v

    def is_bookable(self) -> bool:
        return self.status == PropertyStatus.ACTIVE

    def pause(self) -> "Property":
        if self.status == PropertyStatus.REMOVED:
            raise ValueError("Cannot pause a removed property")
        return self._with_status(PropertyStatus.PAUSED)

    def activate(self) -> "Property":
        if self.status == PropertyStatus.REMOVED:
            raise ValueError("Cannot activate a removed property")
        return self._with_status(PropertyStatus.ACTIVE)

    def remove(self) -> "Property":
        return self._with_status(PropertyStatus.REMOVED)

    def _with_status(self, status: PropertyStatus) -> "Property":
        return Property(**{**self.model_dump(), "status": status, "updated_at": utcnow()})


class Activity(BaseModel):
    """Notification fact delivered to one user"""

    activity_id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    type: ActivityType
    title: str
    description: Optional[str] = None
    property_id: Optional[UUID] = None
    booking_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True
        from_attributes = True
