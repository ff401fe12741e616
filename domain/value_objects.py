"""Domain Value Objects"""
import math
from pydantic import BaseModel, Field, validator
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID
from typing import Optional, Union

CENT = Decimal("0.01")

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric) -> Decimal:
    """Convert a numeric input to Decimal without binary float artifacts"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal) -> Decimal:
    """Round to the cent, half-up"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class DateRange(BaseModel):
    """Value Object for a half-open stay range [check_in, check_out)"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out must be after check-in')
        return v

    def nights(self) -> int:
        """Calculate number of nights, rounding partial days up"""
        seconds = (self.check_out - self.check_in).total_seconds()
        return math.ceil(seconds / 86400)

    def overlaps(self, other: "DateRange") -> bool:
        """Half-open overlap; a check-in on another stay's check-out day is free"""
        return self.check_in < other.check_out and self.check_out > other.check_in

    class Config:
        frozen = True


class GuestCount(BaseModel):
    """Value Object for guest count"""
    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)

    @property
    def total(self) -> int:
        return self.adults + self.children

    class Config:
        frozen = True


class PriceBreakdown(BaseModel):
    """Value Object for the price of a stay"""
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total: Decimal

    class Config:
        frozen = True


class BookingData(BaseModel):
    """Payload handed to the booking repository when a reservation is created"""
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
    message: Optional[str] = None

    @property
    def date_range(self) -> DateRange:
        return DateRange(check_in=self.check_in, check_out=self.check_out)

    class Config:
        frozen = True
