"""In-Memory Repository Implementations"""
import asyncio
from typing import Optional, List, Dict, Iterable
from uuid import UUID
from datetime import date
from decimal import Decimal

from domain.repositories import BookingRepository, PropertyRepository, ActivityRepository
from domain.entities import Booking, Property, Activity, utcnow
from domain.enums import BookingStatus, PropertyStatus, ActivityType
from domain.exceptions import (
    BookingNotFoundError, PropertyNotFoundError, DatesUnavailableError, InvalidStatusTransitionError
)
from domain.value_objects import BookingData, DateRange


def _newest_first(items: Iterable) -> list:
    # Reversing first keeps later insertions ahead on equal timestamps
    return sorted(reversed(list(items)), key=lambda item: item.created_at, reverse=True)


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of BookingRepository

    A single lock serialises conflict checks and inserts, so two overlapping
    ``create`` calls can never both succeed.
    """

    def __init__(self):
        self._storage: Dict[UUID, Booking] = {}
        self._lock = asyncio.Lock()

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        return self._storage.get(booking_id)

    async def find_by_guest_id(self, guest_id: UUID) -> List[Booking]:
        """Find bookings made by a guest"""
        return _newest_first(b for b in self._storage.values() if b.guest_id == guest_id)

    async def find_by_owner_id(self, owner_id: UUID) -> List[Booking]:
        """Find bookings on an owner's properties"""
        return _newest_first(b for b in self._storage.values() if b.owner_id == owner_id)

    async def find_recent_by_owner(self, owner_id: UUID, limit: int) -> List[Booking]:
        """Find the most recent bookings for an owner"""
        bookings = await self.find_by_owner_id(owner_id)
        return bookings[:limit]

    async def find_confirmed_due(self, as_of: date) -> List[Booking]:
        """Find confirmed bookings already past check-out"""
        return [
            b for b in self._storage.values()
            if b.status == BookingStatus.CONFIRMED and b.check_out <= as_of
        ]

    async def count_by_owner_and_status(self, owner_id: UUID, status: BookingStatus) -> int:
        """Count bookings for an owner in a status"""
        return sum(1 for b in self._storage.values() if b.owner_id == owner_id and b.status == status)

    async def sum_completed_revenue_by_owner(self, owner_id: UUID) -> Decimal:
        """Sum revenue of completed bookings"""
        return sum(
            (b.total_price for b in self._storage.values()
             if b.owner_id == owner_id and b.status == BookingStatus.COMPLETED),
            Decimal("0")
        )

    async def has_conflicting_booking(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[UUID] = None
    ) -> bool:
        """Check for overlapping pending/confirmed bookings"""
        async with self._lock:
            return self._has_conflict(property_id, DateRange(check_in=check_in, check_out=check_out), exclude_booking_id)

    async def create(self, data: BookingData) -> Booking:
        """Insert a booking, re-checking the calendar under the lock"""
        async with self._lock:
            if self._has_conflict(data.property_id, data.date_range):
                raise DatesUnavailableError(data.check_in, data.check_out)
            booking = Booking(**data.model_dump(), status=BookingStatus.PENDING)
            self._storage[booking.booking_id] = booking
            return booking

    async def update_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        expected_status: Optional[BookingStatus] = None
    ) -> Booking:
        """Replace the stored snapshot with one in the new status, if still in expected_status"""
        async with self._lock:
            booking = self._storage.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            if expected_status is not None and booking.status != expected_status:
                raise InvalidStatusTransitionError(
                    booking.status, status, "booking was modified concurrently"
                )
            updated = booking.model_copy(update={"status": status, "updated_at": utcnow()})
            self._storage[booking_id] = updated
            return updated

    def _has_conflict(
        self,
        property_id: UUID,
        date_range: DateRange,
        exclude_booking_id: Optional[UUID] = None
    ) -> bool:
        for booking in self._storage.values():
            if booking.property_id != property_id or booking.booking_id == exclude_booking_id:
                continue
            if booking.blocks_calendar() and date_range.overlaps(booking.date_range):
                return True
        return False


class InMemoryPropertyRepository(PropertyRepository):
    """In-memory implementation of PropertyRepository"""

    def __init__(self):
        self._storage: Dict[UUID, Property] = {}

    async def find_by_id(self, property_id: UUID) -> Optional[Property]:
        """Find property by ID"""
        return self._storage.get(property_id)

    async def count_by_owner(self, owner_id: UUID) -> int:
        """Count an owner's properties"""
        return sum(1 for p in self._storage.values() if p.owner_id == owner_id)

    async def save(self, property_: Property) -> Property:
        """Save property to memory"""
        self._storage[property_.property_id] = property_
        return property_

    async def update_status(self, property_id: UUID, status: PropertyStatus) -> Property:
        """Update listing status"""
        property_ = self._storage.get(property_id)
        if property_ is None:
            raise PropertyNotFoundError(property_id)
        updated = property_.model_copy(update={"status": status, "updated_at": utcnow()})
        self._storage[property_id] = updated
        return updated


class InMemoryActivityRepository(ActivityRepository):
    """In-memory implementation of ActivityRepository"""

    def __init__(self):
        self._storage: List[Activity] = []

    async def record(
        self,
        user_id: UUID,
        type: ActivityType,
        title: str,
        description: Optional[str] = None,
        property_id: Optional[UUID] = None,
        booking_id: Optional[UUID] = None
    ) -> Activity:
        """Append an activity fact"""
        activity = Activity(
            user_id=user_id,
            type=type,
            title=title,
            description=description,
            property_id=property_id,
            booking_id=booking_id
        )
        self._storage.append(activity)
        return activity

    async def find_by_user(self, user_id: UUID, limit: Optional[int] = None) -> List[Activity]:
        """Find a user's activity facts"""
        activities = _newest_first(a for a in self._storage if a.user_id == user_id)
        if limit is not None:
            return activities[:limit]
        return activities
