"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID
from datetime import date
from decimal import Decimal

from domain.entities import Booking, Property, Activity
from domain.enums import BookingStatus, PropertyStatus, ActivityType
from domain.value_objects import BookingData


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate

    Implementations own the atomicity of check-then-insert: ``create`` must
    refuse a booking that overlaps one committed concurrently, even if the
    caller's earlier ``has_conflicting_booking`` returned False, and
    ``update_status`` must never overwrite a status changed concurrently.
    """

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_by_guest_id(self, guest_id: UUID) -> List[Booking]:
        """Find bookings made by a guest, newest first"""
        pass

    @abstractmethod
    async def find_by_owner_id(self, owner_id: UUID) -> List[Booking]:
        """Find bookings on an owner's properties, newest first"""
        pass

    @abstractmethod
    async def find_recent_by_owner(self, owner_id: UUID, limit: int) -> List[Booking]:
        """Find the most recently created bookings for an owner, newest first"""
        pass

    @abstractmethod
    async def find_confirmed_due(self, as_of: date) -> List[Booking]:
        """Find confirmed bookings whose check-out is on or before as_of"""
        pass

    @abstractmethod
    async def count_by_owner_and_status(self, owner_id: UUID, status: BookingStatus) -> int:
        """Count an owner's bookings in one status"""
        pass

    @abstractmethod
    async def sum_completed_revenue_by_owner(self, owner_id: UUID) -> Decimal:
        """Sum total_price over an owner's completed bookings"""
        pass

    @abstractmethod
    async def has_conflicting_booking(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[UUID] = None
    ) -> bool:
        """Check for a pending or confirmed booking overlapping [check_in, check_out)"""
        pass

    @abstractmethod
    async def create(self, data: BookingData) -> Booking:
        """Persist a new PENDING booking"""
        pass

    @abstractmethod
    async def update_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        expected_status: Optional[BookingStatus] = None
    ) -> Booking:
        """Persist a new status for a booking.

        When ``expected_status`` is given the write is a compare-and-set:
        implementations must apply it only if the stored status still equals
        ``expected_status`` and raise InvalidStatusTransitionError otherwise,
        so a concurrent transition is never overwritten.
        """
        pass


class PropertyRepository(ABC):
    """Repository interface for Property listings (read side for the booking core)"""

    @abstractmethod
    async def find_by_id(self, property_id: UUID) -> Optional[Property]:
        """Find property by ID"""
        pass

    @abstractmethod
    async def count_by_owner(self, owner_id: UUID) -> int:
        """Count properties listed by an owner"""
        pass

    @abstractmethod
    async def save(self, property_: Property) -> Property:
        """Save property"""
        pass

    @abstractmethod
    async def update_status(self, property_id: UUID, status: PropertyStatus) -> Property:
        """Persist a new listing status"""
        pass


class ActivityRepository(ABC):
    """Repository interface for the activity feed"""

    @abstractmethod
    async def record(
        self,
        user_id: UUID,
        type: ActivityType,
        title: str,
        description: Optional[str] = None,
        property_id: Optional[UUID] = None,
        booking_id: Optional[UUID] = None
    ) -> Activity:
        """Record an activity fact for a user"""
        pass

    @abstractmethod
    async def find_by_user(self, user_id: UUID, limit: Optional[int] = None) -> List[Activity]:
        """Find a user's activity facts, newest first"""
        pass
