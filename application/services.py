"""Application Services - Booking use cases"""
import asyncio
import contextlib
import logging
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from domain.repositories import BookingRepository, PropertyRepository, ActivityRepository
from domain.entities import Booking, Property, Activity, utcnow
from domain.enums import BookingStatus, BookingRole, PropertyStatus, ActivityType
from domain.exceptions import (
    BookingError, BookingNotFoundError, PropertyNotFoundError, PropertyNotAvailableError,
    MinNightsRequiredError, MaxGuestsExceededError, DatesUnavailableError, NotAuthorizedError
)
from domain.value_objects import DateRange, GuestCount, BookingData

logger = logging.getLogger(__name__)


class OwnerDashboard(BaseModel):
    """Read-only summary of an owner's listings and bookings"""
    total_properties: int
    pending_bookings: int
    confirmed_bookings: int
    completed_bookings: int
    total_revenue: Decimal
    recent_bookings: List[Booking]


class AvailabilityService:
    """Date-range conflict detection for a property's calendar"""

    def __init__(self, repository: BookingRepository):
        self.repository = repository

    async def has_conflict(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[UUID] = None
    ) -> bool:
        """Check if [check_in, check_out) overlaps a pending or confirmed booking"""
        date_range = DateRange(check_in=check_in, check_out=check_out)
        return await self.repository.has_conflicting_booking(
            property_id, date_range.check_in, date_range.check_out, exclude_booking_id
        )

    async def check_availability(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[UUID] = None
    ) -> bool:
        """Check if the property is free for the range"""
        return not await self.has_conflict(property_id, check_in, check_out, exclude_booking_id)


class BookingService:
    """Service for the booking lifecycle: request, confirm, cancel, complete"""

    def __init__(self,
                 repository: BookingRepository,
                 property_repo: PropertyRepository,
                 activity_repo: Optional[ActivityRepository] = None,
                 availability_service: Optional[AvailabilityService] = None,
                 activity_timeout: Optional[float] = None):
        self.repository = repository
        self.property_repo = property_repo
        self.activity_repo = activity_repo
        self.availability_service = availability_service or AvailabilityService(repository)
        self.activity_timeout = activity_timeout

    async def create_booking(
        self,
        property_id: UUID,
        guest_id: UUID,
        check_in: date,
        check_out: date,
        adults: int,
        children: int = 0,
        message: Optional[str] = None
    ) -> Booking:
        """Request a stay on a property; the booking starts PENDING"""
        property_ = await self.property_repo.find_by_id(property_id)
        if not property_:
            raise PropertyNotFoundError(property_id)

        if not property_.is_bookable():
            raise PropertyNotAvailableError(property_id)

        date_range = DateRange(check_in=check_in, check_out=check_out)
        total_nights = date_range.nights()
        if property_.min_nights and total_nights < property_.min_nights:
            raise MinNightsRequiredError(property_.min_nights)

        guest_count = GuestCount(adults=adults, children=children)
        if property_.max_guests and guest_count.total > property_.max_guests:
            raise MaxGuestsExceededError(property_.max_guests)

        if await self.availability_service.has_conflict(property_id, check_in, check_out):
            logger.info("Dates %s to %s unavailable on property %s", check_in, check_out, property_id)
            raise DatesUnavailableError(check_in, check_out)

        price_per_night = property_.price_per_night or Decimal("0")
        price = Booking.calculate_price(price_per_night, total_nights)

        # The repository re-checks the calendar atomically and may still raise DatesUnavailableError
        booking = await self.repository.create(BookingData(
            property_id=property_id,
            guest_id=guest_id,
            owner_id=property_.owner_id,
            check_in=check_in,
            check_out=check_out,
            guests=guest_count.total,
            adults=guest_count.adults,
            children=guest_count.children,
            total_nights=total_nights,
            price_per_night=price_per_night,
            cleaning_fee=price.cleaning_fee,
            service_fee=price.service_fee,
            total_price=price.total,
            message=message
        ))
        logger.info("Booking %s requested on property %s by guest %s", booking.booking_id, property_id, guest_id)

        await self._record_activity(
            user_id=guest_id,
            type=ActivityType.BOOKING_REQUESTED,
            title="Reservation requested",
            description=f"{property_.title} - {check_in.isoformat()} to {check_out.isoformat()}",
            property_id=property_id,
            booking_id=booking.booking_id
        )
        return booking

    async def confirm_booking(self, booking_id: UUID, owner_id: UUID) -> Booking:
        """Owner accepts a pending request"""
        booking = await self._get_booking(booking_id)
        if not booking.is_owner(owner_id):
            logger.info("User %s refused confirming booking %s", owner_id, booking_id)
            raise NotAuthorizedError("Only the property owner can confirm bookings")

        confirmed = booking.confirm()
        saved = await self.repository.update_status(
            booking.booking_id, confirmed.status, expected_status=booking.status
        )
        logger.info("Booking %s confirmed", booking_id)

        await self._record_activity(
            user_id=booking.guest_id,
            type=ActivityType.BOOKING_CONFIRMED,
            title="Reservation confirmed",
            description="Your reservation was confirmed by the owner",
            property_id=booking.property_id,
            booking_id=booking.booking_id
        )
        return saved

    async def cancel_booking(
        self,
        booking_id: UUID,
        user_id: UUID,
        reason: Optional[str] = None
    ) -> Booking:
        """Guest or owner cancels; the guest is always the one notified"""
        booking = await self._get_booking(booking_id)
        if not booking.is_participant(user_id):
            logger.info("User %s refused cancelling booking %s", user_id, booking_id)
            raise NotAuthorizedError("Only the guest or owner can cancel this booking")

        by_owner = booking.is_owner(user_id) and not booking.is_guest(user_id)
        cancelled = booking.cancel(by_owner=by_owner)
        saved = await self.repository.update_status(
            booking.booking_id, cancelled.status, expected_status=booking.status
        )
        logger.info("Booking %s cancelled by %s", booking_id, "owner" if by_owner else "guest")

        description = f"Reservation cancelled: {reason}" if reason else "Reservation cancelled"
        await self._record_activity(
            user_id=booking.guest_id,
            type=ActivityType.BOOKING_CANCELLED,
            title="Reservation cancelled",
            description=description,
            property_id=booking.property_id,
            booking_id=booking.booking_id
        )
        return saved

    async def complete_booking(self, booking_id: UUID, now: Optional[datetime] = None) -> Booking:
        """Mark a confirmed stay as completed once its check-out date is reached"""
        booking = await self._get_booking(booking_id)
        return await self._complete(booking, now or utcnow())

    async def complete_due_bookings(self, now: Optional[datetime] = None) -> List[Booking]:
        """Complete every confirmed booking whose check-out has passed"""
        now = now or utcnow()
        completed = []
        for booking in await self.repository.find_confirmed_due(now.date()):
            try:
                completed.append(await self._complete(booking, now))
            except BookingError:
                logger.error("Could not complete booking %s", booking.booking_id, exc_info=True)
        return completed

    async def get_booking(self, booking_id: UUID, user_id: UUID) -> Booking:
        """Get a booking visible to its guest or owner"""
        booking = await self._get_booking(booking_id)
        if not booking.is_participant(user_id):
            raise NotAuthorizedError("Only the guest or owner can view this booking")
        return booking

    async def list_bookings(self, user_id: UUID, role: BookingRole) -> List[Booking]:
        """List a user's bookings as guest or as owner"""
        if role == BookingRole.GUEST:
            return await self.repository.find_by_guest_id(user_id)
        return await self.repository.find_by_owner_id(user_id)

    async def list_recent_bookings(self, owner_id: UUID, limit: int) -> List[Booking]:
        return await self.repository.find_recent_by_owner(owner_id, limit)

    async def _get_booking(self, booking_id: UUID) -> Booking:
        # Always re-read; never decide a transition on a cached snapshot
        booking = await self.repository.find_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    async def _complete(self, booking: Booking, now: datetime) -> Booking:
        completed = booking.complete(now)
        saved = await self.repository.update_status(
            booking.booking_id, completed.status, expected_status=booking.status
        )
        logger.info("Booking %s completed", booking.booking_id)

        await self._record_activity(
            user_id=booking.guest_id,
            type=ActivityType.BOOKING_COMPLETED,
            title="Stay completed",
            description=f"Your stay ended on {booking.check_out.isoformat()}",
            property_id=booking.property_id,
            booking_id=booking.booking_id
        )
        return saved

    async def _record_activity(
        self,
        user_id: UUID,
        type: ActivityType,
        title: str,
        description: Optional[str] = None,
        property_id: Optional[UUID] = None,
        booking_id: Optional[UUID] = None
    ) -> Optional[Activity]:
        """Fire-and-forget boundary: a failing feed never fails the booking operation"""
        if self.activity_repo is None:
            return None

        try:
            call = self.activity_repo.record(
                user_id=user_id,
                type=type,
                title=title,
                description=description,
                property_id=property_id,
                booking_id=booking_id
            )
            if self.activity_timeout is not None:
                return await asyncio.wait_for(call, timeout=self.activity_timeout)
            return await call
        except Exception:
            logger.warning(
                "Failed to record %s activity for booking %s", type.value, booking_id, exc_info=True
            )
            return None


class CompletionSweeper:
    """Background task that completes due stays on a fixed interval.

    Completion is system-driven: the sweep always runs against the current
    UTC time and is never exposed to guest or owner callers.
    """

    def __init__(self, booking_service: BookingService, interval: float):
        self.booking_service = booking_service
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        if self._task is not None or self.interval <= 0:
            return
        self._task = asyncio.create_task(self._loop(), name="completion-sweeper")
        logger.info("Completion sweeper started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Completion sweeper stopped")

    async def run_once(self) -> List[Booking]:
        completed = await self.booking_service.complete_due_bookings()
        if completed:
            logger.info("Completed %d due bookings", len(completed))
        return completed

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Completion sweep failed")
            await asyncio.sleep(self.interval)


class DashboardService:
    """Read-side aggregation for the owner dashboard"""

    def __init__(self,
                 booking_repo: BookingRepository,
                 property_repo: PropertyRepository,
                 recent_limit: int = 5):
        self.booking_repo = booking_repo
        self.property_repo = property_repo
        self.recent_limit = recent_limit

    async def get_owner_dashboard(self, owner_id: UUID) -> OwnerDashboard:
        """Fetch all counters concurrently; the result is a best-effort snapshot"""
        (
            total_properties,
            pending_bookings,
            confirmed_bookings,
            completed_bookings,
            total_revenue,
            recent_bookings,
        ) = await asyncio.gather(
            self.property_repo.count_by_owner(owner_id),
            self.booking_repo.count_by_owner_and_status(owner_id, BookingStatus.PENDING),
            self.booking_repo.count_by_owner_and_status(owner_id, BookingStatus.CONFIRMED),
            self.booking_repo.count_by_owner_and_status(owner_id, BookingStatus.COMPLETED),
            self.booking_repo.sum_completed_revenue_by_owner(owner_id),
            self.booking_repo.find_recent_by_owner(owner_id, self.recent_limit),
        )

        return OwnerDashboard(
            total_properties=total_properties,
            pending_bookings=pending_bookings,
            confirmed_bookings=confirmed_bookings,
            completed_bookings=completed_bookings,
            total_revenue=total_revenue,
            recent_bookings=recent_bookings
        )


class ActivityService:
    """Service for reading a user's activity feed"""

    def __init__(self, repository: ActivityRepository):
        self.repository = repository

    async def list_activities(self, user_id: UUID, limit: Optional[int] = None) -> List[Activity]:
        return await self.repository.find_by_user(user_id, limit)


class PropertyService:
    """Minimal listing management so bookings have something to point at"""

    def __init__(self, repository: PropertyRepository):
        self.repository = repository

    async def register_property(
        self,
        owner_id: UUID,
        title: str,
        price_per_night: Optional[Decimal] = None,
        min_nights: Optional[int] = None,
        max_guests: Optional[int] = None
    ) -> Property:
        """List a new, active property"""
        property_ = Property(
            owner_id=owner_id,
            title=title,
            price_per_night=price_per_night,
            min_nights=min_nights,
            max_guests=max_guests
        )
        saved = await self.repository.save(property_)
        logger.info("Property %s registered by owner %s", saved.property_id, owner_id)
        return saved

    async def get_property(self, property_id: UUID) -> Property:
        property_ = await self.repository.find_by_id(property_id)
        if not property_:
            raise PropertyNotFoundError(property_id)
        return property_

    async def change_status(
        self,
        property_id: UUID,
        caller_id: UUID,
        status: PropertyStatus
    ) -> Property:
        """Pause, re-activate or remove a listing; owner only"""
        property_ = await self.get_property(property_id)
        if property_.owner_id != caller_id:
            raise NotAuthorizedError("Only the owner can change a property's status")

        if status == PropertyStatus.ACTIVE:
            updated = property_.activate()
        elif status == PropertyStatus.PAUSED:
            updated = property_.pause()
        else:
            updated = property_.remove()
        return await self.repository.update_status(property_id, updated.status)
