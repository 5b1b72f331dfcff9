"""Booking record store.

The amount is frozen when the booking is created, and with it the participant
count: edits to a submitted booking, paid or not, may only change non-count
fields.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Booking

logger = logging.getLogger(__name__)

PAYMENT_STATUSES = {"PENDING", "PAID", "FAILED"}


class BookingNotFoundError(Exception):
    """Raised when a booking id does not exist."""


class ParticipantCountLockedError(Exception):
    """Raised when an edit to a paid booking would change its participant count."""

    def __init__(self, booking_id: str, paid_count: int, requested_count: int):
        self.booking_id = booking_id
        self.paid_count = paid_count
        self.requested_count = requested_count
        super().__init__(
            f"Cannot add or remove travelers: the fee was calculated for "
            f"{paid_count} traveler{'s' if paid_count != 1 else ''}."
        )


class RecordStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self.db.get(Booking, booking_id)
        if not booking:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    async def find_by_submission(self, submission_id: str) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking).where(Booking.submission_id == submission_id)
        )
        return result.scalar_one_or_none()

    async def create_booking(
        self,
        payload: dict,
        amount: Decimal,
        submission_id: str,
        form_key: str,
        participant_count: int,
        currency: str = "GHS",
        contact_email: Optional[str] = None,
        offer_id: Optional[str] = None,
    ) -> tuple[Booking, bool]:
        """Create a PENDING booking, or return the one already made for this submission.

        Returns (booking, created).
        """
        existing = await self.find_by_submission(submission_id)
        if existing:
            logger.info("Submission %s already has booking %s", submission_id, existing.id)
            return existing, False

        booking = Booking(
            id=str(uuid.uuid4()),
            submission_id=submission_id,
            form_key=form_key,
            payload=payload,
            participant_count=participant_count,
            total_amount=amount,
            currency=currency,
            payment_status="PENDING",
            contact_email=contact_email,
            offer_id=offer_id,
        )
        self.db.add(booking)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent duplicate submit won the unique constraint
            await self.db.rollback()
            existing = await self.find_by_submission(submission_id)
            if existing is None:
                raise
            return existing, False
        await self.db.refresh(booking)
        logger.info("Created booking %s for submission %s (%s %s)", booking.id, submission_id, amount, currency)
        return booking, True

    async def update_booking_status(self, booking_id: str, status: str) -> Booking:
        if status not in PAYMENT_STATUSES:
            raise ValueError(f"Unknown payment status: {status}")
        booking = await self.get_booking(booking_id)
        booking.payment_status = status
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def set_payment_reference(self, booking_id: str, reference: str) -> Booking:
        booking = await self.get_booking(booking_id)
        booking.payment_reference = reference
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def update_booking_payload(
        self, booking_id: str, payload: dict, participant_count: int
    ) -> Booking:
        """Replace the submitted payload. total_amount is never touched."""
        booking = await self.get_booking(booking_id)
        # The amount is frozen, so the count is too; a new party size needs a new submission
        if participant_count != booking.participant_count:
            raise ParticipantCountLockedError(booking_id, booking.participant_count, participant_count)
        booking.payload = payload
        await self.db.commit()
        await self.db.refresh(booking)
        return booking
