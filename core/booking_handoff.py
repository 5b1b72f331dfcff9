"""Booking handoff: create the booking record, then start payment.

A booking is created at most once per submission id and is never deleted. If
payment cannot be started the booking stays PENDING and payment can be
retried later; only the user-visible action fails.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.errors import DomainError, ErrorKind
from core.fee_rules import compute_reservation_pricing, to_minor_units
from core.price_confirmation import ConfirmedOffer
from core.record_store import RecordStore
from db.models import Booking
from providers.base import BasePaymentGateway, PaymentError

logger = logging.getLogger(__name__)

PAYMENT_RETRY_MESSAGE = (
    "Your booking has been saved but we could not start the payment. "
    "Please retry payment from your bookings page."
)


class PaymentVerificationError(PaymentError):
    """The gateway transaction does not belong to the booking or did not charge its total."""


@dataclass
class Submission:
    submission_id: str
    form_key: str
    payload: dict
    participant_count: int
    amount: Decimal
    currency: str = "GHS"
    contact_email: Optional[str] = None
    offer_id: Optional[str] = None


@dataclass
class HandoffResult:
    # redirect | payment_pending | price_confirmation_required | already_paid | failed
    status: str
    booking_id: Optional[str] = None
    redirect_url: Optional[str] = None
    payment_reference: Optional[str] = None
    user_message: Optional[str] = None
    error: Optional[DomainError] = None
    details: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "redirect"


class BookingHandoff:
    def __init__(self, store: RecordStore, payment_gateway: BasePaymentGateway):
        self.store = store
        self.payment_gateway = payment_gateway

    async def submit(
        self,
        submission: Submission,
        confirmed_offer: Optional[ConfirmedOffer] = None,
        accepted_total: Optional[Decimal] = None,
    ) -> HandoffResult:
        """Create the booking and start payment.

        An offer whose reconfirmed price drifted is charged only when
        `accepted_total` equals the reconfirmed total.
        """
        refusal = self._check_price(submission, confirmed_offer, accepted_total)
        if refusal is not None:
            return refusal

        try:
            booking, created = await self.store.create_booking(
                payload=submission.payload,
                amount=submission.amount,
                submission_id=submission.submission_id,
                form_key=submission.form_key,
                participant_count=submission.participant_count,
                currency=submission.currency,
                contact_email=submission.contact_email,
                offer_id=submission.offer_id,
            )
        except SQLAlchemyError:
            logger.exception("Could not create booking for submission %s", submission.submission_id)
            return HandoffResult(
                status="failed",
                user_message="We could not save your request. Please try again.",
            )

        if not created and booking.payment_status == "PAID":
            return HandoffResult(
                status="already_paid",
                booking_id=booking.id,
                user_message="This request has already been paid for.",
            )
        return await self._initialize(booking)

    async def retry_payment(self, booking_id: str) -> HandoffResult:
        """Re-initialize payment for a booking left PENDING by an earlier failure."""
        booking = await self.store.get_booking(booking_id)
        if booking.payment_status == "PAID":
            return HandoffResult(
                status="already_paid",
                booking_id=booking.id,
                user_message="This booking has already been paid for.",
            )
        return await self._initialize(booking)

    async def verify_payment(self, booking_id: str, reference: Optional[str] = None) -> Booking:
        """Confirm a completed payment with the gateway and mark the booking PAID or FAILED.

        The gateway transaction must be the one started for this booking and
        must have charged the booking total; otherwise the booking stays
        PENDING and PaymentVerificationError is raised.
        """
        booking = await self.store.get_booking(booking_id)
        if booking.payment_status == "PAID":
            return booking
        if not booking.payment_reference:
            raise PaymentError(f"Booking {booking_id} has no payment reference")
        if reference and reference != booking.payment_reference:
            logger.warning(
                "Verify for booking %s named reference %s, expected %s",
                booking_id, reference, booking.payment_reference,
            )
            raise PaymentVerificationError("Payment reference does not match this booking")

        result = await self.payment_gateway.verify_payment(booking.payment_reference)
        if result.get("status") == "success":
            expected = to_minor_units(booking.total_amount)
            if result.get("amount") != expected:
                logger.warning(
                    "Payment %s for booking %s charged %s minor units, expected %d",
                    booking.payment_reference, booking_id, result.get("amount"), expected,
                )
                raise PaymentVerificationError("Payment amount does not match the booking total")
            return await self.store.update_booking_status(booking_id, "PAID")
        if result.get("status") in ("failed", "abandoned"):
            return await self.store.update_booking_status(booking_id, "FAILED")
        return booking

    def _check_price(
        self,
        submission: Submission,
        confirmed_offer: Optional[ConfirmedOffer],
        accepted_total: Optional[Decimal],
    ) -> Optional[HandoffResult]:
        if submission.offer_id is None:
            return None
        if confirmed_offer is None or confirmed_offer.offer_id != submission.offer_id:
            logger.warning(
                "Submission %s has no confirmation for offer %s",
                submission.submission_id, submission.offer_id,
            )
            return HandoffResult(
                status="price_confirmation_required",
                user_message="Please confirm the price of the selected offer before paying.",
                error=DomainError.of(ErrorKind.PRICE_DRIFTED, {"offer_id": submission.offer_id}),
            )
        if confirmed_offer.price_changed and not _accepts(accepted_total, confirmed_offer):
            if accepted_total is not None:
                logger.warning(
                    "Submission %s accepted %s but offer %s now costs %s",
                    submission.submission_id, accepted_total,
                    confirmed_offer.offer_id, confirmed_offer.confirmed_total,
                )
            details = confirmed_offer.to_dict()
            return HandoffResult(
                status="price_confirmation_required",
                user_message=DomainError.of(ErrorKind.PRICE_DRIFTED).user_message,
                error=DomainError.of(ErrorKind.PRICE_DRIFTED, details),
                details=details,
            )
        return None

    async def _initialize(self, booking: Booking) -> HandoffResult:
        try:
            payment = await self.payment_gateway.initialize_payment(
                booking_id=booking.id,
                amount_minor=to_minor_units(booking.total_amount),
                currency=booking.currency,
                email=booking.contact_email,
                metadata={"participant_count": booking.participant_count, "form_key": booking.form_key},
            )
        except PaymentError as exc:
            logger.warning("Payment initialization failed for booking %s: %s", booking.id, exc)
            return self._pending(booking)
        except Exception:
            logger.exception("Payment initialization crashed for booking %s", booking.id)
            return self._pending(booking)

        try:
            await self.store.set_payment_reference(booking.id, payment["reference"])
        except SQLAlchemyError:
            # The gateway reference is recoverable from its callback metadata
            logger.exception("Could not store payment reference for booking %s", booking.id)

        return HandoffResult(
            status="redirect",
            booking_id=booking.id,
            redirect_url=payment["authorization_url"],
            payment_reference=payment["reference"],
        )

    @staticmethod
    def _pending(booking: Booking) -> HandoffResult:
        return HandoffResult(
            status="payment_pending",
            booking_id=booking.id,
            user_message=PAYMENT_RETRY_MESSAGE,
        )


def _accepts(accepted_total, confirmed_offer: ConfirmedOffer) -> bool:
    if accepted_total is None:
        return False
    return Decimal(str(accepted_total)) == confirmed_offer.confirmed_total


def reservation_submission(
    confirmed: ConfirmedOffer,
    submission_id: str,
    payload: dict,
    participant_count: int,
    exchange_rate,
    service_fee_rate,
    currency: str = "GHS",
    contact_email: Optional[str] = None,
    form_key: str = "flight",
) -> Submission:
    """Submission for a flight/hotel reservation, priced from the confirmed total plus service fee."""
    pricing = compute_reservation_pricing(confirmed.confirmed_total, exchange_rate, service_fee_rate)
    return Submission(
        submission_id=submission_id,
        form_key=form_key,
        payload={**payload, "offer": confirmed.to_dict(), "pricing": pricing.to_dict()},
        participant_count=participant_count,
        amount=pricing.total_amount,
        currency=currency,
        contact_email=contact_email,
        offer_id=confirmed.offer_id,
    )
