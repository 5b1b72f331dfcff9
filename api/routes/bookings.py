"""Booking lookup, post-submission edits and payment retry/verification."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import BookingRead, BookingUpdate, HandoffOut, PaymentVerifyIn
from core.booking_handoff import BookingHandoff, HandoffResult, PaymentVerificationError
from core.intake_forms import UnknownFormError, session_from_payload
from core.record_store import BookingNotFoundError, ParticipantCountLockedError, RecordStore
from db.database import get_db
from providers.base import BasePaymentGateway, PaymentError
from providers.factory import get_payment_gateway

router = APIRouter(prefix="/bookings", tags=["bookings"])
logger = logging.getLogger(__name__)

HANDOFF_STATUS_CODES = {
    "redirect": 200,
    "already_paid": 200,
    "payment_pending": 202,
    "price_confirmation_required": 409,
    "failed": 500,
}


def handoff_response(
    result: HandoffResult, response: Response, quoted_fee: Optional[str] = None
) -> HandoffOut:
    """Translate a HandoffResult to its HTTP status and body."""
    response.status_code = HANDOFF_STATUS_CODES.get(result.status, 500)
    return HandoffOut(
        status=result.status,
        booking_id=result.booking_id,
        redirect_url=result.redirect_url,
        payment_reference=result.payment_reference,
        message=result.user_message,
        error_kind=result.error.kind.value if result.error else None,
        quoted_fee=quoted_fee,
        details=result.details,
    )


async def _get_or_404(store: RecordStore, booking_id: str):
    try:
        return await store.get_booking(booking_id)
    except BookingNotFoundError:
        raise HTTPException(status_code=404, detail="Booking not found")


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    booking = await _get_or_404(RecordStore(db), booking_id)
    return BookingRead.model_validate(booking)


@router.patch("/{booking_id}", response_model=BookingRead)
async def update_booking(booking_id: str, body: BookingUpdate, db: AsyncSession = Depends(get_db)):
    """Edit a submitted intake booking. The traveler count and the amount stay as submitted."""
    store = RecordStore(db)
    booking = await _get_or_404(store, booking_id)

    payload = {
        "submission_id": booking.submission_id,
        "values": body.values,
        "participants": [p.model_dump() for p in body.participants],
    }
    try:
        session = session_from_payload(booking.form_key, payload, paid=booking.payment_status == "PAID")
    except UnknownFormError:
        raise HTTPException(status_code=400, detail="Only intake bookings can be edited")

    errors = [message for messages in session.validate_all().values() for message in messages]
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})

    updated_payload = session.to_payload()
    updated_payload["quoted_fee"] = str(booking.total_amount)
    try:
        booking = await store.update_booking_payload(
            booking_id, updated_payload, len(session.composition)
        )
    except ParticipantCountLockedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/payment", response_model=HandoffOut)
async def retry_payment(
    booking_id: str,
    response: Response,
    db: AsyncSession = Depends(get_db),
    payment_gateway: BasePaymentGateway = Depends(get_payment_gateway),
):
    store = RecordStore(db)
    await _get_or_404(store, booking_id)
    result = await BookingHandoff(store, payment_gateway).retry_payment(booking_id)
    return handoff_response(result, response)


@router.post("/{booking_id}/payment/verify", response_model=BookingRead)
async def verify_payment(
    booking_id: str,
    body: Optional[PaymentVerifyIn] = None,
    db: AsyncSession = Depends(get_db),
    payment_gateway: BasePaymentGateway = Depends(get_payment_gateway),
):
    store = RecordStore(db)
    await _get_or_404(store, booking_id)
    reference = body.reference if body else None
    try:
        booking = await BookingHandoff(store, payment_gateway).verify_payment(booking_id, reference)
    except PaymentVerificationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except PaymentError as exc:
        logger.warning("Payment verification failed for booking %s: %s", booking_id, exc)
        raise HTTPException(status_code=502, detail="Could not verify payment. Please try again.")
    return BookingRead.model_validate(booking)
