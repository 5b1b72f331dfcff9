"""Intake form definitions, live quotes and server-side submission."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.bookings import handoff_response
from api.schemas import HandoffOut, IntakeSubmitIn, QuoteIn, QuoteOut
from core.booking_handoff import BookingHandoff
from core.intake_forms import UnknownFormError, get_form, session_from_payload
from core.record_store import RecordStore
from db.database import get_db
from providers.base import BasePaymentGateway
from providers.factory import get_payment_gateway

router = APIRouter(prefix="/intake", tags=["intake"])
logger = logging.getLogger(__name__)


def _session_or_404(form_key: str, payload: dict):
    try:
        return session_from_payload(form_key, payload)
    except UnknownFormError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/forms/{form_key}")
async def get_form_definition(form_key: str):
    try:
        return get_form(form_key).to_dict()
    except UnknownFormError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/{form_key}/quote", response_model=QuoteOut)
async def quote(form_key: str, body: QuoteIn):
    session = _session_or_404(
        form_key, {"participants": [p.model_dump() for p in body.participants]}
    )
    return QuoteOut(
        form_key=form_key,
        participant_count=len(session.composition),
        quoted_fee=str(session.quoted_fee),
        currency=session.currency,
        submit_label=session.submit_label,
    )


@router.post("/{form_key}/submit", response_model=HandoffOut)
async def submit(
    form_key: str,
    body: IntakeSubmitIn,
    response: Response,
    db: AsyncSession = Depends(get_db),
    payment_gateway: BasePaymentGateway = Depends(get_payment_gateway),
):
    """Re-validate every step, recompute the fee and hand off to payment.

    Any fee the client displayed is ignored; the amount charged is the one
    computed here from the submitted travelers.
    """
    session = _session_or_404(
        form_key,
        {
            "submission_id": body.submission_id,
            "values": body.values,
            "participants": [p.model_dump() for p in body.participants],
        },
    )
    outcome = await session.submit(BookingHandoff(RecordStore(db), payment_gateway))
    if outcome.handoff is None:
        logger.info("Intake submission %s rejected: %s", session.submission_id, outcome.errors)
        raise HTTPException(status_code=422, detail={"errors": outcome.errors})
    return handoff_response(outcome.handoff, response, quoted_fee=str(session.quoted_fee))
