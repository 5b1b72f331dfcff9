"""Tests for BookingHandoff: price gate, idempotent submit and payment failures."""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from core.booking_handoff import (
    PAYMENT_RETRY_MESSAGE,
    BookingHandoff,
    PaymentVerificationError,
    Submission,
    reservation_submission,
)
from core.errors import ErrorKind
from core.price_confirmation import ConfirmedOffer
from db.models import Booking
from providers.base import PaymentError


def _submission(submission_id="sub-1", offer_id=None, amount="1250.00"):
    return Submission(
        submission_id=submission_id,
        form_key="consultation",
        payload={"participants": [{"category": "ADULT"}, {"category": "ADULT"}, {"category": "INFANT"}]},
        participant_count=3,
        amount=Decimal(amount),
        contact_email="ama@example.com",
        offer_id=offer_id,
    )


def _confirmed(offer_id="2", original="548.15", confirmed="548.15"):
    return ConfirmedOffer(
        offer_id=offer_id,
        original_total=Decimal(original),
        confirmed_total=Decimal(confirmed),
        currency="USD",
        price_changed=original != confirmed,
        raw={},
    )


async def _booking_count(db) -> int:
    result = await db.execute(select(func.count()).select_from(Booking))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_submit_creates_pending_booking_and_redirects(db, store, payments):
    result = await BookingHandoff(store, payments).submit(_submission())

    assert result.status == "redirect"
    assert result.ok
    assert result.redirect_url.startswith("https://checkout.mock/")
    booking = await store.get_booking(result.booking_id)
    assert booking.payment_status == "PENDING"
    assert booking.total_amount == Decimal("1250.00")
    assert booking.payment_reference == result.payment_reference


@pytest.mark.asyncio
async def test_double_submit_creates_one_booking(db, store, payments):
    handoff = BookingHandoff(store, payments)

    first = await handoff.submit(_submission())
    second = await handoff.submit(_submission())

    assert first.booking_id == second.booking_id
    assert await _booking_count(db) == 1


@pytest.mark.asyncio
async def test_resubmit_after_payment_reports_already_paid(db, store, payments):
    handoff = BookingHandoff(store, payments)
    first = await handoff.submit(_submission())
    await store.update_booking_status(first.booking_id, "PAID")

    again = await handoff.submit(_submission())

    assert again.status == "already_paid"
    assert again.booking_id == first.booking_id


@pytest.mark.asyncio
async def test_payment_failure_leaves_booking_pending(db, store):
    gateway = AsyncMock()
    gateway.initialize_payment.side_effect = PaymentError("Payment system not configured")

    result = await BookingHandoff(store, gateway).submit(_submission())

    assert result.status == "payment_pending"
    assert result.user_message == PAYMENT_RETRY_MESSAGE
    booking = await store.get_booking(result.booking_id)
    assert booking.payment_status == "PENDING"
    assert booking.payment_reference is None


@pytest.mark.asyncio
async def test_retry_payment_after_failure(db, store, payments):
    failing = AsyncMock()
    failing.initialize_payment.side_effect = PaymentError("down")
    pending = await BookingHandoff(store, failing).submit(_submission())

    retried = await BookingHandoff(store, payments).retry_payment(pending.booking_id)

    assert retried.status == "redirect"
    assert retried.booking_id == pending.booking_id
    assert await _booking_count(db) == 1


@pytest.mark.asyncio
async def test_payment_amount_is_sent_in_minor_units(db, store):
    gateway = AsyncMock()
    gateway.initialize_payment.return_value = {"authorization_url": "https://pay", "reference": "R1"}

    await BookingHandoff(store, gateway).submit(_submission())

    kwargs = gateway.initialize_payment.call_args.kwargs
    assert kwargs["amount_minor"] == 125000
    assert kwargs["currency"] == "GHS"
    assert kwargs["email"] == "ama@example.com"


# ── Price gate ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_drifted_price_is_refused_without_booking(db, store, payments):
    result = await BookingHandoff(store, payments).submit(
        _submission(offer_id="2"), confirmed_offer=_confirmed(confirmed="601.00")
    )

    assert result.status == "price_confirmation_required"
    assert result.error.kind == ErrorKind.PRICE_DRIFTED
    assert result.details["original_total"] == "548.15"
    assert result.details["confirmed_total"] == "601.00"
    assert await _booking_count(db) == 0


@pytest.mark.asyncio
async def test_drifted_price_accepted_at_confirmed_total_proceeds(db, store, payments):
    result = await BookingHandoff(store, payments).submit(
        _submission(offer_id="2"),
        confirmed_offer=_confirmed(confirmed="601.00"),
        accepted_total=Decimal("601.00"),
    )
    assert result.status == "redirect"


@pytest.mark.asyncio
async def test_acceptance_of_a_stale_total_is_refused(db, store, payments):
    # Accepted 601.00 after the first drift; the offer has moved again to 900.00
    result = await BookingHandoff(store, payments).submit(
        _submission(offer_id="2"),
        confirmed_offer=_confirmed(confirmed="900.00"),
        accepted_total=Decimal("601.00"),
    )

    assert result.status == "price_confirmation_required"
    assert result.details["confirmed_total"] == "900.00"
    assert await _booking_count(db) == 0


@pytest.mark.asyncio
async def test_confirmation_for_another_offer_is_refused(db, store, payments):
    result = await BookingHandoff(store, payments).submit(
        _submission(offer_id="2"), confirmed_offer=_confirmed(offer_id="1")
    )
    assert result.status == "price_confirmation_required"
    assert await _booking_count(db) == 0


@pytest.mark.asyncio
async def test_missing_confirmation_is_refused(db, store, payments):
    result = await BookingHandoff(store, payments).submit(_submission(offer_id="2"))
    assert result.status == "price_confirmation_required"


# ── Verification ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_verify_marks_booking_paid(db, store, payments):
    handoff = BookingHandoff(store, payments)
    submitted = await handoff.submit(_submission())

    booking = await handoff.verify_payment(submitted.booking_id)

    assert booking.payment_status == "PAID"


@pytest.mark.asyncio
async def test_verify_abandoned_marks_failed(db, store):
    gateway = AsyncMock()
    gateway.initialize_payment.return_value = {"authorization_url": "https://pay", "reference": "R2"}
    gateway.verify_payment.return_value = {"reference": "R2", "status": "abandoned", "amount": 0}
    handoff = BookingHandoff(store, gateway)
    submitted = await handoff.submit(_submission())

    booking = await handoff.verify_payment(submitted.booking_id)

    assert booking.payment_status == "FAILED"
    gateway.verify_payment.assert_awaited_once_with("R2")


@pytest.mark.asyncio
async def test_verify_with_short_charge_keeps_booking_pending(db, store):
    gateway = AsyncMock()
    gateway.initialize_payment.return_value = {"authorization_url": "https://pay", "reference": "R3"}
    gateway.verify_payment.return_value = {"reference": "R3", "status": "success", "amount": 1}
    handoff = BookingHandoff(store, gateway)
    submitted = await handoff.submit(_submission(amount="1000.00"))

    with pytest.raises(PaymentVerificationError):
        await handoff.verify_payment(submitted.booking_id)

    booking = await store.get_booking(submitted.booking_id)
    assert booking.payment_status == "PENDING"


@pytest.mark.asyncio
async def test_verify_checks_amount_in_minor_units(db, store):
    gateway = AsyncMock()
    gateway.initialize_payment.return_value = {"authorization_url": "https://pay", "reference": "R4"}
    gateway.verify_payment.return_value = {"reference": "R4", "status": "success", "amount": 100000}
    handoff = BookingHandoff(store, gateway)
    submitted = await handoff.submit(_submission(amount="1000.00"))

    booking = await handoff.verify_payment(submitted.booking_id)

    assert booking.payment_status == "PAID"


@pytest.mark.asyncio
async def test_verify_with_foreign_reference_is_refused(db, store, payments):
    handoff = BookingHandoff(store, payments)
    ours = await handoff.submit(_submission(submission_id="sub-ours", amount="1000.00"))
    cheap = await handoff.submit(_submission(submission_id="sub-cheap", amount="1.00"))
    await handoff.verify_payment(cheap.booking_id)

    with pytest.raises(PaymentVerificationError):
        await handoff.verify_payment(ours.booking_id, cheap.payment_reference)

    booking = await store.get_booking(ours.booking_id)
    assert booking.payment_status == "PENDING"


@pytest.mark.asyncio
async def test_verify_without_reference_raises(db, store, booking):
    with pytest.raises(PaymentError):
        await BookingHandoff(store, AsyncMock()).verify_payment(booking.id)


def test_reservation_submission_adds_service_fee():
    submission = reservation_submission(
        _confirmed(confirmed="100.00", original="100.00"),
        submission_id="sub-r",
        payload={"party": {"adults": 1}},
        participant_count=1,
        exchange_rate=Decimal("12.5"),
        service_fee_rate=Decimal("0.10"),
    )
    assert submission.amount == Decimal("1375.00")
    assert submission.offer_id == "2"
    assert submission.payload["pricing"]["service_fee"] == "125.00"
