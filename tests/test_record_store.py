"""Tests for the booking record store and the participant count lock."""
from decimal import Decimal

import pytest

from core.record_store import BookingNotFoundError, ParticipantCountLockedError


@pytest.mark.asyncio
async def test_create_is_idempotent_on_submission(store, booking):
    again, created = await store.create_booking(
        payload={}, amount=Decimal("9999"), submission_id="sub-fixture",
        form_key="consultation", participant_count=5,
    )
    assert created is False
    assert again.id == booking.id
    assert again.total_amount == Decimal("1000.00")


@pytest.mark.asyncio
async def test_get_missing_booking(store):
    with pytest.raises(BookingNotFoundError):
        await store.get_booking("nope")


@pytest.mark.asyncio
async def test_status_transitions(store, booking):
    updated = await store.update_booking_status(booking.id, "PAID")
    assert updated.payment_status == "PAID"
    with pytest.raises(ValueError):
        await store.update_booking_status(booking.id, "REFUNDED")


@pytest.mark.asyncio
async def test_paid_booking_rejects_count_change(store, booking):
    await store.update_booking_status(booking.id, "PAID")

    with pytest.raises(ParticipantCountLockedError) as exc_info:
        await store.update_booking_payload(booking.id, {"participants": [{}, {}, {}]}, 3)

    assert "2 travelers" in str(exc_info.value)
    refreshed = await store.get_booking(booking.id)
    assert refreshed.participant_count == 2
    assert refreshed.total_amount == Decimal("1000.00")


@pytest.mark.asyncio
async def test_unpaid_booking_also_rejects_count_change(store, booking):
    assert booking.payment_status == "PENDING"

    with pytest.raises(ParticipantCountLockedError):
        await store.update_booking_payload(booking.id, {"participants": [{}]}, 1)

    refreshed = await store.get_booking(booking.id)
    assert refreshed.participant_count == 2


@pytest.mark.asyncio
async def test_paid_booking_accepts_same_count_edit(store, booking):
    await store.update_booking_status(booking.id, "PAID")
    payload = {"participants": [{"display_name": "Ama"}, {"display_name": "Kofi"}]}

    updated = await store.update_booking_payload(booking.id, payload, 2)

    assert updated.payload == payload
    assert updated.total_amount == Decimal("1000.00")


@pytest.mark.asyncio
async def test_payment_reference_is_stored(store, booking):
    updated = await store.set_payment_reference(booking.id, "REF-1")
    assert updated.payment_reference == "REF-1"
