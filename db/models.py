import uuid

from sqlalchemy import Column, DateTime, Index, Integer, JSON, Numeric, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Dedupe key: one booking per intake submission
    submission_id = Column(String, unique=True, nullable=False)
    # consultation | visa_assistance | itinerary_planning | flight | hotel
    form_key = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)
    participant_count = Column(Integer, nullable=False, default=1)
    # Frozen at submission time, never recomputed
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False, default="GHS")
    # PENDING | PAID | FAILED
    payment_status = Column(String, nullable=False, default="PENDING")
    payment_reference = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    offer_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ProviderCall(Base):
    """Append-only operator log of failed provider calls, raw error bodies included."""

    __tablename__ = "provider_calls"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    provider = Column(String, nullable=False)
    # search_flights | search_hotels | reconfirm
    operation = Column(String, nullable=False)
    request = Column(JSON)
    error_kind = Column(String, nullable=False)
    raw_error = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


Index("ix_bookings_payment_reference", Booking.payment_reference)
Index("ix_provider_calls_operation", ProviderCall.operation, ProviderCall.error_kind)
