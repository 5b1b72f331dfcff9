from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from core.search_gateway import TRAVEL_CLASSES

MAX_PARTY_SIZE = 9


# ── Reservations ───────────────────────────────────────────────────────────────

class PartyIn(BaseModel):
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_composition(self) -> "PartyIn":
        if self.infants > self.adults:
            raise ValueError("Each infant must travel with an adult")
        if self.adults + self.children + self.infants > MAX_PARTY_SIZE:
            raise ValueError(f"A search can include at most {MAX_PARTY_SIZE} travelers")
        return self


class FlightSearchIn(BaseModel):
    origin: str
    destination: str
    departure_date: str
    return_date: Optional[str] = None
    party: PartyIn = Field(default_factory=PartyIn)
    travel_class: Optional[str] = None
    max_results: Optional[int] = Field(default=None, ge=1, le=250)

    @field_validator("travel_class")
    @classmethod
    def check_travel_class(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        if value not in TRAVEL_CLASSES:
            raise ValueError(f"travel_class must be one of {', '.join(TRAVEL_CLASSES)}")
        return value


class HotelSearchIn(BaseModel):
    city_code: str
    check_in: str
    check_out: str
    party: PartyIn = Field(default_factory=PartyIn)
    rooms: int = Field(default=1, ge=1)


class LocationOut(BaseModel):
    code: str
    city: str
    country: str
    airport: Optional[str] = None


class OfferIn(BaseModel):
    offer_id: str
    total_price: Optional[Decimal] = None
    currency: Optional[str] = None
    raw: Dict[str, Any]


class OfferOut(BaseModel):
    offer_id: str
    kind: str
    total_price: Optional[str] = None
    currency: Optional[str] = None
    raw: Dict[str, Any]


class SearchResponse(BaseModel):
    offers: List[OfferOut] = []
    message: Optional[str] = None
    error_kind: Optional[str] = None
    no_properties: bool = False
    city_mapping: Optional[Dict[str, Any]] = None


class ConfirmedOfferOut(BaseModel):
    offer_id: str
    original_total: Optional[str] = None
    confirmed_total: str
    currency: Optional[str] = None
    price_changed: bool


class FlightBookIn(BaseModel):
    offer: OfferIn
    party: PartyIn = Field(default_factory=PartyIn)
    submission_id: Optional[str] = None
    contact_email: Optional[str] = None
    travelers: List[Dict[str, Any]] = []
    # Reconfirmed total the client agreed to after a price change
    accepted_total: Optional[Decimal] = None


class HotelBookIn(BaseModel):
    offer: OfferIn
    party: PartyIn = Field(default_factory=PartyIn)
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    submission_id: Optional[str] = None
    contact_email: Optional[str] = None
    guests: List[Dict[str, Any]] = []
    accepted_total: Optional[Decimal] = None


class PackageQuoteIn(BaseModel):
    flight_offer: OfferIn
    hotel_offer: OfferIn


class PricingOut(BaseModel):
    base_price: str
    base_price_local: str
    service_fee: str
    total_amount: str
    exchange_rate: str
    package_discount: str
    final_total: str


class PackageQuoteOut(BaseModel):
    flight: ConfirmedOfferOut
    hotel: ConfirmedOfferOut
    pricing: PricingOut
    currency: str
    price_changed: bool


# ── Intake ─────────────────────────────────────────────────────────────────────

class ParticipantIn(BaseModel):
    display_name: str = ""
    age_years: Optional[int] = None
    category: Optional[str] = None
    nationality: str = ""
    special_needs: Optional[str] = None

    # Form-specific applicant fields (passport status, refusal details, ...)
    model_config = {"extra": "allow"}


class QuoteIn(BaseModel):
    participants: List[ParticipantIn] = []


class QuoteOut(BaseModel):
    form_key: str
    participant_count: int
    quoted_fee: str
    currency: str
    submit_label: str


class IntakeSubmitIn(BaseModel):
    submission_id: Optional[str] = None
    values: Dict[str, Any] = {}
    participants: List[ParticipantIn] = []


# ── Bookings ───────────────────────────────────────────────────────────────────

class HandoffOut(BaseModel):
    status: str
    booking_id: Optional[str] = None
    redirect_url: Optional[str] = None
    payment_reference: Optional[str] = None
    message: Optional[str] = None
    error_kind: Optional[str] = None
    quoted_fee: Optional[str] = None
    details: Dict[str, Any] = {}


class BookingRead(BaseModel):
    id: str
    submission_id: str
    form_key: str
    payload: Dict[str, Any]
    participant_count: int
    total_amount: Decimal
    currency: str
    payment_status: str
    payment_reference: Optional[str] = None
    offer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingUpdate(BaseModel):
    values: Dict[str, Any] = {}
    participants: List[ParticipantIn] = []


class PaymentVerifyIn(BaseModel):
    reference: Optional[str] = None
