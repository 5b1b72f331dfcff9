"""Location autocomplete, inventory search, price reconfirmation, reservation booking and package quotes."""
import logging
import uuid
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.routes.bookings import handoff_response
from api.schemas import (
    ConfirmedOfferOut,
    FlightBookIn,
    FlightSearchIn,
    HandoffOut,
    HotelBookIn,
    HotelSearchIn,
    LocationOut,
    OfferIn,
    OfferOut,
    PackageQuoteIn,
    PackageQuoteOut,
    PartyIn,
    PricingOut,
    SearchResponse,
)
from core.audit_logger import AuditLogger
from core.booking_handoff import BookingHandoff, reservation_submission
from core.config import settings
from core.errors import DomainError, ErrorKind, Result
from core.fee_rules import compute_package_pricing
from core.price_confirmation import ConfirmedOffer, PriceConfirmation
from core.record_store import RecordStore
from core.search_gateway import (
    FlightSearchRequest,
    HotelSearchRequest,
    Party,
    SearchGateway,
    SearchOffer,
    SearchResult,
)
from db.database import get_db
from providers.base import BaseInventoryProvider, BasePaymentGateway
from providers.factory import get_inventory_provider, get_payment_gateway

router = APIRouter(prefix="/reservations", tags=["reservations"])
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorKind.INVALID_LOCATION_FORMAT: 400,
    ErrorKind.UNKNOWN_LOCATION: 400,
    ErrorKind.PROVIDER_TIMEOUT: 504,
    ErrorKind.PROVIDER_UNAVAILABLE: 502,
    ErrorKind.PRICE_DRIFTED: 409,
}

# Searches that found nothing are answered with an empty list, not an error status
EMPTY_RESULT_KINDS = {ErrorKind.NO_INVENTORY_FOR_ROUTE, ErrorKind.NO_INVENTORY_FOR_DATES}


def _raise_for(error: DomainError) -> NoReturn:
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(error.kind, 502),
        detail=error.to_public_dict(),
    )


def _search_response(result: Result[SearchResult]) -> SearchResponse:
    if not result.ok:
        if result.error.kind in EMPTY_RESULT_KINDS:
            return SearchResponse(
                offers=[], message=result.error.user_message, error_kind=result.error.kind.value
            )
        _raise_for(result.error)
    found = result.value
    return SearchResponse(
        offers=[OfferOut(**o.to_dict()) for o in found.offers],
        message=found.message,
        no_properties=found.no_properties,
        city_mapping=found.city_mapping,
    )


def _offer_from_body(body: OfferIn, kind: str) -> SearchOffer:
    return SearchOffer(
        offer_id=body.offer_id,
        kind=kind,
        total_price=body.total_price,
        currency=body.currency,
        raw=body.raw,
    )


# ── Locations ─────────────────────────────────────────────────────────────────

@router.get("/locations/search", response_model=list[LocationOut])
async def search_locations(
    keyword: str = Query(default=""),
    limit: int = Query(default=10, ge=1, le=50),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
):
    gateway = SearchGateway(provider)
    return [LocationOut(**entry.to_dict()) for entry in gateway.search_locations(keyword, limit)]


# ── Search ────────────────────────────────────────────────────────────────────

@router.post("/flights/search", response_model=SearchResponse)
async def search_flights(
    body: FlightSearchIn,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
):
    gateway = SearchGateway(provider, audit_logger=AuditLogger(db))
    request = FlightSearchRequest(
        origin=body.origin,
        destination=body.destination,
        departure_date=body.departure_date,
        return_date=body.return_date,
        party=Party(**body.party.model_dump()),
        travel_class=body.travel_class,
        max_results=body.max_results,
        currency=settings.provider_currency,
    )
    return _search_response(await gateway.search_flights(request))


@router.post("/hotels/search", response_model=SearchResponse)
async def search_hotels(
    body: HotelSearchIn,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
):
    gateway = SearchGateway(provider, audit_logger=AuditLogger(db))
    request = HotelSearchRequest(
        city_code=body.city_code,
        check_in=body.check_in,
        check_out=body.check_out,
        party=Party(**body.party.model_dump()),
        rooms=body.rooms,
    )
    return _search_response(await gateway.search_hotels(request))


# ── Pricing and booking ───────────────────────────────────────────────────────

async def _reconfirm(confirmer: PriceConfirmation, body: OfferIn, kind: str) -> ConfirmedOffer:
    result = await confirmer.reconfirm(_offer_from_body(body, kind))
    if not result.ok:
        _raise_for(result.error)
    return result.value


async def _book(
    db: AsyncSession,
    provider: BaseInventoryProvider,
    payment_gateway: BasePaymentGateway,
    response: Response,
    offer: OfferIn,
    kind: str,
    party: PartyIn,
    payload: dict,
    submission_id: Optional[str],
    contact_email: Optional[str],
    accepted_total,
) -> HandoffOut:
    """Reconfirm the offer, then hand the priced reservation to the booking handoff."""
    confirmer = PriceConfirmation(provider, audit_logger=AuditLogger(db))
    confirmed = await _reconfirm(confirmer, offer, kind)

    submission = reservation_submission(
        confirmed,
        submission_id=submission_id or str(uuid.uuid4()),
        payload={"party": party.model_dump(), **payload},
        participant_count=Party(**party.model_dump()).total,
        exchange_rate=settings.exchange_rate,
        service_fee_rate=settings.service_fee_rate,
        currency=settings.currency,
        contact_email=contact_email,
        form_key=kind,
    )
    handoff = BookingHandoff(RecordStore(db), payment_gateway)
    result = await handoff.submit(submission, confirmed_offer=confirmed, accepted_total=accepted_total)
    return handoff_response(result, response, quoted_fee=str(submission.amount))


@router.post("/flights/price", response_model=ConfirmedOfferOut)
async def price_flight(
    body: OfferIn,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
):
    """Reconfirm a selected offer. A changed price is reported here and refused at booking."""
    confirmer = PriceConfirmation(provider, audit_logger=AuditLogger(db))
    return ConfirmedOfferOut(**(await _reconfirm(confirmer, body, "flight")).to_dict())


@router.post("/hotels/price", response_model=ConfirmedOfferOut)
async def price_hotel(
    body: OfferIn,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
):
    confirmer = PriceConfirmation(provider, audit_logger=AuditLogger(db))
    return ConfirmedOfferOut(**(await _reconfirm(confirmer, body, "hotel")).to_dict())


@router.post("/flights/book", response_model=HandoffOut)
async def book_flight(
    body: FlightBookIn,
    response: Response,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
    payment_gateway: BasePaymentGateway = Depends(get_payment_gateway),
):
    return await _book(
        db, provider, payment_gateway, response,
        offer=body.offer,
        kind="flight",
        party=body.party,
        payload={"travelers": body.travelers},
        submission_id=body.submission_id,
        contact_email=body.contact_email,
        accepted_total=body.accepted_total,
    )


@router.post("/hotels/book", response_model=HandoffOut)
async def book_hotel(
    body: HotelBookIn,
    response: Response,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
    payment_gateway: BasePaymentGateway = Depends(get_payment_gateway),
):
    return await _book(
        db, provider, payment_gateway, response,
        offer=body.offer,
        kind="hotel",
        party=body.party,
        payload={"check_in": body.check_in, "check_out": body.check_out, "guests": body.guests},
        submission_id=body.submission_id,
        contact_email=body.contact_email,
        accepted_total=body.accepted_total,
    )


@router.post("/packages/quote", response_model=PackageQuoteOut)
async def quote_package(
    body: PackageQuoteIn,
    db: AsyncSession = Depends(get_db),
    provider: BaseInventoryProvider = Depends(get_inventory_provider),
):
    """Flight + hotel bundle priced from both reconfirmed totals, with the package discount."""
    confirmer = PriceConfirmation(provider, audit_logger=AuditLogger(db))
    flight = await _reconfirm(confirmer, body.flight_offer, "flight")
    hotel = await _reconfirm(confirmer, body.hotel_offer, "hotel")
    pricing = compute_package_pricing(
        flight.confirmed_total,
        hotel.confirmed_total,
        settings.exchange_rate,
        settings.service_fee_rate,
        settings.package_discount_rate,
    )
    return PackageQuoteOut(
        flight=ConfirmedOfferOut(**flight.to_dict()),
        hotel=ConfirmedOfferOut(**hotel.to_dict()),
        pricing=PricingOut(**pricing.to_dict()),
        currency=settings.currency,
        price_changed=flight.price_changed or hotel.price_changed,
    )
