"""Search gateway: the only path from intake to the inventory provider.

Location codes are checked against the curated catalog before any network
call. Each search performs one provider call per phase under a caller-level
timeout, and every failure comes back as a typed Result, never an exception.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Iterable, Optional

import httpx

from core.config import settings
from core.errors import DomainError, ErrorKind, Result, map_provider_error
from core.fee_rules import ParticipantCategory, category_for_age
from core.locations import (
    LocationCatalog,
    LocationCode,
    catalog,
    hotel_city_code,
    is_valid_code_format,
    normalize_code,
)
from providers.base import BaseInventoryProvider, ProviderError

logger = logging.getLogger(__name__)

TRAVEL_CLASSES = ("ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST")


@dataclass
class Party:
    adults: int = 1
    children: int = 0
    infants: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants

    @classmethod
    def from_composition(cls, composition: Iterable) -> "Party":
        """Collapse participants to the provider's adult/child/infant counts."""
        adults = children = infants = 0
        for participant in composition:
            category = ParticipantCategory.parse(getattr(participant, "category", None))
            age = getattr(participant, "age_years", None)
            if category is None and age is not None:
                category = category_for_age(age)
            if category == ParticipantCategory.INFANT:
                infants += 1
            elif category in (ParticipantCategory.CHILD, ParticipantCategory.TODDLER):
                children += 1
            else:
                adults += 1
        return cls(adults=adults, children=children, infants=infants)


@dataclass
class FlightSearchRequest:
    origin: str
    destination: str
    departure_date: str
    return_date: Optional[str] = None
    party: Party = field(default_factory=Party)
    travel_class: Optional[str] = None
    max_results: Optional[int] = None
    currency: Optional[str] = None

    def to_provider_params(self) -> dict:
        params = {
            "originLocationCode": normalize_code(self.origin),
            "destinationLocationCode": normalize_code(self.destination),
            "departureDate": self.departure_date,
            "adults": self.party.adults,
            "max": self.max_results or settings.flight_result_cap,
        }
        if self.return_date:
            params["returnDate"] = self.return_date
        if self.party.children:
            params["children"] = self.party.children
        if self.party.infants:
            params["infants"] = self.party.infants
        if self.travel_class:
            params["travelClass"] = self.travel_class.upper()
        if self.currency:
            params["currencyCode"] = self.currency
        return params


@dataclass
class HotelSearchRequest:
    city_code: str
    check_in: str
    check_out: str
    party: Party = field(default_factory=Party)
    rooms: int = 1
    currency: Optional[str] = None


@dataclass
class SearchOffer:
    offer_id: str
    kind: str  # flight | hotel
    total_price: Optional[Decimal]
    currency: Optional[str]
    raw: dict

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "kind": self.kind,
            "total_price": str(self.total_price) if self.total_price is not None else None,
            "currency": self.currency,
            "raw": self.raw,
        }


@dataclass
class SearchResult:
    offers: list[SearchOffer] = field(default_factory=list)
    message: Optional[str] = None
    no_properties: bool = False
    city_mapping: Optional[dict] = None
    meta: Optional[dict] = None


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def flight_offer_from_payload(raw: dict) -> SearchOffer:
    price = raw.get("price") or {}
    return SearchOffer(
        offer_id=str(raw.get("id", "")),
        kind="flight",
        total_price=_decimal(price.get("grandTotal", price.get("total"))),
        currency=price.get("currency"),
        raw=raw,
    )


def data_items(body: Any) -> Optional[list]:
    """The dict entries of a list-shaped provider body, or None when the body is malformed.

    A missing or null "data" is an empty result.
    """
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        return None
    return [item for item in data if isinstance(item, dict)]


def malformed_body(operation: str, body: Any) -> DomainError:
    logger.warning("%s returned a malformed body: %r", operation, body)
    return DomainError.of(ErrorKind.PROVIDER_UNAVAILABLE, {"detail": "malformed provider response", "body": body})


def hotel_offer_from_payload(raw: dict) -> SearchOffer:
    offers = raw.get("offers") or [{}]
    first = offers[0]
    price = first.get("price") or {}
    hotel = raw.get("hotel") or {}
    return SearchOffer(
        offer_id=str(first.get("id") or hotel.get("hotelId", "")),
        kind="hotel",
        total_price=_decimal(price.get("total", price.get("base"))),
        currency=price.get("currency"),
        raw=raw,
    )


async def call_provider(
    operation: str,
    call: Callable[[], Awaitable[Any]],
    timeout: float,
) -> Result[Any]:
    """Run one provider call under a timeout and convert any failure to a DomainError."""
    try:
        body = await asyncio.wait_for(call(), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        logger.warning("%s timed out after %.1fs", operation, timeout)
        return Result.failure(
            DomainError.of(ErrorKind.PROVIDER_TIMEOUT, {"detail": f"timeout after {timeout}s: {exc!r}"})
        )
    except ProviderError as exc:
        error = map_provider_error(exc.body)
        logger.warning(
            "%s failed: HTTP %d mapped to %s, provider body=%s",
            operation, exc.status_code, error.kind.value, exc.body,
        )
        return Result.failure(error)
    except Exception as exc:
        logger.exception("%s failed unexpectedly", operation)
        return Result.failure(DomainError.of(ErrorKind.PROVIDER_UNAVAILABLE, {"detail": repr(exc)}))
    return Result.success(body)


class SearchGateway:
    def __init__(
        self,
        provider: BaseInventoryProvider,
        locations: LocationCatalog = catalog,
        audit_logger=None,  # core.audit_logger.AuditLogger
        timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.locations = locations
        self.audit_logger = audit_logger
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds

    # ── Locations ─────────────────────────────────────────────────────────────

    def search_locations(self, query: str, limit: int = 10) -> list[LocationCode]:
        return self.locations.search(query, limit)

    def _resolve(self, *codes: str) -> Result[list[LocationCode]]:
        """Format check for every code first, then catalog membership."""
        normalized = [normalize_code(c) for c in codes]
        if not all(is_valid_code_format(c) for c in normalized):
            return Result.failure(
                DomainError.of(ErrorKind.INVALID_LOCATION_FORMAT, {"codes": list(codes)})
            )
        resolved = [self.locations.by_code(c) for c in normalized]
        missing = [c for c, entry in zip(normalized, resolved) if entry is None]
        if missing:
            return Result.failure(DomainError.of(ErrorKind.UNKNOWN_LOCATION, {"codes": missing}))
        return Result.success(resolved)

    # ── Flights ───────────────────────────────────────────────────────────────

    async def search_flights(self, request: FlightSearchRequest) -> Result[SearchResult]:
        resolved = self._resolve(request.origin, request.destination)
        if not resolved.ok:
            logger.info(
                "Flight search rejected before provider call: %s (%s → %s)",
                resolved.error.kind.value, request.origin, request.destination,
            )
            return Result.failure(resolved.error)

        params = request.to_provider_params()
        outcome = await call_provider(
            "search_flights",
            lambda: self.provider.search_flight_offers(params),
            self.timeout,
        )
        if not outcome.ok:
            await self._audit("search_flights", params, outcome.error)
            return Result.failure(outcome.error)

        items = data_items(outcome.value)
        if items is None:
            error = malformed_body("search_flights", outcome.value)
            await self._audit("search_flights", params, error)
            return Result.failure(error)
        offers = [flight_offer_from_payload(o) for o in items]
        return Result.success(SearchResult(offers=offers, meta=outcome.value.get("meta")))

    # ── Hotels ────────────────────────────────────────────────────────────────

    async def search_hotels(self, request: HotelSearchRequest) -> Result[SearchResult]:
        if not is_valid_code_format(normalize_code(request.city_code)):
            return Result.failure(
                DomainError.of(ErrorKind.INVALID_LOCATION_FORMAT, {"codes": [request.city_code]})
            )
        city_code, was_mapped = hotel_city_code(request.city_code)
        resolved = self._resolve(city_code)
        if not resolved.ok:
            return Result.failure(resolved.error)

        city_mapping = None
        if was_mapped:
            original = normalize_code(request.city_code)
            logger.info("Hotel search: mapped %s → %s", original, city_code)
            city_mapping = {
                "original_code": original,
                "mapped_code": city_code,
                "message": f"Showing hotels in {city_code} area (nearest city to {original})",
            }

        listing = await call_provider(
            "list_hotels_by_city",
            lambda: self.provider.list_hotels_by_city(city_code),
            self.timeout,
        )
        if not listing.ok:
            await self._audit("search_hotels", {"cityCode": city_code}, listing.error)
            return Result.failure(listing.error)

        candidates = data_items(listing.value)
        if candidates is None:
            error = malformed_body("list_hotels_by_city", listing.value)
            await self._audit("search_hotels", {"cityCode": city_code}, error)
            return Result.failure(error)
        hotel_ids = [h["hotelId"] for h in candidates[: settings.hotel_candidate_limit] if h.get("hotelId")]
        if not hotel_ids:
            return Result.success(SearchResult(
                offers=[],
                message="No hotels found in this city",
                no_properties=True,
                city_mapping=city_mapping,
            ))

        params = {
            "hotelIds": ",".join(hotel_ids),
            "checkInDate": request.check_in,
            "checkOutDate": request.check_out,
            "adults": request.party.adults,
            "roomQuantity": request.rooms or 1,
            "currency": request.currency or settings.provider_currency,
        }
        priced = await call_provider(
            "search_hotel_offers",
            lambda: self.provider.search_hotel_offers(params),
            self.timeout,
        )
        if not priced.ok:
            await self._audit("search_hotels", params, priced.error)
            return Result.failure(priced.error)

        items = data_items(priced.value)
        if items is None:
            error = malformed_body("search_hotel_offers", priced.value)
            await self._audit("search_hotels", params, error)
            return Result.failure(error)
        offers = [hotel_offer_from_payload(o) for o in items]
        return Result.success(SearchResult(offers=offers, city_mapping=city_mapping, meta=priced.value.get("meta")))

    async def _audit(self, operation: str, request: dict, error: DomainError) -> None:
        if self.audit_logger is None:
            return
        try:
            await self.audit_logger.log_provider_failure(self.provider.name, operation, request, error)
        except Exception:
            logger.exception("Could not record provider failure for %s", operation)
