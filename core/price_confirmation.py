"""Price reconfirmation of the selected offer immediately before payment.

Offer prices move between search and checkout. A drifted price is never
absorbed: the confirmation reports both totals and the handoff refuses to
charge until the client accepts that exact new total.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Optional

from core.config import settings
from core.errors import DomainError, ErrorKind, Result
from core.search_gateway import (
    SearchOffer,
    call_provider,
    flight_offer_from_payload,
    hotel_offer_from_payload,
    malformed_body,
)
from providers.base import BaseInventoryProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmedOffer:
    offer_id: str
    original_total: Optional[Decimal]
    confirmed_total: Decimal
    currency: Optional[str]
    price_changed: bool
    raw: dict

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "original_total": str(self.original_total) if self.original_total is not None else None,
            "confirmed_total": str(self.confirmed_total),
            "currency": self.currency,
            "price_changed": self.price_changed,
        }


class PriceConfirmation:
    """Reconfirms each selected offer once per checkout."""

    def __init__(
        self,
        provider: BaseInventoryProvider,
        audit_logger=None,  # core.audit_logger.AuditLogger
        timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.audit_logger = audit_logger
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._confirmed: dict[str, ConfirmedOffer] = {}

    async def reconfirm(self, offer: SearchOffer) -> Result[ConfirmedOffer]:
        if offer.offer_id in self._confirmed:
            return Result.success(self._confirmed[offer.offer_id])

        if offer.kind == "flight":
            parse = _priced_flight
            call = partial(self.provider.price_flight_offer, offer.raw)
        elif offer.kind == "hotel":
            parse = _priced_hotel
            call = partial(self.provider.price_hotel_offer, offer.offer_id)
        else:
            error = DomainError.of(ErrorKind.PROVIDER_UNAVAILABLE, {"detail": f"cannot reconfirm {offer.kind} offers"})
            logger.warning("Offer %s has kind %r, which has no pricing endpoint", offer.offer_id, offer.kind)
            return Result.failure(error)

        outcome = await call_provider("reconfirm", call, self.timeout)
        if not outcome.ok:
            await self._audit(offer, outcome.error)
            return Result.failure(outcome.error)

        priced = parse(outcome.value)
        if priced is None or priced.total_price is None:
            error = malformed_body("reconfirm", outcome.value)
            await self._audit(offer, error)
            return Result.failure(error)

        changed = offer.total_price is None or priced.total_price != offer.total_price
        if changed:
            logger.warning(
                "Price drift on offer %s: %s → %s %s",
                offer.offer_id, offer.total_price, priced.total_price, priced.currency,
            )
        confirmed = ConfirmedOffer(
            offer_id=offer.offer_id,
            original_total=offer.total_price,
            confirmed_total=priced.total_price,
            currency=priced.currency or offer.currency,
            price_changed=changed,
            raw=priced.raw,
        )
        self._confirmed[offer.offer_id] = confirmed
        return Result.success(confirmed)

    async def _audit(self, offer: SearchOffer, error: DomainError) -> None:
        if self.audit_logger is None:
            return
        try:
            await self.audit_logger.log_provider_failure(
                self.provider.name, "reconfirm", {"offer_id": offer.offer_id}, error
            )
        except Exception:
            logger.exception("Could not record provider failure for reconfirm")


def _data(body) -> dict:
    data = body.get("data") if isinstance(body, dict) else None
    return data if isinstance(data, dict) else {}


def _priced_flight(body) -> Optional[SearchOffer]:
    offers = _data(body).get("flightOffers")
    if not isinstance(offers, list) or not offers or not isinstance(offers[0], dict):
        return None
    return flight_offer_from_payload(offers[0])


def _priced_hotel(body) -> Optional[SearchOffer]:
    data = _data(body)
    if not isinstance(data.get("offers"), list) or not data["offers"] or not isinstance(data["offers"][0], dict):
        return None
    return hotel_offer_from_payload(data)
