"""Base ABCs for the external collaborators: travel inventory and payment."""
from abc import ABC, abstractmethod
from typing import Any, Optional


class ProviderError(Exception):
    """Raised by inventory providers on a non-2xx response; carries the raw body."""

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Provider returned HTTP {status_code}")


class PaymentError(Exception):
    """Raised by payment gateways when a transaction cannot be initialized or verified."""


class BaseInventoryProvider(ABC):
    """Flight/hotel inventory: one method per provider endpoint, raw payloads in and out."""

    name: str = "inventory"

    @abstractmethod
    async def search_flight_offers(self, params: dict) -> dict:
        """Flight offers search. Returns the provider body ({"data": [...], "meta": ...})."""

    @abstractmethod
    async def list_hotels_by_city(self, city_code: str) -> dict:
        """Hotel list for a city code ({"data": [{"hotelId": ...}, ...]})."""

    @abstractmethod
    async def search_hotel_offers(self, params: dict) -> dict:
        """Priced offers for a set of hotel ids."""

    @abstractmethod
    async def price_flight_offer(self, flight_offer: dict) -> dict:
        """Re-price one previously returned flight offer."""

    @abstractmethod
    async def price_hotel_offer(self, offer_id: str) -> dict:
        """Look up one hotel offer by id at its current price ({"data": {"hotel": ..., "offers": [...]}})."""


class BasePaymentGateway(ABC):
    """Accepts an amount and a booking id, returns a redirect target."""

    name: str = "payment"

    @abstractmethod
    async def initialize_payment(
        self,
        booking_id: str,
        amount_minor: int,
        currency: str,
        email: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        """Returns {"authorization_url": ..., "reference": ...}. Raises PaymentError."""

    @abstractmethod
    async def verify_payment(self, reference: str) -> dict:
        """Returns {"reference": ..., "status": "success" | "failed" | ..., "amount": int}."""
