"""Amadeus Self-Service inventory provider: real API integration.

Flight Offers Search v2, Hotel List by city, Hotel Search v3 and Flight
Offers Price. Credentials come from settings; the short-lived OAuth2 token is
cached and refreshed here. Every public call performs exactly one request:
retries are a caller-level policy.
"""
import json
import logging
import time
from typing import Optional

import httpx

from core.config import settings
from providers.base import BaseInventoryProvider, ProviderError

logger = logging.getLogger(__name__)


class AmadeusInventoryProvider(BaseInventoryProvider):
    name = "amadeus"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client_id = settings.amadeus_client_id
        self._client_secret = settings.amadeus_client_secret
        self._hostname = settings.amadeus_hostname
        self._base_url = f"https://{self._hostname}"
        self._transport = transport
        self._token: Optional[str] = None
        self._token_expires_at: float = 0
        self._is_sandbox = "test" in self._hostname

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=settings.provider_timeout_seconds,
            transport=self._transport,
        )

    async def _ensure_token(self) -> str:
        """OAuth2 client_credentials token refresh."""
        if self._token and time.time() < self._token_expires_at:
            return self._token

        async with self._client() as client:
            resp = await client.post(
                "/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        if resp.status_code >= 400:
            raise ProviderError(resp.status_code, _body(resp))
        data = resp.json()
        self._token = data["access_token"]
        self._token_expires_at = time.time() + data.get("expires_in", 1799) - 60
        logger.info("Amadeus token refreshed")
        return self._token

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        """One authenticated request. Non-2xx responses raise ProviderError with the body."""
        token = await self._ensure_token()
        headers = {"Authorization": f"Bearer {token}"}
        headers.update(kwargs.pop("headers", {}))

        async with self._client() as client:
            resp = await client.request(method, path, headers=headers, **kwargs)

        if resp.status_code >= 400:
            body = _body(resp)
            logger.warning("Amadeus %s %s failed with %d", method, path, resp.status_code)
            raise ProviderError(resp.status_code, body)
        return resp.json()

    async def search_flight_offers(self, params: dict) -> dict:
        return await self._request("GET", "/v2/shopping/flight-offers", params=params)

    async def list_hotels_by_city(self, city_code: str) -> dict:
        return await self._request(
            "GET",
            "/v1/reference-data/locations/hotels/by-city",
            params={"cityCode": city_code},
        )

    async def search_hotel_offers(self, params: dict) -> dict:
        return await self._request("GET", "/v3/shopping/hotel-offers", params=params)

    async def price_hotel_offer(self, offer_id: str) -> dict:
        return await self._request("GET", f"/v3/shopping/hotel-offers/{offer_id}")

    async def price_flight_offer(self, flight_offer: dict) -> dict:
        body = {
            "data": {
                "type": "flight-offers-pricing",
                "flightOffers": [flight_offer],
            }
        }
        return await self._request(
            "POST",
            "/v1/shopping/flight-offers/pricing",
            content=json.dumps(body),
            headers={"Content-Type": "application/json", "X-HTTP-Method-Override": "GET"},
        )


def _body(resp: httpx.Response):
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}
