"""Paystack payment gateway: transaction initialize / verify.

Amounts are passed in the lowest currency unit (pesewas for GHS).
"""
import logging
import time
from typing import Optional

import httpx

from core.config import settings
from providers.base import BasePaymentGateway, PaymentError

logger = logging.getLogger(__name__)


class PaystackPaymentGateway(BasePaymentGateway):
    name = "paystack"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # Keys pasted from dashboards sometimes carry stray newlines
        self._secret_key = settings.paystack_secret_key.strip().replace("\r", "").replace("\n", "")
        self._base_url = settings.paystack_base_url
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=settings.provider_timeout_seconds,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._secret_key}",
                "Content-Type": "application/json; charset=utf-8",
            },
        )

    async def initialize_payment(
        self,
        booking_id: str,
        amount_minor: int,
        currency: str,
        email: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        if not self._secret_key:
            raise PaymentError("Payment system not configured")

        payload = {
            "email": email,
            "amount": amount_minor,
            "currency": currency,
            "reference": f"BOOKING-{booking_id}-{int(time.time() * 1000)}",
            "callback_url": f"{settings.app_url}/payment/verify?bookingId={booking_id}",
            "metadata": {"booking_id": booking_id, **(metadata or {})},
        }
        logger.info("Initializing Paystack payment for booking %s (%d %s)", booking_id, amount_minor, currency)

        try:
            async with self._client() as client:
                resp = await client.post("/transaction/initialize", json=payload)
        except httpx.HTTPError as exc:
            raise PaymentError(f"Payment gateway unreachable: {exc}") from exc

        data = resp.json() if resp.content else {}
        if resp.status_code >= 400 or not data.get("status"):
            logger.warning("Paystack initialization failed for booking %s: %s", booking_id, data)
            raise PaymentError(data.get("message") or "Failed to initialize payment")

        return {
            "authorization_url": data["data"]["authorization_url"],
            "access_code": data["data"].get("access_code"),
            "reference": data["data"]["reference"],
        }

    async def verify_payment(self, reference: str) -> dict:
        try:
            async with self._client() as client:
                resp = await client.get(f"/transaction/verify/{reference}")
        except httpx.HTTPError as exc:
            raise PaymentError(f"Payment gateway unreachable: {exc}") from exc

        data = resp.json() if resp.content else {}
        if resp.status_code >= 400 or not data.get("status"):
            raise PaymentError(data.get("message") or "Failed to verify payment")

        tx = data.get("data", {})
        return {
            "reference": tx.get("reference", reference),
            "status": tx.get("status", "failed"),
            "amount": tx.get("amount", 0),
        }
