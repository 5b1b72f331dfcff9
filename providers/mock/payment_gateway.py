from typing import Optional

from providers.base import BasePaymentGateway, PaymentError


class MockPaymentGateway(BasePaymentGateway):
    """Checkout fake. The reference carries the charged amount so verify can report it back."""

    name = "mock"

    async def initialize_payment(
        self,
        booking_id: str,
        amount_minor: int,
        currency: str,
        email: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        reference = f"MOCK-{booking_id}-{amount_minor}"
        return {
            "authorization_url": f"https://checkout.mock/{reference}",
            "access_code": "mock-access",
            "reference": reference,
        }

    async def verify_payment(self, reference: str) -> dict:
        _, _, amount = reference.rpartition("-")
        if not reference.startswith("MOCK-") or not amount.isdigit():
            raise PaymentError(f"Unknown mock reference {reference}")
        return {"reference": reference, "status": "success", "amount": int(amount)}
