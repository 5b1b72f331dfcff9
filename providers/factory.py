"""Provider factory: returns mock or real collaborators based on USE_REAL_APIS."""
from core.config import settings
from providers.base import BaseInventoryProvider, BasePaymentGateway


def _use_real() -> bool:
    return settings.use_real_apis


def get_inventory_provider() -> BaseInventoryProvider:
    """Return the active inventory provider. Mock by default."""
    if _use_real():
        from providers.real.amadeus import AmadeusInventoryProvider
        return AmadeusInventoryProvider()
    from providers.mock.inventory_provider import MockInventoryProvider
    return MockInventoryProvider()


def get_payment_gateway() -> BasePaymentGateway:
    if _use_real():
        from providers.real.paystack import PaystackPaymentGateway
        return PaystackPaymentGateway()
    from providers.mock.payment_gateway import MockPaymentGateway
    return MockPaymentGateway()
