"""Tests for mock collaborators, the factory, and the real clients over a mocked transport."""
import json

import httpx
import pytest

from providers.base import PaymentError, ProviderError
from providers.factory import get_inventory_provider, get_payment_gateway
from providers.mock.inventory_provider import MockInventoryProvider
from providers.mock.payment_gateway import MockPaymentGateway
from providers.real.amadeus import AmadeusInventoryProvider
from providers.real.paystack import PaystackPaymentGateway

TOKEN_RESPONSE = {"access_token": "tok-123", "expires_in": 1799}


# ── Mocks ──────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_mock_flight_offers_scale_with_party():
    provider = MockInventoryProvider()
    body = await provider.search_flight_offers({
        "originLocationCode": "ACC", "destinationLocationCode": "LHR",
        "departureDate": "2026-12-01", "adults": 2, "children": 1, "max": 20,
    })
    assert [o["price"]["grandTotal"] for o in body["data"]] == ["1837.20", "1644.45"]


@pytest.mark.asyncio
async def test_mock_hotel_list_for_unknown_city_is_empty():
    body = await MockInventoryProvider().list_hotels_by_city("KMS")
    assert body == {"data": []}


@pytest.mark.asyncio
async def test_mock_pricing_echoes_offer():
    offer = {"id": "1", "price": {"grandTotal": "612.40"}}
    body = await MockInventoryProvider().price_flight_offer(offer)
    assert body["data"]["flightOffers"] == [offer]


@pytest.mark.asyncio
async def test_mock_hotel_repricing_matches_search():
    provider = MockInventoryProvider()
    searched = await provider.search_hotel_offers({
        "hotelIds": "ACCKEMP1,ACCLABAD", "checkInDate": "2026-12-01", "checkOutDate": "2026-12-04",
    })
    body = await provider.price_hotel_offer("OFFER-ACCLABAD")

    assert body["data"]["hotel"]["hotelId"] == "ACCLABAD"
    assert body["data"]["offers"][0]["price"]["total"] == searched["data"][1]["offers"][0]["price"]["total"]


@pytest.mark.asyncio
async def test_mock_hotel_repricing_unknown_offer_id():
    with pytest.raises(ProviderError) as exc_info:
        await MockInventoryProvider().price_hotel_offer("XYZ")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_mock_payment_round_trip():
    gateway = MockPaymentGateway()
    payment = await gateway.initialize_payment("b-1", 50000, "GHS")
    assert payment["reference"] == "MOCK-b-1-50000"
    verified = await gateway.verify_payment(payment["reference"])
    assert verified == {"reference": "MOCK-b-1-50000", "status": "success", "amount": 50000}


@pytest.mark.asyncio
async def test_mock_verify_rejects_unknown_reference():
    with pytest.raises(PaymentError):
        await MockPaymentGateway().verify_payment("BOOKING-b-1-1")


def test_factory_defaults_to_mocks():
    assert isinstance(get_inventory_provider(), MockInventoryProvider)
    assert isinstance(get_payment_gateway(), MockPaymentGateway)


def test_factory_returns_real_clients(monkeypatch):
    from providers import factory

    monkeypatch.setattr(factory.settings, "use_real_apis", True)
    assert isinstance(get_inventory_provider(), AmadeusInventoryProvider)
    assert isinstance(get_payment_gateway(), PaystackPaymentGateway)


# ── Amadeus over MockTransport ─────────────────────────────────────────────────

def _amadeus(handler):
    return AmadeusInventoryProvider(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_amadeus_flight_search_sends_token_and_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json=TOKEN_RESPONSE)
        return httpx.Response(200, json={"data": [{"id": "1"}], "meta": {"count": 1}})

    provider = _amadeus(handler)
    body = await provider.search_flight_offers({"originLocationCode": "ACC", "adults": 1})

    assert body["data"] == [{"id": "1"}]
    search = seen[-1]
    assert search.url.path == "/v2/shopping/flight-offers"
    assert search.url.params["originLocationCode"] == "ACC"
    assert search.headers["authorization"] == "Bearer tok-123"


@pytest.mark.asyncio
async def test_amadeus_token_is_cached():
    token_calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            token_calls.append(request)
            return httpx.Response(200, json=TOKEN_RESPONSE)
        return httpx.Response(200, json={"data": []})

    provider = _amadeus(handler)
    await provider.list_hotels_by_city("ACC")
    await provider.search_hotel_offers({"hotelIds": "A"})
    assert len(token_calls) == 1


@pytest.mark.asyncio
async def test_amadeus_error_raises_with_body_and_no_retry():
    calls = []
    error_body = {"errors": [{"code": 141, "title": "SYSTEM ERROR HAS OCCURRED"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json=TOKEN_RESPONSE)
        calls.append(request)
        return httpx.Response(400, json=error_body)

    with pytest.raises(ProviderError) as exc_info:
        await _amadeus(handler).search_flight_offers({})

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == error_body
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_amadeus_non_json_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json=TOKEN_RESPONSE)
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    with pytest.raises(ProviderError) as exc_info:
        await _amadeus(handler).list_hotels_by_city("ACC")
    assert exc_info.value.body == {"raw": "<html>Bad Gateway</html>"}


@pytest.mark.asyncio
async def test_amadeus_pricing_posts_offer():
    posted = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json=TOKEN_RESPONSE)
        posted.append(json.loads(request.content))
        return httpx.Response(200, json={"data": {"flightOffers": [{"id": "1"}]}})

    await _amadeus(handler).price_flight_offer({"id": "1"})

    assert posted[0]["data"]["type"] == "flight-offers-pricing"
    assert posted[0]["data"]["flightOffers"] == [{"id": "1"}]


@pytest.mark.asyncio
async def test_amadeus_hotel_pricing_fetches_offer_by_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json=TOKEN_RESPONSE)
        seen.append(request)
        return httpx.Response(200, json={"data": {"offers": [{"id": "OFF1"}]}})

    body = await _amadeus(handler).price_hotel_offer("OFF1")

    assert seen[0].method == "GET"
    assert seen[0].url.path == "/v3/shopping/hotel-offers/OFF1"
    assert body["data"]["offers"] == [{"id": "OFF1"}]


# ── Paystack over MockTransport ────────────────────────────────────────────────

def _paystack(handler, monkeypatch, key="sk_test_abc"):
    from providers.real import paystack

    monkeypatch.setattr(paystack.settings, "paystack_secret_key", key)
    return PaystackPaymentGateway(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_paystack_initialize(monkeypatch):
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={
            "status": True,
            "data": {"authorization_url": "https://checkout.paystack.com/x", "access_code": "x", "reference": "BOOKING-b-1-1"},
        })

    gateway = _paystack(handler, monkeypatch)
    payment = await gateway.initialize_payment("b-1", 125000, "GHS", email="ama@example.com")

    assert payment["authorization_url"] == "https://checkout.paystack.com/x"
    assert sent[0]["amount"] == 125000
    assert sent[0]["reference"].startswith("BOOKING-b-1-")
    assert sent[0]["callback_url"].endswith("/payment/verify?bookingId=b-1")
    assert sent[0]["metadata"]["booking_id"] == "b-1"


@pytest.mark.asyncio
async def test_paystack_without_key_raises(monkeypatch):
    gateway = _paystack(lambda request: httpx.Response(200), monkeypatch, key="")
    with pytest.raises(PaymentError):
        await gateway.initialize_payment("b-1", 100, "GHS")


@pytest.mark.asyncio
async def test_paystack_rejection_raises(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"status": False, "message": "Invalid key"})

    with pytest.raises(PaymentError, match="Invalid key"):
        await _paystack(handler, monkeypatch).initialize_payment("b-1", 100, "GHS")


@pytest.mark.asyncio
async def test_paystack_unreachable_raises(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    with pytest.raises(PaymentError):
        await _paystack(handler, monkeypatch).initialize_payment("b-1", 100, "GHS")


@pytest.mark.asyncio
async def test_paystack_verify(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/transaction/verify/REF-1"
        return httpx.Response(200, json={"status": True, "data": {"reference": "REF-1", "status": "success", "amount": 125000}})

    result = await _paystack(handler, monkeypatch).verify_payment("REF-1")
    assert result == {"reference": "REF-1", "status": "success", "amount": 125000}
