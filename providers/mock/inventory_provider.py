from decimal import Decimal

from providers.base import BaseInventoryProvider, ProviderError

MOCK_HOTELS = {
    "ACC": ["ACCKEMP1", "ACCLABAD", "ACCMOVEN"],
    "DXB": ["DXBATLAN", "DXBBURJ1"],
    "LHR": ["LONSAVOY", "LONRITZ1"],
    "LON": ["LONSAVOY", "LONRITZ1"],
    "CDG": ["PARPLAZA"],
}

# Nightly stay totals in USD, keyed by hotel id.
MOCK_HOTEL_PRICES = {
    "ACCKEMP1": "180.00",
    "ACCLABAD": "225.00",
    "ACCMOVEN": "270.00",
    "DXBATLAN": "180.00",
    "DXBBURJ1": "225.00",
    "LONSAVOY": "180.00",
    "LONRITZ1": "225.00",
    "PARPLAZA": "180.00",
}
DEFAULT_HOTEL_PRICE = "150.00"
OFFER_PREFIX = "OFFER-"


def _hotel_offer(hotel_id: str, currency: str, check_in=None, check_out=None) -> dict:
    offer = {
        "id": f"{OFFER_PREFIX}{hotel_id}",
        "price": {"currency": currency, "total": MOCK_HOTEL_PRICES.get(hotel_id, DEFAULT_HOTEL_PRICE)},
    }
    if check_in:
        offer["checkInDate"] = check_in
    if check_out:
        offer["checkOutDate"] = check_out
    return {
        "type": "hotel-offers",
        "available": True,
        "hotel": {"hotelId": hotel_id, "name": f"Mock Hotel {hotel_id}"},
        "offers": [offer],
    }


class MockInventoryProvider(BaseInventoryProvider):
    """Deterministic offers shaped like the real provider's payloads."""

    name = "mock"

    async def search_flight_offers(self, params: dict) -> dict:
        origin = params["originLocationCode"]
        destination = params["destinationLocationCode"]
        travelers = params.get("adults", 1) + params.get("children", 0)
        cabin = params.get("travelClass", "ECONOMY")
        offers = []
        for idx, (carrier, unit_price) in enumerate((("KQ", "612.40"), ("ET", "548.15"))):
            total = f"{Decimal(unit_price) * travelers:.2f}"
            offers.append({
                "type": "flight-offer",
                "id": str(idx + 1),
                "source": "GDS",
                "validatingAirlineCodes": [carrier],
                "numberOfBookableSeats": 9,
                "itineraries": [{
                    "duration": "PT7H30M",
                    "segments": [{
                        "departure": {"iataCode": origin, "at": f"{params['departureDate']}T09:00:00"},
                        "arrival": {"iataCode": destination, "at": f"{params['departureDate']}T16:30:00"},
                        "carrierCode": carrier,
                        "number": str(100 + idx),
                    }],
                }],
                "price": {"currency": params.get("currencyCode", "USD"), "total": total, "grandTotal": total},
                "travelerPricings": [{"fareDetailsBySegment": [{"cabin": cabin}]}],
            })
        return {"data": offers[: params.get("max", len(offers))], "meta": {"count": len(offers)}}

    async def list_hotels_by_city(self, city_code: str) -> dict:
        return {
            "data": [
                {"hotelId": hotel_id, "name": f"Mock Hotel {hotel_id}", "iataCode": city_code}
                for hotel_id in MOCK_HOTELS.get(city_code, [])
            ]
        }

    async def search_hotel_offers(self, params: dict) -> dict:
        currency = params.get("currency", "USD")
        return {
            "data": [
                _hotel_offer(hotel_id, currency, params["checkInDate"], params["checkOutDate"])
                for hotel_id in params["hotelIds"].split(",")
            ]
        }

    async def price_flight_offer(self, flight_offer: dict) -> dict:
        return {
            "data": {
                "type": "flight-offers-pricing",
                "flightOffers": [flight_offer],
            }
        }

    async def price_hotel_offer(self, offer_id: str) -> dict:
        if not offer_id.startswith(OFFER_PREFIX):
            raise ProviderError(404, {"errors": [{"code": 1257, "title": "INVALID OFFER ID"}]})
        return {"data": _hotel_offer(offer_id[len(OFFER_PREFIX):], "USD")}
