"""Tests for the location catalog."""
from core.locations import (
    LocationCatalog,
    LocationCode,
    catalog,
    hotel_city_code,
    is_valid_code_format,
    normalize_code,
)


def test_short_query_returns_nothing():
    assert catalog.search("") == []
    assert catalog.search("a") == []
    assert catalog.search(" a ") == []


def test_search_is_case_insensitive():
    results = catalog.search("ACCRA")
    assert results
    assert results[0].code == "ACC"


def test_search_respects_limit():
    assert len(catalog.search("an", limit=3)) <= 3
    assert len(catalog.search("an")) <= 10


def test_search_preserves_catalog_order():
    small = LocationCatalog([
        LocationCode("LHR", "London", "United Kingdom", "Heathrow", "london heathrow lhr"),
        LocationCode("LGW", "London", "United Kingdom", "Gatwick", "london gatwick lgw"),
    ])
    assert [e.code for e in small.search("london")] == ["LHR", "LGW"]


def test_by_code_and_membership():
    assert catalog.by_code("acc").city == "Accra"
    assert "DXB" in catalog
    assert "ZZZ" not in catalog
    assert catalog.by_code("") is None


def test_code_format():
    assert is_valid_code_format("ACC")
    assert not is_valid_code_format("AC")
    assert not is_valid_code_format("AC1")
    assert not is_valid_code_format("acc")
    assert normalize_code(" acc ") == "ACC"


def test_hotel_city_mapping():
    assert hotel_city_code("DWC") == ("DXB", True)
    assert hotel_city_code("zvj") == ("DXB", True)
    assert hotel_city_code("ACC") == ("ACC", False)


def test_catalog_is_populated():
    assert len(catalog) > 50
