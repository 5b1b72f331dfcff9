"""Tests for AuditLogger – append-only provider failure trail."""
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from core.audit_logger import AuditLogger
from core.errors import DomainError, ErrorKind
from db.models import ProviderCall


@pytest.mark.asyncio
async def test_log_provider_failure_creates_record(db):
    logger = AuditLogger(db)
    body = {"errors": [{"code": 141, "title": "SYSTEM ERROR HAS OCCURRED"}]}
    record = await logger.log_provider_failure(
        "amadeus", "search_flights",
        {"originLocationCode": "ACC", "destinationLocationCode": "LHR"},
        DomainError.of(ErrorKind.NO_INVENTORY_FOR_ROUTE, body),
    )
    assert record.id
    assert record.operation == "search_flights"
    assert record.error_kind == "NO_INVENTORY_FOR_ROUTE"
    assert record.raw_error == body


@pytest.mark.asyncio
async def test_log_provider_failure_is_append_only(db):
    """Logging the same failure twice creates two separate records, never updates."""
    logger = AuditLogger(db)
    error = DomainError.of(ErrorKind.PROVIDER_UNAVAILABLE, {"errors": []})
    r1 = await logger.log_provider_failure("amadeus", "reconfirm", {}, error)
    r2 = await logger.log_provider_failure("amadeus", "reconfirm", {}, error)

    assert r1.id != r2.id

    result = await db.execute(select(func.count()).select_from(ProviderCall))
    assert result.scalar_one() == 2


@pytest.mark.asyncio
async def test_non_json_detail_is_wrapped(db):
    logger = AuditLogger(db)
    record = await logger.log_provider_failure(
        "amadeus", "search_hotels", {"total": Decimal("12.50")},
        DomainError.of(ErrorKind.PROVIDER_TIMEOUT, "timeout after 20s"),
    )
    assert record.raw_error == {"detail": "timeout after 20s"}
    assert record.request == {"total": "12.50"}


@pytest.mark.asyncio
async def test_recent_failures_filters_by_operation(db):
    logger = AuditLogger(db)
    error = DomainError.of(ErrorKind.PROVIDER_UNAVAILABLE)
    await logger.log_provider_failure("amadeus", "search_flights", {}, error)
    await logger.log_provider_failure("amadeus", "search_hotels", {}, error)

    flights = await logger.recent_failures("search_flights")
    assert [r.operation for r in flights] == ["search_flights"]
    assert len(await logger.recent_failures()) == 2
