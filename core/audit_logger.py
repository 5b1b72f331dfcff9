import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import DomainError
from db.models import ProviderCall


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class AuditLogger:
    """Append-only operator trail of failed provider calls."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_provider_failure(
        self,
        provider: str,
        operation: str,
        request: Optional[dict],
        error: DomainError,
    ) -> ProviderCall:
        """Append a ProviderCall record with the raw provider body. Never updates existing records."""
        raw = error.provider_detail
        if raw is not None and not isinstance(raw, (dict, list)):
            raw = {"detail": str(raw)}
        record = ProviderCall(
            id=str(uuid.uuid4()),
            provider=provider,
            operation=operation,
            request=_jsonable(request or {}),
            error_kind=error.kind.value,
            raw_error=_jsonable(raw),
        )
        self.db.add(record)
        await self.db.commit()
        return record

    async def recent_failures(self, operation: Optional[str] = None, limit: int = 50) -> list[ProviderCall]:
        query = select(ProviderCall).order_by(ProviderCall.created_at.desc()).limit(limit)
        if operation:
            query = query.where(ProviderCall.operation == operation)
        result = await self.db.execute(query)
        return list(result.scalars().all())
