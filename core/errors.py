"""Domain error taxonomy for inventory and pricing calls.

Every provider failure resolves to exactly one ErrorKind through
PROVIDER_ERROR_KINDS. Gateway calls return a Result instead of raising.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    INVALID_LOCATION_FORMAT = "INVALID_LOCATION_FORMAT"
    UNKNOWN_LOCATION = "UNKNOWN_LOCATION"
    NO_INVENTORY_FOR_ROUTE = "NO_INVENTORY_FOR_ROUTE"
    NO_INVENTORY_FOR_DATES = "NO_INVENTORY_FOR_DATES"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    PRICE_DRIFTED = "PRICE_DRIFTED"


USER_MESSAGES = {
    ErrorKind.INVALID_LOCATION_FORMAT: (
        "Invalid airport code. Please select a valid airport from the dropdown."
    ),
    ErrorKind.UNKNOWN_LOCATION: (
        "Invalid airport code. Please select a valid airport from the dropdown."
    ),
    ErrorKind.NO_INVENTORY_FOR_ROUTE: (
        "No flights found for this route. The destination might not have available "
        "flights or the route is not supported. Please try a different destination or dates."
    ),
    ErrorKind.NO_INVENTORY_FOR_DATES: (
        "No availability for the selected dates. Please try different dates."
    ),
    ErrorKind.PROVIDER_TIMEOUT: (
        "The search is taking longer than expected. Please try again in a few moments."
    ),
    ErrorKind.PROVIDER_UNAVAILABLE: (
        "Search service temporarily unavailable. Please try again in a few moments."
    ),
    ErrorKind.PRICE_DRIFTED: (
        "The price of this offer has changed. Please review the new price before paying."
    ),
}

# Provider error code → kind. Codes not listed here are PROVIDER_UNAVAILABLE.
PROVIDER_ERROR_KINDS = {
    141: ErrorKind.NO_INVENTORY_FOR_ROUTE,
    477: ErrorKind.UNKNOWN_LOCATION,
    32171: ErrorKind.UNKNOWN_LOCATION,
    4926: ErrorKind.NO_INVENTORY_FOR_DATES,
    895: ErrorKind.NO_INVENTORY_FOR_ROUTE,
    3664: ErrorKind.NO_INVENTORY_FOR_DATES,
    37200: ErrorKind.PRICE_DRIFTED,
}


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    user_message: str
    provider_detail: Any = None

    @classmethod
    def of(cls, kind: ErrorKind, provider_detail: Any = None) -> "DomainError":
        return cls(kind=kind, user_message=USER_MESSAGES[kind], provider_detail=provider_detail)

    def to_public_dict(self) -> dict:
        """User-facing view: the raw provider detail stays in the logs."""
        return {"kind": self.kind.value, "message": self.user_message}


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[DomainError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        return cls(ok=False, error=error)


def _first_error(body: Any) -> Optional[dict]:
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return errors[0]
    return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def kind_for_provider_error(body: Any) -> ErrorKind:
    """Look up the first structured provider error code in the mapping table."""
    first = _first_error(body)
    if first is None:
        return ErrorKind.PROVIDER_UNAVAILABLE
    code = _as_int(first.get("code"))
    return PROVIDER_ERROR_KINDS.get(code, ErrorKind.PROVIDER_UNAVAILABLE)


def map_provider_error(body: Any) -> DomainError:
    return DomainError.of(kind_for_provider_error(body), provider_detail=body)
