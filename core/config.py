from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _strip_inline_comment(value: str) -> str:
    """Strip trailing inline comments that python-dotenv keeps for unquoted values."""
    idx = value.find(" #")
    if idx != -1:
        value = value[:idx]
    return value.strip()


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./booking_engine.db"
    use_real_apis: bool = False
    log_level: str = "INFO"

    # Inventory provider (Amadeus Self-Service)
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_hostname: str = "test.api.amadeus.com"
    provider_timeout_seconds: float = 20.0
    hotel_candidate_limit: int = 50
    flight_result_cap: int = 20

    # Payment gateway (Paystack)
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    app_url: str = "http://localhost:3000"

    # Pricing
    currency: str = "GHS"
    provider_currency: str = "USD"
    exchange_rate: Decimal = Decimal("12.5")
    service_fee_rate: Decimal = Decimal("0.10")
    package_discount_rate: Decimal = Decimal("0.05")

    @field_validator("amadeus_client_secret", "paystack_secret_key", mode="before")
    @classmethod
    def clean_secret(cls, v: str) -> str:
        if isinstance(v, str):
            return _strip_inline_comment(v)
        return v

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
