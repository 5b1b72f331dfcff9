"""Fee rules: pure quote arithmetic for intake forms and reservations.

All amounts are Decimal, quantized to two places. A quote is a function of the
composition and the rate table only; nothing here raises on bad input.
"""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


class ParticipantCategory(str, Enum):
    ADULT = "ADULT"
    TEEN = "TEEN"
    CHILD = "CHILD"
    TODDLER = "TODDLER"
    INFANT = "INFANT"

    @classmethod
    def parse(cls, value) -> Optional["ParticipantCategory"]:
        """Accept an enum member, a name ("infant") or a form label ("Infant (0-1)")."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        head = value.strip().split(" ")[0].upper()
        try:
            return cls(head)
        except ValueError:
            return None


# Labels shown in the traveler type dropdown
CATEGORY_LABELS = {
    ParticipantCategory.ADULT: "Adult (18+)",
    ParticipantCategory.TEEN: "Teen (13-17)",
    ParticipantCategory.CHILD: "Child (6-12)",
    ParticipantCategory.TODDLER: "Toddler (2-5)",
    ParticipantCategory.INFANT: "Infant (0-1)",
}


def category_for_age(age_years: int) -> ParticipantCategory:
    if age_years < 2:
        return ParticipantCategory.INFANT
    if age_years < 6:
        return ParticipantCategory.TODDLER
    if age_years < 13:
        return ParticipantCategory.CHILD
    if age_years < 18:
        return ParticipantCategory.TEEN
    return ParticipantCategory.ADULT


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and floats (via str) to a 2-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        amount = Decimal(value)
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeRuleSet:
    name: str
    rates: Mapping[ParticipantCategory, Decimal] = field(default_factory=dict)
    currency: str = "GHS"

    def rate_for(self, category) -> Decimal:
        parsed = ParticipantCategory.parse(category)
        if parsed is None:
            return ZERO
        rate = self.rates.get(parsed)
        if rate is None:
            return ZERO
        return to_decimal(rate)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "currency": self.currency,
            "rates": {c.value: str(to_decimal(r)) for c, r in self.rates.items()},
        }


def flat_rate(name: str, amount, infant_amount=None, currency: str = "GHS") -> FeeRuleSet:
    """Build a rule set where every tier shares one per-head rate, optionally except infants."""
    rates = {category: to_decimal(amount) for category in ParticipantCategory}
    if infant_amount is not None:
        rates[ParticipantCategory.INFANT] = to_decimal(infant_amount)
    return FeeRuleSet(name=name, rates=rates, currency=currency)


CONSULTATION_FEES = flat_rate("consultation", 500, infant_amount=250)
VISA_ASSISTANCE_FEES = flat_rate("visa_assistance", 500)
ITINERARY_PLANNING_FEES = flat_rate("itinerary_planning", 500)


def _category_of(participant):
    if isinstance(participant, Mapping):
        return participant.get("category")
    return getattr(participant, "category", None)


def compute_fee(composition: Iterable, rules: FeeRuleSet) -> Decimal:
    """Sum the per-category rate over the composition.

    Participants with an unset or unknown category contribute zero; callers
    block submission while any category is missing.
    """
    total = ZERO
    for participant in composition or ():
        total += rules.rate_for(_category_of(participant))
    return total.quantize(CENTS)


def format_money(amount, currency: str = "GHS") -> str:
    return f"{currency} {to_decimal(amount)}"


def to_minor_units(amount) -> int:
    """Convert to the gateway's lowest currency unit (pesewas, cents)."""
    return int((to_decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


# ── Reservation pricing ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ReservationPricing:
    base_price: Decimal            # provider currency
    base_price_local: Decimal
    service_fee: Decimal
    total_amount: Decimal
    exchange_rate: Decimal
    package_discount: Decimal = ZERO

    @property
    def final_total(self) -> Decimal:
        return (self.total_amount - self.package_discount).quantize(CENTS)

    def to_dict(self) -> dict:
        return {
            "base_price": str(self.base_price),
            "base_price_local": str(self.base_price_local),
            "service_fee": str(self.service_fee),
            "total_amount": str(self.total_amount),
            "exchange_rate": str(self.exchange_rate),
            "package_discount": str(self.package_discount),
            "final_total": str(self.final_total),
        }


def compute_reservation_pricing(base_price, exchange_rate, service_fee_rate) -> ReservationPricing:
    """Convert a provider price to local currency and add the service fee."""
    base = to_decimal(base_price)
    rate = Decimal(str(exchange_rate))
    local = to_decimal(base * rate)
    fee = to_decimal(local * Decimal(str(service_fee_rate)))
    return ReservationPricing(
        base_price=base,
        base_price_local=local,
        service_fee=fee,
        total_amount=local + fee,
        exchange_rate=rate,
    )


def compute_package_pricing(
    flight_price, hotel_price, exchange_rate, service_fee_rate, discount_rate
) -> ReservationPricing:
    """Flight + hotel bundle: service fee on the combined base, discount on the converted base."""
    combined = compute_reservation_pricing(
        to_decimal(flight_price) + to_decimal(hotel_price), exchange_rate, service_fee_rate
    )
    discount = to_decimal(combined.base_price_local * Decimal(str(discount_rate)))
    return ReservationPricing(
        base_price=combined.base_price,
        base_price_local=combined.base_price_local,
        service_fee=combined.service_fee,
        total_amount=combined.total_amount,
        exchange_rate=combined.exchange_rate,
        package_discount=discount,
    )
