"""Membership-tier pricing for court reservations and lessons.

All amounts are integers in minor units (cents), like every price column in
the database.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

NO_MEMBERSHIP = "No Membership"

# Percent off paid services per tier; per-event-type rows in
# membership_event_discounts take precedence when they exist.
TIER_DISCOUNTS = {
    "pay_to_play": 0,
    "standard": 15,
    "ultimate": 33,
}

TIER_DISPLAY_NAMES = {
    "pay_to_play": "Pay to Play",
    "standard": "Standard",
    "ultimate": "Ultimate",
}


def discount_for(tier: Optional[str]) -> int:
    if not tier:
        return 0
    return TIER_DISCOUNTS.get(tier.strip().lower(), 0)


def display_name(tier: Optional[str]) -> str:
    if not tier:
        return NO_MEMBERSHIP
    return TIER_DISPLAY_NAMES.get(tier, tier.replace("_", " ").title())


@dataclass(frozen=True)
class PricingCalculation:
    base_price: int
    discount_amount: int
    final_price: int
    discount_percentage: float
    membership_type: str = NO_MEMBERSHIP

    def to_dict(self) -> dict:
        return {
            "base_price": self.base_price,
            "discount_amount": self.discount_amount,
            "final_price": self.final_price,
            "discount_percentage": self.discount_percentage,
            "membership_type": self.membership_type,
            "display": {
                "base_price": format_price(self.base_price),
                "discount_amount": format_price(self.discount_amount),
                "final_price": format_price(self.final_price),
                "discount_percentage": f"{self.discount_percentage:g}%",
                "membership_type": self.membership_type,
            },
        }


def calculate_price(hourly_rate: int, hours: int = 1, discount_percentage: float = 0,
                    membership_type: str = NO_MEMBERSHIP) -> PricingCalculation:
    if hourly_rate < 0:
        raise ValueError("hourly_rate must not be negative")
    if hours < 1:
        raise ValueError("hours must be at least 1")
    if not 0 <= discount_percentage <= 100:
        raise ValueError("discount_percentage must be between 0 and 100")

    base = hourly_rate * hours
    discount = int(
        (Decimal(base) * Decimal(str(discount_percentage)) / Decimal(100))
        .quantize(Decimal(1), rounding=ROUND_HALF_UP)
    )
    return PricingCalculation(
        base_price=base,
        discount_amount=discount,
        final_price=max(0, base - discount),
        discount_percentage=discount_percentage,
        membership_type=membership_type,
    )


def price_for_tier(tier: Optional[str], hourly_rate: int, hours: int = 1) -> PricingCalculation:
    """Price using the static tier table only."""
    return calculate_price(hourly_rate, hours, discount_for(tier), display_name(tier))


def format_price(amount: int) -> str:
    return f"${Decimal(amount) / 100:.2f}"
