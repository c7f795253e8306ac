"""Platform fee and withholding arithmetic.

All amounts are integer minor units. The platform fee is floored so the
broker never receives less than their exact share; withholding tax rounds
half-up like the tax office does.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

DEFAULT_FEE_PERCENT = 10
DEFAULT_WITHHOLDING_PERCENT = 21


@dataclass(frozen=True)
class RevenueSplit:
    """How a base amount divides between platform and broker."""

    platform_fee_cents: int
    broker_net_cents: int


def normalize_fee_percent(value: Any, default: int = DEFAULT_FEE_PERCENT) -> int:
    """Return ``value`` if it is an integer percentage in [0, 100], else ``default``."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    if 0 <= value <= 100:
        return value
    return default


def split_revenue(base_total_cents: int, fee_percent: int) -> RevenueSplit:
    """Split the nightly base total.

    >>> split_revenue(9999, 10)
    RevenueSplit(platform_fee_cents=999, broker_net_cents=9000)
    """
    if base_total_cents < 0:
        raise ValueError("base_total_cents must not be negative")
    platform_fee = base_total_cents * fee_percent // 100
    return RevenueSplit(
        platform_fee_cents=platform_fee,
        broker_net_cents=base_total_cents - platform_fee,
    )


def withholding_tax(base_total_cents: int, percent: int = DEFAULT_WITHHOLDING_PERCENT) -> int:
    amount = Decimal(base_total_cents) * Decimal(percent) / Decimal("100")
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def application_fee(split: RevenueSplit, withholding_cents: int) -> int:
    """Amount the platform keeps on a destination charge."""
    return split.platform_fee_cents + withholding_cents
