"""Mandatory property costs and optional guest extras.

Definitions come from the property's JSON columns, for example::

    {"label": "Final cleaning", "amount": 6000, "per": "stay"}
    {"name": "Breakfast", "amount": 1500, "per": "night_per_guest", "max_nights": 7}

``amount`` is in minor units. ``per`` is one of ``stay``, ``night``,
``guest`` or ``night_per_guest``; ``max_nights`` only caps the latter.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.core.exceptions import ValidationError


class CostBasis(str, Enum):
    """What a cost is multiplied by."""

    STAY = "stay"
    NIGHT = "night"
    GUEST = "guest"
    NIGHT_PER_GUEST = "night_per_guest"


@dataclass(frozen=True)
class PriceLineItem:
    label: str
    amount_cents: int
    detail: str | None = None


def _format_rate(amount_cents: int, currency: str) -> str:
    return f"{amount_cents / 100:.2f} {currency.upper()}"


def _line_item(
    label: str,
    amount: int,
    per: str,
    max_nights: int | None,
    nights: int,
    guests: int,
    currency: str,
) -> PriceLineItem:
    try:
        basis = CostBasis(per)
    except ValueError:
        raise ValidationError(f"Unknown cost basis '{per}' for '{label}'")

    rate = _format_rate(amount, currency)
    if basis is CostBasis.STAY:
        return PriceLineItem(label=label, amount_cents=amount)
    if basis is CostBasis.NIGHT:
        return PriceLineItem(label=label, amount_cents=amount * nights, detail=f"{rate}/night")
    if basis is CostBasis.GUEST:
        return PriceLineItem(label=label, amount_cents=amount * guests, detail=f"{rate}/guest")

    effective_nights = min(nights, max_nights) if max_nights is not None else nights
    detail = f"{rate}/night/guest"
    if max_nights is not None:
        detail += f" (max {max_nights} nights)"
    return PriceLineItem(label=label, amount_cents=amount * effective_nights * guests, detail=detail)


def compute_additional_costs(
    costs: Iterable[Mapping[str, Any]] | None,
    nights: int,
    guests: int,
    currency: str = "eur",
) -> list[PriceLineItem]:
    """Line items for the costs every stay at the property pays."""
    if not costs:
        return []
    return [
        _line_item(
            label=cost["label"],
            amount=int(cost["amount"]),
            per=cost["per"],
            max_nights=cost.get("max_nights"),
            nights=nights,
            guests=guests,
            currency=currency,
        )
        for cost in costs
    ]


def compute_extras(
    extras: list[Mapping[str, Any]] | None,
    selected: Iterable[int],
    nights: int,
    guests: int,
    currency: str = "eur",
) -> list[PriceLineItem]:
    """Line items for the extras the guest picked, by index into ``extras``.

    Unknown indices are skipped; each extra is charged at most once.
    """
    if not extras:
        return []
    items = []
    for idx in sorted(set(selected)):
        if idx < 0 or idx >= len(extras):
            continue
        extra = extras[idx]
        items.append(
            _line_item(
                label=extra["name"],
                amount=int(extra["amount"]),
                per=extra["per"],
                max_nights=extra.get("max_nights"),
                nights=nights,
                guests=guests,
                currency=currency,
            )
        )
    return items


def total_cents(items: Iterable[PriceLineItem]) -> int:
    return sum(item.amount_cents for item in items)
