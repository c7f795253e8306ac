"""Per-night rate data as delivered by the PMS."""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class RateDay:
    """One night of rate data.

    ``price`` is in minor currency units; ``None`` marks a gap in the feed,
    which is distinct from a night that is blocked (``available=False``).
    """

    price: int | None
    min_stay: int = 1
    available: bool = True


RateMap = dict[date, RateDay]


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each night of the half-open stay ``[check_in, check_out)``."""
    night = check_in
    while night < check_out:
        yield night
        night += timedelta(days=1)


def count_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days
