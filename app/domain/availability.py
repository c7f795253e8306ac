"""Stay validation against the PMS calendar."""

from datetime import date

from app.core.exceptions import BelowMinimumStay, InvalidRange, MissingRateData, NightUnavailable
from app.domain.rates import RateMap, count_nights, iter_nights

DEFAULT_MAX_NIGHTS = 365


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open overlap: a stay ending on the day another begins does not clash."""
    return a_start < b_end and b_start < a_end


def validate_stay(
    rate_map: RateMap,
    check_in: date,
    check_out: date,
    max_nights: int = DEFAULT_MAX_NIGHTS,
) -> int:
    """Check that the stay can be booked and return its length in nights.

    The minimum stay that applies is the one set on the arrival night.
    """
    if check_out <= check_in:
        raise InvalidRange()
    nights = count_nights(check_in, check_out)
    if nights > max_nights:
        raise InvalidRange(f"Stays are limited to {max_nights} nights")

    for night in iter_nights(check_in, check_out):
        rate = rate_map.get(night)
        if rate is None:
            raise MissingRateData(night)
        if not rate.available:
            raise NightUnavailable(night)

    min_stay = rate_map[check_in].min_stay
    if nights < min_stay:
        raise BelowMinimumStay(min_stay, nights)
    return nights
