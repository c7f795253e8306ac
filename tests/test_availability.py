"""Tests for stay validation against the rate calendar."""

from datetime import date, timedelta

import pytest

from app.core.exceptions import (
    BelowMinimumStay,
    DateRangeUnavailable,
    InvalidRange,
    MissingRateData,
    NightUnavailable,
)
from app.domain.availability import ranges_overlap, validate_stay
from app.domain.rates import RateDay, count_nights, iter_nights

CHECK_IN = date(2030, 6, 10)


def calendar(nights: int, min_stay: int = 1) -> dict:
    return {
        CHECK_IN + timedelta(days=i): RateDay(price=11000, min_stay=min_stay)
        for i in range(nights)
    }


def test_valid_stay_returns_nights():
    assert validate_stay(calendar(4), CHECK_IN, CHECK_IN + timedelta(days=3)) == 3


def test_minimum_stay_exactly_met():
    assert validate_stay(calendar(3, min_stay=3), CHECK_IN, CHECK_IN + timedelta(days=3)) == 3


def test_below_minimum_stay():
    with pytest.raises(BelowMinimumStay) as exc_info:
        validate_stay(calendar(3, min_stay=3), CHECK_IN, CHECK_IN + timedelta(days=2))
    assert exc_info.value.min_stay == 3
    assert exc_info.value.nights == 2


def test_minimum_stay_comes_from_arrival_night():
    rates = calendar(3)
    rates[CHECK_IN + timedelta(days=1)] = RateDay(price=11000, min_stay=7)

    assert validate_stay(rates, CHECK_IN, CHECK_IN + timedelta(days=2)) == 2


def test_unavailable_night_is_named():
    rates = calendar(3)
    blocked = CHECK_IN + timedelta(days=1)
    rates[blocked] = RateDay(price=11000, available=False)

    with pytest.raises(NightUnavailable) as exc_info:
        validate_stay(rates, CHECK_IN, CHECK_IN + timedelta(days=3))
    assert exc_info.value.night == blocked
    assert isinstance(exc_info.value, DateRangeUnavailable)


def test_gap_in_feed_is_missing_rate_data():
    with pytest.raises(MissingRateData):
        validate_stay(calendar(2), CHECK_IN, CHECK_IN + timedelta(days=3))


def test_reversed_range():
    with pytest.raises(InvalidRange):
        validate_stay(calendar(2), CHECK_IN, CHECK_IN)


def test_stay_longer_than_limit():
    with pytest.raises(InvalidRange):
        validate_stay(calendar(10), CHECK_IN, CHECK_IN + timedelta(days=10), max_nights=7)


def test_back_to_back_stays_do_not_overlap():
    a_end = CHECK_IN + timedelta(days=2)
    assert not ranges_overlap(CHECK_IN, a_end, a_end, a_end + timedelta(days=2))
    assert ranges_overlap(CHECK_IN, a_end, a_end - timedelta(days=1), a_end + timedelta(days=2))


def test_iter_nights_is_half_open():
    nights = list(iter_nights(CHECK_IN, CHECK_IN + timedelta(days=2)))
    assert nights == [CHECK_IN, CHECK_IN + timedelta(days=1)]
    assert count_nights(CHECK_IN, CHECK_IN + timedelta(days=2)) == 2
