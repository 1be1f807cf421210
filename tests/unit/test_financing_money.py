import math
from decimal import Decimal

import pytest

from storefront.financing.money import format_minor, to_minor_units


@pytest.mark.parametrize(
    "amount,expected",
    [
        (19.99, 1999),
        ("19.99", 1999),
        (1500, 150000),
        (Decimal("10"), 1000),
        (0.125, 13),
        (1.005, 100),
        (0.285, 28),
        (0.29, 29),
        ("  42.5 ", 4250),
    ],
)
def test_to_minor_units_rounds_scaled_float_half_up(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.parametrize("amount", [1.005, 0.285, 2.675, 1.015, 12.5, 0.125, 19.99, 59.95, 0.1, 1499.99, -3.5, -0.125])
def test_to_minor_units_matches_floor_of_scaled_plus_half(amount):
    assert to_minor_units(amount) == math.floor(amount * 100 + 0.5)


@pytest.mark.parametrize("amount", [None, True, float("nan"), float("inf"), float("-inf"), 1e308, "abc", "", "NaN", [1]])
def test_to_minor_units_unreadable_amounts_are_zero(amount):
    assert to_minor_units(amount) == 0


def test_to_minor_units_keeps_sign():
    assert to_minor_units(-3.5) == -350


def test_format_minor():
    assert format_minor(150000) == "1500.00"
    assert format_minor(5) == "0.05"
