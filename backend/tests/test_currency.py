"""
test_currency.py: Unit tests for the PLN/EUR converter.

All tests are pure unit tests; no database or external services required.
"""

import math
import pytest

from rackcalc.models.calculation import Currency
from rackcalc.services.currency import convert


class TestConvert:

    def test_zero_amount_is_zero(self):
        assert convert(0, Currency.EUR, Currency.PLN, 4.3) == 0.0

    def test_same_currency_unchanged(self):
        assert convert(123.45, Currency.PLN, Currency.PLN, 4.3) == 123.45

    def test_eur_to_pln_multiplies(self):
        """100 EUR × 4.3 = 430 PLN."""
        assert convert(100, Currency.EUR, Currency.PLN, 4.3) == pytest.approx(430.0)

    def test_pln_to_eur_divides(self):
        """430 PLN / 4.3 = 100 EUR."""
        assert convert(430, Currency.PLN, Currency.EUR, 4.3) == pytest.approx(100.0)

    @pytest.mark.parametrize("amount", [1.0, 999.99, 12_345.678])
    def test_round_trip(self, amount):
        there = convert(amount, Currency.PLN, Currency.EUR, 4.27)
        assert convert(there, Currency.EUR, Currency.PLN, 4.27) == pytest.approx(amount)

    def test_plain_string_codes_accepted(self):
        """Currency is a str Enum, so raw codes from JSON compare equal."""
        assert convert(10, "EUR", "PLN", 4.0) == pytest.approx(40.0)


class TestDegenerateRates:
    """Rates are not validated: bad input gives a meaningless value, never a crash."""

    def test_zero_rate_division_is_signed_infinity(self):
        assert convert(100, Currency.PLN, Currency.EUR, 0) == math.inf
        assert convert(-100, Currency.PLN, Currency.EUR, 0) == -math.inf

    def test_zero_rate_multiplication_is_zero(self):
        assert convert(100, Currency.EUR, Currency.PLN, 0) == 0.0

    def test_negative_rate_flips_sign(self):
        assert convert(100, Currency.EUR, Currency.PLN, -2) == pytest.approx(-200.0)
