"""Two-currency (PLN/EUR) linear conversion used by every costing engine."""
import math

from rackcalc.models.calculation import Currency


def convert(amount: float, from_currency: Currency, to_currency: Currency, rate: float) -> float:
    """
    Convert ``amount`` between PLN and EUR at ``rate`` (PLN per 1 EUR).

    PLN → EUR divides by the rate, EUR → PLN multiplies. The rate is not
    validated: a zero rate on the dividing leg yields a signed infinity,
    a negative rate a negative amount. Both are the caller's problem.
    """
    if amount == 0:
        return 0.0
    if from_currency == to_currency:
        return amount
    if from_currency == Currency.EUR and to_currency == Currency.PLN:
        return amount * rate
    if from_currency == Currency.PLN and to_currency == Currency.EUR:
        if rate == 0:
            return math.copysign(math.inf, amount)
        return amount / rate
    return amount
