"""
Money helpers.

Amounts are ``Decimal`` quantized to the store currency's minor unit. Comparisons
with the payment provider happen in integer minor units (paise, cents).
"""
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

ZERO = Decimal('0.00')


def minor_unit_exponent():
    return getattr(settings, 'STORE_CURRENCY_EXPONENT', 2)


def money_quantum():
    return Decimal(1).scaleb(-minor_unit_exponent())


def to_decimal(value) -> Decimal:
    """Convert int/str/float/Decimal to Decimal without float artefacts"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(money_quantum(), rounding=ROUND_HALF_UP)


def to_minor_units(value) -> int:
    """1030.00 -> 103000 for a two-decimal currency"""
    return int((quantize_money(value) * (10 ** minor_unit_exponent())).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
    return quantize_money(Decimal(int(value)).scaleb(-minor_unit_exponent()))
