"""Unit and currency conversions for fuel pricing.

Every function is total. Conversions that would divide by an unset exchange
rate or an empty volume resolve to zero instead of raising, see `safe_divide`.
"""

from __future__ import annotations

from decimal import Decimal

LITERS_PER_GALLON = Decimal("3.78541")
ZERO = Decimal(0)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, treating a zero denominator as "unset" and yielding zero."""
    if not denominator:
        return ZERO
    return numerator / denominator


def gallons_to_liters(gallons: Decimal) -> Decimal:
    return gallons * LITERS_PER_GALLON


def liters_to_gallons(liters: Decimal) -> Decimal:
    return liters / LITERS_PER_GALLON


def usd_to_mxn(usd: Decimal, rate: Decimal) -> Decimal:
    return usd * rate


def mxn_to_usd(mxn: Decimal, rate: Decimal) -> Decimal:
    return safe_divide(mxn, rate)


def usd_per_gal_to_mxn_per_ltr(usd_per_gal: Decimal, rate: Decimal) -> Decimal:
    if not rate:
        return ZERO
    return (usd_per_gal / LITERS_PER_GALLON) * rate


def mxn_per_ltr_to_usd_per_gal(mxn_per_ltr: Decimal, rate: Decimal) -> Decimal:
    if not rate:
        return ZERO
    return (mxn_per_ltr / rate) * LITERS_PER_GALLON


__all__ = [
    "LITERS_PER_GALLON",
    "gallons_to_liters",
    "liters_to_gallons",
    "mxn_per_ltr_to_usd_per_gal",
    "mxn_to_usd",
    "safe_divide",
    "usd_per_gal_to_mxn_per_ltr",
    "usd_to_mxn",
]
