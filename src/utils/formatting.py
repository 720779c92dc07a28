from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

_THOUSANDS_SEPARATOR = re.compile(r"[,\s]")

# Typed magnitudes beyond 10**MAX_INPUT_EXPONENT are rejected like garbage.
MAX_INPUT_EXPONENT = 100


def format_number(value: Decimal, places: int) -> str:
    """Render with thousands separators and a fixed number of decimals."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    # Avoid "-0.00" for tiny negatives.
    if quantized == 0:
        quantized = abs(quantized)
    return f"{quantized:,.{places}f}"


def format_percent(value: Decimal) -> str:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 4)
        quantized = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "+" if quantized >= 0 else ""
    return f"{sign}{quantized:.2f}%"


def parse_formatted_number(raw: str) -> Decimal | None:
    """Parse user-typed text, ignoring thousands separators.

    Returns None when the text is not a usable number so callers can discard
    the edit.
    """
    cleaned = _THOUSANDS_SEPARATOR.sub("", raw)
    if not cleaned:
        return None
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not parsed.is_finite() or parsed.adjusted() > MAX_INPUT_EXPONENT:
        return None
    return parsed


__all__ = ["MAX_INPUT_EXPONENT", "format_number", "format_percent", "parse_formatted_number"]
