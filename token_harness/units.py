"""
Token amount conversion.

Amounts are whole-token values on the way in and base-unit integers on the
chain. Conversion goes through Decimal and must be exact; floats are refused
because they cannot represent 18-decimal quantities.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

Amount = Union[int, str, Decimal]


def to_units(amount: Amount, decimals: int) -> int:
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeError(f"token amounts must be int, str or Decimal, got {type(amount).__name__}")
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")
    if isinstance(amount, int):
        return amount * (10 ** decimals)
    try:
        value = Decimal(amount) if isinstance(amount, str) else amount
    except InvalidOperation:
        raise ValueError(f"not a token amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"not a token amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount} has more than {decimals} fractional digits")
    return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Render base units as a plain decimal string without trailing zeros."""
    if decimals == 0:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10 ** decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    if not frac_str:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac_str}"
