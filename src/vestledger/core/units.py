"""
Token unit helpers.

Ledger amounts are always integer base units. These helpers convert between
base units and human token amounts for a given number of decimals, using
Decimal arithmetic and truncating toward zero below one base unit.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Any

from vestledger.core.constants import TOKEN_DECIMALS

# Enough digits for any uint256 amount at 18 decimals
_PRECISION = 100


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("Amount must be numeric, not bool")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        try:
            return Decimal(str(value).replace("_", "").strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount value: {value!r}") from exc
    raise ValueError("Amount must be int, float, str, or Decimal")


def _check_decimals(decimals: int) -> None:
    if not 0 <= decimals <= TOKEN_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {TOKEN_DECIMALS}")


def quantize_amount(value: Any, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """Token amount truncated to the token's smallest unit."""
    _check_decimals(decimals)
    dec = _to_decimal(value)
    if dec.is_nan():
        raise ValueError("Amount cannot be NaN")
    if dec.is_infinite():
        raise ValueError("Amount cannot be infinite")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return dec.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)


def to_base_units(value: Any, decimals: int = TOKEN_DECIMALS) -> int:
    """Whole-token amount (e.g. "3480000" or "0.5") to integer base units."""
    dec = quantize_amount(value, decimals)
    if dec < 0:
        raise ValueError("Amount cannot be negative")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return int(dec.scaleb(decimals))


def from_base_units(value: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError("Base units must be an int")
    _check_decimals(decimals)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(value).scaleb(-decimals)


def format_amount(value: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Base units rendered as a plain token string, trailing zeros dropped."""
    text = f"{from_base_units(value, decimals):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
