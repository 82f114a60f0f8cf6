"""
Module: pocket_ledger.db.types
Responsibility: Annotated type aliases and helpers for monetary columns.
    Centralizes precision and rounding so that models, services and selectors
    share one definition of a money value.
Architecture position: Ledger > DB.  MUST NOT import from models/, services/,
    selectors/ or domain/.

Invariants enforced:
    - Every monetary column is Numeric(15, 2) (Money).
    - round_money() is the only sanctioned rounding function.
    - Amounts are Decimal end to end; to_money() normalizes driver output.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 15 digits total, 2 decimal places
Money = Annotated[Decimal, Numeric(15, 2)]

# Short names (pocket / category names)
ShortText = Annotated[str, String(255)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the ledger precision.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """
    Coerce an aggregate or input value to a rounded Decimal.

    SQL aggregates come back as Decimal, int (SUM over an empty set after
    COALESCE) or, on drivers without native decimals, float.  Floats are
    converted through their shortest repr so 0.1 stays 0.1.  None is zero.

    Raises:
        ValueError: If value is not a number.
    """
    if value is None:
        return ZERO
    try:
        return round_money(Decimal(str(value)))
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary value: {value!r}") from exc
