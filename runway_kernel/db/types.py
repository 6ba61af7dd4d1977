"""
Module: runway_kernel.db.types
Responsibility: Fixed-point money representation.  Every monetary value in
    the kernel is an ``int`` count of minor currency units (paise); Decimal
    appears only at the presentation boundary.
Architecture position: Kernel > DB.  May be imported by models/, services/,
    selectors/ and the engines packages.  MUST NOT import from those layers.

Invariants enforced:
    - No floats.  ``to_minor`` rejects float input outright.
    - ``round_money`` is the only sanctioned rounding function (ROUND_HALF_UP).
    - ``BALANCE_TOLERANCE_MINOR`` (1 paisa) is the single tolerance used for
      "balanced" checks; ``difference < 0.01`` in major units is
      ``difference < 1`` in minor units.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import BigInteger

# Signed amount in minor units (paise for INR)
MinorUnits = Annotated[int, BigInteger]

MONEY_DECIMAL_PLACES = 2
MINOR_PER_MAJOR = 10**MONEY_DECIMAL_PLACES
DEFAULT_ROUNDING = ROUND_HALF_UP
DEFAULT_CURRENCY = "INR"

# Balanced means the difference is strictly below one minor unit
BALANCE_TOLERANCE_MINOR = 1

AmountLike = Decimal | int | str


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given decimal places.

    This is the ONLY sanctioned rounding function for financial values.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def round_half_up(value: Decimal) -> int:
    """Round an exact minor-unit quantity to a whole number of minor units."""
    return int(value.quantize(Decimal(1), rounding=DEFAULT_ROUNDING))


def to_minor(value: AmountLike) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Sub-minor fractions are rounded half-up.

    Example:
        to_minor(Decimal("10.505")) -> 1051
        to_minor("1180") -> 118000

    Raises:
        TypeError: If ``value`` is a float (binary floats are never money).
    """
    if isinstance(value, float):
        raise TypeError("Monetary amounts must be Decimal, int or str, not float")
    if isinstance(value, bool):
        raise TypeError("Monetary amounts must not be bool")
    if isinstance(value, int):
        return value * MINOR_PER_MAJOR
    return round_half_up(Decimal(value) * MINOR_PER_MAJOR)


def from_minor(value: int) -> Decimal:
    """
    Convert integer minor units to a 2-place Decimal in major units.

    Example:
        from_minor(1050) -> Decimal("10.50")
    """
    return round_money(Decimal(value) / MINOR_PER_MAJOR)


def is_within_tolerance(difference_minor: int) -> bool:
    """True when a minor-unit difference is below one minor unit."""
    return abs(difference_minor) < BALANCE_TOLERANCE_MINOR
