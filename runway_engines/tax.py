"""
GST Engine - Indian goods-and-services tax split and reverse extraction.

Pure functions with no I/O.  All arithmetic is done in integer minor units
(paise); the value objects expose major-unit ``Decimal`` amounts.

Usage:
    from decimal import Decimal
    from runway_engines.tax import TaxEngine

    engine = TaxEngine()
    result = engine.calculate(Decimal("1000"), 18)
    print(result.cgst, result.sgst)   # 90.00 90.00
    print(result.total_amount)        # 1180.00

    extraction = engine.reverse_extract(Decimal("1180"), 18)
    print(extraction.base_amount)     # 1000.00

Rounding:
    tax = round_half_up(base * rate / 100) in paise.  Intra-state tax is
    split as cgst = round_half_up(exact_tax / 2) and sgst = tax - cgst, so
    cgst + sgst always equals the rounded tax and no paisa is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from runway_engines.tracer import traced_engine
from runway_kernel.db.types import AmountLike, from_minor, round_half_up, to_minor
from runway_kernel.exceptions import ValidationError
from runway_kernel.logging_config import get_logger

logger = get_logger("engines.tax")


class GSTRate(int, Enum):
    """GST slabs."""

    EXEMPT = 0
    GST_5 = 5
    GST_12 = 12
    GST_18 = 18
    GST_28 = 28


SUPPORTED_GST_RATES: frozenset[int] = frozenset(r.value for r in GSTRate)


@dataclass(frozen=True)
class GSTCalculation:
    """
    Forward GST calculation on a tax-exclusive base amount.

    Immutable value object.  cgst + sgst + igst == tax_amount and
    base_amount + tax_amount == total_amount, exactly.
    """

    base_amount: Decimal
    rate: int
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    is_inter_state: bool

    @property
    def tax_minor(self) -> int:
        return to_minor(self.tax_amount)


@dataclass(frozen=True)
class GSTExtraction:
    """Base and tax recovered from a tax-inclusive total."""

    total_amount: Decimal
    rate: int
    base_amount: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class GSTSplit:
    """A known tax amount divided into its components, in minor units."""

    cgst: int
    sgst: int
    igst: int

    @property
    def total(self) -> int:
        return self.cgst + self.sgst + self.igst


def validate_rate(rate: int | Decimal | str) -> int:
    """Return the rate as an int slab, or raise ValidationError."""
    if isinstance(rate, (bool, float)):
        raise ValidationError("rate", f"{rate!r} is not a supported GST rate")
    try:
        value = Decimal(rate)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("rate", f"{rate!r} is not a number")
    if value != value.to_integral_value() or int(value) not in SUPPORTED_GST_RATES:
        raise ValidationError(
            "rate",
            f"{rate} is not one of {sorted(SUPPORTED_GST_RATES)}",
        )
    return int(value)


def _non_negative_minor(field_name: str, amount: AmountLike) -> int:
    try:
        minor = to_minor(amount)
    except (TypeError, InvalidOperation) as exc:
        raise ValidationError(field_name, str(exc))
    if minor < 0:
        raise ValidationError(field_name, "must not be negative")
    return minor


class TaxEngine:
    """
    Calculate GST splits.

    Stateless; safe to share between threads.
    """

    @traced_engine("gst", "1.0", fingerprint_fields=("base_amount", "rate"))
    def calculate(
        self,
        base_amount: AmountLike,
        rate: int | Decimal | str,
        is_inter_state: bool = False,
    ) -> GSTCalculation:
        """
        Apply GST to a tax-exclusive amount.

        Args:
            base_amount: Amount before tax, major units.
            rate: One of 0, 5, 12, 18, 28.
            is_inter_state: True puts the whole tax in IGST.

        Raises:
            ValidationError: Unsupported rate or negative amount.
        """
        slab = validate_rate(rate)
        base_minor = _non_negative_minor("base_amount", base_amount)

        exact_tax = Decimal(base_minor) * slab / 100
        tax_minor = round_half_up(exact_tax)

        if is_inter_state:
            cgst, sgst, igst = 0, 0, tax_minor
        else:
            cgst = round_half_up(exact_tax / 2)
            sgst = tax_minor - cgst
            igst = 0

        return GSTCalculation(
            base_amount=from_minor(base_minor),
            rate=slab,
            cgst=from_minor(cgst),
            sgst=from_minor(sgst),
            igst=from_minor(igst),
            tax_amount=from_minor(tax_minor),
            total_amount=from_minor(base_minor + tax_minor),
            is_inter_state=is_inter_state,
        )

    @traced_engine("gst_reverse", "1.0", fingerprint_fields=("total_amount", "rate"))
    def reverse_extract(
        self,
        total_amount: AmountLike,
        rate: int | Decimal | str,
    ) -> GSTExtraction:
        """
        Recover base and tax from a tax-inclusive total.

        base = round_half_up(total * 100 / (100 + rate)); tax = total - base.
        """
        slab = validate_rate(rate)
        total_minor = _non_negative_minor("total_amount", total_amount)

        base_minor = round_half_up(Decimal(total_minor) * 100 / (100 + slab))
        tax_minor = total_minor - base_minor

        return GSTExtraction(
            total_amount=from_minor(total_minor),
            rate=slab,
            base_amount=from_minor(base_minor),
            tax_amount=from_minor(tax_minor),
        )

    def split(self, tax_minor: int, is_inter_state: bool = False) -> GSTSplit:
        """Divide an already-known tax amount (minor units) into components."""
        if tax_minor < 0:
            raise ValidationError("tax_amount", "must not be negative")
        if is_inter_state:
            return GSTSplit(cgst=0, sgst=0, igst=tax_minor)
        cgst = round_half_up(Decimal(tax_minor) / 2)
        split = GSTSplit(cgst=cgst, sgst=tax_minor - cgst, igst=0)
        logger.debug(
            "gst_split",
            extra={"tax_minor": tax_minor, "cgst": split.cgst, "sgst": split.sgst},
        )
        return split
