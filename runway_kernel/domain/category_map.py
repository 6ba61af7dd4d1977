"""
CategoryMap -- the versioned category-to-account table used at posting time.

Responsibility:
    Kernel-side, immutable view of the category mapping.  Built by
    ``runway_config`` from YAML and validated there; the kernel never reads
    configuration files itself.

Lookup is an exact, case-insensitive match on the category name.  There is
no keyword matching: an unknown category resolves to ``None`` and the caller
decides the fallback.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


def normalize_category(category: str | None) -> str:
    """Canonical lookup key for a category name."""
    return (category or "").strip().casefold()


@dataclass(frozen=True)
class CategoryMap:
    """
    Immutable category table plus the designated system accounts.

    Attributes:
        version: Version label of the table (recorded in posting logs).
        categories: Normalized category name -> account code.
        clearing_account: Cash/bank account that offsets every posting.
        fallback_outflow: Account for unmapped money-out categories.
        fallback_inflow: Account for unmapped money-in categories.
        gst_input: GST input credit receivable account.
        gst_output_cgst / gst_output_sgst / gst_output_igst: GST payable accounts.
        receivable_account: Accounts receivable for invoiced revenue.
        revenue_account: Default revenue account for invoices.
        checksum: SHA-256 of the source document ("" when built in code).
    """

    version: str
    categories: Mapping[str, str]
    clearing_account: str
    fallback_outflow: str
    fallback_inflow: str
    gst_input: str
    gst_output_cgst: str
    gst_output_sgst: str
    gst_output_igst: str
    receivable_account: str
    revenue_account: str
    checksum: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        normalized = {
            normalize_category(name): code for name, code in self.categories.items()
        }
        object.__setattr__(self, "categories", MappingProxyType(normalized))

    def resolve(self, category: str | None) -> str | None:
        """Account code for a category, or None when unmapped."""
        return self.categories.get(normalize_category(category))

    def fallback_for(self, is_outflow: bool) -> str:
        return self.fallback_outflow if is_outflow else self.fallback_inflow

    def referenced_codes(self) -> set[str]:
        """Every account code the table can post to."""
        return set(self.categories.values()) | {
            self.clearing_account,
            self.fallback_outflow,
            self.fallback_inflow,
            self.gst_input,
            self.gst_output_cgst,
            self.gst_output_sgst,
            self.gst_output_igst,
            self.receivable_account,
            self.revenue_account,
        }
