"""
Category map validator (``runway_config.validator``).

Checks a parsed ``CategoryMap`` against the canonical chart of accounts
before it is used for posting.

Invariants enforced
-------------------
* Every account code the map can post to exists in the chart.
* System accounts have the right type: the clearing account, GST input
  and receivable are assets, GST outputs are liabilities, the outflow
  fallback is an expense and the inflow fallback and revenue account are
  revenue.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from runway_kernel.domain.category_map import CategoryMap
from runway_kernel.exceptions import CategoryMapError
from runway_kernel.models.account import AccountType
from runway_kernel.services.chart_of_accounts import (
    DEFAULT_CHART_OF_ACCOUNTS,
    AccountTemplate,
)


@dataclass
class CategoryMapValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


def validate_category_map(
    category_map: CategoryMap,
    chart: tuple[AccountTemplate, ...] = DEFAULT_CHART_OF_ACCOUNTS,
) -> CategoryMapValidationResult:
    """Collect every problem with the map rather than stopping at the first."""
    result = CategoryMapValidationResult()
    types = {t.code: t.account_type for t in chart}

    for name, code in sorted(category_map.categories.items()):
        if code not in types:
            result.errors.append(f"category {name!r} maps to unknown account {code}")

    expected = (
        ("clearing_account", category_map.clearing_account, AccountType.ASSET),
        ("fallback.outflow", category_map.fallback_outflow, AccountType.EXPENSE),
        ("fallback.inflow", category_map.fallback_inflow, AccountType.REVENUE),
        ("gst.input", category_map.gst_input, AccountType.ASSET),
        ("gst.output_cgst", category_map.gst_output_cgst, AccountType.LIABILITY),
        ("gst.output_sgst", category_map.gst_output_sgst, AccountType.LIABILITY),
        ("gst.output_igst", category_map.gst_output_igst, AccountType.LIABILITY),
        ("receivable_account", category_map.receivable_account, AccountType.ASSET),
        ("revenue_account", category_map.revenue_account, AccountType.REVENUE),
    )
    for key, code, account_type in expected:
        actual = types.get(code)
        if actual is None:
            result.errors.append(f"{key} refers to unknown account {code}")
        elif actual is not account_type:
            result.errors.append(
                f"{key} account {code} is {actual.value}, expected {account_type.value}"
            )

    if category_map.clearing_account in category_map.categories.values():
        result.warnings.append(
            f"clearing account {category_map.clearing_account} is also a category target"
        )
    if not category_map.categories:
        result.warnings.append("no categories mapped; every posting will degrade")

    return result


def assert_valid(
    category_map: CategoryMap,
    chart: tuple[AccountTemplate, ...] = DEFAULT_CHART_OF_ACCOUNTS,
) -> CategoryMapValidationResult:
    """Validate and raise CategoryMapError on any error."""
    result = validate_category_map(category_map, chart)
    if not result.is_valid:
        raise CategoryMapError(category_map.version, result.errors)
    return result
