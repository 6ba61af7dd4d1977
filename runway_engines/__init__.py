"""
Module: runway_engines
Responsibility:
    Pure calculation engines: GST split/extraction and burn/runway
    analytics.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import
    runway_kernel.db.types, runway_kernel.exceptions and
    runway_kernel.logging_config only.

Invariants enforced:
    - Engines never read the clock; dates are passed in.
    - Money is integer minor units internally; Decimal at the boundary.
"""

from runway_engines.burn import (
    INFINITE_RUNWAY,
    BurnRateMetrics,
    BurnTrend,
    CalculationPeriod,
    CashFlow,
    CategoryBurn,
    MonthlyBurn,
    Trend,
    average_burn,
    bucket_by_month,
    burn_by_category,
    burn_rate_metrics,
    classify_trend,
    compute_runway,
)
from runway_engines.tax import (
    SUPPORTED_GST_RATES,
    GSTCalculation,
    GSTExtraction,
    GSTRate,
    GSTSplit,
    TaxEngine,
)

__all__ = [
    "INFINITE_RUNWAY",
    "BurnRateMetrics",
    "BurnTrend",
    "CalculationPeriod",
    "CashFlow",
    "CategoryBurn",
    "MonthlyBurn",
    "Trend",
    "average_burn",
    "bucket_by_month",
    "burn_by_category",
    "burn_rate_metrics",
    "classify_trend",
    "compute_runway",
    "SUPPORTED_GST_RATES",
    "GSTCalculation",
    "GSTExtraction",
    "GSTRate",
    "GSTSplit",
    "TaxEngine",
]
