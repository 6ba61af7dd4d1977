"""
Burn Engine - monthly burn, runway and trend over a cash-flow stream.

Pure functions with no I/O.  Callers (AnalyticsEngine) load the rows and
pass them in as ``CashFlow`` records with signed minor-unit amounts
(negative = money out, positive = money in).

Usage:
    from datetime import date
    from runway_engines.burn import CashFlow, bucket_by_month, average_burn

    flows = [
        CashFlow(date(2024, 1, 5), -10000),
        CashFlow(date(2024, 1, 9), -5000),
        CashFlow(date(2024, 2, 2), -20000),
    ]
    months = bucket_by_month(flows)   # 2024-01: 150.00 (2), 2024-02: 200.00 (1)
    average_burn(months)              # Decimal("175.00")

Burn is net cash outflow: a month's burn is its outflows less its inflows,
so a month with more money in than out has a negative burn.
``burn_rate_metrics`` and ``burn_by_category`` separate the two sides.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Sequence

from runway_engines.tracer import traced_engine
from runway_kernel.db.types import from_minor, round_money

# Returned by compute_runway when there is no burn to divide by
INFINITE_RUNWAY = Decimal("Infinity")

TREND_THRESHOLD_PCT = Decimal("5")
TREND_WINDOW_MONTHS = 6
ONE_DECIMAL = Decimal("0.1")
DAYS_PER_MONTH = 30


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class CalculationPeriod(str, Enum):
    LAST_3_MONTHS = "last_3_months"
    LAST_MONTH = "last_month"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class CashFlow:
    """One transaction as seen by the burn engine."""

    txn_date: date
    amount: int
    category: str | None = None


@dataclass(frozen=True)
class MonthlyBurn:
    """Burn for one calendar month (``YYYY-MM``)."""

    month: str
    burn: Decimal
    transaction_count: int


@dataclass(frozen=True)
class BurnTrend:
    """Latest populated month compared to the one before it."""

    current: Decimal
    previous: Decimal
    trend: Trend
    acceleration_pct: Decimal
    months: tuple[MonthlyBurn, ...]


@dataclass(frozen=True)
class BurnRateMetrics:
    """Gross and net burn averaged over the span of the stream."""

    gross_burn_rate: Decimal
    net_burn_rate: Decimal
    monthly_revenue: Decimal
    monthly_expenses: Decimal
    runway: Decimal
    is_profitable: bool
    calculation_period: CalculationPeriod


@dataclass(frozen=True)
class CategoryBurn:
    """Monthly average outflow for one category and its share of the total."""

    category: str
    amount: Decimal
    percentage: Decimal


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def bucket_by_month(flows: Iterable[CashFlow]) -> list[MonthlyBurn]:
    """Net outflow per calendar month, oldest month first."""
    totals: dict[str, int] = defaultdict(int)
    counts: dict[str, int] = defaultdict(int)
    for flow in flows:
        key = month_key(flow.txn_date)
        totals[key] -= flow.amount
        counts[key] += 1
    return [
        MonthlyBurn(month=key, burn=from_minor(totals[key]), transaction_count=counts[key])
        for key in sorted(totals)
    ]


def average_burn(months: Sequence[MonthlyBurn]) -> Decimal:
    """Arithmetic mean of the monthly burns; zero when there are none."""
    if not months:
        return round_money(Decimal("0"))
    total = sum((m.burn for m in months), Decimal("0"))
    return round_money(total / len(months))


def compute_runway(cash_balance: Decimal | int, monthly_burn: Decimal | int) -> Decimal:
    """
    Months of cash left at the given burn.

    Returns INFINITE_RUNWAY when burn is zero or negative.  Never raises on
    a zero burn and never returns 0 for it.
    """
    burn = Decimal(monthly_burn)
    if burn <= 0:
        return INFINITE_RUNWAY
    return round_money(Decimal(cash_balance) / burn)


def _acceleration(current: Decimal, previous: Decimal) -> tuple[Trend, Decimal]:
    if previous > 0:
        pct = (current - previous) / previous * 100
        pct = pct.quantize(ONE_DECIMAL, ROUND_HALF_UP)
        if pct > TREND_THRESHOLD_PCT:
            return Trend.INCREASING, pct
        if pct < -TREND_THRESHOLD_PCT:
            return Trend.DECREASING, pct
        return Trend.STABLE, pct
    if current > 0:
        return Trend.INCREASING, Decimal("100.0")
    return Trend.STABLE, Decimal("0.0")


@traced_engine("burn_trend", "1.0")
def classify_trend(months: Sequence[MonthlyBurn]) -> BurnTrend:
    """
    Compare the two most recent populated months.

    acceleration_pct = (current - previous) / previous * 100, one decimal.
    Above +5 is increasing, below -5 decreasing, otherwise stable.  With
    fewer than two months the trend is stable at 0.
    """
    window = tuple(months[-TREND_WINDOW_MONTHS:])
    if len(months) < 2:
        current = months[-1].burn if months else round_money(Decimal("0"))
        return BurnTrend(
            current=current,
            previous=round_money(Decimal("0")),
            trend=Trend.STABLE,
            acceleration_pct=Decimal("0.0"),
            months=window,
        )

    current = months[-1].burn
    previous = months[-2].burn
    trend, pct = _acceleration(current, previous)
    return BurnTrend(
        current=current,
        previous=previous,
        trend=trend,
        acceleration_pct=pct,
        months=window,
    )


def months_spanned(flows: Sequence[CashFlow]) -> Decimal:
    """Length of the stream in 30-day months, never less than one."""
    first = min(f.txn_date for f in flows)
    last = max(f.txn_date for f in flows)
    days = max(1, (last - first).days)
    return max(Decimal("1"), Decimal(days) / DAYS_PER_MONTH)


def _period_for(span: Decimal) -> CalculationPeriod:
    if span >= 2:
        return CalculationPeriod.LAST_3_MONTHS
    if span >= Decimal("0.5"):
        return CalculationPeriod.LAST_MONTH
    return CalculationPeriod.INSUFFICIENT_DATA


@traced_engine("burn_rate", "1.0")
def burn_rate_metrics(
    flows: Sequence[CashFlow],
    cash_balance: Decimal | int,
) -> BurnRateMetrics:
    """
    Gross burn (outflows per month) and net burn (outflows less inflows).

    Runway is taken on the net burn, so a profitable company has
    INFINITE_RUNWAY.
    """
    zero = round_money(Decimal("0"))
    if not flows:
        return BurnRateMetrics(
            gross_burn_rate=zero,
            net_burn_rate=zero,
            monthly_revenue=zero,
            monthly_expenses=zero,
            runway=INFINITE_RUNWAY,
            is_profitable=True,
            calculation_period=CalculationPeriod.INSUFFICIENT_DATA,
        )

    span = months_spanned(flows)
    outflow = sum(-f.amount for f in flows if f.amount < 0)
    inflow = sum(f.amount for f in flows if f.amount > 0)

    monthly_expenses = round_money(from_minor(outflow) / span)
    monthly_revenue = round_money(from_minor(inflow) / span)
    net_burn = monthly_expenses - monthly_revenue

    return BurnRateMetrics(
        gross_burn_rate=monthly_expenses,
        net_burn_rate=net_burn,
        monthly_revenue=monthly_revenue,
        monthly_expenses=monthly_expenses,
        runway=compute_runway(cash_balance, net_burn),
        is_profitable=net_burn <= 0,
        calculation_period=_period_for(span),
    )


def subtract_months(value: date, months: int) -> date:
    """Same day ``months`` calendar months earlier, clamped to month end."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = value.day
    while True:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1


def burn_by_category(
    flows: Iterable[CashFlow],
    as_of: date,
    window_months: int = 3,
) -> list[CategoryBurn]:
    """
    Outflows in the trailing window grouped by category.

    amount is the monthly average over the window; percentage is the share
    of all outflows in the window.  Largest first.
    """
    start = subtract_months(as_of, window_months)
    totals: dict[str, int] = defaultdict(int)
    for flow in flows:
        if flow.amount >= 0 or not (start <= flow.txn_date <= as_of):
            continue
        totals[flow.category or "Uncategorized"] += -flow.amount

    grand_total = sum(totals.values())
    if not grand_total:
        return []

    breakdown = [
        CategoryBurn(
            category=category,
            amount=round_money(from_minor(total) / window_months),
            percentage=(Decimal(total) * 100 / grand_total).quantize(
                ONE_DECIMAL, ROUND_HALF_UP
            ),
        )
        for category, total in totals.items()
    ]
    breakdown.sort(key=lambda c: (-c.amount, c.category))
    return breakdown
