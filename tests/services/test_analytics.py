"""
Tests for AnalyticsEngine over the persisted transaction stream.

The figures come from the transactions table, not the journal; the
pure arithmetic is covered in tests/engines/test_burn.py.
"""

from datetime import date
from decimal import Decimal

import pytest

from runway_engines.burn import INFINITE_RUNWAY, CalculationPeriod, Trend
from runway_kernel.models.transaction import Transaction
from runway_kernel.selectors.analytics import AnalyticsEngine
from tests.conftest import COMPANY_ID, OTHER_COMPANY_ID


@pytest.fixture
def analytics(session, clock):
    return AnalyticsEngine(session, clock)


@pytest.fixture
def record(session):
    """Insert a transaction row (amount in minor units) and commit."""

    def _record(txn_date, amount, category=None, company_id=COMPANY_ID):
        session.add(
            Transaction(
                company_id=company_id,
                txn_date=txn_date,
                amount=amount,
                category=category,
            )
        )
        session.commit()

    return _record


class TestMonthlyBurn:
    def test_mean_of_monthly_totals(self, analytics, record):
        record(date(2024, 1, 5), -10000)
        record(date(2024, 1, 20), -5000)
        record(date(2024, 2, 3), -20000)

        months = analytics.monthly_breakdown(COMPANY_ID)

        assert [(m.month, m.burn, m.transaction_count) for m in months] == [
            ("2024-01", Decimal("150.00"), 2),
            ("2024-02", Decimal("200.00"), 1),
        ]
        assert analytics.monthly_burn(COMPANY_ID) == Decimal("175.00")

    def test_no_transactions(self, analytics):
        assert analytics.monthly_burn(COMPANY_ID) == Decimal("0")

    def test_scoped_to_company(self, analytics, record):
        record(date(2024, 1, 5), -10000, company_id=OTHER_COMPANY_ID)
        assert analytics.monthly_burn(COMPANY_ID) == Decimal("0")


class TestRunway:
    def test_cash_over_burn(self, analytics, record):
        record(date(2024, 5, 1), -5_000_000)

        assert analytics.runway(COMPANY_ID, Decimal("950000")) == Decimal("19.0")

    def test_infinite_without_burn(self, analytics):
        runway = analytics.runway(COMPANY_ID, Decimal("950000"))

        assert runway == INFINITE_RUNWAY
        assert runway != 0


class TestBurnTrend:
    def test_increasing(self, analytics, record):
        record(date(2024, 4, 10), -30000)
        record(date(2024, 5, 10), -40000)

        trend = analytics.burn_trend(COMPANY_ID)

        assert trend.trend is Trend.INCREASING
        assert trend.acceleration_pct == Decimal("33.3")
        assert trend.current == Decimal("400.00")
        assert trend.previous == Decimal("300.00")

    def test_single_month_is_stable(self, analytics, record):
        record(date(2024, 4, 10), -30000)

        trend = analytics.burn_trend(COMPANY_ID)

        assert trend.trend is Trend.STABLE
        assert trend.acceleration_pct == 0
        assert len(trend.months) == 1


class TestSignConvention:
    """Every figure reads outflows (negative amounts) as burn."""

    @pytest.fixture
    def spending(self, record):
        # 60 days from first to last row, so the span is exactly two months
        record(date(2024, 4, 1), -5_000_000, "Hiring")
        record(date(2024, 5, 31), -8_000_000, "Hiring")

    def test_spending_company_has_finite_runway(self, analytics, spending):
        cash = Decimal("950000")

        assert analytics.monthly_burn(COMPANY_ID) == Decimal("65000.00")
        runway = analytics.runway(COMPANY_ID, cash)
        assert runway == Decimal("14.62")
        assert runway == analytics.burn_rate_metrics(COMPANY_ID, cash).runway

    def test_rising_spend_is_increasing(self, analytics, spending):
        trend = analytics.burn_trend(COMPANY_ID)

        assert trend.trend is Trend.INCREASING
        assert trend.acceleration_pct == Decimal("60.0")

    def test_inflows_net_against_burn(self, analytics, spending, record):
        record(date(2024, 5, 15), 1_000_000, "Revenue")
        cash = Decimal("950000")

        metrics = analytics.burn_rate_metrics(COMPANY_ID, cash)

        assert analytics.monthly_burn(COMPANY_ID) == metrics.net_burn_rate
        assert analytics.runway(COMPANY_ID, cash) == metrics.runway

    def test_revenue_only_has_infinite_runway(self, analytics, record):
        record(date(2024, 4, 1), 5_000_000, "Revenue")

        assert analytics.monthly_burn(COMPANY_ID) == Decimal("-50000.00")
        assert analytics.runway(COMPANY_ID, Decimal("1000")) == INFINITE_RUNWAY


class TestBurnRateMetrics:
    def test_net_burn_and_runway(self, analytics, record, captured_logs):
        record(date(2024, 1, 1), -30000, "Hiring")
        record(date(2024, 3, 1), 10000, "Revenue")

        metrics = analytics.burn_rate_metrics(COMPANY_ID, Decimal("1000"))

        assert metrics.monthly_expenses == Decimal("150.00")
        assert metrics.monthly_revenue == Decimal("50.00")
        assert metrics.net_burn_rate == Decimal("100.00")
        assert metrics.runway == Decimal("10")
        assert not metrics.is_profitable
        assert metrics.calculation_period is CalculationPeriod.LAST_3_MONTHS
        assert any(r["message"] == "burn_rate_computed" for r in captured_logs())

    def test_empty_stream(self, analytics):
        metrics = analytics.burn_rate_metrics(COMPANY_ID, Decimal("1000"))

        assert metrics.runway == INFINITE_RUNWAY
        assert metrics.calculation_period is CalculationPeriod.INSUFFICIENT_DATA


class TestBurnByCategory:
    def test_trailing_window_from_clock(self, analytics, record):
        record(date(2024, 1, 15), -90000, "Marketing")  # outside window
        record(date(2024, 5, 2), -60000, "Hiring")
        record(date(2024, 6, 10), -30000, "Cloud")
        record(date(2024, 6, 12), 500000, "Revenue")

        breakdown = analytics.burn_by_category(COMPANY_ID)

        assert [(c.category, c.amount, c.percentage) for c in breakdown] == [
            ("Hiring", Decimal("200.00"), Decimal("66.7")),
            ("Cloud", Decimal("100.00"), Decimal("33.3")),
        ]

    def test_explicit_as_of(self, analytics, record):
        record(date(2024, 1, 15), -90000, "Marketing")

        breakdown = analytics.burn_by_category(COMPANY_ID, as_of=date(2024, 2, 1))

        assert [c.category for c in breakdown] == ["Marketing"]
