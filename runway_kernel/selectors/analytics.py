"""
Module: runway_kernel.selectors.analytics
Responsibility: Burn, runway and trend figures from a company's transaction
    stream.
Architecture position: Kernel > Selectors.  Loads ``transactions`` rows and
    hands them to the pure functions in ``runway_engines.burn``.

Independent of the ledger: these figures come from the same transaction
stream that feeds LedgerPoster, not from journal entries.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from runway_engines.burn import (
    BurnRateMetrics,
    BurnTrend,
    CashFlow,
    CategoryBurn,
    MonthlyBurn,
    average_burn,
    bucket_by_month,
    burn_by_category,
    burn_rate_metrics,
    classify_trend,
    compute_runway,
)
from runway_kernel.db.types import AmountLike, from_minor, to_minor
from runway_kernel.logging_config import get_logger
from runway_kernel.models.transaction import Transaction
from runway_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.analytics")


class AnalyticsEngine(BaseSelector):
    """Read-only analytics over the transactions table."""

    def _cash_flows(self, company_id: str) -> list[CashFlow]:
        rows = self.session.execute(
            select(Transaction.txn_date, Transaction.amount, Transaction.category)
            .where(Transaction.company_id == company_id)
            .order_by(Transaction.txn_date)
        )
        return [
            CashFlow(txn_date=row.txn_date, amount=int(row.amount), category=row.category)
            for row in rows
        ]

    def monthly_breakdown(self, company_id: str) -> list[MonthlyBurn]:
        """Per-month net outflow and counts, oldest first."""
        return bucket_by_month(self._cash_flows(company_id))

    def monthly_burn(self, company_id: str) -> Decimal:
        """Mean monthly net outflow across observed months; 0 with no data."""
        months = self.monthly_breakdown(company_id)
        burn = average_burn(months)
        logger.debug(
            "monthly_burn_computed",
            extra={
                "company_id": company_id,
                "month_count": len(months),
                "monthly_burn": burn,
            },
        )
        return burn

    def runway(self, company_id: str, cash_balance: AmountLike) -> Decimal:
        """
        Months of cash at the current monthly burn.

        INFINITE_RUNWAY when the burn is zero or negative.
        """
        cash = from_minor(to_minor(cash_balance))
        return compute_runway(cash, self.monthly_burn(company_id))

    def burn_trend(self, company_id: str) -> BurnTrend:
        return classify_trend(self.monthly_breakdown(company_id))

    def burn_rate_metrics(
        self, company_id: str, cash_balance: AmountLike
    ) -> BurnRateMetrics:
        """Gross/net burn over the span of the stream, runway on net burn."""
        cash = from_minor(to_minor(cash_balance))
        metrics = burn_rate_metrics(self._cash_flows(company_id), cash)
        logger.info(
            "burn_rate_computed",
            extra={
                "company_id": company_id,
                "gross_burn_rate": metrics.gross_burn_rate,
                "net_burn_rate": metrics.net_burn_rate,
                "runway": str(metrics.runway),
                "calculation_period": metrics.calculation_period.value,
            },
        )
        return metrics

    def burn_by_category(
        self,
        company_id: str,
        as_of: date | None = None,
        window_months: int = 3,
    ) -> list[CategoryBurn]:
        """Monthly average outflow per category over the trailing window."""
        return burn_by_category(
            self._cash_flows(company_id),
            as_of or self.clock.today(),
            window_months,
        )
