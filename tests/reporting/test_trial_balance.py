"""
Tests for TrialBalanceEngine.

Verifies:
- Trial balance from journal entries, with normal-side presentation
- as_of_date filtering
- Accounting equation on cached balances, including unclosed P&L
- Drift between cached balances and the journal is detected, not hidden
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import text

from runway_kernel.models.account import AccountType
from runway_kernel.selectors.trial_balance import TrialBalanceEngine


@pytest.fixture
def engine(session, clock):
    return TrialBalanceEngine(session, clock)


@pytest.fixture
def posted(poster, company, posting_date):
    """An AWS bill with input GST and a customer receipt."""
    poster.post_transaction(
        company, "txn-aws", "-1180.00", "Cloud", "AWS", posting_date,
        tax_amount="180.00",
    )
    poster.post_transaction(
        company, "txn-rcpt", "5000.00", "Revenue", "Client A", posting_date
    )
    return company


class TestTrialBalance:
    def test_empty_books_balance(self, engine, company):
        trial = engine.calculate_trial_balance(company)

        assert trial.entries == ()
        assert trial.is_balanced
        assert trial.total_debits == Decimal("0.00")

    def test_balanced_after_postings(self, engine, posted):
        trial = engine.calculate_trial_balance(posted)

        assert trial.is_balanced
        assert trial.total_debits == trial.total_credits == Decimal("5000.00")
        assert [(e.account_code, e.debit, e.credit) for e in trial.entries] == [
            ("1010", Decimal("3820.00"), Decimal("0.00")),
            ("1110", Decimal("180.00"), Decimal("0.00")),
            ("4000", Decimal("0.00"), Decimal("5000.00")),
            ("5300", Decimal("1000.00"), Decimal("0.00")),
        ]

    def test_overdrawn_asset_shows_on_credit_side(self, engine, poster, company, posting_date):
        poster.post_transaction(company, "txn-1", "-250.00", "SaaS", None, posting_date)

        clearing = next(
            e for e in engine.calculate_trial_balance(company).entries
            if e.account_code == "1010"
        )
        assert clearing.debit == Decimal("0.00")
        assert clearing.credit == Decimal("250.00")
        assert clearing.balance == Decimal("-250.00")
        assert clearing.account_type is AccountType.ASSET

    def test_as_of_date_excludes_later_entries(self, engine, poster, company):
        poster.post_transaction(company, "txn-jun", "-100", "SaaS", None, date(2024, 6, 15))
        poster.post_transaction(company, "txn-jul", "-300", "SaaS", None, date(2024, 7, 10))

        june = engine.calculate_trial_balance(company, as_of_date=date(2024, 6, 30))
        july = engine.calculate_trial_balance(company, as_of_date=date(2024, 7, 31))

        assert june.total_debits == Decimal("100.00")
        assert july.total_debits == Decimal("400.00")

    def test_defaults_to_clock_date(self, engine, poster, company):
        poster.post_transaction(company, "txn-future", "-100", "SaaS", None, date(2024, 7, 1))

        trial = engine.calculate_trial_balance(company)

        assert trial.as_of_date == date(2024, 6, 30)
        assert trial.entries == ()

    def test_companies_are_separate(self, engine, posted, other_company):
        assert engine.calculate_trial_balance(other_company).entries == ()

    def test_logged(self, engine, posted, captured_logs):
        engine.calculate_trial_balance(posted)

        record = next(r for r in captured_logs() if r["message"] == "trial_balance_computed")
        assert record["is_balanced"] is True
        assert record["account_count"] == 4


class TestAccountingEquation:
    def test_holds_with_unclosed_profit_and_loss(self, engine, posted):
        result = engine.verify_accounting_equation(posted)

        assert result.is_balanced
        assert result.assets == Decimal("4000.00")
        assert result.revenue == Decimal("5000.00")
        assert result.expenses == Decimal("1000.00")
        assert result.net_income == Decimal("4000.00")

    def test_holds_with_equity_and_liabilities(self, engine, poster, company, posting_date):
        poster.post_transaction(company, "txn-seed", "100000", "Investment", "Seed", posting_date)
        poster.post_transaction(company, "txn-loan", "25000", "Loan", "Bank loan", posting_date)
        poster.post_transaction(company, "txn-rent", "-30000", "G_A", "Rent", posting_date)

        result = engine.verify_accounting_equation(company)

        assert result.is_balanced
        assert result.assets == Decimal("95000.00")
        assert result.liabilities == Decimal("25000.00")
        assert result.equity == Decimal("100000.00")
        assert result.net_income == Decimal("-30000.00")

    def test_balances_by_type_covers_every_type(self, engine, company):
        assert set(engine.balances_by_type(company)) == set(AccountType)


class TestBooksBalance:
    def test_balanced_summary(self, engine, posted):
        ok, message = engine.validate_books_balance(posted)

        assert ok
        assert message == "Books are balanced (total 5000.00)"


class TestBalanceDrift:
    @pytest.fixture
    def corrupted(self, session, posted):
        """Cached balance bumped behind the poster's back."""
        session.execute(
            text(
                "UPDATE accounts SET balance = balance + 12345 "
                "WHERE company_id = :company_id AND code = '5300'"
            ),
            {"company_id": posted},
        )
        session.commit()
        return posted

    def test_no_drift_after_normal_postings(self, engine, posted):
        assert engine.find_balance_drift(posted) == []

    def test_drift_detected(self, engine, corrupted, captured_logs):
        drifts = engine.find_balance_drift(corrupted)

        assert len(drifts) == 1
        drift = drifts[0]
        assert drift.account_code == "5300"
        assert drift.cached_balance == Decimal("1123.45")
        assert drift.ledger_balance == Decimal("1000.00")
        assert drift.difference == Decimal("123.45")
        assert any(r["message"] == "balance_drift_detected" for r in captured_logs())

    def test_equation_fails_but_trial_balance_holds(self, engine, corrupted, captured_logs):
        assert engine.calculate_trial_balance(corrupted).is_balanced

        result = engine.verify_accounting_equation(corrupted)

        assert not result.is_balanced
        assert result.difference == Decimal("123.45")
        assert any(
            r["message"] == "accounting_equation_violation" for r in captured_logs()
        )

    def test_books_balance_reports_problem(self, engine, corrupted):
        ok, message = engine.validate_books_balance(corrupted)

        assert not ok
        assert "Accounting equation is off by 123.45" in message
