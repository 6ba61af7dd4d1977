"""
Tests for session_scope and read_scope.

session_scope owns a write transaction: commit on success, rollback on
error.  read_scope hands selectors a session that is always rolled back;
consistent=True pins every query in the scope to one snapshot.
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from runway_kernel.db.engine import is_postgres, read_scope, session_scope
from runway_kernel.models.account import Account
from runway_kernel.selectors.journal_selector import JournalSelector
from runway_kernel.selectors.trial_balance import TrialBalanceEngine
from runway_kernel.services.chart_of_accounts import ChartOfAccounts
from runway_kernel.services.ledger_poster import LedgerPoster
from tests.conftest import COMPANY_ID, OTHER_COMPANY_ID


def account_count(session_factory, company_id: str) -> int:
    with session_factory() as check:
        return check.scalar(
            select(func.count(Account.id)).where(Account.company_id == company_id)
        )


class TestSessionScope:
    def test_commits_on_success(self, session_factory):
        with session_scope() as session:
            ChartOfAccounts(session).initialize(COMPANY_ID)

        assert account_count(session_factory, COMPANY_ID) == 49

    def test_rolls_back_on_exception(self, session_factory, captured_logs):
        with pytest.raises(RuntimeError, match="boom"):
            with session_scope() as session:
                ChartOfAccounts(session).initialize(COMPANY_ID)
                raise RuntimeError("boom")

        assert account_count(session_factory, COMPANY_ID) == 0
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())


class TestReadScope:
    @pytest.fixture
    def posted(self, session_factory, category_map, company, posting_date):
        with session_factory() as writer:
            LedgerPoster(writer, category_map=category_map).post_transaction(
                company, "txn-1", "-1180.00", "Cloud", "AWS", posting_date,
                tax_amount="180.00",
            )
        return company

    def test_selectors_run_in_consistent_scope(self, posted, clock):
        with read_scope(consistent=True) as session:
            if is_postgres():
                assert session.connection().get_isolation_level() == "REPEATABLE READ"
            engine = TrialBalanceEngine(session, clock)
            trial_balance = engine.calculate_trial_balance(posted)
            equation = engine.verify_accounting_equation(posted)
            lines = JournalSelector(session).entries_for_transaction(posted, "txn-1")

        assert trial_balance.is_balanced
        assert trial_balance.total_debits == Decimal("1180.00")
        assert equation.is_balanced
        assert len(lines) == 3

    def test_writes_are_rolled_back(self, session_factory, company):
        with read_scope() as session:
            ChartOfAccounts(session).initialize(OTHER_COMPANY_ID)
            assert session.scalar(
                select(func.count(Account.id)).where(
                    Account.company_id == OTHER_COMPANY_ID
                )
            ) == 49

        assert account_count(session_factory, OTHER_COMPANY_ID) == 0

    def test_rolled_back_when_block_raises(self, session_factory, company):
        with pytest.raises(ValueError, match="selector failed"):
            with read_scope(consistent=True) as session:
                ChartOfAccounts(session).initialize(OTHER_COMPANY_ID)
                raise ValueError("selector failed")

        assert account_count(session_factory, OTHER_COMPANY_ID) == 0

    @pytest.mark.postgres
    def test_snapshot_ignores_later_commits(self, posted, session_factory, category_map, clock, posting_date):
        if not is_postgres():
            pytest.skip("SQLite readers block writers; snapshot needs PostgreSQL")

        with read_scope(consistent=True) as session:
            engine = TrialBalanceEngine(session, clock)
            before = engine.calculate_trial_balance(posted).total_debits

            with session_factory() as writer:
                LedgerPoster(writer, category_map=category_map).post_transaction(
                    posted, "txn-2", "-500.00", "SaaS", None, posting_date
                )

            assert engine.calculate_trial_balance(posted).total_debits == before
