"""
Module: runway_kernel.selectors.trial_balance
Responsibility: Trial balance and accounting-equation checks for a company.
Architecture position: Kernel > Selectors.  Read-only.

Two independent computation paths:
    - calculate_trial_balance() re-aggregates journal entries.
    - verify_accounting_equation() sums the cached Account.balance column.

They must agree.  A divergence means the atomic posting contract was broken
somewhere; it is reported (and find_balance_drift() names the accounts),
never reconciled here.

Invariants enforced:
    - Imbalance is a finding, not an exception.
    - "Balanced" means a difference below one minor unit (0.01).
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from runway_kernel.db.types import from_minor, is_within_tolerance
from runway_kernel.logging_config import get_logger
from runway_kernel.models.account import Account, AccountType
from runway_kernel.models.journal import JournalEntry
from runway_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.trial_balance")


@dataclass(frozen=True)
class TrialBalanceEntry:
    """
    One account line of a trial balance.

    debit/credit is the presentation column (absolute value on one side);
    balance is the signed normal-side net from the journal.
    """

    account_code: str
    account_name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    company_id: str
    as_of_date: date
    entries: tuple[TrialBalanceEntry, ...]
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool


@dataclass(frozen=True)
class AccountingEquationResult:
    """
    Cached balances summed by type.

    is_balanced checks Assets == Liabilities + Equity + (Revenue - Expenses):
    before the period is closed, profit sits in the revenue and expense
    accounts rather than in retained earnings.
    """

    assets: Decimal
    liabilities: Decimal
    equity: Decimal
    revenue: Decimal
    expenses: Decimal
    difference: Decimal
    is_balanced: bool

    @property
    def net_income(self) -> Decimal:
        return self.revenue - self.expenses


@dataclass(frozen=True)
class BalanceDrift:
    """An account whose cached balance disagrees with its journal entries."""

    account_code: str
    account_name: str
    cached_balance: Decimal
    ledger_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_balance - self.ledger_balance


def _normal_side_net(account_type: AccountType, debit: int, credit: int) -> int:
    if account_type.is_debit_normal:
        return debit - credit
    return credit - debit


class TrialBalanceEngine(BaseSelector):
    """Trial balance, accounting equation and balance drift for a company."""

    def _journal_totals(self, company_id: str, as_of_date: date | None = None):
        """Per-account (debit, credit) sums from the journal, in SQL."""
        stmt = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                func.coalesce(func.sum(JournalEntry.debit), 0).label("debit"),
                func.coalesce(func.sum(JournalEntry.credit), 0).label("credit"),
            )
            .join(JournalEntry, JournalEntry.account_id == Account.id)
            .where(
                Account.company_id == company_id,
                JournalEntry.company_id == company_id,
            )
            .group_by(Account.id, Account.code, Account.name, Account.account_type)
            .order_by(Account.code)
        )
        if as_of_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= as_of_date)
        return self.session.execute(stmt).all()

    def calculate_trial_balance(
        self, company_id: str, as_of_date: date | None = None
    ) -> TrialBalance:
        """
        Aggregate entries dated on or before as_of_date (default: today).

        Asset/Expense accounts show a net debit in the debit column (or its
        absolute value in the credit column when negative);
        Liability/Equity/Revenue mirror that on the credit side.  Accounts
        netting to zero are omitted.
        """
        as_of_date = as_of_date or self.clock.today()

        entries: list[TrialBalanceEntry] = []
        total_debits = 0
        total_credits = 0
        for row in self._journal_totals(company_id, as_of_date):
            account_type = AccountType(row.account_type)
            net = _normal_side_net(account_type, int(row.debit), int(row.credit))
            if net == 0:
                continue

            if account_type.is_debit_normal:
                debit, credit = (net, 0) if net > 0 else (0, -net)
            else:
                debit, credit = (0, net) if net > 0 else (-net, 0)
            total_debits += debit
            total_credits += credit

            entries.append(
                TrialBalanceEntry(
                    account_code=row.code,
                    account_name=row.name,
                    account_type=account_type,
                    debit=from_minor(debit),
                    credit=from_minor(credit),
                    balance=from_minor(net),
                )
            )

        difference = abs(total_debits - total_credits)
        is_balanced = is_within_tolerance(difference)

        logger.info(
            "trial_balance_computed",
            extra={
                "company_id": company_id,
                "as_of_date": as_of_date,
                "account_count": len(entries),
                "total_debits": from_minor(total_debits),
                "total_credits": from_minor(total_credits),
                "is_balanced": is_balanced,
            },
        )
        if not is_balanced:
            logger.warning(
                "trial_balance_unbalanced",
                extra={
                    "company_id": company_id,
                    "difference": from_minor(difference),
                },
            )

        return TrialBalance(
            company_id=company_id,
            as_of_date=as_of_date,
            entries=tuple(entries),
            total_debits=from_minor(total_debits),
            total_credits=from_minor(total_credits),
            difference=from_minor(difference),
            is_balanced=is_balanced,
        )

    def _cached_by_type(self, company_id: str) -> dict[AccountType, int]:
        rows = self.session.execute(
            select(Account.account_type, func.coalesce(func.sum(Account.balance), 0))
            .where(Account.company_id == company_id)
            .group_by(Account.account_type)
        ).all()
        totals = {t: 0 for t in AccountType}
        for account_type, total in rows:
            totals[AccountType(account_type)] = int(total)
        return totals

    def balances_by_type(self, company_id: str) -> dict[AccountType, Decimal]:
        """Cached balances summed per account type."""
        return {t: from_minor(v) for t, v in self._cached_by_type(company_id).items()}

    def verify_accounting_equation(self, company_id: str) -> AccountingEquationResult:
        """Check Assets == Liabilities + Equity + (Revenue - Expenses) on cached balances."""
        totals = self._cached_by_type(company_id)
        assets = totals[AccountType.ASSET]
        liabilities = totals[AccountType.LIABILITY]
        equity = totals[AccountType.EQUITY]
        revenue = totals[AccountType.REVENUE]
        expenses = totals[AccountType.EXPENSE]

        difference = abs(assets - (liabilities + equity + revenue - expenses))
        is_balanced = is_within_tolerance(difference)

        if not is_balanced:
            logger.error(
                "accounting_equation_violation",
                extra={
                    "company_id": company_id,
                    "assets": from_minor(assets),
                    "liabilities": from_minor(liabilities),
                    "equity": from_minor(equity),
                    "net_income": from_minor(revenue - expenses),
                    "difference": from_minor(difference),
                },
            )

        return AccountingEquationResult(
            assets=from_minor(assets),
            liabilities=from_minor(liabilities),
            equity=from_minor(equity),
            revenue=from_minor(revenue),
            expenses=from_minor(expenses),
            difference=from_minor(difference),
            is_balanced=is_balanced,
        )

    def validate_books_balance(
        self, company_id: str, as_of_date: date | None = None
    ) -> tuple[bool, str]:
        """Operator summary of both checks."""
        trial = self.calculate_trial_balance(company_id, as_of_date)
        equation = self.verify_accounting_equation(company_id)

        problems = []
        if not trial.is_balanced:
            problems.append(
                f"Trial balance is off by {trial.difference} "
                f"(debits {trial.total_debits}, credits {trial.total_credits})"
            )
        if not equation.is_balanced:
            problems.append(
                f"Accounting equation is off by {equation.difference} "
                f"(assets {equation.assets}, liabilities {equation.liabilities}, "
                f"equity {equation.equity}, net income {equation.net_income})"
            )
        if problems:
            return False, "; ".join(problems)
        return True, f"Books are balanced (total {trial.total_debits})"

    def find_balance_drift(self, company_id: str) -> list[BalanceDrift]:
        """Accounts whose cached balance differs from the journal."""
        ledger = {
            row.id: _normal_side_net(
                AccountType(row.account_type), int(row.debit), int(row.credit)
            )
            for row in self._journal_totals(company_id)
        }
        accounts = self.session.execute(
            select(Account.id, Account.code, Account.name, Account.balance)
            .where(Account.company_id == company_id)
            .order_by(Account.code)
        )

        drifts = []
        for account in accounts:
            ledger_balance = ledger.get(account.id, 0)
            if int(account.balance) == ledger_balance:
                continue
            drift = BalanceDrift(
                account_code=account.code,
                account_name=account.name,
                cached_balance=from_minor(int(account.balance)),
                ledger_balance=from_minor(ledger_balance),
            )
            drifts.append(drift)
            logger.error(
                "balance_drift_detected",
                extra={
                    "company_id": company_id,
                    "account_code": account.code,
                    "cached_balance": drift.cached_balance,
                    "ledger_balance": drift.ledger_balance,
                },
            )
        return drifts
