"""
Module: runway_kernel.services.chart_of_accounts
Responsibility: Own the per-company chart of accounts -- seed the canonical
    account list, create accounts with unique codes, list, look up and
    archive them.
Architecture position: Kernel > Services.  Flush-only: the caller commits.

Invariants enforced:
    - (company_id, code) is unique.  Checked before insert and backed by
      the uq_account_company_code constraint, which catches the race
      between two concurrent creators.
    - initialize() is idempotent: a company that already has any account
      is left untouched.
    - Accounts are archived, never deleted.
"""

from collections import Counter
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from runway_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateAccountCodeError,
    ValidationError,
)
from runway_kernel.logging_config import get_logger
from runway_kernel.models.account import Account, AccountType
from runway_kernel.services.base import BaseService

logger = get_logger("services.chart_of_accounts")


@dataclass(frozen=True)
class AccountTemplate:
    """One row of the canonical chart of accounts."""

    code: str
    name: str
    account_type: AccountType
    subtype: str | None
    category: str | None
    account_group: str
    is_gst_applicable: bool = False


def _asset(code, name, subtype, category, group, gst=False):
    return AccountTemplate(code, name, AccountType.ASSET, subtype, category, group, gst)


def _liability(code, name, subtype, category, group="Current Liabilities"):
    return AccountTemplate(code, name, AccountType.LIABILITY, subtype, category, group)


def _equity(code, name, subtype):
    return AccountTemplate(
        code, name, AccountType.EQUITY, subtype, "Equity", "Shareholders Equity"
    )


def _revenue(code, name, category, gst=False):
    return AccountTemplate(
        code, name, AccountType.REVENUE, None, category, "Revenue", gst
    )


def _expense(code, name, category, gst=True):
    return AccountTemplate(
        code, name, AccountType.EXPENSE, None, category, "Operating Expenses", gst
    )


_CASH = "Cash and Cash Equivalents"

DEFAULT_CHART_OF_ACCOUNTS: tuple[AccountTemplate, ...] = (
    # Assets
    _asset("1000", "Cash", "Current Asset", _CASH, "Current Assets"),
    _asset("1010", "Bank - HDFC", "Current Asset", _CASH, "Current Assets"),
    _asset("1011", "Bank - ICICI", "Current Asset", _CASH, "Current Assets"),
    _asset("1012", "Bank - Axis", "Current Asset", _CASH, "Current Assets"),
    _asset("1013", "Bank - SBI", "Current Asset", _CASH, "Current Assets"),
    _asset("1020", "Razorpay / Payment Gateway", "Current Asset", _CASH, "Current Assets"),
    _asset("1100", "Accounts Receivable", "Current Asset", "Receivables", "Current Assets"),
    _asset("1110", "GST Input Credit Receivable", "Current Asset", "Tax Receivables", "Current Assets"),
    _asset("1120", "TDS Receivable", "Current Asset", "Tax Receivables", "Current Assets"),
    _asset("1200", "Prepaid Expenses", "Current Asset", "Prepayments", "Current Assets"),
    _asset("1500", "Computer Equipment", "Fixed Asset", "Property, Plant & Equipment", "Fixed Assets", gst=True),
    _asset("1510", "Office Furniture", "Fixed Asset", "Property, Plant & Equipment", "Fixed Assets", gst=True),
    _asset("1520", "Accumulated Depreciation", "Fixed Asset", "Contra Asset", "Fixed Assets"),
    # Liabilities
    _liability("2000", "Accounts Payable", "Current Liability", "Payables"),
    _liability("2100", "GST Payable - CGST", "Current Liability", "Tax Payables"),
    _liability("2101", "GST Payable - SGST", "Current Liability", "Tax Payables"),
    _liability("2102", "GST Payable - IGST", "Current Liability", "Tax Payables"),
    _liability("2110", "TDS Payable", "Current Liability", "Tax Payables"),
    _liability("2120", "PF Payable", "Current Liability", "Statutory Payables"),
    _liability("2121", "ESI Payable", "Current Liability", "Statutory Payables"),
    _liability("2200", "Salaries Payable", "Current Liability", "Accrued Expenses"),
    _liability("2500", "Long-term Loans", "Long-term Liability", "Loans", "Long-term Liabilities"),
    # Equity
    _equity("3000", "Share Capital", "Capital"),
    _equity("3100", "Retained Earnings", "Retained Earnings"),
    _equity("3200", "Current Year Profit/Loss", "Net Income"),
    # Revenue
    _revenue("4000", "Service Revenue", "Operating Revenue", gst=True),
    _revenue("4100", "Product Sales", "Operating Revenue", gst=True),
    _revenue("4200", "Consulting Revenue", "Operating Revenue", gst=True),
    _revenue("4900", "Other Income", "Non-Operating Revenue"),
    # Expenses
    _expense("5000", "Salaries and Wages", "Hiring", gst=False),
    _expense("5010", "Employee Benefits", "Hiring", gst=False),
    _expense("5020", "Contractor Payments", "Hiring"),
    _expense("5030", "Recruitment Expenses", "Hiring"),
    _expense("5100", "Digital Marketing", "Marketing"),
    _expense("5110", "Content Marketing", "Marketing"),
    _expense("5120", "Events and Sponsorships", "Marketing"),
    _expense("5200", "Software Subscriptions", "SaaS"),
    _expense("5210", "Payment Gateway Fees", "SaaS"),
    _expense("5300", "Cloud Services", "Cloud"),
    _expense("5310", "Server Hosting", "Cloud"),
    _expense("5400", "Office Rent", "G_A"),
    _expense("5410", "Utilities", "G_A"),
    _expense("5420", "Internet and Phone", "G_A"),
    _expense("5430", "Legal and Professional Fees", "G_A"),
    _expense("5440", "Bank Charges", "G_A", gst=False),
    _expense("5450", "Travel and Transportation", "G_A"),
    _expense("5460", "Office Supplies", "G_A"),
    _expense("5470", "Depreciation", "G_A", gst=False),
    _expense("5480", "Miscellaneous Expenses", "G_A"),
)

DEFAULT_ACCOUNT_CODES: frozenset[str] = frozenset(
    t.code for t in DEFAULT_CHART_OF_ACCOUNTS
)


class ChartOfAccounts(BaseService):
    """
    Chart of accounts for each company.

    Contract:
        Writes are flushed, not committed; wrap calls in
        ``session_scope()`` or commit explicitly.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def initialize(self, company_id: str) -> int:
        """
        Seed the canonical chart of accounts for a company.

        No-op when the company already has accounts.

        Returns:
            Number of accounts created (0 when already initialized).
        """
        existing = self.session.scalar(
            select(func.count(Account.id)).where(Account.company_id == company_id)
        )
        if existing:
            logger.info(
                "chart_of_accounts_already_initialized",
                extra={"company_id": company_id, "account_count": existing},
            )
            return 0

        for template in DEFAULT_CHART_OF_ACCOUNTS:
            self.session.add(
                Account(
                    company_id=company_id,
                    code=template.code,
                    name=template.name,
                    account_type=template.account_type.value,
                    subtype=template.subtype,
                    category=template.category,
                    account_group=template.account_group,
                    is_gst_applicable=template.is_gst_applicable,
                    balance=0,
                    is_active=True,
                )
            )
        self.session.flush()

        counts = self.count_by_type(company_id)
        logger.info(
            "chart_of_accounts_seeded",
            extra={
                "company_id": company_id,
                "account_count": len(DEFAULT_CHART_OF_ACCOUNTS),
                "counts_by_type": {t.value: n for t, n in counts.items()},
            },
        )
        return len(DEFAULT_CHART_OF_ACCOUNTS)

    def create_account(
        self,
        company_id: str,
        code: str,
        name: str,
        account_type: AccountType | str,
        subtype: str | None = None,
        category: str | None = None,
        account_group: str | None = None,
        is_gst_applicable: bool = False,
    ) -> Account:
        """
        Create one account.

        Raises:
            ValidationError: Blank code or name, or unknown account type.
            DuplicateAccountCodeError: Code already used by the company.
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("code", "must not be blank")
        if not name:
            raise ValidationError("name", "must not be blank")
        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError("account_type", f"unknown account type {account_type!r}")

        if self._find(company_id, code) is not None:
            raise DuplicateAccountCodeError(company_id, code)

        account = Account(
            company_id=company_id,
            code=code,
            name=name,
            account_type=account_type.value,
            subtype=subtype,
            category=category,
            account_group=account_group,
            is_gst_applicable=is_gst_applicable,
            balance=0,
            is_active=True,
        )
        try:
            with self.session.begin_nested():
                self.session.add(account)
        except IntegrityError:
            raise DuplicateAccountCodeError(company_id, code)

        logger.info(
            "account_created",
            extra={
                "company_id": company_id,
                "account_code": code,
                "account_type": account_type.value,
            },
        )
        return account

    def get_accounts(
        self,
        company_id: str,
        account_type: AccountType | str | None = None,
        include_archived: bool = False,
    ) -> list[Account]:
        """Accounts ordered by code, optionally of one type."""
        stmt = select(Account).where(Account.company_id == company_id)
        if account_type is not None:
            stmt = stmt.where(Account.account_type == AccountType(account_type).value)
        if not include_archived:
            stmt = stmt.where(Account.is_active.is_(True))
        return list(self.session.scalars(stmt.order_by(Account.code)))

    def get_account_by_code(self, company_id: str, code: str) -> Account:
        """
        Raises:
            AccountNotFoundError: No such code for the company.
        """
        account = self._find(company_id, code)
        if account is None:
            raise AccountNotFoundError(company_id, code)
        return account

    def archive_account(self, company_id: str, code: str) -> Account:
        """Soft-archive an account; it stays in the ledger history."""
        account = self.get_account_by_code(company_id, code)
        if account.is_active:
            account.is_active = False
            self.session.flush()
            logger.info(
                "account_archived",
                extra={"company_id": company_id, "account_code": code},
            )
        return account

    def count_by_type(self, company_id: str) -> dict[AccountType, int]:
        rows = self.session.execute(
            select(Account.account_type, func.count(Account.id))
            .where(Account.company_id == company_id)
            .group_by(Account.account_type)
        ).all()
        counts = Counter({t: 0 for t in AccountType})
        for account_type, count in rows:
            counts[AccountType(account_type)] = count
        return dict(counts)

    def _find(self, company_id: str, code: str) -> Account | None:
        return self.session.scalar(
            select(Account).where(
                Account.company_id == company_id,
                Account.code == code,
            )
        )
