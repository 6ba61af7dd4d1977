"""
Module: runway_kernel.models.account
Responsibility: ORM persistence for the per-company Chart of Accounts -- the
    target of every journal entry.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (company_id, code) is unique (uq_account_company_code).
    - balance is a cached, derived value: the normal-side signed sum of all
      journal entries against the account, in minor units.  Only the
      LedgerPoster changes it, in the same transaction that writes the
      entries.
    - Accounts are archived (is_active=False), never deleted
      (db/immutability.py).
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from runway_kernel.db.base import TrackedBase
from runway_kernel.db.types import from_minor

if TYPE_CHECKING:
    from runway_kernel.models.journal import JournalEntry


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses grow with debits."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class Account(TrackedBase):
    """
    Chart of Accounts entry for one company.

    Contract:
        code is unique within company_id.  account_type decides the sign of
        the cached balance: Asset/Expense carry debit - credit,
        Liability/Equity/Revenue carry credit - debit.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_account_company_code"),
        Index("idx_account_company_type", "company_id", "account_type"),
        Index("idx_account_company_active", "company_id", "is_active"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Human-readable account code, e.g. "1010"
    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    subtype: Mapped[str | None] = mapped_column(String(100), nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Balance-sheet grouping, e.g. "Current Assets"
    account_group: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_gst_applicable: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Cached normal-side balance in minor units
    balance: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    journal_entries: Mapped[list["JournalEntry"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.company_id}/{self.code}: {self.name}>"

    @property
    def type(self) -> AccountType:
        return AccountType(self.account_type)

    @property
    def is_debit_normal(self) -> bool:
        return self.type.is_debit_normal

    @property
    def balance_amount(self) -> Decimal:
        """Cached balance in major units."""
        return from_minor(self.balance)

    def balance_change(self, debit: int, credit: int) -> int:
        """Signed change to the cached balance for one entry (minor units)."""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit
