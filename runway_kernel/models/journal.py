"""
Module: runway_kernel.models.journal
Responsibility: ORM persistence for journal entries -- the single source of
    financial truth.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row is one debit OR credit line against one account; amounts are
      non-negative minor units and exactly one side is non-zero
      (ck_journal_one_side).
    - For a transaction_id, sum(debit) == sum(credit) (checked by
      LedgerPoster before any row is written).
    - One posting per (company_id, transaction_id): the postings header
      row carries the unique key (uq_posting_company_txn).
    - Append-only: db/immutability.py rejects UPDATE and DELETE.
      Corrections are reversing entries that point at the original via
      reversal_of_id.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from runway_kernel.db.base import TrackedBase, UUIDString
from runway_kernel.db.types import from_minor

if TYPE_CHECKING:
    from runway_kernel.models.account import Account


class Posting(TrackedBase):
    """
    Header row claimed once per posted transaction_id.

    The unique key makes a second posting under the same id fail at the
    database even when two writers race; LedgerPoster turns that into an
    idempotent replay of the first posting.
    """

    __tablename__ = "postings"

    __table_args__ = (
        UniqueConstraint("company_id", "transaction_id", name="uq_posting_company_txn"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    line_count: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Posting {self.company_id}/{self.transaction_id}>"


class JournalEntry(TrackedBase):
    """
    A single debit or credit line of a balanced posting.

    Contract:
        Created only by LedgerPoster, in balanced sets sharing a
        transaction_id.  Never updated or deleted.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        CheckConstraint(
            "debit >= 0 AND credit >= 0 AND (debit = 0 OR credit = 0)",
            name="ck_journal_one_side",
        ),
        Index("idx_journal_company_date", "company_id", "entry_date"),
        Index("idx_journal_company_txn", "company_id", "transaction_id"),
        Index("idx_journal_account", "account_id"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    # Source business transaction (or invoice/revenue id)
    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Accounting date
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    debit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    credit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Set on reversing entries; points at the entry being reversed
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    account: Mapped["Account"] = relationship(back_populates="journal_entries")

    def __repr__(self) -> str:
        return (
            f"<JournalEntry {self.transaction_id} "
            f"Dr {self.debit} Cr {self.credit}>"
        )

    @property
    def is_debit(self) -> bool:
        return self.debit > 0

    @property
    def debit_amount(self) -> Decimal:
        return from_minor(self.debit)

    @property
    def credit_amount(self) -> Decimal:
        return from_minor(self.credit)
