"""
Module: runway_kernel.models.transaction
Responsibility: Persisted shape of the business transaction stream that feeds
    both LedgerPoster and the analytics selectors.
Architecture position: Kernel > Models.

The rows are written by the upstream transaction-creation layer; the kernel
only reads them.  amount is signed minor units: negative is money out,
positive is money in.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from runway_kernel.db.base import TrackedBase
from runway_kernel.db.types import from_minor


class Transaction(TrackedBase):
    """A bank/cash movement recorded for a company."""

    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transaction_company_date", "company_id", "txn_date"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    txn_date: Mapped[date] = mapped_column(Date, nullable=False)

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Transaction {self.company_id} {self.txn_date} {self.amount}>"

    @property
    def amount_decimal(self) -> Decimal:
        return from_minor(self.amount)
