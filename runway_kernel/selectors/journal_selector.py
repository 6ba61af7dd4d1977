"""
Module: runway_kernel.selectors.journal_selector
Responsibility: Read access to posted journal entries.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from runway_kernel.db.types import from_minor
from runway_kernel.models.account import Account
from runway_kernel.models.journal import JournalEntry
from runway_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class JournalEntryView:
    """A posted journal line with its account code resolved."""

    id: UUID
    transaction_id: str
    entry_date: date
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    description: str | None
    reversal_of_id: UUID | None


class JournalSelector(BaseSelector):
    """Queries over journal_entries."""

    def _base_query(self, company_id: str):
        return (
            select(
                JournalEntry.id,
                JournalEntry.transaction_id,
                JournalEntry.entry_date,
                Account.code,
                Account.name,
                JournalEntry.debit,
                JournalEntry.credit,
                JournalEntry.description,
                JournalEntry.reversal_of_id,
            )
            .join(Account, JournalEntry.account_id == Account.id)
            .where(JournalEntry.company_id == company_id)
        )

    def _to_views(self, rows) -> list[JournalEntryView]:
        return [
            JournalEntryView(
                id=row.id,
                transaction_id=row.transaction_id,
                entry_date=row.entry_date,
                account_code=row.code,
                account_name=row.name,
                debit=from_minor(int(row.debit)),
                credit=from_minor(int(row.credit)),
                description=row.description,
                reversal_of_id=row.reversal_of_id,
            )
            for row in rows
        ]

    def entries_for_transaction(
        self, company_id: str, transaction_id: str
    ) -> list[JournalEntryView]:
        """All lines posted under one transaction id, debits first."""
        stmt = (
            self._base_query(company_id)
            .where(JournalEntry.transaction_id == transaction_id)
            .order_by(JournalEntry.credit, Account.code)
        )
        return self._to_views(self.session.execute(stmt))

    def entries_between(
        self,
        company_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[JournalEntryView]:
        """Lines in an inclusive date range, newest first."""
        stmt = self._base_query(company_id)
        if start_date is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end_date)
        stmt = stmt.order_by(
            JournalEntry.entry_date.desc(),
            JournalEntry.transaction_id,
            Account.code,
        )
        return self._to_views(self.session.execute(stmt))

    def transaction_ids(self, company_id: str) -> list[str]:
        stmt = (
            select(JournalEntry.transaction_id)
            .where(JournalEntry.company_id == company_id)
            .distinct()
            .order_by(JournalEntry.transaction_id)
        )
        return list(self.session.scalars(stmt))
