"""ORM models for the runway kernel."""

from runway_kernel.models.account import Account, AccountType
from runway_kernel.models.journal import JournalEntry, Posting
from runway_kernel.models.transaction import Transaction

__all__ = [
    "Account",
    "AccountType",
    "JournalEntry",
    "Posting",
    "Transaction",
]
