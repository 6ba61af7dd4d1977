"""Kernel services -- the write side: chart of accounts and ledger posting."""

from runway_kernel.services.chart_of_accounts import (
    DEFAULT_ACCOUNT_CODES,
    DEFAULT_CHART_OF_ACCOUNTS,
    AccountTemplate,
    ChartOfAccounts,
)
from runway_kernel.services.ledger_poster import LedgerPoster, LineSpec, PostingResult

__all__ = [
    "DEFAULT_ACCOUNT_CODES",
    "DEFAULT_CHART_OF_ACCOUNTS",
    "AccountTemplate",
    "ChartOfAccounts",
    "LedgerPoster",
    "LineSpec",
    "PostingResult",
]
