"""Kernel selectors -- the read side: journal, trial balance, analytics."""

from runway_kernel.selectors.analytics import AnalyticsEngine
from runway_kernel.selectors.journal_selector import JournalEntryView, JournalSelector
from runway_kernel.selectors.trial_balance import (
    AccountingEquationResult,
    BalanceDrift,
    TrialBalance,
    TrialBalanceEngine,
    TrialBalanceEntry,
)

__all__ = [
    "AnalyticsEngine",
    "JournalEntryView",
    "JournalSelector",
    "AccountingEquationResult",
    "BalanceDrift",
    "TrialBalance",
    "TrialBalanceEngine",
    "TrialBalanceEntry",
]
