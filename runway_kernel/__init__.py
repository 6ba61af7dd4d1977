"""
Runway Kernel

The accounting core behind the runway dashboard:
- Per-company chart of accounts
- Atomic, append-only double-entry posting with cached account balances
- Trial balance and an independent accounting-equation cross-check
- Burn, runway and trend analytics over the transaction stream
"""

__version__ = "0.1.0"
