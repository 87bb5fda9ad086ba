"""
Expense Tracker - Source Package

A shared-expense ledger: participants register an identity, record
expenses with per-participant paid/owed amounts, and query their net
position at any time.

DESIGN PRINCIPLES:
1. The ledger is append-only - nothing is edited or deleted
2. Fail early, fail visibly - reject the whole write or none of it
3. Balances are always derived, never cached
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
