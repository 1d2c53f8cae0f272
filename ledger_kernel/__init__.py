"""
Ledger Kernel

A multi-tenant general-ledger core with:
- Hierarchical chart of accounts
- Monthly or quarterly fiscal periods with target-close dates
- Balanced journal entries with per-company display ids
- Posted-only account balances and trial balances
- Categorical dimensions on journal lines
- Close-workflow tasks
"""

__version__ = "0.1.0"
