"""
fintrack - Personal Finance Ledger

Tracks user-owned accounts, categorized transactions, budgets and
savings goals, keeping every account balance equal to the signed sum
of its transaction history.

DESIGN PRINCIPLES:
1. Balance and transaction history change together or not at all
2. Fail early, fail visibly
3. No silent corrections (the one exception is documented on goals)
4. Every lookup goes through the owner's partition
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "fintrack Team"
