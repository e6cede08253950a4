"""
Pocket Budget - Source Package

Personal budgeting core: transactions, categories and budget goals
mirrored from a remote tree store, with a running summary and
per-budget spent amounts kept consistent on every write.

DESIGN PRINCIPLES:
1. Derived numbers are written together with the data they derive from
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Budget Team"
