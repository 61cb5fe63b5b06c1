"""
Finance Tracker - Source Package

A personal finance tracker that keeps transactions, subscriptions,
savings, budgets and investments in a Google Sheets spreadsheet.

DESIGN PRINCIPLES:
1. Every record belongs to a context (Home, Work, Business, ...)
2. The spreadsheet stays human-readable: one record per row
3. Validation errors block writes, warnings never do
4. Every write is audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
