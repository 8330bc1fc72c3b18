"""
Finance Tracker - Source Package

A small personal finance service: expenses, regional (Indian) expenses
and salary entries, exposed as a JSON REST API.

DESIGN PRINCIPLES:
1. Validate and normalize before anything touches storage
2. Amounts are exact decimals, never floats
3. Storage layer is swappable (in-memory or relational)
4. Failures are logged in full and reported to clients generically
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
