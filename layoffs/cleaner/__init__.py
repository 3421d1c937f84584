"""
Layoffs Cleaner

This package turns the raw layoffs table into a clean table that the
reports can group and order by.

Key responsibilities:
- Copy raw rows (database table or CSV export) into a staging working copy
- Remove exact duplicates (every column equal)
- Trim company names, canonicalize industries, convert date text to dates
- Fill blank industries from other rows of the same company
- Replace the cleaned table in a single transaction
"""

__version__ = "0.1.0"
