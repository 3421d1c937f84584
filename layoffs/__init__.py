"""Layoffs-ETL Package.

This package contains the batch pipeline that cleans the layoffs dataset and
the read-only reports built on top of the cleaned table:
- cleaner: load, deduplicate, normalize, gap-fill and project layoff records
- reporting: aggregations over the cleaned table (totals, rolling sums, top-N)
- common: the LayoffRecord model shared by both
"""

__version__ = "0.1.0"
