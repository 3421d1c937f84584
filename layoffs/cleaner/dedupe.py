"""
Deduplicator

Two layoff records are duplicates when every field matches (the business
key). Duplicates are removed the way a ROW_NUMBER() OVER (PARTITION BY ...)
query does it: number the rows of each partition, keep row number 1.

Key Concepts:
- Partitions are numbered in input order, so the first occurrence survives
- None equals None inside a key, like SQL partition grouping
- Empty input gives empty output; there is no failure mode
"""

import logging
from collections import defaultdict
from typing import Iterable

from layoffs.common.records import LayoffRecord, RankedRecord, business_key

logger = logging.getLogger(__name__)


def assign_row_numbers(records: Iterable[LayoffRecord]) -> list[RankedRecord]:
    """
    Number each record within its business-key partition.

    Examples:
        >>> a = LayoffRecord('A', 'Aus', 'Crypto1', 10, None, None, None, 'AU', None)
        >>> [r.row_num for r in assign_row_numbers([a, a])]
        [1, 2]

    Args:
        records: Records in working-table order

    Returns:
        One RankedRecord per input record, same order
    """
    seen: dict[tuple, int] = defaultdict(int)
    ranked = []

    for record in records:
        key = business_key(record)
        seen[key] += 1
        ranked.append(RankedRecord(record=record, row_num=seen[key]))

    return ranked


def remove_duplicates(ranked: Iterable[RankedRecord]) -> list[RankedRecord]:
    """Keep only the first row of each partition (row_num == 1)."""
    ranked = list(ranked)
    kept = [r for r in ranked if r.row_num == 1]

    removed = len(ranked) - len(kept)
    if removed:
        logger.info(
            f"Removed {removed} duplicate records",
            extra={'input': len(ranked), 'kept': len(kept)}
        )

    return kept
