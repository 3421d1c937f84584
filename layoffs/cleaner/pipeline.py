"""
Cleaning Pipeline

Runs the stages in their fixed order over a staging table:

    Load -> Dedupe -> Normalize -> Fill -> Dedupe -> Project [-> Prune]

The second dedupe removes rows that only become identical once their text,
dates and gaps are cleaned, so no two cleaned rows share a business key.
Every stage returns new records; the staging table's source rows are never
touched. The only stage that can fail is date parsing in Normalize, which
raises MalformedDateError before anything is returned.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional, Sequence

from layoffs.common.records import LayoffRecord, RankedRecord, StagingTable

from .config_loader import CleaningConfig
from .dedupe import assign_row_numbers, remove_duplicates
from .gap_fill import GapFillConflict, fill_gaps
from .loader import load_staging_table
from .normalize import normalize_records

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Cleaned records plus what happened along the way."""

    records: list[LayoffRecord]
    stats: dict[str, int]
    conflicts: list[GapFillConflict] = field(default_factory=list)


def project(ranked: Iterable[RankedRecord]) -> list[LayoffRecord]:
    """Drop the row-number column."""
    return [r.record for r in ranked]


def prune_empty_metrics(records: Iterable[LayoffRecord]) -> list[LayoffRecord]:
    """Drop records with neither total_laid_off nor percentage_laid_off."""
    return [
        r for r in records
        if r.total_laid_off is not None or r.percentage_laid_off not in (None, '')
    ]


def _with_records(
    ranked: Sequence[RankedRecord],
    records: Sequence[LayoffRecord]
) -> list[RankedRecord]:
    """Swap updated records back under their row numbers."""
    return [replace(r, record=record) for r, record in zip(ranked, records)]


def clean_staging_table(
    staging: StagingTable,
    config: Optional[CleaningConfig] = None
) -> PipelineResult:
    """
    Clean the working rows of a staging table.

    Args:
        staging: Staging table produced by the loader
        config: Cleaning configuration (defaults if None)

    Returns:
        PipelineResult with statistics:
        - loaded: Rows in the staging table
        - duplicates_removed: Rows dropped by either dedupe pass
        - dates_parsed: Rows whose date is set after normalization
        - gaps_filled: Blank values filled from another row
        - conflicts: Entities with disagreeing donors
        - pruned: Rows dropped for carrying no layoff metric
        - output: Rows in the cleaned table

    Raises:
        MalformedDateError: If any date value cannot be parsed
    """
    config = config or CleaningConfig()
    stats = {
        'loaded': len(staging.rows),
        'duplicates_removed': 0,
        'dates_parsed': 0,
        'gaps_filled': 0,
        'conflicts': 0,
        'pruned': 0,
        'output': 0,
    }

    if not staging.rows:
        logger.warning("No raw layoffs found to process")
        return PipelineResult(records=[], stats=stats)

    # Dedupe
    ranked = remove_duplicates(assign_row_numbers(staging.rows))
    stats['duplicates_removed'] = len(staging.rows) - len(ranked)

    # Normalize
    normalized = normalize_records([r.record for r in ranked], config)
    ranked = _with_records(ranked, normalized)
    stats['dates_parsed'] = sum(1 for r in normalized if r.event_date is not None)

    # Fill
    gap_fill = fill_gaps(
        [r.record for r in ranked],
        fields=config.gap_fill.fields,
        entity_key=config.gap_fill.entity_key,
    )
    stats['gaps_filled'] = gap_fill.filled
    stats['conflicts'] = len(gap_fill.conflicts)

    # Rows that only match once normalized and filled are duplicates too
    ranked = remove_duplicates(assign_row_numbers(gap_fill.records))
    stats['duplicates_removed'] += len(gap_fill.records) - len(ranked)

    # Project
    records = project(ranked)

    if config.prune_empty_metrics:
        pruned = prune_empty_metrics(records)
        stats['pruned'] = len(records) - len(pruned)
        records = pruned

    stats['output'] = len(records)

    logger.info("Cleaning pipeline completed", extra={'stats': stats})

    return PipelineResult(records=records, stats=stats, conflicts=gap_fill.conflicts)


def run_pipeline(
    rows: Iterable[dict[str, Any]],
    config: Optional[CleaningConfig] = None
) -> PipelineResult:
    """
    Load raw rows and clean them.

    Raises:
        LoadError: If a raw row cannot be loaded
        MalformedDateError: If any date value cannot be parsed
    """
    return clean_staging_table(load_staging_table(rows), config)
