"""
Loader: Raw Rows to Working Copy

This module turns raw rows (from the database or a CSV export) into
LayoffRecord values and builds the staging table the pipeline works on.

Key Responsibilities:
- Read and write the layoffs CSV format
- Coerce integer columns, map the literal text "NULL" to None
- Pair the untouched input with an owned working copy (StagingTable)
"""

import csv
import logging
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from layoffs.common.records import COLUMNS, LayoffRecord, StagingTable

logger = logging.getLogger(__name__)


INTEGER_COLUMNS = {'total_laid_off', 'funds_raised_millions'}

# The public dataset exports missing values as the literal text NULL
NULL_MARKERS = {'NULL'}


class LoadError(Exception):
    """Raised when a raw row cannot be turned into a LayoffRecord."""
    pass


def _parse_integer(value: Any, column: str) -> Optional[int]:
    """
    Parse an integer column.

    Accepts ints, and text such as "120" or "120.0" (spreadsheet exports).

    Raises:
        LoadError: If the value is text that is not a number
    """
    if value is None:
        return None

    if isinstance(value, bool):
        raise LoadError(f"{column} must be an integer, got {value!r}")

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        return int(value)

    text = str(value).strip()
    if text == '' or text in NULL_MARKERS:
        return None

    try:
        return int(float(text))
    except ValueError as e:
        raise LoadError(f"{column} must be an integer, got {value!r}") from e


def _clean_raw_text(value: Any) -> Optional[Union[str, date]]:
    """Map NULL markers to None; keep everything else, including ''."""
    if value is None:
        return None

    if isinstance(value, date):
        return value

    text = str(value)
    if text.strip() in NULL_MARKERS:
        return None

    return text


def record_from_raw(row: dict[str, Any]) -> LayoffRecord:
    """
    Build a LayoffRecord from a raw row keyed by dataset column names.

    Text values are kept as-is (no trimming, '' stays ''): cleaning them is
    the normalizer's job.

    Raises:
        LoadError: If a column is missing or an integer column is not numeric
    """
    missing = [column for column in COLUMNS if column not in row]
    if missing:
        raise LoadError(f"Row is missing columns: {', '.join(missing)}")

    values = {}
    for column in COLUMNS:
        if column in INTEGER_COLUMNS:
            values[column] = _parse_integer(row[column], column)
        else:
            values[column] = _clean_raw_text(row[column])

    return LayoffRecord.from_row(values)


def load_staging_table(rows: Iterable[dict[str, Any]]) -> StagingTable:
    """
    Copy raw rows into a staging table.

    Args:
        rows: Raw rows keyed by dataset column names

    Returns:
        StagingTable whose source and working rows start out identical

    Raises:
        LoadError: If any row cannot be converted (index included in message)
    """
    records = []
    for index, row in enumerate(rows):
        try:
            records.append(record_from_raw(row))
        except LoadError as e:
            raise LoadError(f"Row {index}: {e}") from e

    source = tuple(records)
    logger.debug("Loaded staging table", extra={'rows': len(source)})
    return StagingTable(source=source, rows=source)


def read_layoffs_csv(path: Union[str, Path]) -> list[dict[str, Any]]:
    """
    Read raw rows from a layoffs CSV file.

    Raises:
        LoadError: If the header lacks one of the dataset columns
    """
    with open(path, newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        header = reader.fieldnames or []
        missing = [column for column in COLUMNS if column not in header]
        if missing:
            raise LoadError(
                f"{path}: CSV header is missing columns: {', '.join(missing)}"
            )
        rows = list(reader)

    logger.info("Read layoffs CSV", extra={'path': str(path), 'rows': len(rows)})
    return rows


def write_layoffs_csv(records: Iterable[LayoffRecord], path: Union[str, Path]) -> int:
    """
    Write records to CSV with ISO dates and empty cells for None.

    Returns:
        Number of records written
    """
    count = 0
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=list(COLUMNS))
        writer.writeheader()
        for record in records:
            row = record.to_row()
            if isinstance(row['date'], date):
                row['date'] = row['date'].isoformat()
            writer.writerow({k: '' if v is None else v for k, v in row.items()})
            count += 1

    logger.info("Wrote layoffs CSV", extra={'path': str(path), 'rows': count})
    return count
