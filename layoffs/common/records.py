"""
Layoff Record Model

This module defines the single entity the pipeline works on, plus the
bookkeeping wrappers used while the pipeline runs.

Key Concepts:
- LayoffRecord is immutable: stages build new records with dataclasses.replace()
- The business key is the full tuple of fields, in column order
- None participates in key equality (None == None), matching SQL partitioning
- The dataset column for the event date is called "date"; the attribute is
  event_date so it does not shadow datetime.date
"""

from dataclasses import astuple, dataclass, fields
from datetime import date
from typing import Any, Optional, Union

# Column order of the dataset (CSV header and database table)
COLUMNS = (
    'company',
    'location',
    'industry',
    'total_laid_off',
    'percentage_laid_off',
    'date',
    'stage',
    'country',
    'funds_raised_millions',
)

# Attribute names that differ from their column names
_ATTRIBUTE_FOR_COLUMN = {'date': 'event_date'}

BusinessKey = tuple


@dataclass(frozen=True)
class LayoffRecord:
    """One layoff event.

    event_date holds the raw date text until the normalizer commits it to a
    datetime.date.
    """

    company: str
    location: str
    industry: Optional[str]
    total_laid_off: Optional[int]
    percentage_laid_off: Optional[str]
    event_date: Optional[Union[date, str]]
    stage: Optional[str]
    country: str
    funds_raised_millions: Optional[int]

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "LayoffRecord":
        """Build a record from a row keyed by dataset column names."""
        return cls(**{
            _ATTRIBUTE_FOR_COLUMN.get(column, column): row.get(column)
            for column in COLUMNS
        })

    def to_row(self) -> dict[str, Any]:
        """Return the record as a dict keyed by dataset column names."""
        return {
            column: getattr(self, _ATTRIBUTE_FOR_COLUMN.get(column, column))
            for column in COLUMNS
        }


@dataclass(frozen=True)
class RankedRecord:
    """A record carrying its row number within its business-key partition."""

    record: LayoffRecord
    row_num: int


@dataclass(frozen=True)
class StagingTable:
    """The untouched raw input paired with the owned working rows."""

    source: tuple[LayoffRecord, ...]
    rows: tuple[LayoffRecord, ...]


def business_key(record: LayoffRecord) -> BusinessKey:
    """
    Return the business key of a record.

    Two records with the same business key are duplicates regardless of
    where they came from.

    Examples:
        >>> r = LayoffRecord('Acme', 'SF Bay Area', None, 10, None,
        ...                  '3/5/2023', None, 'United States', None)
        >>> business_key(r)[:3]
        ('Acme', 'SF Bay Area', None)
    """
    return astuple(record)


FIELD_NAMES = tuple(f.name for f in fields(LayoffRecord))
