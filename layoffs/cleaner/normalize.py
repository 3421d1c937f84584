"""
Layoff Record Normalization Logic

This module standardizes the text and date fields of layoff records that
survived deduplication.

Key Responsibilities:
- Trim whitespace around company names
- Collapse industry spellings onto canonical labels ("Crypto Currency" -> "Crypto")
- Turn blank industries, stages and percentages into None
- Strip trailing periods from country names ("United States." -> "United States")
- Convert date text to datetime.date, all-or-nothing

Date conversion is validate-then-commit: every value is parsed first and the
converted records are only returned when no value failed. A single bad value
raises MalformedDateError listing every failure, and nothing is converted.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from layoffs.common.records import LayoffRecord

from .config_loader import CleaningConfig

logger = logging.getLogger(__name__)

# Optional text columns where a blank cell means "unknown"
OPTIONAL_TEXT_FIELDS = ('stage', 'percentage_laid_off')


class NormalizationError(Exception):
    """Raised when layoff records cannot be normalized."""
    pass


@dataclass(frozen=True)
class DateFailure:
    """A date value that matched none of the configured formats."""

    index: int
    company: str
    value: Any


class MalformedDateError(NormalizationError):
    """Raised when one or more date values cannot be parsed.

    Attributes:
        failures: Every failing value, in working-table order
    """

    def __init__(self, failures: Sequence[DateFailure]):
        self.failures = list(failures)
        preview = ', '.join(
            f"row {f.index} ({f.company}): {f.value!r}" for f in self.failures[:5]
        )
        more = len(self.failures) - 5
        if more > 0:
            preview += f", and {more} more"
        super().__init__(f"{len(self.failures)} unparseable date value(s): {preview}")


def canonicalize_industry(value: Optional[str], prefixes: dict[str, str]) -> Optional[str]:
    """
    Normalize an industry value.

    Blank values become None. Values starting with a configured prefix become
    that prefix's canonical label. Anything else is returned trimmed.

    Examples:
        >>> canonicalize_industry('Crypto Currency', {'Crypto': 'Crypto'})
        'Crypto'
        >>> canonicalize_industry('   ', {'Crypto': 'Crypto'}) is None
        True
    """
    if value is None:
        return None

    stripped = value.strip()
    if not stripped:
        return None

    for prefix, label in prefixes.items():
        if stripped.startswith(prefix):
            return label

    return stripped


def _strip_trailing_period(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.rstrip('.')


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def normalize_text_fields(
    records: Iterable[LayoffRecord],
    config: CleaningConfig
) -> list[LayoffRecord]:
    """
    Apply the text rules to each record.

    Args:
        records: Deduplicated records
        config: Cleaning configuration (industry prefixes, country rule)

    Returns:
        New records, same order and count
    """
    normalized = []
    changed = 0

    for record in records:
        updated = replace(
            record,
            company=record.company.strip() if record.company is not None else None,
            industry=canonicalize_industry(record.industry, config.industry_prefixes),
            **{name: _blank_to_none(getattr(record, name)) for name in OPTIONAL_TEXT_FIELDS},
            country=(
                _strip_trailing_period(record.country)
                if config.strip_country_trailing_period
                else record.country
            ),
        )
        if updated != record:
            changed += 1
        normalized.append(updated)

    logger.debug(
        "Normalized text fields",
        extra={'records': len(normalized), 'changed': changed}
    )

    return normalized


def parse_event_date(value: Any, date_formats: Sequence[str]) -> Optional[date]:
    """
    Parse a date value.

    Supports:
    - datetime.date objects (passed through)
    - datetime objects (date part)
    - text in any of date_formats, tried in order
    - None or blank text (returns None)

    Raises:
        ValueError: If the value is text that matches none of the formats,
                    or an unsupported type
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        raise ValueError(f"Unsupported date type: {type(value).__name__}")

    text = value.strip()
    if not text:
        return None

    for fmt in date_formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"Date {value!r} does not match any of {list(date_formats)}")


def parse_dates(
    records: Sequence[LayoffRecord],
    date_formats: Sequence[str]
) -> list[LayoffRecord]:
    """
    Convert every record's event_date to datetime.date.

    Raises:
        MalformedDateError: If any value cannot be parsed. No record is
                            converted in that case.
    """
    parsed: list[Optional[date]] = []
    failures: list[DateFailure] = []

    for index, record in enumerate(records):
        try:
            parsed.append(parse_event_date(record.event_date, date_formats))
        except ValueError:
            failures.append(DateFailure(index, record.company, record.event_date))

    if failures:
        logger.error(
            "Date validation failed, no dates converted",
            extra={
                'failed': len(failures),
                'total': len(records),
            }
        )
        raise MalformedDateError(failures)

    return [
        replace(record, event_date=event_date)
        for record, event_date in zip(records, parsed)
    ]


def normalize_records(
    records: Sequence[LayoffRecord],
    config: CleaningConfig
) -> list[LayoffRecord]:
    """
    Run the text rules, then the date conversion.

    Raises:
        MalformedDateError: If any date value cannot be parsed
    """
    return parse_dates(normalize_text_fields(records, config), config.date_formats)
