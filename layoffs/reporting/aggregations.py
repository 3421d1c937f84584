"""
Layoff Report Aggregations

Read-only aggregations over cleaned layoff records, the Python versions of
the exploratory SQL run against the cleaned table (GROUP BY company,
rolling SUM() OVER month, DENSE_RANK() per year...).

SQL semantics are kept where they matter:
- NULL totals are ignored by sums; a group with only NULLs sums to None
- Groups with a None total sort after groups with a real total
- Records without a date are left out of time-bucketed reports
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from layoffs.common.records import LayoffRecord

logger = logging.getLogger(__name__)


GROUPABLE_FIELDS = ('company', 'location', 'industry', 'country', 'stage')


@dataclass(frozen=True)
class MonthlyTotal:
    """Layoffs in one month, with the running total up to that month."""

    month: str
    total: Optional[int]
    rolling_total: Optional[int]


@dataclass(frozen=True)
class CompanyYearRank:
    """A company's place in one year's layoffs ranking."""

    year: int
    company: str
    total: int
    rank: int


def _add(total: Optional[int], value: Optional[int]) -> Optional[int]:
    """SUM() step: None values are skipped, all-None stays None."""
    if value is None:
        return total
    return value if total is None else total + value


def _percentage(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _dated(records: Iterable[LayoffRecord]) -> list[LayoffRecord]:
    return [r for r in records if isinstance(r.event_date, date)]


def _by_total_desc(item: tuple[Any, Optional[int]]) -> tuple:
    key, total = item
    return (total is None, -(total or 0), '' if key is None else str(key))


def max_layoffs(records: Iterable[LayoffRecord]) -> dict[str, Any]:
    """Largest single layoff and largest layoff percentage."""
    records = list(records)
    totals = [r.total_laid_off for r in records if r.total_laid_off is not None]
    percentages = [p for p in (_percentage(r.percentage_laid_off) for r in records) if p is not None]
    return {
        'max_total_laid_off': max(totals, default=None),
        'max_percentage_laid_off': max(percentages, default=None),
    }


def full_shutdowns(records: Iterable[LayoffRecord]) -> list[LayoffRecord]:
    """Companies that laid off 100% of staff, best funded first."""
    shutdowns = [r for r in records if _percentage(r.percentage_laid_off) == 1]
    return sorted(
        shutdowns,
        key=lambda r: (r.funds_raised_millions is None, -(r.funds_raised_millions or 0)),
    )


def date_range(records: Iterable[LayoffRecord]) -> tuple[Optional[date], Optional[date]]:
    """Earliest and latest event date."""
    dates = [r.event_date for r in _dated(records)]
    if not dates:
        return None, None
    return min(dates), max(dates)


def total_by(records: Iterable[LayoffRecord], field: str) -> list[tuple[Any, Optional[int]]]:
    """
    Sum total_laid_off per value of field, largest first.

    Args:
        records: Cleaned records
        field: One of GROUPABLE_FIELDS

    Raises:
        ValueError: If field cannot be grouped by
    """
    if field not in GROUPABLE_FIELDS:
        raise ValueError(f"Cannot group by {field!r}; expected one of {GROUPABLE_FIELDS}")

    totals: dict[Any, Optional[int]] = {}
    for record in records:
        key = getattr(record, field)
        totals[key] = _add(totals.get(key), record.total_laid_off)

    return sorted(totals.items(), key=_by_total_desc)


def total_by_year(records: Iterable[LayoffRecord]) -> list[tuple[int, Optional[int]]]:
    """Sum total_laid_off per year, most recent year first."""
    totals: dict[int, Optional[int]] = {}
    for record in _dated(records):
        year = record.event_date.year
        totals[year] = _add(totals.get(year), record.total_laid_off)

    return sorted(totals.items(), reverse=True)


def total_by_month(records: Iterable[LayoffRecord]) -> list[tuple[str, Optional[int]]]:
    """Sum total_laid_off per YYYY-MM month, oldest month first."""
    totals: dict[str, Optional[int]] = {}
    for record in _dated(records):
        month = record.event_date.strftime('%Y-%m')
        totals[month] = _add(totals.get(month), record.total_laid_off)

    return sorted(totals.items())


def rolling_total_by_month(records: Iterable[LayoffRecord]) -> list[MonthlyTotal]:
    """
    Monthly totals with a running cumulative sum, oldest month first.

    Examples:
        Months with totals 100 then 50 give rolling totals 100 then 150.
    """
    rolling: Optional[int] = None
    result = []
    for month, total in total_by_month(records):
        rolling = _add(rolling, total)
        result.append(MonthlyTotal(month=month, total=total, rolling_total=rolling))
    return result


def top_companies_per_year(
    records: Iterable[LayoffRecord],
    limit: int = 5
) -> list[CompanyYearRank]:
    """
    Rank companies by layoffs within each year, keeping ranks <= limit.

    Ranking is dense: companies with equal totals share a rank and the next
    rank follows without a gap. Company-years with no known total are not
    ranked.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    per_year: dict[int, dict[str, Optional[int]]] = defaultdict(dict)
    for record in _dated(records):
        companies = per_year[record.event_date.year]
        companies[record.company] = _add(companies.get(record.company), record.total_laid_off)

    ranking = []
    for year in sorted(per_year):
        totals = sorted(
            ((company, total) for company, total in per_year[year].items() if total is not None),
            key=_by_total_desc,
        )
        rank = 0
        previous = None
        for company, total in totals:
            if total != previous:
                rank += 1
                previous = total
            if rank > limit:
                break
            ranking.append(CompanyYearRank(year=year, company=company, total=total, rank=rank))

    return ranking


def build_report(records: Sequence[LayoffRecord], top: int = 5) -> dict[str, Any]:
    """Run every aggregation over the same records."""
    earliest, latest = date_range(records)
    report = {
        'record_count': len(records),
        'max_layoffs': max_layoffs(records),
        'full_shutdowns': full_shutdowns(records),
        'date_range': {'earliest': earliest, 'latest': latest},
        'by_company': total_by(records, 'company'),
        'by_industry': total_by(records, 'industry'),
        'by_country': total_by(records, 'country'),
        'by_stage': total_by(records, 'stage'),
        'by_year': total_by_year(records),
        'rolling_by_month': rolling_total_by_month(records),
        'top_companies_per_year': top_companies_per_year(records, limit=top),
    }

    logger.debug("Built layoffs report", extra={'records': len(records)})
    return report
