"""
Gap-Filler

Blank descriptive fields (industry by default) are filled in from other rows
describing the same entity (same company by default), the way a self-join
UPDATE does it:

    UPDATE t1 JOIN t2 ON t1.company = t2.company
    SET t1.industry = t2.industry
    WHERE t1.industry IS NULL AND t2.industry IS NOT NULL

Key Concepts:
- Only None and '' are blank
- Single pass: donors are read from the rows as they were before filling,
  so a company with no non-blank row stays blank
- Tie-break: the last non-blank row in working-table order wins
- Entities whose donors disagree are reported as GapFillConflict, never fatal
- Rows with None in an entity-key column neither donate nor receive
  (NULL never matches in a join)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from layoffs.common.records import LayoffRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GapFillConflict:
    """An entity whose donor rows carry different values for one field."""

    entity: tuple
    field: str
    values: tuple
    chosen: Any


@dataclass
class GapFillResult:
    """Output of fill_gaps()."""

    records: list[LayoffRecord]
    filled: int = 0
    conflicts: list[GapFillConflict] = field(default_factory=list)


def is_blank(value: Any) -> bool:
    """True for None and the empty string."""
    return value is None or value == ''


def _entity_of(record: LayoffRecord, entity_key: Sequence[str]) -> tuple:
    return tuple(getattr(record, name) for name in entity_key)


def fill_gaps(
    records: Sequence[LayoffRecord],
    fields: Sequence[str] = ('industry',),
    entity_key: Sequence[str] = ('company',),
) -> GapFillResult:
    """
    Fill blank fields from other rows of the same entity.

    Args:
        records: Normalized records, in working-table order
        fields: Fields to fill
        entity_key: Fields identifying the entity

    Returns:
        GapFillResult with the new records (same order and count), the
        number of values filled, and any donor conflicts

    Examples:
        >>> blank = LayoffRecord('Airbnb', 'SF', None, 30, None, None, None, 'US', None)
        >>> donor = LayoffRecord('Airbnb', 'SF', 'Travel', 50, None, None, None, 'US', None)
        >>> fill_gaps([blank, donor]).records[0].industry
        'Travel'
    """
    # Donor values per (entity, field), in order of appearance
    donors: dict[tuple[tuple, str], list[Any]] = {}
    for record in records:
        entity = _entity_of(record, entity_key)
        if None in entity:
            continue
        for name in fields:
            value = getattr(record, name)
            if not is_blank(value):
                donors.setdefault((entity, name), []).append(value)

    conflicts = []
    chosen: dict[tuple[tuple, str], Any] = {}
    for (entity, name), values in donors.items():
        chosen[(entity, name)] = values[-1]
        distinct = tuple(dict.fromkeys(values))
        if len(distinct) > 1:
            conflicts.append(GapFillConflict(
                entity=entity,
                field=name,
                values=distinct,
                chosen=values[-1],
            ))

    filled = 0
    result = []
    for record in records:
        entity = _entity_of(record, entity_key)
        updates = {}
        for name in fields:
            if not is_blank(getattr(record, name)):
                continue
            value = chosen.get((entity, name)) if None not in entity else None
            if value is not None:
                updates[name] = value
                filled += 1
            else:
                # Unresolved gaps end up as None, never ''
                updates[name] = None
        result.append(replace(record, **updates) if updates else record)

    for conflict in conflicts:
        logger.warning(
            "Conflicting gap-fill donors, using last match",
            extra={
                'entity': conflict.entity,
                'field': conflict.field,
                'values': conflict.values,
                'chosen': conflict.chosen,
            }
        )

    logger.info(
        f"Filled {filled} blank values",
        extra={'fields': list(fields), 'conflicts': len(conflicts)}
    )

    return GapFillResult(records=result, filled=filled, conflicts=conflicts)
