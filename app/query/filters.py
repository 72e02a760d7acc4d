"""
Filter compiler.

Turns workboard filter specs into SQLAlchemy conditions. Field names are
resolved only through the closed vocabularies and the formula registry, values
are always bound parameters. Anything that cannot be resolved, or whose value
does not fit its operator, is dropped and reported back rather than raised.

Field resolution order:
    1. cross-entity display names (owner_name, company_name, ...)
    2. pushdown formulas
    3. post-fetch formulas -> deferred, applied in memory after fetch
    4. the entity kind's filter allowlist
    5. anything else is dropped
"""

import logging
import operator as op
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from sqlalchemy import and_

from app.core.config import (
    FILTER_MAX_ARRAY_LENGTH,
    FILTER_MAX_INT,
    FILTER_MAX_STRING_LENGTH,
    FILTER_MIN_INT,
)
from app.query.formulas import is_post_fetch, pushdown_expression
from app.query.schemas import DroppedEntry, FilterSpec
from app.query.sources import source_for
from app.query.vocabulary import (
    EntityKind,
    FilterOperator,
    FILTER_FIELDS,
    NULL_OPERATORS,
    PATTERN_OPERATORS,
    SET_OPERATORS,
)

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)

_COMPARATORS = {
    FilterOperator.EQ: op.eq,
    FilterOperator.NEQ: op.ne,
    FilterOperator.GT: op.gt,
    FilterOperator.GTE: op.ge,
    FilterOperator.LT: op.lt,
    FilterOperator.LTE: op.le,
}


@dataclass
class CompiledFilters:
    conditions: List[Any] = field(default_factory=list)
    deferred: List[FilterSpec] = field(default_factory=list)
    dropped: List[DroppedEntry] = field(default_factory=list)

    @property
    def fragment(self):
        """All SQL conditions ANDed together, or None when there are none."""
        if not self.conditions:
            return None
        return and_(*self.conditions)


# ===== VALUE VALIDATION =====


def _is_scalar(value) -> bool:
    if isinstance(value, str):
        return len(value) <= FILTER_MAX_STRING_LENGTH
    if isinstance(value, int) and not isinstance(value, bool):
        return FILTER_MIN_INT <= value <= FILTER_MAX_INT
    return isinstance(value, _SCALAR_TYPES)


def value_fits_operator(operator: FilterOperator, value) -> bool:
    """Whether ``value`` has the shape ``operator`` expects."""
    if operator in NULL_OPERATORS:
        return True
    if operator in SET_OPERATORS:
        return (
            isinstance(value, list)
            and 0 < len(value) <= FILTER_MAX_ARRAY_LENGTH
            and all(_is_scalar(item) for item in value)
        )
    if operator in PATTERN_OPERATORS:
        return not isinstance(value, bool) and _is_scalar(value)
    return _is_scalar(value)


# ===== SQL COMPILATION =====


def _sql_condition(column, operator: FilterOperator, value):
    if operator in _COMPARATORS:
        return _COMPARATORS[operator](column, value)
    if operator == FilterOperator.CONTAINS:
        return column.contains(str(value), autoescape=True)
    if operator == FilterOperator.NOT_CONTAINS:
        return ~column.contains(str(value), autoescape=True)
    if operator == FilterOperator.STARTS_WITH:
        return column.startswith(str(value), autoescape=True)
    if operator == FilterOperator.ENDS_WITH:
        return column.endswith(str(value), autoescape=True)
    if operator == FilterOperator.IS_NULL:
        return column.is_(None)
    if operator == FilterOperator.IS_NOT_NULL:
        return column.is_not(None)
    if operator == FilterOperator.IN:
        return column.in_(value)
    return column.not_in(value)


def resolve_filter_column(field_name: str, kind: EntityKind):
    """SQL expression a filter on ``field_name`` compares against, or None."""
    source = source_for(kind)
    foreign = source.foreign_column(field_name)
    if foreign is not None:
        return foreign
    expression = pushdown_expression(field_name, kind)
    if expression is not None:
        return expression
    if field_name in FILTER_FIELDS[kind]:
        return source.entity_column(field_name)
    return None


def _coerce(spec) -> Optional[FilterSpec]:
    if isinstance(spec, FilterSpec):
        return spec
    return FilterSpec.from_dict(spec)


def compile_filters(filters: Iterable, kind: EntityKind) -> CompiledFilters:
    """Compile filter specs for ``kind`` into SQL conditions plus deferred filters."""
    kind = EntityKind(kind)
    compiled = CompiledFilters()

    for raw in filters or []:
        spec = _coerce(raw)
        if spec is None:
            compiled.dropped.append(DroppedEntry("filter", str(raw), "malformed filter"))
            continue

        if not value_fits_operator(spec.operator, spec.value):
            compiled.dropped.append(DroppedEntry("filter", spec.field, f"bad value for {spec.operator.value}"))
            continue

        # Foreign names and pushdown formulas win over post-fetch formulas.
        column = resolve_filter_column(spec.field, kind)
        if column is None and is_post_fetch(spec.field, kind):
            compiled.deferred.append(spec)
            continue
        if column is None:
            compiled.dropped.append(DroppedEntry("filter", spec.field, "unknown field"))
            continue

        compiled.conditions.append(_sql_condition(column, spec.operator, spec.value))

    for entry in compiled.dropped:
        logger.debug("Dropped filter on %r for %s: %s", entry.field, kind.value, entry.reason)
    return compiled


# ===== DEFERRED (IN-MEMORY) FILTERS =====


def _pattern_match(row_value, operator: FilterOperator, needle) -> bool:
    # SQL LIKE on SQLite is case-insensitive for ASCII; mirror that here.
    text = str(row_value).lower()
    needle = str(needle).lower()
    if operator == FilterOperator.CONTAINS:
        return needle in text
    if operator == FilterOperator.NOT_CONTAINS:
        return needle not in text
    if operator == FilterOperator.STARTS_WITH:
        return text.startswith(needle)
    return text.endswith(needle)


def _comparable(row_value, value):
    """Numeric strings compare as numbers against numeric row values."""
    if isinstance(value, str) and isinstance(row_value, (int, float)) and not isinstance(row_value, bool):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def matches(row_value, operator: FilterOperator, value) -> bool:
    """Evaluate one filter against a fetched value, with SQL NULL semantics."""
    if operator == FilterOperator.IS_NULL:
        return row_value is None
    if operator == FilterOperator.IS_NOT_NULL:
        return row_value is not None
    if row_value is None:
        return False
    if operator == FilterOperator.IN:
        return row_value in value
    if operator == FilterOperator.NOT_IN:
        return row_value not in value
    if operator in PATTERN_OPERATORS:
        return _pattern_match(row_value, operator, value)
    try:
        return bool(_COMPARATORS[operator](row_value, _comparable(row_value, value)))
    except TypeError:
        return False


def apply_post_fetch_filters(rows: List[dict], filters: Iterable) -> List[dict]:
    """Keep rows matching every deferred filter, without reordering survivors."""
    specs = []
    for raw in filters or []:
        spec = _coerce(raw)
        if spec is None or not value_fits_operator(spec.operator, spec.value):
            logger.debug("Dropped deferred filter %r", raw)
            continue
        specs.append(spec)

    if not specs:
        return list(rows)

    return [
        row for row in rows
        if all(matches(row.get(spec.field), spec.operator, spec.value) for spec in specs)
    ]
