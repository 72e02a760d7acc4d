"""
Formula registry.

A formula is a named computed column. Pushdown formulas are SQL expressions
added to the projection, so they can also be filtered and sorted on. Post-fetch
formulas run in Python over rows that were already fetched and can only be
filtered after the fact.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy import Integer, and_, case, cast, func, select

from app.core.config import NO_ACTIVITY_SENTINEL_DAYS, SLA_BREACH_DAYS, SLA_BREACH_STAGE
from app.crm.models import Activity
from app.query.sources import EntitySource, source_for
from app.query.spin_score import spin_score_for_row
from app.query.vocabulary import ColumnType, EntityKind

logger = logging.getLogger(__name__)


class FormulaStrategy(str, Enum):
    PUSHDOWN = "pushdown"
    POST_FETCH = "post_fetch"


@dataclass(frozen=True)
class FormulaDefinition:
    """A computed field. Exactly one of ``expression`` / ``compute`` is set."""

    name: str
    kinds: FrozenSet[EntityKind]
    strategy: FormulaStrategy
    description: str
    expression: Optional[Callable[[EntitySource], Any]] = None
    compute: Optional[Callable[[dict], Any]] = None

    def applies_to(self, kind: EntityKind) -> bool:
        return kind in self.kinds

    @property
    def is_pushdown(self) -> bool:
        return self.strategy == FormulaStrategy.PUSHDOWN


# ===== EXPRESSIONS =====


def _days_since(column):
    """Whole days between now (UTC) and ``column``; NULL when the column is NULL."""
    return cast(func.julianday("now") - func.julianday(column), Integer)


def _days_in_stage(source: EntitySource):
    return _days_since(source.model.stage_changed_at)


def _sla_breach(source: EntitySource):
    model = source.model
    return case(
        (and_(model.stage == SLA_BREACH_STAGE, _days_since(model.stage_changed_at) > SLA_BREACH_DAYS), 1),
        else_=0,
    )


def _last_activity_days(source: EntitySource):
    latest = (
        select(func.max(Activity.created_at))
        .where(source.activity_key == source.model.id)
        .correlate(source.model)
        .scalar_subquery()
    )
    return func.coalesce(_days_since(latest), NO_ACTIVITY_SENTINEL_DAYS)


FORMULAS: Dict[str, FormulaDefinition] = {
    formula.name: formula
    for formula in (
        FormulaDefinition(
            name="days_in_stage",
            kinds=frozenset({EntityKind.DEALS}),
            strategy=FormulaStrategy.PUSHDOWN,
            description="Days since the deal entered its current stage",
            expression=_days_in_stage,
        ),
        FormulaDefinition(
            name="sla_breach",
            kinds=frozenset({EntityKind.DEALS}),
            strategy=FormulaStrategy.PUSHDOWN,
            description=f"1 when a deal has sat in {SLA_BREACH_STAGE} for more than {SLA_BREACH_DAYS} days",
            expression=_sla_breach,
        ),
        FormulaDefinition(
            name="last_activity_days",
            kinds=frozenset(EntityKind),
            strategy=FormulaStrategy.PUSHDOWN,
            description="Days since the most recent activity on the record",
            expression=_last_activity_days,
        ),
        FormulaDefinition(
            name="spin_score",
            kinds=frozenset({EntityKind.DEALS}),
            strategy=FormulaStrategy.POST_FETCH,
            description="SPIN discovery completeness score (0-100)",
            compute=spin_score_for_row,
        ),
    )
}

PUSHDOWN_FORMULAS = frozenset(name for name, f in FORMULAS.items() if f.is_pushdown)


# ===== LOOKUPS =====


def get_formula(name: str, kind: EntityKind) -> Optional[FormulaDefinition]:
    """The formula called ``name`` if it exists and applies to ``kind``."""
    formula = FORMULAS.get(name)
    if formula is None or not formula.applies_to(kind):
        return None
    return formula


def pushdown_expression(name: str, kind: EntityKind):
    formula = get_formula(name, kind)
    if formula is None or not formula.is_pushdown:
        return None
    return formula.expression(source_for(kind))


def is_post_fetch(name: str, kind: EntityKind) -> bool:
    formula = get_formula(name, kind)
    return formula is not None and not formula.is_pushdown


def extract_formulas(columns: Iterable) -> List[str]:
    """Formula names referenced by formula columns, first occurrence order, no duplicates."""
    names: List[str] = []
    for column in columns:
        if column.type != ColumnType.FORMULA or not column.formula:
            continue
        if column.formula not in names:
            names.append(column.formula)
    return names


# ===== REGISTRY CONTRACT =====


def select_fragments(formula_names: Iterable[str], kind: EntityKind) -> List[Tuple[Any, str]]:
    """(expression, alias) pairs for the pushdown formulas among ``formula_names``.

    Unknown names and formulas that do not apply to ``kind`` are skipped.
    """
    source = source_for(kind)
    fragments = []
    for name in formula_names:
        formula = get_formula(name, kind)
        if formula is None:
            logger.debug("Skipping formula %r: not available for %s", name, kind.value)
            continue
        if formula.is_pushdown:
            fragments.append((formula.expression(source), name))
    return fragments


def post_process(rows: List[dict], formula_names: Iterable[str], kind: EntityKind) -> List[dict]:
    """Compute post-fetch formulas per row, keeping row order."""
    formulas = [f for f in (get_formula(name, kind) for name in formula_names) if f and not f.is_pushdown]
    if not formulas:
        return rows

    processed = []
    for row in rows:
        row = dict(row)
        for formula in formulas:
            row[formula.name] = formula.compute(row)
        processed.append(row)
    return processed
