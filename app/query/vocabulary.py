"""
Closed vocabularies for workboard queries.

Every identifier that can reach generated SQL is looked up here first. Fields,
operators and sort columns are plain constants; nothing in this module builds
SQL.
"""

from enum import Enum
from typing import Dict, FrozenSet


class EntityKind(str, Enum):
    """Entity kinds a workboard can report over."""

    DEALS = "deals"
    CONTACTS = "contacts"
    COMPANIES = "companies"


class FilterOperator(str, Enum):
    """The fixed set of filter operators."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    IN = "in"
    NOT_IN = "not_in"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ColumnType(str, Enum):
    RAW = "raw"
    FORMULA = "formula"


class ColumnFormat(str, Enum):
    TEXT = "text"
    CURRENCY = "currency"
    DATE = "date"
    NUMBER = "number"
    BOOLEAN = "boolean"


DEAL_STAGES = ("lead", "qualified", "discovery", "proposal", "negotiation", "closed_won", "closed_lost")
CLOSED_WON = "closed_won"


COMPARISON_OPERATORS = frozenset({
    FilterOperator.EQ,
    FilterOperator.NEQ,
    FilterOperator.GT,
    FilterOperator.GTE,
    FilterOperator.LT,
    FilterOperator.LTE,
})
PATTERN_OPERATORS = frozenset({
    FilterOperator.CONTAINS,
    FilterOperator.NOT_CONTAINS,
    FilterOperator.STARTS_WITH,
    FilterOperator.ENDS_WITH,
})
NULL_OPERATORS = frozenset({FilterOperator.IS_NULL, FilterOperator.IS_NOT_NULL})
SET_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NOT_IN})


# ===== ENTITY FIELDS =====

# Columns read straight off the entity's own table.
ENTITY_FIELDS: Dict[EntityKind, tuple] = {
    EntityKind.DEALS: (
        "id", "name", "value", "stage", "close_date", "probability", "spin_progress",
        "stage_changed_at", "contact_id", "company_id", "owner_id", "created_at", "updated_at",
        "spin_situation", "spin_problem", "spin_implication", "spin_need_payoff",
    ),
    EntityKind.CONTACTS: (
        "id", "name", "email", "phone", "title", "status", "source", "last_contacted_at",
        "company_id", "owner_id", "created_at", "updated_at",
    ),
    EntityKind.COMPANIES: (
        "id", "name", "domain", "industry", "employee_count", "website", "annual_revenue",
        "description", "owner_id", "created_at", "updated_at",
    ),
}

# Display names resolved through a join: field -> (join name, column on the joined table).
FOREIGN_NAMES: Dict[EntityKind, Dict[str, tuple]] = {
    EntityKind.DEALS: {
        "owner_name": ("owner", "name"),
        "company_name": ("company", "name"),
        "contact_name": ("contact", "name"),
    },
    EntityKind.CONTACTS: {
        "owner_name": ("owner", "name"),
        "company_name": ("company", "name"),
    },
    EntityKind.COMPANIES: {
        "owner_name": ("owner", "name"),
    },
}

# Per-row aggregates projected for companies.
AGGREGATE_FIELDS: Dict[EntityKind, tuple] = {
    EntityKind.DEALS: (),
    EntityKind.CONTACTS: (),
    EntityKind.COMPANIES: ("contact_count", "deal_count", "total_revenue"),
}


# ===== ALLOWLISTS =====

RAW_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    kind: frozenset(ENTITY_FIELDS[kind]) | frozenset(FOREIGN_NAMES[kind]) | frozenset(AGGREGATE_FIELDS[kind])
    for kind in EntityKind
}

# Free-text fields are readable but never filterable.
_FREE_TEXT = frozenset({"spin_situation", "spin_problem", "spin_implication", "spin_need_payoff", "description"})

FILTER_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    kind: frozenset(ENTITY_FIELDS[kind]) - _FREE_TEXT for kind in EntityKind
}

SORT_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    EntityKind.DEALS: frozenset({
        "id", "name", "value", "stage", "close_date", "probability", "spin_progress",
        "created_at", "updated_at", "stage_changed_at", "owner_id", "contact_id", "company_id",
    }),
    EntityKind.CONTACTS: frozenset({
        "id", "name", "email", "phone", "title", "status", "source", "created_at", "updated_at",
        "last_contacted_at", "owner_id", "company_id",
    }),
    EntityKind.COMPANIES: frozenset({
        "id", "name", "domain", "industry", "employee_count", "created_at", "updated_at", "owner_id",
    }),
}


def union_of(allowlist: Dict[EntityKind, FrozenSet[str]]) -> FrozenSet[str]:
    """All names allowed for at least one entity kind."""
    names = frozenset()
    for fields in allowlist.values():
        names = names | fields
    return names
