"""
Workboard query engine.

Main components:
- vocabulary: closed sets of entity kinds, operators and allowlisted fields
- formulas: pushdown and post-fetch computed fields
- filters: filter specs -> bound-parameter conditions, plus deferred filters
- builder: paired count/data query construction and SQL preview
- postprocess: post-fetch formulas, deferred filters, provenance
- engine: runs a configuration for a principal and returns a page
"""

from .builder import QueryBuilder
from .engine import QueryEngine
from .schemas import (
    BoardConfig,
    BuiltQuery,
    ColumnSpec,
    FilterSpec,
    Pagination,
    PreviewResult,
    QueryPage,
    SortSpec,
)
from .vocabulary import ColumnType, EntityKind, FilterOperator, SortDirection

__all__ = [
    "QueryBuilder",
    "QueryEngine",
    "BoardConfig",
    "BuiltQuery",
    "ColumnSpec",
    "FilterSpec",
    "Pagination",
    "PreviewResult",
    "QueryPage",
    "SortSpec",
    "ColumnType",
    "EntityKind",
    "FilterOperator",
    "SortDirection",
]
