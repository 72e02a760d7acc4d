"""
Query building schemas and types for workboards.

These are the engine's internal, already-parsed shapes. HTTP payloads are
validated by the Pydantic models in ``app.workboards.schemas`` and converted
into these before a query is built.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.query.vocabulary import ColumnType, EntityKind, FilterOperator, SortDirection


@dataclass(frozen=True)
class ColumnSpec:
    """One configured workboard column."""

    id: str
    field: str
    label: str
    type: ColumnType = ColumnType.RAW
    formula: Optional[str] = None
    format: Optional[str] = None
    width: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ColumnSpec"]:
        """Parse a stored column; None when the entry is not usable at all."""
        if not isinstance(data, dict):
            return None
        field_name = data.get("field")
        if not isinstance(field_name, str) or not field_name:
            return None
        try:
            column_type = ColumnType(data.get("type", ColumnType.RAW))
        except ValueError:
            return None
        width = data.get("width")
        return cls(
            id=str(data.get("id") or field_name),
            field=field_name,
            label=str(data.get("label") or field_name),
            type=column_type,
            formula=data.get("formula") if isinstance(data.get("formula"), str) else None,
            format=data.get("format") if isinstance(data.get("format"), str) else None,
            width=width if isinstance(width, int) and not isinstance(width, bool) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "field": self.field, "label": self.label, "type": self.type.value}
        if self.formula is not None:
            data["formula"] = self.formula
        if self.format is not None:
            data["format"] = self.format
        if self.width is not None:
            data["width"] = self.width
        return data


@dataclass(frozen=True)
class FilterSpec:
    """One configured filter. ``value`` shape depends on the operator."""

    field: str
    operator: FilterOperator
    value: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["FilterSpec"]:
        if not isinstance(data, dict):
            return None
        field_name = data.get("field")
        if not isinstance(field_name, str) or not field_name:
            return None
        try:
            operator = FilterOperator(data.get("operator"))
        except ValueError:
            return None
        return cls(field=field_name, operator=operator, value=data.get("value"))


@dataclass(frozen=True)
class SortSpec:
    column: Optional[str] = None
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, column: Optional[str], direction: Optional[str]) -> "SortSpec":
        """Anything other than ``desc`` sorts ascending."""
        is_desc = isinstance(direction, str) and direction.lower() == SortDirection.DESC.value
        return cls(
            column=column if isinstance(column, str) and column else None,
            direction=SortDirection.DESC if is_desc else SortDirection.ASC,
        )


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class BoardConfig:
    """A complete report configuration: what the engine executes."""

    entity_type: EntityKind
    columns: List[ColumnSpec] = field(default_factory=list)
    filters: List[FilterSpec] = field(default_factory=list)
    sort: SortSpec = field(default_factory=SortSpec)


@dataclass
class DroppedEntry:
    """A piece of configuration the engine ignored, and why."""

    kind: str  # "column", "filter" or "sort"
    field: str
    reason: str


@dataclass
class BuiltQuery:
    """Output of the assembler. Count and data queries share joins and WHERE."""

    count_query: Any
    data_query: Any
    columns: List[ColumnSpec]
    post_fetch_formulas: List[str]
    deferred_filters: List[FilterSpec]
    dropped: List[DroppedEntry] = field(default_factory=list)
    sort_applied: Optional[str] = None


@dataclass
class QueryPage:
    """Result of one workboard execution."""

    items: List[Dict[str, Any]]
    page: int
    limit: int
    total: int
    has_more: bool
    columns: List[ColumnSpec] = field(default_factory=list)
    fetched_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "hasMore": self.has_more,
            "columns": [column.to_dict() for column in self.columns],
        }


@dataclass
class PreviewResult:
    """Generated SQL text with placeholders, and the values bound to them."""

    count_sql: str
    count_parameters: List[Any]
    data_sql: str
    data_parameters: List[Any]
    dropped: List[DroppedEntry] = field(default_factory=list)
