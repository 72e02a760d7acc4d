"""Pydantic schemas for the workboards module.

Saved workboards are validated strictly here: unknown fields, formulas, sort
columns and oversized values are rejected with 422 before anything is stored.
The ad-hoc query request is deliberately lenient about field names and relies
on the engine dropping anything it does not recognise.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.config import (
    FILTER_MAX_ARRAY_LENGTH,
    FILTER_MAX_INT,
    FILTER_MAX_STRING_LENGTH,
    FILTER_MIN_INT,
    WORKBOARD_MAX_COLUMNS,
    WORKBOARD_MAX_FILTERS,
)
from app.query.formulas import FORMULAS, PUSHDOWN_FORMULAS
from app.query.vocabulary import (
    ColumnFormat,
    ColumnType,
    EntityKind,
    FilterOperator,
    FOREIGN_NAMES,
    FILTER_FIELDS,
    RAW_FIELDS,
    SORT_FIELDS,
    SortDirection,
    union_of,
)

ALLOWED_RAW_FIELDS = union_of(RAW_FIELDS)
ALLOWED_FILTER_FIELDS = (
    union_of(FILTER_FIELDS) | union_of({k: frozenset(v) for k, v in FOREIGN_NAMES.items()}) | frozenset(FORMULAS)
)
ALLOWED_SORT_COLUMNS = union_of(SORT_FIELDS) | PUSHDOWN_FORMULAS

# May be omitted from an update but not cleared; the stored columns are NOT NULL.
NON_NULLABLE_FIELDS = ("name", "entity_type", "is_shared", "columns", "filters", "sort_direction")


def check_filter_value(value: Any) -> Any:
    """Filter values are a short string, a number, a bool, null, or a short array of those."""
    if isinstance(value, list):
        if len(value) > FILTER_MAX_ARRAY_LENGTH:
            raise ValueError(f"Filter arrays cannot exceed {FILTER_MAX_ARRAY_LENGTH} items")
        for item in value:
            if isinstance(item, (list, dict)):
                raise ValueError("Filter arrays may only contain scalar values")
            check_filter_value(item)
        return value
    if isinstance(value, str):
        if len(value) > FILTER_MAX_STRING_LENGTH:
            raise ValueError(f"Filter strings cannot exceed {FILTER_MAX_STRING_LENGTH} characters")
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if not FILTER_MIN_INT <= value <= FILTER_MAX_INT:
            raise ValueError("Filter integers must fit in 64 bits")
        return value
    if value is None or isinstance(value, (bool, float)):
        return value
    raise ValueError("Unsupported filter value")


def clean_name(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Name is required")
    if len(v.strip()) > 100:
        raise ValueError("Name is too long")
    return v.strip()


# ===== COLUMN AND FILTER SCHEMAS =====


class WorkboardColumn(BaseModel):
    """One column of a saved workboard."""

    id: str = Field(min_length=1, max_length=100)
    field: str = Field(min_length=1, max_length=100)
    label: str = Field(min_length=1, max_length=100)
    type: ColumnType = ColumnType.RAW
    formula: Optional[str] = None
    format: Optional[ColumnFormat] = None
    width: Optional[int] = Field(default=None, gt=0, le=1000)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_source(self) -> "WorkboardColumn":
        if self.type == ColumnType.RAW and self.field not in ALLOWED_RAW_FIELDS:
            raise ValueError(f"Invalid field: {self.field}")
        if self.type == ColumnType.FORMULA and self.formula not in FORMULAS:
            raise ValueError("Formula columns require a known formula")
        return self


class WorkboardFilter(BaseModel):
    """One filter of a saved workboard."""

    field: str = Field(min_length=1, max_length=100)
    operator: FilterOperator
    value: Any = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        if v not in ALLOWED_FILTER_FIELDS:
            raise ValueError(f"Invalid filter field: {v}")
        return v

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: Any) -> Any:
        return check_filter_value(v)


# ===== CORE WORKBOARD SCHEMAS =====


class WorkboardBase(BaseModel):
    name: str
    description: Optional[str] = Field(default=None, max_length=500)
    entity_type: EntityKind
    is_shared: bool = False
    columns: List[WorkboardColumn] = Field(default_factory=list, max_length=WORKBOARD_MAX_COLUMNS)
    filters: List[WorkboardFilter] = Field(default_factory=list, max_length=WORKBOARD_MAX_FILTERS)
    sort_column: Optional[str] = None
    sort_direction: SortDirection = SortDirection.ASC

    model_config = ConfigDict(extra="forbid")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v)

    @field_validator("sort_column")
    @classmethod
    def validate_sort_column(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ALLOWED_SORT_COLUMNS:
            raise ValueError(f"Invalid sort column: {v}")
        return v


class WorkboardCreate(WorkboardBase):
    """Create schema for workboards."""


class WorkboardUpdate(WorkboardBase):
    """Partial update. Arrays, when present, replace the stored arrays."""

    name: Optional[str] = None
    entity_type: Optional[EntityKind] = None
    is_shared: Optional[bool] = None
    columns: Optional[List[WorkboardColumn]] = Field(default=None, max_length=WORKBOARD_MAX_COLUMNS)
    filters: Optional[List[WorkboardFilter]] = Field(default=None, max_length=WORKBOARD_MAX_FILTERS)
    sort_direction: Optional[SortDirection] = None

    @model_validator(mode="before")
    @classmethod
    def reject_explicit_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            cleared = [key for key in NON_NULLABLE_FIELDS if key in data and data[key] is None]
            if cleared:
                raise ValueError(f"Fields cannot be set to null: {', '.join(cleared)}")
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else clean_name(v)


class WorkboardRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    entity_type: str
    owner_id: Optional[str] = None
    is_default: bool
    is_shared: bool
    columns: List[Dict[str, Any]]
    filters: List[Dict[str, Any]]
    sort_column: Optional[str] = None
    sort_direction: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ===== EXECUTION SCHEMAS =====


class WorkboardQueryRequest(BaseModel):
    """An unsaved configuration to execute once."""

    entity_type: EntityKind
    columns: List[Dict[str, Any]] = Field(default_factory=list, max_length=WORKBOARD_MAX_COLUMNS)
    filters: List[Dict[str, Any]] = Field(default_factory=list, max_length=WORKBOARD_MAX_FILTERS)
    sort_column: Optional[str] = Field(default=None, max_length=100)
    sort_direction: Optional[str] = None
    page: Optional[int] = None
    limit: Optional[int] = None


class WorkboardPage(BaseModel):
    items: List[Dict[str, Any]]
    page: int
    limit: int
    total: int
    has_more: bool = Field(alias="hasMore")
    columns: List[Dict[str, Any]] = []

    model_config = ConfigDict(populate_by_name=True)


class DroppedEntryRead(BaseModel):
    kind: str
    field: str
    reason: str

    model_config = ConfigDict(from_attributes=True)


class WorkboardPreview(BaseModel):
    count_sql: str
    count_parameters: List[Any]
    data_sql: str
    data_parameters: List[Any]
    dropped: List[DroppedEntryRead] = []

    model_config = ConfigDict(from_attributes=True)
