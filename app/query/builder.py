"""
Core QueryBuilder for workboard queries.

This is the single source of truth for query construction: execution, export
and SQL preview all go through ``QueryBuilder.build``. The count query and the
data query are built from the same FROM clause and the same WHERE conditions,
so the reported total always matches the rows the data query can page through.
"""

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy import func, select

from app.query.filters import compile_filters
from app.query.formulas import extract_formulas, get_formula, is_post_fetch, select_fragments
from app.query.schemas import BoardConfig, BuiltQuery, ColumnSpec, DroppedEntry, Pagination, PreviewResult, SortSpec
from app.query.sources import source_for
from app.query.vocabulary import ColumnType, EntityKind, RAW_FIELDS, SORT_FIELDS, SortDirection

logger = logging.getLogger(__name__)


class QueryBuilder:
    """Builds the paired count/data queries for one workboard configuration."""

    def build(self, config: BoardConfig, pagination: Pagination, access_predicate) -> BuiltQuery:
        """
        Build the count and data queries.

        ``access_predicate`` is the principal's visibility condition for the
        entity kind and is applied to both queries. ``pagination`` must already
        be clamped.
        """
        kind = EntityKind(config.entity_type)
        source = source_for(kind)

        columns, dropped = self._validate_columns(config.columns, kind)
        formula_names = extract_formulas(columns)
        fragments = select_fragments(formula_names, kind)
        filters = compile_filters(config.filters, kind)
        dropped.extend(filters.dropped)

        conditions = [access_predicate]
        if filters.fragment is not None:
            conditions.append(filters.fragment)

        count_query = source.apply_joins(select(func.count())).where(*conditions)

        formula_labels = {alias: expression.label(alias) for expression, alias in fragments}
        data_query = source.apply_joins(select(*source.projection(), *formula_labels.values())).where(*conditions)

        order_by = self._resolve_sort(config.sort, kind, formula_labels, dropped)
        if order_by is not None:
            data_query = data_query.order_by(order_by)
        data_query = data_query.limit(pagination.limit).offset(pagination.offset)

        post_fetch = [name for name in formula_names if is_post_fetch(name, kind)]
        for spec in filters.deferred:
            if spec.field not in post_fetch:
                post_fetch.append(spec.field)

        return BuiltQuery(
            count_query=count_query,
            data_query=data_query,
            columns=columns,
            post_fetch_formulas=post_fetch,
            deferred_filters=filters.deferred,
            dropped=dropped,
            sort_applied=config.sort.column if order_by is not None else None,
        )

    def build_preview(self, config: BoardConfig, pagination: Pagination, access_predicate, dialect) -> PreviewResult:
        """Compile the same queries execution would run, without running them."""
        built = self.build(config, pagination, access_predicate)
        count_sql, count_params = compile_to_sql(built.count_query, dialect)
        data_sql, data_params = compile_to_sql(built.data_query, dialect)
        return PreviewResult(
            count_sql=count_sql,
            count_parameters=count_params,
            data_sql=data_sql,
            data_parameters=data_params,
            dropped=built.dropped,
        )

    # ===== VALIDATION =====

    def _validate_columns(self, columns: List[ColumnSpec], kind: EntityKind) -> Tuple[List[ColumnSpec], List[DroppedEntry]]:
        """Keep raw columns on the allowlist and formula columns with a usable formula."""
        valid, dropped = [], []
        for column in columns or []:
            if column.type == ColumnType.RAW and column.field in RAW_FIELDS[kind]:
                valid.append(column)
            elif column.type == ColumnType.FORMULA and column.formula and get_formula(column.formula, kind):
                valid.append(column)
            else:
                dropped.append(DroppedEntry("column", column.formula or column.field, "not available"))
                logger.debug("Dropped column %r for %s", column.field, kind.value)
        return valid, dropped

    def _resolve_sort(
        self,
        sort: SortSpec,
        kind: EntityKind,
        formula_labels: Dict[str, Any],
        dropped: List[DroppedEntry],
    ):
        """ORDER BY target for ``sort``, or None to leave the query unordered."""
        if sort is None or not sort.column:
            return None

        if sort.column in formula_labels:
            target = formula_labels[sort.column]
        elif sort.column in SORT_FIELDS[kind]:
            target = source_for(kind).entity_column(sort.column)
        else:
            dropped.append(DroppedEntry("sort", sort.column, "not sortable"))
            logger.debug("Ignoring sort column %r for %s", sort.column, kind.value)
            return None

        return target.desc() if sort.direction == SortDirection.DESC else target.asc()


def compile_to_sql(query, dialect) -> Tuple[str, List[Any]]:
    """SQL text with placeholders, plus the bound values in placeholder order."""
    compiled = query.compile(dialect=dialect, compile_kwargs={"render_postcompile": True})
    params = compiled.params
    if compiled.positiontup is not None:
        values = [params[name] for name in compiled.positiontup]
    else:
        values = list(params.values())
    return str(compiled), values
