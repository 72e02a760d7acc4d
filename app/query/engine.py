# app/query/engine.py
"""Workboard query engine: access predicate, build, execute, post-process."""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.access.policy import Principal, ResourceKind, predicate_for
from app.query.builder import QueryBuilder
from app.query.postprocess import finish
from app.query.schemas import BoardConfig, Pagination, PreviewResult, QueryPage
from app.query.vocabulary import EntityKind

logger = logging.getLogger(__name__)

ACCESS_KINDS = {
    EntityKind.DEALS: ResourceKind.DEAL,
    EntityKind.CONTACTS: ResourceKind.CONTACT,
    EntityKind.COMPANIES: ResourceKind.COMPANY,
}


class QueryEngine:
    """Runs workboard configurations for a principal."""

    def __init__(self, db: Session, builder: QueryBuilder = None):
        self.db = db
        self.builder = builder or QueryBuilder()

    def _access_predicate(self, config: BoardConfig, principal: Principal):
        return predicate_for(principal, ACCESS_KINDS[EntityKind(config.entity_type)])

    # ===== EXECUTION METHODS =====

    def execute(self, config: BoardConfig, principal: Principal, pagination: Pagination) -> QueryPage:
        """
        Execute one page of a workboard.

        The count and data queries run one after the other without a shared
        transaction, so under concurrent writes ``total`` may drift slightly
        from the page. ``hasMore`` is derived from the rows the data query
        returned, before deferred filters removed any.
        """
        kind = EntityKind(config.entity_type)
        built = self.builder.build(config, pagination, self._access_predicate(config, principal))

        total = self.db.execute(built.count_query).scalar() or 0
        fetched_at = datetime.now(timezone.utc)
        rows = [dict(row) for row in self.db.execute(built.data_query).mappings().all()]

        items = finish(rows, built.post_fetch_formulas, built.deferred_filters, kind, fetched_at)

        logger.debug(
            "Workboard query on %s: total=%d fetched=%d returned=%d dropped=%d",
            kind.value, total, len(rows), len(items), len(built.dropped),
        )

        return QueryPage(
            items=items,
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            has_more=pagination.offset + len(rows) < total,
            columns=built.columns,
            fetched_at=fetched_at,
        )

    # ===== PREVIEW METHODS =====

    def preview(self, config: BoardConfig, principal: Principal, pagination: Pagination) -> PreviewResult:
        """SQL the engine would run for this configuration, with bound values listed separately."""
        return self.builder.build_preview(
            config,
            pagination,
            self._access_predicate(config, principal),
            self.db.get_bind().dialect,
        )
