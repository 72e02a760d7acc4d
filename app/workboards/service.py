# app/workboards/service.py

import logging
from typing import List, Optional
from fastapi import HTTPException

from app.access.policy import Principal
from app.core.pagination import parse_pagination
from app.core.config import WORKBOARD_MAX_PAGE_SIZE
from app.query.engine import QueryEngine
from app.query.schemas import BoardConfig, ColumnSpec, PreviewResult, QueryPage, SortSpec
from app.query.vocabulary import EntityKind
from app.workboards.dao import WorkboardDAO
from app.workboards.export import page_to_xlsx
from app.workboards.models import Workboard
from app.workboards.schemas import (
    WorkboardCreate,
    WorkboardQueryRequest,
    WorkboardRead,
    WorkboardUpdate,
)

logger = logging.getLogger(__name__)


def board_config(
    entity_type,
    columns,
    filters,
    sort_column: Optional[str] = None,
    sort_direction: Optional[str] = None,
) -> BoardConfig:
    """Turn stored or submitted JSON into the engine's configuration type.

    Entries that cannot even be parsed are left out here; everything else is
    validated again by the query builder.
    """
    parsed_columns = [column for column in (ColumnSpec.from_dict(c) for c in columns or []) if column]
    return BoardConfig(
        entity_type=EntityKind(entity_type),
        columns=parsed_columns,
        filters=list(filters or []),
        sort=SortSpec.parse(sort_column, sort_direction),
    )


class WorkboardService:
    """Saved workboard management and execution."""

    def __init__(self, workboard_dao: WorkboardDAO, engine: QueryEngine):
        self.workboard_dao = workboard_dao
        self.engine = engine

    # ===== LOOKUPS =====

    async def list_workboards(self, principal: Principal, entity_type: Optional[str] = None) -> List[WorkboardRead]:
        boards = self.workboard_dao.list_visible(principal, entity_type)
        return [WorkboardRead.model_validate(board) for board in boards]

    async def get_workboard(self, workboard_id: str, principal: Principal) -> WorkboardRead:
        return WorkboardRead.model_validate(self._get_visible_or_404(workboard_id, principal))

    def _get_visible_or_404(self, workboard_id: str, principal: Principal) -> Workboard:
        board = self.workboard_dao.get_visible(workboard_id, principal)
        if board is None:
            raise HTTPException(status_code=404, detail="Workboard not found")
        return board

    def _get_owned(self, workboard_id: str, principal: Principal) -> Workboard:
        board = self.workboard_dao.get_by_id(workboard_id)
        if board is None:
            raise HTTPException(status_code=404, detail="Workboard not found")
        if board.owner_id != principal.id:
            logger.info("Principal %s may not modify workboard %s", principal.id, workboard_id)
            raise HTTPException(status_code=403, detail="You can only modify your own workboards")
        return board

    # ===== CONFIGURATION =====

    async def create_workboard(self, data: WorkboardCreate, principal: Principal) -> WorkboardRead:
        payload = data.model_dump(mode="json", exclude_none=True)
        board = self.workboard_dao.create(
            owner_id=principal.id,
            is_default=False,
            name=payload["name"],
            description=payload.get("description"),
            entity_type=payload["entity_type"],
            is_shared=payload.get("is_shared", False),
            columns=payload.get("columns", []),
            filters=[f.model_dump(mode="json") for f in data.filters],
            sort_column=payload.get("sort_column"),
            sort_direction=payload.get("sort_direction", "asc"),
        )
        logger.info("Workboard %s created by %s", board.id, principal.id)
        return WorkboardRead.model_validate(board)

    async def update_workboard(self, workboard_id: str, data: WorkboardUpdate, principal: Principal) -> WorkboardRead:
        changes = data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            raise HTTPException(status_code=400, detail="No fields to update")

        board = self._get_owned(workboard_id, principal)
        if data.columns is not None:
            changes["columns"] = [c.model_dump(mode="json", exclude_none=True) for c in data.columns]
        if data.filters is not None:
            changes["filters"] = [f.model_dump(mode="json") for f in data.filters]

        board = self.workboard_dao.update(board, **changes)
        return WorkboardRead.model_validate(board)

    async def delete_workboard(self, workboard_id: str, principal: Principal) -> None:
        board = self.workboard_dao.get_by_id(workboard_id)
        if board is None:
            raise HTTPException(status_code=404, detail="Workboard not found")
        if board.is_default:
            raise HTTPException(status_code=403, detail="Default workboards cannot be deleted")
        board = self._get_owned(workboard_id, principal)
        self.workboard_dao.delete(board)
        logger.info("Workboard %s deleted by %s", workboard_id, principal.id)

    async def duplicate_workboard(self, workboard_id: str, principal: Principal) -> WorkboardRead:
        source = self._get_visible_or_404(workboard_id, principal)
        board = self.workboard_dao.create(
            owner_id=principal.id,
            is_default=False,
            is_shared=False,
            name=f"{source.name} (Copy)",
            description=source.description,
            entity_type=source.entity_type,
            columns=list(source.columns or []),
            filters=list(source.filters or []),
            sort_column=source.sort_column,
            sort_direction=source.sort_direction,
        )
        return WorkboardRead.model_validate(board)

    # ===== EXECUTION =====

    def _config_for(self, board: Workboard, sort_column=None, sort_direction=None) -> BoardConfig:
        return board_config(
            board.entity_type,
            board.columns,
            board.filters,
            sort_column or board.sort_column,
            sort_direction or board.sort_direction,
        )

    async def run_workboard(
        self,
        workboard_id: str,
        principal: Principal,
        page=None,
        limit=None,
        sort_column: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> QueryPage:
        """Execute a saved board; query-string sort overrides the saved sort."""
        board = self._get_visible_or_404(workboard_id, principal)
        config = self._config_for(board, sort_column, sort_direction)
        return self.engine.execute(config, principal, parse_pagination(page, limit))

    async def run_query(self, request: WorkboardQueryRequest, principal: Principal) -> QueryPage:
        config = board_config(
            request.entity_type,
            request.columns,
            request.filters,
            request.sort_column,
            request.sort_direction,
        )
        return self.engine.execute(config, principal, parse_pagination(request.page, request.limit))

    async def preview_workboard(self, workboard_id: str, principal: Principal, page=None, limit=None) -> PreviewResult:
        board = self._get_visible_or_404(workboard_id, principal)
        return self.engine.preview(self._config_for(board), principal, parse_pagination(page, limit))

    async def export_workboard(self, workboard_id: str, principal: Principal) -> tuple:
        """First page at the maximum page size, as xlsx bytes. Returns (board name, content)."""
        board = self._get_visible_or_404(workboard_id, principal)
        page = self.engine.execute(
            self._config_for(board),
            principal,
            parse_pagination(1, WORKBOARD_MAX_PAGE_SIZE),
        )
        return board.name, page_to_xlsx(page, board.name)
