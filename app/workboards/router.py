"""API router for the workboards module."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.dependencies import SessionDep, PrincipalDep
from app.query.engine import QueryEngine
from app.workboards.dao import WorkboardDAO
from app.workboards.export import XLSX_MEDIA_TYPE, export_filename
from app.workboards.service import WorkboardService
from app.workboards.schemas import (
    WorkboardCreate,
    WorkboardPage,
    WorkboardPreview,
    WorkboardQueryRequest,
    WorkboardRead,
    WorkboardUpdate,
)

router = APIRouter(prefix="/workboards", tags=["workboards"])


# Dependency functions
def get_workboard_service(db: SessionDep) -> WorkboardService:
    return WorkboardService(WorkboardDAO(db), QueryEngine(db))


# ===== WORKBOARD CONFIGURATION ENDPOINTS =====


@router.get("", response_model=List[WorkboardRead])
async def list_workboards(
    principal: PrincipalDep,
    entity_type: Optional[str] = None,
    service: WorkboardService = Depends(get_workboard_service),
) -> List[WorkboardRead]:
    """Workboards the caller owns plus default and shared boards."""
    return await service.list_workboards(principal, entity_type)


@router.post("", response_model=WorkboardRead, status_code=201)
async def create_workboard(
    data: WorkboardCreate,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
) -> WorkboardRead:
    return await service.create_workboard(data, principal)


@router.post("/query", response_model=WorkboardPage)
async def run_adhoc_query(
    request: WorkboardQueryRequest,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
):
    """Execute an unsaved configuration. Unknown fields are ignored, not rejected."""
    page = await service.run_query(request, principal)
    return page.to_dict()


@router.get("/{workboard_id}", response_model=WorkboardRead)
async def get_workboard(
    workboard_id: str,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
) -> WorkboardRead:
    return await service.get_workboard(workboard_id, principal)


@router.patch("/{workboard_id}", response_model=WorkboardRead)
async def update_workboard(
    workboard_id: str,
    data: WorkboardUpdate,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
) -> WorkboardRead:
    return await service.update_workboard(workboard_id, data, principal)


@router.delete("/{workboard_id}")
async def delete_workboard(
    workboard_id: str,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
):
    await service.delete_workboard(workboard_id, principal)
    return {"success": True}


@router.post("/{workboard_id}/duplicate", response_model=WorkboardRead, status_code=201)
async def duplicate_workboard(
    workboard_id: str,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
) -> WorkboardRead:
    return await service.duplicate_workboard(workboard_id, principal)


# ===== EXECUTION ENDPOINTS =====


@router.get("/{workboard_id}/data", response_model=WorkboardPage)
async def get_workboard_data(
    workboard_id: str,
    principal: PrincipalDep,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_column: Optional[str] = Query(default=None, max_length=100),
    sort_direction: Optional[str] = None,
    service: WorkboardService = Depends(get_workboard_service),
):
    """Execute a saved workboard and return one page of rows."""
    result = await service.run_workboard(workboard_id, principal, page, limit, sort_column, sort_direction)
    return result.to_dict()


@router.get("/{workboard_id}/preview", response_model=WorkboardPreview)
async def preview_workboard(
    workboard_id: str,
    principal: PrincipalDep,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    service: WorkboardService = Depends(get_workboard_service),
):
    """Generated SQL for a saved workboard, with bound values listed separately."""
    return await service.preview_workboard(workboard_id, principal, page, limit)


@router.get("/{workboard_id}/export")
async def export_workboard(
    workboard_id: str,
    principal: PrincipalDep,
    service: WorkboardService = Depends(get_workboard_service),
) -> Response:
    """Export the first page of a workboard as an Excel file."""
    name, content = await service.export_workboard(workboard_id, principal)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={export_filename(name)}"},
    )
