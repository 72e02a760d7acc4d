"""API router for CRM resources."""

from typing import List, Optional
from fastapi import APIRouter, Depends

from app.core.dependencies import SessionDep, PrincipalDep
from app.crm.schemas import ResourcePage, TeamMemberCreate, TeamMemberRead
from app.crm.service import CrmService

router = APIRouter(tags=["crm"])


def get_crm_service(db: SessionDep) -> CrmService:
    return CrmService(db)


# ===== DEAL TEAM ENDPOINTS =====


@router.get("/deals/{deal_id}/team", response_model=List[TeamMemberRead])
async def list_deal_team(
    deal_id: str,
    principal: PrincipalDep,
    service: CrmService = Depends(get_crm_service),
) -> List[TeamMemberRead]:
    return await service.list_team(deal_id, principal)


@router.post("/deals/{deal_id}/team", response_model=TeamMemberRead, status_code=201)
async def add_deal_team_member(
    deal_id: str,
    data: TeamMemberCreate,
    principal: PrincipalDep,
    service: CrmService = Depends(get_crm_service),
) -> TeamMemberRead:
    return await service.add_team_member(deal_id, data, principal)


@router.delete("/deals/{deal_id}/team/{member_id}")
async def remove_deal_team_member(
    deal_id: str,
    member_id: str,
    principal: PrincipalDep,
    service: CrmService = Depends(get_crm_service),
):
    await service.remove_team_member(deal_id, member_id, principal)
    return {"success": True}


# ===== RESOURCE ENDPOINTS =====


@router.get("/{collection}", response_model=ResourcePage)
async def list_resources(
    collection: str,
    principal: PrincipalDep,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    service: CrmService = Depends(get_crm_service),
):
    """Deals, contacts, companies, activities or tasks visible to the caller."""
    return await service.list_resources(collection, principal, page, limit)


@router.get("/{collection}/{resource_id}")
async def get_resource(
    collection: str,
    resource_id: str,
    principal: PrincipalDep,
    service: CrmService = Depends(get_crm_service),
):
    """A single resource: 404 when it does not exist, 403 when it is not visible."""
    return await service.get_resource(collection, resource_id, principal)
