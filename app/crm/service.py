# app/crm/service.py

import logging
from typing import List
from fastapi import HTTPException

from app.access.policy import Principal, ResourceKind, assert_can_access
from app.core.pagination import parse_pagination
from app.crm.dao import DealTeamDAO, ResourceDAO
from app.crm.models import DealTeamMember
from app.crm.schemas import (
    ActivityRead,
    CompanyRead,
    ContactRead,
    DealRead,
    TaskRead,
    TeamMemberCreate,
    TeamMemberRead,
)

logger = logging.getLogger(__name__)

# URL segment -> resource kind
COLLECTIONS = {
    "deals": ResourceKind.DEAL,
    "contacts": ResourceKind.CONTACT,
    "companies": ResourceKind.COMPANY,
    "activities": ResourceKind.ACTIVITY,
    "tasks": ResourceKind.TASK,
}

READ_SCHEMAS = {
    ResourceKind.DEAL: DealRead,
    ResourceKind.CONTACT: ContactRead,
    ResourceKind.COMPANY: CompanyRead,
    ResourceKind.ACTIVITY: ActivityRead,
    ResourceKind.TASK: TaskRead,
}

_TEAM_ROLE_ORDER = {"owner": 1, "technical": 2, "executive_sponsor": 3}


class CrmService:
    """Read access to CRM resources and deal team management."""

    def __init__(self, db_session):
        self.db = db_session
        self.team_dao = DealTeamDAO(db_session)

    @staticmethod
    def resolve_collection(collection: str) -> ResourceKind:
        kind = COLLECTIONS.get(collection)
        if kind is None:
            raise HTTPException(status_code=404, detail="Resource type not found")
        return kind

    async def list_resources(self, collection: str, principal: Principal, page=None, limit=None) -> dict:
        """One page of visible resources. Invisible rows are simply absent."""
        kind = self.resolve_collection(collection)
        pagination = parse_pagination(page, limit)
        dao = ResourceDAO(kind, self.db)

        total = dao.count_visible(principal)
        rows = dao.list_visible(principal, skip=pagination.offset, limit=pagination.limit)
        schema = READ_SCHEMAS[kind]
        return {
            "items": [schema.model_validate(row).model_dump() for row in rows],
            "page": pagination.page,
            "limit": pagination.limit,
            "total": total,
            "hasMore": pagination.offset + len(rows) < total,
        }

    async def get_resource(self, collection: str, resource_id: str, principal: Principal):
        kind = self.resolve_collection(collection)
        resource = assert_can_access(self.db, principal, kind, resource_id)
        return READ_SCHEMAS[kind].model_validate(resource)

    # ===== DEAL TEAM =====

    def _member_read(self, member: DealTeamMember) -> TeamMemberRead:
        read = TeamMemberRead.model_validate(member)
        user = self.team_dao.get_user(member.user_id)
        if user is not None:
            read.user_name = user.name
            read.user_email = user.email
        return read

    async def list_team(self, deal_id: str, principal: Principal) -> List[TeamMemberRead]:
        assert_can_access(self.db, principal, ResourceKind.DEAL, deal_id)
        members = self.team_dao.list_for_deal(deal_id)
        members.sort(key=lambda m: _TEAM_ROLE_ORDER.get(m.role, 4))
        return [self._member_read(member) for member in members]

    async def add_team_member(self, deal_id: str, data: TeamMemberCreate, principal: Principal) -> TeamMemberRead:
        assert_can_access(self.db, principal, ResourceKind.DEAL, deal_id)

        target = self.team_dao.get_user(data.user_id)
        if target is None:
            raise HTTPException(status_code=404, detail="User not found")
        if principal.organization_id is not None and target.organization_id != principal.organization_id:
            raise HTTPException(status_code=400, detail="User belongs to another organization")

        if self.team_dao.find(deal_id, data.user_id, data.role.value) is not None:
            raise HTTPException(status_code=400, detail="User already assigned with this role")

        member = self.team_dao.create(
            deal_id=deal_id,
            user_id=data.user_id,
            role=data.role.value,
            notes=data.notes,
            assigned_by=principal.id,
        )
        logger.info("User %s added to deal %s as %s by %s", data.user_id, deal_id, data.role.value, principal.id)
        return self._member_read(member)

    async def remove_team_member(self, deal_id: str, member_id: str, principal: Principal) -> None:
        assert_can_access(self.db, principal, ResourceKind.DEAL, deal_id)
        member = self.team_dao.get_by_id(member_id)
        if member is None or member.deal_id != deal_id:
            raise HTTPException(status_code=404, detail="Team member not found")
        self.team_dao.delete(member)
