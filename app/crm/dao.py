"""Data Access Objects for CRM resources."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.access.policy import Principal, RESOURCE_MODELS, ResourceKind, predicate_for
from app.core.base_dao import BaseDAO
from app.crm.models import DealTeamMember, User


class ResourceDAO(BaseDAO):
    """Lists one resource kind, always narrowed by the principal's visibility predicate."""

    def __init__(self, kind: ResourceKind, db_session: Session):
        self.kind = ResourceKind(kind)
        super().__init__(RESOURCE_MODELS[self.kind], db_session)

    def list_visible(self, principal: Principal, skip: int = 0, limit: int = 100) -> List:
        return self.list_where(
            predicate_for(principal, self.kind),
            skip=skip,
            limit=limit,
            order_by=[self.model.created_at.desc(), self.model.id.asc()],
        )

    def count_visible(self, principal: Principal) -> int:
        return self.count_where(predicate_for(principal, self.kind))


class DealTeamDAO(BaseDAO[DealTeamMember]):
    def __init__(self, db_session: Session):
        super().__init__(DealTeamMember, db_session)

    def list_for_deal(self, deal_id: str) -> List[DealTeamMember]:
        return self.list_where(
            DealTeamMember.deal_id == deal_id,
            limit=1000,
            order_by=DealTeamMember.assigned_at.asc(),
        )

    def find(self, deal_id: str, user_id: str, role: str) -> Optional[DealTeamMember]:
        stmt = select(DealTeamMember).where(
            DealTeamMember.deal_id == deal_id,
            DealTeamMember.user_id == user_id,
            DealTeamMember.role == role,
        )
        return self.db.execute(stmt).scalars().first()

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)
