"""Data Access Objects for the workboards module."""

from typing import List, Optional
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.access.policy import Principal
from app.core.base_dao import BaseDAO
from app.crm.models import User
from app.workboards.models import Workboard


class WorkboardDAO(BaseDAO[Workboard]):
    """DAO for saved workboards."""

    def __init__(self, db_session: Session):
        super().__init__(Workboard, db_session)

    @staticmethod
    def _visible_to(principal: Principal):
        """Own boards, built-in defaults, and boards shared inside the principal's organization."""
        visible = [Workboard.owner_id == principal.id, Workboard.is_default.is_(True)]
        if principal.organization_id is not None:
            colleagues = select(User.id).where(User.organization_id == principal.organization_id)
            visible.append(and_(Workboard.is_shared.is_(True), Workboard.owner_id.in_(colleagues)))
        return or_(*visible)

    def get_visible(self, workboard_id: str, principal: Principal) -> Optional[Workboard]:
        boards = self.list_where(Workboard.id == workboard_id, self._visible_to(principal), limit=1)
        return boards[0] if boards else None

    def list_visible(self, principal: Principal, entity_type: Optional[str] = None) -> List[Workboard]:
        """Visible boards, default boards first, then by name."""
        conditions = [self._visible_to(principal)]
        if entity_type:
            conditions.append(Workboard.entity_type == entity_type)
        return self.list_where(
            *conditions,
            limit=1000,
            order_by=[Workboard.is_default.desc(), Workboard.name.asc()],
        )
