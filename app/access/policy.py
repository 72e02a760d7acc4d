# app/access/policy.py
"""Row visibility policy for CRM resources.

Every access decision goes through ``predicate_for``. List queries use the
predicate directly as a WHERE clause; ``check_access`` wraps the very same
predicate in an EXISTS probe for a single id. Both paths therefore agree by
construction.

Policy, in order:

1. Organization boundary. A principal with an organization only sees rows
   whose owner belongs to that organization, whatever its role. A principal
   without an organization only sees rows it owns.
2. Admins see every row inside their organization.
3. Everyone else sees rows they own, plus deals where they sit on the deal team.
4. Activities and tasks are also visible when their parent deal is visible
   (one level of inheritance).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select, exists, and_, or_, false
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from app.access.exceptions import AccessDeniedError, ResourceNotFoundError
from app.crm.models import User, Company, Contact, Deal, DealTeamMember, Activity, Task

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    DEAL = "deal"
    CONTACT = "contact"
    COMPANY = "company"
    ACTIVITY = "activity"
    TASK = "task"


RESOURCE_MODELS = {
    ResourceKind.DEAL: Deal,
    ResourceKind.CONTACT: Contact,
    ResourceKind.COMPANY: Company,
    ResourceKind.ACTIVITY: Activity,
    ResourceKind.TASK: Task,
}

# Kinds whose visibility is inherited from a parent deal.
DEAL_CHILD_KINDS = frozenset({ResourceKind.ACTIVITY, ResourceKind.TASK})


@dataclass(frozen=True)
class Principal:
    """The requesting user as supplied by the authentication layer."""

    id: str
    role: str = "rep"
    organization_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ===== PREDICATE CONSTRUCTION =====


def _organization_boundary(principal: Principal, owner_column) -> ColumnElement:
    org_users = (
        select(User.id)
        .where(User.organization_id == principal.organization_id)
        .correlate(None)
    )
    return owner_column.in_(org_users)


def _deal_team_clause(principal: Principal, model) -> ColumnElement:
    memberships = (
        select(DealTeamMember.deal_id)
        .where(DealTeamMember.user_id == principal.id)
        .correlate(None)
    )
    return model.id.in_(memberships)


def _parent_deal_clause(principal: Principal, model) -> ColumnElement:
    visible_deals = (
        select(Deal.id)
        .where(predicate_for(principal, ResourceKind.DEAL))
        .correlate(None)
    )
    return model.deal_id.in_(visible_deals)


def predicate_for(principal: Principal, kind, model=None) -> ColumnElement:
    """Build the visibility predicate for ``kind`` as a bound-parameter expression.

    ``model`` may be an aliased entity when the caller's query uses one; it
    defaults to the mapped class for the resource kind.
    """
    kind = ResourceKind(kind)
    model = model if model is not None else RESOURCE_MODELS[kind]

    if not principal.id:
        return false()

    if principal.organization_id is None:
        return model.owner_id == principal.id

    boundary = _organization_boundary(principal, model.owner_id)
    if principal.is_admin:
        return boundary

    visibility = [model.owner_id == principal.id]
    if kind is ResourceKind.DEAL:
        visibility.append(_deal_team_clause(principal, model))
    elif kind in DEAL_CHILD_KINDS:
        visibility.append(_parent_deal_clause(principal, model))

    return and_(boundary, or_(*visibility))


# ===== SINGLE RESOURCE CHECKS =====


def check_access(db: Session, principal: Principal, kind, resource_id: str) -> bool:
    """True when the resource exists and is visible to the principal."""
    kind = ResourceKind(kind)
    model = RESOURCE_MODELS[kind]
    stmt = select(exists().where(model.id == resource_id, predicate_for(principal, kind)))
    return bool(db.execute(stmt).scalar())


def assert_can_access(db: Session, principal: Principal, kind, resource_id: str):
    """Return the resource, or raise ``ResourceNotFoundError`` / ``AccessDeniedError``."""
    kind = ResourceKind(kind)
    resource = db.get(RESOURCE_MODELS[kind], resource_id)
    if resource is None:
        raise ResourceNotFoundError(kind.value, resource_id, principal.id)

    if not check_access(db, principal, kind, resource_id):
        logger.info(
            "Access denied: principal=%s kind=%s resource=%s", principal.id, kind.value, resource_id
        )
        raise AccessDeniedError(kind.value, resource_id, principal.id)

    return resource
