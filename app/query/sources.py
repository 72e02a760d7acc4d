"""
Where each entity kind's columns come from.

An ``EntitySource`` owns the base table, the outer joins that resolve foreign
display names and the correlated aggregates for one entity kind. Both the count
and data queries start from ``apply_joins`` so their FROM clauses are always
identical.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import aliased

from app.crm.models import User, Company, Contact, Deal, Activity
from app.query.vocabulary import (
    EntityKind,
    ENTITY_FIELDS,
    FOREIGN_NAMES,
    CLOSED_WON,
)

Owner = aliased(User, name="owner")
RelatedCompany = aliased(Company, name="company")
RelatedContact = aliased(Contact, name="contact")


@dataclass(frozen=True)
class EntitySource:
    kind: EntityKind
    model: Any
    joins: Dict[str, Tuple[Any, Any]]  # join name -> (aliased target, on clause)
    activity_key: Any  # activities column referencing this entity

    def entity_column(self, name: str):
        """Column on the base table, or None when ``name`` is not an entity field."""
        if name not in ENTITY_FIELDS[self.kind]:
            return None
        return getattr(self.model, name)

    def foreign_column(self, name: str):
        """Joined display-name column, or None for anything else."""
        mapping = FOREIGN_NAMES[self.kind].get(name)
        if mapping is None:
            return None
        join_name, column_name = mapping
        target, _ = self.joins[join_name]
        return getattr(target, column_name)

    def aggregate_columns(self) -> List[Any]:
        if self.kind is not EntityKind.COMPANIES:
            return []
        return _company_aggregates()

    def projection(self) -> List[Any]:
        """Entity fields, foreign names and aggregates, each labelled by field name."""
        columns = [getattr(self.model, name).label(name) for name in ENTITY_FIELDS[self.kind]]
        columns += [self.foreign_column(name).label(name) for name in FOREIGN_NAMES[self.kind]]
        columns += self.aggregate_columns()
        return columns

    def apply_joins(self, stmt):
        stmt = stmt.select_from(self.model)
        for target, onclause in self.joins.values():
            stmt = stmt.outerjoin(target, onclause)
        return stmt


def _company_aggregates() -> List[Any]:
    contact_count = (
        select(func.count(Contact.id))
        .where(Contact.company_id == Company.id)
        .correlate(Company)
        .scalar_subquery()
    )
    deal_count = (
        select(func.count(Deal.id))
        .where(Deal.company_id == Company.id)
        .correlate(Company)
        .scalar_subquery()
    )
    total_revenue = (
        select(func.coalesce(func.sum(Deal.value), 0))
        .where(Deal.company_id == Company.id, Deal.stage == CLOSED_WON)
        .correlate(Company)
        .scalar_subquery()
    )
    return [
        contact_count.label("contact_count"),
        deal_count.label("deal_count"),
        total_revenue.label("total_revenue"),
    ]


SOURCES: Dict[EntityKind, EntitySource] = {
    EntityKind.DEALS: EntitySource(
        kind=EntityKind.DEALS,
        model=Deal,
        joins={
            "owner": (Owner, Deal.owner_id == Owner.id),
            "company": (RelatedCompany, Deal.company_id == RelatedCompany.id),
            "contact": (RelatedContact, Deal.contact_id == RelatedContact.id),
        },
        activity_key=Activity.deal_id,
    ),
    EntityKind.CONTACTS: EntitySource(
        kind=EntityKind.CONTACTS,
        model=Contact,
        joins={
            "owner": (Owner, Contact.owner_id == Owner.id),
            "company": (RelatedCompany, Contact.company_id == RelatedCompany.id),
        },
        activity_key=Activity.contact_id,
    ),
    EntityKind.COMPANIES: EntitySource(
        kind=EntityKind.COMPANIES,
        model=Company,
        joins={
            "owner": (Owner, Company.owner_id == Owner.id),
        },
        activity_key=Activity.company_id,
    ),
}


def source_for(kind) -> Optional[EntitySource]:
    try:
        return SOURCES[EntityKind(kind)]
    except ValueError:
        return None
