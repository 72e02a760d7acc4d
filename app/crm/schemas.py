"""Pydantic schemas for CRM resources."""

from typing import Optional, List
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class TeamRole(str, Enum):
    """Roles a user can hold on a deal team."""

    OWNER = "owner"
    TECHNICAL = "technical"
    EXECUTIVE_SPONSOR = "executive_sponsor"
    SUPPORT = "support"


class ResourceBase(BaseModel):
    id: str
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CompanyRead(ResourceBase):
    name: str
    domain: Optional[str] = None
    industry: Optional[str] = None
    employee_count: Optional[int] = None
    annual_revenue: Optional[float] = None
    website: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None


class ContactRead(ResourceBase):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    company_id: Optional[str] = None
    status: Optional[str] = None
    source: Optional[str] = None
    last_contacted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DealRead(ResourceBase):
    name: str
    value: Optional[float] = None
    stage: str
    probability: Optional[int] = None
    contact_id: Optional[str] = None
    company_id: Optional[str] = None
    close_date: Optional[datetime] = None
    spin_situation: Optional[str] = None
    spin_problem: Optional[str] = None
    spin_implication: Optional[str] = None
    spin_need_payoff: Optional[str] = None
    spin_progress: Optional[int] = None
    stage_changed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ActivityRead(ResourceBase):
    type: str
    subject: Optional[str] = None
    content: Optional[str] = None
    deal_id: Optional[str] = None
    contact_id: Optional[str] = None
    company_id: Optional[str] = None


class TaskRead(ResourceBase):
    subject: str
    content: Optional[str] = None
    deal_id: Optional[str] = None
    contact_id: Optional[str] = None
    company_id: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: str
    completed: bool


class ResourcePage(BaseModel):
    items: List[dict]
    page: int
    limit: int
    total: int
    has_more: bool = Field(alias="hasMore")

    model_config = ConfigDict(populate_by_name=True)


# ===== DEAL TEAM SCHEMAS =====


class TeamMemberCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=100)
    role: TeamRole
    notes: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(extra="forbid")


class TeamMemberRead(BaseModel):
    id: str
    deal_id: str
    user_id: str
    role: str
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[str] = None
    notes: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
