# app/crm/models.py
"""CRM entity models: organizations, users, companies, contacts, deals and their children."""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from app.core.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Naive UTC timestamp, comparable with SQLite's julianday('now')."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Organization(Base):
    """A tenant. Users belong to at most one organization."""

    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    users = relationship("User", back_populates="organization")


class User(Base):
    """A CRM user. Owns companies, contacts, deals, activities and tasks."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="rep")  # admin, manager, rep
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utc_now)

    organization = relationship("Organization", back_populates="users")


class Company(Base):
    __tablename__ = "companies"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    domain = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    employee_count = Column(Integer, nullable=True)
    annual_revenue = Column(Float, nullable=True)
    website = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    title = Column(String, nullable=True)
    company_id = Column(String, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(String, nullable=True, default="active")
    source = Column(String, nullable=True)
    last_contacted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class Deal(Base):
    __tablename__ = "deals"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    value = Column(Float, default=0)
    stage = Column(String, nullable=False, default="lead", index=True)
    probability = Column(Integer, nullable=True)
    contact_id = Column(String, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True, index=True)
    company_id = Column(String, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    close_date = Column(DateTime, nullable=True)
    spin_situation = Column(Text, nullable=True)
    spin_problem = Column(Text, nullable=True)
    spin_implication = Column(Text, nullable=True)
    spin_need_payoff = Column(Text, nullable=True)
    spin_progress = Column(Integer, default=0)
    stage_changed_at = Column(DateTime, default=utc_now)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    team = relationship("DealTeamMember", back_populates="deal", cascade="all, delete-orphan")


class DealTeamMember(Base):
    """Membership of a user on a deal team. Grants access to that deal only."""

    __tablename__ = "deal_team"
    __table_args__ = (UniqueConstraint("deal_id", "user_id", "role", name="uq_deal_team_member_role"),)

    id = Column(String, primary_key=True, default=new_id)
    deal_id = Column(String, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, nullable=False)  # owner, technical, executive_sponsor, support
    assigned_at = Column(DateTime, default=utc_now)
    assigned_by = Column(String, ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)

    deal = relationship("Deal", back_populates="team")


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String, primary_key=True, default=new_id)
    type = Column(String, nullable=False, default="note")  # call, email, meeting, note, task
    subject = Column(String, nullable=True)
    content = Column(Text, nullable=True)
    deal_id = Column(String, ForeignKey("deals.id", ondelete="CASCADE"), nullable=True, index=True)
    contact_id = Column(String, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True, index=True)
    company_id = Column(String, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utc_now, index=True)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True, default=new_id)
    subject = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    deal_id = Column(String, ForeignKey("deals.id", ondelete="SET NULL"), nullable=True, index=True)
    contact_id = Column(String, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    company_id = Column(String, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    due_date = Column(DateTime, nullable=True)
    priority = Column(String, nullable=False, default="medium")  # low, medium, high
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utc_now)
