"""Database models for saved workboards."""

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON
from app.core.database import Base
from app.crm.models import new_id, utc_now


class Workboard(Base):
    """A saved report definition over one entity kind.

    ``columns`` and ``filters`` are stored as ordered JSON arrays and are
    always replaced wholesale on update.
    """

    __tablename__ = "workboards"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    entity_type = Column(String, nullable=False)  # deals, contacts, companies
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_shared = Column(Boolean, nullable=False, default=False)
    columns = Column(JSON, nullable=False, default=list)
    filters = Column(JSON, nullable=False, default=list)
    sort_column = Column(String, nullable=True)
    sort_direction = Column(String, nullable=False, default="asc")
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
