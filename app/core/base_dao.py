# app/core/base_dao.py
"""Generic base DAO for common database operations."""

from typing import Generic, TypeVar, List, Optional, Type
from sqlalchemy.orm import Session
from sqlalchemy import select, func
from abc import ABC
from app.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType], ABC):
    """Generic DAO for common database operations."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get record by ID."""
        return self.db.get(self.model, id)

    def list_where(self, *conditions, skip: int = 0, limit: int = 100, order_by=None) -> List[ModelType]:
        """Records matching every condition, paginated."""
        query = select(self.model).where(*conditions)
        if order_by is not None:
            query = query.order_by(*order_by) if isinstance(order_by, (list, tuple)) else query.order_by(order_by)
        query = query.offset(skip).limit(limit)
        result = self.db.execute(query)
        return list(result.scalars().all())

    def count_where(self, *conditions) -> int:
        """Count records matching every condition."""
        query = select(func.count()).select_from(self.model).where(*conditions)
        return self.db.execute(query).scalar() or 0

    def create(self, **data) -> ModelType:
        """Create new record."""
        db_obj = self.model(**data)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def update(self, db_obj: ModelType, **data) -> ModelType:
        """Update existing record."""
        for field, value in data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def delete(self, db_obj: ModelType) -> None:
        """Delete a loaded record."""
        self.db.delete(db_obj)
        self.db.commit()
