# app/core/database.py
"""Database configuration, session generator and start-up seeding."""

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import DATABASE_URL

logger = logging.getLogger(__name__)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== SESSION GENERATORS =====


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database - called by the application factory."""
    initialize_databases()


# ===== TABLE CREATION =====


def import_models():
    """Import every model module so the tables register on Base."""
    from app.crm import models as crm_models  # noqa: F401
    from app.workboards import models as workboard_models  # noqa: F401
    from app.logging import models as logging_models  # noqa: F401


def create_all_tables(bind=None):
    """Create all tables."""
    import_models()
    Base.metadata.create_all(bind=bind or engine)


def drop_all_tables(bind=None):
    """Drop all tables (use with caution!)."""
    import_models()
    Base.metadata.drop_all(bind=bind or engine)


# ===== DEFAULT WORKBOARD SEEDING =====


def create_default_workboards(session=None):
    """Seed the built-in shared workboards when they are missing."""
    from app.workboards.defaults import DEFAULT_WORKBOARDS
    from app.workboards.models import Workboard

    owns_session = session is None
    db = session or SessionLocal()

    try:
        created = 0
        for board in DEFAULT_WORKBOARDS:
            if db.get(Workboard, board["id"]) is not None:
                continue
            db.add(Workboard(owner_id=None, is_default=True, is_shared=True, **board))
            created += 1
        db.commit()
        if created:
            logger.info("Seeded %d default workboards", created)
    except Exception:
        db.rollback()
        logger.exception("Error seeding default workboards")
        raise
    finally:
        if owns_session:
            db.close()


# ===== INITIALIZATION FUNCTION =====


def initialize_databases(force_recreate: bool = False):
    """Create tables and seed default workboards."""
    if force_recreate:
        logger.warning("Force recreate mode: dropping existing tables")
        drop_all_tables()

    create_all_tables()
    create_default_workboards()


if __name__ == "__main__":
    # Allow running this file directly to initialize the database
    logging.basicConfig(level=logging.INFO)
    initialize_databases()
