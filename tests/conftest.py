"""
Test configuration and shared fixtures for the CRM workboards test suite.
Provides database setup, a seeded two-organization CRM and principal headers.
"""

import pytest
from datetime import timedelta
from types import SimpleNamespace
from typing import Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.app import create_app
from app.access.policy import Principal
from app.core.database import Base, create_default_workboards, get_db, import_models
from app.crm.models import (
    Activity,
    Company,
    Contact,
    Deal,
    DealTeamMember,
    Organization,
    Task,
    User,
    utc_now,
)

LONG_TEXT = (
    "The customer runs a fragmented legacy stack across three regions, with manual "
    "reconciliation every month and no shared reporting between finance and operations teams."
)


# ===== DATABASE SETUP =====


def _memory_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="session")
def engine():
    """In-memory SQLite engine for CRM and workboard tables"""
    return _memory_engine()


@pytest.fixture(scope="session")
def log_engine():
    """Separate in-memory engine that receives request logs"""
    return _memory_engine()


@pytest.fixture(scope="function")
def db_session(engine):
    """Database session; every table is recreated after each test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)


@pytest.fixture(scope="function")
def log_session_factory(log_engine):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=log_engine)
    yield factory
    Base.metadata.drop_all(bind=log_engine)
    Base.metadata.create_all(bind=log_engine)


@pytest.fixture
def client(db_session, log_session_factory):
    """FastAPI test client with database overrides"""
    app = create_app(initialize_database=False)
    app.state.log_session_factory = log_session_factory

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ===== SAMPLE DATA FIXTURES =====


@pytest.fixture
def crm(db_session) -> SimpleNamespace:
    """
    Two organizations plus one user without an organization.

    Org A: admin-a, rep-a1, rep-a2. Org B: admin-b, rep-b. loner has no org.
    rep-a2 sits on the deal team of deal-2 (owned by rep-a1).
    """
    now = utc_now()

    def days_ago(days):
        # An extra hour keeps whole-day differences away from the boundary
        return now - timedelta(days=days, hours=1)

    session = db_session

    orgs = [Organization(id="org-a", name="Acme"), Organization(id="org-b", name="Globex")]
    users = [
        User(id="admin-a", email="admin@acme.test", name="Ada Admin", role="admin", organization_id="org-a"),
        User(id="rep-a1", email="rita@acme.test", name="Rita Rep", role="rep", organization_id="org-a"),
        User(id="rep-a2", email="sam@acme.test", name="Sam Seller", role="rep", organization_id="org-a"),
        User(id="admin-b", email="admin@globex.test", name="Bea Boss", role="admin", organization_id="org-b"),
        User(id="rep-b", email="hank@globex.test", name="Hank Hustle", role="rep", organization_id="org-b"),
        User(id="loner", email="solo@example.test", name="Solo Trader", role="rep", organization_id=None),
    ]
    session.add_all(orgs + users)
    session.flush()

    companies = [
        Company(id="co-a1", name="Initech", industry="Software", employee_count=250, owner_id="rep-a1"),
        Company(id="co-a2", name="Umbrella", industry="Biotech", employee_count=5000, owner_id="rep-a2"),
        Company(id="co-b", name="Globex Corp", industry="Energy", employee_count=800, owner_id="rep-b"),
    ]
    contacts = [
        Contact(id="ct-a1", name="Peter Gibbons", email="peter@initech.test", company_id="co-a1", owner_id="rep-a1"),
        Contact(id="ct-a2", name="Alice Wong", email="alice@umbrella.test", company_id="co-a2", owner_id="rep-a2"),
        Contact(id="ct-b", name="Scorpio", email="scorpio@globex.test", company_id="co-b", owner_id="rep-b"),
    ]
    session.add_all(companies + contacts)
    session.flush()

    deals = [
        Deal(
            id="deal-1", name="Initech Expansion", value=75000, stage="proposal",
            stage_changed_at=days_ago(20), company_id="co-a1", contact_id="ct-a1",
            owner_id="rep-a1", spin_situation=LONG_TEXT, spin_problem=LONG_TEXT,
            spin_implication=LONG_TEXT, spin_need_payoff=LONG_TEXT,
        ),
        Deal(
            id="deal-2", name="Initech Renewal", value=50000, stage="proposal",
            stage_changed_at=days_ago(3), company_id="co-a1", contact_id="ct-a1",
            owner_id="rep-a1", spin_situation="Legacy stack",
        ),
        Deal(
            id="deal-3", name="Initech Pilot", value=20000, stage="proposal",
            stage_changed_at=days_ago(1), company_id="co-a1", owner_id="rep-a1",
        ),
        Deal(id="deal-4", name="Initech Services", value=90000, stage="negotiation", company_id="co-a1", owner_id="rep-a1"),
        Deal(id="deal-5", name="Initech Closed", value=120000, stage="closed_won", company_id="co-a1", owner_id="rep-a1"),
        Deal(
            id="deal-6", name="Umbrella Platform", value=60000, stage="proposal",
            stage_changed_at=days_ago(5), company_id="co-a2", contact_id="ct-a2", owner_id="rep-a2",
        ),
        Deal(id="deal-7", name="Umbrella Lead", value=5000, stage="lead", company_id="co-a2", owner_id="rep-a2"),
        Deal(id="deal-8", name="Globex Merger", value=500000, stage="proposal", company_id="co-b", owner_id="rep-b"),
        Deal(id="deal-9", name="Freelance Gig", value=80000, stage="proposal", owner_id="loner"),
    ]
    session.add_all(deals)
    session.flush()

    session.add_all([
        DealTeamMember(id="team-1", deal_id="deal-2", user_id="rep-a2", role="technical", assigned_by="rep-a1"),
        Activity(id="act-1", type="call", subject="Kickoff", deal_id="deal-1", owner_id="rep-a1",
                 created_at=days_ago(2)),
        Activity(id="act-2", type="email", subject="Follow up", deal_id="deal-6", owner_id="rep-a2",
                 created_at=days_ago(30)),
        Activity(id="act-3", type="meeting", subject="Tech review", deal_id="deal-2", owner_id="rep-a2",
                 created_at=days_ago(1)),
        Activity(id="act-4", type="call", subject="Intro", deal_id="deal-8", owner_id="rep-b",
                 created_at=days_ago(4)),
        Task(id="task-1", subject="Send pricing", deal_id="deal-6", owner_id="rep-a2"),
        Task(id="task-2", subject="Legal review", deal_id="deal-1", owner_id="admin-a"),
    ])
    session.commit()

    return SimpleNamespace(
        now=now,
        users={user.id: user for user in users},
        deals={deal.id: deal for deal in deals},
    )


@pytest.fixture
def default_workboards(db_session):
    """Seed the built-in workboards"""
    create_default_workboards(db_session)


# ===== PRINCIPAL FIXTURES =====


def principal_for(user_id: str, role: str = "rep", organization_id: Optional[str] = None) -> Principal:
    return Principal(id=user_id, role=role, organization_id=organization_id)


PRINCIPALS = {
    "admin-a": principal_for("admin-a", "admin", "org-a"),
    "rep-a1": principal_for("rep-a1", "rep", "org-a"),
    "rep-a2": principal_for("rep-a2", "rep", "org-a"),
    "admin-b": principal_for("admin-b", "admin", "org-b"),
    "rep-b": principal_for("rep-b", "rep", "org-b"),
    "loner": principal_for("loner", "rep", None),
}


def headers_for(user_id: str) -> Dict[str, str]:
    """Principal headers as the authentication layer would forward them"""
    principal = PRINCIPALS[user_id]
    headers = {"X-User-Id": principal.id, "X-User-Role": principal.role}
    if principal.organization_id:
        headers["X-Organization-Id"] = principal.organization_id
    return headers


@pytest.fixture
def principals() -> Dict[str, Principal]:
    return dict(PRINCIPALS)


@pytest.fixture
def headers():
    """``headers("rep-a1")`` -> request headers for that principal"""
    return headers_for
