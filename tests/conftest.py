from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gym_service import memberships
from gym_service.auth import create_tokens, hash_password, token_payload
from gym_service.database import Base, get_db
from gym_service.main import app
from gym_service.models import Branch, Member, MemberStatus, Organization, Plan, PlanDuration, User, UserRole
from gym_service.schemas import MembershipCreate

PASSWORD = "secret123"


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_tenant(db, password_hash, slug, role=UserRole.admin):
    organization = Organization(name=slug.title(), slug=slug)
    db.add(organization)
    db.flush()
    branch = Branch(organization_id=organization.id, name="Main", code="MAIN", is_main=True)
    db.add(branch)
    db.flush()
    user = User(
        organization_id=organization.id,
        branch_id=branch.id,
        email=f"admin@{slug}.test",
        password_hash=password_hash,
        first_name="Admin",
        last_name=slug.title(),
        role=role,
    )
    db.add(user)
    db.commit()
    tokens = create_tokens(token_payload(user))
    return SimpleNamespace(
        organization=organization,
        branch=branch,
        user=user,
        headers={"Authorization": f"Bearer {tokens['accessToken']}"},
    )


@pytest.fixture
def tenant(db, password_hash):
    return make_tenant(db, password_hash, "ironworks")


@pytest.fixture
def other_tenant(db, password_hash):
    return make_tenant(db, password_hash, "flexzone")


@pytest.fixture
def staff_headers(db, tenant, password_hash):
    user = User(
        organization_id=tenant.organization.id,
        branch_id=tenant.branch.id,
        email="staff@ironworks.test",
        password_hash=password_hash,
        first_name="Staff",
        last_name="Ironworks",
        role=UserRole.staff,
    )
    db.add(user)
    db.commit()
    tokens = create_tokens(token_payload(user))
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


@pytest.fixture
def make_plan(db):
    def factory(organization_id, name="Basic", freeze_allowed=True, max_freeze_days=15,
                class_credits=None, pt_sessions=None, durations=((1, "1500"),)):
        plan = Plan(
            organization_id=organization_id,
            name=name,
            freeze_allowed=freeze_allowed,
            max_freeze_days=max_freeze_days,
            class_credits=class_credits,
            pt_sessions=pt_sessions,
            durations=[
                PlanDuration(duration_months=months, price=Decimal(price))
                for months, price in durations
            ],
        )
        db.add(plan)
        db.commit()
        return plan
    return factory


@pytest.fixture
def make_member(db):
    counter = {"n": 0}

    def factory(tenant, first_name="Jan"):
        counter["n"] += 1
        member = Member(
            organization_id=tenant.organization.id,
            branch_id=tenant.branch.id,
            member_id=f"GYM{counter['n']:04d}",
            first_name=first_name,
            last_name="Kowalski",
            status=MemberStatus.inactive,
        )
        db.add(member)
        db.commit()
        return member
    return factory


@pytest.fixture
def make_active_member(db, make_plan, make_member):
    """Member with an ACTIVE one-month membership on a fresh plan."""
    def factory(tenant, first_name="Jan"):
        plan = make_plan(tenant.organization.id, name=f"Plan {first_name}")
        member = make_member(tenant, first_name=first_name)
        memberships.assign_membership(db, tenant.organization.id, MembershipCreate(
            member_id=member.id, plan_id=plan.id, duration_id=plan.durations[0].id,
        ))
        return member
    return factory


class RecordingProducer:
    def __init__(self):
        self.sent = []

    def send(self, topic, key=None, value=None):
        self.sent.append((topic, key, value))


@pytest.fixture
def producer():
    return RecordingProducer()
