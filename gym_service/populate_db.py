from decimal import Decimal

from gym_service.auth import hash_password
from gym_service.database import Base, SessionLocal, engine
from gym_service.models import (
    Branch, ClassCategory, ClassDifficulty, ClassSchedule, GymClass, Organization, Plan, PlanDuration, User,
    UserRole,
)

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

db = SessionLocal()

organization = Organization(
    name="GymPro Demo",
    slug="gympro-demo",
    email="info@gympro.com",
    phone="9876543210",
)
db.add(organization)
db.flush()

branch = Branch(organization_id=organization.id, name="Main Branch", code="MAIN", is_main=True)
db.add(branch)
db.flush()

admin = User(
    organization_id=organization.id,
    branch_id=branch.id,
    email="admin@gympro.com",
    password_hash=hash_password("admin123"),
    first_name="Admin",
    last_name="User",
    role=UserRole.admin,
)

basic = Plan(
    organization_id=organization.id,
    name="Basic",
    description="Access to gym equipment during standard hours",
    features=["Gym floor access", "Locker room"],
    freeze_allowed=True,
    max_freeze_days=15,
    display_order=1,
    durations=[
        PlanDuration(duration_months=1, price=Decimal("1500")),
        PlanDuration(duration_months=3, price=Decimal("4000"), discount_percent=Decimal("10")),
        PlanDuration(duration_months=12, price=Decimal("14000"), discount_percent=Decimal("20")),
    ],
)

premium = Plan(
    organization_id=organization.id,
    name="Premium",
    description="All-day access with group classes and personal training",
    features=["Gym floor access", "Group classes", "Personal training", "Locker"],
    access_all_branches=True,
    includes_classes=True,
    class_credits=20,
    includes_pt=True,
    pt_sessions=4,
    includes_locker=True,
    freeze_allowed=True,
    max_freeze_days=45,
    is_popular=True,
    display_order=2,
    durations=[
        PlanDuration(duration_months=1, price=Decimal("3000"), registration_fee=Decimal("500")),
        PlanDuration(duration_months=6, price=Decimal("15000"), discount_percent=Decimal("15")),
    ],
)

trainer = User(
    organization_id=organization.id,
    branch_id=branch.id,
    email="trainer@gympro.com",
    password_hash=hash_password("trainer123"),
    first_name="Ola",
    last_name="Nowak",
    role=UserRole.trainer,
)

db.add_all([admin, basic, premium, trainer])
db.flush()

yoga = GymClass(
    organization_id=organization.id,
    name="Morning Yoga",
    category=ClassCategory.yoga,
    difficulty=ClassDifficulty.beginner,
    max_capacity=15,
    instructor_id=trainer.id,
    schedules=[
        ClassSchedule(branch_id=branch.id, instructor_id=trainer.id, day_of_week=day,
                      start_time="07:00", end_time="08:00", max_capacity=15, room="Studio A")
        for day in (1, 3, 5)
    ],
)

db.add(yoga)
db.commit()
db.close()
