import logging
import math

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from gym_service.errors import NotFoundError
from gym_service.models import (
    Branch, Member, MemberStatus, Membership, Organization, Plan, PlanDuration, SequenceCounter,
)

logger = logging.getLogger(__name__)

MEMBER_SEQUENCE = "member"
INVOICE_SEQUENCE = "invoice"


def _bump_sequence(db: Session, organization_id: str, name: str):
    updated = (
        db.query(SequenceCounter)
        .filter(SequenceCounter.organization_id == organization_id, SequenceCounter.name == name)
        .update({SequenceCounter.value: SequenceCounter.value + 1}, synchronize_session=False)
    )
    if not updated:
        return None
    return (
        db.query(SequenceCounter.value)
        .filter(SequenceCounter.organization_id == organization_id, SequenceCounter.name == name)
        .scalar()
    )


def next_sequence_value(db: Session, organization_id: str, name: str, start: int = 0) -> int:
    """Atomically bump the per-organization counter and return the new value.

    A missing counter is created at ``start + 1`` so a fresh counter picks up
    after rows that already exist. If another transaction creates it first,
    the insert fails inside a savepoint and the bump is retried.
    """
    value = _bump_sequence(db, organization_id, name)
    if value is not None:
        return value

    counter = SequenceCounter(organization_id=organization_id, name=name, value=start + 1)
    try:
        with db.begin_nested():
            db.add(counter)
    except IntegrityError:
        logger.info(f"Sequence {name} for {organization_id} created concurrently, retrying")
        return _bump_sequence(db, organization_id, name)
    return counter.value


def format_member_code(number: int) -> str:
    return f"GYM{number:04d}"


def next_member_code(db: Session, organization_id: str) -> str:
    existing = db.query(Member).filter(Member.organization_id == organization_id).count()
    return format_member_code(next_sequence_value(db, organization_id, MEMBER_SEQUENCE, existing))


def paginate(query, page: int, limit: int):
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
    return items, meta


# Organizations and branches

def get_organization_by_slug(db: Session, slug: str):
    return db.query(Organization).filter(Organization.slug == slug).first()


def get_default_branch(db: Session, organization_id: str):
    return (
        db.query(Branch)
        .filter(Branch.organization_id == organization_id)
        .order_by(Branch.is_main.desc(), Branch.created_at)
        .first()
    )


# Members

def get_member(db: Session, organization_id: str, member_id: str, lock: bool = False) -> Member:
    query = db.query(Member).filter(Member.id == member_id, Member.organization_id == organization_id)
    if lock:
        query = query.with_for_update()
    member = query.first()
    if not member:
        raise NotFoundError("Member not found", "MEMBER_NOT_FOUND")
    return member


def get_member_detail(db: Session, organization_id: str, member_id: str) -> Member:
    member = (
        db.query(Member)
        .options(selectinload(Member.memberships).selectinload(Membership.plan))
        .filter(Member.id == member_id, Member.organization_id == organization_id)
        .first()
    )
    if not member:
        raise NotFoundError("Member not found")
    return member


def list_members(db: Session, organization_id: str, status=None, search=None, page=1, limit=20):
    query = db.query(Member).filter(Member.organization_id == organization_id)
    if status:
        query = query.filter(Member.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Member.first_name.ilike(pattern),
            Member.last_name.ilike(pattern),
            Member.email.ilike(pattern),
            Member.phone.like(pattern),
            Member.member_id.ilike(pattern),
        ))
    return paginate(query.order_by(Member.created_at.desc()), page, limit)


def create_member(db: Session, organization_id: str, data) -> Member:
    fields = data.model_dump(exclude_unset=True)
    if not fields.get("branch_id"):
        branch = get_default_branch(db, organization_id)
        fields["branch_id"] = branch.id if branch else None

    member = Member(
        organization_id=organization_id,
        member_id=next_member_code(db, organization_id),
        status=MemberStatus.inactive,
        **fields,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(f"Member {member.member_id} created in organization {organization_id}")
    return member


def update_member(db: Session, organization_id: str, member_id: str, data) -> Member:
    member = get_member(db, organization_id, member_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    return member


def delete_member(db: Session, organization_id: str, member_id: str) -> Member:
    member = get_member(db, organization_id, member_id)
    member.status = MemberStatus.inactive
    db.commit()
    logger.info(f"Member {member.member_id} deactivated")
    return member


# Plans

def get_plan(db: Session, organization_id: str, plan_id: str, code: str = "PLAN_NOT_FOUND") -> Plan:
    plan = (
        db.query(Plan)
        .options(selectinload(Plan.durations))
        .filter(Plan.id == plan_id, Plan.organization_id == organization_id)
        .first()
    )
    if not plan:
        raise NotFoundError("Plan not found", code)
    return plan


def list_plans(db: Session, organization_id: str, include_inactive: bool = False):
    query = db.query(Plan).options(selectinload(Plan.durations)).filter(Plan.organization_id == organization_id)
    if not include_inactive:
        query = query.filter(Plan.is_active.is_(True))
    return query.order_by(Plan.display_order).all()


def _build_durations(durations) -> list:
    return [PlanDuration(**d.model_dump()) for d in durations]


def create_plan(db: Session, organization_id: str, data) -> Plan:
    fields = data.model_dump(exclude={"durations"})
    plan = Plan(organization_id=organization_id, **fields)
    plan.durations = _build_durations(data.durations)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info(f"Plan {plan.name} created with {len(plan.durations)} durations")
    return plan


def update_plan(db: Session, organization_id: str, plan_id: str, data) -> Plan:
    plan = get_plan(db, organization_id, plan_id, code="NOT_FOUND")

    for field, value in data.model_dump(exclude_unset=True, exclude={"durations"}).items():
        setattr(plan, field, value)

    # replaced durations are deleted and re-inserted in the same commit
    if data.durations is not None:
        db.query(PlanDuration).filter(PlanDuration.plan_id == plan.id).delete(synchronize_session=False)
        db.expire(plan, ["durations"])
        db.add_all(PlanDuration(plan_id=plan.id, **d.model_dump()) for d in data.durations)

    db.commit()
    db.refresh(plan)
    return plan


def delete_plan(db: Session, organization_id: str, plan_id: str) -> bool:
    """Returns True when the plan was only deactivated."""
    plan = get_plan(db, organization_id, plan_id, code="NOT_FOUND")
    in_use = db.query(Membership).filter(Membership.plan_id == plan.id).count()
    if in_use:
        plan.is_active = False
        db.commit()
        logger.info(f"Plan {plan.name} deactivated, {in_use} memberships reference it")
        return True

    db.delete(plan)
    db.commit()
    logger.info(f"Plan {plan.name} deleted")
    return False


def list_public_plans(db: Session, slug: str):
    organization = get_organization_by_slug(db, slug)
    if not organization:
        raise NotFoundError("Organization not found")

    return list_plans(db, organization.id)
