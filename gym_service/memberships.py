"""Membership lifecycle: assign, renew, freeze, unfreeze, cancel and upgrade.

Every transition validates all of its preconditions before touching a row and
commits once, so a failed call leaves nothing behind. Member.status is written
explicitly by each transition; it is never derived on read.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session, joinedload, selectinload

from gym_service import crud
from gym_service.database import commit_or_rollback
from gym_service.errors import AppError, NotFoundError
from gym_service.events import send_membership_status
from gym_service.models import (
    Member, MemberStatus, Membership, MembershipStatus, Plan, to_naive_utc, utcnow,
)

logger = logging.getLogger(__name__)


def add_months(start: datetime, months: int) -> datetime:
    # clamps to the last day of the target month: Jan 31 + 1 month = Feb 28/29
    return start + relativedelta(months=months)


def resolve_duration(plan: Plan, duration_id: str):
    for duration in plan.durations:
        if duration.id == duration_id:
            return duration
    raise AppError("Invalid plan duration", 400, "INVALID_DURATION")


def expire_active_memberships(db: Session, member_id: str, keep_id: Optional[str] = None) -> int:
    """Expire the member's ACTIVE memberships other than ``keep_id``.

    Runs inside the caller's transaction so at most one ACTIVE membership per
    member survives the commit.
    """
    query = db.query(Membership).filter(
        Membership.member_id == member_id, Membership.status == MembershipStatus.active,
    )
    if keep_id:
        query = query.filter(Membership.id != keep_id)
    expired = query.update(
        {
            Membership.status: MembershipStatus.expired,
            Membership.version: Membership.version + 1,
        },
        synchronize_session="fetch",
    )
    db.flush()
    return expired


def get_membership(db: Session, organization_id: str, membership_id: str, lock: bool = False) -> Membership:
    query = (
        db.query(Membership)
        .join(Member, Membership.member_id == Member.id)
        .options(
            joinedload(Membership.member),
            joinedload(Membership.plan).selectinload(Plan.durations),
        )
        .filter(Membership.id == membership_id, Member.organization_id == organization_id)
    )
    if lock:
        query = query.with_for_update(of=Membership)
    membership = query.first()
    if not membership:
        raise NotFoundError("Membership not found")
    return membership


def list_memberships(db: Session, organization_id: str, member_id=None, status=None, page=1, limit=20):
    query = (
        db.query(Membership)
        .join(Member, Membership.member_id == Member.id)
        .options(joinedload(Membership.member), joinedload(Membership.plan))
        .filter(Member.organization_id == organization_id)
    )
    if member_id:
        query = query.filter(Membership.member_id == member_id)
    if status:
        query = query.filter(Membership.status == status)
    return crud.paginate(query.order_by(Membership.created_at.desc()), page, limit)


def assign_membership(db: Session, organization_id: str, data, producer=None) -> Membership:
    member = crud.get_member(db, organization_id, data.member_id, lock=True)
    plan = crud.get_plan(db, organization_id, data.plan_id)
    duration = resolve_duration(plan, data.duration_id)

    start = to_naive_utc(data.start_date) if data.start_date else utcnow()
    end = add_months(start, duration.duration_months)

    expired = expire_active_memberships(db, member.id)

    membership = Membership(
        member_id=member.id,
        plan_id=plan.id,
        start_date=start,
        end_date=end,
        status=MembershipStatus.active,
        is_frozen=False,
        total_freeze_days=0,
        remaining_class_credits=plan.class_credits,
        remaining_pt_sessions=plan.pt_sessions,
    )
    db.add(membership)
    member.status = MemberStatus.active
    commit_or_rollback(db)
    db.refresh(membership)

    logger.info(
        f"Assigned plan {plan.name} ({duration.duration_months}m) to member {member.member_id}, "
        f"expired {expired} previous active membership(s)"
    )
    send_membership_status(producer, membership, "assigned")
    return membership


def renew_membership(db: Session, organization_id: str, membership_id: str, data, producer=None) -> Membership:
    membership = get_membership(db, organization_id, membership_id, lock=True)
    duration = resolve_duration(membership.plan, data.duration_id)

    now = utcnow()
    if data.start_from_current and membership.status == MembershipStatus.active and membership.end_date > now:
        start = membership.end_date
    else:
        start = now

    expire_active_memberships(db, membership.member_id, keep_id=membership.id)
    membership.start_date = start
    membership.end_date = add_months(start, duration.duration_months)
    membership.status = MembershipStatus.active
    membership.is_frozen = False
    membership.freeze_start_date = None
    membership.freeze_end_date = None
    membership.member.status = MemberStatus.active
    commit_or_rollback(db)
    db.refresh(membership)

    logger.info(f"Renewed membership {membership.id} until {membership.end_date.isoformat()}")
    send_membership_status(producer, membership, "renewed")
    return membership


def freeze_membership(db: Session, organization_id: str, membership_id: str, data, producer=None) -> Membership:
    membership = get_membership(db, organization_id, membership_id, lock=True)
    plan = membership.plan

    if membership.status != MembershipStatus.active:
        raise AppError("Only active memberships can be frozen", 400, "INVALID_STATUS")
    if not plan.freeze_allowed:
        raise AppError("This plan does not allow freezing", 400, "FREEZE_NOT_ALLOWED")

    total_freeze_days = (membership.total_freeze_days or 0) + data.freeze_days
    if total_freeze_days > (plan.max_freeze_days or 0):
        raise AppError(
            f"Maximum freeze days ({plan.max_freeze_days}) exceeded", 400, "MAX_FREEZE_EXCEEDED"
        )

    now = utcnow()
    membership.status = MembershipStatus.frozen
    membership.is_frozen = True
    membership.freeze_start_date = now
    membership.freeze_end_date = now + timedelta(days=data.freeze_days)
    membership.total_freeze_days = total_freeze_days
    # paid time is not lost: the end date moves by the frozen days
    membership.end_date = membership.end_date + timedelta(days=data.freeze_days)
    membership.member.status = MemberStatus.frozen
    commit_or_rollback(db)
    db.refresh(membership)

    logger.info(
        f"Froze membership {membership.id} for {data.freeze_days} days"
        + (f" ({data.reason})" if data.reason else "")
    )
    send_membership_status(producer, membership, "frozen")
    return membership


def unfreeze_membership(db: Session, organization_id: str, membership_id: str, producer=None) -> Membership:
    membership = get_membership(db, organization_id, membership_id, lock=True)

    if membership.status != MembershipStatus.frozen:
        raise AppError("Membership is not frozen", 400, "INVALID_STATUS")

    expire_active_memberships(db, membership.member_id, keep_id=membership.id)
    membership.status = MembershipStatus.active
    membership.is_frozen = False
    membership.freeze_end_date = utcnow()
    membership.member.status = MemberStatus.active
    commit_or_rollback(db)
    db.refresh(membership)

    logger.info(f"Unfroze membership {membership.id}")
    send_membership_status(producer, membership, "unfrozen")
    return membership


def cancel_membership(db: Session, organization_id: str, membership_id: str, producer=None) -> Membership:
    membership = get_membership(db, organization_id, membership_id, lock=True)

    membership.status = MembershipStatus.cancelled
    membership.is_frozen = False
    membership.member.status = MemberStatus.inactive
    commit_or_rollback(db)
    db.refresh(membership)

    logger.info(f"Cancelled membership {membership.id}")
    send_membership_status(producer, membership, "cancelled")
    return membership


def upgrade_membership(db: Session, organization_id: str, membership_id: str, data, producer=None) -> Membership:
    membership = get_membership(db, organization_id, membership_id, lock=True)
    new_plan = crud.get_plan(db, organization_id, data.new_plan_id)
    duration = resolve_duration(new_plan, data.new_duration_id)

    now = utcnow()
    expire_active_memberships(db, membership.member_id, keep_id=membership.id)
    old_plan_id = membership.plan_id
    # same row, new plan: Member.status is left as it was
    membership.plan = new_plan
    membership.start_date = now
    membership.end_date = add_months(now, duration.duration_months)
    membership.status = MembershipStatus.active
    membership.is_frozen = False
    membership.remaining_class_credits = new_plan.class_credits
    membership.remaining_pt_sessions = new_plan.pt_sessions
    commit_or_rollback(db)
    db.refresh(membership)

    logger.info(f"Upgraded membership {membership.id} from plan {old_plan_id} to {new_plan.id}")
    send_membership_status(producer, membership, "upgraded")
    return membership
