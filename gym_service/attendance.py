import logging
from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session, joinedload

from gym_service import crud
from gym_service.database import commit_or_rollback
from gym_service.errors import AppError, NotFoundError
from gym_service.models import (
    Attendance, CheckInMethod, Member, MemberStatus, Membership, MembershipStatus, to_naive_utc, utcnow,
)

logger = logging.getLogger(__name__)


def day_bounds(now: datetime):
    start = datetime.combine(now.date(), time.min)
    return start, start + timedelta(days=1)


def has_active_membership(db: Session, member_id: str) -> bool:
    return db.query(
        db.query(Membership)
        .filter(Membership.member_id == member_id, Membership.status == MembershipStatus.active)
        .exists()
    ).scalar()


def check_in(db: Session, organization_id: str, member_id: str, branch_id=None,
             method: CheckInMethod = CheckInMethod.manual) -> Attendance:
    member = crud.get_member(db, organization_id, member_id, lock=True)

    if member.status == MemberStatus.blocked:
        raise AppError("Member is blocked", 403, "MEMBER_BLOCKED")
    if member.status == MemberStatus.frozen:
        raise AppError("Membership is frozen", 403, "MEMBERSHIP_FROZEN")
    if not has_active_membership(db, member.id):
        raise AppError("No active membership", 403, "NO_ACTIVE_MEMBERSHIP")

    now = utcnow()
    today, tomorrow = day_bounds(now)
    open_visit = (
        db.query(Attendance)
        .filter(
            Attendance.member_id == member.id,
            Attendance.check_in_time >= today,
            Attendance.check_in_time < tomorrow,
            Attendance.check_out_time.is_(None),
        )
        .first()
    )
    if open_visit:
        raise AppError("Already checked in", 400, "ALREADY_CHECKED_IN")

    attendance = Attendance(
        member_id=member.id,
        branch_id=branch_id or member.branch_id,
        check_in_time=now,
        check_in_method=method,
    )
    db.add(attendance)
    commit_or_rollback(db)
    db.refresh(attendance)

    logger.info(f"Member {member.member_id} checked in via {method.value}")
    return attendance


def check_in_by_code(db: Session, organization_id: str, member_code: str, branch_id=None) -> Attendance:
    member = (
        db.query(Member)
        .filter(Member.member_id == member_code, Member.organization_id == organization_id)
        .first()
    )
    if not member:
        raise NotFoundError("Member not found", "MEMBER_NOT_FOUND")
    return check_in(db, organization_id, member.id, branch_id, CheckInMethod.member_id)


def check_out(db: Session, organization_id: str, member_id=None, attendance_id=None) -> Attendance:
    query = (
        db.query(Attendance)
        .join(Member, Attendance.member_id == Member.id)
        .filter(Member.organization_id == organization_id, Attendance.check_out_time.is_(None))
    )
    attendance = None
    if attendance_id:
        attendance = query.filter(Attendance.id == attendance_id).first()
    elif member_id:
        attendance = (
            query.filter(Attendance.member_id == member_id)
            .order_by(Attendance.check_in_time.desc())
            .first()
        )
    if not attendance:
        raise NotFoundError("No active check-in found", "NO_ACTIVE_CHECKIN")

    now = utcnow()
    attendance.check_out_time = now
    attendance.duration = round((now - attendance.check_in_time).total_seconds() / 60)
    commit_or_rollback(db)
    db.refresh(attendance)

    logger.info(f"Attendance {attendance.id} closed after {attendance.duration} minutes")
    return attendance


def _org_attendance(db: Session, organization_id: str):
    return (
        db.query(Attendance)
        .join(Member, Attendance.member_id == Member.id)
        .options(joinedload(Attendance.member))
        .filter(Member.organization_id == organization_id)
    )


def attendance_history(db: Session, organization_id: str, member_id=None, branch_id=None,
                       start_date=None, end_date=None, page=1, limit=50):
    query = _org_attendance(db, organization_id)
    if member_id:
        query = query.filter(Attendance.member_id == member_id)
    if branch_id:
        query = query.filter(Attendance.branch_id == branch_id)
    if start_date:
        query = query.filter(Attendance.check_in_time >= to_naive_utc(start_date))
    if end_date:
        query = query.filter(Attendance.check_in_time <= to_naive_utc(end_date))
    return crud.paginate(query.order_by(Attendance.check_in_time.desc()), page, limit)


def today_attendance(db: Session, organization_id: str, branch_id=None) -> dict:
    today, tomorrow = day_bounds(utcnow())
    query = _org_attendance(db, organization_id).filter(
        Attendance.check_in_time >= today, Attendance.check_in_time < tomorrow,
    )
    if branch_id:
        query = query.filter(Attendance.branch_id == branch_id)
    visits = query.order_by(Attendance.check_in_time.desc()).all()

    currently_in = sum(1 for a in visits if a.check_out_time is None)
    return {
        "attendance": visits,
        "stats": {
            "total_check_ins": len(visits),
            "currently_in": currently_in,
            "checked_out": len(visits) - currently_in,
        },
    }


def member_attendance(db: Session, organization_id: str, member_id: str, days: int = 30) -> dict:
    member = crud.get_member(db, organization_id, member_id)
    visits = (
        db.query(Attendance)
        .filter(Attendance.member_id == member.id, Attendance.check_in_time >= utcnow() - timedelta(days=days))
        .order_by(Attendance.check_in_time.desc())
        .all()
    )

    total_duration = sum(a.duration or 0 for a in visits)
    return {
        "attendance": visits,
        "stats": {
            "total_visits": len(visits),
            "total_duration": total_duration,
            "avg_duration": round(total_duration / len(visits)) if visits else 0,
            "period": f"{days} days",
        },
    }
