"""Front-desk dashboard figures. Day and month boundaries are UTC."""
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from gym_service.attendance import day_bounds
from gym_service.models import (
    Attendance, Member, MemberStatus, Membership, MembershipStatus, Payment, PaymentStatus, utcnow,
)
from gym_service.payments import to_money

RECENT_PER_KIND = 5
RECENT_LIMIT = 10


def full_name(member: Member) -> str:
    return " ".join(part for part in (member.first_name, member.last_name) if part)


def dashboard_stats(db: Session, organization_id: str) -> dict:
    now = utcnow()
    today, tomorrow = day_bounds(now)
    month_start = datetime(now.year, now.month, 1)

    members = db.query(Member).filter(Member.organization_id == organization_id)

    today_check_ins = (
        db.query(Attendance)
        .join(Member, Attendance.member_id == Member.id)
        .filter(
            Member.organization_id == organization_id,
            Attendance.check_in_time >= today,
            Attendance.check_in_time < tomorrow,
        )
        .count()
    )
    expiring = (
        db.query(Membership)
        .join(Member, Membership.member_id == Member.id)
        .filter(
            Member.organization_id == organization_id,
            Membership.status == MembershipStatus.active,
            Membership.end_date >= today,
            Membership.end_date <= today + timedelta(days=7),
        )
        .count()
    )
    revenue = (
        db.query(func.sum(Payment.amount))
        .filter(
            Payment.organization_id == organization_id,
            Payment.status == PaymentStatus.completed,
            Payment.payment_date >= today,
            Payment.payment_date < tomorrow,
        )
        .scalar()
    )

    return {
        "total_members": members.count(),
        "active_members": members.filter(Member.status == MemberStatus.active).count(),
        "today_check_ins": today_check_ins,
        "expiring_this_week": expiring,
        "today_revenue": to_money(revenue or 0),
        "new_members_this_month": members.filter(Member.created_at >= month_start).count(),
    }


def recent_activity(db: Session, organization_id: str) -> list:
    """Latest check-ins, payments and sign-ups merged into one feed, newest first."""
    check_ins = (
        db.query(Attendance)
        .join(Member, Attendance.member_id == Member.id)
        .options(joinedload(Attendance.member))
        .filter(Member.organization_id == organization_id)
        .order_by(Attendance.check_in_time.desc())
        .limit(RECENT_PER_KIND)
        .all()
    )
    payments = (
        db.query(Payment)
        .options(joinedload(Payment.member))
        .filter(Payment.organization_id == organization_id, Payment.status == PaymentStatus.completed)
        .order_by(Payment.payment_date.desc())
        .limit(RECENT_PER_KIND)
        .all()
    )
    new_members = (
        db.query(Member)
        .filter(Member.organization_id == organization_id)
        .order_by(Member.created_at.desc())
        .limit(RECENT_PER_KIND)
        .all()
    )

    feed = [
        {"type": "check_in", "message": f"{full_name(a.member)} checked in", "timestamp": a.check_in_time}
        for a in check_ins
    ]
    feed += [
        {
            "type": "payment",
            "message": f"Payment of {to_money(p.amount)} received from {p.member.first_name}",
            "timestamp": p.payment_date,
        }
        for p in payments
    ]
    feed += [
        {"type": "new_member", "message": f"New member: {full_name(m)}", "timestamp": m.created_at}
        for m in new_members
    ]
    feed.sort(key=lambda item: item["timestamp"], reverse=True)
    return feed[:RECENT_LIMIT]
