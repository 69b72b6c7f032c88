"""Group classes, their weekly schedules and per-date bookings.

A booking targets one schedule on one calendar date. Capacity is counted per
(schedule, date) over bookings that are not cancelled, with the schedule row
locked so two bookings cannot both take the last spot.
"""
import logging
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from gym_service import crud
from gym_service.attendance import has_active_membership
from gym_service.database import commit_or_rollback
from gym_service.errors import AppError, NotFoundError
from gym_service.events import send_class_event
from gym_service.models import BookingStatus, ClassBooking, ClassSchedule, GymClass, utcnow

logger = logging.getLogger(__name__)


# Classes

def get_class(db: Session, organization_id: str, class_id: str, code: str = "NOT_FOUND") -> GymClass:
    gym_class = (
        db.query(GymClass)
        .options(selectinload(GymClass.schedules))
        .filter(GymClass.id == class_id, GymClass.organization_id == organization_id)
        .first()
    )
    if not gym_class:
        raise NotFoundError("Class not found", code)
    return gym_class


def list_classes(db: Session, organization_id: str, include_inactive: bool = False):
    query = (
        db.query(GymClass)
        .options(selectinload(GymClass.schedules))
        .filter(GymClass.organization_id == organization_id)
    )
    if not include_inactive:
        query = query.filter(GymClass.is_active.is_(True))
    return query.order_by(GymClass.name).all()


def create_class(db: Session, organization_id: str, data) -> GymClass:
    gym_class = GymClass(organization_id=organization_id, **data.model_dump())
    db.add(gym_class)
    commit_or_rollback(db)
    db.refresh(gym_class)
    logger.info(f"Class {gym_class.name} created")
    return gym_class


def update_class(db: Session, organization_id: str, class_id: str, data) -> GymClass:
    gym_class = get_class(db, organization_id, class_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(gym_class, field, value)
    commit_or_rollback(db)
    db.refresh(gym_class)
    return gym_class


def delete_class(db: Session, organization_id: str, class_id: str):
    gym_class = get_class(db, organization_id, class_id)
    gym_class.is_active = False
    commit_or_rollback(db)
    logger.info(f"Class {gym_class.name} deactivated")


# Schedules

def get_schedule(db: Session, organization_id: str, schedule_id: str, code: str = "NOT_FOUND",
                 lock: bool = False) -> ClassSchedule:
    query = (
        db.query(ClassSchedule)
        .join(GymClass, ClassSchedule.class_id == GymClass.id)
        .filter(ClassSchedule.id == schedule_id, GymClass.organization_id == organization_id)
    )
    if lock:
        query = query.with_for_update(of=ClassSchedule)
    schedule = query.first()
    if not schedule:
        raise NotFoundError("Schedule not found", code)
    return schedule


def list_schedules(db: Session, organization_id: str, branch_id=None, class_id=None, day_of_week=None):
    query = (
        db.query(ClassSchedule)
        .join(GymClass, ClassSchedule.class_id == GymClass.id)
        .options(joinedload(ClassSchedule.gym_class), joinedload(ClassSchedule.instructor))
        .filter(GymClass.organization_id == organization_id, ClassSchedule.is_active.is_(True))
    )
    if branch_id:
        query = query.filter(ClassSchedule.branch_id == branch_id)
    if class_id:
        query = query.filter(ClassSchedule.class_id == class_id)
    if day_of_week is not None:
        query = query.filter(ClassSchedule.day_of_week == day_of_week)
    return query.order_by(ClassSchedule.day_of_week, ClassSchedule.start_time).all()


def create_schedule(db: Session, organization_id: str, data) -> ClassSchedule:
    gym_class = get_class(db, organization_id, data.class_id, code="CLASS_NOT_FOUND")

    branch_id = data.branch_id
    if not branch_id:
        branch = crud.get_default_branch(db, organization_id)
        branch_id = branch.id if branch else None

    schedule = ClassSchedule(
        class_id=gym_class.id,
        branch_id=branch_id,
        instructor_id=data.instructor_id or gym_class.instructor_id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        max_capacity=data.max_capacity or gym_class.max_capacity,
        room=data.room,
    )
    db.add(schedule)
    commit_or_rollback(db)
    db.refresh(schedule)
    logger.info(f"Scheduled {gym_class.name} on day {schedule.day_of_week} at {schedule.start_time}")
    return schedule


def update_schedule(db: Session, organization_id: str, schedule_id: str, data) -> ClassSchedule:
    schedule = get_schedule(db, organization_id, schedule_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(schedule, field, value)
    commit_or_rollback(db)
    db.refresh(schedule)
    return schedule


def delete_schedule(db: Session, organization_id: str, schedule_id: str):
    schedule = get_schedule(db, organization_id, schedule_id)
    schedule.is_active = False
    commit_or_rollback(db)


def weekly_schedule(db: Session, organization_id: str, week_start: date = None, branch_id=None) -> dict:
    """Active schedules grouped by weekday for the week (Sunday first) containing ``week_start``."""
    day = week_start or utcnow().date()
    # date.weekday() is Monday=0, schedules use Sunday=0
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    end = start + timedelta(days=7)

    schedules = list_schedules(db, organization_id, branch_id=branch_id)
    counts = dict(
        db.query(ClassBooking.schedule_id, func.count(ClassBooking.id))
        .filter(
            ClassBooking.schedule_id.in_([s.id for s in schedules]),
            ClassBooking.class_date >= start,
            ClassBooking.class_date < end,
            ClassBooking.status != BookingStatus.cancelled,
        )
        .group_by(ClassBooking.schedule_id)
        .all()
    )

    days = []
    for offset in range(7):
        slots = []
        for schedule in schedules:
            if schedule.day_of_week != offset:
                continue
            booked = counts.get(schedule.id, 0)
            slots.append({
                "schedule": schedule,
                "booked_count": booked,
                "available_spots": max(schedule.max_capacity - booked, 0),
            })
        days.append({"day_of_week": offset, "class_date": start + timedelta(days=offset), "slots": slots})
    return {"week_start": start, "week_end": end, "days": days}


# Bookings

def get_booking(db: Session, organization_id: str, booking_id: str) -> ClassBooking:
    booking = (
        db.query(ClassBooking)
        .join(ClassSchedule, ClassBooking.schedule_id == ClassSchedule.id)
        .join(GymClass, ClassSchedule.class_id == GymClass.id)
        .filter(ClassBooking.id == booking_id, GymClass.organization_id == organization_id)
        .first()
    )
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def list_bookings(db: Session, organization_id: str, schedule_id=None, member_id=None, class_date=None,
                  status=None):
    query = (
        db.query(ClassBooking)
        .join(ClassSchedule, ClassBooking.schedule_id == ClassSchedule.id)
        .join(GymClass, ClassSchedule.class_id == GymClass.id)
        .options(joinedload(ClassBooking.member))
        .filter(GymClass.organization_id == organization_id)
    )
    if schedule_id:
        query = query.filter(ClassBooking.schedule_id == schedule_id)
    if member_id:
        query = query.filter(ClassBooking.member_id == member_id)
    if class_date:
        query = query.filter(ClassBooking.class_date == class_date)
    if status:
        query = query.filter(ClassBooking.status == status)
    return query.order_by(ClassBooking.class_date.desc()).all()


def create_booking(db: Session, organization_id: str, data, producer=None) -> ClassBooking:
    schedule = get_schedule(db, organization_id, data.schedule_id, code="SCHEDULE_NOT_FOUND", lock=True)
    member = crud.get_member(db, organization_id, data.member_id)

    if not has_active_membership(db, member.id):
        raise AppError("Member has no active membership", 403, "NO_ACTIVE_MEMBERSHIP")

    taken = db.query(ClassBooking).filter(
        ClassBooking.schedule_id == schedule.id,
        ClassBooking.class_date == data.class_date,
        ClassBooking.status != BookingStatus.cancelled,
    )
    if taken.filter(ClassBooking.member_id == member.id).first():
        raise AppError("Already booked for this class", 400, "ALREADY_BOOKED")
    if taken.count() >= schedule.max_capacity:
        raise AppError("Class is full", 400, "CLASS_FULL")

    booking = ClassBooking(
        schedule_id=schedule.id,
        member_id=member.id,
        class_date=data.class_date,
        status=BookingStatus.booked,
    )
    db.add(booking)
    commit_or_rollback(db)
    db.refresh(booking)

    logger.info(f"Member {member.member_id} booked {schedule.gym_class.name} on {booking.class_date}")
    send_class_event(producer, booking, "booked")
    return booking


def cancel_booking(db: Session, organization_id: str, booking_id: str, reason=None, producer=None) -> ClassBooking:
    booking = get_booking(db, organization_id, booking_id)

    if booking.status == BookingStatus.cancelled:
        raise AppError("Booking already cancelled", 400, "ALREADY_CANCELLED")

    booking.status = BookingStatus.cancelled
    booking.cancelled_at = utcnow()
    booking.cancellation_reason = reason
    commit_or_rollback(db)
    db.refresh(booking)

    send_class_event(producer, booking, "cancelled")
    return booking


def mark_attendance(db: Session, organization_id: str, booking_id: str, attended: bool) -> ClassBooking:
    booking = get_booking(db, organization_id, booking_id)

    if booking.status == BookingStatus.cancelled:
        raise AppError("Booking already cancelled", 400, "ALREADY_CANCELLED")

    booking.status = BookingStatus.attended if attended else BookingStatus.no_show
    booking.checked_in_at = utcnow() if attended else None
    commit_or_rollback(db)
    db.refresh(booking)
    return booking
