import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query
from sqlalchemy.orm import Session

from gym_service import (
    attendance, classes, config, crud, dashboard, leads, memberships, payments, schemas, trainers,
)
from gym_service.auth import (
    CurrentUser, authenticate, create_tokens, get_current_user, refresh_tokens, register_user,
    require_roles, token_payload,
)
from gym_service.database import Base, engine, get_db
from gym_service.errors import register_error_handlers
from gym_service.events import get_producer
from gym_service.models import (
    BookingStatus, LeadSource, LeadStatus, MemberStatus, MembershipStatus, PaymentStatus, PaymentType, User,
    UserRole,
)

logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info(f"Serving API under {config.API_PREFIX}")
    yield


app = FastAPI(title="Gym Service", lifespan=lifespan)
register_error_handlers(app)

router = APIRouter(prefix=config.API_PREFIX)

plan_admin = require_roles(UserRole.super_admin, UserRole.admin, UserRole.manager)


def ok(data=None, message: Optional[str] = None, meta: Optional[dict] = None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    if meta:
        body["meta"] = meta
    return body


def dump(schema, obj):
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_all(schema, objs):
    return [dump(schema, o) for o in objs]


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Auth

@router.post("/auth/login")
def login(data: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, data.email, data.password)
    return ok({"user": dump(schemas.UserOut, user), **create_tokens(token_payload(user))}, "Login successful")


@router.post("/auth/refresh")
def refresh(data: schemas.RefreshRequest, db: Session = Depends(get_db)):
    return ok(refresh_tokens(db, data.refresh_token))


@router.post("/auth/register", status_code=201)
def register(
    data: schemas.RegisterRequest,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_roles(UserRole.super_admin, UserRole.admin)),
):
    user = register_user(db, current, data)
    return ok({"user": dump(schemas.UserOut, user)}, "User registered successfully")


@router.get("/auth/me")
def me(db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    user = db.query(User).filter(User.id == current.id).first()
    return ok(dump(schemas.UserOut, user))


# Members

@router.get("/members")
def list_members(
    status: Optional[MemberStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    members, meta = crud.list_members(db, current.organization_id, status, search, page, limit)
    return ok(dump_all(schemas.MemberOut, members), meta=meta)


@router.get("/members/{member_id}")
def get_member(member_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    member = crud.get_member_detail(db, current.organization_id, member_id)
    return ok(dump(schemas.MemberDetailOut, member))


@router.post("/members", status_code=201)
def create_member(
    data: schemas.MemberCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    member = crud.create_member(db, current.organization_id, data)
    return ok(dump(schemas.MemberOut, member), "Member created successfully")


@router.patch("/members/{member_id}")
def update_member(
    member_id: str,
    data: schemas.MemberUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    member = crud.update_member(db, current.organization_id, member_id, data)
    return ok(dump(schemas.MemberOut, member), "Member updated successfully")


@router.delete("/members/{member_id}")
def delete_member(member_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    crud.delete_member(db, current.organization_id, member_id)
    return ok(message="Member deleted successfully")


# Plans

@router.get("/plans/public/{organization_slug}")
def public_plans(organization_slug: str, db: Session = Depends(get_db)):
    plans = []
    for plan in crud.list_public_plans(db, organization_slug):
        out = dump(schemas.PlanOut, plan)
        out["durations"] = [d for d in out["durations"] if d["isActive"]]
        plans.append(out)
    return ok(plans)


@router.get("/plans")
def list_plans(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ok(dump_all(schemas.PlanOut, crud.list_plans(db, current.organization_id, include_inactive)))


@router.get("/plans/{plan_id}")
def get_plan(plan_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump(schemas.PlanOut, crud.get_plan(db, current.organization_id, plan_id, code="NOT_FOUND")))


@router.post("/plans", status_code=201)
def create_plan(data: schemas.PlanCreate, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    plan = crud.create_plan(db, current.organization_id, data)
    return ok(dump(schemas.PlanOut, plan), "Plan created successfully")


@router.patch("/plans/{plan_id}")
def update_plan(
    plan_id: str,
    data: schemas.PlanUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(plan_admin),
):
    plan = crud.update_plan(db, current.organization_id, plan_id, data)
    return ok(dump(schemas.PlanOut, plan), "Plan updated successfully")


@router.delete("/plans/{plan_id}")
def delete_plan(plan_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    if crud.delete_plan(db, current.organization_id, plan_id):
        return ok(message="Plan deactivated (has active memberships)")
    return ok(message="Plan deleted successfully")


# Memberships

@router.get("/memberships")
def list_memberships(
    member_id: Optional[str] = Query(None, alias="memberId"),
    status: Optional[MembershipStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items, meta = memberships.list_memberships(db, current.organization_id, member_id, status, page, limit)
    return ok(dump_all(schemas.MembershipOut, items), meta=meta)


@router.get("/memberships/{membership_id}")
def get_membership(membership_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    membership = memberships.get_membership(db, current.organization_id, membership_id)
    return ok(dump(schemas.MembershipOut, membership))


@router.post("/memberships", status_code=201)
def assign_membership(
    data: schemas.MembershipCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    membership = memberships.assign_membership(db, current.organization_id, data, producer)
    return ok(dump(schemas.MembershipOut, membership), "Membership assigned successfully")


@router.post("/memberships/{membership_id}/renew")
def renew_membership(
    membership_id: str,
    data: schemas.MembershipRenew,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    membership = memberships.renew_membership(db, current.organization_id, membership_id, data, producer)
    return ok(dump(schemas.MembershipOut, membership), "Membership renewed successfully")


@router.post("/memberships/{membership_id}/freeze")
def freeze_membership(
    membership_id: str,
    data: schemas.MembershipFreeze,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    membership = memberships.freeze_membership(db, current.organization_id, membership_id, data, producer)
    return ok(dump(schemas.MembershipOut, membership), f"Membership frozen for {data.freeze_days} days")


@router.post("/memberships/{membership_id}/unfreeze")
def unfreeze_membership(
    membership_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    membership = memberships.unfreeze_membership(db, current.organization_id, membership_id, producer)
    return ok(dump(schemas.MembershipOut, membership), "Membership unfrozen successfully")


@router.post("/memberships/{membership_id}/cancel")
def cancel_membership(
    membership_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    membership = memberships.cancel_membership(db, current.organization_id, membership_id, producer)
    return ok(dump(schemas.MembershipOut, membership), "Membership cancelled")


@router.post("/memberships/{membership_id}/upgrade")
def upgrade_membership(
    membership_id: str,
    data: schemas.MembershipUpgrade,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    membership = memberships.upgrade_membership(db, current.organization_id, membership_id, data, producer)
    return ok(dump(schemas.MembershipOut, membership), "Membership upgraded successfully")


# Payments

@router.get("/payments")
def list_payments(
    member_id: Optional[str] = Query(None, alias="memberId"),
    status: Optional[PaymentStatus] = None,
    type: Optional[PaymentType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items, meta = payments.list_payments(db, current.organization_id, member_id, status, type, page, limit)
    return ok(dump_all(schemas.PaymentOut, items), meta=meta)


@router.get("/payments/stats")
def payment_stats(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    stats = payments.payment_stats(db, current.organization_id, start_date, end_date)
    return ok(dump(schemas.PaymentStatsOut, stats))


@router.get("/payments/member/{member_id}")
def member_payments(member_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    items, summary = payments.member_payments(db, current.organization_id, member_id)
    return ok(dump(schemas.MemberPaymentsOut, {"payments": items, "summary": summary}))


@router.get("/payments/{payment_id}")
def get_payment(payment_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump(schemas.PaymentOut, payments.get_payment(db, current.organization_id, payment_id)))


@router.post("/payments", status_code=201)
def create_payment(
    data: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    payment = payments.create_payment(db, current.organization_id, current.id, data)
    return ok(dump(schemas.PaymentOut, payment), "Payment recorded successfully")


@router.post("/payments/{payment_id}/refund")
def refund_payment(
    payment_id: str,
    data: schemas.PaymentRefund,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    payment = payments.refund_payment(db, current.organization_id, payment_id, data)
    return ok(dump(schemas.PaymentOut, payment), "Payment refunded successfully")


# Leads

@router.get("/leads")
def list_leads(
    status: Optional[LeadStatus] = None,
    source: Optional[LeadSource] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items, meta = leads.list_leads(db, current.organization_id, status, source, assigned_to, page, limit)
    return ok(dump_all(schemas.LeadOut, items), meta=meta)


@router.get("/leads/{lead_id}")
def get_lead(lead_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    lead = leads.get_lead(db, current.organization_id, lead_id, with_activities=True)
    return ok(dump(schemas.LeadDetailOut, lead))


@router.post("/leads", status_code=201)
def create_lead(data: schemas.LeadCreate, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    lead = leads.create_lead(db, current.organization_id, current.id, data)
    return ok(dump(schemas.LeadOut, lead), "Lead created successfully")


@router.patch("/leads/{lead_id}")
def update_lead(
    lead_id: str,
    data: schemas.LeadUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    lead = leads.update_lead(db, current.organization_id, current.id, lead_id, data)
    return ok(dump(schemas.LeadOut, lead), "Lead updated successfully")


@router.delete("/leads/{lead_id}")
def delete_lead(lead_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    leads.delete_lead(db, current.organization_id, lead_id)
    return ok(message="Lead deleted successfully")


@router.post("/leads/{lead_id}/activity", status_code=201)
def add_lead_activity(
    lead_id: str,
    data: schemas.LeadActivityCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    activity = leads.add_activity(db, current.organization_id, current.id, lead_id, data)
    return ok(dump(schemas.LeadActivityOut, activity), "Activity added successfully")


@router.post("/leads/{lead_id}/convert")
def convert_lead(
    lead_id: str,
    data: Optional[schemas.LeadConvert] = None,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    lead, member = leads.convert_lead(db, current.organization_id, current.id, lead_id, data)
    return ok(dump(schemas.LeadConversionOut, {"lead": lead, "member": member}), "Lead converted to member successfully")


# Attendance

@router.post("/attendance/check-in", status_code=201)
def check_in(data: schemas.CheckInRequest, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    visit = attendance.check_in(db, current.organization_id, data.member_id, data.branch_id, data.method)
    return ok(dump(schemas.AttendanceOut, visit), "Check-in successful")


@router.post("/attendance/check-in/member-id", status_code=201)
def check_in_by_code(
    data: schemas.CheckInByCodeRequest,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    visit = attendance.check_in_by_code(db, current.organization_id, data.member_id_code, data.branch_id)
    return ok(dump(schemas.AttendanceOut, visit), "Check-in successful")


@router.post("/attendance/check-out")
def check_out(data: schemas.CheckOutRequest, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    visit = attendance.check_out(db, current.organization_id, data.member_id, data.attendance_id)
    return ok(dump(schemas.AttendanceOut, visit), "Check-out successful")


@router.get("/attendance")
def attendance_history(
    member_id: Optional[str] = Query(None, alias="memberId"),
    branch_id: Optional[str] = Query(None, alias="branchId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items, meta = attendance.attendance_history(
        db, current.organization_id, member_id, branch_id, start_date, end_date, page, limit,
    )
    return ok(dump_all(schemas.AttendanceOut, items), meta=meta)


@router.get("/attendance/today")
def today_attendance(
    branch_id: Optional[str] = Query(None, alias="branchId"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ok(dump(schemas.TodayAttendanceOut, attendance.today_attendance(db, current.organization_id, branch_id)))


@router.get("/attendance/member/{member_id}")
def member_attendance(
    member_id: str,
    days: int = Query(30, ge=1),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    stats = attendance.member_attendance(db, current.organization_id, member_id, days)
    return ok(dump(schemas.MemberAttendanceOut, stats))


# Classes

@router.get("/classes")
def list_classes(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ok(dump_all(schemas.GymClassOut, classes.list_classes(db, current.organization_id, include_inactive)))


@router.post("/classes", status_code=201)
def create_class(data: schemas.ClassCreate, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    gym_class = classes.create_class(db, current.organization_id, data)
    return ok(dump(schemas.GymClassOut, gym_class), "Class created successfully")


@router.get("/classes/schedules/all")
def list_schedules(
    branch_id: Optional[str] = Query(None, alias="branchId"),
    class_id: Optional[str] = Query(None, alias="classId"),
    day_of_week: Optional[int] = Query(None, alias="dayOfWeek", ge=0, le=6),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items = classes.list_schedules(db, current.organization_id, branch_id, class_id, day_of_week)
    return ok(dump_all(schemas.ScheduleOut, items))


@router.get("/classes/schedules/weekly")
def weekly_schedule(
    week_start: Optional[date] = Query(None, alias="weekStart"),
    branch_id: Optional[str] = Query(None, alias="branchId"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    week = classes.weekly_schedule(db, current.organization_id, week_start, branch_id)
    return ok(dump(schemas.WeeklyScheduleOut, week))


@router.post("/classes/schedules", status_code=201)
def create_schedule(data: schemas.ScheduleCreate, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    schedule = classes.create_schedule(db, current.organization_id, data)
    return ok(dump(schemas.ScheduleOut, schedule), "Schedule created successfully")


@router.patch("/classes/schedules/{schedule_id}")
def update_schedule(
    schedule_id: str,
    data: schemas.ScheduleUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(plan_admin),
):
    schedule = classes.update_schedule(db, current.organization_id, schedule_id, data)
    return ok(dump(schemas.ScheduleOut, schedule), "Schedule updated successfully")


@router.delete("/classes/schedules/{schedule_id}")
def delete_schedule(schedule_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    classes.delete_schedule(db, current.organization_id, schedule_id)
    return ok(message="Schedule deleted successfully")


@router.get("/classes/bookings/all")
def list_bookings(
    schedule_id: Optional[str] = Query(None, alias="scheduleId"),
    member_id: Optional[str] = Query(None, alias="memberId"),
    class_date: Optional[date] = Query(None, alias="classDate"),
    status: Optional[BookingStatus] = None,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items = classes.list_bookings(db, current.organization_id, schedule_id, member_id, class_date, status)
    return ok(dump_all(schemas.BookingOut, items))


@router.post("/classes/bookings", status_code=201)
def create_booking(
    data: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    booking = classes.create_booking(db, current.organization_id, data, producer)
    return ok(dump(schemas.BookingOut, booking), f"Booked for {booking.schedule.gym_class.name}")


@router.post("/classes/bookings/{booking_id}/cancel")
def cancel_booking(
    booking_id: str,
    data: Optional[schemas.BookingCancel] = None,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
    producer=Depends(get_producer),
):
    reason = data.reason if data else None
    booking = classes.cancel_booking(db, current.organization_id, booking_id, reason, producer)
    return ok(dump(schemas.BookingOut, booking), "Booking cancelled")


@router.post("/classes/bookings/{booking_id}/attendance")
def mark_booking_attendance(
    booking_id: str,
    data: schemas.BookingAttendance,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    booking = classes.mark_attendance(db, current.organization_id, booking_id, data.attended)
    return ok(dump(schemas.BookingOut, booking), "Marked as attended" if data.attended else "Marked as no-show")


@router.get("/classes/{class_id}")
def get_class(class_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump(schemas.GymClassOut, classes.get_class(db, current.organization_id, class_id)))


@router.patch("/classes/{class_id}")
def update_class(
    class_id: str,
    data: schemas.ClassUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(plan_admin),
):
    gym_class = classes.update_class(db, current.organization_id, class_id, data)
    return ok(dump(schemas.GymClassOut, gym_class), "Class updated successfully")


@router.delete("/classes/{class_id}")
def delete_class(class_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    classes.delete_class(db, current.organization_id, class_id)
    return ok(message="Class deleted successfully")


# Trainers

@router.get("/trainers")
def list_trainers(
    branch_id: Optional[str] = Query(None, alias="branchId"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    items = trainers.list_trainers(db, current.organization_id, branch_id, include_inactive)
    return ok(dump_all(schemas.TrainerOut, items))


@router.get("/trainers/stats")
def trainer_stats(db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump(schemas.TrainerStatsOut, trainers.trainer_stats(db, current.organization_id)))


@router.get("/trainers/{trainer_id}")
def get_trainer(trainer_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump(schemas.TrainerDetailOut, trainers.get_trainer(db, current.organization_id, trainer_id)))


@router.get("/trainers/{trainer_id}/schedule")
def trainer_schedule(trainer_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    items = trainers.trainer_schedule(db, current.organization_id, trainer_id)
    return ok(dump_all(schemas.ScheduleOut, items))


@router.post("/trainers", status_code=201)
def create_trainer(data: schemas.TrainerCreate, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    trainer = trainers.create_trainer(db, current.organization_id, data)
    return ok(dump(schemas.TrainerOut, trainer), "Trainer added successfully")


@router.patch("/trainers/{trainer_id}")
def update_trainer(
    trainer_id: str,
    data: schemas.TrainerUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(plan_admin),
):
    trainer = trainers.update_trainer(db, current.organization_id, trainer_id, data)
    return ok(dump(schemas.TrainerOut, trainer), "Trainer updated successfully")


@router.delete("/trainers/{trainer_id}")
def deactivate_trainer(trainer_id: str, db: Session = Depends(get_db), current: CurrentUser = Depends(plan_admin)):
    trainers.deactivate_trainer(db, current.organization_id, trainer_id)
    return ok(message="Trainer deactivated successfully")


# Dashboard

@router.get("/dashboard/stats")
def dashboard_stats(db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump(schemas.DashboardStatsOut, dashboard.dashboard_stats(db, current.organization_id)))


@router.get("/dashboard/recent-activity")
def recent_activity(db: Session = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return ok(dump_all(schemas.ActivityOut, dashboard.recent_activity(db, current.organization_id)))


app.include_router(router)
