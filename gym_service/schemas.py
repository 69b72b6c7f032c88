from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gym_service.models import (
    BookingStatus, CheckInMethod, ClassCategory, ClassDifficulty, LeadActivityType, LeadSource,
    LeadStatus, MemberStatus, MembershipStatus, PaymentMethod, PaymentStatus, PaymentType, UserRole,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Auth

class LoginRequest(CamelModel):
    email: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class RegisterRequest(CamelModel):
    email: str
    password: str = Field(min_length=6)
    first_name: str
    last_name: str
    role: UserRole = UserRole.staff
    branch_id: Optional[str] = None


class UserOut(OrmModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    organization_id: str
    branch_id: Optional[str] = None
    is_active: bool


# Plans

class PlanDurationIn(CamelModel):
    duration_months: int = Field(gt=0)
    price: Decimal = Field(ge=0)
    discount_percent: Decimal = Decimal("0")
    registration_fee: Decimal = Decimal("0")
    is_active: bool = True


class PlanDurationOut(OrmModel):
    id: str
    duration_months: int
    price: Decimal
    discount_percent: Decimal
    registration_fee: Decimal
    is_active: bool


class PlanFields(CamelModel):
    description: Optional[str] = None
    features: List[str] = []
    access_all_branches: bool = False
    access_all_days: bool = True
    access_all_hours: bool = True
    includes_classes: bool = False
    class_credits: Optional[int] = None
    includes_pt: bool = False
    pt_sessions: Optional[int] = None
    includes_locker: bool = False
    includes_parking: bool = False
    freeze_allowed: bool = False
    max_freeze_days: int = Field(default=0, ge=0)
    is_popular: bool = False
    display_order: int = 0
    color: Optional[str] = None


class PlanCreate(PlanFields):
    name: str
    durations: List[PlanDurationIn] = []


class PlanUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    features: Optional[List[str]] = None
    access_all_branches: Optional[bool] = None
    access_all_days: Optional[bool] = None
    access_all_hours: Optional[bool] = None
    includes_classes: Optional[bool] = None
    class_credits: Optional[int] = None
    includes_pt: Optional[bool] = None
    pt_sessions: Optional[int] = None
    includes_locker: Optional[bool] = None
    includes_parking: Optional[bool] = None
    freeze_allowed: Optional[bool] = None
    max_freeze_days: Optional[int] = Field(default=None, ge=0)
    is_popular: Optional[bool] = None
    display_order: Optional[int] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None
    durations: Optional[List[PlanDurationIn]] = None


class PlanOut(OrmModel):
    id: str
    name: str
    description: Optional[str] = None
    features: Optional[List[str]] = None
    access_all_branches: bool
    access_all_days: bool
    access_all_hours: bool
    includes_classes: bool
    class_credits: Optional[int] = None
    includes_pt: bool
    pt_sessions: Optional[int] = None
    includes_locker: bool
    includes_parking: bool
    freeze_allowed: bool
    max_freeze_days: int
    is_popular: bool
    display_order: int
    color: Optional[str] = None
    is_active: bool
    durations: List[PlanDurationOut] = []


class PlanRef(OrmModel):
    id: str
    name: str


# Members

class MemberFields(CamelModel):
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    emergency_name: Optional[str] = None
    emergency_phone: Optional[str] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    trainer_id: Optional[str] = None
    branch_id: Optional[str] = None


class MemberCreate(MemberFields):
    first_name: str


class MemberUpdate(MemberFields):
    first_name: Optional[str] = None


class MemberRef(OrmModel):
    id: str
    member_id: str
    first_name: str
    last_name: Optional[str] = None


class MemberOut(OrmModel):
    id: str
    member_id: str
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    status: MemberStatus
    organization_id: str
    branch_id: Optional[str] = None
    trainer_id: Optional[str] = None
    join_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


# Memberships

class MembershipCreate(CamelModel):
    member_id: str
    plan_id: str
    duration_id: str
    start_date: Optional[datetime] = None


class MembershipRenew(CamelModel):
    duration_id: str
    start_from_current: bool = False


class MembershipFreeze(CamelModel):
    freeze_days: int = Field(gt=0)
    reason: Optional[str] = None


class MembershipUpgrade(CamelModel):
    new_plan_id: str
    new_duration_id: str


class MembershipOut(OrmModel):
    id: str
    member_id: str
    plan_id: str
    start_date: datetime
    end_date: datetime
    status: MembershipStatus
    is_frozen: bool
    freeze_start_date: Optional[datetime] = None
    freeze_end_date: Optional[datetime] = None
    total_freeze_days: int
    remaining_class_credits: Optional[int] = None
    remaining_pt_sessions: Optional[int] = None
    plan: Optional[PlanRef] = None
    member: Optional[MemberRef] = None


class MemberDetailOut(MemberOut):
    memberships: List[MembershipOut] = []


# Payments

class PaymentCreate(CamelModel):
    member_id: str
    membership_id: Optional[str] = None
    amount: Decimal = Field(ge=0)
    type: PaymentType = PaymentType.membership
    payment_method: PaymentMethod = PaymentMethod.cash
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None


class PaymentRefund(CamelModel):
    reason: Optional[str] = None
    refund_amount: Optional[Decimal] = Field(default=None, ge=0)


class PaymentOut(OrmModel):
    id: str
    member_id: str
    membership_id: Optional[str] = None
    amount: Decimal
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    type: PaymentType
    payment_method: PaymentMethod
    status: PaymentStatus
    invoice_number: str
    notes: Optional[str] = None
    collected_by_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    refunded_amount: Optional[Decimal] = None
    refund_reason: Optional[str] = None
    refund_date: Optional[datetime] = None
    member: Optional[MemberRef] = None


# Leads

class LeadCreate(CamelModel):
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: str
    source: LeadSource = LeadSource.walk_in
    interested_in: Optional[str] = None
    notes: Optional[str] = None
    assigned_to_id: Optional[str] = None
    branch_id: Optional[str] = None


class LeadUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[LeadSource] = None
    interested_in: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[LeadStatus] = None
    assigned_to_id: Optional[str] = None
    lost_reason: Optional[str] = None


class LeadActivityCreate(CamelModel):
    type: LeadActivityType
    description: Optional[str] = None
    scheduled_at: Optional[datetime] = None


class LeadConvert(CamelModel):
    plan_id: Optional[str] = None
    duration_id: Optional[str] = None


class LeadActivityOut(OrmModel):
    id: str
    lead_id: str
    type: LeadActivityType
    description: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    performed_by_id: Optional[str] = None
    created_at: Optional[datetime] = None


class LeadOut(OrmModel):
    id: str
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: str
    source: LeadSource
    interested_in: Optional[str] = None
    notes: Optional[str] = None
    status: LeadStatus
    assigned_to_id: Optional[str] = None
    branch_id: Optional[str] = None
    last_contacted_at: Optional[datetime] = None
    lost_reason: Optional[str] = None
    converted_at: Optional[datetime] = None
    converted_member_id: Optional[str] = None
    created_at: Optional[datetime] = None


class LeadDetailOut(LeadOut):
    activities: List[LeadActivityOut] = []


class PaymentSummary(CamelModel):
    total_paid: Decimal
    transaction_count: int


class MemberPaymentsOut(OrmModel):
    payments: List[PaymentOut]
    summary: PaymentSummary


class PaymentGroup(CamelModel):
    key: str
    amount: Decimal
    count: int


class PaymentStatsOut(CamelModel):
    total_revenue: Decimal
    total_transactions: int
    by_method: List[PaymentGroup]
    by_type: List[PaymentGroup]


class LeadConversionOut(OrmModel):
    lead: LeadOut
    member: MemberOut


# Attendance

class CheckInRequest(CamelModel):
    member_id: str
    branch_id: Optional[str] = None
    method: CheckInMethod = CheckInMethod.manual


class CheckInByCodeRequest(CamelModel):
    member_id_code: str
    branch_id: Optional[str] = None


class CheckOutRequest(CamelModel):
    member_id: Optional[str] = None
    attendance_id: Optional[str] = None


class AttendanceOut(OrmModel):
    id: str
    member_id: str
    branch_id: Optional[str] = None
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    duration: Optional[int] = None
    check_in_method: CheckInMethod
    member: Optional[MemberRef] = None


class TodayAttendanceStats(CamelModel):
    total_check_ins: int
    currently_in: int
    checked_out: int


class TodayAttendanceOut(OrmModel):
    attendance: List[AttendanceOut]
    stats: TodayAttendanceStats


class MemberAttendanceStats(CamelModel):
    total_visits: int
    total_duration: int
    avg_duration: int
    period: str


class MemberAttendanceOut(OrmModel):
    attendance: List[AttendanceOut]
    stats: MemberAttendanceStats


# Classes

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ClassCreate(CamelModel):
    name: str
    description: Optional[str] = None
    category: ClassCategory = ClassCategory.other
    difficulty: ClassDifficulty = ClassDifficulty.all_levels
    duration_minutes: int = Field(default=60, gt=0)
    max_capacity: int = Field(default=20, gt=0)
    color: str = "#1db954"
    drop_in_price: Optional[Decimal] = Field(default=None, ge=0)
    instructor_id: Optional[str] = None


class ClassUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ClassCategory] = None
    difficulty: Optional[ClassDifficulty] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    max_capacity: Optional[int] = Field(default=None, gt=0)
    color: Optional[str] = None
    drop_in_price: Optional[Decimal] = Field(default=None, ge=0)
    instructor_id: Optional[str] = None
    is_active: Optional[bool] = None


class ScheduleCreate(CamelModel):
    class_id: str
    branch_id: Optional[str] = None
    instructor_id: Optional[str] = None
    day_of_week: int = Field(ge=0, le=6)
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    max_capacity: Optional[int] = Field(default=None, gt=0)
    room: Optional[str] = None


class ScheduleUpdate(CamelModel):
    branch_id: Optional[str] = None
    instructor_id: Optional[str] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    max_capacity: Optional[int] = Field(default=None, gt=0)
    room: Optional[str] = None
    is_active: Optional[bool] = None


class BookingCreate(CamelModel):
    schedule_id: str
    member_id: str
    class_date: date


class BookingCancel(CamelModel):
    reason: Optional[str] = None


class BookingAttendance(CamelModel):
    attended: bool


class InstructorRef(OrmModel):
    id: str
    first_name: str
    last_name: str


class ClassRef(OrmModel):
    id: str
    name: str
    color: Optional[str] = None
    duration_minutes: int


class ScheduleOut(OrmModel):
    id: str
    class_id: str
    branch_id: Optional[str] = None
    instructor_id: Optional[str] = None
    day_of_week: int
    start_time: str
    end_time: str
    max_capacity: int
    room: Optional[str] = None
    is_active: bool
    gym_class: Optional[ClassRef] = None
    instructor: Optional[InstructorRef] = None


class GymClassOut(OrmModel):
    id: str
    name: str
    description: Optional[str] = None
    category: ClassCategory
    difficulty: ClassDifficulty
    duration_minutes: int
    max_capacity: int
    color: Optional[str] = None
    drop_in_price: Optional[Decimal] = None
    instructor_id: Optional[str] = None
    is_active: bool
    schedules: List[ScheduleOut] = []


class BookingOut(OrmModel):
    id: str
    schedule_id: str
    member_id: str
    class_date: date
    status: BookingStatus
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    member: Optional[MemberRef] = None
    schedule: Optional[ScheduleOut] = None


class WeeklySlot(OrmModel):
    schedule: ScheduleOut
    booked_count: int
    available_spots: int


class WeeklyDay(OrmModel):
    day_of_week: int
    class_date: date
    slots: List[WeeklySlot]


class WeeklyScheduleOut(OrmModel):
    week_start: date
    week_end: date
    days: List[WeeklyDay]


# Trainers

class TrainerCreate(CamelModel):
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    branch_id: Optional[str] = None


class TrainerUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    branch_id: Optional[str] = None
    is_active: Optional[bool] = None


class TrainerOut(OrmModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    branch_id: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class TrainerDetailOut(TrainerOut):
    class_schedules: List[ScheduleOut] = []


class TrainerStatsOut(CamelModel):
    total_trainers: int
    active_trainers: int
    total_classes: int


# Dashboard

class DashboardStatsOut(CamelModel):
    total_members: int
    active_members: int
    today_check_ins: int
    expiring_this_week: int
    today_revenue: Decimal
    new_members_this_month: int


class ActivityOut(CamelModel):
    type: str
    message: str
    timestamp: datetime
