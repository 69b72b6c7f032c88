import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, JSON, Numeric, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from gym_service.database import Base


def utcnow() -> datetime:
    # naive UTC, the form the DateTime columns round-trip on every backend
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def new_id() -> str:
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    super_admin = "SUPER_ADMIN"
    admin = "ADMIN"
    manager = "MANAGER"
    trainer = "TRAINER"
    pt = "PT"
    staff = "STAFF"


class MemberStatus(str, enum.Enum):
    active = "ACTIVE"
    inactive = "INACTIVE"
    frozen = "FROZEN"
    expired = "EXPIRED"
    blocked = "BLOCKED"


class MembershipStatus(str, enum.Enum):
    active = "ACTIVE"
    expired = "EXPIRED"
    frozen = "FROZEN"
    cancelled = "CANCELLED"


class PaymentType(str, enum.Enum):
    membership = "MEMBERSHIP"
    renewal = "RENEWAL"
    registration = "REGISTRATION"
    pt_session = "PT_SESSION"
    addon = "ADDON"
    other = "OTHER"


class PaymentMethod(str, enum.Enum):
    cash = "CASH"
    card = "CARD"
    upi = "UPI"
    net_banking = "NET_BANKING"
    wallet = "WALLET"
    cheque = "CHEQUE"
    bank_transfer = "BANK_TRANSFER"
    online = "ONLINE"


class PaymentStatus(str, enum.Enum):
    completed = "COMPLETED"
    pending = "PENDING"
    refunded = "REFUNDED"


class LeadStatus(str, enum.Enum):
    new = "NEW"
    contacted = "CONTACTED"
    qualified = "QUALIFIED"
    negotiation = "NEGOTIATION"
    converted = "CONVERTED"
    lost = "LOST"


class LeadSource(str, enum.Enum):
    walk_in = "WALK_IN"
    website = "WEBSITE"
    social_media = "SOCIAL_MEDIA"
    referral = "REFERRAL"
    advertisement = "ADVERTISEMENT"
    corporate = "CORPORATE"
    other = "OTHER"


class LeadActivityType(str, enum.Enum):
    created = "CREATED"
    status_change = "STATUS_CHANGE"
    call = "CALL"
    email = "EMAIL"
    meeting = "MEETING"
    tour = "TOUR"
    note = "NOTE"
    converted = "CONVERTED"


class CheckInMethod(str, enum.Enum):
    manual = "MANUAL"
    qr_code = "QR_CODE"
    member_id = "MEMBER_ID"
    biometric = "BIOMETRIC"
    card = "CARD"


class ClassCategory(str, enum.Enum):
    yoga = "YOGA"
    zumba = "ZUMBA"
    aerobics = "AEROBICS"
    spinning = "SPINNING"
    hiit = "HIIT"
    crossfit = "CROSSFIT"
    pilates = "PILATES"
    kickboxing = "KICKBOXING"
    dance = "DANCE"
    strength = "STRENGTH"
    swimming = "SWIMMING"
    other = "OTHER"


class ClassDifficulty(str, enum.Enum):
    beginner = "BEGINNER"
    intermediate = "INTERMEDIATE"
    advanced = "ADVANCED"
    all_levels = "ALL_LEVELS"


class BookingStatus(str, enum.Enum):
    booked = "BOOKED"
    attended = "ATTENDED"
    no_show = "NO_SHOW"
    cancelled = "CANCELLED"


def _enum(enum_cls):
    return Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    email = Column(String)
    phone = Column(String)
    created_at = Column(DateTime, default=utcnow)

    branches = relationship("Branch", back_populates="organization", order_by="Branch.created_at")


class Branch(Base):
    __tablename__ = "branches"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    code = Column(String)
    is_main = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    organization = relationship("Organization", back_populates="branches")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"))
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String)
    role = Column(_enum(UserRole), nullable=False, default=UserRole.staff)
    is_active = Column(Boolean, default=True)
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    organization = relationship("Organization")
    class_schedules = relationship(
        "ClassSchedule", back_populates="instructor", foreign_keys="ClassSchedule.instructor_id"
    )


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("organization_id", "member_id", name="uq_member_code_per_org"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"))
    member_id = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String)
    email = Column(String)
    phone = Column(String)
    gender = Column(String)
    date_of_birth = Column(Date)
    address = Column(String)
    emergency_name = Column(String)
    emergency_phone = Column(String)
    notes = Column(Text)
    source = Column(String)
    trainer_id = Column(String(36), ForeignKey("users.id"))
    status = Column(_enum(MemberStatus), nullable=False, default=MemberStatus.inactive)
    join_date = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    memberships = relationship(
        "Membership", back_populates="member", order_by="Membership.created_at.desc()"
    )
    payments = relationship("Payment", back_populates="member")


class Plan(Base):
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    features = Column(JSON, default=list)
    access_all_branches = Column(Boolean, default=False)
    access_all_days = Column(Boolean, default=True)
    access_all_hours = Column(Boolean, default=True)
    includes_classes = Column(Boolean, default=False)
    class_credits = Column(Integer)
    includes_pt = Column(Boolean, default=False)
    pt_sessions = Column(Integer)
    includes_locker = Column(Boolean, default=False)
    includes_parking = Column(Boolean, default=False)
    freeze_allowed = Column(Boolean, default=False)
    max_freeze_days = Column(Integer, default=0)
    is_popular = Column(Boolean, default=False)
    display_order = Column(Integer, default=0)
    color = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    durations = relationship(
        "PlanDuration",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanDuration.duration_months",
    )
    memberships = relationship("Membership", back_populates="plan")


class PlanDuration(Base):
    __tablename__ = "plan_durations"

    id = Column(String(36), primary_key=True, default=new_id)
    plan_id = Column(String(36), ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)
    duration_months = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), default=0)
    registration_fee = Column(Numeric(10, 2), default=0)
    is_active = Column(Boolean, default=True)

    plan = relationship("Plan", back_populates="durations")


class Membership(Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=new_id)
    member_id = Column(String(36), ForeignKey("members.id"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("plans.id"), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(_enum(MembershipStatus), nullable=False, default=MembershipStatus.active, index=True)
    is_frozen = Column(Boolean, default=False, nullable=False)
    freeze_start_date = Column(DateTime)
    freeze_end_date = Column(DateTime)
    total_freeze_days = Column(Integer, default=0, nullable=False)
    remaining_class_credits = Column(Integer)
    remaining_pt_sessions = Column(Integer)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    member = relationship("Member", back_populates="memberships")
    plan = relationship("Plan", back_populates="memberships")

    __mapper_args__ = {"version_id_col": version}


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    member_id = Column(String(36), ForeignKey("members.id"), nullable=False, index=True)
    membership_id = Column(String(36), ForeignKey("memberships.id"))
    amount = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), default=0)
    tax = Column(Numeric(10, 2), default=0)
    type = Column(_enum(PaymentType), nullable=False, default=PaymentType.membership)
    payment_method = Column(_enum(PaymentMethod), nullable=False, default=PaymentMethod.cash)
    status = Column(_enum(PaymentStatus), nullable=False, default=PaymentStatus.completed)
    invoice_number = Column(String, index=True)
    notes = Column(Text)
    collected_by_id = Column(String(36), ForeignKey("users.id"))
    payment_date = Column(DateTime, default=utcnow)
    refunded_amount = Column(Numeric(10, 2))
    refund_reason = Column(Text)
    refund_date = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    member = relationship("Member", back_populates="payments")
    membership = relationship("Membership")


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"))
    first_name = Column(String, nullable=False)
    last_name = Column(String)
    email = Column(String)
    phone = Column(String, nullable=False)
    source = Column(_enum(LeadSource), nullable=False, default=LeadSource.walk_in)
    interested_in = Column(String)
    notes = Column(Text)
    status = Column(_enum(LeadStatus), nullable=False, default=LeadStatus.new)
    assigned_to_id = Column(String(36), ForeignKey("users.id"))
    last_contacted_at = Column(DateTime)
    lost_reason = Column(String)
    converted_at = Column(DateTime)
    converted_member_id = Column(String(36), ForeignKey("members.id"))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    activities = relationship(
        "LeadActivity",
        back_populates="lead",
        cascade="all, delete-orphan",
        order_by="LeadActivity.created_at.desc()",
    )


class LeadActivity(Base):
    __tablename__ = "lead_activities"

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(_enum(LeadActivityType), nullable=False)
    description = Column(Text)
    scheduled_at = Column(DateTime)
    performed_by_id = Column(String(36), ForeignKey("users.id"))
    created_at = Column(DateTime, default=utcnow)

    lead = relationship("Lead", back_populates="activities")


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    organization_id = Column(String(36), ForeignKey("organizations.id"), primary_key=True)
    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(String(36), primary_key=True, default=new_id)
    member_id = Column(String(36), ForeignKey("members.id"), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"))
    check_in_time = Column(DateTime, nullable=False, default=utcnow, index=True)
    check_out_time = Column(DateTime)
    duration = Column(Integer)  # minutes
    check_in_method = Column(_enum(CheckInMethod), nullable=False, default=CheckInMethod.manual)

    member = relationship("Member")
    branch = relationship("Branch")


class GymClass(Base):
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=new_id)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    category = Column(_enum(ClassCategory), nullable=False, default=ClassCategory.other)
    difficulty = Column(_enum(ClassDifficulty), nullable=False, default=ClassDifficulty.all_levels)
    duration_minutes = Column(Integer, nullable=False, default=60)
    max_capacity = Column(Integer, nullable=False, default=20)
    color = Column(String, default="#1db954")
    drop_in_price = Column(Numeric(10, 2))
    instructor_id = Column(String(36), ForeignKey("users.id"))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    schedules = relationship(
        "ClassSchedule",
        back_populates="gym_class",
        order_by="[ClassSchedule.day_of_week, ClassSchedule.start_time]",
    )


class ClassSchedule(Base):
    __tablename__ = "class_schedules"

    id = Column(String(36), primary_key=True, default=new_id)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"))
    instructor_id = Column(String(36), ForeignKey("users.id"))
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    max_capacity = Column(Integer, nullable=False)
    room = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    gym_class = relationship("GymClass", back_populates="schedules")
    instructor = relationship("User", back_populates="class_schedules", foreign_keys=[instructor_id])
    bookings = relationship("ClassBooking", back_populates="schedule")


class ClassBooking(Base):
    __tablename__ = "class_bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    schedule_id = Column(String(36), ForeignKey("class_schedules.id"), nullable=False, index=True)
    member_id = Column(String(36), ForeignKey("members.id"), nullable=False, index=True)
    class_date = Column(Date, nullable=False)
    status = Column(_enum(BookingStatus), nullable=False, default=BookingStatus.booked)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String)
    checked_in_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    schedule = relationship("ClassSchedule", back_populates="bookings")
    member = relationship("Member")
