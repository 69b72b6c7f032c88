import logging
import secrets

from sqlalchemy.orm import Session, joinedload, selectinload

from gym_service.auth import hash_password
from gym_service.database import commit_or_rollback
from gym_service.errors import AppError, NotFoundError
from gym_service.models import ClassSchedule, GymClass, User, UserRole

logger = logging.getLogger(__name__)

TRAINER_ROLES = (UserRole.trainer, UserRole.pt)


def _trainers(db: Session, organization_id: str):
    return db.query(User).filter(User.organization_id == organization_id, User.role.in_(TRAINER_ROLES))


def get_trainer(db: Session, organization_id: str, trainer_id: str) -> User:
    trainer = (
        _trainers(db, organization_id)
        .options(
            selectinload(User.class_schedules).joinedload(ClassSchedule.gym_class),
        )
        .filter(User.id == trainer_id)
        .first()
    )
    if not trainer:
        raise NotFoundError("Trainer not found")
    return trainer


def list_trainers(db: Session, organization_id: str, branch_id=None, include_inactive: bool = False):
    query = _trainers(db, organization_id)
    if branch_id:
        query = query.filter(User.branch_id == branch_id)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.first_name, User.last_name).all()


def create_trainer(db: Session, organization_id: str, data) -> User:
    if db.query(User).filter(User.email == data.email).first():
        raise AppError("Email already exists", 400, "EMAIL_EXISTS")

    trainer = User(
        organization_id=organization_id,
        branch_id=data.branch_id,
        email=data.email,
        # trainers without a password cannot log in until one is set
        password_hash=hash_password(data.password or secrets.token_urlsafe(16)),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=UserRole.trainer,
    )
    db.add(trainer)
    commit_or_rollback(db)
    db.refresh(trainer)
    logger.info(f"Trainer {trainer.email} added")
    return trainer


def update_trainer(db: Session, organization_id: str, trainer_id: str, data) -> User:
    trainer = get_trainer(db, organization_id, trainer_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(trainer, field, value)
    commit_or_rollback(db)
    db.refresh(trainer)
    return trainer


def deactivate_trainer(db: Session, organization_id: str, trainer_id: str) -> User:
    trainer = get_trainer(db, organization_id, trainer_id)
    trainer.is_active = False
    commit_or_rollback(db)
    logger.info(f"Trainer {trainer.email} deactivated")
    return trainer


def trainer_schedule(db: Session, organization_id: str, trainer_id: str):
    trainer = get_trainer(db, organization_id, trainer_id)
    return (
        db.query(ClassSchedule)
        .options(joinedload(ClassSchedule.gym_class))
        .filter(ClassSchedule.instructor_id == trainer.id, ClassSchedule.is_active.is_(True))
        .order_by(ClassSchedule.day_of_week, ClassSchedule.start_time)
        .all()
    )


def trainer_stats(db: Session, organization_id: str) -> dict:
    return {
        "total_trainers": _trainers(db, organization_id).count(),
        "active_trainers": _trainers(db, organization_id).filter(User.is_active.is_(True)).count(),
        "total_classes": (
            db.query(ClassSchedule)
            .join(GymClass, ClassSchedule.class_id == GymClass.id)
            .filter(GymClass.organization_id == organization_id, ClassSchedule.is_active.is_(True))
            .count()
        ),
    }
