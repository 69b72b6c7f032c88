import logging

from sqlalchemy.orm import Session, selectinload

from gym_service import crud
from gym_service.database import commit_or_rollback
from gym_service.errors import AppError, NotFoundError
from gym_service.models import (
    Lead, LeadActivity, LeadActivityType, LeadStatus, Member, MemberStatus, utcnow,
)

logger = logging.getLogger(__name__)

CONTACT_ACTIVITIES = {
    LeadActivityType.call,
    LeadActivityType.email,
    LeadActivityType.meeting,
    LeadActivityType.tour,
}


def get_lead(db: Session, organization_id: str, lead_id: str, with_activities: bool = False) -> Lead:
    query = db.query(Lead).filter(Lead.id == lead_id, Lead.organization_id == organization_id)
    if with_activities:
        query = query.options(selectinload(Lead.activities))
    lead = query.first()
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


def list_leads(db: Session, organization_id: str, status=None, source=None, assigned_to=None, page=1, limit=50):
    query = db.query(Lead).filter(Lead.organization_id == organization_id)
    if status:
        query = query.filter(Lead.status == status)
    if source:
        query = query.filter(Lead.source == source)
    if assigned_to:
        query = query.filter(Lead.assigned_to_id == assigned_to)
    return crud.paginate(query.order_by(Lead.created_at.desc()), page, limit)


def create_lead(db: Session, organization_id: str, user_id: str, data) -> Lead:
    fields = data.model_dump()
    fields["assigned_to_id"] = fields.get("assigned_to_id") or user_id
    lead = Lead(organization_id=organization_id, status=LeadStatus.new, **fields)
    lead.activities.append(LeadActivity(
        type=LeadActivityType.created,
        description="Lead created",
        performed_by_id=user_id,
    ))
    db.add(lead)
    commit_or_rollback(db)
    db.refresh(lead)
    logger.info(f"Lead {lead.id} created from {lead.source.value}")
    return lead


def update_lead(db: Session, organization_id: str, user_id: str, lead_id: str, data) -> Lead:
    lead = get_lead(db, organization_id, lead_id)
    updates = data.model_dump(exclude_unset=True)

    new_status = updates.get("status")
    if new_status == LeadStatus.converted:
        raise AppError("Use the convert operation to convert a lead", 400, "INVALID_STATUS")

    old_status = lead.status
    for field, value in updates.items():
        setattr(lead, field, value)

    if new_status and new_status != old_status:
        db.add(LeadActivity(
            lead_id=lead.id,
            type=LeadActivityType.status_change,
            description=f"Status changed from {old_status.value} to {new_status.value}",
            performed_by_id=user_id,
        ))

    commit_or_rollback(db)
    db.refresh(lead)
    return lead


def delete_lead(db: Session, organization_id: str, lead_id: str):
    lead = get_lead(db, organization_id, lead_id)
    db.delete(lead)
    commit_or_rollback(db)
    logger.info(f"Lead {lead_id} deleted")


def add_activity(db: Session, organization_id: str, user_id: str, lead_id: str, data) -> LeadActivity:
    lead = get_lead(db, organization_id, lead_id)
    activity = LeadActivity(
        lead_id=lead.id,
        type=data.type,
        description=data.description,
        scheduled_at=data.scheduled_at,
        performed_by_id=user_id,
    )
    db.add(activity)
    if data.type in CONTACT_ACTIVITIES:
        lead.last_contacted_at = utcnow()
    commit_or_rollback(db)
    db.refresh(activity)
    return activity


def convert_lead(db: Session, organization_id: str, user_id: str, lead_id: str, data=None):
    """Turn a lead into a member shell.

    No membership is created here even when a plan and duration are passed;
    assigning one is a separate call.
    """
    lead = get_lead(db, organization_id, lead_id)

    if lead.status == LeadStatus.converted:
        raise AppError("Lead already converted", 400, "ALREADY_CONVERTED")

    branch_id = lead.branch_id
    if not branch_id:
        branch = crud.get_default_branch(db, organization_id)
        branch_id = branch.id if branch else None

    member = Member(
        organization_id=organization_id,
        branch_id=branch_id,
        member_id=crud.next_member_code(db, organization_id),
        first_name=lead.first_name,
        last_name=lead.last_name,
        email=lead.email or "",
        phone=lead.phone,
        source=lead.source.value,
        status=MemberStatus.active,
    )
    db.add(member)
    db.flush()

    lead.status = LeadStatus.converted
    lead.converted_at = utcnow()
    lead.converted_member_id = member.id
    db.add(LeadActivity(
        lead_id=lead.id,
        type=LeadActivityType.converted,
        description=f"Converted to member: {member.member_id}",
        performed_by_id=user_id,
    ))
    commit_or_rollback(db)
    db.refresh(lead)
    db.refresh(member)

    logger.info(f"Lead {lead.id} converted to member {member.member_id}")
    return lead, member
