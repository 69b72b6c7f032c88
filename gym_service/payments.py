import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from gym_service import crud
from gym_service.database import commit_or_rollback
from gym_service.errors import AppError, NotFoundError
from gym_service.models import Membership, Payment, PaymentStatus, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(subtotal, discount_percent=0, tax_percent=0):
    """Return (discount, tax, total) for a subtotal; tax applies after the discount."""
    subtotal = to_money(subtotal)
    discount = to_money(subtotal * Decimal(str(discount_percent)) / 100)
    tax = to_money((subtotal - discount) * Decimal(str(tax_percent)) / 100)
    return discount, tax, subtotal - discount + tax


def next_invoice_number(db: Session, organization_id: str) -> str:
    # the counter spans the organization's lifetime, the YYMM prefix is only the issue date
    existing = db.query(Payment).filter(Payment.organization_id == organization_id).count()
    sequence = crud.next_sequence_value(db, organization_id, crud.INVOICE_SEQUENCE, existing)
    return f"INV{utcnow():%y%m}{sequence:05d}"


def get_payment(db: Session, organization_id: str, payment_id: str) -> Payment:
    payment = (
        db.query(Payment)
        .options(joinedload(Payment.member))
        .filter(Payment.id == payment_id, Payment.organization_id == organization_id)
        .first()
    )
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def list_payments(db: Session, organization_id: str, member_id=None, status=None, type=None, page=1, limit=20):
    query = (
        db.query(Payment)
        .options(joinedload(Payment.member))
        .filter(Payment.organization_id == organization_id)
    )
    if member_id:
        query = query.filter(Payment.member_id == member_id)
    if status:
        query = query.filter(Payment.status == status)
    if type:
        query = query.filter(Payment.type == type)
    return crud.paginate(query.order_by(Payment.created_at.desc()), page, limit)


def create_payment(db: Session, organization_id: str, collected_by_id: str, data) -> Payment:
    member = crud.get_member(db, organization_id, data.member_id)

    if data.membership_id:
        membership = (
            db.query(Membership)
            .filter(Membership.id == data.membership_id, Membership.member_id == member.id)
            .first()
        )
        if not membership:
            raise NotFoundError("Membership not found")

    subtotal = to_money(data.amount)
    discount, tax, total = compute_totals(subtotal, data.discount, data.tax)

    payment = Payment(
        organization_id=organization_id,
        member_id=member.id,
        membership_id=data.membership_id,
        amount=total,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        type=data.type,
        payment_method=data.payment_method,
        status=PaymentStatus.completed,
        invoice_number=next_invoice_number(db, organization_id),
        notes=data.notes,
        collected_by_id=collected_by_id,
        payment_date=utcnow(),
    )
    db.add(payment)
    commit_or_rollback(db)
    db.refresh(payment)

    logger.info(f"Recorded payment {payment.invoice_number} of {total} for member {member.member_id}")
    return payment


def refund_payment(db: Session, organization_id: str, payment_id: str, data) -> Payment:
    payment = get_payment(db, organization_id, payment_id)

    if payment.status == PaymentStatus.refunded:
        raise AppError("Payment already refunded", 400, "ALREADY_REFUNDED")

    refund_amount = to_money(data.refund_amount) if data.refund_amount is not None else payment.amount
    if refund_amount > payment.amount:
        logger.warning(
            f"Refund of {refund_amount} on {payment.invoice_number} exceeds the charged {payment.amount}"
        )

    payment.status = PaymentStatus.refunded
    payment.refunded_amount = refund_amount
    payment.refund_reason = data.reason
    payment.refund_date = utcnow()
    commit_or_rollback(db)
    db.refresh(payment)

    logger.info(f"Refunded {refund_amount} on payment {payment.invoice_number}")
    return payment


def member_payments(db: Session, organization_id: str, member_id: str):
    member = crud.get_member(db, organization_id, member_id)
    payments = (
        db.query(Payment)
        .filter(Payment.member_id == member.id)
        .order_by(Payment.created_at.desc())
        .all()
    )
    total_paid = sum(
        (p.amount for p in payments if p.status == PaymentStatus.completed), Decimal("0.00")
    )
    return payments, {"total_paid": total_paid, "transaction_count": len(payments)}


def payment_stats(db: Session, organization_id: str, start_date=None, end_date=None) -> dict:
    filters = [Payment.organization_id == organization_id, Payment.status == PaymentStatus.completed]
    if start_date:
        filters.append(Payment.payment_date >= to_naive_utc(start_date))
    if end_date:
        filters.append(Payment.payment_date <= to_naive_utc(end_date))

    total, count = db.query(func.sum(Payment.amount), func.count(Payment.id)).filter(*filters).one()

    def grouped(column):
        rows = (
            db.query(column, func.sum(Payment.amount), func.count(Payment.id))
            .filter(*filters)
            .group_by(column)
            .all()
        )
        return [
            {"key": key.value, "amount": to_money(amount or 0), "count": n}
            for key, amount, n in rows
        ]

    return {
        "total_revenue": to_money(total or 0),
        "total_transactions": count,
        "by_method": grouped(Payment.payment_method),
        "by_type": grouped(Payment.type),
    }
