from decimal import Decimal

import pytest

from gym_service import payments
from gym_service.errors import AppError
from gym_service.models import PaymentStatus, utcnow
from gym_service.schemas import PaymentCreate, PaymentRefund

API = "/api/v1"


def record(db, tenant, member, amount="1000", **kwargs):
    data = PaymentCreate(member_id=member.id, amount=Decimal(amount), **kwargs)
    return payments.create_payment(db, tenant.organization.id, tenant.user.id, data)


def test_compute_totals_applies_tax_after_discount():
    discount, tax, total = payments.compute_totals(Decimal("1000"), 10, 18)
    assert discount == Decimal("100.00")
    assert tax == Decimal("162.00")
    assert total == Decimal("1062.00")


def test_compute_totals_rounds_half_up_to_cents():
    discount, tax, total = payments.compute_totals(Decimal("99.99"), Decimal("12.5"), Decimal("5"))
    # 99.99 * 12.5% = 12.49875 -> 12.50, (99.99 - 12.50) * 5% = 4.3745 -> 4.37
    assert discount == Decimal("12.50")
    assert tax == Decimal("4.37")
    assert total == Decimal("91.86")


def test_compute_totals_without_discount_or_tax():
    assert payments.compute_totals(Decimal("1500")) == (Decimal("0.00"), Decimal("0.00"), Decimal("1500.00"))


def test_create_payment_persists_breakdown(db, tenant, make_member):
    member = make_member(tenant)

    payment = record(db, tenant, member, discount=Decimal("10"), tax=Decimal("18"))

    assert payment.subtotal == Decimal("1000.00")
    assert payment.discount == Decimal("100.00")
    assert payment.tax == Decimal("162.00")
    assert payment.amount == Decimal("1062.00")
    assert payment.status == PaymentStatus.completed
    assert payment.type.value == "MEMBERSHIP"
    assert payment.payment_method.value == "CASH"
    assert payment.collected_by_id == tenant.user.id


def test_invoice_numbers_are_sequential_per_organization(db, tenant, other_tenant, make_member):
    member = make_member(tenant)
    foreign_member = make_member(other_tenant)
    prefix = f"INV{utcnow():%y%m}"

    first = record(db, tenant, member)
    second = record(db, tenant, member)
    foreign = record(db, other_tenant, foreign_member)

    assert first.invoice_number == f"{prefix}00001"
    assert second.invoice_number == f"{prefix}00002"
    assert foreign.invoice_number == f"{prefix}00001"


def test_payment_for_membership_of_another_member_is_rejected(db, tenant, make_member):
    member = make_member(tenant)

    with pytest.raises(AppError) as exc:
        record(db, tenant, member, membership_id="not-this-members")
    assert exc.value.status_code == 404


def test_refund_defaults_to_full_amount(db, tenant, make_member):
    member = make_member(tenant)
    payment = record(db, tenant, member, discount=Decimal("10"), tax=Decimal("18"))

    refunded = payments.refund_payment(db, tenant.organization.id, payment.id, PaymentRefund(reason="moved away"))

    assert refunded.status == PaymentStatus.refunded
    assert refunded.refunded_amount == Decimal("1062.00")
    assert refunded.refund_reason == "moved away"
    assert refunded.refund_date is not None
    assert refunded.amount == Decimal("1062.00")


def test_second_refund_fails_and_keeps_first_amount(db, tenant, make_member):
    member = make_member(tenant)
    payment = record(db, tenant, member)
    org = tenant.organization.id

    payments.refund_payment(db, org, payment.id, PaymentRefund(refund_amount=Decimal("400")))
    with pytest.raises(AppError) as exc:
        payments.refund_payment(db, org, payment.id, PaymentRefund())

    assert exc.value.code == "ALREADY_REFUNDED"
    db.refresh(payment)
    assert payment.refunded_amount == Decimal("400.00")


def test_explicit_zero_refund_is_not_a_full_refund(db, tenant, make_member):
    member = make_member(tenant)
    payment = record(db, tenant, member)

    refunded = payments.refund_payment(
        db, tenant.organization.id, payment.id, PaymentRefund(refund_amount=Decimal("0"), reason="goodwill"),
    )

    assert refunded.status == PaymentStatus.refunded
    assert refunded.refunded_amount == Decimal("0.00")
    assert refunded.amount == Decimal("1000.00")


def test_refund_above_amount_is_recorded(db, tenant, make_member, caplog):
    member = make_member(tenant)
    payment = record(db, tenant, member, amount="100")

    refunded = payments.refund_payment(
        db, tenant.organization.id, payment.id, PaymentRefund(refund_amount=Decimal("150"))
    )

    assert refunded.refunded_amount == Decimal("150.00")
    assert "exceeds the charged" in caplog.text


def test_member_payments_summary_counts_completed_only(db, tenant, make_member):
    member = make_member(tenant)
    record(db, tenant, member, amount="500")
    refunded = record(db, tenant, member, amount="300")
    payments.refund_payment(db, tenant.organization.id, refunded.id, PaymentRefund())

    items, summary = payments.member_payments(db, tenant.organization.id, member.id)

    assert len(items) == 2
    assert summary == {"total_paid": Decimal("500.00"), "transaction_count": 2}


def test_create_and_refund_over_http(client, tenant, make_member):
    member = make_member(tenant)

    resp = client.post(f"{API}/payments", headers=tenant.headers, json={
        "memberId": member.id, "amount": 1000, "discount": 10, "tax": 18, "paymentMethod": "UPI",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    payment = body["data"]
    assert Decimal(payment["amount"]) == Decimal("1062")
    assert Decimal(payment["discount"]) == Decimal("100")
    assert payment["paymentMethod"] == "UPI"
    assert payment["invoiceNumber"].startswith("INV")

    resp = client.post(f"{API}/payments/{payment['id']}/refund", headers=tenant.headers, json={})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "REFUNDED"
    assert Decimal(resp.json()["data"]["refundedAmount"]) == Decimal("1062")

    resp = client.post(f"{API}/payments/{payment['id']}/refund", headers=tenant.headers, json={})
    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": {"code": "ALREADY_REFUNDED", "message": "Payment already refunded"},
    }


def test_payment_stats_and_listing(client, db, tenant, make_member):
    member = make_member(tenant)
    record(db, tenant, member, amount="1000")
    record(db, tenant, member, amount="200", payment_method="CARD", type="PT_SESSION")

    resp = client.get(f"{API}/payments/stats", headers=tenant.headers)
    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert Decimal(stats["totalRevenue"]) == Decimal("1200")
    assert stats["totalTransactions"] == 2
    assert {g["key"] for g in stats["byMethod"]} == {"CASH", "CARD"}

    resp = client.get(f"{API}/payments", headers=tenant.headers, params={"type": "PT_SESSION"})
    assert resp.json()["meta"]["total"] == 1

    resp = client.get(f"{API}/payments/member/{member.id}", headers=tenant.headers)
    assert Decimal(resp.json()["data"]["summary"]["totalPaid"]) == Decimal("1200")


def test_foreign_payment_is_not_found(client, db, tenant, other_tenant, make_member):
    member = make_member(tenant)
    payment = record(db, tenant, member)

    resp = client.post(f"{API}/payments/{payment.id}/refund", headers=other_tenant.headers, json={})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"
