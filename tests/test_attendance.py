from datetime import timedelta

import pytest

from gym_service import attendance, memberships
from gym_service.errors import AppError
from gym_service.models import Attendance, CheckInMethod, MemberStatus, Membership, utcnow
from gym_service.schemas import MembershipFreeze

API = "/api/v1"


def test_check_in_active_member(db, tenant, make_active_member):
    member = make_active_member(tenant)

    visit = attendance.check_in(db, tenant.organization.id, member.id)

    assert visit.member_id == member.id
    assert visit.branch_id == tenant.branch.id
    assert visit.check_in_method == CheckInMethod.manual
    assert visit.check_out_time is None


def test_blocked_member_cannot_check_in(db, tenant, make_active_member):
    member = make_active_member(tenant)
    member.status = MemberStatus.blocked
    db.commit()

    with pytest.raises(AppError) as exc:
        attendance.check_in(db, tenant.organization.id, member.id)
    assert exc.value.code == "MEMBER_BLOCKED"
    assert exc.value.status_code == 403


def test_frozen_member_cannot_check_in(db, tenant, make_active_member):
    member = make_active_member(tenant)
    membership = db.query(Membership).filter(Membership.member_id == member.id).one()
    memberships.freeze_membership(db, tenant.organization.id, membership.id, MembershipFreeze(freeze_days=3))

    with pytest.raises(AppError) as exc:
        attendance.check_in(db, tenant.organization.id, member.id)
    assert exc.value.code == "MEMBERSHIP_FROZEN"


def test_member_without_membership_cannot_check_in(db, tenant, make_member):
    member = make_member(tenant)

    with pytest.raises(AppError) as exc:
        attendance.check_in(db, tenant.organization.id, member.id)
    assert exc.value.code == "NO_ACTIVE_MEMBERSHIP"
    assert db.query(Attendance).count() == 0


def test_second_check_in_while_inside_is_rejected(db, tenant, make_active_member):
    member = make_active_member(tenant)
    org = tenant.organization.id
    attendance.check_in(db, org, member.id)

    with pytest.raises(AppError) as exc:
        attendance.check_in(db, org, member.id)
    assert exc.value.code == "ALREADY_CHECKED_IN"

    attendance.check_out(db, org, member_id=member.id)
    assert attendance.check_in(db, org, member.id).check_out_time is None
    assert db.query(Attendance).count() == 2


def test_check_out_records_duration(db, tenant, make_active_member):
    member = make_active_member(tenant)
    visit = attendance.check_in(db, tenant.organization.id, member.id)
    visit.check_in_time = utcnow() - timedelta(minutes=90)
    db.commit()

    closed = attendance.check_out(db, tenant.organization.id, attendance_id=visit.id)

    assert closed.check_out_time is not None
    assert closed.duration == 90


def test_check_out_without_open_visit(db, tenant, other_tenant, make_active_member):
    member = make_active_member(tenant)

    with pytest.raises(AppError) as exc:
        attendance.check_out(db, tenant.organization.id, member_id=member.id)
    assert exc.value.code == "NO_ACTIVE_CHECKIN"
    assert exc.value.status_code == 404

    visit = attendance.check_in(db, tenant.organization.id, member.id)
    with pytest.raises(AppError) as exc:
        attendance.check_out(db, other_tenant.organization.id, attendance_id=visit.id)
    assert exc.value.code == "NO_ACTIVE_CHECKIN"


def test_check_in_by_member_code(db, tenant, make_active_member):
    member = make_active_member(tenant)

    visit = attendance.check_in_by_code(db, tenant.organization.id, member.member_id)
    assert visit.member_id == member.id
    assert visit.check_in_method == CheckInMethod.member_id

    with pytest.raises(AppError) as exc:
        attendance.check_in_by_code(db, tenant.organization.id, "GYM9999")
    assert exc.value.code == "MEMBER_NOT_FOUND"


def test_foreign_member_cannot_check_in(db, tenant, other_tenant, make_active_member):
    member = make_active_member(tenant)

    with pytest.raises(AppError) as exc:
        attendance.check_in(db, other_tenant.organization.id, member.id)
    assert exc.value.status_code == 404


def test_today_stats_over_http(client, tenant, make_active_member):
    first = make_active_member(tenant, first_name="Adam")
    second = make_active_member(tenant, first_name="Beata")

    resp = client.post(f"{API}/attendance/check-in", headers=tenant.headers, json={"memberId": first.id})
    assert resp.status_code == 201
    assert resp.json()["data"]["checkInMethod"] == "MANUAL"
    resp = client.post(f"{API}/attendance/check-in/member-id", headers=tenant.headers,
                       json={"memberIdCode": second.member_id})
    assert resp.status_code == 201
    resp = client.post(f"{API}/attendance/check-out", headers=tenant.headers, json={"memberId": first.id})
    assert resp.json()["message"] == "Check-out successful"

    today = client.get(f"{API}/attendance/today", headers=tenant.headers).json()["data"]

    assert today["stats"] == {"totalCheckIns": 2, "currentlyIn": 1, "checkedOut": 1}
    assert {a["member"]["firstName"] for a in today["attendance"]} == {"Adam", "Beata"}


def test_member_attendance_summary(client, db, tenant, make_active_member):
    member = make_active_member(tenant)
    org = tenant.organization.id
    for minutes in (60, 30):
        visit = attendance.check_in(db, org, member.id)
        visit.check_in_time = utcnow() - timedelta(minutes=minutes)
        db.commit()
        attendance.check_out(db, org, member_id=member.id)

    resp = client.get(f"{API}/attendance/member/{member.id}", headers=tenant.headers, params={"days": 7})

    stats = resp.json()["data"]["stats"]
    assert stats == {"totalVisits": 2, "totalDuration": 90, "avgDuration": 45, "period": "7 days"}


def test_attendance_history_is_paginated(client, db, tenant, make_active_member):
    member = make_active_member(tenant)
    attendance.check_in(db, tenant.organization.id, member.id)

    resp = client.get(f"{API}/attendance", headers=tenant.headers, params={"memberId": member.id, "limit": 1})

    body = resp.json()
    assert len(body["data"]) == 1
    assert body["meta"]["total"] == 1
