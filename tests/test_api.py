from datetime import datetime, timedelta, timezone

import jwt

from gym_service import config

API = "/api/v1"


def assign(client, tenant, member, plan, **extra):
    payload = {"memberId": member.id, "planId": plan.id, "durationId": plan.durations[0].id, **extra}
    return client.post(f"{API}/memberships", headers=tenant.headers, json=payload)


def test_health_needs_no_credentials(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_unknown_route_uses_error_envelope(client):
    resp = client.get(f"{API}/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": {"code": "NOT_FOUND", "message": "Route not found"}}


def test_missing_and_malformed_tokens(client):
    resp = client.get(f"{API}/memberships")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    resp = client.get(f"{API}/memberships", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"


def test_expired_token(client, tenant):
    token = jwt.encode(
        {
            "userId": tenant.user.id,
            "email": tenant.user.email,
            "role": "ADMIN",
            "organizationId": tenant.organization.id,
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        config.JWT_SECRET,
        algorithm=config.JWT_ALGORITHM,
    )
    resp = client.get(f"{API}/memberships", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "TOKEN_EXPIRED"


def test_inactive_user_is_rejected(client, db, tenant):
    tenant.user.is_active = False
    db.commit()

    resp = client.get(f"{API}/memberships", headers=tenant.headers)
    assert resp.status_code == 401


def test_assign_over_http_returns_envelope(client, tenant, make_plan, make_member):
    plan = make_plan(tenant.organization.id)
    member = make_member(tenant)

    resp = assign(client, tenant, member, plan, startDate="2025-01-31T00:00:00")

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Membership assigned successfully"
    data = body["data"]
    assert data["status"] == "ACTIVE"
    assert data["startDate"].startswith("2025-01-31")
    assert data["endDate"].startswith("2025-02-28")
    assert data["plan"]["name"] == "Basic"
    assert data["member"]["memberId"] == member.member_id


def test_assign_twice_over_http_keeps_one_active(client, tenant, make_plan, make_member):
    plan = make_plan(tenant.organization.id)
    member = make_member(tenant)

    assign(client, tenant, member, plan)
    assign(client, tenant, member, plan)

    resp = client.get(
        f"{API}/memberships", headers=tenant.headers, params={"memberId": member.id, "status": "ACTIVE"}
    )
    assert resp.json()["meta"]["total"] == 1
    resp = client.get(f"{API}/memberships", headers=tenant.headers, params={"memberId": member.id})
    assert sorted(m["status"] for m in resp.json()["data"]) == ["ACTIVE", "EXPIRED"]


def test_freeze_policy_errors_over_http(client, tenant, make_plan, make_member):
    plan = make_plan(tenant.organization.id, max_freeze_days=45)
    member = make_member(tenant)
    membership_id = assign(client, tenant, member, plan).json()["data"]["id"]

    resp = client.post(f"{API}/memberships/{membership_id}/freeze", headers=tenant.headers, json={"freezeDays": 46})
    assert resp.status_code == 400
    assert resp.json()["error"] == {"code": "MAX_FREEZE_EXCEEDED", "message": "Maximum freeze days (45) exceeded"}

    resp = client.post(f"{API}/memberships/{membership_id}/freeze", headers=tenant.headers, json={"freezeDays": 0})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    resp = client.post(f"{API}/memberships/{membership_id}/freeze", headers=tenant.headers, json={"freezeDays": 5})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Membership frozen for 5 days"

    resp = client.post(f"{API}/memberships/{membership_id}/freeze", headers=tenant.headers, json={"freezeDays": 5})
    assert resp.json()["error"]["code"] == "INVALID_STATUS"


def test_membership_lifecycle_over_http(client, tenant, make_plan, make_member):
    plan = make_plan(tenant.organization.id)
    member = make_member(tenant)
    membership_id = assign(client, tenant, member, plan).json()["data"]["id"]
    base = f"{API}/memberships/{membership_id}"

    assert client.post(f"{base}/freeze", headers=tenant.headers, json={"freezeDays": 3}).status_code == 200
    assert client.get(f"{API}/members/{member.id}", headers=tenant.headers).json()["data"]["status"] == "FROZEN"

    assert client.post(f"{base}/unfreeze", headers=tenant.headers).status_code == 200
    resp = client.post(f"{base}/renew", headers=tenant.headers,
                       json={"durationId": plan.durations[0].id, "startFromCurrent": True})
    assert resp.status_code == 200
    assert resp.json()["data"]["totalFreezeDays"] == 3

    resp = client.post(f"{base}/cancel", headers=tenant.headers)
    assert resp.json()["data"]["status"] == "CANCELLED"
    assert client.get(f"{API}/members/{member.id}", headers=tenant.headers).json()["data"]["status"] == "INACTIVE"


def test_foreign_membership_is_not_found_over_http(client, tenant, other_tenant, make_plan, make_member):
    plan = make_plan(tenant.organization.id)
    member = make_member(tenant)
    membership_id = assign(client, tenant, member, plan).json()["data"]["id"]

    for action, payload in [
        ("freeze", {"freezeDays": 1}),
        ("renew", {"durationId": plan.durations[0].id}),
        ("cancel", None),
    ]:
        resp = client.post(
            f"{API}/memberships/{membership_id}/{action}", headers=other_tenant.headers, json=payload
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == {"code": "NOT_FOUND", "message": "Membership not found"}

    resp = client.get(f"{API}/memberships/{membership_id}", headers=other_tenant.headers)
    assert resp.status_code == 404

    # assigning another tenant's member
    resp = assign(client, other_tenant, member, plan)
    assert resp.status_code == 404


def test_login_and_me(client, tenant):
    resp = client.post(f"{API}/auth/login", json={"email": tenant.user.email, "password": "secret123"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["role"] == "ADMIN"

    resp = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert resp.json()["data"]["email"] == tenant.user.email

    resp = client.post(f"{API}/auth/refresh", json={"refreshToken": data["refreshToken"]})
    assert resp.status_code == 200
    assert "accessToken" in resp.json()["data"]


def test_login_with_wrong_password(client, tenant):
    resp = client.post(f"{API}/auth/login", json={"email": tenant.user.email, "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"


def test_register_requires_admin(client, tenant, staff_headers):
    payload = {"email": "coach@ironworks.test", "password": "coach123", "firstName": "Ann", "lastName": "Lee"}

    resp = client.post(f"{API}/auth/register", headers=staff_headers, json=payload)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"

    resp = client.post(f"{API}/auth/register", headers=tenant.headers, json=payload)
    assert resp.status_code == 201
    user = resp.json()["data"]["user"]
    assert user["role"] == "STAFF"
    assert user["organizationId"] == tenant.organization.id

    resp = client.post(f"{API}/auth/register", headers=tenant.headers, json=payload)
    assert resp.json()["error"]["code"] == "USER_EXISTS"
