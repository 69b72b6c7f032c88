from gym_service import classes
from gym_service.auth import verify_password
from gym_service.models import User
from gym_service.schemas import ClassCreate, ScheduleCreate

API = "/api/v1"

TRAINER_BODY = {"email": "ola@ironworks.test", "firstName": "Ola", "lastName": "Nowak", "phone": "600100200"}


def test_add_trainer(client, db, tenant):
    resp = client.post(f"{API}/trainers", headers=tenant.headers, json={**TRAINER_BODY, "password": "pilates1"})

    assert resp.status_code == 201
    assert resp.json()["message"] == "Trainer added successfully"
    trainer = resp.json()["data"]
    assert trainer["role"] == "TRAINER"
    assert "passwordHash" not in trainer
    user = db.get(User, trainer["id"])
    assert user.organization_id == tenant.organization.id
    assert verify_password("pilates1", user.password_hash)


def test_duplicate_trainer_email(client, tenant):
    client.post(f"{API}/trainers", headers=tenant.headers, json=TRAINER_BODY)

    resp = client.post(f"{API}/trainers", headers=tenant.headers, json=TRAINER_BODY)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "EMAIL_EXISTS"


def test_staff_cannot_add_trainers(client, staff_headers):
    resp = client.post(f"{API}/trainers", headers=staff_headers, json=TRAINER_BODY)
    assert resp.status_code == 403


def test_trainer_schedule_and_stats(client, db, tenant, other_tenant):
    trainer_id = client.post(f"{API}/trainers", headers=tenant.headers, json=TRAINER_BODY).json()["data"]["id"]
    org = tenant.organization.id
    gym_class = classes.create_class(db, org, ClassCreate(name="Pilates", instructor_id=trainer_id))
    for day in (1, 4):
        classes.create_schedule(db, org, ScheduleCreate(
            class_id=gym_class.id, day_of_week=day, start_time="09:00", end_time="10:00",
        ))

    schedule = client.get(f"{API}/trainers/{trainer_id}/schedule", headers=tenant.headers).json()["data"]
    assert [s["dayOfWeek"] for s in schedule] == [1, 4]
    assert {s["instructorId"] for s in schedule} == {trainer_id}

    detail = client.get(f"{API}/trainers/{trainer_id}", headers=tenant.headers).json()["data"]
    assert len(detail["classSchedules"]) == 2

    stats = client.get(f"{API}/trainers/stats", headers=tenant.headers).json()["data"]
    assert stats == {"totalTrainers": 1, "activeTrainers": 1, "totalClasses": 2}

    resp = client.get(f"{API}/trainers/{trainer_id}", headers=other_tenant.headers)
    assert resp.status_code == 404


def test_deactivated_trainer_is_hidden(client, tenant):
    trainer_id = client.post(f"{API}/trainers", headers=tenant.headers, json=TRAINER_BODY).json()["data"]["id"]

    resp = client.patch(f"{API}/trainers/{trainer_id}", headers=tenant.headers, json={"phone": "600999999"})
    assert resp.json()["data"]["phone"] == "600999999"

    resp = client.delete(f"{API}/trainers/{trainer_id}", headers=tenant.headers)
    assert resp.json()["message"] == "Trainer deactivated successfully"

    assert client.get(f"{API}/trainers", headers=tenant.headers).json()["data"] == []
    listed = client.get(f"{API}/trainers", headers=tenant.headers, params={"includeInactive": "true"}).json()["data"]
    assert [t["isActive"] for t in listed] == [False]
    stats = client.get(f"{API}/trainers/stats", headers=tenant.headers).json()["data"]
    assert stats["totalTrainers"] == 1
    assert stats["activeTrainers"] == 0
