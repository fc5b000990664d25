from datetime import date

from hospital_scheduler import models

# 2026-10-19 es lunes
MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)

DOCTOR_USER_ID = 100
ORG_ADMIN_ID = 900

DOCTOR = {"X-Actor-Id": str(DOCTOR_USER_ID), "X-Actor-Role": "doctor"}
ADMIN = {"X-Actor-Id": "1", "X-Actor-Role": "admin"}
ORG_ADMIN = {"X-Actor-Id": str(ORG_ADMIN_ID), "X-Actor-Role": "organization_admin"}


def patient(pid: int = 10) -> dict:
    return {"X-Actor-Id": str(pid), "X-Actor-Role": "patient"}


def book(client, doctor, time: str, pid: int = 10, day: date = MONDAY, **extra):
    body = {
        "hospital_id": doctor.hospital_id,
        "doctor_id": doctor.id,
        "date": day.isoformat(),
        "time": time,
    }
    body.update(extra)
    return client.post("/appointments", json=body, headers=patient(pid))


def book_ok(client, doctor, time: str, pid: int = 10, day: date = MONDAY) -> int:
    r = book(client, doctor, time, pid=pid, day=day)
    assert r.status_code == 201, r.text
    return r.json()["appointment"]["id"]


def positions(db, ids) -> list:
    db.expire_all()
    return [db.get(models.Appointment, i).queue_position for i in ids]


def active_positions(db, doctor_id: int, day: date = MONDAY) -> list:
    db.expire_all()
    rows = (
        db.query(models.Appointment.queue_position)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.date == day)
        .filter(models.Appointment.status.in_(models.ACTIVE_STATUSES))
        .order_by(models.Appointment.queue_position)
        .all()
    )
    return [r[0] for r in rows]
