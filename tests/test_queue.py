from sqlalchemy.dialects import postgresql

from hospital_scheduler import models
from hospital_scheduler.config import settings
from hospital_scheduler.services import queue

from .helpers import (
    ADMIN, DOCTOR, MONDAY, ORG_ADMIN, active_positions, book_ok, patient, positions,
)

QUEUE_URL = f"/appointments/queue/{{doctor_id}}/{MONDAY.isoformat()}"


def _three(client, doctor):
    return [book_ok(client, doctor, t, pid=10 + i) for i, t in enumerate(["09:00", "09:30", "10:00"])]


def test_move_down_first_swaps_with_second(client, db, doctor):
    a, b, c = _three(client, doctor)
    r = client.put(f"/appointments/{a}/move-down", headers=DOCTOR)
    assert r.status_code == 200
    assert r.json()["appointment"]["queue_position"] == 2
    assert positions(db, [a, b, c]) == [2, 1, 3]


def test_move_up_at_top_is_noop(client, db, doctor):
    a, b, c = _three(client, doctor)
    assert client.put(f"/appointments/{a}/move-up", headers=DOCTOR).status_code == 200
    assert positions(db, [a, b, c]) == [1, 2, 3]


def test_move_down_at_bottom_is_noop(client, db, doctor):
    a, b, c = _three(client, doctor)
    assert client.put(f"/appointments/{c}/move-down", headers=DOCTOR).status_code == 200
    assert positions(db, [a, b, c]) == [1, 2, 3]


def test_move_up_skips_gaps(client, db, doctor):
    a, b, c = _three(client, doctor)
    client.delete(f"/appointments/{b}", headers=DOCTOR)
    client.put(f"/appointments/{c}/move-up", headers=DOCTOR)
    assert positions(db, [a, c]) == [3, 1]


def test_cancel_leaves_gap_until_reconciled(client, db, doctor):
    a, b, c = _three(client, doctor)
    client.delete(f"/appointments/{b}", headers=DOCTOR)
    assert active_positions(db, doctor.id) == [1, 3]

    r = client.post(f"/appointments/queue/{doctor.id}/{MONDAY.isoformat()}/reconcile", headers=DOCTOR)
    assert r.status_code == 200
    assert [x["id"] for x in r.json()["appointments"]] == [a, c]
    assert positions(db, [a, c]) == [1, 2]


def test_reconcile_is_idempotent_and_contiguous(db, doctor, client):
    ids = [book_ok(client, doctor, t, pid=10 + i) for i, t in enumerate(["09:00", "09:30", "10:00", "10:30"])]
    # posiciones desordenadas, con huecos y duplicados
    for appt_id, pos in zip(ids, [7, 3, 3, 12]):
        db.get(models.Appointment, appt_id).queue_position = pos
    db.commit()

    queue.reorder_queue(db, doctor.id, MONDAY)
    first = positions(db, ids)
    assert sorted(first) == [1, 2, 3, 4]
    assert first == [3, 1, 2, 4]

    queue.reorder_queue(db, doctor.id, MONDAY)
    assert positions(db, ids) == first


def test_terminal_appointments_leave_the_queue(client, db, doctor):
    a, b, c = _three(client, doctor)
    for status in ("in-progress", "completed"):
        client.put(f"/appointments/{a}/status", json={"status": status}, headers=DOCTOR)
    queue.reorder_queue(db, doctor.id, MONDAY)
    assert positions(db, [b, c]) == [1, 2]
    data = client.get(QUEUE_URL.format(doctor_id=doctor.id), headers=DOCTOR).json()
    assert data["total"] == 2


def test_cannot_move_cancelled_appointment(client, doctor):
    a, _, _ = _three(client, doctor)
    client.delete(f"/appointments/{a}", headers=DOCTOR)
    assert client.put(f"/appointments/{a}/move-down", headers=DOCTOR).status_code == 409


def test_bulk_reorder(client, db, doctor):
    a, b, c = _three(client, doctor)
    body = {
        "doctor_id": doctor.id,
        "date": MONDAY.isoformat(),
        "appointments": [{"id": a, "new_position": 3}, {"id": c, "new_position": 1}],
    }
    r = client.put("/appointments/reorder-queue", json=body, headers=DOCTOR)
    assert r.status_code == 200
    assert [x["id"] for x in r.json()["appointments"]] == [c, b, a]
    assert positions(db, [a, b, c]) == [3, 2, 1]


def test_bulk_reorder_rejects_duplicates_without_writing(client, db, doctor):
    a, b, c = _three(client, doctor)
    body = {
        "doctor_id": doctor.id,
        "date": MONDAY.isoformat(),
        "appointments": [{"id": a, "new_position": 2}, {"id": c, "new_position": 1}],
    }
    r = client.put("/appointments/reorder-queue", json=body, headers=DOCTOR)
    assert r.status_code == 400
    assert positions(db, [a, b, c]) == [1, 2, 3]


def test_bulk_reorder_rejects_foreign_appointment_without_writing(client, db, doctor):
    a, b, c = _three(client, doctor)
    body = {
        "doctor_id": doctor.id,
        "date": MONDAY.isoformat(),
        "appointments": [{"id": a, "new_position": 3}, {"id": c, "new_position": 1}, {"id": 9999, "new_position": 4}],
    }
    assert client.put("/appointments/reorder-queue", json=body, headers=DOCTOR).status_code == 400
    assert positions(db, [a, b, c]) == [1, 2, 3]


def test_bulk_reorder_rejects_non_positive_positions(client, doctor):
    a, _, _ = _three(client, doctor)
    body = {"doctor_id": doctor.id, "date": MONDAY.isoformat(), "appointments": [{"id": a, "new_position": 0}]}
    assert client.put("/appointments/reorder-queue", json=body, headers=DOCTOR).status_code == 422


def test_queue_operations_require_owning_doctor(client, doctor, other_doctor):
    a, _, _ = _three(client, doctor)
    other = {"X-Actor-Id": str(other_doctor.user_id), "X-Actor-Role": "doctor"}
    assert client.put(f"/appointments/{a}/move-down", headers=other).status_code == 403
    assert client.put(f"/appointments/{a}/move-down", headers=patient(10)).status_code == 403
    assert client.get(QUEUE_URL.format(doctor_id=doctor.id), headers=other).status_code == 403
    body = {"doctor_id": doctor.id, "date": MONDAY.isoformat(), "appointments": [{"id": a, "new_position": 5}]}
    assert client.put("/appointments/reorder-queue", json=body, headers=other).status_code == 403


def test_admin_and_org_admin_queue_access(client, doctor):
    _three(client, doctor)
    url = QUEUE_URL.format(doctor_id=doctor.id)
    assert client.get(url, headers=ADMIN).json()["total"] == 3
    assert client.get(url, headers=ORG_ADMIN).json()["total"] == 3
    assert client.get(url, headers=patient(10)).status_code == 403
    # el org admin puede ver pero no reordenar
    r = client.post(f"/appointments/queue/{doctor.id}/{MONDAY.isoformat()}/reconcile", headers=ORG_ADMIN)
    assert r.status_code == 403


def test_admin_can_move_any_appointment(client, db, doctor):
    a, b, c = _three(client, doctor)
    assert client.put(f"/appointments/{b}/move-up", headers=ADMIN).status_code == 200
    assert positions(db, [a, b, c]) == [2, 1, 3]


def test_admin_reconcile_all(client, db, doctor, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_TOKEN", "secreto")
    a, b, c = _three(client, doctor)
    client.delete(f"/appointments/{a}", headers=DOCTOR)

    assert client.post("/admin/queues/reconcile").status_code == 401
    r = client.post("/admin/queues/reconcile", headers={"X-Admin-Token": "secreto"},
                    params={"date": MONDAY.isoformat()})
    assert r.status_code == 200
    assert r.json()["partitions"] == 1
    assert r.json()["changed"] == 2
    assert positions(db, [b, c]) == [1, 2]


def test_doctor_anchor_is_selected_for_update(db, doctor):
    sql = str(queue._anchor_query(db, doctor.id).statement.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE" in sql
    assert "doctors" in sql


def test_writers_take_the_doctor_anchor(client, db, doctor, monkeypatch):
    calls = []
    real = queue.lock_doctor_anchor

    def _spy(session, doctor_id):
        calls.append(doctor_id)
        real(session, doctor_id)

    monkeypatch.setattr(queue, "lock_doctor_anchor", _spy)
    appt_id = book_ok(client, doctor, "09:00")
    queue.reorder_queue(db, doctor.id, MONDAY)
    queue.move_down(db, db.get(models.Appointment, appt_id))
    queue.bulk_reorder(db, doctor.id, MONDAY, [(appt_id, 1)])
    assert calls == [doctor.id] * 3
