import pytest

from hospital_scheduler import models
from hospital_scheduler.errors import ForbiddenError
from hospital_scheduler.services.access import CAPABILITIES, Actor, Capability, Role, require

from .helpers import ADMIN, DOCTOR, MONDAY, ORG_ADMIN, book_ok, patient


def test_every_capability_is_mapped():
    assert set(CAPABILITIES) == set(Capability)


@pytest.mark.parametrize("role,capability,allowed", [
    (Role.patient, Capability.book, True),
    (Role.doctor, Capability.book, False),
    (Role.patient, Capability.change_phase, False),
    (Role.doctor, Capability.change_phase, True),
    (Role.organization_admin, Capability.cancel, False),
    (Role.organization_admin, Capability.view_queue, True),
    (Role.admin, Capability.reorder, True),
])
def test_capability_table(role, capability, allowed):
    actor = Actor(1, role)
    if allowed:
        require(actor, capability)
    else:
        with pytest.raises(ForbiddenError):
            require(actor, capability)


def test_cancelled_by_follows_role():
    assert Actor(1, Role.doctor).cancelled_by == models.CancelledBy.doctor
    assert Actor(1, Role.patient).cancelled_by == models.CancelledBy.patient


def test_get_appointment_ownership(client, doctor, other_doctor):
    appt_id = book_ok(client, doctor, "10:00", pid=10)
    url = f"/appointments/{appt_id}"
    assert client.get(url, headers=patient(10)).status_code == 200
    assert client.get(url, headers=patient(11)).status_code == 403
    assert client.get(url, headers=DOCTOR).status_code == 200
    assert client.get(url, headers=ADMIN).status_code == 200
    assert client.get(url, headers=ORG_ADMIN).status_code == 200
    assert client.get(url, headers={"X-Actor-Id": "901", "X-Actor-Role": "organization_admin"}).status_code == 403
    other = {"X-Actor-Id": str(other_doctor.user_id), "X-Actor-Role": "doctor"}
    assert client.get(url, headers=other).status_code == 403


def test_list_is_scoped_by_role(client, doctor, other_doctor):
    book_ok(client, doctor, "09:00", pid=10)
    book_ok(client, doctor, "09:30", pid=11)
    book_ok(client, other_doctor, "09:00", pid=10)

    assert client.get("/appointments", headers=patient(10)).json()["total"] == 2
    assert client.get("/appointments", headers=patient(11)).json()["total"] == 1
    assert client.get("/appointments", headers=DOCTOR).json()["total"] == 2
    assert client.get("/appointments", headers=ORG_ADMIN).json()["total"] == 2
    assert client.get("/appointments", headers=ADMIN).json()["total"] == 3
    other = {"X-Actor-Id": "555", "X-Actor-Role": "doctor"}
    assert client.get("/appointments", headers=other).json()["total"] == 0


def test_list_filters_and_pagination(client, doctor):
    ids = [book_ok(client, doctor, t, pid=10 + i) for i, t in enumerate(["09:00", "09:30", "10:00"])]
    client.delete(f"/appointments/{ids[0]}", headers=DOCTOR)

    data = client.get("/appointments", params={"status": "scheduled"}, headers=DOCTOR).json()
    assert data["total"] == 2

    data = client.get("/appointments", params={"date": MONDAY.isoformat(), "limit": 2, "page": 2},
                      headers=DOCTOR).json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert data["current_page"] == 2
    assert [a["id"] for a in data["appointments"]] == [ids[2]]

    assert client.get("/appointments", params={"status": "lost"}, headers=DOCTOR).status_code == 400
