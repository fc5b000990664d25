# hospital_scheduler/scripts/seed_demo.py
"""
Crea un hospital aprobado, un doctor (user_id=100) con horario L-V 09:00-17:00
y deja todo listo para probar reservas en local.

    python -m hospital_scheduler.scripts.seed_demo
"""
from hospital_scheduler import models
from hospital_scheduler.database import SessionLocal, init_db

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]


def seed(db, doctor_user_id: int = 100, org_admin_id: int = 900) -> models.Doctor:
    existing = db.query(models.Doctor).filter(models.Doctor.user_id == doctor_user_id).first()
    if existing:
        return existing

    hospital = models.Hospital(
        name="Hospital Demo",
        is_active=True,
        approval_status=models.ApprovalStatus.approved,
        organization_admin_id=org_admin_id,
    )
    db.add(hospital)
    db.flush()

    doctor = models.Doctor(
        user_id=doctor_user_id,
        hospital_id=hospital.id,
        specialization="medicina general",
        consultation_fee=500,
        is_active=True,
        approval_status=models.ApprovalStatus.approved,
    )
    for day in WEEKDAYS:
        doctor.availability.append(
            models.DoctorAvailability(day=models.Weekday(day), start_time="09:00", end_time="17:00")
        )
    doctor.availability.append(
        models.DoctorAvailability(day=models.Weekday.saturday, start_time="09:00",
                                  end_time="13:00", is_available=False)
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


if __name__ == "__main__":
    init_db()
    db = SessionLocal()
    try:
        d = seed(db)
        print(f"Doctor demo id={d.id} user_id={d.user_id} hospital_id={d.hospital_id}")
    finally:
        db.close()
