# hospital_scheduler/services/directory.py
from __future__ import annotations
from sqlalchemy.orm import Session

from .. import models
from ..errors import ConflictError, NotFoundError


def get_appointment_or_404(db: Session, appointment_id: int) -> models.Appointment:
    appt = db.get(models.Appointment, appointment_id)
    if not appt:
        raise NotFoundError("Cita no encontrada")
    return appt


def get_doctor_or_404(db: Session, doctor_id: int) -> models.Doctor:
    doctor = db.get(models.Doctor, doctor_id)
    if not doctor:
        raise NotFoundError("Doctor no encontrado")
    return doctor


def get_hospital_or_404(db: Session, hospital_id: int) -> models.Hospital:
    hospital = db.get(models.Hospital, hospital_id)
    if not hospital:
        raise NotFoundError("Hospital no encontrado")
    return hospital


def ensure_bookable(hospital: models.Hospital, doctor: models.Doctor) -> None:
    """Hospital y doctor activos, aprobados y relacionados entre sí."""
    if not hospital.is_active or hospital.approval_status != models.ApprovalStatus.approved:
        raise ConflictError("Hospital inactivo o no aprobado")
    if not doctor.is_active or doctor.approval_status != models.ApprovalStatus.approved:
        raise ConflictError("Doctor inactivo o no aprobado")
    if doctor.hospital_id != hospital.id:
        raise ConflictError("El doctor no pertenece al hospital seleccionado")
