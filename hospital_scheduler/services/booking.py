# hospital_scheduler/services/booking.py
from __future__ import annotations
import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from .. import models
from ..errors import AllocationError, ConflictError
from .access import Actor, Capability, require
from .availability import is_within_window, normalize_hhmm, resolve_window
from .directory import ensure_bookable, get_doctor_or_404, get_hospital_or_404
from .locks import partition_lock
from .queue import lock_doctor_anchor, next_position
from .scheduling import ensure_slot_free

logger = logging.getLogger(__name__)


def book_appointment(
    db: Session,
    actor: Actor,
    *,
    hospital_id: int,
    doctor_id: int,
    day: date,
    time: str,
    type: models.AppointmentType = models.AppointmentType.consultation,
    symptoms: Optional[str] = None,
    notes: Optional[str] = None,
    duration: Optional[int] = None,
) -> models.Appointment:
    """
    Reserva una cita para el paciente autenticado.

    Orden: directorio (hospital/doctor) → horario semanal → conflicto →
    alta + posición en cola. Las dos últimas etapas van dentro del candado de
    la partición y en una sola transacción: si la posición no se puede
    calcular se hace rollback y la cita no queda guardada.
    """
    require(actor, Capability.book)
    hhmm = normalize_hhmm(time)

    hospital = get_hospital_or_404(db, hospital_id)
    doctor = get_doctor_or_404(db, doctor_id)
    ensure_bookable(hospital, doctor)

    window = resolve_window(doctor, day)
    if window is None:
        raise ConflictError("El doctor no atiende ese día")
    if not is_within_window(window, hhmm):
        raise ConflictError("Hora fuera del horario del doctor")

    with partition_lock(doctor.id, day):
        lock_doctor_anchor(db, doctor.id)
        ensure_slot_free(db, doctor.id, day, hhmm)

        appt = models.Appointment(
            patient_id=actor.id,
            doctor_id=doctor.id,
            hospital_id=hospital.id,
            date=day,
            time=hhmm,
            duration=duration or settings.DEFAULT_DURATION_MIN,
            status=models.AppointmentStatus.scheduled,
            session_phase=models.SessionPhase.waiting,
            type=type,
            symptoms=symptoms,
            notes=notes,
            consultation_fee=doctor.consultation_fee,
        )
        db.add(appt)
        try:
            db.flush()
        except IntegrityError:
            # Otro proceso ganó el mismo slot (índice único parcial)
            db.rollback()
            raise ConflictError("Horario ya reservado")

        try:
            appt.queue_position = next_position(db, doctor.id, day, exclude_id=appt.id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("No se pudo asignar posición en cola doctor_id=%s date=%s: %s",
                             doctor.id, day, e)
            raise AllocationError("No se pudo asignar la posición en la cola; la cita no se guardó")

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Horario ya reservado")

        db.refresh(appt)

    logger.info("Cita reservada id=%s patient=%s doctor_id=%s date=%s time=%s position=%s",
                appt.id, actor.id, doctor.id, day, hhmm, appt.queue_position)
    return appt
