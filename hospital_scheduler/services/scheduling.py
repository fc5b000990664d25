# hospital_scheduler/services/scheduling.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

import pytz
from sqlalchemy.orm import Session

from ..config import settings
from .. import models
from ..errors import ConflictError
from .availability import Window, resolve_window

logger = logging.getLogger(__name__)

# ====== Config ======
TIMEZONE = getattr(settings, "TIMEZONE", "America/Mexico_City") or "America/Mexico_City"
SLOT_MINUTES = getattr(settings, "SLOT_MINUTES", 30)


# ====== Utilidades de tiempo ======
def _local_tz():
    return pytz.timezone(TIMEZONE)


def today_local() -> date:
    """Fecha de hoy en la TZ del hospital (no la del servidor)."""
    return datetime.now(_local_tz()).date()


@dataclass
class Slot:
    time: str
    booked: bool


@dataclass
class SlotListing:
    day: date
    window: Optional[Window]
    slots: List[Slot] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return self.window is not None

    @property
    def free(self) -> List[str]:
        return [s.time for s in self.slots if not s.booked]


# ====== Horarios ocupados en BD ======
def booked_times(db: Session, doctor_id: int, day: date) -> set[str]:
    """
    Horas (HH:MM) ocupadas por citas scheduled/confirmed del doctor en ese día.
    """
    rows = (
        db.query(models.Appointment.time)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.date == day)
        .filter(models.Appointment.status.in_(models.BOOKING_STATUSES))
        .all()
    )
    out = {r[0] for r in rows}
    logger.debug("DB booked_times doctor_id=%s date=%s -> %s", doctor_id, day, sorted(out))
    return out


def candidate_times(window: Window, slot_minutes: int = SLOT_MINUTES) -> List[str]:
    """Inicios de slot entre start y end (end excluido)."""
    start, end = window
    anchor = date(2000, 1, 1)
    cur = datetime.combine(anchor, start)
    end_dt = datetime.combine(anchor, end)
    delta = timedelta(minutes=slot_minutes)

    out = []
    while cur < end_dt:
        out.append(cur.strftime("%H:%M"))
        cur += delta
    return out


# ====== Slots disponibles ======
def available_slots(db: Session, doctor: models.Doctor, day: date) -> SlotListing:
    """
    Genera slots de SLOT_MINUTES dentro de la ventana del doctor para `day`
    y marca como ocupados los que ya tienen cita scheduled/confirmed.
    Lectura sin candado: puede quedar desfasada frente a reservas en curso.
    """
    window = resolve_window(doctor, day)
    if window is None:
        return SlotListing(day=day, window=None)

    taken = booked_times(db, doctor.id, day)
    slots = [Slot(time=t, booked=t in taken) for t in candidate_times(window)]
    return SlotListing(day=day, window=window, slots=slots)


def ensure_slot_free(db: Session, doctor_id: int, day: date, hhmm: str) -> None:
    """
    Chequeo autoritativo al reservar. Debe llamarse dentro del candado de la
    partición para que nadie más reserve entre esta lectura y el commit.
    """
    conflicting = (
        db.query(models.Appointment.id)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.date == day)
        .filter(models.Appointment.time == hhmm)
        .filter(models.Appointment.status.in_(models.BOOKING_STATUSES))
        .first()
    )
    if conflicting:
        logger.warning("Slot ocupado doctor_id=%s date=%s time=%s (cita %s)",
                       doctor_id, day, hhmm, conflicting[0])
        raise ConflictError("Horario ya reservado")
