# hospital_scheduler/services/queue.py
"""
Cola del día por (doctor_id, fecha).

Las funciones que escriben toman el candado de la partición
(locks.partition_lock) y hacen un solo commit al final. next_position es la
excepción: la llama booking, que ya tiene el candado. El candado solo
serializa dentro del proceso; entre procesos el ancla es la fila del doctor
(lock_doctor_anchor).
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..errors import ConflictError, ValidationError
from .locks import partition_lock

logger = logging.getLogger(__name__)


def _partition_query(db: Session, doctor_id: int, day: date):
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.date == day)
        .filter(models.Appointment.status.in_(models.ACTIVE_STATUSES))
    )


def _anchor_query(db: Session, doctor_id: int):
    return (
        db.query(models.Doctor)
        .filter(models.Doctor.id == doctor_id)
        .with_for_update()
    )


def lock_doctor_anchor(db: Session, doctor_id: int) -> None:
    """
    Bloquea la fila del doctor hasta el commit. Es el ancla entre procesos:
    FOR UPDATE sobre las citas no detiene inserciones nuevas y una partición
    vacía no tiene filas que bloquear. En SQLite no hace nada.
    """
    _anchor_query(db, doctor_id).first()


def active_queue(db: Session, doctor_id: int, day: date, for_update: bool = False) -> List[models.Appointment]:
    """Citas activas ordenadas por (queue_position, created_at, id)."""
    q = _partition_query(db, doctor_id, day).order_by(
        models.Appointment.queue_position.asc(),
        models.Appointment.created_at.asc(),
        models.Appointment.id.asc(),
    )
    if for_update:
        # En SQLite no hace nada; en Postgres bloquea las filas hasta el commit.
        # populate_existing pisa lo que la sesión tuviera cacheado.
        q = q.with_for_update().populate_existing()
    return q.all()


# ──────────────────────────────────────────────────────────────────────────────
# Asignación
# ──────────────────────────────────────────────────────────────────────────────
def next_position(db: Session, doctor_id: int, day: date, exclude_id: Optional[int] = None) -> int:
    """max(posiciones activas) + 1, o 1 si la partición está vacía."""
    positions = [
        a.queue_position for a in active_queue(db, doctor_id, day, for_update=True)
        if a.id != exclude_id
    ]
    return max(positions) + 1 if positions else 1


# ──────────────────────────────────────────────────────────────────────────────
# Subir / bajar
# ──────────────────────────────────────────────────────────────────────────────
def _neighbour(db: Session, appt: models.Appointment, upward: bool) -> Optional[models.Appointment]:
    q = _partition_query(db, appt.doctor_id, appt.date).filter(models.Appointment.id != appt.id)
    if upward:
        q = q.filter(models.Appointment.queue_position < appt.queue_position).order_by(
            models.Appointment.queue_position.desc()
        )
    else:
        q = q.filter(models.Appointment.queue_position > appt.queue_position).order_by(
            models.Appointment.queue_position.asc()
        )
    return q.with_for_update().populate_existing().first()


def _move(db: Session, appt: models.Appointment, upward: bool) -> models.Appointment:
    direction = "up" if upward else "down"
    with partition_lock(appt.doctor_id, appt.date):
        db.refresh(appt)
        lock_doctor_anchor(db, appt.doctor_id)
        if not appt.is_active:
            raise ConflictError("Solo se pueden mover citas activas")

        other = _neighbour(db, appt, upward)
        if other is None:
            logger.info("move-%s sin efecto appointment=%s position=%s",
                        direction, appt.id, appt.queue_position)
            return appt

        appt.queue_position, other.queue_position = other.queue_position, appt.queue_position
        db.commit()
        db.refresh(appt)
        logger.info("move-%s appointment=%s <-> %s doctor_id=%s date=%s",
                    direction, appt.id, other.id, appt.doctor_id, appt.date)
        return appt


def move_up(db: Session, appt: models.Appointment) -> models.Appointment:
    return _move(db, appt, upward=True)


def move_down(db: Session, appt: models.Appointment) -> models.Appointment:
    return _move(db, appt, upward=False)


# ──────────────────────────────────────────────────────────────────────────────
# Reordenamiento masivo (drag & drop)
# ──────────────────────────────────────────────────────────────────────────────
def _validate_reorder(queue: List[models.Appointment],
                      items: List[Tuple[int, int]]) -> Dict[int, int]:
    ids = [appointment_id for appointment_id, _ in items]
    if len(ids) != len(set(ids)):
        raise ValidationError("La lista repite citas")
    if any(pos < 1 for _, pos in items):
        raise ValidationError("Las posiciones deben ser mayores o iguales a 1")

    by_id = {a.id: a for a in queue}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise ValidationError(
            f"Citas que no están activas en esta cola: {', '.join(str(i) for i in missing)}"
        )

    proposed = dict(items)
    new_positions = list(proposed.values())
    untouched = {a.queue_position for a in queue if a.id not in proposed}
    if len(new_positions) != len(set(new_positions)) or untouched.intersection(new_positions):
        raise ValidationError("El nuevo orden deja posiciones duplicadas")
    return proposed


def bulk_reorder(db: Session, doctor_id: int, day: date,
                 items: Iterable[Tuple[int, int]]) -> List[models.Appointment]:
    """
    Aplica [(appointment_id, new_position), ...] de una sola vez. Se valida la
    lista completa antes de escribir; si algo falla no se toca ninguna cita.
    """
    items = list(items)
    with partition_lock(doctor_id, day):
        lock_doctor_anchor(db, doctor_id)
        queue = active_queue(db, doctor_id, day, for_update=True)
        try:
            proposed = _validate_reorder(queue, items)
        except ValidationError:
            db.rollback()
            raise

        for appt in queue:
            if appt.id in proposed:
                appt.queue_position = proposed[appt.id]
        db.commit()
        logger.info("reorder-queue doctor_id=%s date=%s items=%s", doctor_id, day, items)
        return active_queue(db, doctor_id, day)


# ──────────────────────────────────────────────────────────────────────────────
# Reconciliación
# ──────────────────────────────────────────────────────────────────────────────
def _renumber(db: Session, doctor_id: int, day: date) -> Tuple[List[models.Appointment], int]:
    lock_doctor_anchor(db, doctor_id)
    queue = active_queue(db, doctor_id, day, for_update=True)
    changed = 0
    for i, appt in enumerate(queue, start=1):
        if appt.queue_position != i:
            appt.queue_position = i
            changed += 1
    return queue, changed


def reorder_queue(db: Session, doctor_id: int, day: date) -> List[models.Appointment]:
    """
    Reescribe 1..n para las citas activas de la partición, en el orden
    (queue_position, created_at). Idempotente.
    """
    with partition_lock(doctor_id, day):
        queue, changed = _renumber(db, doctor_id, day)
        db.commit()
    if changed:
        logger.info("reorder_queue doctor_id=%s date=%s n=%s changed=%s",
                    doctor_id, day, len(queue), changed)
    return queue


def partitions(db: Session, day: Optional[date] = None) -> List[Tuple[int, date]]:
    q = (
        db.query(models.Appointment.doctor_id, models.Appointment.date)
        .filter(models.Appointment.status.in_(models.ACTIVE_STATUSES))
        .distinct()
    )
    if day is not None:
        q = q.filter(models.Appointment.date == day)
    return [(doctor_id, d) for doctor_id, d in q.all()]


def reconcile_all(db: Session, day: Optional[date] = None) -> Dict[str, int]:
    """Reconcilia todas las particiones (o solo las de `day`)."""
    total_changed = 0
    parts = partitions(db, day)
    for doctor_id, d in parts:
        with partition_lock(doctor_id, d):
            _, changed = _renumber(db, doctor_id, d)
            db.commit()
        total_changed += changed
    logger.info("reconcile_all date=%s partitions=%s changed=%s", day, len(parts), total_changed)
    return {"partitions": len(parts), "changed": total_changed}

