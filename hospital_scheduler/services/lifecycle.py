# hospital_scheduler/services/lifecycle.py
"""
Máquina de estados de la cita (status) y fase clínica (session_phase).

status:  scheduled → confirmed → in-progress → completed, y desde cualquier
         estado no terminal a cancelled / no-show.
fase:    el doctor la fija directamente a cualquiera de los diez valores; no
         depende del status.
"""
from __future__ import annotations
import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from .. import models
from ..errors import ConflictError, ForbiddenError, ValidationError
from .access import Actor, Capability, Role, authorize_appointment
from .locks import partition_lock

logger = logging.getLogger(__name__)

S = models.AppointmentStatus

TRANSITIONS: Dict[S, FrozenSet[S]] = {
    S.scheduled: frozenset({S.confirmed, S.in_progress, S.cancelled, S.no_show}),
    S.confirmed: frozenset({S.in_progress, S.cancelled, S.no_show}),
    S.in_progress: frozenset({S.completed, S.cancelled, S.no_show}),
    S.completed: frozenset(),
    S.cancelled: frozenset(),
    S.no_show: frozenset(),
}


def parse_status(value: str) -> S:
    try:
        return S(value)
    except ValueError:
        raise ValidationError(f"Estado inválido '{value}'")


def parse_phase(value: str) -> models.SessionPhase:
    try:
        return models.SessionPhase(value)
    except ValueError:
        raise ValidationError(f"Fase inválida '{value}'")


def can_transition(current: S, target: S) -> bool:
    return target in TRANSITIONS[current]


def _apply_status(appt: models.Appointment, actor: Actor, target: S,
                  reason: Optional[str]) -> None:
    if appt.status.is_terminal:
        raise ConflictError(f"La cita ya está en estado final ({appt.status.value})")
    if not can_transition(appt.status, target):
        raise ValidationError(
            f"Transición no permitida: {appt.status.value} → {target.value}"
        )

    appt.status = target
    if target == S.cancelled:
        appt.cancelled_by = actor.cancelled_by
        if reason:
            appt.cancellation_reason = reason


def change_status(db: Session, actor: Actor, appt: models.Appointment, target: S,
                  reason: Optional[str] = None) -> models.Appointment:
    """
    Cambia el status. El paciente solo puede cancelar su propia cita; doctor
    dueño y admin pueden cualquier transición permitida.
    """
    if target == S.cancelled:
        authorize_appointment(db, actor, Capability.cancel, appt)
    else:
        if actor.role == Role.patient:
            raise ForbiddenError("El paciente solo puede cancelar su cita")
        authorize_appointment(db, actor, Capability.change_status, appt)

    with partition_lock(appt.doctor_id, appt.date):
        db.refresh(appt)
        previous = appt.status
        _apply_status(appt, actor, target, reason)
        db.commit()
        db.refresh(appt)

    logger.info("Cita %s: %s → %s por %s(%s)",
                appt.id, previous.value, target.value, actor.role.value, actor.id)
    return appt


def cancel(db: Session, actor: Actor, appt: models.Appointment,
           reason: Optional[str] = None) -> models.Appointment:
    return change_status(db, actor, appt, S.cancelled, reason)


def set_session_phase(db: Session, actor: Actor, appt: models.Appointment,
                      phase: models.SessionPhase) -> models.Appointment:
    authorize_appointment(db, actor, Capability.change_phase, appt)

    with partition_lock(appt.doctor_id, appt.date):
        db.refresh(appt)
        previous = appt.session_phase
        appt.session_phase = phase
        db.commit()
        db.refresh(appt)

    logger.info("Cita %s: fase %s → %s", appt.id, previous.value, phase.value)
    return appt
