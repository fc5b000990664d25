# hospital_scheduler/services/access.py
"""
Autorización por rol + propiedad.

La identidad (id y rol del usuario) viene del gateway; aquí solo se decide
qué puede hacer cada rol y sobre qué citas.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from .. import models
from ..errors import ForbiddenError

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    patient = "patient"
    doctor = "doctor"
    admin = "admin"
    organization_admin = "organization_admin"


class Capability(str, enum.Enum):
    book = "book"
    view = "view"
    cancel = "cancel"
    change_status = "change_status"
    change_phase = "change_phase"
    reorder = "reorder"
    view_queue = "view_queue"


# Qué roles pueden intentar cada operación (la propiedad se valida aparte)
CAPABILITIES: Dict[Capability, FrozenSet[Role]] = {
    Capability.book: frozenset({Role.patient}),
    Capability.view: frozenset({Role.patient, Role.doctor, Role.admin, Role.organization_admin}),
    Capability.cancel: frozenset({Role.patient, Role.doctor, Role.admin}),
    Capability.change_status: frozenset({Role.doctor, Role.admin}),
    Capability.change_phase: frozenset({Role.doctor, Role.admin}),
    Capability.reorder: frozenset({Role.doctor, Role.admin}),
    Capability.view_queue: frozenset({Role.doctor, Role.admin, Role.organization_admin}),
}


@dataclass(frozen=True)
class Actor:
    id: int
    role: Role

    @property
    def cancelled_by(self) -> models.CancelledBy:
        return models.CancelledBy(self.role.value)


def require(actor: Actor, capability: Capability) -> None:
    if actor.role not in CAPABILITIES[capability]:
        logger.warning("Acceso denegado: actor=%s role=%s capability=%s",
                       actor.id, actor.role.value, capability.value)
        raise ForbiddenError("Acceso denegado. Permisos de rol insuficientes.")


def doctor_for_actor(db: Session, actor: Actor) -> Optional[models.Doctor]:
    if actor.role != Role.doctor:
        return None
    return db.query(models.Doctor).filter(models.Doctor.user_id == actor.id).first()


def administered_hospital_ids(db: Session, actor: Actor) -> set[int]:
    """Hospitales aprobados que administra un organization_admin."""
    rows = (
        db.query(models.Hospital.id)
        .filter(models.Hospital.organization_admin_id == actor.id)
        .filter(models.Hospital.approval_status == models.ApprovalStatus.approved)
        .all()
    )
    return {r[0] for r in rows}


def _owns_partition(db: Session, actor: Actor, doctor_id: int, hospital_id: Optional[int]) -> bool:
    if actor.role == Role.admin:
        return True
    if actor.role == Role.doctor:
        doctor = doctor_for_actor(db, actor)
        return doctor is not None and doctor.id == doctor_id
    if actor.role == Role.organization_admin:
        if hospital_id is None:
            doctor = db.get(models.Doctor, doctor_id)
            hospital_id = doctor.hospital_id if doctor else None
        return hospital_id is not None and hospital_id in administered_hospital_ids(db, actor)
    return False


def authorize_appointment(db: Session, actor: Actor, capability: Capability,
                          appt: models.Appointment) -> None:
    """Rol permitido para la operación y dueño de la cita."""
    require(actor, capability)

    if actor.role == Role.patient:
        allowed = appt.patient_id == actor.id
    else:
        allowed = _owns_partition(db, actor, appt.doctor_id, appt.hospital_id)

    if not allowed:
        logger.warning("Acceso denegado: actor=%s role=%s appointment=%s capability=%s",
                       actor.id, actor.role.value, appt.id, capability.value)
        raise ForbiddenError("Acceso denegado")


def authorize_partition(db: Session, actor: Actor, capability: Capability,
                        doctor_id: int, day: date) -> None:
    """Igual que authorize_appointment pero para la cola completa de un doctor."""
    require(actor, capability)
    if not _owns_partition(db, actor, doctor_id, None):
        logger.warning("Acceso denegado a la cola doctor_id=%s date=%s actor=%s role=%s",
                       doctor_id, day, actor.id, actor.role.value)
        raise ForbiddenError("Acceso denegado")
