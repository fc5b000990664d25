from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import math

from ..database import get_db
from .. import models, schemas
from ..deps import get_current_actor, parse_day
from ..services import lifecycle, queue
from ..services.access import (
    Actor, Capability, Role, administered_hospital_ids, authorize_appointment,
    authorize_partition, doctor_for_actor, require,
)
from ..services.booking import book_appointment
from ..services.directory import get_appointment_or_404, get_doctor_or_404

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _out(appt: models.Appointment) -> schemas.AppointmentOut:
    return schemas.AppointmentOut.model_validate(appt)


def _queue_out(appts) -> schemas.QueueResponse:
    return schemas.QueueResponse(appointments=[_out(a) for a in appts], total=len(appts))


# ──────────────────────────────────────────────────────────────────────────────
# Reserva y consulta
# ──────────────────────────────────────────────────────────────────────────────
@router.post("", response_model=schemas.BookResponse, status_code=201)
def book(req: schemas.BookRequest, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    appt = book_appointment(
        db, actor,
        hospital_id=req.hospital_id,
        doctor_id=req.doctor_id,
        day=req.date,
        time=req.time,
        type=req.type,
        symptoms=req.symptoms,
        notes=req.notes,
        duration=req.duration,
    )
    return schemas.BookResponse(message="Cita reservada", appointment=_out(appt))


@router.get("", response_model=schemas.AppointmentListResponse)
def list_appointments(
    status: Optional[str] = None,
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    require(actor, Capability.view)
    q = db.query(models.Appointment)

    if actor.role == Role.patient:
        q = q.filter(models.Appointment.patient_id == actor.id)
    elif actor.role == Role.doctor:
        doctor = doctor_for_actor(db, actor)
        if doctor is None:
            return schemas.AppointmentListResponse(appointments=[], total_pages=0, current_page=page, total=0)
        q = q.filter(models.Appointment.doctor_id == doctor.id)
    elif actor.role == Role.organization_admin:
        hospital_ids = administered_hospital_ids(db, actor)
        if not hospital_ids:
            return schemas.AppointmentListResponse(appointments=[], total_pages=0, current_page=page, total=0)
        q = q.filter(models.Appointment.hospital_id.in_(hospital_ids))

    if status:
        q = q.filter(models.Appointment.status == lifecycle.parse_status(status))
    if date:
        q = q.filter(models.Appointment.date == parse_day(date))

    total = q.count()
    appts = (
        q.order_by(models.Appointment.date.asc(), models.Appointment.time.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return schemas.AppointmentListResponse(
        appointments=[_out(a) for a in appts],
        total_pages=math.ceil(total / limit),
        current_page=page,
        total=total,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Cola del doctor
# (van antes de /{appointment_id} para que no las capture)
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/queue/{doctor_id}/{date}", response_model=schemas.QueueResponse)
def get_queue(doctor_id: int, date: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    day = parse_day(date)
    get_doctor_or_404(db, doctor_id)
    authorize_partition(db, actor, Capability.view_queue, doctor_id, day)
    return _queue_out(queue.active_queue(db, doctor_id, day))


@router.put("/reorder-queue", response_model=schemas.QueueResponse)
def reorder(req: schemas.ReorderRequest, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    get_doctor_or_404(db, req.doctor_id)
    authorize_partition(db, actor, Capability.reorder, req.doctor_id, req.date)
    appts = queue.bulk_reorder(db, req.doctor_id, req.date, [(i.id, i.new_position) for i in req.appointments])
    return _queue_out(appts)


@router.post("/queue/{doctor_id}/{date}/reconcile", response_model=schemas.QueueResponse)
def reconcile(doctor_id: int, date: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    day = parse_day(date)
    get_doctor_or_404(db, doctor_id)
    authorize_partition(db, actor, Capability.reorder, doctor_id, day)
    return _queue_out(queue.reorder_queue(db, doctor_id, day))


# ──────────────────────────────────────────────────────────────────────────────
# Cita individual
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/{appointment_id}", response_model=schemas.AppointmentOut)
def get_appointment(appointment_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    appt = get_appointment_or_404(db, appointment_id)
    authorize_appointment(db, actor, Capability.view, appt)
    return _out(appt)


@router.put("/{appointment_id}/status", response_model=schemas.AppointmentResponse)
def update_status(appointment_id: int, req: schemas.StatusRequest,
                  db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    target = lifecycle.parse_status(req.status)
    appt = get_appointment_or_404(db, appointment_id)
    appt = lifecycle.change_status(db, actor, appt, target, req.cancellation_reason)
    return schemas.AppointmentResponse(message="Estado de la cita actualizado", appointment=_out(appt))


@router.delete("/{appointment_id}", response_model=schemas.AppointmentResponse)
def cancel(appointment_id: int, req: Optional[schemas.CancelRequest] = None,
           db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    appt = get_appointment_or_404(db, appointment_id)
    appt = lifecycle.cancel(db, actor, appt, req.reason if req else None)
    return schemas.AppointmentResponse(message="Cita cancelada", appointment=_out(appt))


@router.put("/{appointment_id}/session-phase", response_model=schemas.AppointmentResponse)
def update_session_phase(appointment_id: int, req: schemas.SessionPhaseRequest,
                         db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    phase = lifecycle.parse_phase(req.session_phase)
    appt = get_appointment_or_404(db, appointment_id)
    appt = lifecycle.set_session_phase(db, actor, appt, phase)
    return schemas.AppointmentResponse(message="Fase de la sesión actualizada", appointment=_out(appt))


@router.put("/{appointment_id}/move-up", response_model=schemas.AppointmentResponse)
def move_up(appointment_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    appt = get_appointment_or_404(db, appointment_id)
    authorize_appointment(db, actor, Capability.reorder, appt)
    appt = queue.move_up(db, appt)
    return schemas.AppointmentResponse(message="Cita movida hacia arriba en la cola", appointment=_out(appt))


@router.put("/{appointment_id}/move-down", response_model=schemas.AppointmentResponse)
def move_down(appointment_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    appt = get_appointment_or_404(db, appointment_id)
    authorize_appointment(db, actor, Capability.reorder, appt)
    appt = queue.move_down(db, appt)
    return schemas.AppointmentResponse(message="Cita movida hacia abajo en la cola", appointment=_out(appt))
