from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, Union

from ..database import get_db
from .. import schemas
from ..deps import parse_day
from ..errors import NotFoundError
from ..services.directory import get_doctor_or_404
from ..services.scheduling import available_slots

router = APIRouter(prefix="/doctors", tags=["doctors"])


def _active_doctor(db: Session, doctor_id: int):
    doctor = get_doctor_or_404(db, doctor_id)
    if not doctor.is_active:
        raise NotFoundError("Doctor no encontrado")
    return doctor


def _slots_response(db: Session, doctor, date: str) -> schemas.SlotsResponse:
    listing = available_slots(db, doctor, parse_day(date))
    if not listing.available:
        return schemas.SlotsResponse(date=listing.day, available=False)
    start, end = listing.window
    return schemas.SlotsResponse(
        date=listing.day,
        available=True,
        start_time=start.strftime("%H:%M"),
        end_time=end.strftime("%H:%M"),
        slots=[schemas.SlotOut(time=s.time, booked=s.booked) for s in listing.slots],
        available_slots=listing.free,
    )


@router.get(
    "/{doctor_id}/availability",
    response_model=Union[schemas.SlotsResponse, schemas.WeeklyAvailabilityResponse],
)
def get_availability(doctor_id: int, date: Optional[str] = Query(None, description="YYYY-MM-DD"),
                     db: Session = Depends(get_db)):
    """
    Sin fecha: horario semanal del doctor. Con fecha: ventana del día y slots.
    Público (no requiere identidad).
    """
    doctor = _active_doctor(db, doctor_id)
    if not date:
        return schemas.WeeklyAvailabilityResponse(
            doctor_id=doctor.id,
            availability=[schemas.AvailabilityEntryOut.model_validate(a) for a in doctor.availability],
        )
    return _slots_response(db, doctor, date)


@router.get("/{doctor_id}/slots", response_model=schemas.SlotsResponse)
def get_slots(doctor_id: int, date: str = Query(..., description="YYYY-MM-DD"), db: Session = Depends(get_db)):
    doctor = _active_doctor(db, doctor_id)
    return _slots_response(db, doctor, date)
