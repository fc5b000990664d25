from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional

from .models import (
    AppointmentStatus, AppointmentType, CancelledBy, PaymentStatus, SessionPhase, Weekday,
)


class BookRequest(BaseModel):
    hospital_id: int
    doctor_id: int
    date: date
    time: str = Field(..., description="HH:MM")
    type: AppointmentType = AppointmentType.consultation
    symptoms: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=2000)
    duration: Optional[int] = Field(default=None, ge=15, le=120)


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    hospital_id: int
    date: date
    time: str
    duration: int
    status: AppointmentStatus
    status_display: str
    session_phase: SessionPhase
    session_phase_display: str
    queue_position: int
    type: AppointmentType
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    consultation_fee: float
    payment_status: PaymentStatus
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[CancelledBy] = None
    created_at: datetime
    updated_at: datetime


class BookResponse(BaseModel):
    message: str
    appointment: AppointmentOut


class AppointmentResponse(BaseModel):
    message: str
    appointment: AppointmentOut


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentOut]
    total_pages: int
    current_page: int
    total: int


class StatusRequest(BaseModel):
    status: str
    cancellation_reason: Optional[str] = Field(default=None, max_length=500)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class SessionPhaseRequest(BaseModel):
    session_phase: str


class ReorderItem(BaseModel):
    id: int
    new_position: int = Field(..., ge=1)


class ReorderRequest(BaseModel):
    doctor_id: int
    date: date
    appointments: list[ReorderItem]


class QueueResponse(BaseModel):
    appointments: list[AppointmentOut]
    total: int


class SlotOut(BaseModel):
    time: str
    booked: bool


class SlotsResponse(BaseModel):
    date: date
    available: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slots: list[SlotOut] = []
    available_slots: list[str] = []


class AvailabilityEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: Weekday
    start_time: str
    end_time: str
    is_available: bool


class WeeklyAvailabilityResponse(BaseModel):
    doctor_id: int
    availability: list[AvailabilityEntryOut]
