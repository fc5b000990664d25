from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    Integer, String, Date, DateTime, Enum, ForeignKey, Boolean, Numeric, Text, Index, text,
)
from datetime import date as date_type, datetime
import enum
from .database import Base


def _values(enum_cls):
    # Guarda el valor ("in-progress") y no el nombre del miembro ("in_progress")
    return [m.value for m in enum_cls]


class ApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Weekday(str, enum.Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no-show"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class SessionPhase(str, enum.Enum):
    waiting = "waiting"
    data_collection = "data-collection"
    initial_assessment = "initial-assessment"
    examination = "examination"
    diagnosis = "diagnosis"
    treatment = "treatment"
    surgery = "surgery"
    recovery = "recovery"
    follow_up = "follow-up"
    discharge = "discharge"

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


class AppointmentType(str, enum.Enum):
    consultation = "consultation"
    follow_up = "follow-up"
    emergency = "emergency"
    routine = "routine"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"


class CancelledBy(str, enum.Enum):
    patient = "patient"
    doctor = "doctor"
    admin = "admin"


_STATUS_LABELS = {
    AppointmentStatus.scheduled: "Scheduled",
    AppointmentStatus.confirmed: "Confirmed",
    AppointmentStatus.in_progress: "In Progress",
    AppointmentStatus.completed: "Completed",
    AppointmentStatus.cancelled: "Cancelled",
    AppointmentStatus.no_show: "No Show",
}

_PHASE_LABELS = {
    SessionPhase.waiting: "Waiting",
    SessionPhase.data_collection: "Data Collection",
    SessionPhase.initial_assessment: "Initial Assessment",
    SessionPhase.examination: "Examination",
    SessionPhase.diagnosis: "Diagnosis",
    SessionPhase.treatment: "Treatment",
    SessionPhase.surgery: "Surgery",
    SessionPhase.recovery: "Recovery",
    SessionPhase.follow_up: "Follow-up",
    SessionPhase.discharge: "Discharge",
}

# Cuentan para la cola del día
ACTIVE_STATUSES = (
    AppointmentStatus.scheduled,
    AppointmentStatus.confirmed,
    AppointmentStatus.in_progress,
)
# Ocupan el horario (chequeo de conflicto y slots)
BOOKING_STATUSES = (
    AppointmentStatus.scheduled,
    AppointmentStatus.confirmed,
)
TERMINAL_STATUSES = (
    AppointmentStatus.completed,
    AppointmentStatus.cancelled,
    AppointmentStatus.no_show,
)


# ──────────────────────────────────────────────────────────────────────────────
# Directorio (solo lectura para la agenda)
# ──────────────────────────────────────────────────────────────────────────────
class Hospital(Base):
    __tablename__ = "hospitals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status", values_callable=_values),
        default=ApprovalStatus.pending, nullable=False,
    )
    # user id del organization_admin que administra el hospital
    organization_admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    doctors = relationship("Doctor", back_populates="hospital")


class Doctor(Base):
    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # id del usuario (identidad) del doctor
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)
    hospital_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("hospitals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    specialization: Mapped[str] = mapped_column(String(120), nullable=False, default="general")
    consultation_fee: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status", values_callable=_values),
        default=ApprovalStatus.pending, nullable=False,
    )

    hospital = relationship("Hospital", back_populates="doctors")
    availability = relationship(
        "DoctorAvailability",
        back_populates="doctor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DoctorAvailability(Base):
    __tablename__ = "doctor_availability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    doctor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day: Mapped[Weekday] = mapped_column(Enum(Weekday, name="weekday", values_callable=_values), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)    # HH:MM
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    doctor = relationship("Doctor", back_populates="availability")


# ──────────────────────────────────────────────────────────────────────────────
# Citas
# ──────────────────────────────────────────────────────────────────────────────
class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_partition", "doctor_id", "date", "queue_position"),
        Index("ix_appointments_patient_date", "patient_id", "date"),
        Index("ix_appointments_status_date", "status", "date"),
        # Respaldo a nivel BD: un solo scheduled/confirmed por (doctor, día, hora)
        Index(
            "uq_appointments_booked_slot",
            "doctor_id", "date", "time",
            unique=True,
            sqlite_where=text("status IN ('scheduled', 'confirmed')"),
            postgresql_where=text("status IN ('scheduled', 'confirmed')"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False)
    doctor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False
    )
    hospital_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("hospitals.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status", values_callable=_values),
        default=AppointmentStatus.scheduled, nullable=False,
    )
    session_phase: Mapped[SessionPhase] = mapped_column(
        Enum(SessionPhase, name="session_phase", values_callable=_values),
        default=SessionPhase.waiting, nullable=False,
    )
    queue_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[AppointmentType] = mapped_column(
        Enum(AppointmentType, name="appointment_type", values_callable=_values),
        default=AppointmentType.consultation, nullable=False,
    )
    symptoms: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    consultation_fee: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=_values),
        default=PaymentStatus.pending, nullable=False,
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cancelled_by: Mapped[Optional[CancelledBy]] = mapped_column(
        Enum(CancelledBy, name="cancelled_by", values_callable=_values), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    doctor = relationship("Doctor")
    hospital = relationship("Hospital")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def status_display(self) -> str:
        return self.status.label

    @property
    def session_phase_display(self) -> str:
        return self.session_phase.label
