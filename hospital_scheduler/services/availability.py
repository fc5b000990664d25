# hospital_scheduler/services/availability.py
from __future__ import annotations
import re
from datetime import date, time
from typing import Optional, Tuple

from .. import models
from ..errors import ValidationError

# Acepta "9:00" y "09:00"; siempre se guarda con cero a la izquierda
_HHMM_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")

_WEEKDAYS = [
    models.Weekday.monday,
    models.Weekday.tuesday,
    models.Weekday.wednesday,
    models.Weekday.thursday,
    models.Weekday.friday,
    models.Weekday.saturday,
    models.Weekday.sunday,
]

Window = Tuple[time, time]


def parse_hhmm(value: str) -> time:
    m = _HHMM_RE.match((value or "").strip())
    if not m:
        raise ValidationError(f"Hora inválida '{value}'. Usa HH:MM.")
    return time(int(m.group(1)), int(m.group(2)))


def normalize_hhmm(value: str) -> str:
    return parse_hhmm(value).strftime("%H:%M")


def weekday_of(day: date) -> models.Weekday:
    return _WEEKDAYS[day.weekday()]


def resolve_window(doctor: models.Doctor, day: date) -> Optional[Window]:
    """
    Ventana (inicio, fin) del doctor para ese día según su horario semanal.
    None si no hay entrada para el día o está marcada como no disponible.
    """
    weekday = weekday_of(day)
    entry = next((a for a in doctor.availability if a.day == weekday), None)
    if entry is None or not entry.is_available:
        return None
    return parse_hhmm(entry.start_time), parse_hhmm(entry.end_time)


def is_within_window(window: Window, hhmm: str) -> bool:
    start, end = window
    return start <= parse_hhmm(hhmm) < end

