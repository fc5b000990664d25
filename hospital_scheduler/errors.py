# hospital_scheduler/errors.py
"""
Errores de dominio de la agenda. Los servicios los lanzan y main.py los
convierte en respuestas JSON con el status HTTP de cada clase.
"""
from fastapi import Request
from fastapi.responses import JSONResponse


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    status_code = 404


class ForbiddenError(SchedulingError):
    status_code = 403


class ConflictError(SchedulingError):
    status_code = 409


class ValidationError(SchedulingError):
    status_code = 400


class AllocationError(SchedulingError):
    """No se pudo calcular la posición en cola; la reserva se revierte."""
    status_code = 500


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
