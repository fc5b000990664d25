# hospital_scheduler/deps.py
from __future__ import annotations
from datetime import date
from typing import Optional

from dateutil import parser as dtparser
from fastapi import Header, HTTPException, status

from .config import settings
from .services.access import Actor, Role


def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """
    El gateway de identidad ya autenticó al usuario y nos pasa su id y rol.
    Aquí solo validamos que vengan y sean coherentes.
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Sin identidad, acceso denegado")
    try:
        actor_id = int(x_actor_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Identidad inválida")
    try:
        role = Role(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Rol inválido")
    return Actor(id=actor_id, role=role)


def require_admin_token(x_admin_token: Optional[str] = Header(None)) -> None:
    expected = (settings.ADMIN_TOKEN or "").strip()
    provided = (x_admin_token or "").strip()
    if not expected:
        raise HTTPException(status_code=403, detail="ADMIN_TOKEN no configurado")
    if provided != expected:
        raise HTTPException(status_code=401, detail="Token inválido")


def parse_day(value: str) -> date:
    try:
        return dtparser.isoparse(value).date()
    except (ValueError, OverflowError):
        raise HTTPException(status_code=400, detail="Formato de fecha inválido. Usa YYYY-MM-DD.")
