# hospital_scheduler/routers/admin.py
from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from ..config import settings
from ..database import get_db
from ..deps import parse_day, require_admin_token
from ..services import queue
from ..services.scheduling import TIMEZONE, SLOT_MINUTES

router = APIRouter(tags=["admin"])

# ──────────────────────────────────────────────────────────────────────────────
# Básicos
# (recuerda: main.py monta este router con prefix="/admin")
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/ping")
def admin_ping():
    return {"ok": True, "ts": datetime.utcnow().isoformat()}


@router.get("/health")
def admin_health():
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "tz": TIMEZONE,
        "slot_minutes": SLOT_MINUTES,
        "scheduler": settings.ENABLE_SCHEDULER,
        "ts": datetime.utcnow().isoformat(),
    }


# ──────────────────────────────────────────────────────────────────────────────
# Colas: reconciliación masiva
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/queues/reconcile")
def admin_reconcile_queues(
    date: Optional[str] = Query(None, description="YYYY-MM-DD (por defecto: todas las fechas)"),
    _: None = Depends(require_admin_token),
    db: Session = Depends(get_db),
):
    """
    Reescribe 1..n en todas las colas activas (o solo las de la fecha dada).
    Útil después de cancelaciones masivas o datos importados.
    """
    day = parse_day(date) if date else None
    result = queue.reconcile_all(db, day)
    return {"ok": True, "date": day.isoformat() if day else None, **result}
