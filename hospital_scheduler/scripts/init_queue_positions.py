# hospital_scheduler/scripts/init_queue_positions.py
"""
Recalcula queue_position (1..n) en todas las colas activas de la BD.

    python -m hospital_scheduler.scripts.init_queue_positions
    python -m hospital_scheduler.scripts.init_queue_positions --date 2026-10-19
"""
import argparse

from dateutil import parser as dtparser

from hospital_scheduler.database import SessionLocal, init_db
from hospital_scheduler.services.queue import reconcile_all


def main(argv=None) -> dict:
    ap = argparse.ArgumentParser(description="Reconcilia las posiciones de cola.")
    ap.add_argument("--date", help="YYYY-MM-DD (por defecto: todas las fechas)")
    args = ap.parse_args(argv)

    day = dtparser.isoparse(args.date).date() if args.date else None
    init_db()
    db = SessionLocal()
    try:
        result = reconcile_all(db, day)
    finally:
        db.close()

    print(f"Colas reconciliadas: {result['partitions']} | citas actualizadas: {result['changed']}")
    return result


if __name__ == "__main__":
    main()
