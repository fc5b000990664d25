import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from .. import database
from ..config import settings
from ..services.locks import forget_partitions_before
from ..services.queue import reconcile_all
from ..services.scheduling import today_local

logger = logging.getLogger(__name__)


def reconcile_job():
    """Cierra huecos en las colas de hoy (cancelaciones, no-shows)."""
    today = today_local()
    db: Session = database.SessionLocal()
    try:
        result = reconcile_all(db, today)
        dropped = forget_partitions_before(today)
        logger.info("reconcile_job date=%s %s locks_dropped=%s", today, result, dropped)
        return result
    finally:
        db.close()


def start_scheduler():
    scheduler = BackgroundScheduler(timezone=settings.TIMEZONE)
    scheduler.add_job(
        reconcile_job,
        IntervalTrigger(minutes=settings.RECONCILE_EVERY_MIN),
        id="reconcile_queues",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    return scheduler
