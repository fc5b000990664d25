# hospital_scheduler/services/locks.py
"""
Serialización por partición (doctor_id, fecha).

Todas las escrituras sobre la cola de un doctor en un día (reserva, asignación
de posición, subir/bajar, reordenar, cambios de estado) pasan por el mismo
candado, así que se ejecutan de una en una. Las lecturas (slots, listados)
no lo toman.
"""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

PartitionKey = Tuple[int, date]

_REGISTRY_LOCK = threading.Lock()
_PARTITION_LOCKS: Dict[PartitionKey, threading.Lock] = {}


def _lock_for(key: PartitionKey) -> threading.Lock:
    with _REGISTRY_LOCK:
        lock = _PARTITION_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _PARTITION_LOCKS[key] = lock
        return lock


@contextmanager
def partition_lock(doctor_id: int, day: date):
    key = (int(doctor_id), day)
    while True:
        lock = _lock_for(key)
        lock.acquire()
        with _REGISTRY_LOCK:
            current = _PARTITION_LOCKS.get(key)
        if current is lock:
            break
        # La limpieza lo quitó entre la búsqueda y el acquire: usar el vigente
        lock.release()
    logger.debug("partition lock acquired doctor_id=%s date=%s", doctor_id, day)
    try:
        yield
    finally:
        lock.release()
        logger.debug("partition lock released doctor_id=%s date=%s", doctor_id, day)


def forget_partitions_before(day: date) -> int:
    """
    Libera candados de días pasados. Devuelve cuántos se quitaron.

    Solo quita los que nadie tiene tomados; quien ya buscó uno de estos y aún
    no lo toma lo detecta en partition_lock y vuelve a buscar.
    """
    with _REGISTRY_LOCK:
        stale = [k for k, lock in _PARTITION_LOCKS.items() if k[1] < day and not lock.locked()]
        for k in stale:
            del _PARTITION_LOCKS[k]
    return len(stale)
