"""
Watermark del sync: instante hasta el cual la tabla ya fue reconciliada
hacia la hoja.

Lo avanzan ambos caminos (inbound tras un upsert, poller tras un ciclo
completo), por eso es el unico estado mutable compartido del proceso.
Nunca retrocede y no se persiste: al reiniciar arranca en "ahora".
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional

from loguru import logger

from app.shared.utils.datetime_utils import DateTimeUtils


class WatermarkTracker:
    """
    Marca de tiempo monotona protegida por `threading.Lock`.

    Los dos caminos corren en threads del pool de asyncio
    (`asyncio.to_thread`), asi que un lock de threading es suficiente.
    """

    def __init__(self, initial: Optional[datetime] = None) -> None:
        self._lock = threading.Lock()
        self._value = DateTimeUtils.ensure_utc(initial or DateTimeUtils.now_utc())

    def get(self) -> datetime:
        with self._lock:
            return self._value

    def advance(self, candidate: datetime) -> bool:
        """
        Avanza el watermark solo si `candidate` es estrictamente posterior.

        Returns:
            True si el valor cambio.
        """
        candidate = DateTimeUtils.ensure_utc(candidate)
        with self._lock:
            if candidate <= self._value:
                return False
            self._value = candidate
        logger.debug(f"Watermark avanzado a {candidate.isoformat()}")
        return True
