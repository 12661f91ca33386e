"""
Scheduler del poller tabla -> hoja.

Motivacion:
- El ciclo de polling es I/O bloqueante (psycopg + googleapiclient).
- Debe correr cada N segundos sin bloquear el event loop de FastAPI.
- Debe poder detenerse limpiamente en el shutdown.

Caracteristicas:
- AsyncIOScheduler + IntervalTrigger, un unico job con id fijo
- max_instances=1 y coalesce=True: si un ciclo se atrasa no se acumulan
- el ciclo se ejecuta en un thread via `asyncio.to_thread`
- intervalo reprogramable en caliente
"""

from __future__ import annotations

import asyncio
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.application.use_cases.sheet_sync_use_cases import SheetSyncUseCases
from app.shared.constants.sync_constants import DEFAULT_POLL_INTERVAL_SECONDS, POLL_JOB_ID


class PollScheduler:
    """Tarea periodica cancelable que ejecuta `run_poll_cycle`."""

    def __init__(
        self,
        use_cases: SheetSyncUseCases,
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        scheduler: Optional[AsyncIOScheduler] = None,
    ) -> None:
        self._use_cases = use_cases
        self._interval_seconds = float(interval_seconds)
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Registra el job y arranca el scheduler (requiere event loop activo)."""
        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=POLL_JOB_ID,
            name="Poll tabla -> hoja",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"Poller iniciado (cada {self._interval_seconds}s)")

    async def tick(self) -> None:
        result = await asyncio.to_thread(self._use_cases.run_poll_cycle)
        if result.error:
            logger.warning(f"Ciclo de polling sin exito: {result.error}")

    def reschedule(self, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("El intervalo debe ser > 0")
        self._interval_seconds = float(interval_seconds)
        if self._scheduler.get_job(POLL_JOB_ID) is not None:
            self._scheduler.reschedule_job(
                POLL_JOB_ID,
                trigger=IntervalTrigger(seconds=self._interval_seconds),
            )
        logger.info(f"Poller reprogramado: cada {self._interval_seconds}s")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Poller detenido")
