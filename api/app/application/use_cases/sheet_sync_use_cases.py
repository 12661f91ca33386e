"""
Casos de uso del sync bidireccional hoja <-> tabla.

Dos operaciones publicas:
- handle_inbound(row_id, data): la hoja empuja un registro (evento)
- run_poll_cycle(): la tabla empuja sus cambios a la hoja (periodico)

Ambas son sincronas (I/O bloqueante). Los callers async las ejecutan con
`asyncio.to_thread` para no bloquear el event loop, igual que el resto de
pipelines de sync del proyecto.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from app.application.interfaces.sync_ports import Datastore, SheetClient
from app.application.services.change_poller import ChangePoller
from app.application.services.schema_adapter import SchemaAdapter
from app.application.services.upsert_engine import UpsertEngine, UpsertResult
from app.application.services.watermark import WatermarkTracker
from app.domain.entities.sheet_sync import PollResult, Scalar
from app.shared.exceptions.base import AppException
from app.shared.utils.datetime_utils import DateTimeUtils


class SheetSyncUseCases:
    """
    Composicion del motor de sync.

    El watermark es propiedad de esta instancia y se comparte entre el
    camino inbound y el poller; es lo que evita los bucles de eco.
    """

    def __init__(
        self,
        *,
        datastore: Datastore,
        sheet_client: SheetClient,
        table_name: str = "sheet_sync",
        watermark: Optional[WatermarkTracker] = None,
    ) -> None:
        self.watermark = watermark or WatermarkTracker()
        self.schema_adapter = SchemaAdapter(datastore, table_name=table_name)
        self.upsert_engine = UpsertEngine(
            datastore=datastore,
            schema_adapter=self.schema_adapter,
            watermark=self.watermark,
        )
        self.poller = ChangePoller(
            datastore=datastore,
            sheet_client=sheet_client,
            watermark=self.watermark,
        )

        # Evita dos ciclos simultaneos (scheduler + endpoint manual)
        self._cycle_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._last_poll: Optional[PollResult] = None
        self._cycles = 0
        self._failed_cycles = 0
        self._inbound_writes = 0

    def handle_inbound(self, row_id: Any, data: Optional[Mapping[str, Scalar]]) -> UpsertResult:
        """
        Upsert de un registro enviado por la hoja.

        Los errores (InvalidInput, Schema, Write) se propagan al caller.
        """
        result = self.upsert_engine.upsert(row_id, data)
        with self._stats_lock:
            self._inbound_writes += 1
        return result

    def run_poll_cycle(self) -> PollResult:
        """
        Ejecuta un ciclo de polling.

        Nunca lanza: cualquier error queda en el log y en `PollResult.error`.
        El siguiente tick es el mecanismo de recuperacion.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Ciclo de polling ya en ejecucion. Saliendo.")
            return PollResult(
                started_at=DateTimeUtils.now_utc(),
                finished_at=DateTimeUtils.now_utc(),
                error="Ciclo de polling ya en ejecucion",
            )

        try:
            try:
                result = self.poller.run_cycle()
            except AppException as e:
                logger.error(f"Poll abortado ({e.error_code}): {e.message}")
                result = PollResult(
                    started_at=DateTimeUtils.now_utc(),
                    finished_at=DateTimeUtils.now_utc(),
                    error=e.message,
                )
            except Exception as e:
                logger.exception(f"Error inesperado en el poll: {e}")
                result = PollResult(
                    started_at=DateTimeUtils.now_utc(),
                    finished_at=DateTimeUtils.now_utc(),
                    error=str(e)[:2000],
                )

            with self._stats_lock:
                self._cycles += 1
                if not result.success:
                    self._failed_cycles += 1
                self._last_poll = result
            return result
        finally:
            self._cycle_lock.release()

    def status(self) -> Dict[str, Any]:
        """Estado del sync para el endpoint de status."""
        with self._stats_lock:
            return {
                "watermark": self.watermark.get(),
                "poll_cycles": self._cycles,
                "failed_poll_cycles": self._failed_cycles,
                "inbound_writes": self._inbound_writes,
                "known_columns": sorted(self.schema_adapter.known_columns),
                "last_poll": self._last_poll,
            }
