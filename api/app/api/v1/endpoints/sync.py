"""
Endpoints del sync bidireccional hoja <-> tabla.

- POST /sync/from-sheet: la hoja empuja una fila editada (hoja -> tabla)
- POST /sync/poll: ejecuta un ciclo de polling ahora (tabla -> hoja)
- GET  /sync/status: watermark y ultimo ciclo
- PUT  /sync/settings/poll-interval: reprograma el poller en caliente
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from app.api.v1.dependencies.use_case_deps import get_poll_scheduler, get_sheet_sync_use_cases
from app.application.dto.sync_dto import (
    InboundAckDTO,
    InboundRecordDTO,
    PollIntervalUpdateDTO,
    PollResultDTO,
    SyncStatusDTO,
)
from app.application.use_cases.sheet_sync_use_cases import SheetSyncUseCases
from app.infrastructure.scheduler.poll_scheduler import PollScheduler


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/from-sheet",
    response_model=InboundAckDTO,
    status_code=status.HTTP_200_OK,
    summary="Upsert de una fila enviada por la hoja"
)
async def sync_from_sheet(
    payload: InboundRecordDTO,
    use_cases: SheetSyncUseCases = Depends(get_sheet_sync_use_cases),
) -> InboundAckDTO:
    """
    Inserta o actualiza la fila `row_id` con los valores de `data`.

    - Campos nuevos crean columnas TEXT en la tabla.
    - Los errores se devuelven con {"error", "message", "details"}:
      INVALID_INPUT (400), SCHEMA_ERROR (500), WRITE_ERROR (500),
      TRANSIENT_IO_ERROR (503).
    """
    # I/O bloqueante (psycopg): thread separado para no bloquear el event loop
    result = await asyncio.to_thread(use_cases.handle_inbound, payload.row_id, payload.data)
    return InboundAckDTO(
        status="ok",
        row_id=result.row_id,
        columns=result.columns,
        dropped=result.dropped,
    )


@router.post(
    "/poll",
    response_model=PollResultDTO,
    status_code=status.HTTP_200_OK,
    summary="Ejecutar un ciclo de polling tabla -> hoja"
)
async def run_poll_cycle(
    use_cases: SheetSyncUseCases = Depends(get_sheet_sync_use_cases),
) -> PollResultDTO:
    """
    Ejecuta un ciclo ahora, sin esperar al scheduler.

    Si ya hay un ciclo en curso, retorna sin hacer nada (error informativo).
    """
    logger.info("Ciclo de polling solicitado desde API")
    result = await asyncio.to_thread(use_cases.run_poll_cycle)
    return PollResultDTO.from_result(result)


@router.get(
    "/status",
    response_model=SyncStatusDTO,
    summary="Estado del sync"
)
async def get_sync_status(
    use_cases: SheetSyncUseCases = Depends(get_sheet_sync_use_cases),
    scheduler: Optional[PollScheduler] = Depends(get_poll_scheduler),
) -> SyncStatusDTO:
    """Watermark actual, contadores y resultado del ultimo ciclo."""
    current = use_cases.status()
    last_poll = current["last_poll"]
    return SyncStatusDTO(
        watermark=current["watermark"],
        poll_running=bool(scheduler and scheduler.running),
        poll_interval_seconds=scheduler.interval_seconds if scheduler else None,
        poll_cycles=current["poll_cycles"],
        failed_poll_cycles=current["failed_poll_cycles"],
        inbound_writes=current["inbound_writes"],
        known_columns=current["known_columns"],
        last_poll=PollResultDTO.from_result(last_poll) if last_poll else None,
    )


@router.put(
    "/settings/poll-interval",
    summary="Reprogramar el intervalo del poller"
)
async def update_poll_interval(
    body: PollIntervalUpdateDTO,
    scheduler: Optional[PollScheduler] = Depends(get_poll_scheduler),
):
    """
    Actualiza el intervalo del poller y reinicia el job.
    El cambio no se persiste: al reiniciar vuelve POLL_INTERVAL_SECONDS.
    """
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="El scheduler del poller no esta inicializado"
        )

    scheduler.reschedule(body.seconds)
    return {"message": f"Intervalo actualizado a {body.seconds}s", "success": True}
