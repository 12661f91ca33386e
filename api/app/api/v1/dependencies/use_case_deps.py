"""
Dependencias para inyeccion de casos de uso.

Las instancias viven en `app.state` (se crean en el startup) y se
comparten entre requests: el watermark del sync debe ser uno solo.
"""
from typing import Optional

from fastapi import Request

from app.application.use_cases.sheet_sync_use_cases import SheetSyncUseCases
from app.infrastructure.scheduler.poll_scheduler import PollScheduler
from app.shared.exceptions.domain import TransientIOException


def get_sheet_sync_use_cases(request: Request) -> SheetSyncUseCases:
    """
    Dependencia para obtener los casos de uso del sync.

    Raises:
        TransientIOException: si el servicio aun no se inicializo
    """
    use_cases = getattr(request.app.state, "sheet_sync", None)
    if use_cases is None:
        raise TransientIOException("El servicio de sync no esta inicializado", system="service")
    return use_cases


def get_poll_scheduler(request: Request) -> Optional[PollScheduler]:
    """Dependencia para obtener el scheduler del poller (puede no existir)."""
    return getattr(request.app.state, "scheduler", None)
