"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable
from fastapi import FastAPI
from loguru import logger

from app.core.config import settings
from app.infrastructure.external.sheet_sync.sync_service import build_from_settings
from app.infrastructure.scheduler.poll_scheduler import PollScheduler


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Construye el sync, garantiza la tabla y arranca el poller."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Configurar logging adicional
            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            # Validar configuracion critica
            _validate_config()

            runtime = await asyncio.to_thread(build_from_settings, settings)
            app.state.sync_runtime = runtime
            app.state.sheet_sync = runtime.use_cases

            # Crear tabla y trigger de updated_at si no existen
            await asyncio.to_thread(runtime.datastore.ensure_table)
            logger.info(f"Tabla {runtime.config.target_schema}.{runtime.config.target_table} lista")

            scheduler = PollScheduler(
                runtime.use_cases,
                interval_seconds=runtime.config.poll_interval_seconds,
            )
            app.state.scheduler = scheduler
            if settings.POLL_ENABLED:
                scheduler.start()
            else:
                logger.warning("POLL_ENABLED=false: el sync tabla -> hoja queda desactivado")

            logger.success("Aplicacion iniciada correctamente")

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.SPREADSHEET_ID:
        warnings.append("SPREADSHEET_ID no configurado - el sync no puede iniciar")

    if not settings.GOOGLE_CREDENTIALS and not settings.GOOGLE_CREDENTIALS_FILE:
        warnings.append("GOOGLE_CREDENTIALS / GOOGLE_CREDENTIALS_FILE no configuradas")

    if not settings.DATABASE_URL:
        warnings.append(
            f"DATABASE_URL vacia - se usa {settings.DATABASE_HOST}:{settings.DATABASE_PORT}/{settings.DATABASE_NAME}"
        )

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Detiene el poller y libera el pool de conexiones."""
        logger.info("Cerrando aplicacion...")

        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            scheduler.shutdown()

        runtime = getattr(app.state, "sync_runtime", None)
        if runtime is not None:
            await asyncio.to_thread(runtime.close)
            logger.info("Pool de conexiones cerrado")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Ciclo de vida de la aplicacion (FastAPI(lifespan=...)).

    Ejecuta el startup al arrancar y el shutdown al cerrar, aunque el
    servidor se detenga por un error.
    """
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
