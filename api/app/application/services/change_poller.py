"""
Poller de cambios tabla -> hoja.

Cada ciclo:
- captura `started_at` y lee el watermark
- selecciona filas con updated_at > watermark
- lee el header de la hoja una sola vez (cache del ciclo)
- escribe cada fila en la posicion indicada por su row_id
- avanza el watermark a `started_at` solo si no hubo fallos

Avanzar a `started_at` (y no a "ahora" al terminar) evita perder para
siempre una escritura en la tabla que ocurra a mitad de ciclo. Si alguna
fila falla, el watermark no se mueve y el proximo tick la reintenta; las
que si se escribieron pueden enviarse una vez mas.
"""
from __future__ import annotations

from typing import Optional

from loguru import logger

from app.application.interfaces.sync_ports import (
    Datastore,
    DatastoreError,
    SheetClient,
    SheetClientError,
)
from app.application.services.column_naming import project_row
from app.application.services.watermark import WatermarkTracker
from app.domain.entities.sheet_sync import PollResult
from app.shared.exceptions.domain import TransientIOException, WriteException
from app.shared.utils.datetime_utils import DateTimeUtils

# La fila 1 es el header de la hoja
FIRST_DATA_ROW = 2


def sheet_position(row_id: str) -> Optional[int]:
    """
    Numero de fila en la hoja para un row_id, o None si no es direccionable.

    El header (fila 1) nunca se sobrescribe.
    """
    try:
        position = int(str(row_id).strip())
    except (TypeError, ValueError):
        return None
    if position < FIRST_DATA_ROW:
        return None
    return position


class ChangePoller:
    """Empuja a la hoja las filas modificadas en la tabla desde el watermark."""

    def __init__(
        self,
        *,
        datastore: Datastore,
        sheet_client: SheetClient,
        watermark: WatermarkTracker,
    ) -> None:
        self._datastore = datastore
        self._sheet = sheet_client
        self._watermark = watermark

    def run_cycle(self) -> PollResult:
        """
        Ejecuta un ciclo completo.

        Raises:
            TransientIOException: no se pudo consultar la tabla o leer el header
            WriteException: la hoja no tiene header
        """
        started_at = DateTimeUtils.now_utc()
        since = self._watermark.get()
        result = PollResult(started_at=started_at)

        try:
            rows = self._datastore.select_modified_since(since)
        except DatastoreError as e:
            raise TransientIOException(f"Error consultando cambios en la tabla: {e}", system="datastore") from e

        result.selected = len(rows)
        if not rows:
            result.finished_at = DateTimeUtils.now_utc()
            return result

        logger.info(f"Poll: {len(rows)} fila(s) modificadas desde {since.isoformat()}")
        headers = self._read_headers()

        for row in rows:
            position = sheet_position(row.row_id)
            if position is None:
                result.skipped += 1
                logger.warning(f"Fila {row.row_id!r} sin posicion valida en la hoja. Se omite.")
                continue

            values = project_row(headers, row.values)
            try:
                self._sheet.write_row(position, values)
                result.pushed += 1
            except SheetClientError as e:
                result.failed += 1
                result.failed_row_ids.append(row.row_id)
                logger.error(f"Error escribiendo la fila {row.row_id} en la hoja: {e}")
            except Exception as e:
                # Un error no traducido en una fila no debe frenar al resto
                result.failed += 1
                result.failed_row_ids.append(row.row_id)
                logger.opt(exception=e).error(f"Error inesperado escribiendo la fila {row.row_id}: {e}")

        if result.failed == 0:
            if self._watermark.advance(started_at):
                result.advanced_to = started_at
        else:
            logger.warning(
                f"Poll con {result.failed} fallo(s); watermark sin avanzar "
                f"(se reintenta en el proximo ciclo)"
            )

        result.finished_at = DateTimeUtils.now_utc()
        logger.info(
            f"Poll completado. pushed={result.pushed}, failed={result.failed}, skipped={result.skipped}"
        )
        return result

    def _read_headers(self) -> list[str]:
        try:
            headers = self._sheet.get_header_row()
        except SheetClientError as e:
            raise TransientIOException(f"Error leyendo el header de la hoja: {e}", system="sheet") from e

        if not headers:
            raise WriteException("La hoja no tiene header en la fila 1; no hay orden de columnas")
        return [str(h) for h in headers]
