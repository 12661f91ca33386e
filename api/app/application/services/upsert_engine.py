"""
Motor de upsert hoja -> tabla.

Para un registro entrante:
1. valida row_id y data
2. proyecta los nombres de campo a columnas seguras
3. evoluciona el esquema (SchemaAdapter)
4. ejecuta un INSERT ... ON CONFLICT unico, keyed por row_id
5. avanza el watermark para que el poller no devuelva este mismo cambio
   a la hoja (eco)

Idempotencia: repetir la misma llamada deja el mismo estado almacenado.
No hay reintentos internos; la politica de reintento es del transporte.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from app.application.interfaces.sync_ports import Datastore, DatastoreError
from app.application.services.column_naming import sanitize_column_name
from app.application.services.schema_adapter import SchemaAdapter
from app.application.services.watermark import WatermarkTracker
from app.domain.entities.sheet_sync import Scalar
from app.shared.constants.sync_constants import RESERVED_COLUMNS
from app.shared.exceptions.domain import InvalidInputException, WriteException
from app.shared.utils.datetime_utils import DateTimeUtils


@dataclass(frozen=True)
class UpsertResult:
    """Resumen de un upsert para logging y para la respuesta HTTP."""

    row_id: str
    columns: list[str]
    dropped: list[str] = field(default_factory=list)
    stored_at: Optional[datetime] = None


def to_cell_text(value: Scalar) -> Optional[str]:
    """
    Convierte un escalar al texto que se guarda en una columna TEXT.

    Los booleanos se guardan como los muestra la hoja (TRUE/FALSE).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


class UpsertEngine:
    """Upsert idempotente de un registro, con esquema dinamico."""

    def __init__(
        self,
        *,
        datastore: Datastore,
        schema_adapter: SchemaAdapter,
        watermark: WatermarkTracker,
    ) -> None:
        self._datastore = datastore
        self._schema = schema_adapter
        self._watermark = watermark

    def upsert(self, row_id: Any, record: Optional[Mapping[str, Scalar]]) -> UpsertResult:
        """
        Inserta o actualiza la fila `row_id` con los campos de `record`.

        Raises:
            InvalidInputException: row_id o record vacios
            SchemaException: la tabla no pudo evolucionar (base caida)
            WriteException: fallo ejecutando el upsert
        """
        external_id = _validate_row_id(row_id)
        if not isinstance(record, Mapping) or not record:
            raise InvalidInputException("El registro 'data' es requerido y no puede estar vacio", field="data")

        fields = self._project_fields(external_id, record)
        available = self._schema.ensure_columns(fields.keys())

        writable = {c: v for c, v in fields.items() if c in available}
        dropped = [c for c in fields if c not in available]
        if dropped:
            logger.warning(f"Fila {external_id}: campos descartados sin columna: {dropped}")

        try:
            stored_at = self._datastore.upsert(external_id, writable)
        except DatastoreError as e:
            # Una columna pudo desaparecer por fuera: re-listar en la proxima llamada
            self._schema.invalidate()
            raise WriteException(f"Error escribiendo la fila {external_id}: {e}", row_id=external_id) from e

        # Avanzar hasta la marca que guardo la base si su reloj va adelantado
        mark = DateTimeUtils.now_utc()
        if stored_at is not None:
            mark = max(mark, DateTimeUtils.ensure_utc(stored_at))
        self._watermark.advance(mark)

        logger.info(f"Upsert fila {external_id}: {len(writable)} columna(s)")
        return UpsertResult(
            row_id=external_id,
            columns=sorted(writable),
            dropped=dropped,
            stored_at=stored_at,
        )

    def _project_fields(self, row_id: str, record: Mapping[str, Scalar]) -> Dict[str, Optional[str]]:
        fields: Dict[str, Optional[str]] = {}
        for name, value in record.items():
            column = sanitize_column_name(name)
            if not column:
                logger.warning(f"Fila {row_id}: campo sin nombre ignorado")
                continue
            if column in RESERVED_COLUMNS:
                logger.warning(f"Fila {row_id}: campo reservado '{name}' ignorado")
                continue
            if column in fields:
                logger.warning(f"Fila {row_id}: '{name}' colisiona con otra columna '{column}'. Gana el ultimo.")
            fields[column] = to_cell_text(value)
        return fields


def _validate_row_id(row_id: Any) -> str:
    if row_id is None or isinstance(row_id, bool):
        raise InvalidInputException("El campo 'row_id' es requerido", field="row_id")
    external_id = str(row_id).strip()
    if not external_id:
        raise InvalidInputException("El campo 'row_id' no puede estar vacio", field="row_id")
    return external_id
