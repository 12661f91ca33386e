"""
Excepciones del motor de sincronización hoja <-> tabla.

Taxonomía expuesta al caller del flujo inbound:
- INVALID_INPUT: payload mal formado (no se reintenta)
- SCHEMA_ERROR: la evolución de columnas bloqueó la escritura
- WRITE_ERROR: fallo ejecutando el upsert o el push a la hoja
- TRANSIENT_IO_ERROR: conectividad con la base o con la hoja
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores de sincronización."""

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class InvalidInputException(SyncException):
    """Payload inbound inválido (falta row_id o data, o vienen vacíos)."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="INVALID_INPUT",
            status_code=400,
            details=details
        )


class SchemaException(SyncException):
    """La tabla destino no pudo evolucionar y la escritura no es posible."""

    def __init__(self, message: str, table: str = None):
        details = {"table": table} if table else None
        super().__init__(
            message=message,
            error_code="SCHEMA_ERROR",
            details=details
        )


class WriteException(SyncException):
    """Fallo ejecutando el upsert en la tabla o la escritura de una fila en la hoja."""

    def __init__(self, message: str, row_id: Any = None):
        details = {"row_id": str(row_id)} if row_id is not None else None
        super().__init__(
            message=message,
            error_code="WRITE_ERROR",
            details=details
        )


class TransientIOException(SyncException):
    """Fallo de conectividad; el poller se recupera solo en el siguiente tick."""

    def __init__(self, message: str, system: str = None):
        details = {"system": system} if system else None
        super().__init__(
            message=message,
            error_code="TRANSIENT_IO_ERROR",
            status_code=503,
            details=details
        )
