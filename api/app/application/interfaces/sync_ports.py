"""
Contratos de los colaboradores externos del sync hoja <-> tabla.

Este contrato existe para:
- Que los casos de uso no dependan de psycopg ni de googleapiclient.
- Facilitar tests unitarios con fakes en memoria.

Las implementaciones deben traducir sus errores nativos a las excepciones
definidas aqui; los casos de uso solo conocen estas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from app.domain.entities.sheet_sync import ColumnInfo, TableRow


class DatastoreError(RuntimeError):
    """Error generico de la tabla destino (SQL invalido, restricciones, etc.)."""


class DatastoreUnavailableError(DatastoreError):
    """La base no responde: conexion caida, pool agotado, timeout."""


class DuplicateColumnError(DatastoreError):
    """La columna ya existe (otro escritor la creo primero)."""


class SheetClientError(RuntimeError):
    """Error de la API de la hoja que no se resuelve reintentando."""


class SheetUnavailableError(SheetClientError):
    """La API de la hoja no responde o limita la tasa (429/5xx)."""


class Datastore(Protocol):
    """
    Tabla destino con esquema dinamico.

    Implementaciones:
    - PostgreSQL via psycopg.
    - Fake en memoria para tests.
    """

    def list_columns(self) -> Sequence[ColumnInfo]:
        """Columnas actuales de la tabla, incluidas las reservadas."""

    def add_column(self, name: str) -> None:
        """
        Agrega una columna TEXT NULL.

        Debe lanzar DuplicateColumnError si ya existe.
        """

    def upsert(self, row_id: str, fields: Mapping[str, Any]) -> Optional[datetime]:
        """
        Inserta o actualiza la fila `row_id` con los campos dados.

        Los campos no incluidos quedan intactos. Retorna la marca de
        modificacion almacenada, si la base la reporta.
        """

    def select_modified_since(self, since: datetime) -> Sequence[TableRow]:
        """Filas con marca de modificacion estrictamente posterior a `since`."""


class SheetClient(Protocol):
    """
    Hoja de calculo destino.

    La fila 1 es el header; `position` es el numero de fila 1-based.
    """

    def get_header_row(self) -> list[str]:
        """Nombres de campo en el orden actual de la hoja."""

    def write_row(self, position: int, values: Sequence[Any]) -> None:
        """Escribe una fila completa empezando en la columna A."""
