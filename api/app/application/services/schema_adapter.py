"""
Adaptador de esquema: evoluciona las columnas de la tabla destino para que
acepten la forma de cada registro entrante.

Reglas:
- Solo agrega columnas (TEXT NULL); nunca elimina ni cambia tipos.
- "Chequear y luego agregar" no es atomico: si otro escritor gana la
  carrera, DuplicateColumnError cuenta como exito.
- Un fallo agregando una columna no aborta el registro: ese campo se
  descarta de la escritura y se deja en el log.
- Si la base no responde (listar o agregar), la escritura no es posible
  y se lanza SchemaException.
"""
from __future__ import annotations

import threading
from typing import Dict, FrozenSet, Iterable

from loguru import logger

from app.application.interfaces.sync_ports import (
    Datastore,
    DatastoreError,
    DatastoreUnavailableError,
    DuplicateColumnError,
)
from app.application.services.column_naming import sanitize_column_name
from app.domain.entities.sheet_sync import ColumnInfo
from app.shared.constants.sync_constants import DYNAMIC_COLUMN_TYPE
from app.shared.exceptions.domain import SchemaException


class SchemaAdapter:
    """
    Mantiene un cache `nombre -> ColumnInfo` de la tabla destino.

    El cache se refresca de forma perezosa: solo cuando se pide una columna
    que no conoce. `invalidate()` lo descarta (p.ej. tras un upsert fallido,
    por si alguien borro una columna por fuera).
    """

    def __init__(self, datastore: Datastore, *, table_name: str = "sheet_sync") -> None:
        self._datastore = datastore
        self._table_name = table_name
        self._columns: Dict[str, ColumnInfo] = {}
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def known_columns(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._columns)

    def invalidate(self) -> None:
        with self._lock:
            self._columns = {}
            self._loaded = False

    def ensure_columns(self, field_names: Iterable[str]) -> FrozenSet[str]:
        """
        Garantiza que exista una columna por cada nombre de campo.

        Args:
            field_names: nombres de campo del registro (sin el identificador)

        Returns:
            Nombres saneados que existen en la tabla despues de la llamada.
            Los que no se pudieron crear no aparecen.

        Raises:
            SchemaException: si la base no esta disponible.
        """
        wanted: list[str] = []
        for name in field_names:
            column = sanitize_column_name(name)
            if not column:
                logger.warning(f"Campo '{name}' sin caracteres validos para columna. Se descarta.")
                continue
            if column not in wanted:
                wanted.append(column)

        if not wanted:
            return frozenset()

        missing = self._missing(wanted)
        if missing or not self._loaded:
            self._refresh()
            missing = self._missing(wanted)

        for column in missing:
            self._add_column(column)

        with self._lock:
            return frozenset(c for c in wanted if c in self._columns)

    def _missing(self, wanted: list[str]) -> list[str]:
        with self._lock:
            return [c for c in wanted if c not in self._columns]

    def _refresh(self) -> None:
        try:
            columns = self._datastore.list_columns()
        except DatastoreError as e:
            raise SchemaException(
                f"No se pudieron leer las columnas de '{self._table_name}': {e}",
                table=self._table_name,
            ) from e

        with self._lock:
            self._columns = {c.name: c for c in columns}
            self._loaded = True

    def _add_column(self, column: str) -> None:
        try:
            self._datastore.add_column(column)
            logger.info(f"Columna agregada: {self._table_name}.{column}")
        except DuplicateColumnError:
            # Otro escritor la creo entre el listado y el ALTER
            logger.debug(f"Columna {column} ya existia en {self._table_name}")
        except DatastoreUnavailableError as e:
            raise SchemaException(
                f"Base no disponible agregando columna '{column}': {e}",
                table=self._table_name,
            ) from e
        except DatastoreError as e:
            logger.error(f"No se pudo agregar la columna '{column}' (el campo se descarta): {e}")
            return

        with self._lock:
            self._columns[column] = ColumnInfo(name=column, data_type=DYNAMIC_COLUMN_TYPE.lower())
