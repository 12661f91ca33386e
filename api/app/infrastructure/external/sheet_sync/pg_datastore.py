"""
Datastore Postgres (psycopg) para la tabla sincronizada:
- creación de la tabla y del trigger de updated_at
- listado y alta de columnas dinámicas
- UPSERT por _sheet_row_id
- selección de filas modificadas desde un watermark

Las conexiones salen de un `psycopg_pool.ConnectionPool` de tamaño fijo;
si el pool está agotado se espera hasta `timeout` y luego falla.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional

import psycopg
from psycopg import errors as pg_errors

from app.application.interfaces.sync_ports import (
    DatastoreError,
    DatastoreUnavailableError,
    DuplicateColumnError,
)
from app.domain.entities.sheet_sync import ColumnInfo, TableRow
from app.shared.constants.sync_constants import (
    DYNAMIC_COLUMN_TYPE,
    ROW_ID_COLUMN,
    UPDATED_AT_COLUMN,
)
from app.shared.utils.datetime_utils import DateTimeUtils

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+$")


def quote_ident(name: str) -> str:
    """
    Cita un identificador ya saneado.

    Solo se aceptan [A-Za-z0-9_], así que las comillas dobles bastan
    (no hay comillas que escapar).
    """
    if not _IDENTIFIER_RE.match(name or ""):
        raise DatastoreError(f"Identificador inválido: {name!r}")
    return f'"{name}"'


class PostgresDatastore:
    def __init__(self, pool, *, table: str = "sheet_sync", schema: str = "public") -> None:
        self._pool = pool
        self._table = table
        self._schema = schema
        self._qualified = f"{quote_ident(schema)}.{quote_ident(table)}"

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        """
        Conexión del pool; commit al salir, rollback si hay excepción.
        Traduce los errores de psycopg a los del contrato Datastore.
        """
        try:
            with self._pool.connection() as conn:
                yield conn
        except pg_errors.DuplicateColumn as e:
            raise DuplicateColumnError(str(e)) from e
        except psycopg.OperationalError as e:
            # Incluye psycopg_pool.PoolTimeout (pool agotado)
            raise DatastoreUnavailableError(str(e)) from e
        except psycopg.Error as e:
            raise DatastoreError(str(e)) from e

    def ensure_table(self) -> None:
        """
        Crea schema, tabla, índice y trigger si no existen.

        El trigger usa clock_timestamp() (no now()) para que la marca refleje
        el instante de la escritura y no el inicio de la transacción.
        """
        row_id = quote_ident(ROW_ID_COLUMN)
        updated_at = quote_ident(UPDATED_AT_COLUMN)
        function = f"{quote_ident(self._schema)}.{quote_ident(self._table + '_touch_updated_at')}"
        trigger = quote_ident(self._table + "_touch_updated_at")
        index = quote_ident(self._table + "_updated_at_idx")

        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"CREATE SCHEMA IF NOT EXISTS {quote_ident(self._schema)};")
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self._qualified} (
                        {row_id}     TEXT        PRIMARY KEY,
                        {updated_at} TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
                    );
                    """
                )
                cur.execute(f"CREATE INDEX IF NOT EXISTS {index} ON {self._qualified} ({updated_at});")
                cur.execute(
                    f"""
                    CREATE OR REPLACE FUNCTION {function}() RETURNS trigger AS $$
                    BEGIN
                        NEW.{updated_at} := clock_timestamp();
                        RETURN NEW;
                    END;
                    $$ LANGUAGE plpgsql;
                    """
                )
                cur.execute(f"DROP TRIGGER IF EXISTS {trigger} ON {self._qualified};")
                cur.execute(
                    f"""
                    CREATE TRIGGER {trigger}
                    BEFORE INSERT OR UPDATE ON {self._qualified}
                    FOR EACH ROW EXECUTE FUNCTION {function}();
                    """
                )

    def list_columns(self) -> list[ColumnInfo]:
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT column_name, data_type
                    FROM information_schema.columns
                    WHERE table_schema = %s
                      AND table_name = %s
                    ORDER BY ordinal_position
                    """,
                    (self._schema, self._table),
                )
                rows = cur.fetchall()
        return [ColumnInfo(name=r["column_name"], data_type=r["data_type"]) for r in rows]

    def add_column(self, name: str) -> None:
        """
        ALTER TABLE ... ADD COLUMN sin IF NOT EXISTS: el duplicado se
        reporta como DuplicateColumnError y el caller decide.
        """
        column = quote_ident(name)
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"ALTER TABLE {self._qualified} ADD COLUMN {column} {DYNAMIC_COLUMN_TYPE} NULL;")

    def upsert(self, row_id: str, fields: Mapping[str, Any]) -> Optional[datetime]:
        """
        UPSERT por PK (_sheet_row_id).

        - Solo se actualizan las columnas recibidas; el resto queda intacto.
        - Si los valores no cambian no se toca la fila (ni su updated_at),
          así repetir el mismo upsert es un no-op real.

        Returns:
            updated_at almacenado, o None si la fila no cambió.
        """
        columns = list(fields.keys())
        pk = quote_ident(ROW_ID_COLUMN)
        updated_at = quote_ident(UPDATED_AT_COLUMN)

        insert_cols_sql = ", ".join([pk] + [quote_ident(c) for c in columns])
        placeholders = ", ".join(["%s"] * (len(columns) + 1))

        if columns:
            set_sql = ", ".join([f"{quote_ident(c)} = EXCLUDED.{quote_ident(c)}" for c in columns])
            target_cols = ", ".join([f"{self._qualified}.{quote_ident(c)}" for c in columns])
            excluded_cols = ", ".join([f"EXCLUDED.{quote_ident(c)}" for c in columns])
            conflict_sql = (
                f"DO UPDATE SET {set_sql} "
                f"WHERE ROW({target_cols}) IS DISTINCT FROM ROW({excluded_cols})"
            )
        else:
            conflict_sql = "DO NOTHING"

        sql = f"""
            INSERT INTO {self._qualified} ({insert_cols_sql})
            VALUES ({placeholders})
            ON CONFLICT ({pk})
            {conflict_sql}
            RETURNING {updated_at};
        """
        values = tuple([row_id] + [fields[c] for c in columns])

        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, values)
                row = cur.fetchone()

        if not row:
            return None
        return DateTimeUtils.ensure_utc(row[UPDATED_AT_COLUMN])

    def select_modified_since(self, since: datetime) -> list[TableRow]:
        updated_at = quote_ident(UPDATED_AT_COLUMN)
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT * FROM {self._qualified} WHERE {updated_at} > %s ORDER BY {updated_at}",
                    (DateTimeUtils.ensure_utc(since),),
                )
                rows = cur.fetchall()

        result: list[TableRow] = []
        for raw in rows:
            values = dict(raw)
            row_id = values.pop(ROW_ID_COLUMN)
            modified = values.pop(UPDATED_AT_COLUMN)
            result.append(
                TableRow(
                    row_id=str(row_id),
                    values=values,
                    updated_at=DateTimeUtils.ensure_utc(modified),
                )
            )
        return result
