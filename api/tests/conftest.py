"""
Configuración de fixtures para pytest.

Los tests del sync no tocan Postgres ni Google: usan fakes en memoria que
cumplen los contratos `Datastore` y `SheetClient`.
"""
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest

from app.application.interfaces.sync_ports import (
    DatastoreError,
    DatastoreUnavailableError,
    DuplicateColumnError,
    SheetUnavailableError,
)
from app.domain.entities.sheet_sync import ColumnInfo, TableRow
from app.shared.constants.sync_constants import ROW_ID_COLUMN, UPDATED_AT_COLUMN
from app.shared.utils.datetime_utils import DateTimeUtils


class FakeClock:
    """Reloj determinista: cada lectura avanza 1 ms."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._lock = threading.Lock()
        self._now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(milliseconds=1)
            return self._now


class FakeDatastore:
    """
    Tabla en memoria con la semántica de PostgresDatastore.

    - add_column lanza DuplicateColumnError si la columna existe
    - upsert sin cambios no toca updated_at y retorna None
    - `set_value` simula una edición directa en la tabla (trigger incluido)
    """

    def __init__(self, clock=None) -> None:
        self._clock = clock or DateTimeUtils.now_utc
        self._lock = threading.Lock()
        self.columns: List[str] = []
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.updated_at: Dict[str, datetime] = {}
        self.add_column_calls: List[str] = []
        self.list_columns_calls = 0

        self.failing_columns: set = set()
        self.stale_listing = False
        self.unavailable = False
        self.fail_upsert: Optional[Exception] = None
        self.fail_select: Optional[Exception] = None

    def _check_available(self) -> None:
        if self.unavailable:
            raise DatastoreUnavailableError("connection refused")

    def list_columns(self) -> Sequence[ColumnInfo]:
        self._check_available()
        with self._lock:
            self.list_columns_calls += 1
            names = [ROW_ID_COLUMN, UPDATED_AT_COLUMN]
            if not self.stale_listing:
                names += list(self.columns)
        return [ColumnInfo(name=n, data_type="text") for n in names]

    def add_column(self, name: str) -> None:
        self._check_available()
        with self._lock:
            self.add_column_calls.append(name)
            if name in self.failing_columns:
                raise DatastoreError(f"no se puede crear {name}")
            if name in self.columns:
                raise DuplicateColumnError(f'column "{name}" already exists')
            self.columns.append(name)

    def upsert(self, row_id: str, fields: Mapping[str, Any]) -> Optional[datetime]:
        self._check_available()
        if self.fail_upsert is not None:
            raise self.fail_upsert
        with self._lock:
            unknown = [c for c in fields if c not in self.columns]
            if unknown:
                raise DatastoreError(f"column {unknown[0]} does not exist")
            current = self.rows.get(row_id)
            if current is not None and all(current.get(c) == v for c, v in fields.items()):
                return None
            row = current if current is not None else {}
            row.update(fields)
            self.rows[row_id] = row
            self.updated_at[row_id] = self._clock()
            return self.updated_at[row_id]

    def set_value(self, row_id: str, **values: Any) -> datetime:
        """Edición directa en la tabla (fuera del sync)."""
        with self._lock:
            for column in values:
                if column not in self.columns:
                    self.columns.append(column)
            self.rows.setdefault(row_id, {}).update(values)
            self.updated_at[row_id] = self._clock()
            return self.updated_at[row_id]

    def select_modified_since(self, since: datetime) -> Sequence[TableRow]:
        self._check_available()
        if self.fail_select is not None:
            raise self.fail_select
        with self._lock:
            selected = [
                TableRow(
                    row_id=row_id,
                    values={c: self.rows[row_id].get(c) for c in self.columns},
                    updated_at=stamp,
                )
                for row_id, stamp in self.updated_at.items()
                if stamp > since
            ]
        return sorted(selected, key=lambda r: r.updated_at)


class FakeSheetClient:
    """Hoja en memoria: header + filas escritas por posición."""

    def __init__(self, header: Optional[List[str]] = None) -> None:
        self.header: List[str] = list(header or [])
        self.writes: Dict[int, List[Any]] = {}
        self.write_log: List[int] = []
        self.header_reads = 0
        self.failing_positions: set = set()
        self.header_error: Optional[Exception] = None

    def get_header_row(self) -> List[str]:
        self.header_reads += 1
        if self.header_error is not None:
            raise self.header_error
        return list(self.header)

    def write_row(self, position: int, values: Sequence[Any]) -> None:
        if position in self.failing_positions:
            raise SheetUnavailableError(f"Google Sheets 503 escribiendo la fila {position}")
        self.write_log.append(position)
        self.writes[position] = list(values)


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    """Reemplaza DateTimeUtils.now_utc por un reloj estrictamente creciente."""
    fake = FakeClock()
    monkeypatch.setattr(DateTimeUtils, "now_utc", staticmethod(fake))
    return fake


@pytest.fixture
def datastore(clock) -> FakeDatastore:
    return FakeDatastore(clock=clock)


@pytest.fixture
def sheet() -> FakeSheetClient:
    return FakeSheetClient(header=["Name", "Role", "Start Date"])
