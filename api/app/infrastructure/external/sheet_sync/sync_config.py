"""
Configuración del sync (tabla Postgres <-> hoja de Google Sheets).

Aquí se define:
- tabla y schema destino en Postgres
- spreadsheet y pestaña de Google Sheets
- cadencia del poller

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.shared.constants.sync_constants import DEFAULT_POLL_INTERVAL_SECONDS

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_]+$")


class SyncConfigError(RuntimeError):
    """Error de configuración del pipeline."""


@dataclass(frozen=True)
class TableSyncConfig:
    """
    Config de una tabla Postgres <-> una pestaña de la hoja.

    NOTA sobre el PK:
    - El PK en Postgres es _sheet_row_id, el número de fila en la hoja.
    - La fila 1 de la hoja es el header y define el orden de columnas.
    """

    target_table: str
    spreadsheet_id: str
    target_schema: str = "public"
    sheet_name: str = "Sheet1"
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        for label, value in (("target_table", self.target_table), ("target_schema", self.target_schema)):
            if not _IDENTIFIER_RE.match(value or ""):
                raise SyncConfigError(f"{label} debe ser un identificador [A-Za-z0-9_]: {value!r}")
        if self.poll_interval_seconds <= 0:
            raise SyncConfigError("poll_interval_seconds debe ser > 0")


def table_config_from_settings(cfg) -> TableSyncConfig:
    """Construye la config del sync a partir de `Settings`."""
    return TableSyncConfig(
        target_table=cfg.SYNC_TABLE,
        target_schema=cfg.SYNC_TARGET_SCHEMA,
        spreadsheet_id=cfg.SPREADSHEET_ID,
        sheet_name=cfg.SHEET_NAME,
        poll_interval_seconds=cfg.POLL_INTERVAL_SECONDS,
    )
