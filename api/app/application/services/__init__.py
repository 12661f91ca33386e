"""
Servicios de aplicacion.

Piezas del motor de sync hoja <-> tabla, componibles y sin I/O propio:
todo el I/O pasa por los contratos de `app.application.interfaces.sync_ports`.
"""
from app.application.services.column_naming import (
    project_row,
    resolve_header_value,
    sanitize_column_name,
)
from app.application.services.watermark import WatermarkTracker
from app.application.services.schema_adapter import SchemaAdapter
from app.application.services.upsert_engine import UpsertEngine, UpsertResult
from app.application.services.change_poller import ChangePoller, sheet_position

__all__ = [
    # Nombres de columna
    "sanitize_column_name",
    "resolve_header_value",
    "project_row",
    # Motor
    "WatermarkTracker",
    "SchemaAdapter",
    "UpsertEngine",
    "UpsertResult",
    "ChangePoller",
    "sheet_position",
]
