"""
Entidades del dominio.
"""
from app.domain.entities.sheet_sync import (
    ColumnInfo,
    PollResult,
    Record,
    Scalar,
    TableRow,
)

__all__ = [
    "ColumnInfo",
    "PollResult",
    "Record",
    "Scalar",
    "TableRow",
]
