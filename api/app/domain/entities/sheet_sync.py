"""
Entidades del sync hoja <-> tabla.

Se mantienen libres de I/O: son los tipos que cruzan la frontera entre
los casos de uso y los colaboradores externos (Datastore, SheetClient).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

# Valor escalar de una celda: texto, numero, booleano o vacio
Scalar = Union[str, int, float, bool, None]

# Una fila logica compartida por ambos sistemas (nombre de campo -> valor)
Record = Mapping[str, Scalar]


@dataclass(frozen=True)
class ColumnInfo:
    """Columna de la tabla destino tal como la reporta la base."""

    name: str
    data_type: str = "text"


@dataclass(frozen=True)
class TableRow:
    """
    Fila seleccionada por el poller.

    - row_id: identificador externo (posicion de fila en la hoja)
    - values: valores de todas las columnas no reservadas
    - updated_at: marca de modificacion mantenida por la base
    """

    row_id: str
    values: Dict[str, Any]
    updated_at: datetime


@dataclass
class PollResult:
    """Resultado de un ciclo de polling tabla -> hoja."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    selected: int = 0
    pushed: int = 0
    failed: int = 0
    skipped: int = 0
    advanced_to: Optional[datetime] = None
    error: Optional[str] = None
    failed_row_ids: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None and self.failed == 0
