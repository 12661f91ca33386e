"""
DTOs del sync hoja <-> tabla.
Definen el payload inbound de la hoja y las respuestas de poll y status.
"""
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictBool, field_validator

from app.domain.entities.sheet_sync import PollResult

# Orden importante: StrictBool primero para que true/false no se lean como int
CellValue = Optional[Union[StrictBool, int, float, str]]


class InboundRecordDTO(BaseModel):
    """Registro enviado por la hoja (p.ej. desde un trigger onEdit de Apps Script)."""

    row_id: str = Field(..., description="Numero de fila en la hoja (identificador estable)")
    data: Dict[str, CellValue] = Field(..., description="Valores de la fila: nombre de columna -> valor")

    @field_validator("row_id", mode="before")
    @classmethod
    def _coerce_row_id(cls, value):
        # Apps Script envia getRow() como numero
        if isinstance(value, bool):
            raise ValueError("row_id debe ser texto o entero")
        if isinstance(value, int):
            return str(value)
        return value


class InboundAckDTO(BaseModel):
    """Respuesta de un upsert inbound."""

    status: str = Field(default="ok")
    row_id: str
    columns: List[str] = Field(default_factory=list, description="Columnas escritas")
    dropped: List[str] = Field(default_factory=list, description="Campos descartados por falta de columna")


class PollResultDTO(BaseModel):
    """Resultado de un ciclo de polling."""

    success: bool
    started_at: datetime
    finished_at: Optional[datetime] = None
    selected: int = 0
    pushed: int = 0
    failed: int = 0
    skipped: int = 0
    advanced_to: Optional[datetime] = None
    failed_row_ids: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: PollResult) -> "PollResultDTO":
        return cls(
            success=result.success,
            started_at=result.started_at,
            finished_at=result.finished_at,
            selected=result.selected,
            pushed=result.pushed,
            failed=result.failed,
            skipped=result.skipped,
            advanced_to=result.advanced_to,
            failed_row_ids=list(result.failed_row_ids),
            error=result.error,
        )


class SyncStatusDTO(BaseModel):
    """Estado del sync para monitoreo."""

    watermark: datetime
    poll_running: bool
    poll_interval_seconds: Optional[float] = None
    poll_cycles: int = 0
    failed_poll_cycles: int = 0
    inbound_writes: int = 0
    known_columns: List[str] = Field(default_factory=list)
    last_poll: Optional[PollResultDTO] = None


class PollIntervalUpdateDTO(BaseModel):
    """Nuevo intervalo del poller."""

    seconds: float = Field(..., gt=0, le=3600, description="Segundos entre ciclos")
