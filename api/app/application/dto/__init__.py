"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    InboundAckDTO,
    InboundRecordDTO,
    PollIntervalUpdateDTO,
    PollResultDTO,
    SyncStatusDTO,
)

__all__ = [
    "InboundAckDTO",
    "InboundRecordDTO",
    "PollIntervalUpdateDTO",
    "PollResultDTO",
    "SyncStatusDTO",
]
