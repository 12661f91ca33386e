"""
Casos de uso de la aplicacion.
"""
from .sheet_sync_use_cases import SheetSyncUseCases

__all__ = ["SheetSyncUseCases"]
