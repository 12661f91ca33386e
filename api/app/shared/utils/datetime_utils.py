"""
Utilidades para manejo de fechas y horas.

Todas las marcas de tiempo del sync se comparan como datetimes aware en UTC.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza un datetime a UTC (aware).

        Los datetimes naive se asumen en UTC; psycopg devuelve timestamptz
        con zona, pero los fakes de tests y los callers pueden no hacerlo.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
        """
        Convierte un datetime a string ISO 8601 en UTC.

        Args:
            dt: Objeto datetime (o None)

        Returns:
            Optional[str]: Fecha en formato ISO 8601 o None
        """
        if dt is None:
            return None
        return DateTimeUtils.ensure_utc(dt).isoformat()
