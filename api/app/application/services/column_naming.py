"""
Proyeccion de nombres de campo de la hoja a nombres de columna seguros.

Funciones puras, sin I/O: la hoja admite nombres libres ("Fecha de alta"),
la tabla solo identificadores [A-Za-z0-9_].
"""
from __future__ import annotations

import re
from typing import Any, Mapping

from app.shared.constants.sync_constants import MAX_IDENTIFIER_LENGTH

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_]")


def sanitize_column_name(field_name: str) -> str:
    """
    Reemplaza todo caracter fuera de [A-Za-z0-9_] por '_'.

    El resultado se trunca al limite de identificadores de PostgreSQL para
    que el nombre guardado coincida con el que reporta la base.
    Un nombre vacio produce "" (el caller decide descartarlo).
    """
    return _UNSAFE_CHARS_RE.sub("_", str(field_name))[:MAX_IDENTIFIER_LENGTH]


def resolve_header_value(header: str, values: Mapping[str, Any]) -> Any:
    """
    Valor de una fila para una columna del header de la hoja.

    Orden de resolucion:
    1. columna con el nombre exacto del header
    2. columna con el nombre saneado ("Start Date" -> "Start_Date")
    3. "" si ninguna existe o el valor es NULL
    """
    if header in values and values[header] is not None:
        return values[header]
    # Saneado completo, no solo espacios -> "_": cubre tambien "e-mail" -> "e_mail"
    sanitized = sanitize_column_name(header)
    if sanitized in values and values[sanitized] is not None:
        return values[sanitized]
    return ""


def project_row(headers: list[str], values: Mapping[str, Any]) -> list[Any]:
    """Proyecta los valores de una fila en el orden del header."""
    return [resolve_header_value(h, values) for h in headers]
