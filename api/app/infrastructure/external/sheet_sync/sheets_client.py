"""
Cliente de Google Sheets API v4 (google-api-python-client).

Requisitos cubiertos:
- lectura del header (fila 1) de una pestaña
- escritura de una fila completa en una posición (valueInputOption=RAW)
- reintentos con backoff de la propia librería para 429/5xx (num_retries)
- carga de credenciales de service account (base64 JSON o archivo)
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.application.interfaces.sync_ports import SheetClientError, SheetUnavailableError
from app.infrastructure.external.sheet_sync.sync_config import SyncConfigError

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

_SIMPLE_TITLE_RE = re.compile(r"^[A-Za-z0-9_]+$")


def quote_sheet_title(title: str) -> str:
    """Retorna el título de la pestaña formateado para notación A1."""
    normalised = (title or "").strip()
    if _SIMPLE_TITLE_RE.fullmatch(normalised):
        return normalised
    escaped = normalised.replace("'", "''")
    return f"'{escaped}'"


def a1_range(title: str, range_spec: str) -> str:
    return f"{quote_sheet_title(title)}!{range_spec}"


def _http_status(exc: HttpError) -> int:
    status = getattr(exc, "status_code", None)
    if status is not None:
        try:
            return int(status)
        except (TypeError, ValueError):
            return 0
    resp = getattr(exc, "resp", None)
    if resp is not None:
        try:
            return int(getattr(resp, "status", 0))
        except (TypeError, ValueError):
            return 0
    return 0


def _translate_http_error(exc: HttpError, action: str) -> SheetClientError:
    """
    429 y 5xx son recuperables (el poller reintenta en el siguiente tick);
    el resto de 4xx indica config/permisos mal y se reporta como tal.
    """
    status = _http_status(exc)
    if status == 429 or 500 <= status < 600:
        return SheetUnavailableError(f"Google Sheets {status} {action}: {exc}")
    return SheetClientError(f"Google Sheets {status} {action}: {exc}")


def load_credentials_info(
    *,
    credentials_b64: Optional[str] = None,
    credentials_file: Optional[str] = None,
) -> dict[str, Any]:
    """
    Carga el JSON de la service account.

    Prioridad:
    - GOOGLE_CREDENTIALS: JSON codificado en base64 (cómodo en variables de entorno)
    - GOOGLE_CREDENTIALS_FILE: ruta al JSON descargado de Google Cloud
    """
    if credentials_b64:
        try:
            raw = base64.b64decode(credentials_b64, validate=False).decode("utf-8")
            return json.loads(raw)
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SyncConfigError(f"GOOGLE_CREDENTIALS no es un JSON base64 válido: {e}") from e

    if credentials_file:
        path = Path(credentials_file).expanduser()
        if not path.exists():
            raise SyncConfigError(f"No existe el archivo de credenciales: {path}")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise SyncConfigError(f"Archivo de credenciales inválido ({path}): {e}") from e

    raise SyncConfigError("Faltan credenciales de Google: define GOOGLE_CREDENTIALS o GOOGLE_CREDENTIALS_FILE")


def build_sheets_service(credentials_info: Mapping[str, Any]):
    """Retorna un cliente autenticado de Sheets API v4."""
    try:
        credentials = service_account.Credentials.from_service_account_info(
            dict(credentials_info), scopes=SCOPES
        )
    except ValueError as e:
        raise SyncConfigError(f"Credenciales de service account incompletas: {e}") from e
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class GoogleSheetsClient:
    """
    Cliente de una pestaña concreta de una hoja.

    Importante:
    - No hace cast de tipos: escribe los valores tal cual (RAW).
    - No cachea el header: el poller lo lee una vez por ciclo.
    """

    def __init__(
        self,
        service,
        *,
        spreadsheet_id: str,
        sheet_name: str = "Sheet1",
        num_retries: int = 3,
    ) -> None:
        self._service = service
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._num_retries = num_retries

    def _values(self):
        return self._service.spreadsheets().values()

    def get_header_row(self) -> list[str]:
        request = self._values().get(
            spreadsheetId=self._spreadsheet_id,
            range=a1_range(self._sheet_name, "1:1"),
        )
        payload = self._execute(request, "leyendo el header")
        rows = payload.get("values") or []
        if not rows:
            return []
        return [str(v) for v in rows[0]]

    def write_row(self, position: int, values: Sequence[Any]) -> None:
        request = self._values().update(
            spreadsheetId=self._spreadsheet_id,
            range=a1_range(self._sheet_name, f"A{int(position)}"),
            valueInputOption="RAW",
            body={"values": [list(values)]},
        )
        self._execute(request, f"escribiendo la fila {position}")

    def _execute(self, request, action: str) -> dict[str, Any]:
        try:
            return request.execute(num_retries=self._num_retries) or {}
        except HttpError as e:
            raise _translate_http_error(e, action) from e
        except (OSError, httplib2.HttpLib2Error) as e:
            # Red: socket, TLS, timeout, DNS (ServerNotFoundError)
            raise SheetUnavailableError(f"Google Sheets no disponible {action}: {e}") from e
        except GoogleAuthError as e:
            # Refresh del token de la service account (TransportError / RefreshError)
            raise SheetUnavailableError(f"Google Sheets sin credenciales validas {action}: {e}") from e
