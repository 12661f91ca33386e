"""
CLI: sync tabla Postgres <-> Google Sheets fuera del API.

Uso recomendado:
  - Inicializar la tabla antes del primer despliegue.
  - Ejecutar ciclos de polling a mano para diagnosticar.

Variables de entorno requeridas:
  - DATABASE_URL (debe ser postgresql://... o postgres://...)
  - SPREADSHEET_ID
  - GOOGLE_CREDENTIALS (base64) o GOOGLE_CREDENTIALS_FILE

Ejecución:
  python scripts/sheet_sync_cli.py --init-table
  python scripts/sheet_sync_cli.py --poll-once --since-epoch
  python scripts/sheet_sync_cli.py --loop
"""

from __future__ import annotations

import argparse
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `app/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raíz del repo).
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from app.application.services.watermark import WatermarkTracker
from app.application.use_cases.sheet_sync_use_cases import SheetSyncUseCases
from app.core.config import Settings
from app.infrastructure.external.sheet_sync.sync_service import build_from_settings


def _epoch() -> datetime:
    return datetime(1970, 1, 1, tzinfo=timezone.utc)


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync Google Sheets <-> Postgres")
    parser.add_argument(
        "--init-table",
        action="store_true",
        help="Crea la tabla, el índice y el trigger de updated_at si no existen.",
    )
    parser.add_argument(
        "--poll-once",
        action="store_true",
        help="Ejecuta un único ciclo de polling tabla -> hoja.",
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Ejecuta ciclos de polling cada POLL_INTERVAL_SECONDS hasta Ctrl+C.",
    )
    parser.add_argument(
        "--since-epoch",
        action="store_true",
        help=(
            "Arranca el watermark en 1970-01-01: empuja todas las filas de la tabla "
            "a la hoja (full sync)."
        ),
    )
    args = parser.parse_args()

    if not (args.init_table or args.poll_once or args.loop):
        parser.print_help()
        return 2

    cfg = Settings()
    runtime = build_from_settings(cfg)
    try:
        if args.init_table:
            runtime.datastore.ensure_table()
            logger.info(f"Tabla {runtime.config.target_schema}.{runtime.config.target_table} lista")

        if args.since_epoch:
            # El watermark nunca retrocede: se reemplaza por uno nuevo
            runtime.use_cases = SheetSyncUseCases(
                datastore=runtime.datastore,
                sheet_client=runtime.sheet_client,
                table_name=runtime.config.target_table,
                watermark=WatermarkTracker(initial=_epoch()),
            )

        if args.poll_once:
            result = runtime.use_cases.run_poll_cycle()
            logger.info(
                f"Poll: selected={result.selected}, pushed={result.pushed}, "
                f"failed={result.failed}, skipped={result.skipped}, error={result.error}"
            )
            if not result.success:
                return 1

        if args.loop:
            interval = runtime.config.poll_interval_seconds
            logger.info(f"Polling cada {interval}s (Ctrl+C para salir)...")
            try:
                while True:
                    runtime.use_cases.run_poll_cycle()
                    time.sleep(interval)
            except KeyboardInterrupt:
                logger.info("Polling detenido por el usuario")
    finally:
        runtime.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
