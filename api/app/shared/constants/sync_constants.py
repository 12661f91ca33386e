"""
Constantes del sync hoja <-> tabla.
Columnas reservadas, limites de nombres y valores por defecto del poller.
"""

# Columna con el identificador externo (numero de fila en la hoja)
ROW_ID_COLUMN = "_sheet_row_id"

# Columna de modificacion, mantenida por trigger en cada INSERT/UPDATE
UPDATED_AT_COLUMN = "updated_at"

RESERVED_COLUMNS = frozenset({ROW_ID_COLUMN, UPDATED_AT_COLUMN})

# Tipo unico y permisivo para columnas creadas dinamicamente
DYNAMIC_COLUMN_TYPE = "TEXT"

# PostgreSQL trunca identificadores a 63 bytes (NAMEDATALEN - 1)
MAX_IDENTIFIER_LENGTH = 63

DEFAULT_POLL_INTERVAL_SECONDS = 5.0

# Id del job del scheduler que ejecuta el ciclo de polling
POLL_JOB_ID = "sheet_sync_poll"
