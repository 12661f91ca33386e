"""
Sync bidireccional Google Sheets <-> PostgreSQL.

- Hoja -> tabla: por evento (la hoja hace POST de cada fila editada).
- Tabla -> hoja: por polling, cada POLL_INTERVAL_SECONDS.

Objetivos de diseño:
- Idempotencia: repetir un upsert no cambia el estado almacenado.
- Esquema dinámico: un campo nuevo en la hoja crea una columna TEXT.
- Sin ecos: un watermark en memoria separa lo ya reconciliado de lo pendiente.
- Consistencia eventual: no hay transacción entre ambos sistemas.
"""
