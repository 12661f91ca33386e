"""
Tests de la configuración del sync y del armado del pool.
"""
import pytest

from app.core.config import Settings
from app.infrastructure.external.sheet_sync.sync_config import (
    SyncConfigError,
    TableSyncConfig,
    table_config_from_settings,
)
from app.infrastructure.external.sheet_sync.sync_service import (
    build_connection_pool,
    build_from_settings,
    normalize_psycopg_dsn,
)


class TestTableSyncConfig:
    def test_defaults(self):
        config = TableSyncConfig(target_table="contacts", spreadsheet_id="abc")

        assert config.target_schema == "public"
        assert config.sheet_name == "Sheet1"
        assert config.poll_interval_seconds == 5.0

    @pytest.mark.parametrize("table", ["", "contacts; DROP TABLE x", "mi tabla"])
    def test_rejects_unsafe_table_names(self, table):
        with pytest.raises(SyncConfigError):
            TableSyncConfig(target_table=table, spreadsheet_id="abc")

    def test_rejects_non_positive_interval(self):
        with pytest.raises(SyncConfigError):
            TableSyncConfig(target_table="contacts", spreadsheet_id="abc", poll_interval_seconds=0)

    def test_from_settings(self):
        cfg = Settings(SPREADSHEET_ID="abc", SYNC_TABLE="contacts", POLL_INTERVAL_SECONDS=2.5)

        config = table_config_from_settings(cfg)

        assert config.target_table == "contacts"
        assert config.spreadsheet_id == "abc"
        assert config.poll_interval_seconds == 2.5


class TestSettings:
    def test_database_url_from_components(self):
        cfg = Settings(DATABASE_URL="", DATABASE_HOST="db", DATABASE_USER="u", DATABASE_PASSWORD="p")

        assert cfg.effective_database_url.startswith("postgresql://u:p@db:")

    def test_explicit_database_url_wins(self):
        cfg = Settings(DATABASE_URL="postgresql://x@y/z")

        assert cfg.effective_database_url == "postgresql://x@y/z"


class TestConnectionSetup:
    def test_normalize_driver_suffix(self):
        assert normalize_psycopg_dsn("postgresql+asyncpg://u:p@h/db") == "postgresql://u:p@h/db"
        assert normalize_psycopg_dsn("host=h dbname=db") == "host=h dbname=db"

    def test_rejects_non_postgres_urls(self):
        cfg = Settings(DATABASE_URL="sqlite:///local.db")

        with pytest.raises(SyncConfigError):
            build_connection_pool(cfg)

    def test_spreadsheet_id_is_required(self):
        cfg = Settings(SPREADSHEET_ID="")

        with pytest.raises(SyncConfigError):
            build_from_settings(cfg)
