"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    - DATABASE_URL se puede especificar completa o por componentes
    - GOOGLE_CREDENTIALS (JSON en base64) tiene prioridad sobre GOOGLE_CREDENTIALS_FILE
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Sheet Sync Service")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="sheet_sync")
    DATABASE_PASSWORD: str = Field(default="sheet_sync")
    DATABASE_NAME: str = Field(default="sheet_sync")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_MIN_SIZE: int = Field(default=1)
    DB_POOL_SIZE: int = Field(default=10)
    # Segundos maximos esperando una conexion libre del pool
    DB_POOL_TIMEOUT: float = Field(default=30.0)

    # Tabla sincronizada
    SYNC_TABLE: str = Field(default="sheet_sync")
    SYNC_TARGET_SCHEMA: str = Field(default="public")

    # Google Sheets
    SPREADSHEET_ID: str = Field(default="")
    SHEET_NAME: str = Field(default="Sheet1")
    GOOGLE_CREDENTIALS: str = Field(default="")
    GOOGLE_CREDENTIALS_FILE: str = Field(default="")
    SHEETS_NUM_RETRIES: int = Field(default=3)

    # Poller tabla -> hoja
    POLL_ENABLED: bool = Field(default=True)
    POLL_INTERVAL_SECONDS: float = Field(default=5.0)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
