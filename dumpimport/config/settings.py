"""
============================================================================
Settings - Configuration centralisée avec Pydantic
============================================================================
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dumpimport.config.constants import MAX_BATCH_WRITE_ITEMS, TABLE_ENV_KEYS, TableKey


class Settings(BaseSettings):
    """
    Configuration centralisée de l'import SQL.

    Charge automatiquement depuis .env et variables d'environnement.
    Validation automatique des types et valeurs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignorer variables d'env non définies
        populate_by_name=True,
    )

    # =========================================================================
    # PostgreSQL (stockage clé-valeur)
    # =========================================================================
    pg_host: str = Field(default="localhost", alias="DUMPIMPORT_PG_HOST")
    pg_port: int = Field(default=5432, alias="DUMPIMPORT_PG_PORT")
    pg_database: str = Field(default="logistics", alias="DUMPIMPORT_PG_DATABASE")
    pg_user: str = Field(default="postgres", alias="DUMPIMPORT_PG_USER")
    pg_password: str = Field(default="", alias="DUMPIMPORT_PG_PASSWORD")
    pg_pool_min: int = Field(default=1, alias="DUMPIMPORT_PG_POOL_MIN")
    pg_pool_max: int = Field(default=10, alias="DUMPIMPORT_PG_POOL_MAX")
    pg_schema: str = Field(default="kv_store", alias="DUMPIMPORT_PG_SCHEMA")

    # =========================================================================
    # Tables logiques (un nom physique par entité)
    # =========================================================================
    shipments_table: str = Field(default="shipments", alias="DDB_SHIPMENTS_TABLE")
    partial_shipments_table: str = Field(
        default="partial_shipments",
        alias="DDB_PARTIAL_SHIPMENTS_TABLE"
    )
    package_details_table: str = Field(
        default="package_details",
        alias="DDB_PACKAGE_DETAILS_TABLE"
    )
    partial_shipment_items_table: str = Field(
        default="partial_shipment_items",
        alias="DDB_PARTIAL_SHIPMENT_ITEMS_TABLE"
    )
    customers_table: str = Field(default="customers", alias="DDB_CUSTOMERS_TABLE")
    users_table: str = Field(default="users", alias="DDB_USERS_TABLE")
    notes_table: str = Field(default="notes", alias="DDB_NOTES_TABLE")
    audit_logs_table: str = Field(default="audit_logs", alias="DDB_AUDIT_LOGS_TABLE")
    counters_table: str = Field(default="counters", alias="DDB_COUNTERS_TABLE")

    # =========================================================================
    # Écritures par lots
    # =========================================================================
    batch_size: int = Field(default=MAX_BATCH_WRITE_ITEMS, alias="DUMPIMPORT_BATCH_SIZE")
    batch_retry_max_attempts: int = Field(
        default=8,
        alias="DUMPIMPORT_BATCH_RETRY_MAX_ATTEMPTS"
    )
    batch_retry_base_delay: float = Field(
        default=0.2,
        alias="DUMPIMPORT_BATCH_RETRY_BASE_DELAY"
    )
    batch_retry_max_delay: float = Field(
        default=5.0,
        alias="DUMPIMPORT_BATCH_RETRY_MAX_DELAY"
    )

    # =========================================================================
    # Pagination scan / query
    # =========================================================================
    page_size: int = Field(default=1000, alias="DUMPIMPORT_PAGE_SIZE")

    # =========================================================================
    # Uploads
    # =========================================================================
    upload_dir: Path = Field(
        default=Path("/data/dumpimport/uploads"),
        alias="DUMPIMPORT_UPLOAD_DIR"
    )
    archive_dir: Optional[Path] = Field(default=None, alias="DUMPIMPORT_ARCHIVE_DIR")

    # =========================================================================
    # Alerting
    # =========================================================================
    teams_webhook_url: Optional[str] = Field(default=None, alias="TEAMS_WEBHOOK_URL")
    dagster_url: str = Field(default="http://localhost:3000", alias="DAGSTER_URL")

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(
        default="json",  # ou "console"
        alias="LOG_FORMAT"
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def postgres_url(self) -> str:
        """URL de connexion PostgreSQL complète"""
        return (
            f"postgresql://{self.pg_user}:{self.pg_password}"
            f"@{self.pg_host}:{self.pg_port}/{self.pg_database}"
        )

    def physical_table_names(self) -> dict[TableKey, str]:
        """Noms physiques configurés, par table logique"""
        return {
            TableKey.SHIPMENTS: self.shipments_table,
            TableKey.PARTIAL_SHIPMENTS: self.partial_shipments_table,
            TableKey.PACKAGE_DETAILS: self.package_details_table,
            TableKey.PARTIAL_SHIPMENT_ITEMS: self.partial_shipment_items_table,
            TableKey.CUSTOMERS: self.customers_table,
            TableKey.USERS: self.users_table,
            TableKey.NOTES: self.notes_table,
            TableKey.AUDIT_LOGS: self.audit_logs_table,
            TableKey.COUNTERS: self.counters_table,
        }

    def table_name(self, key: TableKey) -> str:
        """
        Résoudre le nom physique d'une table logique.

        Raises:
            ConfigurationError: si le nom configuré est vide
        """
        from dumpimport.core.errors import ConfigurationError

        name = self.physical_table_names()[key].strip()
        if not name:
            raise ConfigurationError(f"Missing env var {TABLE_ENV_KEYS[key]}")
        return name

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """Un lot ne dépasse jamais la limite du backend"""
        if v < 1 or v > MAX_BATCH_WRITE_ITEMS:
            raise ValueError(
                f"Invalid batch size: {v}. Must be between 1 and {MAX_BATCH_WRITE_ITEMS}"
            )
        return v

    @field_validator("batch_retry_max_attempts", "page_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be a positive integer, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Valider le niveau de log"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


# =============================================================================
# Singleton Pattern
# =============================================================================

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Obtenir l'instance singleton des settings.

    Usage:
        from dumpimport.config.settings import get_settings
        settings = get_settings()
        print(settings.postgres_url)
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Réinitialiser le singleton (utile pour tests).
    """
    global _settings
    _settings = None
