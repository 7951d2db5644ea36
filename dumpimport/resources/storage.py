"""
============================================================================
Storage Resource - StorageClient construit une fois par exécution
============================================================================
"""

from typing import Optional

from dagster import ConfigurableResource, InitResourceContext
from pydantic import PrivateAttr

from dumpimport.config.settings import get_settings
from dumpimport.db.backend import PostgresKeyValueBackend
from dumpimport.db.connection import ConnectionPool
from dumpimport.db.storage import StorageClient
from dumpimport.db.tables import TableRegistry


class StorageResource(ConfigurableResource):
    """Pool PostgreSQL + backend clé-valeur + StorageClient"""

    ensure_tables: bool = True

    _pool: Optional[ConnectionPool] = PrivateAttr(default=None)
    _client: Optional[StorageClient] = PrivateAttr(default=None)

    def setup_for_execution(self, context: InitResourceContext) -> None:
        settings = get_settings()
        registry = TableRegistry(settings)

        self._pool = ConnectionPool(settings)
        backend = PostgresKeyValueBackend(self._pool, registry, settings.pg_schema)
        if self.ensure_tables:
            backend.ensure_tables()

        self._client = StorageClient(backend, settings, registry)

    def teardown_after_execution(self, context: InitResourceContext) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
        self._client = None

    def get_client(self) -> StorageClient:
        if self._client is None:
            raise RuntimeError("StorageResource used outside of an execution")
        return self._client
