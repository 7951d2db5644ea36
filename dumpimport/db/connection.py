"""
============================================================================
Database Connection - Gestion pool connexions PostgreSQL
============================================================================
Le pool est construit une fois au démarrage (ressource Dagster) puis
injecté dans le backend ; aucune instance globale.
============================================================================
"""
from contextlib import contextmanager
from typing import Generator

from psycopg2 import pool
from psycopg2.extensions import connection

from dumpimport.config.settings import Settings
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectionPool:
    """Pool de connexions psycopg2 thread-safe"""

    def __init__(self, settings: Settings):
        self._pool = pool.ThreadedConnectionPool(
            minconn=settings.pg_pool_min,
            maxconn=settings.pg_pool_max,
            dsn=settings.postgres_url,
        )
        logger.info(
            "Connection pool created",
            min=settings.pg_pool_min,
            max=settings.pg_pool_max,
        )

    @contextmanager
    def connection(self) -> Generator[connection, None, None]:
        """Context manager : commit en sortie, rollback sur erreur"""
        conn = self._pool.getconn()

        try:
            yield conn
            conn.commit()
        except Exception as e:
            if not conn.closed:
                conn.rollback()
            logger.error("Database error", error=str(e))
            raise
        finally:
            self._pool.putconn(conn, close=bool(conn.closed))

    def close(self) -> None:
        """Fermer le pool de connexions"""
        if not self._pool.closed:
            self._pool.closeall()
            logger.info("Connection pool closed")
