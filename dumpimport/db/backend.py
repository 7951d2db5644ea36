"""
============================================================================
Key-Value Backend - Stockage clé-valeur sur PostgreSQL (JSONB)
============================================================================
Chaque table logique = une table PostgreSQL :
    pk         TEXT PRIMARY KEY   (valeur de clé encodée en JSON)
    item       JSONB NOT NULL     (document complet, clé incluse)
    updated_at TIMESTAMPTZ

Les index secondaires sont des index d'expression sur (item -> 'attr').
============================================================================
"""

import json
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import psycopg2
from psycopg2 import errors, sql
from psycopg2.extras import Json, execute_values

from dumpimport.core.errors import DuplicateKeyError
from dumpimport.db.connection import ConnectionPool
from dumpimport.db.tables import TableRegistry, TableSpec
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)

# Erreurs transitoires : les requêtes du lot sont rendues comme non traitées
TRANSIENT_ERRORS = (
    errors.SerializationFailure,
    errors.DeadlockDetected,
    errors.LockNotAvailable,
    errors.QueryCanceled,
    psycopg2.OperationalError,
)


@dataclass
class Page:
    """Une page de résultats et le jeton de la suivante (None = fin)"""

    items: list[dict]
    next_token: Optional[str] = None


class KeyValueBackend(Protocol):
    """Primitives attendues par StorageClient"""

    def get_item(self, spec: TableSpec, key: Mapping) -> Optional[dict]: ...

    def put_item(self, spec: TableSpec, item: Mapping) -> bool: ...

    def update_item(self, spec: TableSpec, key: Mapping, updates: Mapping) -> dict: ...

    def increment_item(self, spec: TableSpec, key: Mapping, increments: Mapping) -> dict: ...

    def delete_item(self, spec: TableSpec, key: Mapping) -> None: ...

    def scan_page(
        self,
        spec: TableSpec,
        filters: Mapping,
        limit: int,
        start_token: Optional[str],
    ) -> Page: ...

    def query_page(
        self,
        spec: TableSpec,
        attribute: str,
        value: Any,
        limit: int,
        start_token: Optional[str],
    ) -> Page: ...

    def batch_write(self, requests_by_table: Mapping[str, list[dict]]) -> dict[str, list[dict]]: ...

    def increment_counter(self, spec: TableSpec, name: str, amount: int) -> Any: ...

    def raise_counter(self, spec: TableSpec, name: str, value: int) -> Any: ...


def encode_key(spec: TableSpec, key: Mapping) -> str:
    """
    Encoder la valeur de clé en texte

    json.dumps distingue 5 et "5" : ce sont deux clés différentes.
    """
    if spec.partition_key not in key:
        raise ValueError(f"Key for table {spec.name} must contain '{spec.partition_key}'")
    return json.dumps(key[spec.partition_key], sort_keys=True)


class PostgresKeyValueBackend:
    """Implémentation PostgreSQL des primitives clé-valeur"""

    def __init__(self, pool: ConnectionPool, registry: TableRegistry, schema: str):
        self.pool = pool
        self.registry = registry
        self.schema = schema

    def _table(self, spec: TableSpec) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema), sql.Identifier(spec.name))

    # =========================================================================
    # DDL
    # =========================================================================

    def ensure_tables(self) -> None:
        """Créer schéma, tables et index (idempotent)"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("CREATE SCHEMA IF NOT EXISTS {}")
                    .format(sql.Identifier(self.schema))
                )

                for spec in self.registry:
                    cur.execute(
                        sql.SQL("""
                            CREATE TABLE IF NOT EXISTS {} (
                                pk TEXT PRIMARY KEY,
                                item JSONB NOT NULL,
                                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                            )
                        """).format(self._table(spec))
                    )

                    for index_name, attribute in spec.indexes.items():
                        cur.execute(
                            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} ((item -> {}))")
                            .format(
                                sql.Identifier(f"{spec.name}_{index_name}".lower()),
                                self._table(spec),
                                sql.Literal(attribute),
                            )
                        )

        logger.info("Key-value tables ensured", schema=self.schema)

    # =========================================================================
    # Items
    # =========================================================================

    def get_item(self, spec: TableSpec, key: Mapping) -> Optional[dict]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("SELECT item FROM {} WHERE pk = %s").format(self._table(spec)),
                    (encode_key(spec, key),),
                )
                row = cur.fetchone()
        return row[0] if row else None

    def put_item(self, spec: TableSpec, item: Mapping) -> bool:
        """INSERT conditionnel : False si la clé existe déjà"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        INSERT INTO {} (pk, item)
                        VALUES (%s, %s)
                        ON CONFLICT (pk) DO NOTHING
                    """).format(self._table(spec)),
                    (encode_key(spec, spec.key_of(item)), Json(dict(item))),
                )
                return cur.rowcount == 1

    def update_item(self, spec: TableSpec, key: Mapping, updates: Mapping) -> dict:
        """SET partiel (upsert, comme un UpdateItem)"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        INSERT INTO {} AS existing (pk, item)
                        VALUES (%s, %s)
                        ON CONFLICT (pk) DO UPDATE SET
                            item = existing.item || EXCLUDED.item,
                            updated_at = now()
                        RETURNING item
                    """).format(self._table(spec)),
                    (encode_key(spec, key), Json({**updates, **key})),
                )
                return cur.fetchone()[0]

    def increment_item(self, spec: TableSpec, key: Mapping, increments: Mapping) -> dict:
        """ADD atomique sur des attributs numériques"""
        expression = sql.SQL("existing.item")
        params: list[Any] = []

        for attribute, amount in increments.items():
            expression = sql.SQL(
                "jsonb_set({}, ARRAY[%s], "
                "to_jsonb(COALESCE((existing.item ->> %s)::numeric, 0) + %s::numeric))"
            ).format(expression)
            params.extend([attribute, attribute, amount])

        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        INSERT INTO {} AS existing (pk, item)
                        VALUES (%s, %s)
                        ON CONFLICT (pk) DO UPDATE SET
                            item = {},
                            updated_at = now()
                        RETURNING item
                    """).format(self._table(spec), expression),
                    [encode_key(spec, key), Json({**increments, **key}), *params],
                )
                return cur.fetchone()[0]

    def delete_item(self, spec: TableSpec, key: Mapping) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("DELETE FROM {} WHERE pk = %s").format(self._table(spec)),
                    (encode_key(spec, key),),
                )

    # =========================================================================
    # Pagination (keyset sur pk)
    # =========================================================================

    def _fetch_page(
        self,
        spec: TableSpec,
        condition: sql.Composable,
        params: list[Any],
        limit: int,
        start_token: Optional[str],
    ) -> Page:
        conditions = [condition]
        if start_token is not None:
            conditions.append(sql.SQL("pk > %s"))
            params = [*params, start_token]

        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        SELECT pk, item FROM {}
                        WHERE {}
                        ORDER BY pk
                        LIMIT %s
                    """).format(self._table(spec), sql.SQL(" AND ").join(conditions)),
                    [*params, limit],
                )
                rows = cur.fetchall()

        next_token = rows[-1][0] if len(rows) == limit else None
        return Page(items=[row[1] for row in rows], next_token=next_token)

    def scan_page(
        self,
        spec: TableSpec,
        filters: Mapping,
        limit: int,
        start_token: Optional[str],
    ) -> Page:
        if filters:
            return self._fetch_page(
                spec, sql.SQL("item @> %s"), [Json(dict(filters))], limit, start_token
            )
        return self._fetch_page(spec, sql.SQL("TRUE"), [], limit, start_token)

    def query_page(
        self,
        spec: TableSpec,
        attribute: str,
        value: Any,
        limit: int,
        start_token: Optional[str],
    ) -> Page:
        condition = sql.SQL("(item -> {}) = %s").format(sql.Literal(attribute))
        return self._fetch_page(spec, condition, [Json(value)], limit, start_token)

    # =========================================================================
    # Écritures par lots
    # =========================================================================

    def batch_write(self, requests_by_table: Mapping[str, list[dict]]) -> dict[str, list[dict]]:
        """
        Écrire les requêtes Put/Delete, une transaction par table

        Returns:
            Requêtes non traitées (erreurs transitoires), par table

        Raises:
            DuplicateKeyError: un Put vise une clé existante (lot annulé)
        """
        unprocessed: dict[str, list[dict]] = {}

        for table_name, requests in requests_by_table.items():
            spec = self.registry.spec(table_name)
            try:
                with self.pool.connection() as conn:
                    with conn.cursor() as cur:
                        self._write_requests(cur, spec, requests)
            except TRANSIENT_ERRORS as e:
                logger.warning(
                    "Batch write left items unprocessed",
                    table=table_name,
                    count=len(requests),
                    error=str(e),
                )
                unprocessed[table_name] = list(requests)

        return unprocessed

    def _write_requests(self, cur, spec: TableSpec, requests: list[dict]) -> None:
        puts = [r["PutRequest"]["Item"] for r in requests if "PutRequest" in r]
        deletes = [r["DeleteRequest"]["Key"] for r in requests if "DeleteRequest" in r]

        if puts:
            rows = [(encode_key(spec, spec.key_of(item)), Json(item)) for item in puts]
            inserted = execute_values(
                cur,
                sql.SQL("""
                    INSERT INTO {} (pk, item)
                    VALUES %s
                    ON CONFLICT (pk) DO NOTHING
                    RETURNING pk
                """).format(self._table(spec)),
                rows,
                fetch=True,
            )

            if len(inserted) < len(rows):
                available = Counter(row[0] for row in inserted)
                conflicts = []
                for pk, _ in rows:
                    if available[pk]:
                        available[pk] -= 1
                    else:
                        conflicts.append(json.loads(pk))
                # Annulation du lot entier par le context manager
                raise DuplicateKeyError(spec.name, conflicts)

        if deletes:
            cur.execute(
                sql.SQL("DELETE FROM {} WHERE pk = ANY(%s)").format(self._table(spec)),
                ([encode_key(spec, key) for key in deletes],),
            )

    # =========================================================================
    # Compteurs
    # =========================================================================

    def increment_counter(self, spec: TableSpec, name: str, amount: int) -> Any:
        """SET value = if_not_exists(value, 0) + amount, en une instruction"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        INSERT INTO {} AS existing (pk, item)
                        VALUES (%s, %s)
                        ON CONFLICT (pk) DO UPDATE SET
                            item = jsonb_set(
                                existing.item,
                                '{{value}}',
                                to_jsonb(COALESCE((existing.item ->> 'value')::bigint, 0) + %s)
                            ),
                            updated_at = now()
                        RETURNING item -> 'value'
                    """).format(self._table(spec)),
                    (
                        encode_key(spec, {spec.partition_key: name}),
                        Json({spec.partition_key: name, "value": amount}),
                        amount,
                    ),
                )
                row = cur.fetchone()
        return row[0] if row else None

    def raise_counter(self, spec: TableSpec, name: str, value: int) -> Any:
        """SET value = GREATEST(value, cible) : jamais de recul"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("""
                        INSERT INTO {} AS existing (pk, item)
                        VALUES (%s, %s)
                        ON CONFLICT (pk) DO UPDATE SET
                            item = jsonb_set(
                                existing.item,
                                '{{value}}',
                                to_jsonb(GREATEST(COALESCE((existing.item ->> 'value')::bigint, 0), %s))
                            ),
                            updated_at = now()
                        RETURNING item -> 'value'
                    """).format(self._table(spec)),
                    (
                        encode_key(spec, {spec.partition_key: name}),
                        Json({spec.partition_key: name, "value": value}),
                        value,
                    ),
                )
                row = cur.fetchone()
        return row[0] if row else None
