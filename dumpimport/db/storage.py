"""
============================================================================
Storage Access Layer - Primitives génériques du stockage clé-valeur
============================================================================
get / put conditionnel / update / increment / delete / scan / query /
écriture par lots avec relance / compteurs atomiques.

Construit une fois au démarrage et injecté dans le pipeline.
============================================================================
"""

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dumpimport.config.constants import MAX_BATCH_WRITE_ITEMS, TableKey
from dumpimport.config.settings import Settings
from dumpimport.core.dump.models import is_number
from dumpimport.core.errors import (
    AllocationError,
    BatchWriteExhaustedError,
    DuplicateKeyError,
    UnprocessedItemsError,
)
from dumpimport.db.backend import KeyValueBackend
from dumpimport.db.tables import TableRegistry, TableSpec
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)

TableRef = Union[str, TableKey]


@dataclass
class ScanParams:
    """Scan complet, filtre optionnel par égalité d'attributs"""

    table: TableRef
    filters: dict[str, Any] = field(default_factory=dict)
    page_size: Optional[int] = None


@dataclass
class QueryParams:
    """
    Requête par égalité sur la clé d'un index

    Sans index_name ni attribute, la condition porte sur la clé de partition.
    """

    table: TableRef
    value: Any
    index_name: Optional[str] = None
    attribute: Optional[str] = None
    page_size: Optional[int] = None


class StorageClient:
    """Storage Access Layer au-dessus d'un KeyValueBackend"""

    def __init__(
        self,
        backend: KeyValueBackend,
        settings: Settings,
        registry: Optional[TableRegistry] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.backend = backend
        self.settings = settings
        self.registry = registry or TableRegistry(settings)
        self._sleep = sleep

    def table_name(self, key: TableKey) -> str:
        return self.registry.spec(key).name

    def _spec(self, table: TableRef) -> TableSpec:
        return self.registry.spec(table)

    # =========================================================================
    # Compteurs
    # =========================================================================

    def allocate_id(self, counter_name: str) -> int:
        """
        Incrémenter atomiquement un compteur nommé (départ à 0)

        Raises:
            AllocationError: le backend ne renvoie pas de nombre
        """
        value = self.backend.increment_counter(self.registry.counters, counter_name, 1)
        if not is_number(value):
            raise AllocationError(counter_name)
        return int(value)

    def set_counter(self, counter_name: str, value: Union[int, float]) -> int:
        """
        Amener un compteur à au moins `value` (jamais de recul)

        Returns:
            Valeur du compteur après écriture
        """
        target = math.ceil(value)
        stored = self.backend.raise_counter(self.registry.counters, counter_name, target)
        if not is_number(stored):
            raise AllocationError(counter_name)

        logger.info("Counter set", counter=counter_name, target=target, value=stored)
        return int(stored)

    # =========================================================================
    # Items
    # =========================================================================

    def get(self, table: TableRef, key: Mapping) -> Optional[dict]:
        return self.backend.get_item(self._spec(table), key)

    def put(self, table: TableRef, item: Mapping) -> None:
        """
        Écrire un item si sa clé n'existe pas

        Raises:
            DuplicateKeyError: un item occupe déjà la clé
        """
        spec = self._spec(table)
        key = spec.key_of(item)
        if not self.backend.put_item(spec, item):
            raise DuplicateKeyError(spec.name, [key[spec.partition_key]])

    def update(self, table: TableRef, key: Mapping, attributes: Mapping) -> Optional[dict]:
        """
        SET des seuls attributs fournis (None = non fourni)

        Returns:
            Item complet après mise à jour, None si rien à écrire
        """
        updates = {name: value for name, value in attributes.items() if value is not None}
        if not updates:
            return None
        return self.backend.update_item(self._spec(table), key, updates)

    def increment(self, table: TableRef, key: Mapping, increments: Mapping) -> Optional[dict]:
        """
        Addition atomique sur des champs numériques (montants nuls ignorés)

        Returns:
            Item complet après mise à jour, None si rien à ajouter
        """
        amounts = {name: amount for name, amount in increments.items() if amount}
        if not amounts:
            return None
        return self.backend.increment_item(self._spec(table), key, amounts)

    def delete(self, table: TableRef, key: Mapping) -> None:
        self.backend.delete_item(self._spec(table), key)

    # =========================================================================
    # Scan / Query paginés
    # =========================================================================

    def scan_all(self, params: ScanParams) -> list[dict]:
        """
        Suivre la pagination jusqu'au bout et tout accumuler

        Mémoire non bornée : acceptable à l'échelle des données de l'application.
        """
        spec = self._spec(params.table)
        page_size = params.page_size or self.settings.page_size
        items: list[dict] = []
        token = None

        while True:
            page = self.backend.scan_page(spec, params.filters, page_size, token)
            items.extend(page.items)
            token = page.next_token
            if token is None:
                break

        logger.debug("Scan completed", table=spec.name, items=len(items))
        return items

    def query_all(self, params: QueryParams) -> list[dict]:
        """Même contrat de pagination que scan_all, sur une condition de clé"""
        spec = self._spec(params.table)
        if params.index_name:
            attribute = spec.index_attribute(params.index_name)
        else:
            attribute = params.attribute or spec.partition_key

        page_size = params.page_size or self.settings.page_size
        items: list[dict] = []
        token = None

        while True:
            page = self.backend.query_page(spec, attribute, params.value, page_size, token)
            items.extend(page.items)
            token = page.next_token
            if token is None:
                break

        logger.debug(
            "Query completed",
            table=spec.name,
            index=params.index_name,
            items=len(items),
        )
        return items

    # =========================================================================
    # Écriture par lots
    # =========================================================================

    def batch_write_all(self, requests_by_table: Mapping[str, list[dict]]) -> None:
        """
        Soumettre un lot (≤ 25 requêtes) et relancer les non traités

        Relances bornées avec backoff exponentiel (base 200 ms).

        Raises:
            ValueError: plus de 25 requêtes
            DuplicateKeyError: un Put vise une clé existante (non relancé)
            BatchWriteExhaustedError: non traités restants après la dernière tentative
        """
        pending = {table: list(requests) for table, requests in requests_by_table.items() if requests}
        total = sum(len(requests) for requests in pending.values())
        if total > MAX_BATCH_WRITE_ITEMS:
            raise ValueError(
                f"Batch write accepts at most {MAX_BATCH_WRITE_ITEMS} requests, got {total}"
            )
        if not pending:
            return

        max_attempts = self.settings.batch_retry_max_attempts
        base_delay = self.settings.batch_retry_base_delay

        retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(
                multiplier=base_delay,
                min=base_delay,
                max=self.settings.batch_retry_max_delay,
            ),
            retry=retry_if_exception_type(UnprocessedItemsError),
            sleep=self._sleep,
        )

        try:
            for attempt in retrying:
                with attempt:
                    pending = self.backend.batch_write(pending)
                    if pending:
                        logger.warning(
                            "Unprocessed items, retrying",
                            attempt=attempt.retry_state.attempt_number,
                            remaining=sum(len(r) for r in pending.values()),
                        )
                        raise UnprocessedItemsError(pending)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            remaining = last_error.unprocessed if isinstance(last_error, UnprocessedItemsError) else pending
            logger.error(
                "Batch write exhausted retries",
                attempts=max_attempts,
                remaining=sum(len(r) for r in remaining.values()),
            )
            raise BatchWriteExhaustedError(remaining, max_attempts) from e
