"""
============================================================================
Batch Loader - Écriture des enregistrements par lots de 25
============================================================================
Lots écrits séquentiellement par entité ; max(id) suivi sur les seuls
enregistrements durablement écrits.
============================================================================
"""

from collections.abc import Sequence
from typing import Optional

from dumpimport.config.constants import MAX_BATCH_WRITE_ITEMS, TableKey
from dumpimport.core.dump.models import EntityLoadResult, NormalizedRecord, WriteBatch
from dumpimport.db.storage import StorageClient
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


def chunk_records(
    records: Sequence[NormalizedRecord],
    batch_size: int = MAX_BATCH_WRITE_ITEMS,
) -> list[list[NormalizedRecord]]:
    """Découper en lots consécutifs de batch_size au plus"""
    if batch_size < 1 or batch_size > MAX_BATCH_WRITE_ITEMS:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_WRITE_ITEMS}")
    return [list(records[i:i + batch_size]) for i in range(0, len(records), batch_size)]


def load_entity_records(
    storage: StorageClient,
    entity: TableKey,
    records: Sequence[NormalizedRecord],
    batch_size: int = MAX_BATCH_WRITE_ITEMS,
    result: Optional[EntityLoadResult] = None,
) -> EntityLoadResult:
    """
    Écrire les enregistrements d'une entité

    `result` appartient à l'appelant : count et max_id y restent lisibles
    si un lot échoue.

    Raises:
        DuplicateKeyError: arrête les lots restants de l'entité,
            les lots précédents restent écrits
    """
    if result is None:
        result = EntityLoadResult(entity=entity)
    if not records:
        return result

    table_name = storage.table_name(entity)
    chunks = chunk_records(records, batch_size)

    for index, chunk in enumerate(chunks, start=1):
        batch = WriteBatch(entity=entity, items=[record.attributes for record in chunk])
        storage.batch_write_all(batch.to_request_items(table_name))

        result.count += len(chunk)
        for record in chunk:
            record_id = record.id
            if record_id is not None and record_id > result.max_id:
                result.max_id = record_id

        logger.debug(
            "Batch written",
            entity=entity.value,
            batch=index,
            batches=len(chunks),
            size=len(chunk),
        )

    logger.info(
        "Entity loaded",
        entity=entity.value,
        table=table_name,
        rows=result.count,
        max_id=result.max_id,
    )
    return result
