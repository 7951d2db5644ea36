"""
============================================================================
SQL Dump Import - Pipeline complet
============================================================================
upload → extraction → tokenisation/normalisation → lots → compteurs

Les entités sont chargées indépendamment, sans rollback global :
un échec laisse écrits les lots déjà terminés.
============================================================================
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from dumpimport.config.constants import ENTITY_KEYS, MAX_BATCH_WRITE_ITEMS, TableKey
from dumpimport.core.dump.counters import reconcile_counters
from dumpimport.core.dump.extractor import (
    extract_create_table_schemas,
    extract_insert_statements,
)
from dumpimport.core.dump.loader import load_entity_records
from dumpimport.core.dump.models import EntityLoadResult, ImportResult
from dumpimport.core.dump.normalizer import normalize_statements
from dumpimport.core.errors import (
    EmptyDumpError,
    MissingFileError,
    NoInsertStatementsError,
    error_response,
)
from dumpimport.db.storage import StorageClient
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


def read_upload(files: Mapping[str, Any], field: str = "file") -> str:
    """
    Lire le dump transmis dans le champ fichier `field`

    Le champ contient soit le chemin du fichier reçu, soit son contenu brut.

    Raises:
        MissingFileError: champ absent ou fichier introuvable
        EmptyDumpError: fichier vide
    """
    upload = files.get(field)

    if isinstance(upload, bytes):
        sql_text = upload.decode("utf-8", errors="replace")
    elif isinstance(upload, (str, Path)) and str(upload).strip():
        path = Path(upload)
        try:
            is_file = path.is_file()
        except OSError:
            # Nom trop long, caractères refusés par le système de fichiers
            is_file = False
        if not is_file:
            raise MissingFileError()
        sql_text = path.read_bytes().decode("utf-8", errors="replace")
    else:
        raise MissingFileError()

    if not sql_text.strip():
        raise EmptyDumpError()
    return sql_text


def import_sql_dump(
    storage: StorageClient,
    sql_text: str,
    batch_size: int = MAX_BATCH_WRITE_ITEMS,
) -> ImportResult:
    """
    Importer un dump SQL complet

    Raises:
        EmptyDumpError, NoInsertStatementsError, MissingColumnsError: entrée invalide
        DuplicateKeyError: dump déjà importé ou collision d'id
        BatchWriteExhaustedError: backend indisponible
    """
    if not sql_text.strip():
        raise EmptyDumpError()

    schemas = extract_create_table_schemas(sql_text)
    statements = extract_insert_statements(sql_text)
    if not statements:
        raise NoInsertStatementsError()

    logger.info(
        "SQL dump parsed",
        size_bytes=len(sql_text),
        schemas=len(schemas),
        insert_statements=len(statements),
    )

    records_by_entity = normalize_statements(statements, schemas)

    result = ImportResult()
    loaded: dict[TableKey, EntityLoadResult] = {}

    try:
        for entity in ENTITY_KEYS:
            loaded[entity] = EntityLoadResult(entity=entity)
            load_entity_records(
                storage,
                entity,
                records_by_entity.get(entity, []),
                batch_size=batch_size,
                result=loaded[entity],
            )
            result.inserted[entity] = loaded[entity].count
    except Exception:
        # Les lots écrits restent : leurs ids ne doivent pas être réalloués
        logger.warning(
            "Import interrupted, reconciling counters of written batches",
            written={key.value: r.count for key, r in loaded.items() if r.count},
        )
        reconcile_counters(storage, {key: r.max_id for key, r in loaded.items()})
        raise

    result.counters = reconcile_counters(
        storage, {key: r.max_id for key, r in loaded.items()}
    )

    logger.info(
        "SQL import completed",
        total_inserted=result.total_inserted,
        counters={key.value: value for key, value in result.counters.items()},
    )
    return result


def handle_upload(
    storage: StorageClient,
    files: Mapping[str, Any],
    field: str = "file",
    batch_size: Optional[int] = None,
) -> tuple[dict[str, Any], int]:
    """
    Point d'entrée requête : (corps JSON, status)

    Toute erreur devient un message unique, sans résultat partiel.
    """
    try:
        sql_text = read_upload(files, field)
        result = import_sql_dump(
            storage,
            sql_text,
            batch_size=batch_size or storage.settings.batch_size,
        )
        return result.to_response(), 200
    except Exception as e:
        body, status = error_response(e)
        if status >= 500:
            logger.exception("SQL import failed", error=body["error"])
        else:
            logger.warning("SQL import rejected", error=body["error"], status=status)
        return body, status
