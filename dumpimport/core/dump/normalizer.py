"""
============================================================================
Row Normalizer - Lignes SQL → enregistrements par entité
============================================================================
1. Table SQL → entité (liste autorisée, tables inconnues ignorées)
2. Colonnes : liste explicite de l'INSERT, sinon CREATE TABLE
3. Assemblage positionnel (valeurs manquantes → None)
4. Coercitions : id numérique, flags booléens, colonnes JSON
============================================================================
"""

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from dumpimport.config.constants import (
    BOOLEAN_COLUMNS,
    ENTITY_KEYS,
    JSON_COLUMNS,
    LEGACY_BOOLEAN_FLAGS,
    TABLE_KEY_BY_SQL,
    TableKey,
)
from dumpimport.core.dump.models import (
    InsertStatement,
    NormalizedRecord,
    ParsedValue,
    RawStatement,
    RecordValue,
    TableSchema,
    is_number,
)
from dumpimport.core.dump.tokenizer import parse_insert_statement, parse_number
from dumpimport.core.errors import MissingColumnsError
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


def normalize_table_name(table_name_raw: str) -> str:
    return table_name_raw.replace("`", "").lower()


def resolve_entity_key(table_name_raw: str) -> Optional[TableKey]:
    """Entité correspondant à une table SQL, ou None si hors périmètre"""
    return TABLE_KEY_BY_SQL.get(normalize_table_name(table_name_raw))


def resolve_columns(
    parsed: InsertStatement,
    schemas: Mapping[str, TableSchema],
) -> list[str]:
    """
    Colonnes d'un INSERT : explicites d'abord, CREATE TABLE ensuite

    Raises:
        MissingColumnsError: aucune des deux sources disponible
    """
    if parsed.columns:
        return parsed.columns

    schema = schemas.get(normalize_table_name(parsed.table_name_raw))
    if schema and schema.columns:
        return list(schema.columns)

    raise MissingColumnsError(parsed.table_name_raw)


def assemble_row(columns: Sequence[str], row: Sequence[ParsedValue]) -> dict[str, RecordValue]:
    return {
        column: row[index] if index < len(row) else None
        for index, column in enumerate(columns)
    }


def coerce_boolean(value: RecordValue) -> bool:
    """1, "1", "true" (toute casse) → True, toute autre valeur non booléenne → False"""
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value == 1
    if isinstance(value, str):
        return value == "1" or value.lower() == "true"
    return False


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant {name}")


def coerce_json(value: RecordValue) -> RecordValue:
    """Décoder une chaîne JSON objet/tableau, la garder telle quelle si invalide"""
    if not isinstance(value, str):
        return value

    trimmed = value.strip()
    if not trimmed.startswith(("{", "[")):
        return value

    try:
        return json.loads(trimmed, parse_constant=_reject_constant)
    except ValueError:
        logger.debug("Invalid JSON column value kept as string", preview=trimmed[:40])
        return value


def coerce_id(value: RecordValue) -> RecordValue:
    """id numérique (ou chaîne numérique) → nombre, entier si possible"""
    if isinstance(value, str):
        number = parse_number(value.strip())
        if number is None:
            return value
        value = number
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize_record(entity: TableKey, item: dict[str, RecordValue]) -> NormalizedRecord:
    normalized = dict(item)

    if "id" in normalized and normalized["id"] is not None:
        normalized["id"] = coerce_id(normalized["id"])

    for key, value in normalized.items():
        if key in BOOLEAN_COLUMNS:
            normalized[key] = coerce_boolean(value)
        elif key in JSON_COLUMNS:
            normalized[key] = coerce_json(value)

    legacy_flag = LEGACY_BOOLEAN_FLAGS.get(entity)
    if legacy_flag and legacy_flag in normalized:
        normalized[legacy_flag] = coerce_boolean(normalized[legacy_flag])

    return NormalizedRecord(entity=entity, attributes=normalized)


def normalize_statements(
    statements: Iterable[RawStatement],
    schemas: Mapping[str, TableSchema],
) -> dict[TableKey, list[NormalizedRecord]]:
    """
    Normaliser tous les INSERT d'un dump

    Returns:
        Enregistrements par entité, dans l'ordre d'arrivée
    """
    records_by_entity: dict[TableKey, list[NormalizedRecord]] = {
        key: [] for key in ENTITY_KEYS
    }
    skipped_tables: set[str] = set()

    for statement in statements:
        parsed = parse_insert_statement(statement.text)
        if parsed is None:
            logger.warning("Unparseable INSERT statement skipped", offset=statement.offset)
            continue

        entity = resolve_entity_key(parsed.table_name_raw)
        if entity is None:
            skipped_tables.add(normalize_table_name(parsed.table_name_raw))
            continue

        columns = resolve_columns(parsed, schemas)
        for row in parsed.rows:
            records_by_entity[entity].append(
                normalize_record(entity, assemble_row(columns, row))
            )

    if skipped_tables:
        logger.info("Unknown tables skipped", tables=sorted(skipped_tables))

    logger.info(
        "Rows normalized",
        **{key.value: len(records) for key, records in records_by_entity.items() if records},
    )
    return records_by_entity
