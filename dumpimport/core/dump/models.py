"""
============================================================================
Dump Models - Structures intermédiaires du pipeline d'import
============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from dumpimport.config.constants import (
    ENTITY_KEYS,
    IMPORT_COMPLETED_MESSAGE,
    StatementKind,
    TableKey,
)

# Valeur scalaire issue du tokenizer
ParsedValue = Union[str, int, float, bool, None]

# Valeur d'attribut après normalisation (les colonnes JSON deviennent dict/list)
RecordValue = Union[ParsedValue, dict, list]


def is_number(value: Any) -> bool:
    """Vrai pour int/float, faux pour bool"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class RawStatement:
    """Sous-chaîne exacte d'une instruction du dump"""

    kind: StatementKind
    text: str
    offset: int


@dataclass(frozen=True)
class TableSchema:
    """Colonnes d'un CREATE TABLE, dans l'ordre de déclaration"""

    table_name: str
    columns: tuple[str, ...]


@dataclass
class InsertStatement:
    """INSERT découpé : table, colonnes explicites éventuelles, lignes typées"""

    table_name_raw: str
    columns: Optional[list[str]]
    rows: list[list[ParsedValue]]


@dataclass
class NormalizedRecord:
    """Ligne prête à écrire pour une entité"""

    entity: TableKey
    attributes: dict[str, RecordValue]

    @property
    def id(self) -> Optional[Union[int, float]]:
        value = self.attributes.get("id")
        return value if is_number(value) else None


@dataclass
class WriteBatch:
    """Lot de puts (≤ 25) pour une entité, le temps d'un appel"""

    entity: TableKey
    items: list[dict[str, RecordValue]]

    def to_request_items(self, table_name: str) -> dict[str, list[dict]]:
        return {
            table_name: [{"PutRequest": {"Item": item}} for item in self.items]
        }


@dataclass
class EntityLoadResult:
    entity: TableKey
    count: int = 0
    max_id: Union[int, float] = 0


@dataclass
class ImportResult:
    """Résultat d'un import complet"""

    inserted: dict[TableKey, int] = field(
        default_factory=lambda: {key: 0 for key in ENTITY_KEYS}
    )
    counters: dict[TableKey, int] = field(default_factory=dict)

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())

    def to_response(self) -> dict[str, Any]:
        """Corps JSON de la réponse de succès"""
        return {
            "message": IMPORT_COMPLETED_MESSAGE,
            "inserted": {key.value: self.inserted.get(key, 0) for key in ENTITY_KEYS},
            "counters": {key.value: value for key, value in self.counters.items()},
        }
