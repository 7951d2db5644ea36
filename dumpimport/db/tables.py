"""
============================================================================
Tables - Registre des tables logiques du stockage clé-valeur
============================================================================
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Union

from dumpimport.config.constants import TableKey
from dumpimport.config.settings import Settings

# Index secondaires : nom d'index → attribut indexé
TABLE_INDEXES: dict[TableKey, dict[str, str]] = {
    TableKey.USERS: {"byUsername": "username"},
    TableKey.PARTIAL_SHIPMENTS: {
        "byShipmentId": "shipmentId",
        "byCustomerId": "customerId",
    },
    TableKey.PACKAGE_DETAILS: {"byPartialShipmentId": "partialShipmentId"},
    TableKey.PARTIAL_SHIPMENT_ITEMS: {"byPartialShipmentId": "partialShipmentId"},
}


@dataclass(frozen=True, eq=False)
class TableSpec:
    """Table logique : nom physique, clé de partition, index"""

    key: TableKey
    name: str
    partition_key: str = "id"
    indexes: Mapping[str, str] = field(default_factory=dict)

    def key_of(self, item: Mapping) -> dict:
        """Extraire la clé d'un item complet"""
        if self.partition_key not in item or item[self.partition_key] is None:
            raise ValueError(
                f"Item for table {self.name} has no '{self.partition_key}' key attribute"
            )
        return {self.partition_key: item[self.partition_key]}

    def index_attribute(self, index_name: str) -> str:
        try:
            return self.indexes[index_name]
        except KeyError:
            raise ValueError(f"Unknown index {index_name} on table {self.name}") from None


class TableRegistry:
    """Résolution TableKey / nom physique → TableSpec"""

    def __init__(self, settings: Settings):
        self._by_key: dict[TableKey, TableSpec] = {}
        self._by_name: dict[str, TableSpec] = {}

        for key in TableKey:
            spec = TableSpec(
                key=key,
                name=settings.table_name(key),
                partition_key="name" if key is TableKey.COUNTERS else "id",
                indexes=TABLE_INDEXES.get(key, {}),
            )
            self._by_key[key] = spec
            self._by_name[spec.name] = spec

    def __iter__(self):
        return iter(self._by_key.values())

    def spec(self, table: Union[str, TableKey]) -> TableSpec:
        if isinstance(table, TableKey):
            return self._by_key[table]
        if table in self._by_name:
            return self._by_name[table]
        try:
            return self._by_key[TableKey(table)]
        except ValueError:
            raise ValueError(f"Unknown table {table}") from None

    @property
    def counters(self) -> TableSpec:
        return self._by_key[TableKey.COUNTERS]
