"""
============================================================================
Constants - Constantes du projet
============================================================================
"""

from enum import Enum


class TableKey(str, Enum):
    """Tables logiques du stockage clé-valeur"""

    SHIPMENTS = "shipments"
    PARTIAL_SHIPMENTS = "partialShipments"
    PACKAGE_DETAILS = "packageDetails"
    PARTIAL_SHIPMENT_ITEMS = "partialShipmentItems"
    CUSTOMERS = "customers"
    USERS = "users"
    NOTES = "notes"
    AUDIT_LOGS = "auditLogs"
    COUNTERS = "counters"


class StatementKind(str, Enum):
    """Types d'instructions reconnues dans un dump"""

    INSERT = "INSERT"


# Entités importables, dans l'ordre d'écriture
ENTITY_KEYS: tuple[TableKey, ...] = (
    TableKey.SHIPMENTS,
    TableKey.PARTIAL_SHIPMENTS,
    TableKey.PACKAGE_DETAILS,
    TableKey.PARTIAL_SHIPMENT_ITEMS,
    TableKey.CUSTOMERS,
    TableKey.USERS,
    TableKey.NOTES,
    TableKey.AUDIT_LOGS,
)

# Variables d'environnement des noms physiques
TABLE_ENV_KEYS = {
    TableKey.SHIPMENTS: "DDB_SHIPMENTS_TABLE",
    TableKey.PARTIAL_SHIPMENTS: "DDB_PARTIAL_SHIPMENTS_TABLE",
    TableKey.PACKAGE_DETAILS: "DDB_PACKAGE_DETAILS_TABLE",
    TableKey.PARTIAL_SHIPMENT_ITEMS: "DDB_PARTIAL_SHIPMENT_ITEMS_TABLE",
    TableKey.CUSTOMERS: "DDB_CUSTOMERS_TABLE",
    TableKey.USERS: "DDB_USERS_TABLE",
    TableKey.NOTES: "DDB_NOTES_TABLE",
    TableKey.AUDIT_LOGS: "DDB_AUDIT_LOGS_TABLE",
    TableKey.COUNTERS: "DDB_COUNTERS_TABLE",
}

# Limite dure d'un appel d'écriture par lots
MAX_BATCH_WRITE_ITEMS = 25

# Mapping table SQL (minuscules, sans backticks) → entité
TABLE_KEY_BY_SQL = {
    "shipment": TableKey.SHIPMENTS,
    "partialshipment": TableKey.PARTIAL_SHIPMENTS,
    "packagedetail": TableKey.PACKAGE_DETAILS,
    "partialshipmentitem": TableKey.PARTIAL_SHIPMENT_ITEMS,
    "customer": TableKey.CUSTOMERS,
    "user": TableKey.USERS,
    "note": TableKey.NOTES,
    "auditlog": TableKey.AUDIT_LOGS,
}

# Colonnes booléennes stockées en TINYINT(1) dans le dump
BOOLEAN_COLUMNS = frozenset({"isOpen", "paymentCompleted"})

# Colonnes contenant du JSON sérialisé
JSON_COLUMNS = frozenset({"images"})

# Anciens flags par entité, toujours convertis en booléen
LEGACY_BOOLEAN_FLAGS = {
    TableKey.SHIPMENTS: "isOpen",
    TableKey.PARTIAL_SHIPMENTS: "paymentCompleted",
}

# Valeurs de réponse
IMPORT_COMPLETED_MESSAGE = "Import completed."
IMPORT_FAILED_MESSAGE = "Failed to import SQL file."
