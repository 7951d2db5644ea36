"""
============================================================================
Queries - Accès aux entités logistiques via le Storage Access Layer
============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Optional

from dumpimport.config.constants import TableKey
from dumpimport.db.storage import QueryParams, ScanParams, StorageClient


# =============================================================================
# Listes
# =============================================================================

def list_entities(storage: StorageClient, entity: TableKey) -> list[dict]:
    return storage.scan_all(ScanParams(table=entity))


def list_shipments(storage: StorageClient) -> list[dict]:
    return list_entities(storage, TableKey.SHIPMENTS)


def list_partial_shipments(storage: StorageClient) -> list[dict]:
    return list_entities(storage, TableKey.PARTIAL_SHIPMENTS)


def list_customers(storage: StorageClient) -> list[dict]:
    return list_entities(storage, TableKey.CUSTOMERS)


def list_users(storage: StorageClient) -> list[dict]:
    return list_entities(storage, TableKey.USERS)


# =============================================================================
# Par id / par index
# =============================================================================

def get_by_id(storage: StorageClient, entity: TableKey, entity_id: int) -> Optional[dict]:
    return storage.get(entity, {"id": entity_id})


def get_user_by_username(storage: StorageClient, username: str) -> Optional[dict]:
    results = storage.query_all(
        QueryParams(table=TableKey.USERS, index_name="byUsername", value=username)
    )
    return results[0] if results else None


def get_partial_shipments_by_shipment_id(storage: StorageClient, shipment_id: int) -> list[dict]:
    return storage.query_all(
        QueryParams(table=TableKey.PARTIAL_SHIPMENTS, index_name="byShipmentId", value=shipment_id)
    )


def get_partial_shipments_by_customer_id(storage: StorageClient, customer_id: int) -> list[dict]:
    return storage.query_all(
        QueryParams(table=TableKey.PARTIAL_SHIPMENTS, index_name="byCustomerId", value=customer_id)
    )


def get_packages_by_partial_shipment_id(storage: StorageClient, partial_shipment_id: int) -> list[dict]:
    return storage.query_all(
        QueryParams(
            table=TableKey.PACKAGE_DETAILS,
            index_name="byPartialShipmentId",
            value=partial_shipment_id,
        )
    )


def get_items_by_partial_shipment_id(storage: StorageClient, partial_shipment_id: int) -> list[dict]:
    return storage.query_all(
        QueryParams(
            table=TableKey.PARTIAL_SHIPMENT_ITEMS,
            index_name="byPartialShipmentId",
            value=partial_shipment_id,
        )
    )


# =============================================================================
# Notes / utilisateurs
# =============================================================================

def create_note(
    storage: StorageClient,
    content: Optional[str] = None,
    images: Optional[list[str]] = None,
    user_id: Optional[int] = None,
) -> dict[str, Any]:
    note: dict[str, Any] = {
        "id": storage.allocate_id(TableKey.NOTES.value),
        "content": content,
        "images": images,
    }
    if user_id:
        note["createdByUserId"] = user_id
        note["updatedByUserId"] = user_id

    storage.put(TableKey.NOTES, note)
    return note


def update_note(
    storage: StorageClient,
    note_id: int,
    content: Optional[str] = None,
    images: Optional[list[str]] = None,
    user_id: Optional[int] = None,
) -> Optional[dict]:
    return storage.update(
        TableKey.NOTES,
        {"id": note_id},
        {"content": content, "images": images, "updatedByUserId": user_id or None},
    )


def delete_note(storage: StorageClient, note_id: int) -> None:
    storage.delete(TableKey.NOTES, {"id": note_id})


def create_user(storage: StorageClient, username: str, password: str) -> dict[str, Any]:
    now = datetime.now(timezone.utc).isoformat()
    user = {
        "id": storage.allocate_id(TableKey.USERS.value),
        "username": username,
        "password": password,
        "createdAt": now,
        "updatedAt": now,
    }
    storage.put(TableKey.USERS, user)
    return user
