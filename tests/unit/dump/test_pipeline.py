"""
Tests unitaires - Pipeline d'import complet
"""

import pytest

from dumpimport.config.constants import IMPORT_COMPLETED_MESSAGE, TableKey
from dumpimport.core.dump.pipeline import handle_upload, import_sql_dump, read_upload
from dumpimport.core.errors import (
    DuplicateKeyError,
    EmptyDumpError,
    MissingFileError,
    NoInsertStatementsError,
)


# =============================================================================
# read_upload
# =============================================================================

@pytest.mark.unit
def test_read_upload_from_bytes():
    assert read_upload({"file": b"INSERT INTO t VALUES (1);"}) == "INSERT INTO t VALUES (1);"


@pytest.mark.unit
def test_read_upload_from_path(tmp_path):
    dump = tmp_path / "dump.sql"
    dump.write_text("INSERT INTO t VALUES (1);", encoding="utf-8")

    assert read_upload({"file": str(dump)}) == "INSERT INTO t VALUES (1);"


@pytest.mark.unit
@pytest.mark.parametrize("files", [{}, {"file": None}, {"file": ""}, {"other": b"x"}])
def test_read_upload_missing_file(files):
    with pytest.raises(MissingFileError, match="SQL file is required."):
        read_upload(files)


@pytest.mark.unit
def test_read_upload_nonexistent_path(tmp_path):
    with pytest.raises(MissingFileError):
        read_upload({"file": str(tmp_path / "absent.sql")})


@pytest.mark.unit
def test_read_upload_overlong_path_is_missing_file():
    with pytest.raises(MissingFileError):
        read_upload({"file": "x" * 5000})


@pytest.mark.unit
def test_read_upload_blank_content():
    with pytest.raises(EmptyDumpError, match="SQL file is empty."):
        read_upload({"file": b"  \n\t "})


# =============================================================================
# import_sql_dump
# =============================================================================

@pytest.mark.unit
def test_import_writes_entities_and_counters(storage, backend, registry, sample_dump):
    result = import_sql_dump(storage, sample_dump)

    assert result.inserted[TableKey.CUSTOMERS] == 3
    assert result.inserted[TableKey.SHIPMENTS] == 2
    assert result.inserted[TableKey.USERS] == 0
    assert result.total_inserted == 5
    assert result.counters == {TableKey.CUSTOMERS: 7, TableKey.SHIPMENTS: 2}

    customers = {
        item["id"]: item for item in backend.items(registry.spec(TableKey.CUSTOMERS))
    }
    assert customers[3]["name"] == "O'Brien; Ltd"
    assert customers[7]["name"] == "Line1\nLine2"


@pytest.mark.unit
def test_import_response_body(storage, sample_dump):
    body = import_sql_dump(storage, sample_dump).to_response()

    assert body["message"] == IMPORT_COMPLETED_MESSAGE
    assert list(body["inserted"]) == [
        "shipments",
        "partialShipments",
        "packageDetails",
        "partialShipmentItems",
        "customers",
        "users",
        "notes",
        "auditLogs",
    ]
    assert body["counters"] == {"shipments": 2, "customers": 7}


@pytest.mark.unit
def test_counters_never_go_backwards(storage, backend, registry, sample_dump):
    storage.set_counter("customers", 100)

    result = import_sql_dump(storage, sample_dump)

    assert result.counters[TableKey.CUSTOMERS] == 100
    assert storage.allocate_id("customers") == 101


@pytest.mark.unit
def test_allocated_ids_follow_imported_max(storage, sample_dump):
    import_sql_dump(storage, sample_dump)

    assert storage.allocate_id("customers") == 8


@pytest.mark.unit
def test_import_without_numeric_ids_leaves_counters(storage, backend, registry):
    sql_text = "INSERT INTO `Note` (`id`,`text`) VALUES ('a','x'),('b','y');"

    result = import_sql_dump(storage, sql_text)

    assert result.inserted[TableKey.NOTES] == 2
    assert result.counters == {}
    assert backend.items(registry.counters) == []


@pytest.mark.unit
def test_second_import_fails_on_duplicates(storage, sample_dump):
    import_sql_dump(storage, sample_dump)

    with pytest.raises(DuplicateKeyError):
        import_sql_dump(storage, sample_dump)


@pytest.mark.unit
def test_failed_import_still_advances_written_counters(storage, sample_dump):
    """Shipments écrits avant l'échec des customers : pas de réallocation de leurs ids"""
    storage.put("customers", {"id": 5, "name": "existing"})

    with pytest.raises(DuplicateKeyError):
        import_sql_dump(storage, sample_dump)

    assert storage.allocate_id("shipments") == 3
    # Lot customers entièrement annulé : compteur jamais créé
    assert storage.allocate_id("customers") == 1


@pytest.mark.unit
def test_failed_entity_counts_its_written_batches(storage, sample_dump):
    """batch_size=2 : le lot [3, 7] est écrit, le lot [5] échoue"""
    storage.put("customers", {"id": 5, "name": "existing"})

    with pytest.raises(DuplicateKeyError):
        import_sql_dump(storage, sample_dump, batch_size=2)

    assert storage.allocate_id("customers") == 8


@pytest.mark.unit
def test_dump_without_inserts(storage):
    with pytest.raises(NoInsertStatementsError):
        import_sql_dump(storage, "CREATE TABLE t (\n  `id` int\n) ENGINE=InnoDB;")


@pytest.mark.unit
def test_small_batch_size(storage, backend, sample_dump):
    import_sql_dump(storage, sample_dump, batch_size=2)

    assert backend.batch_calls == [
        {"shipments": 2},
        {"customers": 2},
        {"customers": 1},
    ]


# =============================================================================
# handle_upload
# =============================================================================

@pytest.mark.unit
def test_handle_upload_success(storage, sample_dump):
    body, status = handle_upload(storage, {"file": sample_dump.encode("utf-8")})

    assert status == 200
    assert body["inserted"]["customers"] == 3


@pytest.mark.unit
@pytest.mark.parametrize(
    "files, message",
    [
        ({}, "SQL file is required."),
        ({"file": b"   "}, "SQL file is empty."),
        ({"file": b"SELECT 1;"}, "No INSERT statements found."),
        ({"file": b"INSERT INTO `User` VALUES (1,'a');"}, "Missing columns for table User."),
    ],
)
def test_handle_upload_input_errors(storage, files, message):
    body, status = handle_upload(storage, files)

    assert status == 400
    assert body == {"error": message}


@pytest.mark.unit
def test_handle_upload_duplicate_is_409(storage, sample_dump):
    handle_upload(storage, {"file": sample_dump.encode("utf-8")})

    body, status = handle_upload(storage, {"file": sample_dump.encode("utf-8")})

    assert status == 409
    assert set(body) == {"error"}


@pytest.mark.unit
def test_handle_upload_unexpected_error_is_500(storage, backend, sample_dump):
    def broken(_requests):
        raise RuntimeError("")

    backend.batch_write = broken

    body, status = handle_upload(storage, {"file": sample_dump.encode("utf-8")})

    assert status == 500
    assert body == {"error": "Failed to import SQL file."}
