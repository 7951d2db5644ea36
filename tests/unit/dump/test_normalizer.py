"""
Tests unitaires - Normalisation des lignes
"""

import pytest

from dumpimport.config.constants import ENTITY_KEYS, TableKey
from dumpimport.core.dump.extractor import (
    extract_create_table_schemas,
    extract_insert_statements,
)
from dumpimport.core.dump.normalizer import (
    assemble_row,
    coerce_boolean,
    coerce_id,
    coerce_json,
    normalize_record,
    normalize_statements,
    resolve_entity_key,
)
from dumpimport.core.errors import MissingColumnsError


def _normalize(sql_text):
    return normalize_statements(
        extract_insert_statements(sql_text),
        extract_create_table_schemas(sql_text),
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    "table_name, expected",
    [
        ("`Shipment`", TableKey.SHIPMENTS),
        ("partialshipment", TableKey.PARTIAL_SHIPMENTS),
        ("PackageDetail", TableKey.PACKAGE_DETAILS),
        ("PartialShipmentItem", TableKey.PARTIAL_SHIPMENT_ITEMS),
        ("AuditLog", TableKey.AUDIT_LOGS),
        ("Migrations", None),
    ],
)
def test_resolve_entity_key(table_name, expected):
    assert resolve_entity_key(table_name) is expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "value, expected",
    [
        (1, True),
        (1.0, True),
        (0, False),
        (2, False),
        ("1", True),
        ("TRUE", True),
        ("true", True),
        ("0", False),
        ("yes", False),
        (None, False),
        (True, True),
        (False, False),
    ],
)
def test_coerce_boolean(value, expected):
    assert coerce_boolean(value) is expected


@pytest.mark.unit
def test_coerce_json_decodes_objects_and_arrays():
    assert coerce_json('["a.png","b.png"]') == ["a.png", "b.png"]
    assert coerce_json(' {"k": 1} ') == {"k": 1}


@pytest.mark.unit
def test_coerce_json_keeps_invalid_or_plain_values():
    assert coerce_json("[not json") == "[not json"
    assert coerce_json("plain") == "plain"
    assert coerce_json(None) is None


@pytest.mark.unit
@pytest.mark.parametrize("value", ["[NaN]", "[Infinity]", '{"a": -Infinity}'])
def test_coerce_json_rejects_non_standard_constants(value):
    """NaN / Infinity ne sont pas du JSON : la chaîne d'origine est conservée"""
    assert coerce_json(value) == value


@pytest.mark.unit
def test_coerce_id():
    assert coerce_id("12") == 12
    assert coerce_id(4.0) == 4
    assert isinstance(coerce_id(4.0), int)
    assert coerce_id(2.5) == 2.5
    assert coerce_id("abc") == "abc"


@pytest.mark.unit
def test_assemble_row_pads_missing_values():
    assert assemble_row(["id", "name", "extra"], [1, "a"]) == {
        "id": 1,
        "name": "a",
        "extra": None,
    }


@pytest.mark.unit
def test_normalize_record_coerces_flags_and_images():
    record = normalize_record(
        TableKey.PARTIAL_SHIPMENTS,
        {"id": "9", "paymentCompleted": 1, "isOpen": "0", "images": "[]"},
    )

    assert record.attributes == {
        "id": 9,
        "paymentCompleted": True,
        "isOpen": False,
        "images": [],
    }
    assert record.id == 9


@pytest.mark.unit
def test_legacy_flag_null_becomes_false():
    record = normalize_record(TableKey.SHIPMENTS, {"id": 1, "isOpen": None})

    assert record.attributes["isOpen"] is False


@pytest.mark.unit
def test_non_numeric_id_has_no_record_id():
    record = normalize_record(TableKey.NOTES, {"id": "note-a", "text": "x"})

    assert record.id is None


@pytest.mark.unit
def test_normalize_statements_groups_by_entity(sample_dump):
    records = _normalize(sample_dump)

    assert set(records) == set(ENTITY_KEYS)
    customers = [r.attributes for r in records[TableKey.CUSTOMERS]]
    assert customers == [
        {"id": 3, "name": "O'Brien; Ltd", "balance": 12.5},
        {"id": 7, "name": "Line1\nLine2", "balance": None},
        {"id": 5, "name": "Plain", "balance": 0},
    ]

    shipments = [r.attributes for r in records[TableKey.SHIPMENTS]]
    assert shipments == [
        {"id": 1, "name": "First (a)", "isOpen": True},
        {"id": 2, "name": "Second", "isOpen": False},
    ]
    assert records[TableKey.USERS] == []


@pytest.mark.unit
def test_unknown_tables_are_skipped_before_column_resolution():
    """Une table inconnue sans colonnes ni schéma ne lève pas d'erreur"""
    records = _normalize("INSERT INTO `Migrations` VALUES (1,'init');")

    assert all(not rows for rows in records.values())


@pytest.mark.unit
def test_missing_columns_raise():
    with pytest.raises(MissingColumnsError, match="Missing columns for table Note"):
        _normalize("INSERT INTO `Note` VALUES (1,'x');")


@pytest.mark.unit
def test_images_with_nan_stay_a_string():
    record = normalize_record(TableKey.NOTES, {"id": 1, "images": "[NaN]"})

    assert record.attributes["images"] == "[NaN]"
