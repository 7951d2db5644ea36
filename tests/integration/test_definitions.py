"""
Tests d'intégration - Chargement des Definitions Dagster
"""

import pytest


@pytest.mark.integration
def test_definitions_load():
    from dumpimport.definitions import definitions

    job = definitions.get_job_def("sql_import_job")

    assert {node_def.name for node_def in job.all_node_defs} == {"import_sql_dump", "archive_sql_dump"}
    assert definitions.get_sensor_def("sql_upload_sensor").job_name == "sql_import_job"
