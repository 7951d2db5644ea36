"""
Definitions Dagster - Import SQL
"""

from dagster import Definitions

from dumpimport.jobs.sql_import import sql_import_job
from dumpimport.resources.storage import StorageResource
from dumpimport.sensors.upload_sensor import sql_upload_sensor
from dumpimport.utils.logging import setup_logging


# ---------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------
setup_logging()


# ---------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------
definitions = Definitions(
    jobs=[
        sql_import_job,
    ],

    sensors=[
        sql_upload_sensor,
    ],

    resources={
        "storage": StorageResource(),
    },
)
