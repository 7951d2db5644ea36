"""
============================================================================
SQL Import Job - Upload → stockage clé-valeur
============================================================================
"""

from dagster import job

from dumpimport.hooks.alerting_hooks import alert_on_failure, alert_on_success
from dumpimport.ops.sql_import import archive_sql_dump_op, import_sql_dump_op


@job(
    name="sql_import_job",
    hooks={alert_on_failure, alert_on_success},
    description="Import d'un dump SQL legacy (CREATE TABLE + INSERT) dans le stockage clé-valeur",
)
def sql_import_job():
    """
    Un run = un dump.
    Le fichier est passé dans la config de l'op :
        ops:
          import_sql_dump:
            config:
              file: /data/dumpimport/uploads/legacy.sql
    """
    archive_sql_dump_op(import_sql_dump_op())


__all__ = [
    "sql_import_job",
]
