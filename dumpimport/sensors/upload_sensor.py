"""Sensors - Dumps SQL uploadés"""
from dagster import RunRequest, SensorEvaluationContext, SkipReason, sensor

from dumpimport.config.settings import get_settings
from dumpimport.core.uploads import scan_sql_uploads
from dumpimport.jobs.sql_import import sql_import_job


@sensor(
    name="sql_upload_sensor",
    job=sql_import_job,
    minimum_interval_seconds=30,
    description="Détecte les dumps SQL déposés dans le répertoire d'upload",
)
def sql_upload_sensor(context: SensorEvaluationContext):
    """Un RunRequest par fichier ; run_key = nom + mtime, donc un seul run par version"""
    settings = get_settings()
    uploads = scan_sql_uploads(settings.upload_dir)

    if not uploads:
        yield SkipReason(f"No SQL upload in {settings.upload_dir}")
        return

    context.log.info(f"Detected {len(uploads)} uploads: {', '.join(u.file_name for u in uploads)}")

    for upload in uploads:
        yield RunRequest(
            run_key=upload.run_key,
            run_config={
                "ops": {
                    "import_sql_dump": {"config": {"file": str(upload.path)}},
                }
            },
            tags={
                "source": "sql_upload_sensor",
                "file": upload.file_name,
                "size_bytes": str(upload.size_bytes),
            },
        )
