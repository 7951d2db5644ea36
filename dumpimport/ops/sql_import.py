"""Ops - Import d'un dump SQL uploadé"""
from pathlib import Path

from dagster import Config, Failure, In, MetadataValue, Out, op

from dumpimport.config.settings import get_settings
from dumpimport.core.dump.pipeline import handle_upload
from dumpimport.core.uploads import archive_upload


class SqlUploadConfig(Config):
    """Champ fichier de l'upload : chemin du dump reçu"""

    file: str = ""


@op(
    name="import_sql_dump",
    out=Out(dict),
    required_resource_keys={"storage"},
    tags={"kind": "sql_import"},
    description="Parser le dump SQL et écrire les entités dans le stockage clé-valeur",
)
def import_sql_dump_op(context, config: SqlUploadConfig) -> dict:
    """Import complet ; toute erreur fait échouer le run avec son message"""
    storage = context.resources.storage.get_client()

    context.log.info(f"Starting SQL import: {config.file or '<no file>'}")
    body, status = handle_upload(storage, {"file": config.file})

    if status != 200:
        context.log.error(f"SQL import failed ({status}): {body['error']}")
        raise Failure(
            description=body["error"],
            metadata={"status": status, "file": config.file},
        )

    inserted = body["inserted"]
    for entity, count in inserted.items():
        if count:
            counter = body["counters"].get(entity)
            counter_info = f" | counter → {counter}" if counter is not None else ""
            context.log.info(f"✅ {entity:22s} | {count:>8,} rows{counter_info}")

    context.add_output_metadata({
        "total_inserted": sum(inserted.values()),
        "inserted": MetadataValue.json(inserted),
        "counters": MetadataValue.json(body["counters"]),
    })

    return {"file": config.file, "response": body}


@op(
    name="archive_sql_dump",
    ins={"result": In(dict)},
    tags={"kind": "sql_import"},
    description="Archiver le dump importé",
)
def archive_sql_dump_op(context, result: dict) -> None:
    """Déplace le dump dans archive_dir/YYYY-MM-DD/ si configuré"""
    settings = get_settings()
    if settings.archive_dir is None:
        context.log.info("No archive directory configured, upload left in place")
        return

    archived = archive_upload(Path(result["file"]), settings.archive_dir)
    if archived:
        context.log.info(f"Archived: {archived}")
