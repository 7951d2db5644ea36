"""Ops - Point d'entrée"""

from .sql_import import (
    SqlUploadConfig,
    archive_sql_dump_op,
    import_sql_dump_op,
)

__all__ = [
    "SqlUploadConfig",
    "archive_sql_dump_op",
    "import_sql_dump_op",
]
