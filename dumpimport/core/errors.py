"""
============================================================================
Errors - Hiérarchie des erreurs de l'import SQL
============================================================================
Chaque erreur porte un status_code équivalent HTTP :
4xx = corrigeable par l'appelant, 5xx = stockage / inattendu.
============================================================================
"""

from typing import Any, Optional

from dumpimport.config.constants import IMPORT_FAILED_MESSAGE


class DumpImportError(Exception):
    """Base de toutes les erreurs de l'import"""

    status_code = 500


class ConfigurationError(DumpImportError):
    """Configuration invalide ou incomplète"""


# =============================================================================
# Erreurs d'entrée (corrigeables par le client)
# =============================================================================

class InputError(DumpImportError):
    """Fichier ou contenu du dump invalide"""

    status_code = 400


class MissingFileError(InputError):
    def __init__(self, message: str = "SQL file is required."):
        super().__init__(message)


class EmptyDumpError(InputError):
    def __init__(self, message: str = "SQL file is empty."):
        super().__init__(message)


class NoInsertStatementsError(InputError):
    def __init__(self, message: str = "No INSERT statements found."):
        super().__init__(message)


class MissingColumnsError(InputError):
    """Ni liste de colonnes explicite, ni CREATE TABLE correspondant"""

    def __init__(self, table_name: str):
        super().__init__(f"Missing columns for table {table_name}.")
        self.table_name = table_name


# =============================================================================
# Erreurs de stockage
# =============================================================================

class StorageError(DumpImportError):
    """Échec du stockage clé-valeur"""


class DuplicateKeyError(StorageError):
    """Écriture conditionnelle refusée : la clé existe déjà"""

    status_code = 409

    def __init__(self, table: str, keys: Optional[list[Any]] = None):
        keys = keys or []
        detail = f" (keys: {', '.join(str(k) for k in keys[:10])})" if keys else ""
        super().__init__(f"Item already exists in table {table}{detail}")
        self.table = table
        self.keys = keys


class AllocationError(StorageError):
    """Le compteur n'a pas renvoyé de valeur numérique"""

    def __init__(self, counter_name: str):
        super().__init__(f"Failed to allocate id for {counter_name}")
        self.counter_name = counter_name


class BatchWriteExhaustedError(StorageError):
    """Éléments non traités restants après le nombre maximal de tentatives"""

    status_code = 503

    def __init__(self, unprocessed: dict[str, list[dict]], attempts: int):
        remaining = sum(len(requests) for requests in unprocessed.values())
        super().__init__(
            f"Batch write gave up after {attempts} attempts "
            f"with {remaining} unprocessed items"
        )
        self.unprocessed = unprocessed
        self.attempts = attempts


class UnprocessedItemsError(StorageError):
    """Signal interne de relance : le backend a laissé des éléments non traités"""

    def __init__(self, unprocessed: dict[str, list[dict]]):
        remaining = sum(len(requests) for requests in unprocessed.values())
        super().__init__(f"{remaining} unprocessed items")
        self.unprocessed = unprocessed


# =============================================================================
# Réponse
# =============================================================================

def error_response(exc: BaseException) -> tuple[dict[str, str], int]:
    """
    Convertir une exception en réponse d'erreur (corps JSON, status)

    Aucun résultat partiel n'est renvoyé.
    """
    message = str(exc) or IMPORT_FAILED_MESSAGE
    status = exc.status_code if isinstance(exc, DumpImportError) else 500
    return {"error": message}, status
