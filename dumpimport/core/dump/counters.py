"""
============================================================================
Counter Reconciler - Compteurs avancés au-delà des ids importés
============================================================================
"""

from collections.abc import Mapping
from typing import Union

from dumpimport.config.constants import TableKey
from dumpimport.db.storage import StorageClient
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)


def reconcile_counters(
    storage: StorageClient,
    max_ids: Mapping[TableKey, Union[int, float]],
) -> dict[TableKey, int]:
    """
    Avancer le compteur de chaque entité à son max(id) observé

    Les entités sans id numérique (max 0) ne sont pas touchées.

    Returns:
        {entité: valeur du compteur après mise à jour}
    """
    counters: dict[TableKey, int] = {}

    for entity, max_id in max_ids.items():
        if max_id > 0:
            counters[entity] = storage.set_counter(entity.value, max_id)

    logger.info(
        "Counters reconciled",
        **{entity.value: value for entity, value in counters.items()},
    )
    return counters
