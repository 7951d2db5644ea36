"""
Fixtures pytest communes
"""

import copy
from collections import defaultdict

import pytest

from dumpimport.config.settings import Settings
from dumpimport.core.errors import DuplicateKeyError
from dumpimport.db.backend import Page, encode_key
from dumpimport.db.storage import StorageClient
from dumpimport.db.tables import TableRegistry


class FakeKeyValueBackend:
    """
    Backend clé-valeur en mémoire

    unprocessed_plan : nombre de requêtes renvoyées non traitées à chaque
    appel batch_write successif (0 = tout traité).
    """

    def __init__(self, registry: TableRegistry):
        self.registry = registry
        self.tables = defaultdict(dict)
        self.batch_calls = []
        self.unprocessed_plan = []
        self.counter_reply = None

    def _store(self, spec):
        return self.tables[spec.name]

    def items(self, spec):
        return list(self._store(spec).values())

    def get_item(self, spec, key):
        item = self._store(spec).get(encode_key(spec, key))
        return copy.deepcopy(item) if item is not None else None

    def put_item(self, spec, item):
        pk = encode_key(spec, spec.key_of(item))
        store = self._store(spec)
        if pk in store:
            return False
        store[pk] = copy.deepcopy(dict(item))
        return True

    def update_item(self, spec, key, updates):
        item = self._store(spec).setdefault(encode_key(spec, key), dict(key))
        item.update(copy.deepcopy(dict(updates)))
        return copy.deepcopy(item)

    def increment_item(self, spec, key, increments):
        item = self._store(spec).setdefault(encode_key(spec, key), dict(key))
        for attribute, amount in increments.items():
            item[attribute] = item.get(attribute, 0) + amount
        return copy.deepcopy(item)

    def delete_item(self, spec, key):
        self._store(spec).pop(encode_key(spec, key), None)

    def _page(self, spec, predicate, limit, start_token):
        rows = sorted(
            (pk, item) for pk, item in self._store(spec).items() if predicate(item)
        )
        if start_token is not None:
            rows = [row for row in rows if row[0] > start_token]
        rows = rows[:limit]
        next_token = rows[-1][0] if len(rows) == limit else None
        return Page(items=[copy.deepcopy(item) for _, item in rows], next_token=next_token)

    def scan_page(self, spec, filters, limit, start_token):
        return self._page(
            spec,
            lambda item: all(item.get(k) == v for k, v in filters.items()),
            limit,
            start_token,
        )

    def query_page(self, spec, attribute, value, limit, start_token):
        return self._page(spec, lambda item: item.get(attribute) == value, limit, start_token)

    def batch_write(self, requests_by_table):
        self.batch_calls.append({table: len(requests) for table, requests in requests_by_table.items()})
        bounce = self.unprocessed_plan.pop(0) if self.unprocessed_plan else 0
        unprocessed = {}

        for table, requests in requests_by_table.items():
            spec = self.registry.spec(table)
            store = self._store(spec)

            if bounce:
                requests, unprocessed[table] = requests[:-bounce], requests[-bounce:]

            seen = set()
            conflicts = []
            for request in requests:
                if "PutRequest" in request:
                    item = request["PutRequest"]["Item"]
                    pk = encode_key(spec, spec.key_of(item))
                    if pk in store or pk in seen:
                        conflicts.append(item[spec.partition_key])
                    seen.add(pk)
            if conflicts:
                raise DuplicateKeyError(spec.name, conflicts)

            for request in requests:
                if "PutRequest" in request:
                    item = request["PutRequest"]["Item"]
                    store[encode_key(spec, spec.key_of(item))] = copy.deepcopy(item)
                else:
                    store.pop(encode_key(spec, request["DeleteRequest"]["Key"]), None)

        return unprocessed

    def _counter(self, spec, name):
        return self._store(spec).setdefault(
            encode_key(spec, {spec.partition_key: name}),
            {spec.partition_key: name},
        )

    def increment_counter(self, spec, name, amount):
        if self.counter_reply is not None:
            return self.counter_reply
        item = self._counter(spec, name)
        item["value"] = item.get("value", 0) + amount
        return item["value"]

    def raise_counter(self, spec, name, value):
        item = self._counter(spec, name)
        item["value"] = max(item.get("value", 0), value)
        return item["value"]


@pytest.fixture
def settings():
    """Settings de test, sans .env"""
    return Settings(
        _env_file=None,
        DUMPIMPORT_BATCH_RETRY_MAX_ATTEMPTS=4,
        DUMPIMPORT_BATCH_RETRY_BASE_DELAY=0.2,
        DUMPIMPORT_BATCH_RETRY_MAX_DELAY=5.0,
        DUMPIMPORT_PAGE_SIZE=2,
    )


@pytest.fixture
def registry(settings):
    return TableRegistry(settings)


@pytest.fixture
def backend(registry):
    return FakeKeyValueBackend(registry)


@pytest.fixture
def sleeps():
    """Délais demandés par les relances (aucune attente réelle)"""
    return []


@pytest.fixture
def storage(backend, settings, registry, sleeps):
    return StorageClient(backend, settings, registry, sleep=sleeps.append)


@pytest.fixture
def sample_dump():
    """Dump MySQL minimal : schéma + insert sans colonnes + insert avec colonnes"""
    return """
-- MySQL dump 10.13
DROP TABLE IF EXISTS `Customer`;
CREATE TABLE `Customer` (
  `id` int NOT NULL AUTO_INCREMENT,
  `name` varchar(255) NOT NULL,
  `balance` decimal(10,2) DEFAULT NULL,
  PRIMARY KEY (`id`)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

INSERT INTO `Customer` VALUES (3,'O''Brien; Ltd',12.50),(7,'Line1\\nLine2',NULL),(5,'Plain',0);

INSERT INTO `Shipment` (`id`,`name`,`isOpen`) VALUES (1,'First (a)',1),(2,'Second',0);

INSERT INTO `Migrations` (`id`,`name`) VALUES (1,'init');
"""
