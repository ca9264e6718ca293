import threading
import time
from typing import Dict, List

import pytest

import wire
from falkorgraph import Node, TransportError
from falkorgraph.decoder import ReplyDecoder
from falkorgraph.schema import DictionaryKind, SchemaCache


class CountingFetcher:
    def __init__(self, tables: Dict[DictionaryKind, List[str]], delay: float = 0.0):
        self.tables = tables
        self.delay = delay
        self.calls: List[DictionaryKind] = []
        self.fail = False

    def __call__(self, kind: DictionaryKind) -> List[str]:
        self.calls.append(kind)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise TransportError("connection refused")
        return list(self.tables[kind])

    def count(self, kind: DictionaryKind) -> int:
        return sum(1 for k in self.calls if k is kind)


def make_fetcher(**kwargs) -> CountingFetcher:
    return CountingFetcher(
        {
            DictionaryKind.LABEL: ["person"],
            DictionaryKind.PROPERTY_KEY: ["name", "age"],
            DictionaryKind.RELATIONSHIP_TYPE: ["knows"],
        },
        **kwargs,
    )


def test_procedure_names() -> None:
    assert DictionaryKind.LABEL.procedure == "db.labels"
    assert DictionaryKind.PROPERTY_KEY.procedure == "db.propertyKeys"
    assert DictionaryKind.RELATIONSHIP_TYPE.procedure == "db.relationshipTypes"


def test_first_resolve_fetches_once() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)

    assert cache.resolve(DictionaryKind.LABEL, 0) == "person"
    assert fetcher.count(DictionaryKind.LABEL) == 1

    assert cache.get_label(0) == "person"
    assert fetcher.count(DictionaryKind.LABEL) == 1
    assert cache.fetch_count(DictionaryKind.LABEL) == 1


def test_kinds_are_fetched_independently() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)

    assert cache.get_property_name(1) == "age"
    assert cache.get_relationship_type(0) == "knows"
    assert fetcher.count(DictionaryKind.LABEL) == 0
    assert fetcher.count(DictionaryKind.PROPERTY_KEY) == 1
    assert fetcher.count(DictionaryKind.RELATIONSHIP_TYPE) == 1


def test_unseen_index_triggers_wholesale_refresh() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    assert cache.get_label(0) == "person"

    fetcher.tables[DictionaryKind.LABEL] = ["person", "worker"]
    assert cache.get_label(1) == "worker"
    assert fetcher.count(DictionaryKind.LABEL) == 2
    assert cache.names(DictionaryKind.LABEL) == ["person", "worker"]


def test_index_missing_after_refresh_resolves_to_none() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    assert cache.get_label(4) is None


def test_negative_index_is_rejected() -> None:
    cache = SchemaCache(make_fetcher())
    with pytest.raises(IndexError):
        cache.get_label(-1)


def test_invalidate_forces_refetch() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    cache.get_label(0)
    cache.get_property_name(0)

    cache.invalidate()
    assert cache.names(DictionaryKind.LABEL) == []

    fetcher.tables[DictionaryKind.LABEL] = ["renamed"]
    assert cache.get_label(0) == "renamed"
    assert fetcher.count(DictionaryKind.LABEL) == 2


def test_invalidate_single_kind() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    cache.get_label(0)
    cache.get_property_name(0)

    cache.invalidate(DictionaryKind.LABEL)
    assert cache.names(DictionaryKind.LABEL) == []
    assert cache.names(DictionaryKind.PROPERTY_KEY) == ["name", "age"]


def test_failed_refresh_keeps_previous_table() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    assert cache.get_property_name(0) == "name"

    fetcher.fail = True
    with pytest.raises(TransportError):
        cache.get_property_name(5)

    assert cache.names(DictionaryKind.PROPERTY_KEY) == ["name", "age"]
    assert cache.get_property_name(1) == "age"


def test_concurrent_resolves_share_one_fetch() -> None:
    fetcher = make_fetcher(delay=0.05)
    cache = SchemaCache(fetcher)
    start = threading.Barrier(16)
    results: List[str] = []
    lock = threading.Lock()

    def worker() -> None:
        start.wait()
        name = cache.get_label(0)
        with lock:
            results.append(name)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == ["person"] * 16
    assert fetcher.count(DictionaryKind.LABEL) == 1


class InvalidatingLock:
    """Lock that drops the dictionary's table the moment it is released."""

    def __init__(self, dictionary) -> None:
        self._dictionary = dictionary
        self._inner = threading.Lock()

    def __enter__(self) -> "InvalidatingLock":
        self._inner.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self._inner.release()
        self._dictionary._names = None


def test_invalidate_after_refresh_keeps_fetched_name() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    labels = cache._dictionaries[DictionaryKind.LABEL]
    labels._lock = InvalidatingLock(labels)

    assert cache.get_label(0) == "person"
    assert ReplyDecoder(cache).decode_value(wire.node(0, [0])) == Node(0, ["person"])
    assert fetcher.count(DictionaryKind.LABEL) == 2


def test_replace_installs_table() -> None:
    fetcher = make_fetcher()
    cache = SchemaCache(fetcher)
    assert cache.replace(DictionaryKind.LABEL, ["a", "b"]) == ["a", "b"]
    assert cache.get_label(1) == "b"
    assert fetcher.count(DictionaryKind.LABEL) == 0
    assert cache.fetch_count(DictionaryKind.LABEL) == 1
