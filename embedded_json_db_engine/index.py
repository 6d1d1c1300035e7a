"""
In-memory secondary indexes over the store tree.

Every index maps a normalized field value to the keys of the documents that
currently hold it. Buckets are insertion-ordered dicts used as sets, so a key
appears at most once per bucket and removal is O(1).
"""

from __future__ import annotations
import heapq
import logging
from itertools import count
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple

from .utils import value_key

logger = logging.getLogger(__name__)

Bucket = Dict[str, None]
ValueKey = Tuple[str, Any]

_ABSENT = object()


class FieldIndex:
    __slots__ = ("field", "buckets")

    def __init__(self, field: str) -> None:
        self.field = field
        self.buckets: Dict[ValueKey, Bucket] = {}

    def add(self, value: Any, key: str) -> None:
        self.buckets.setdefault(value_key(value), {})[key] = None

    def discard(self, value: Any, key: str) -> None:
        vk = value_key(value)
        bucket = self.buckets.get(vk)
        if bucket is None:
            return
        bucket.pop(key, None)
        if not bucket:
            del self.buckets[vk]

    def lookup(self, value: Any) -> List[str]:
        return list(self.buckets.get(value_key(value), ()))

    def size(self) -> int:
        return sum(len(b) for b in self.buckets.values())


class IndexManager:
    """
    Owns the named secondary indexes plus the position of every key in the
    tree, which is used to return index hits in tree order.
    """
    def __init__(self) -> None:
        self._indexes: Dict[str, FieldIndex] = {}
        self._positions: Dict[str, int] = {}
        self._seq = count()

    @property
    def fields(self) -> List[str]:
        return list(self._indexes)

    def has_index(self, field: str) -> bool:
        return field in self._indexes

    def create_index(self, field: str, tree: Mapping[str, Mapping[str, Any]]) -> bool:
        if field in self._indexes:
            return False
        idx = FieldIndex(field)
        for key, doc in tree.items():
            if field in doc:
                idx.add(doc[field], key)
        self._indexes[field] = idx
        logger.debug(f"Built index on {field!r}: {len(idx.buckets)} values, {idx.size()} keys")
        return True

    def drop_index(self, field: str) -> bool:
        return self._indexes.pop(field, None) is not None

    def rebuild(self, tree: Mapping[str, Mapping[str, Any]]) -> None:
        fields = self.fields
        self._indexes.clear()
        self._positions.clear()
        self._seq = count()
        for key in tree:
            self._positions[key] = next(self._seq)
        for field in fields:
            self.create_index(field, tree)

    # ----- single-entry maintenance -----

    def index_insert(self, field: str, value: Any, key: str) -> None:
        self._indexes[field].add(value, key)

    def index_remove_entry(self, field: str, value: Any, key: str) -> None:
        self._indexes[field].discard(value, key)

    def index_update_entry(self, field: str, old_value: Any, new_value: Any, key: str) -> None:
        if value_key(old_value) == value_key(new_value):
            return
        idx = self._indexes[field]
        idx.discard(old_value, key)
        idx.add(new_value, key)

    # ----- document-level maintenance -----

    def reindex_on_insert(self, key: str, doc: Mapping[str, Any]) -> None:
        self._positions.setdefault(key, next(self._seq))
        for field in self._indexes:
            if field in doc:
                self.index_insert(field, doc[field], key)

    def reindex_on_update(self, key: str, old_doc: Mapping[str, Any], new_doc: Mapping[str, Any]) -> None:
        for field in self._indexes:
            old = old_doc.get(field, _ABSENT)
            new = new_doc.get(field, _ABSENT)
            if old is _ABSENT and new is _ABSENT:
                continue
            if old is _ABSENT:
                self.index_insert(field, new, key)
            elif new is _ABSENT:
                self.index_remove_entry(field, old, key)
            else:
                self.index_update_entry(field, old, new, key)

    def reindex_on_remove(self, key: str, doc: Mapping[str, Any]) -> None:
        for field in self._indexes:
            if field in doc:
                self.index_remove_entry(field, doc[field], key)
        self._positions.pop(key, None)

    # ----- lookups -----

    def lookup(self, field: str, value: Any) -> List[str]:
        return self._indexes[field].lookup(value)

    def lookup_any(self, field: str, values: Iterable[Any]) -> set[str]:
        idx = self._indexes[field]
        keys: set[str] = set()
        for v in values:
            keys.update(idx.buckets.get(value_key(v), ()))
        return keys

    def order(self, keys: Iterable[str]) -> List[str]:
        pos = self._positions
        return sorted(keys, key=lambda k: pos.get(k, -1))

    def iter_ordered(self, keys: Iterable[str]) -> Iterator[str]:
        """Yields keys in tree order, popping a heap instead of sorting everything up front."""
        pos = self._positions
        heap = [(pos.get(k, -1), k) for k in keys]
        heapq.heapify(heap)
        while heap:
            yield heapq.heappop(heap)[1]

    def snapshot(self, field: str) -> Dict[ValueKey, List[str]]:
        return {vk: list(b) for vk, b in self._indexes[field].buckets.items()}
