from __future__ import annotations
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import QueryError
from .index import IndexManager
from .utils import value_key

SUPPORTED_OPS = {"$eq", "$in"}

# (field, acceptable values)
Term = Tuple[str, Tuple[Any, ...]]

_ALTERNATIVES = (list, tuple, set, frozenset)


def normalize_query(q: Mapping[str, Any]) -> List[Term]:
    """
    Turns a query into (field, alternatives) terms.
      {"f": v}                -> ("f", (v,))
      {"f": [a, b]}           -> ("f", (a, b))   any of
      {"f": {"$eq": v}}       -> ("f", (v,))
      {"f": {"$in": [a, b]}}  -> ("f", (a, b))
    A dict value without "$" keys is matched as a whole.
    """
    if not isinstance(q, Mapping):
        raise QueryError(f"query must be a mapping, got {type(q).__name__}")
    terms: List[Term] = []
    for field, v in q.items():
        if not isinstance(field, str) or field.startswith("$"):
            raise QueryError(f"unsupported query key {field!r}")
        if isinstance(v, _ALTERNATIVES):
            terms.append((field, tuple(v)))
        elif isinstance(v, dict) and any(isinstance(k, str) and k.startswith("$") for k in v):
            terms.append((field, _operator_values(field, v)))
        else:
            terms.append((field, (v,)))
    return terms


def _operator_values(field: str, ops: Dict[str, Any]) -> Tuple[Any, ...]:
    unknown = set(ops) - SUPPORTED_OPS
    if unknown:
        raise QueryError(f"{field}: unsupported operators {sorted(map(str, unknown))}")
    if len(ops) != 1:
        raise QueryError(f"{field}: combine $eq and $in in separate queries")
    if "$eq" in ops:
        return (ops["$eq"],)
    arg = ops["$in"]
    if not isinstance(arg, _ALTERNATIVES):
        raise QueryError(f"{field}: $in expects a list")
    return tuple(arg)


def term_matches(doc: Mapping[str, Any], field: str, wanted: Tuple[Any, ...]) -> bool:
    if field not in doc:
        return False
    vk = value_key(doc[field])
    return any(vk == value_key(w) for w in wanted)


class QueryEngine:
    """
    Evaluates equality/membership queries against the tree.

    Indexed terms are answered from their buckets and intersected; the
    remaining terms are checked on the candidates. With no indexed term the
    whole tree is scanned. Results always come out in tree order.
    """
    def __init__(self, tree: Dict[str, Dict[str, Any]], indexes: IndexManager) -> None:
        self.tree = tree
        self.indexes = indexes

    def plan(self, terms: List[Term]) -> Tuple[Optional[set[str]], List[Term]]:
        """
        Returns (unordered candidate keys or None for a full scan, terms left to check).
        """
        candidates: Optional[set[str]] = None
        rest: List[Term] = []
        for field, wanted in terms:
            if not self.indexes.has_index(field):
                rest.append((field, wanted))
                continue
            hits = self.indexes.lookup_any(field, wanted)
            candidates = hits if candidates is None else (candidates & hits)
        if candidates is None:
            return None, rest
        return candidates, rest

    def iter_keys(self, query: Mapping[str, Any], terms: Optional[List[Term]] = None, lazy: bool = True) -> Iterator[str]:
        """
        Matching keys in tree order. With lazy=True index hits come off a heap
        one at a time, so stopping early never orders the whole candidate set.
        """
        if terms is None:
            terms = normalize_query(query)
        candidates, rest = self.plan(terms)
        if candidates is None:
            keys: Iterable[str] = iter(self.tree)
        elif lazy:
            keys = self.indexes.iter_ordered(candidates)
        else:
            keys = self.indexes.order(candidates)
        for key in keys:
            doc = self.tree.get(key)
            if doc is not None and all(term_matches(doc, f, w) for f, w in rest):
                yield key

    def evaluate(self, query: Mapping[str, Any], terms: Optional[List[Term]] = None) -> List[str]:
        return list(self.iter_keys(query, terms, lazy=False))

    def first(self, query: Mapping[str, Any], terms: Optional[List[Term]] = None) -> Optional[str]:
        return next(self.iter_keys(query, terms), None)
