from __future__ import annotations
import json
import re
from typing import Any, Dict, Iterable, Optional, Tuple

_INT_KEY = re.compile(r"-?\d+")


def canonical_json(obj: Any) -> str:
    # Stable, compact form used for hashing nested values
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, allow_nan=False, separators=(",", ":"))


def has_non_str_key(v: Any) -> bool:
    """True if a mapping at any depth has a key json.dumps would coerce to a string."""
    if isinstance(v, dict):
        return any(not isinstance(k, str) or has_non_str_key(item) for k, item in v.items())
    if isinstance(v, (list, tuple)):
        return any(has_non_str_key(item) for item in v)
    return False


def value_key(v: Any) -> Tuple[str, Any]:
    """
    Normalized, hashable form of a JSON value.
    bool, numbers, str and null never collide with each other; 1 and 1.0 do.
    """
    if v is None:
        return ("null", None)
    if isinstance(v, bool):
        return ("bool", v)
    if isinstance(v, (int, float)):
        return ("num", v)
    if isinstance(v, str):
        return ("str", v)
    return ("json", canonical_json(v))


def int_key(key: str) -> Optional[int]:
    if _INT_KEY.fullmatch(key):
        return int(key)
    return None


def next_auto_increment(keys: Iterable[str]) -> int:
    best: Optional[int] = None
    for k in keys:
        n = int_key(k)
        if n is not None and (best is None or n > best):
            best = n
    return 1 if best is None else best + 1


def compact(v: Any) -> str:
    if isinstance(v, str):
        return v
    return json.dumps(v, ensure_ascii=False, separators=(",", ":"))


def field_names(docs: Iterable[Dict[str, Any]], first: str = "_id") -> list[str]:
    names: Dict[str, None] = {first: None}
    for doc in docs:
        for k in doc:
            names.setdefault(k, None)
    return list(names)
