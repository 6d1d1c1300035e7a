"""
Key generation strategies for inserts that carry no _id.

A strategy is any callable taking the current tree and returning an unused key.
"""

from __future__ import annotations
import secrets
from typing import Any, Callable, Dict, Mapping

from .errors import MissingRequiredFieldError
from .utils import next_auto_increment

KeyStrategy = Callable[[Mapping[str, Dict[str, Any]]], str]


class RandomKeys:
    """Opaque hex tokens from the secrets module; regenerated on collision."""

    def __init__(self, nbytes: int = 8) -> None:
        if nbytes < 1:
            raise ValueError("nbytes must be positive")
        self.nbytes = nbytes

    def __call__(self, tree: Mapping[str, Dict[str, Any]]) -> str:
        while True:
            key = secrets.token_hex(self.nbytes)
            if key not in tree:
                return key

    def __repr__(self) -> str:
        return f"RandomKeys(nbytes={self.nbytes})"


class AutoIncrementKeys:
    """One more than the largest integer key in the tree, or "1"."""

    def __call__(self, tree: Mapping[str, Dict[str, Any]]) -> str:
        return str(next_auto_increment(tree))

    def __repr__(self) -> str:
        return "AutoIncrementKeys()"


class CallerSuppliedKeys:
    """Refuses to invent keys: every insert must carry its own _id."""

    def __call__(self, tree: Mapping[str, Dict[str, Any]]) -> str:
        raise MissingRequiredFieldError("_id", "this store requires caller-supplied keys")

    def __repr__(self) -> str:
        return "CallerSuppliedKeys()"
