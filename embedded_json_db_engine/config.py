"""Configuration for the JSON document store."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StoreConfig:
    """Tunable parameters of a Database instance.

    Attributes:
        indent: JSON indentation used when the tree is written
        encoding: Text encoding of the store file
        ensure_ascii: Escape non-ASCII characters on write
        atomic_write: Write to a temp sibling and os.replace it over the file
        random_key_bytes: Entropy of keys produced by the default RandomKeys
    """

    indent: int = 2
    encoding: str = "utf-8"
    ensure_ascii: bool = False
    atomic_write: bool = True
    random_key_bytes: int = 8
