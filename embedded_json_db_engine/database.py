from __future__ import annotations
import copy
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Union

from rich.console import Console

from .config import StoreConfig
from .display import print_table
from .errors import IOCorruptionError, ImmutableKeyError, TypeMismatchError
from .index import IndexManager
from .keys import KeyStrategy, RandomKeys
from .progress import Progress, ProgressCallback
from .query import QueryEngine, normalize_query
from .schema import Schema
from .storage import FileStorage
from .utils import canonical_json, has_non_str_key, next_auto_increment

logger = logging.getLogger(__name__)

KEY_FIELD = "_id"

Document = Dict[str, Any]


class Database:
    """
    Document store persisted as a single JSON object {key: document}.

    The file is read on first use and rewritten after every mutation. Reads
    are served from the in-memory tree, using secondary indexes where they
    exist. Documents handed out are copies; the tree is only changed through
    insert/update/remove.
    """
    def __init__(
        self,
        path: Union[str, os.PathLike],
        schema: Optional[Dict[str, Any]] = None,
        *,
        key_strategy: Optional[KeyStrategy] = None,
        on_progress: Optional[ProgressCallback] = None,
        config: Optional[StoreConfig] = None,
    ) -> None:
        self.path = path
        self.config = config or StoreConfig()
        self._schema = Schema(schema)
        self._fs = FileStorage(path, self.config)
        self._progress = Progress(on_progress)
        self._key_strategy: KeyStrategy = key_strategy or RandomKeys(self.config.random_key_bytes)
        self._indexes = IndexManager()
        self._tree: Optional[Dict[str, Document]] = None
        self._engine: Optional[QueryEngine] = None

    def __repr__(self) -> str:
        state = "loaded" if self._tree is not None else "unloaded"
        return f"Database({str(self.path)!r}, {state})"

    def __len__(self) -> int:
        return len(self._ensure_loaded())

    def __contains__(self, key: object) -> bool:
        return key in self._ensure_loaded()

    # ----- lifecycle -----

    def _ensure_loaded(self) -> Dict[str, Document]:
        if self._tree is None:
            self.load()
        assert self._tree is not None
        return self._tree

    def load(self) -> None:
        """
        (Re)read the file and rebuild every index. Indexes created earlier and
        schema fields marked "index" are kept.
        """
        self._progress.start("load", str(self.path))
        tree = self._fs.load()
        for key, doc in tree.items():
            if not isinstance(doc, dict):
                raise IOCorruptionError(self.path, f"document {key!r} is not an object")
            if KEY_FIELD in doc and doc[KEY_FIELD] != key:
                logger.warning(f"Document {key!r} in {self.path} carries _id={doc[KEY_FIELD]!r}")
        self._tree = tree
        self._indexes.rebuild(tree)
        for field in self._schema.indexed_fields:
            if self._indexes.create_index(field, tree):
                self._progress.emit("index.build", 100, field)
        self._engine = QueryEngine(tree, self._indexes)
        self._progress.done("load", f"{len(tree)} documents")

    def save(self) -> None:
        tree = self._ensure_loaded()
        self._fs.save(tree)
        self._progress.emit("save.done", 100, str(self.path))

    def close(self) -> None:
        """Drop in-memory state; the next call loads the file again."""
        self._tree = None
        self._engine = None
        self._indexes.rebuild({})

    # ----- indexes -----

    @property
    def indexes(self) -> List[str]:
        return self._indexes.fields

    def create_index(self, field: str) -> bool:
        """
        Index `field` over the current tree. Returns False if it already exists.
        """
        if not isinstance(field, str) or not field:
            raise TypeError("index field must be a non-empty string")
        tree = self._ensure_loaded()
        created = self._indexes.create_index(field, tree)
        if created:
            self._progress.emit("index.build", 100, field)
        return created

    def drop_index(self, field: str) -> bool:
        self._ensure_loaded()
        return self._indexes.drop_index(field)

    # ----- reads -----

    def get(self, key: str) -> Optional[Document]:
        doc = self._ensure_loaded().get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query: Mapping[str, Any], return_keys: bool = True) -> Union[List[str], List[Document]]:
        """
        Keys of every document matching `query`, in tree order; the documents
        themselves (as copies) when return_keys is False.

        Each query value is either a scalar (equality), a list/tuple/set of
        scalars (any of), or {"$eq": v} / {"$in": [...]}. All fields must match.
        """
        keys = self._select(query)
        if return_keys:
            return keys
        tree = self._ensure_loaded()
        return [copy.deepcopy(tree[k]) for k in keys]

    def find_one(self, query: Mapping[str, Any]) -> Optional[Document]:
        tree = self._ensure_loaded()
        terms = normalize_query(query)
        self._schema.validate_query_terms(terms)
        assert self._engine is not None
        key = self._engine.first(query, terms)
        return copy.deepcopy(tree[key]) if key is not None else None

    def get_all(self) -> Dict[str, Document]:
        return copy.deepcopy(self._ensure_loaded())

    def get_auto_increment_id(self) -> int:
        """
        One more than the largest integer-looking key, or 1. Advisory only:
        pass it as _id (or use AutoIncrementKeys) to actually use it.
        """
        return next_auto_increment(self._ensure_loaded())

    def visualize(self, console: Optional[Console] = None) -> None:
        print_table(self._ensure_loaded(), console=console, title=os.path.basename(str(self.path)))

    # ----- writes -----

    def insert(self, document: Mapping[str, Any], *, key_strategy: Optional[KeyStrategy] = None) -> str:
        """
        Validate and store a copy of `document`. Its _id is used as key when
        present, otherwise a key is generated and written into the stored copy.
        An existing key is replaced.
        """
        if not isinstance(document, Mapping):
            raise TypeError(f"document must be a mapping, got {type(document).__name__}")
        tree = self._ensure_loaded()
        doc: Document = copy.deepcopy(dict(document))
        self._schema.apply_defaults(doc)
        if self._schema:
            self._schema.validate(doc)
        self._check_serializable(doc)

        key = doc.get(KEY_FIELD)
        if key is None:
            key = (key_strategy or self._key_strategy)(tree)
            doc[KEY_FIELD] = key
        elif not isinstance(key, str) or not key:
            raise TypeMismatchError(KEY_FIELD, f"key must be a non-empty string, got {key!r}")

        old = tree.get(key)
        tree[key] = doc
        if old is None:
            self._indexes.reindex_on_insert(key, doc)
        else:
            self._indexes.reindex_on_update(key, old, doc)
            logger.debug(f"Replaced document {key!r}")

        self.save()
        self._progress.done("insert", key)
        logger.debug(f"Inserted document {key!r}")
        return key

    def update(self, query: Mapping[str, Any], updates: Mapping[str, Any]) -> int:
        """
        Merge `updates` into every matching document (fields not mentioned are
        kept). Returns the number of documents changed.
        """
        if not isinstance(updates, Mapping):
            raise TypeError(f"updates must be a mapping, got {type(updates).__name__}")
        if KEY_FIELD in updates:
            raise ImmutableKeyError(KEY_FIELD, "document keys cannot be changed")
        self._schema.validate_partial(updates)
        self._check_serializable(updates)

        tree = self._ensure_loaded()
        keys = self._select(query)
        self._progress.start("update")
        for key in keys:
            doc = tree[key]
            before = dict(doc)
            doc.update(copy.deepcopy(dict(updates)))
            self._indexes.reindex_on_update(key, before, doc)
        if keys:
            self.save()
        self._progress.done("update", f"{len(keys)} documents")
        logger.debug(f"Updated {len(keys)} documents")
        return len(keys)

    def remove(self, query: Mapping[str, Any]) -> int:
        tree = self._ensure_loaded()
        keys = self._select(query)
        self._progress.start("remove")
        for key in keys:
            doc = tree.pop(key)
            self._indexes.reindex_on_remove(key, doc)
        if keys:
            self.save()
        self._progress.done("remove", f"{len(keys)} documents")
        logger.debug(f"Removed {len(keys)} documents")
        return len(keys)

    # ----- helpers -----

    def _select(self, query: Mapping[str, Any]) -> List[str]:
        self._ensure_loaded()
        terms = normalize_query(query)
        self._schema.validate_query_terms(terms)
        assert self._engine is not None
        return self._engine.evaluate(query, terms)

    @staticmethod
    def _check_serializable(doc: Mapping[str, Any]) -> None:
        for field, value in doc.items():
            if not isinstance(field, str):
                raise TypeMismatchError(str(field), f"field names must be strings, got {type(field).__name__}")
            # Non-string keys would come back as strings after a reload
            if has_non_str_key(value):
                raise TypeMismatchError(field, "nested mapping keys must be strings")
            try:
                canonical_json(value)
            except (TypeError, ValueError) as e:
                raise TypeMismatchError(field, f"value is not JSON-serializable: {e}") from e
