from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .config import StoreConfig
from .errors import IOCorruptionError, StoreIOError

logger = logging.getLogger(__name__)


class FileStorage:
    """
    Whole-file I/O for the store tree: one JSON object, read at once, rewritten at once.
    """
    def __init__(self, path: str | os.PathLike, config: StoreConfig | None = None) -> None:
        self.path = Path(path)
        self.config = config or StoreConfig()

    @property
    def tmp_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".tmp")

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Dict[str, Dict[str, Any]]:
        """
        Read and parse the file. A missing file yields an empty tree, which is
        written out immediately as {}.
        """
        try:
            raw = self.path.read_text(encoding=self.config.encoding)
        except FileNotFoundError:
            logger.info(f"No store file at {self.path}, creating an empty one")
            tree: Dict[str, Dict[str, Any]] = {}
            self.save(tree)
            return tree
        except (OSError, UnicodeDecodeError) as e:
            raise StoreIOError(self.path, f"failed to read store: {e}") from e

        try:
            tree = json.loads(raw)
        except ValueError as e:
            raise IOCorruptionError(self.path, f"invalid JSON: {e}") from e
        if not isinstance(tree, dict):
            raise IOCorruptionError(self.path, f"top level must be an object, got {type(tree).__name__}")
        logger.info(f"Loaded {len(tree)} documents from {self.path}")
        return tree

    def save(self, tree: Dict[str, Dict[str, Any]]) -> None:
        """
        Serialize the whole tree in its iteration order. With atomic_write the
        data goes to a .tmp sibling first and is moved over the file with os.replace.
        """
        cfg = self.config
        try:
            data = json.dumps(tree, indent=cfg.indent, ensure_ascii=cfg.ensure_ascii, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise StoreIOError(self.path, f"tree is not JSON-serializable: {e}") from e

        target = self.tmp_path if cfg.atomic_write else self.path
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding=cfg.encoding) as f:
                f.write(data)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            if cfg.atomic_write:
                os.replace(target, self.path)
        except OSError as e:
            raise StoreIOError(self.path, f"failed to write store: {e}") from e
        logger.debug(f"Saved {len(tree)} documents to {self.path}")
