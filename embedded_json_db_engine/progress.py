from __future__ import annotations
from typing import Any, Callable, Dict, Optional

ProgressCallback = Callable[[Dict[str, Any]], None]


class Progress:
    """
    Thin wrapper around the user's on_progress callback.
    Events look like {"phase": "update.start", "pct": 0, "msg": "..."}.
    """
    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._cb = callback

    def __bool__(self) -> bool:
        return self._cb is not None

    def emit(self, phase: str, pct: int = 100, msg: str = "") -> None:
        if self._cb is None:
            return
        self._cb({"phase": phase, "pct": max(0, min(100, int(pct))), "msg": msg})

    def start(self, op: str, msg: str = "") -> None:
        self.emit(f"{op}.start", 0, msg)

    def done(self, op: str, msg: str = "") -> None:
        self.emit(f"{op}.done", 100, msg)
