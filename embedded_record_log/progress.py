from __future__ import annotations
from typing import Any, Callable, Dict, Optional

ProgressCallback = Callable[[Dict[str, Any]], None]


class Progress:
    """
    Thin wrapper over the optional on_progress callback.
    Events are dicts: {"phase": str, "pct": int, "msg": str}.
    """
    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._cb = callback

    def emit(self, phase: str, pct: int = 100, msg: str = "") -> None:
        if self._cb is None:
            return
        self._cb({"phase": phase, "pct": max(0, min(100, int(pct))), "msg": msg})

    def steps(self, phase: str, total: int, every: int = 1000) -> Callable[[int], None]:
        """Return a tick(done) function emitting at most every `every` items."""
        def tick(done: int) -> None:
            if total and (done % every == 0 or done == total):
                self.emit(phase, done * 100 // total, f"{done}/{total}")
        return tick
