from __future__ import annotations
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from .codec import Record, canonical_json, decode_all, encode_all, encode_one
from .errors import QueryError
from .progress import Progress, ProgressCallback
from .query import MULTI_FIELD_MODES, Predicate, apply_options, check_options, compile_query
from .storage import FileStorage

logger = logging.getLogger("embedded_record_log.database")


class Database:
    """
    Record store over a tagged line log (see codec.py for the line format).

    find() is a full scan. insert() appends one line. delete() tombstones the
    matching records and rewrites the whole file. There is no locking: at most
    one mutating call per file may be in flight, and a delete racing with an
    insert from another process can drop that insert.
    """
    def __init__(
        self,
        path: str,
        full_text_fields: Iterable[str] = (),
        *,
        multi_field: str = "and",
        cache: bool = False,
        storage: Optional[FileStorage] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if multi_field not in MULTI_FIELD_MODES:
            raise QueryError(f"multi_field must be one of {MULTI_FIELD_MODES}, got {multi_field!r}")
        self.path = path
        self.full_text_fields: List[str] = list(full_text_fields)
        self.multi_field = multi_field
        self._fs = storage if storage is not None else FileStorage(path)
        self._progress = Progress(on_progress)
        self._cache_enabled = cache
        self._cached: Optional[List[Record]] = None

    # ----- public API -----

    def find(self, query: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Return the data of every live record matching query.
        Sorting sees full records; projection is applied last.
        """
        check_options(options)
        pred = self._compile(query)
        self._progress.emit("find.start", 0)
        matched = [rec.data for rec in self._live(self._records()) if pred(rec.data)]
        # Callers get copies; cached records must not be mutated from outside
        out = apply_options([dict(d) for d in matched], options)
        self._progress.emit("find.done", 100, f"{len(out)} matched")
        logger.debug("find %s -> %d records", self.path, len(out))
        return out

    def find_one(self, query: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        res = self.find(query, options)
        return res[0] if res else None

    def count(self, query: Dict[str, Any]) -> int:
        pred = self._compile(query)
        return sum(1 for rec in self._live(self._records()) if pred(rec.data))

    def insert(self, data: Dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise TypeError(f"record data must be a dict, got {type(data).__name__}")
        line = encode_one(data)
        self._fs.append_text("\n" + line)
        if self._cached is not None:
            self._cached.append(Record(dict(data)))
        self._progress.emit("insert.done", 100)
        logger.debug("insert %s: %s", self.path, line)

    def delete(self, query: Dict[str, Any]) -> int:
        """
        Tombstone every live record matching query, then rewrite the file.
        Records that are already tombstoned (or shadowed by a tombstone) are
        skipped, never re-tested. Shadowed lines keep their E tag: each D
        line already accounts for one of them, and a second D would hide a
        live copy on the next read. Returns the number of records newly
        tombstoned.
        """
        pred = self._compile(query)
        self._progress.emit("delete.start", 0)
        records = self._records()
        live = self._live(records)
        tick = self._progress.steps("delete.scan", len(live))
        n = 0
        try:
            for i, rec in enumerate(live, 1):
                if pred(rec.data) and rec.tombstone():
                    n += 1
                tick(i)
            self._fs.write_text(encode_all(records))
        except BaseException:
            # Cached tombstones no longer match the file
            self._cached = None
            raise
        self._progress.emit("delete.done", 100, f"{n} deleted")
        logger.debug("delete %s: %d tombstoned, %d lines rewritten", self.path, n, len(records))
        return n

    def reload(self) -> None:
        """Drop the in-memory record list; the next call reads the file."""
        self._cached = None

    # ----- helpers -----

    def _compile(self, query: Dict[str, Any]) -> Predicate:
        return compile_query(query, self.full_text_fields, self.multi_field)

    @staticmethod
    def _live(records: List[Record]) -> List[Record]:
        """
        Active records not shadowed by a tombstone. Each tombstone line hides
        one earlier active line with the same data; a record inserted again
        after its tombstone stays live.
        """
        pending: Counter = Counter()
        live: List[Record] = []
        for rec in reversed(records):
            key = canonical_json(rec.data)
            if rec.deleted:
                pending[key] += 1
            elif pending[key]:
                pending[key] -= 1
            else:
                live.append(rec)
        live.reverse()
        return live

    def _records(self) -> List[Record]:
        if self._cached is not None:
            return self._cached
        records = decode_all(self._fs.read_text())
        if self._cache_enabled:
            self._cached = records
        return records
