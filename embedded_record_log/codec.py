from __future__ import annotations
import json
from typing import Any, Dict, Iterable, List

from .errors import IOCorruptionError

ACTIVE_TAG = "E"
DELETED_TAG = "D"
_TAGS = (ACTIVE_TAG, DELETED_TAG)


class Record:
    """
    One line of the log: the caller's data plus a tombstone flag.
    The flag only ever goes from False to True, via tombstone().
    """
    __slots__ = ("data", "_deleted")

    def __init__(self, data: Dict[str, Any], deleted: bool = False) -> None:
        self.data = data
        self._deleted = bool(deleted)

    @property
    def deleted(self) -> bool:
        return self._deleted

    def tombstone(self) -> bool:
        """Mark deleted. Returns True only if the flag actually changed."""
        if self._deleted:
            return False
        self._deleted = True
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._deleted == other._deleted and self.data == other.data

    def __repr__(self) -> str:
        return f"Record(deleted={self._deleted!r}, data={self.data!r})"


def dump_json(data: Dict[str, Any]) -> str:
    # Compact, key order kept, non-ASCII written as is
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates can only be stored as \u escapes
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=True)
    return text


def canonical_json(data: Dict[str, Any]) -> str:
    """Key-order independent form, used to tell identical records apart."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def encode_one(data: Dict[str, Any]) -> str:
    return ACTIVE_TAG + dump_json(data)


def encode_record(record: Record) -> str:
    tag = DELETED_TAG if record.deleted else ACTIVE_TAG
    return tag + dump_json(record.data)


def encode_all(records: Iterable[Record]) -> str:
    return "\n".join(encode_record(r) for r in records)


def decode_line(line: str, line_no: int | None = None) -> Record | None:
    """
    Decode one line. Blank lines and lines without a known tag give None.
    """
    line = line.strip()
    if not line or line[0] not in _TAGS:
        return None
    try:
        data = json.loads(line[1:])
    except json.JSONDecodeError as exc:
        raise IOCorruptionError(f"malformed record payload: {exc.msg}", line_no) from exc
    if not isinstance(data, dict):
        raise IOCorruptionError("record payload is not an object", line_no)
    return Record(data, deleted=(line[0] == DELETED_TAG))


def decode_all(raw: str) -> List[Record]:
    records: List[Record] = []
    # Leading/trailing blank lines fall out as empty lines below
    for line_no, line in enumerate(raw.split("\n"), 1):
        rec = decode_line(line, line_no)
        if rec is not None:
            records.append(rec)
    return records
