from __future__ import annotations


class RecordLogError(Exception):
    """Base class for all errors raised by embedded_record_log."""


class IOCorruptionError(RecordLogError):
    """
    A tagged line carries a payload that is not a JSON object.
    The whole read is aborted; untagged lines are skipped instead.
    """
    def __init__(self, msg: str, line_no: int | None = None) -> None:
        if line_no is not None:
            msg = f"line {line_no}: {msg}"
        super().__init__(msg)
        self.line_no = line_no


class QueryError(RecordLogError):
    """Query or options of an unsupported shape."""
