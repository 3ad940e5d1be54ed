from .codec import Record, decode_all, encode_all, encode_one
from .database import Database
from .errors import IOCorruptionError, QueryError, RecordLogError
from .query import compile_query, parse_query
from .storage import FileStorage

__all__ = [
    "Database",
    "FileStorage",
    "Record",
    "decode_all",
    "encode_all",
    "encode_one",
    "compile_query",
    "parse_query",
    "RecordLogError",
    "IOCorruptionError",
    "QueryError",
]
