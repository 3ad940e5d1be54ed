from __future__ import annotations
import json
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .errors import QueryError

Predicate = Callable[[Dict[str, Any]], bool]

# Checked in this order when a criteria mapping carries several operators
CRITERIA_OPS = ("$in", "$eq", "$gt", "$lt")
MULTI_FIELD_MODES = ("and", "first")
OPTION_KEYS = {"projection", "sort", "skip", "limit"}


@dataclass(frozen=True)
class Criterion:
    op: str
    operand: Any


@dataclass(frozen=True)
class FieldQuery:
    criteria: Tuple[Tuple[str, Criterion], ...]


@dataclass(frozen=True)
class TextQuery:
    term: str


@dataclass(frozen=True)
class AndQuery:
    children: Tuple["QueryNode", ...]


@dataclass(frozen=True)
class OrQuery:
    children: Tuple["QueryNode", ...]


QueryNode = Union[FieldQuery, TextQuery, AndQuery, OrQuery]


def _dumps(obj: Any) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(obj)


def parse_criterion(field: str, value: Any, query: Dict[str, Any]) -> Criterion:
    if isinstance(value, dict):
        for op in CRITERIA_OPS:
            if op in value:
                operand = value[op]
                if op == "$in" and not isinstance(operand, (list, tuple)):
                    raise QueryError(f"$in expects a list: field={field!r}, query={_dumps(query)}")
                return Criterion(op, operand)
    raise QueryError(f"Unknown key-based filter: query={_dumps(query)}")


def parse_query(query: Dict[str, Any]) -> QueryNode:
    """
    Turn a query mapping into a tree of query nodes.

    When several shape keys are present at one level, $text wins over $and,
    $and over $or, and $or over plain field criteria. Everything invalid is
    reported here, before any record is looked at.
    """
    if not isinstance(query, dict):
        raise QueryError(f"query must be a mapping, got {type(query).__name__}")
    if "$text" in query:
        term = query["$text"]
        if not isinstance(term, str):
            raise QueryError(f"$text expects a string: query={_dumps(query)}")
        return TextQuery(term)
    for key, node_cls in (("$and", AndQuery), ("$or", OrQuery)):
        if key in query:
            subs = query[key]
            if not isinstance(subs, (list, tuple)):
                raise QueryError(f"{key} expects a list of queries: query={_dumps(query)}")
            return node_cls(tuple(parse_query(q) for q in subs))
    return FieldQuery(tuple((k, parse_criterion(k, v, query)) for k, v in query.items()))


def _order(a: Any, b: Any) -> Optional[int]:
    """-1/0/1, or None when the two values cannot be ordered."""
    if a is None or b is None:
        return None
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        return None
    return 0


def _criterion_predicate(field: str, crit: Criterion) -> Predicate:
    op, arg = crit.op, crit.operand
    if op == "$in":
        members = list(arg)
        return lambda rec: field in rec and rec[field] in members
    if op == "$eq":
        return lambda rec: field in rec and rec[field] == arg
    if op == "$gt":
        return lambda rec: _order(rec.get(field), arg) == 1
    # $lt
    return lambda rec: _order(rec.get(field), arg) == -1


def tokenize(value: Any) -> List[str]:
    return [tok.lower() for tok in str(value).split()]


def compile_node(node: QueryNode, text_fields: Sequence[str], multi_field: str = "and") -> Predicate:
    if isinstance(node, TextQuery):
        term = node.term.lower()
        fields = tuple(text_fields)

        def text_match(rec: Dict[str, Any]) -> bool:
            for f in fields:
                val = rec.get(f)
                if val is None:
                    continue
                if term in tokenize(val):
                    return True
            return False
        return text_match

    if isinstance(node, AndQuery):
        preds = [compile_node(c, text_fields, multi_field) for c in node.children]
        return lambda rec: all(p(rec) for p in preds)

    if isinstance(node, OrQuery):
        preds = [compile_node(c, text_fields, multi_field) for c in node.children]
        return lambda rec: any(p(rec) for p in preds)

    preds = [_criterion_predicate(f, c) for f, c in node.criteria]
    if not preds:
        return lambda rec: True
    if multi_field == "first":
        # Only the first field in the mapping is tested
        return preds[0]
    return lambda rec: all(p(rec) for p in preds)


def compile_query(query: Dict[str, Any], text_fields: Sequence[str] = (), multi_field: str = "and") -> Predicate:
    """
    Compile a query mapping into a predicate over record data.

    multi_field decides what a mapping with several bare field keys means:
    "and" requires every field to match, "first" tests only the first key
    in the mapping's order (the historic behaviour of the log format).
    """
    if multi_field not in MULTI_FIELD_MODES:
        raise QueryError(f"multi_field must be one of {MULTI_FIELD_MODES}, got {multi_field!r}")
    return compile_node(parse_query(query), text_fields, multi_field)


def check_options(options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if options is None:
        return {}
    if not isinstance(options, dict):
        raise QueryError(f"options must be a mapping, got {type(options).__name__}")
    unknown = set(options) - OPTION_KEYS
    if unknown:
        raise QueryError(f"unknown options: {sorted(unknown)}")
    for key in ("sort", "projection"):
        if options.get(key) is not None and not isinstance(options[key], dict):
            raise QueryError(f"{key} must be a mapping of field names")
    sort = options.get("sort")
    if sort:
        for field, direction in sort.items():
            if direction not in (1, -1) or isinstance(direction, bool):
                raise QueryError(f"sort direction must be 1 or -1: {field}={direction!r}")
    skip = options.get("skip", 0)
    limit = options.get("limit")
    if not isinstance(skip, int) or skip < 0:
        raise QueryError(f"skip must be a non-negative int, got {skip!r}")
    if limit is not None and (not isinstance(limit, int) or limit < 0):
        raise QueryError(f"limit must be a non-negative int, got {limit!r}")
    return options


def sort_records(records: List[Dict[str, Any]], sort: Dict[str, int]) -> List[Dict[str, Any]]:
    fields = list(sort.items())

    def cmp(a: Dict[str, Any], b: Dict[str, Any]) -> int:
        for field, direction in fields:
            o = _order(a.get(field), b.get(field))
            if o:
                return o if direction == 1 else -o
        return 0
    return sorted(records, key=cmp_to_key(cmp))


def project(record: Dict[str, Any], projection: Dict[str, int]) -> Dict[str, Any]:
    # Only the literal int 1 selects a field; True and 1.0 do not
    return {f: record[f] for f, flag in projection.items()
            if type(flag) is int and flag == 1 and f in record}


def apply_options(records: List[Dict[str, Any]], options: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Sort on full records, then skip/limit, then narrow to the projection.
    """
    opts = check_options(options)
    out = records
    if opts.get("sort"):
        out = sort_records(out, opts["sort"])
    skip = opts.get("skip", 0)
    limit = opts.get("limit")
    if skip or limit is not None:
        out = out[skip:] if limit is None else out[skip:skip + limit]
    if opts.get("projection"):
        out = [project(r, opts["projection"]) for r in out]
    return out
