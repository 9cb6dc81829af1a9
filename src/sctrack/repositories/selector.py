"""Document selector queries, evaluated in-process.

Covers the subset of the document-store query language the engine emits:
field equality, comparison and membership operators, ``$exists``, ``$and`` /
``$or``, dotted paths into nested objects, ``sort``, ``skip`` and ``limit``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

_MISSING = object()


@dataclass(frozen=True)
class SelectorQuery:
    selector: dict
    sort: tuple[tuple[str, bool], ...] = ()
    limit: Optional[int] = None
    skip: int = 0


def build_query(selector: dict, sort: list | None = None, limit: int | None = None) -> str:
    payload: dict[str, Any] = {"selector": selector}
    if sort:
        payload["sort"] = sort
    if limit is not None:
        payload["limit"] = int(limit)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def parse_query(text: str) -> SelectorQuery:
    data = json.loads(text)
    if not isinstance(data, dict) or not isinstance(data.get("selector"), dict):
        raise ValueError("Query must be an object with a 'selector' object")

    sort: list[tuple[str, bool]] = []
    for item in data.get("sort") or []:
        if isinstance(item, str):
            sort.append((item, False))
        elif isinstance(item, dict) and len(item) == 1:
            (field, direction), = item.items()
            if direction not in ("asc", "desc"):
                raise ValueError(f"Unknown sort direction: {direction}")
            sort.append((field, direction == "desc"))
        else:
            raise ValueError(f"Invalid sort entry: {item!r}")

    limit = data.get("limit")
    if limit is not None and (not isinstance(limit, int) or isinstance(limit, bool) or limit < 0):
        raise ValueError("limit must be a non-negative integer")
    skip = data.get("skip", 0)
    if not isinstance(skip, int) or isinstance(skip, bool) or skip < 0:
        raise ValueError("skip must be a non-negative integer")

    return SelectorQuery(selector=data["selector"], sort=tuple(sort), limit=limit, skip=skip)


def resolve(doc: Any, path: str) -> Any:
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _same_kind(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    numbers = (int, float)
    if isinstance(a, numbers) and isinstance(b, numbers):
        return True
    return type(a) is type(b)


def _equal(a: Any, b: Any) -> bool:
    return a is not _MISSING and _same_kind(a, b) and a == b


def _compare(value: Any, arg: Any, op: str) -> bool:
    if value is _MISSING or not _same_kind(value, arg) or not isinstance(arg, (int, float, str)):
        return False
    if op == "$gt":
        return value > arg
    if op == "$gte":
        return value >= arg
    if op == "$lt":
        return value < arg
    return value <= arg


def _match_operator(value: Any, op: str, arg: Any) -> bool:
    if op == "$eq":
        return _equal(value, arg)
    if op == "$ne":
        return value is not _MISSING and not _equal(value, arg)
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(value, arg, op)
    if op == "$in":
        if not isinstance(arg, list):
            raise ValueError("$in expects a list")
        return any(_equal(value, candidate) for candidate in arg)
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    raise ValueError(f"Unsupported operator: {op}")


def _match_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        return all(_match_operator(value, op, arg) for op, arg in condition.items())
    if isinstance(condition, dict):
        return isinstance(value, dict) and matches(value, condition)
    return _equal(value, condition)


def matches(doc: Any, selector: dict) -> bool:
    for key, condition in selector.items():
        if key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported combination operator: {key}")
        elif not _match_condition(resolve(doc, key), condition):
            return False
    return True


def _collation_key(value: Any) -> tuple:
    # null < booleans < numbers < strings < arrays < objects
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4 if isinstance(value, list) else 5, json.dumps(value, sort_keys=True))


def apply(query: SelectorQuery, rows: Iterable[tuple[str, Any]]) -> list[tuple[str, Any]]:
    """Filter, order and page ``(key, document)`` rows; ties keep key order."""
    selected = sorted(((k, d) for k, d in rows if matches(d, query.selector)), key=lambda r: r[0])
    if query.sort:
        selected = [r for r in selected if all(resolve(r[1], f) is not _MISSING for f, _ in query.sort)]
        for field, descending in reversed(query.sort):
            selected.sort(key=lambda r: _collation_key(resolve(r[1], field)), reverse=descending)
    selected = selected[query.skip:]
    if query.limit is not None:
        selected = selected[: query.limit]
    return selected
