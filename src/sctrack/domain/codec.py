from __future__ import annotations

import json
from typing import Any


def encode(value: dict[str, Any]) -> bytes:
    # Canonical form: replicas must write byte-identical values.
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode(raw: bytes | str) -> Any:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def decode_object(raw: bytes | str) -> dict[str, Any]:
    data = decode(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
