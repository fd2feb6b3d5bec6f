"""Canonical text encoding for ordered column-id lists.

The encoded form takes part in unique constraints, so the same list must
always produce the same string: compact JSON, order preserved.
"""

import json


def encode_column_ids(column_ids) -> str:
    return json.dumps([int(c) for c in column_ids], separators=(",", ":"))


def decode_column_ids(raw: str | None) -> tuple[int, ...]:
    if not raw:
        return ()
    return tuple(int(c) for c in json.loads(raw))


def encode_methods(methods) -> str:
    return ",".join(sorted({getattr(m, "value", m) for m in methods}))


def decode_methods(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [m for m in raw.split(",") if m]
