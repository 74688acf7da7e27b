from __future__ import annotations

import json
import math
from typing import Any


def canonicalize(obj: Any) -> bytes:
    """Deterministic UTF-8 encoding of a JSON value for signing and verification.

    - object keys sorted at every nesting level
    - array order preserved
    - no insignificant whitespace
    - integral floats written as integers (1.0 -> 1)

    Raises TypeError or ValueError for values with no JSON form.
    """
    return _encode(obj).encode("utf-8")


def _encode(value: Any) -> str:
    # bool before int: True is an int in Python.
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _encode_float(value)
    if isinstance(value, dict):
        for key in value:
            if not isinstance(key, str):
                raise TypeError(f"object keys must be strings (got {type(key).__name__})")
        members = (f"{_encode_string(k)}:{_encode(value[k])}" for k in sorted(value))
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    raise TypeError(f"value of type {type(value).__name__} is not JSON serializable")


def _encode_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _encode_float(value: float) -> str:
    if not math.isfinite(value):
        raise ValueError(f"{value!r} has no JSON representation")
    if value.is_integer():
        return str(int(value))
    return repr(value)
