from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from qbn.core.errors import InvalidRangeName, InvalidRangeSpec
from qbn.core.variables import SIGILED_NAME_RE, VariableStore


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _dump(ranges: Sequence[Any]) -> str:
    try:
        return json.dumps(list(ranges))
    except TypeError:
        return repr(list(ranges))


def validate_range_spec(ranges: Sequence[Any]) -> None:
    n = len(ranges)
    if n < 2:
        raise InvalidRangeSpec(f"invalid range spec: must have at least two values (got {n}).")

    prev: Any = None
    lower: float | None = None
    for r in ranges:
        if isinstance(r, str):
            if isinstance(prev, str):
                raise InvalidRangeSpec(
                    f"invalid range spec {_dump(ranges)}: may not have two consecutive strings."
                )
        elif _is_number(r):
            if lower is not None and r <= lower:
                raise InvalidRangeSpec(
                    f"invalid range spec {_dump(ranges)}: numbers must be strictly increasing."
                )
            lower = r
        else:
            raise InvalidRangeSpec(
                f"invalid range spec {_dump(ranges)}: may only contain strings and numbers."
            )
        prev = r


def bucket_for(value: Any, ranges: Sequence[Any]) -> str | None:
    """Return the label of the bucket `value` falls in, or None.

    A boundary belongs to the bucket above it. Values below a boundary that has
    no label before it, and values past a trailing number, have no bucket.
    """

    label: str | None = None
    for r in ranges:
        if isinstance(r, str):
            label = r
            continue
        if value < r:
            return label
        label = None
    return label


def classify_range(store: VariableStore, name: str, ranges: Sequence[Any]) -> str | None:
    """Set the flag `<label>_<base>` for the bucket the variable `name` falls in.

    The flag is written to the same scope as `name`: `$age` in bucket "adult"
    sets `$adult_age`. Returns the label, or None when nothing was set.
    """

    if not isinstance(name, str):
        raise InvalidRangeName(f"name must be a string (got {type(name).__name__}).")
    if not SIGILED_NAME_RE.match(name):
        raise InvalidRangeName(f"invalid name {json.dumps(name)}.")

    value = store.get_var(name)
    if value is None:
        raise InvalidRangeName(f"no such variable {json.dumps(name)}.")

    if not _is_number(value):
        raise InvalidRangeName(f"variable {json.dumps(name)} is not a number (got {value!r}).")

    validate_range_spec(ranges)

    label = bucket_for(value, ranges)
    if label is None:
        return None
    if not store.set_var(f"{name[0]}{label}_{name[1:]}", True):
        raise InvalidRangeSpec(f"invalid range label {json.dumps(label)}: not usable in a variable name.")
    return label
