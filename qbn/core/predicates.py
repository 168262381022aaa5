from __future__ import annotations

import operator
import random
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from qbn.core.variables import VariableStore


CompareOp = Literal["eq", "ne", "lt", "gt", "le", "ge"]

OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "gt": operator.gt,
    "le": operator.le,
    "ge": operator.ge,
}

_NOT_RE = re.compile(r"^not-(.+)$")
_RANDOM_RE = re.compile(r"^random-([0-9]+)$")
# Greedy name: `a-b-eq-1` compares variable `a-b`.
_COMPARE_RE = re.compile(r"^(.*)-(eq|ne|lt|gt|le|ge)-(.*)$")


@dataclass(frozen=True, slots=True)
class Negation:
    inner: "Predicate"


@dataclass(frozen=True, slots=True)
class Probability:
    percent: int


@dataclass(frozen=True, slots=True)
class Comparison:
    name: str
    op: CompareOp
    expected: str


@dataclass(frozen=True, slots=True)
class BareFlag:
    name: str


Predicate = Negation | Probability | Comparison | BareFlag


def parse_tag(tag: str) -> Predicate:
    """Parse a tag string into a predicate.

    Forms are tried in order and the first match wins:
        not-<tag>               negation of <tag>
        random-<percent>        true with probability percent/100
        <name>-<op>-<value>     comparison, op in eq/ne/lt/gt/le/ge
        <name>                  truthiness of a variable
    """

    m = _NOT_RE.match(tag)
    if m:
        return Negation(inner=parse_tag(m.group(1)))

    m = _RANDOM_RE.match(tag)
    if m:
        return Probability(percent=int(m.group(1)))

    m = _COMPARE_RE.match(tag)
    if m:
        return Comparison(name=m.group(1), op=m.group(2), expected=m.group(3))  # type: ignore[arg-type]

    return BareFlag(name=tag)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compare(actual: Any, op: CompareOp, expected: str) -> bool:
    if actual is None:
        # An undefined variable differs from everything and orders with nothing.
        return op == "ne"

    fn = OPERATORS[op]
    if _is_number(actual):
        # Tags can't contain dots, so `1_5` stands for 1.5.
        try:
            target = float(expected.replace("_", "."))
        except ValueError:
            target = float("nan")
        return bool(fn(actual, target))

    return bool(fn(_as_text(actual), expected))


def evaluate(
    predicate: Predicate,
    *,
    store: VariableStore,
    rng: random.Random,
    overrides: Mapping[str, Any] | None = None,
) -> bool:
    match predicate:
        case Negation(inner=inner):
            return not evaluate(inner, store=store, rng=rng, overrides=overrides)
        case Probability(percent=percent):
            return rng.random() < percent / 100
        case Comparison(name=name, op=op, expected=expected):
            return compare(store.value(name, overrides), op, expected)
        case BareFlag(name=name):
            return bool(store.value(name, overrides))
    raise TypeError(f"Unknown predicate: {predicate!r}")


def has(
    tag: str,
    *,
    store: VariableStore,
    rng: random.Random,
    overrides: Mapping[str, Any] | None = None,
) -> bool:
    return evaluate(parse_tag(tag), store=store, rng=rng, overrides=overrides)
