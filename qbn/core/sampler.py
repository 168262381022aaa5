from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def choose(items: Sequence[T], k: int, *, rng: random.Random) -> list[T]:
    """Pick `k` distinct elements of `items` uniformly at random.

    Draws at most min(k, len(items) - k) unique indices: when more than half of
    the items are wanted, the drawn indices are the ones left out instead.
    Included picks come back in draw order; the excluding branch keeps input order.
    """

    total = len(items)
    k = min(k, total)
    if k <= 0:
        return []

    n = min(k, total - k)
    include = n == k

    selected: list[T] = []
    seen: set[int] = set()
    while len(seen) < n:
        i = int(rng.random() * total)
        if i in seen:
            continue
        seen.add(i)
        if include:
            selected.append(items[i])

    if not include:
        selected = [item for i, item in enumerate(items) if i not in seen]
    return selected
