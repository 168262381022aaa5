from __future__ import annotations

import random
from collections import Counter

import pytest

from qbn.core.sampler import choose

ITEMS = list("abcdefghij")


@pytest.mark.parametrize("k", [0, -1, -10])
def test_non_positive_k_is_empty(k: int) -> None:
    assert choose(ITEMS, k, rng=random.Random(1)) == []


@pytest.mark.parametrize("k", [10, 11, 100])
def test_k_at_least_len_returns_everything(k: int) -> None:
    got = choose(ITEMS, k, rng=random.Random(1))
    assert len(got) == len(ITEMS)
    assert sorted(got) == ITEMS


@pytest.mark.parametrize("k", range(1, 10))
def test_k_distinct_members(k: int) -> None:
    for seed in range(20):
        got = choose(ITEMS, k, rng=random.Random(seed))
        assert len(got) == k
        assert len(set(got)) == k
        assert set(got) <= set(ITEMS)


def test_empty_input() -> None:
    assert choose([], 3, rng=random.Random(1)) == []


def test_same_seed_same_result() -> None:
    assert choose(ITEMS, 3, rng=random.Random(9)) == choose(ITEMS, 3, rng=random.Random(9))
    assert choose(ITEMS, 8, rng=random.Random(9)) == choose(ITEMS, 8, rng=random.Random(9))


class _CountingRandom(random.Random):
    def __init__(self, seed: int) -> None:
        super().__init__(seed)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return super().random()


def test_large_k_draws_only_the_excluded_side() -> None:
    items = list(range(1000))
    rng = _CountingRandom(3)
    got = choose(items, 999, rng=rng)
    assert len(got) == 999
    # one index to exclude: a single draw suffices
    assert rng.calls == 1


def test_selection_is_roughly_uniform() -> None:
    counts: Counter[str] = Counter()
    rng = random.Random(2024)
    trials = 4000
    for _ in range(trials):
        counts.update(choose(ITEMS, 3, rng=rng))
    expected = trials * 3 / len(ITEMS)
    for item in ITEMS:
        assert abs(counts[item] - expected) < expected * 0.15

    counts.clear()
    for _ in range(trials):
        counts.update(choose(ITEMS, 7, rng=rng))
    expected = trials * 7 / len(ITEMS)
    for item in ITEMS:
        assert abs(counts[item] - expected) < expected * 0.15
