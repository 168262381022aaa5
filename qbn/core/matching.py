from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from qbn.assets.registry import Fragment
from qbn.core.sampler import choose
from qbn.core.session import Session


REQUIREMENT_PREFIX = "req-"


def requirements(fragment: Fragment) -> list[str]:
    """Tags that are preconditions, with the `req-` prefix stripped."""

    return [t[len(REQUIREMENT_PREFIX) :] for t in fragment.tags if t.startswith(REQUIREMENT_PREFIX)]


def passage_matches(session: Session, fragment: Fragment, overrides: Mapping[str, Any] | None = None) -> bool:
    if fragment.title not in session.deck:
        return False
    return all(session.has(tag, overrides) for tag in requirements(fragment))


def lookup(fragments: Iterable[Fragment], predicate: Callable[[Fragment], bool]) -> list[Fragment]:
    return [f for f in fragments if predicate(f)]


def list_eligible_passages(
    session: Session,
    overrides: Mapping[str, Any] | None = None,
    n: int | None = None,
) -> list[str]:
    """Titles of deck passages whose requirements all hold, optionally `n` at random."""

    overrides = overrides or {}
    passages = lookup(session.story.fragments, lambda f: passage_matches(session, f, overrides))
    if n:
        passages = choose(passages, n, rng=session.rng)
    return [p.title for p in passages]
