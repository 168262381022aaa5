from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from qbn.assets.registry import CARD_TAG, STICKY_CARD_TAG, Fragment, FragmentStore
from qbn.core.errors import HandBindingFailure, UnknownFragment
from qbn.core.sampler import choose

if TYPE_CHECKING:
    from qbn.core.session import Session


logger = logging.getLogger(__name__)

SINGLE_USE = 0
STICKY = 1


@dataclass(slots=True)
class Deck:
    """Titles that may currently be drawn, each flagged single-use (0) or sticky (1)."""

    entries: dict[str, int] = field(default_factory=dict)

    @staticmethod
    def from_story(story: FragmentStore) -> "Deck":
        entries: dict[str, int] = {}
        # sticky-card is applied last, so it wins when a passage has both tags.
        for flag, tag in ((SINGLE_USE, CARD_TAG), (STICKY, STICKY_CARD_TAG)):
            for f in story.all_with_tag(tag):
                entries[f.title] = flag
        return Deck(entries=entries)

    def __contains__(self, title: object) -> bool:
        return isinstance(title, str) and title in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def flag(self, title: str) -> int | None:
        return self.entries.get(title)

    def add(self, title: str, *, sticky: bool = False) -> None:
        self.entries[title] = STICKY if sticky else SINGLE_USE

    def remove(self, title: str, *, always: bool = True) -> bool:
        flag = self.entries.get(title)
        if flag == SINGLE_USE or (always and flag == STICKY):
            del self.entries[title]
            return True
        return False

    def consume(self, title: str) -> bool:
        """Drop a single-use entry; sticky and absent titles are left alone."""

        if self.entries.get(title) == SINGLE_USE:
            del self.entries[title]
            return True
        return False


def title_of(item: str | Fragment) -> str:
    return item if isinstance(item, str) else item.title


def draw(hand: list[Any], count: int, pool: Iterable[Any], *, rng: random.Random) -> list[Any]:
    """Top `hand` up to `count` items from `pool`, in place.

    Items already held, and repeats within `pool`, are never drawn.
    Returns the newly drawn items.
    """

    seen = {title_of(item) for item in hand}
    candidates: list[Any] = []
    for item in pool:
        t = title_of(item)
        if t in seen:
            continue
        seen.add(t)
        candidates.append(item)

    drawn = choose(candidates, count - len(hand), rng=rng)
    hand.extend(drawn)
    return drawn


def _require_fragment(session: "Session", title: str) -> None:
    if not session.story.has(title):
        raise UnknownFragment(title)


def add_card(session: "Session", title: str, sticky: bool = False) -> None:
    _require_fragment(session, title)
    session.deck.add(title, sticky=sticky)


def remove_card(session: "Session", title: str, always: bool = True) -> bool:
    _require_fragment(session, title)
    return session.deck.remove(title, always=always)


def draw_cards(
    session: "Session",
    count: int,
    pool: Sequence[Any] | None = None,
    *,
    hand: list[Any] | None = None,
    bind_to: str | None = None,
) -> list[Any]:
    """Draw into a hand until it holds `count` cards.

    With no explicit `hand`, the hand is the variable named by `bind_to`
    (e.g. `$hand`); a missing one is created as an empty list. `pool` defaults
    to the currently eligible passages.
    """

    if hand is None:
        hand = session.variables.get_var(bind_to) if bind_to else None
        if hand is None:
            hand = []
            if bind_to is None or not session.variables.set_var(bind_to, hand):
                raise HandBindingFailure(bind_to)
            logger.debug("Empty hand: setting %s to [].", bind_to)
        elif not isinstance(hand, list):
            raise HandBindingFailure(bind_to, f"variable holds {type(hand).__name__}, not a list")

    if pool is None:
        from qbn.core.matching import list_eligible_passages

        pool = list_eligible_passages(session)

    return draw(hand, count, pool, rng=session.rng)
