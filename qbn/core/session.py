from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from qbn.assets.registry import FragmentStore
from qbn.core.deck import Deck
from qbn.core.predicates import has
from qbn.core.variables import VariableStore


@dataclass(slots=True)
class Session:
    """All mutable story state: deck, variables and the seeded random source.

    Every core operation takes the session explicitly. The random source is the
    only one used for predicates and sampling, so a seed replays a story exactly.
    """

    story: FragmentStore
    deck: Deck
    variables: VariableStore = field(default_factory=VariableStore)
    rng: random.Random = field(default_factory=random.Random)

    @staticmethod
    def new(*, story: FragmentStore, seed: int | str | None = None) -> "Session":
        return Session(story=story, deck=Deck.from_story(story), rng=random.Random(seed))

    def has(self, tag: str, overrides: Mapping[str, Any] | None = None) -> bool:
        return has(tag, store=self.variables, rng=self.rng, overrides=overrides)

    def enter(self, title: str) -> None:
        """Passage-entered hook: must run before the next eligibility check."""

        self.variables.clear_temporary()
        self.deck.consume(title)
