from __future__ import annotations

import logging
import random
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import redis

from qbn.api.models import SessionState
from qbn.assets.registry import FragmentStore
from qbn.core.deck import Deck, add_card, draw_cards, remove_card
from qbn.core.errors import UnknownFragment
from qbn.core.include import WidgetRenderer, include_all
from qbn.core.matching import list_eligible_passages
from qbn.core.ranges import classify_range
from qbn.core.session import Session
from qbn.core.variables import VariableStore, split_name
from qbn.lock import session_lock


logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "qbn:sessions"
SESSION_KEY_PREFIX = "qbn:session:"  # + {uuid}


class SessionNotFound(LookupError):
    pass


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def _dump_rng(rng: random.Random) -> list[Any]:
    version, internal, gauss_next = rng.getstate()
    return [version, list(internal), gauss_next]


def _load_rng(raw: list[Any]) -> random.Random:
    rng = random.Random()
    version, internal, gauss_next = raw
    rng.setstate((version, tuple(internal), gauss_next))
    return rng


def to_session(*, state: SessionState, story: FragmentStore) -> Session:
    return Session(
        story=story,
        deck=Deck(entries=dict(state.deck)),
        variables=VariableStore(persistent=dict(state.persistent), temporary=dict(state.temporary)),
        rng=_load_rng(state.rng_state) if state.rng_state else random.Random(state.seed),
    )


def apply_session(*, state: SessionState, session: Session) -> None:
    state.deck = dict(session.deck.entries)  # type: ignore[assignment]
    state.persistent = dict(session.variables.persistent)
    state.temporary = dict(session.variables.temporary)
    state.rng_state = _dump_rng(session.rng)


def _validate_variables(variables: Mapping[str, Any]) -> None:
    bad = sorted(name for name in variables if split_name(name) is None)
    if bad:
        raise ValueError(f"invalid variable name(s): {', '.join(bad)} (expected $name or _name)")


def save_session(*, r: redis.Redis, state: SessionState) -> None:
    state.last_updated_at = _now()
    r.set(_session_key(state.session_id), state.model_dump_json())


def get_session(*, r: redis.Redis, session_id: UUID) -> SessionState | None:
    raw = r.get(_session_key(session_id))
    if not raw:
        return None
    return SessionState.model_validate_json(raw)


def require_session(*, r: redis.Redis, session_id: UUID) -> SessionState:
    state = get_session(r=r, session_id=session_id)
    if state is None:
        raise SessionNotFound("Session not found")
    return state


@contextmanager
def open_session(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
) -> Iterator[tuple[SessionState, Session]]:
    """Lock, load and yield a live session; it is saved only if the block succeeds.

    A failing operation therefore leaves the stored session untouched.
    """

    with session_lock(r=r, session_id=str(session_id)):
        state = require_session(r=r, session_id=session_id)
        session = to_session(state=state, story=story)
        yield state, session
        apply_session(state=state, session=session)
        save_session(r=r, state=state)


def create_session(
    *,
    r: redis.Redis,
    story: FragmentStore,
    seed: int | None = None,
    variables: Mapping[str, Any] | None = None,
) -> SessionState:
    variables = variables or {}
    _validate_variables(variables)

    if seed is None:
        seed = random.SystemRandom().randint(1, 2**31 - 1)

    session = Session.new(story=story, seed=seed)
    for name, value in variables.items():
        session.variables.set_var(name, value)

    now = _now()
    state = SessionState(session_id=uuid4(), created_at=now, last_updated_at=now, seed=seed)
    apply_session(state=state, session=session)

    r.set(_session_key(state.session_id), state.model_dump_json())
    r.sadd(SESSIONS_SET_KEY, str(state.session_id))
    logger.info("Created session %s (seed=%s, deck=%d cards)", state.session_id, seed, len(session.deck))
    return state


def list_sessions(*, r: redis.Redis) -> list[SessionState]:
    ids = sorted(r.smembers(SESSIONS_SET_KEY))
    out: list[SessionState] = []
    for sid in ids:
        try:
            session_id = UUID(sid)
        except ValueError:
            continue
        state = get_session(r=r, session_id=session_id)
        if state is not None:
            out.append(state)
    out.sort(key=lambda s: s.created_at, reverse=True)
    return out


def set_variables(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    variables: Mapping[str, Any],
) -> SessionState:
    _validate_variables(variables)
    with open_session(r=r, story=story, session_id=session_id) as (state, session):
        for name, value in variables.items():
            session.variables.set_var(name, value)
    return state


def visit_passage(*, r: redis.Redis, story: FragmentStore, session_id: UUID, title: str) -> SessionState:
    with open_session(r=r, story=story, session_id=session_id) as (state, session):
        if not session.story.has(title):
            raise UnknownFragment(title)
        session.enter(title)
        state.visits.append(title)
    return state


def eligible_passages(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    overrides: Mapping[str, Any] | None = None,
    n: int | None = None,
) -> list[str]:
    # Saved afterwards: random-NN tags and sampling advance the random source.
    with open_session(r=r, story=story, session_id=session_id) as (_state, session):
        passages = list_eligible_passages(session, overrides, n)
    return passages


def add_card_to_deck(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    title: str,
    sticky: bool = False,
) -> SessionState:
    with open_session(r=r, story=story, session_id=session_id) as (state, session):
        add_card(session, title, sticky)
    return state


def remove_card_from_deck(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    title: str,
    always: bool = True,
) -> SessionState:
    with open_session(r=r, story=story, session_id=session_id) as (state, session):
        remove_card(session, title, always)
    return state


def draw_into_hand(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    hand: str,
    count: int,
    pool: Sequence[str] | None = None,
) -> tuple[list[str], list[str]]:
    """Returns (newly drawn titles, full hand)."""

    with open_session(r=r, story=story, session_id=session_id) as (_state, session):
        drawn = draw_cards(session, count, pool, bind_to=hand)
        held = list(session.variables.get_var(hand) or [])
    return drawn, held


def classify_variable_range(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    name: str,
    ranges: Sequence[Any],
) -> str | None:
    with open_session(r=r, story=story, session_id=session_id) as (_state, session):
        label = classify_range(session.variables, name, ranges)
    return label


def include_passages(
    *,
    r: redis.Redis,
    story: FragmentStore,
    session_id: UUID,
    titles: Sequence[str],
    separator: str | None = None,
) -> str:
    # No widgets over HTTP: passages render as raw text, separators as literal text.
    with open_session(r=r, story=story, session_id=session_id) as (_state, session):
        text = include_all(session, titles, WidgetRenderer(), separator=separator)
    return text
