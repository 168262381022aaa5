from __future__ import annotations

from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, status

from qbn.api.deps import get_redis, get_story
from qbn.api.models import (
    AddCardRequest,
    DrawCardsRequest,
    DrawCardsResponse,
    IncludeRequest,
    IncludeResponse,
    PassagesRequest,
    PassagesResponse,
    RangeRequest,
    RangeResponse,
    RemoveCardRequest,
    SessionCreateRequest,
    SessionListResponse,
    SessionState,
    SetVariablesRequest,
    VisitRequest,
)
from qbn.assets.registry import FragmentStore
from qbn.session_store import (
    SessionNotFound,
    add_card_to_deck,
    classify_variable_range,
    create_session,
    draw_into_hand,
    eligible_passages,
    get_session,
    include_passages,
    list_sessions,
    remove_card_from_deck,
    set_variables,
    visit_passage,
)

router = APIRouter()

# The random source state is internal; keep it out of API responses.
_INTERNAL_FIELDS = {"rng_state"}


def _not_found(e: SessionNotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _unprocessable(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post(
    "/session",
    response_model=SessionState,
    response_model_exclude=_INTERNAL_FIELDS,
    status_code=status.HTTP_201_CREATED,
)
async def create_session_route(
    payload: SessionCreateRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> SessionState:
    try:
        return create_session(r=r, story=story, seed=payload.seed, variables=payload.variables)
    except ValueError as e:
        raise _unprocessable(e) from e


@router.get(
    "/session",
    response_model=SessionListResponse,
    response_model_exclude={"sessions": {"__all__": _INTERNAL_FIELDS}},
)
async def list_sessions_route(r: redis.Redis = Depends(get_redis)) -> SessionListResponse:
    return SessionListResponse(sessions=list_sessions(r=r))


@router.get("/session/{session_id}", response_model=SessionState, response_model_exclude=_INTERNAL_FIELDS)
async def get_session_route(session_id: UUID, r: redis.Redis = Depends(get_redis)) -> SessionState:
    state = get_session(r=r, session_id=session_id)
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return state


@router.put("/session/{session_id}/variables", response_model=SessionState, response_model_exclude=_INTERNAL_FIELDS)
async def set_variables_route(
    session_id: UUID,
    payload: SetVariablesRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> SessionState:
    try:
        return set_variables(r=r, story=story, session_id=session_id, variables=payload.variables)
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e


@router.post("/session/{session_id}/visit", response_model=SessionState, response_model_exclude=_INTERNAL_FIELDS)
async def visit_route(
    session_id: UUID,
    payload: VisitRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> SessionState:
    try:
        return visit_passage(r=r, story=story, session_id=session_id, title=payload.title)
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e


@router.post("/session/{session_id}/passages", response_model=PassagesResponse)
async def passages_route(
    session_id: UUID,
    payload: PassagesRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> PassagesResponse:
    try:
        passages = eligible_passages(r=r, story=story, session_id=session_id, overrides=payload.overrides, n=payload.n)
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e
    return PassagesResponse(passages=passages)


@router.post("/session/{session_id}/cards/add", response_model=SessionState, response_model_exclude=_INTERNAL_FIELDS)
async def add_card_route(
    session_id: UUID,
    payload: AddCardRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> SessionState:
    try:
        return add_card_to_deck(r=r, story=story, session_id=session_id, title=payload.title, sticky=payload.sticky)
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e


@router.post("/session/{session_id}/cards/remove", response_model=SessionState, response_model_exclude=_INTERNAL_FIELDS)
async def remove_card_route(
    session_id: UUID,
    payload: RemoveCardRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> SessionState:
    try:
        return remove_card_from_deck(
            r=r, story=story, session_id=session_id, title=payload.title, always=payload.always
        )
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e


@router.post("/session/{session_id}/cards/draw", response_model=DrawCardsResponse)
async def draw_cards_route(
    session_id: UUID,
    payload: DrawCardsRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> DrawCardsResponse:
    try:
        drawn, hand = draw_into_hand(
            r=r,
            story=story,
            session_id=session_id,
            hand=payload.hand,
            count=payload.count,
            pool=payload.pool,
        )
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e
    return DrawCardsResponse(drawn=drawn, hand=hand)


@router.post("/session/{session_id}/range", response_model=RangeResponse)
async def range_route(
    session_id: UUID,
    payload: RangeRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> RangeResponse:
    try:
        label = classify_variable_range(
            r=r, story=story, session_id=session_id, name=payload.name, ranges=payload.ranges
        )
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e
    return RangeResponse(label=label)


@router.post("/session/{session_id}/include", response_model=IncludeResponse)
async def include_route(
    session_id: UUID,
    payload: IncludeRequest,
    r: redis.Redis = Depends(get_redis),
    story: FragmentStore = Depends(get_story),
) -> IncludeResponse:
    try:
        text = include_passages(
            r=r, story=story, session_id=session_id, titles=payload.titles, separator=payload.separator
        )
    except SessionNotFound as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _unprocessable(e) from e
    return IncludeResponse(text=text)
