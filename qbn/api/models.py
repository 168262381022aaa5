from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class SessionCreateRequest(BaseModel):
    # Omit for a random seed; the chosen seed is returned with the session.
    seed: int | None = None
    # Initial variables by sigiled name, e.g. {"$coins": 3}.
    variables: dict[str, Any] = Field(default_factory=dict)


class SessionState(BaseModel):
    session_id: UUID
    created_at: datetime
    last_updated_at: datetime

    # For reproducibility/debugging.
    seed: int

    # title -> 0 (single-use) | 1 (sticky)
    deck: dict[str, Literal[0, 1]] = Field(default_factory=dict)

    persistent: dict[str, Any] = Field(default_factory=dict)
    temporary: dict[str, Any] = Field(default_factory=dict)

    # random.Random.getstate() as JSON: [version, [internal state...], gauss_next].
    # Persisted so a seeded session keeps replaying the same draws across requests.
    rng_state: list[Any] = Field(default_factory=list)

    # Passages entered, in order.
    visits: list[str] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    sessions: list[SessionState]


class SetVariablesRequest(BaseModel):
    variables: dict[str, Any]


class VisitRequest(BaseModel):
    title: str


class PassagesRequest(BaseModel):
    overrides: dict[str, Any] = Field(default_factory=dict)
    n: int | None = Field(default=None, ge=0)


class PassagesResponse(BaseModel):
    passages: list[str]


class AddCardRequest(BaseModel):
    title: str
    sticky: bool = False


class RemoveCardRequest(BaseModel):
    title: str
    always: bool = True


class DrawCardsRequest(BaseModel):
    hand: str = "$hand"
    count: int = Field(..., ge=0)
    # Omit to draw from the currently eligible passages.
    pool: list[str] | None = None


class DrawCardsResponse(BaseModel):
    drawn: list[str]
    hand: list[str]


class RangeRequest(BaseModel):
    name: str
    # Element types are checked by classify_range, which rejects booleans.
    ranges: list[Any]


class RangeResponse(BaseModel):
    label: str | None


class IncludeRequest(BaseModel):
    titles: list[str] = Field(..., min_length=1)
    separator: str | None = None


class IncludeResponse(BaseModel):
    text: str
