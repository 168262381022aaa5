from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


# `$name` is persistent, `_name` is temporary.
SIGILED_NAME_RE = re.compile(r"^[$_][_a-zA-Z][_a-zA-Z0-9]*$")


class Scope(StrEnum):
    overrides = "overrides"
    temporary = "temporary"
    persistent = "persistent"


SIGIL_TO_SCOPE: dict[str, Scope] = {"$": Scope.persistent, "_": Scope.temporary}


@dataclass(frozen=True, slots=True)
class Layer:
    """One named lookup layer. Layers are searched left to right."""

    scope: Scope
    values: Mapping[str, Any]


def split_name(name: str) -> tuple[Scope, str] | None:
    """Split a sigiled name (`$age`) into its scope and bare name."""

    if not isinstance(name, str) or not SIGILED_NAME_RE.match(name):
        return None
    return SIGIL_TO_SCOPE[name[0]], name[1:]


@dataclass(slots=True)
class VariableStore:
    """Temporary and persistent variables, plus per-call overrides on lookup."""

    persistent: dict[str, Any] = field(default_factory=dict)
    temporary: dict[str, Any] = field(default_factory=dict)

    def layers(self, overrides: Mapping[str, Any] | None = None) -> tuple[Layer, ...]:
        return (
            Layer(Scope.overrides, overrides or {}),
            Layer(Scope.temporary, self.temporary),
            Layer(Scope.persistent, self.persistent),
        )

    def value(self, name: str, overrides: Mapping[str, Any] | None = None) -> Any:
        """Resolve a bare name; the first layer holding a non-None value wins."""

        for layer in self.layers(overrides):
            found = layer.values.get(name)
            if found is not None:
                return found
        return None

    def _scope_dict(self, scope: Scope) -> dict[str, Any]:
        if scope == Scope.persistent:
            return self.persistent
        return self.temporary

    def get_var(self, name: str) -> Any:
        parts = split_name(name)
        if parts is None:
            return None
        scope, bare = parts
        return self._scope_dict(scope).get(bare)

    def set_var(self, name: str, value: Any) -> bool:
        """Assign a sigiled variable. Returns False if `name` is not assignable."""

        parts = split_name(name)
        if parts is None:
            return False
        scope, bare = parts
        self._scope_dict(scope)[bare] = value
        return True

    def clear_temporary(self) -> None:
        self.temporary.clear()
