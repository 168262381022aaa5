from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from qbn.assets.registry import Fragment
from qbn.core.errors import UnknownFragment, UnknownSeparator, UnknownWidget
from qbn.core.session import Session


# `<<name>>` forces a separator to be a widget call rather than literal text.
_WIDGET_REF_RE = re.compile(r"^<<\s*([^<>\s]+)\s*>>$")


class Renderer(Protocol):
    """Host-side rendering. The engine only decides what gets rendered, and in which order."""

    def has_widget(self, name: str) -> bool:  # pragma: no cover
        ...

    def render_widget(self, name: str, *args: Any) -> str:  # pragma: no cover
        ...

    def render_text(self, fragment: Fragment) -> str:  # pragma: no cover
        ...


@dataclass(slots=True)
class WidgetRenderer:
    """Renders passages as their raw text and widgets as plain callables."""

    widgets: dict[str, Callable[..., str]] = field(default_factory=dict)

    def has_widget(self, name: str) -> bool:
        return name in self.widgets

    def render_widget(self, name: str, *args: Any) -> str:
        fn = self.widgets.get(name)
        if fn is None:
            raise UnknownWidget(name)
        return str(fn(*args))

    def render_text(self, fragment: Fragment) -> str:
        return fragment.text


def _as_list(items: Any) -> list[Any]:
    if isinstance(items, (str, Fragment)):
        return [items]
    return list(items)


def _resolve(session: Session, item: str | Fragment) -> Fragment:
    if isinstance(item, Fragment):
        return item
    fragment = session.story.get(item)
    if fragment is None:
        raise UnknownFragment(item)
    return fragment


def include_all(
    session: Session,
    fragments: str | Fragment | Sequence[str | Fragment],
    renderer: Renderer,
    *,
    wrap: str | None = None,
    separator: str | None = None,
) -> str:
    """Render several passages in a row, consuming single-use cards as they are shown.

    `wrap` names a widget called with each title instead of rendering the text.
    `separator` goes between consecutive passages: a widget (called with True
    before the last passage) if one is registered under that name, otherwise
    literal text.
    """

    if wrap and not renderer.has_widget(wrap):
        raise UnknownWidget(wrap)

    sep_widget: str | None = None
    if separator:
        m = _WIDGET_REF_RE.match(separator)
        if m:
            sep_widget = m.group(1)
            if not renderer.has_widget(sep_widget):
                raise UnknownSeparator(sep_widget)
        elif renderer.has_widget(separator):
            sep_widget = separator

    resolved = [_resolve(session, item) for item in _as_list(fragments)]

    out: list[str] = []
    last = len(resolved) - 1
    for i, fragment in enumerate(resolved):
        session.deck.consume(fragment.title)
        if wrap:
            out.append(renderer.render_widget(wrap, fragment.title))
        else:
            out.append(renderer.render_text(fragment))

        if separator and i < last:
            if sep_widget is not None:
                out.append(renderer.render_widget(sep_widget, i == last - 1))
            else:
                out.append(separator)

    return "".join(out)
