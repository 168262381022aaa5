from __future__ import annotations

import csv
import logging
import os
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)

CARD_TAG = "card"
STICKY_CARD_TAG = "sticky-card"


@dataclass(frozen=True, slots=True)
class Fragment:
    title: str
    tags: tuple[str, ...] = ()
    text: str = ""


@dataclass(frozen=True, slots=True)
class FragmentStore:
    """The story's fragments (passages), read-only once loaded.

    Titles are canonical and case-sensitive. `fragments` is sorted by title,
    which is the order lookups return matches in.
    """

    fragments: tuple[Fragment, ...]
    _by_title: dict[str, Fragment]

    @staticmethod
    def from_rows(rows: list[Fragment]) -> "FragmentStore":
        by_title: dict[str, Fragment] = {}
        for f in rows:
            if f.title in by_title:
                raise AssetLoadError(f"Duplicate passage title: {f.title}")
            by_title[f.title] = f
        ordered = tuple(sorted(rows, key=lambda f: f.title))
        return FragmentStore(fragments=ordered, _by_title=by_title)

    def get(self, title: str) -> Fragment | None:
        return self._by_title.get(title)

    def has(self, title: object) -> bool:
        return isinstance(title, str) and title in self._by_title

    def all_with_tag(self, tag: str) -> tuple[Fragment, ...]:
        return tuple(f for f in self.fragments if tag in f.tags)

    def __contains__(self, item: object) -> bool:
        return self.has(item)

    def __len__(self) -> int:
        return len(self.fragments)


class AssetLoadError(RuntimeError):
    pass


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        with path.open(encoding="utf-8-sig", newline="") as fh:
            raw = fh.read()
    except FileNotFoundError as e:
        raise AssetLoadError(f"Asset file not found: {path}") from e

    reader = csv.reader(raw.splitlines())
    rows = [[c.strip() for c in row if c is not None] for row in reader]
    return [row for row in rows if any(cell.strip() for cell in row)]


def load_fragment_csv(path: Path) -> FragmentStore:
    """Load passages from a `title,tags,text` CSV. Tags are space separated."""

    rows = _read_csv_rows(path)
    if not rows:
        raise AssetLoadError(f"Empty passage CSV: {path}")

    header = [c.casefold() for c in rows[0]]
    if header[:2] != ["title", "tags"]:
        raise AssetLoadError(f"Unexpected header in {path}: {rows[0]}")

    out: list[Fragment] = []
    for row in rows[1:]:
        if len(row) < 2:
            continue
        title = row[0].strip()
        if not title:
            continue
        tags = tuple(t for t in row[1].split() if t)
        text = row[2] if len(row) > 2 else ""
        out.append(Fragment(title=title, tags=tags, text=text))

    return FragmentStore.from_rows(out)


def _fallback_fragments() -> FragmentStore:
    """Tiny built-in story used when no passage CSV is present."""

    rows = [
        Fragment(title="Start", tags=(), text="You wake at the crossroads."),
        Fragment(title="Well", tags=("card",), text="An old well, dry as bone."),
        Fragment(title="Market", tags=("sticky-card",), text="Stalls and shouting."),
        Fragment(title="Tavern", tags=("sticky-card", "req-not-banned"), text="Warm light spills out."),
        Fragment(title="Stranger", tags=("card", "req-coins-ge-5"), text="A stranger wants paying."),
        Fragment(title="Storm", tags=("card", "req-random-25"), text="The sky breaks open."),
    ]
    return FragmentStore.from_rows(rows)


def load_story(*, root: Path) -> FragmentStore:
    path = root / "assets" / "fragments.csv"

    # Falls back to the built-in story unless QBN_STRICT_ASSETS=1.
    strict = os.getenv("QBN_STRICT_ASSETS", "").strip().lower() in {"1", "true", "yes"}

    try:
        return load_fragment_csv(path)
    except AssetLoadError:
        if strict:
            raise
        logger.warning("No usable passage CSV at %s; using built-in story", path)
        return _fallback_fragments()


def story_root() -> Path:
    """Directory holding `assets/fragments.csv`: `QBN_STORY_ROOT`, else the checkout root."""

    configured = os.getenv("QBN_STORY_ROOT", "").strip()
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parents[2]
