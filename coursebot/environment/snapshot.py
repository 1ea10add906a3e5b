"""Read-only interactive elements over saved HTML.

A review page saved to disk can be fed through the classifier and the
answer extractors without a browser.  Every interaction reports failure;
only structural reads (attributes, text, CSS selection) work.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

_DISPLAY_NONE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


class SnapshotElement:
    """:class:`~coursebot.environment.element.InteractiveElement` over a BeautifulSoup tag."""

    def __init__(self, tag: Tag | None):
        self._tag = tag

    @classmethod
    def from_html(cls, html: str) -> SnapshotElement:
        return cls(BeautifulSoup(html, "html.parser"))

    @classmethod
    def from_file(cls, path: str | Path) -> SnapshotElement:
        return cls.from_html(Path(path).read_text(encoding="utf-8"))

    def __repr__(self) -> str:
        name = self._tag.name if self._tag is not None else None
        return f"SnapshotElement(<{name}>)"

    def exists(self) -> bool:
        return self._tag is not None

    def is_visible(self) -> bool:
        tag = self._tag
        while isinstance(tag, Tag):
            if tag.has_attr("hidden") or _DISPLAY_NONE.search(tag.get("style", "") or ""):
                return False
            tag = tag.parent
        return self._tag is not None

    def _refuse(self, action: str) -> bool:
        logger.debug("Snapshot is read-only, ignoring %s on %r", action, self)
        return False

    def click(self, timeout: float = 0) -> bool:
        return self._refuse("click")

    def force_click(self, timeout: float = 0) -> bool:
        return self._refuse("force_click")

    def js_click(self, timeout: float = 0) -> bool:
        return self._refuse("js_click")

    def click_at(self, x: float, y: float, timeout: float = 0) -> bool:
        return self._refuse("click_at")

    def get_attribute(self, name: str) -> str | None:
        if self._tag is None:
            return None
        value = self._tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def get_text(self) -> str | None:
        if self._tag is None:
            return None
        return self._tag.get_text()

    def inner_html(self) -> str | None:
        if self._tag is None:
            return None
        return self._tag.decode_contents()

    def wait_for(self, state: str = "visible", timeout: float = 0) -> bool:
        if state == "attached":
            return self.exists()
        if state == "detached":
            return not self.exists()
        if state == "hidden":
            return not self.is_visible()
        return self.is_visible()

    def children(self, selector: str) -> Iterator[SnapshotElement]:
        if self._tag is None:
            return iter(())
        return (SnapshotElement(t) for t in self._tag.select(selector))

    def find(self, selector: str) -> SnapshotElement:
        if self._tag is None:
            return SnapshotElement(None)
        return SnapshotElement(self._tag.select_one(selector))

    def frame(self) -> SnapshotElement:
        # Saved pages do not carry iframe documents.
        return SnapshotElement(None)

    def bounding_box(self) -> dict | None:
        return None

    def evaluate(self, script: str, arg=None):
        self._refuse("evaluate")
        return None

    def scroll_into_view(self, timeout: float = 0) -> bool:
        return self._refuse("scroll_into_view")
