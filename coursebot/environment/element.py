"""Interactive element capability set and its Playwright adapter.

Solvers, the exam session and the activity handlers only talk to the UI
through :class:`InteractiveElement`.  :class:`PlaywrightElement` is the live
implementation; it wraps a sync Playwright ``Locator`` and turns transient
UI failures (missing element, timeout, detached frame) into ``False`` /
``None`` results so calling code can carry on as if the action did not
happen.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 3000


class InteractiveElement(Protocol):
    """What the core needs from a UI element."""

    def exists(self) -> bool: ...

    def is_visible(self) -> bool: ...

    def click(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool: ...

    def force_click(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool: ...

    def js_click(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool: ...

    def get_attribute(self, name: str) -> str | None: ...

    def get_text(self) -> str | None: ...

    def wait_for(self, state: str = "visible", timeout: float = DEFAULT_TIMEOUT_MS) -> bool: ...

    def children(self, selector: str) -> Iterator[InteractiveElement]: ...

    def find(self, selector: str) -> InteractiveElement: ...


# ---------------------------------------------------------------------------
# Helpers over the capability set
# ---------------------------------------------------------------------------

def has_class(element, name: str) -> bool:
    """True if *name* is one of the element's class tokens."""
    return name in (element.get_attribute("class") or "").split()


def text_of(element) -> str | None:
    """Stripped text content, ``None`` when empty or missing."""
    text = element.get_text()
    if text is None:
        return None
    text = text.strip()
    return text or None


def find_by_text(element, selector: str, text: str):
    """First child matching *selector* whose text contains *text*."""
    for child in element.children(selector):
        if text in (child.get_text() or ""):
            return child
    return None


def pause(seconds: float, pace: float = 1.0) -> None:
    """Fixed UI settle delay, scaled by *pace* (0 disables it)."""
    delay = seconds * pace
    if delay > 0:
        time.sleep(delay)


# ---------------------------------------------------------------------------
# Playwright adapter
# ---------------------------------------------------------------------------

class PlaywrightElement:
    """:class:`InteractiveElement` backed by a sync Playwright ``Locator``.

    The wrapped locator may match several nodes; single-node operations
    act on the first match.
    """

    def __init__(self, locator: Locator):
        self._locator = locator

    def __repr__(self) -> str:
        return f"PlaywrightElement({self._locator!r})"

    @property
    def locator(self) -> Locator:
        return self._locator

    def exists(self) -> bool:
        try:
            return self._locator.count() > 0
        except PlaywrightError as e:
            logger.debug("count() failed: %s", e)
            return False

    def is_visible(self) -> bool:
        try:
            return self._locator.first.is_visible()
        except PlaywrightError as e:
            logger.debug("is_visible() failed: %s", e)
            return False

    def click(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool:
        """Gentle click first, forced click if that fails."""
        try:
            self._locator.first.click(timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.debug("Click failed, retrying with force: %s", e)
        return self.force_click(timeout)

    def force_click(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool:
        try:
            self._locator.first.click(force=True, timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.warning("Forced click failed on %s: %s", self._locator, e)
            return False

    def js_click(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool:
        try:
            self._locator.first.evaluate("el => el.click()", timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.warning("JS click failed on %s: %s", self._locator, e)
            return False

    def click_at(self, x: float, y: float, timeout: float = DEFAULT_TIMEOUT_MS) -> bool:
        try:
            self._locator.first.click(position={"x": x, "y": y}, timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.warning("Positional click failed on %s: %s", self._locator, e)
            return False

    def get_attribute(self, name: str, timeout: float = DEFAULT_TIMEOUT_MS) -> str | None:
        if not self.exists():
            return None
        try:
            return self._locator.first.get_attribute(name, timeout=timeout)
        except PlaywrightError as e:
            logger.debug("get_attribute(%s) failed: %s", name, e)
            return None

    def get_text(self, timeout: float = DEFAULT_TIMEOUT_MS) -> str | None:
        if not self.exists():
            return None
        try:
            return self._locator.first.text_content(timeout=timeout)
        except PlaywrightError as e:
            logger.debug("text_content() failed: %s", e)
            return None

    def inner_html(self, timeout: float = DEFAULT_TIMEOUT_MS) -> str | None:
        if not self.exists():
            return None
        try:
            return self._locator.first.inner_html(timeout=timeout)
        except PlaywrightError as e:
            logger.debug("inner_html() failed: %s", e)
            return None

    def wait_for(self, state: str = "visible", timeout: float = DEFAULT_TIMEOUT_MS) -> bool:
        try:
            self._locator.first.wait_for(state=state, timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.debug("wait_for(%s) gave up after %dms: %s", state, timeout, e)
            return False

    def children(self, selector: str) -> Iterator[PlaywrightElement]:
        try:
            matches = self._locator.locator(selector).all()
        except PlaywrightError as e:
            logger.debug("children(%s) failed: %s", selector, e)
            return
        for match in matches:
            yield PlaywrightElement(match)

    def find(self, selector: str) -> PlaywrightElement:
        return PlaywrightElement(self._locator.locator(selector).first)

    def frame(self) -> PlaywrightElement:
        """Root element of the document inside this iframe."""
        return PlaywrightElement(self._locator.first.content_frame.locator(":root"))

    def bounding_box(self) -> dict | None:
        try:
            return self._locator.first.bounding_box()
        except PlaywrightError as e:
            logger.debug("bounding_box() failed: %s", e)
            return None

    def evaluate(self, script: str, arg: Any = None, timeout: float = DEFAULT_TIMEOUT_MS) -> Any:
        try:
            return self._locator.first.evaluate(script, arg, timeout=timeout)
        except PlaywrightError as e:
            logger.warning("evaluate() failed on %s: %s", self._locator, e)
            return None

    def scroll_into_view(self, timeout: float = DEFAULT_TIMEOUT_MS) -> bool:
        try:
            self._locator.first.scroll_into_view_if_needed(timeout=timeout)
            return True
        except PlaywrightError as e:
            logger.debug("scroll_into_view() failed: %s", e)
            return False
