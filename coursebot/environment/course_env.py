"""Playwright-driven course navigator.

Owns the browser for a run: login, opening the chosen course, listing the
sections of the current sub-module and advancing to the next one.  All
element access inside the course content frame goes through
:class:`PlaywrightElement` so the solvers never see raw locators.

Usage:
    with CourseEnv(CourseSettings.from_config(load_config())) as env:
        env.login(username, password)
        env.open_course(button_id)
        for section in env.sections():
            ...
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import yaml
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from coursebot.environment import selectors as sel
from coursebot.environment.element import PlaywrightElement, pause, text_of

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "course_config.yaml"

# Intro sections are numbered like "1.2 Title" and never need completing.
_NUMBERED_HEADER = re.compile(r"^\d+\.\d+\s")


class LoginError(Exception):
    """Credentials rejected, or the dashboard never loaded."""


def _get_playwright_proxy() -> dict | None:
    """Build Playwright proxy config from HTTP_PROXY / HTTPS_PROXY, if set."""
    proxy_url = os.environ.get("HTTP_PROXY") or os.environ.get("HTTPS_PROXY") or ""
    if not proxy_url:
        return None
    parsed = urlparse(proxy_url)
    if not parsed.hostname:
        return None
    proxy: dict = {"server": f"http://{parsed.hostname}:{parsed.port}"}
    if parsed.username:
        proxy["username"] = parsed.username
    if parsed.password:
        proxy["password"] = parsed.password
    return proxy


def load_config(path: str | Path | None = None) -> dict:
    with open(path or CONFIG_PATH) as f:
        return yaml.safe_load(f) or {}


def is_numbered_header(text: str | None) -> bool:
    return bool(text) and bool(_NUMBERED_HEADER.match(text.strip()))


@dataclass
class CourseSettings:
    dashboard_url: str = "https://www.netacad.com/dashboard"
    headless: bool = False
    executable_path: str | None = None
    browser_args: list[str] = field(default_factory=list)
    login_timeout_s: float = 60.0
    course_open_wait_s: float = 30.0
    pace: float = 1.0

    @classmethod
    def from_config(cls, config: dict) -> CourseSettings:
        course = config.get("course") or {}
        run = config.get("run") or {}
        defaults = cls()
        return cls(
            dashboard_url=course.get("dashboard_url", defaults.dashboard_url),
            headless=course.get("headless", defaults.headless),
            executable_path=course.get("executable_path"),
            browser_args=list(course.get("browser_args") or []),
            login_timeout_s=course.get("login_timeout_s", defaults.login_timeout_s),
            course_open_wait_s=course.get("course_open_wait_s", defaults.course_open_wait_s),
            pace=run.get("pace", defaults.pace),
        )


class CourseEnv:
    """Browser session positioned inside one course."""

    def __init__(self, settings: CourseSettings | None = None):
        self.settings = settings or CourseSettings()
        self._playwright = None
        self._browser = None
        self._page = None

    def _pause(self, seconds: float) -> None:
        pause(seconds, self.settings.pace)

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        if self._page is not None:
            return

        launch_kwargs: dict = {
            "headless": self.settings.headless,
            "args": self.settings.browser_args,
        }
        if self.settings.executable_path:
            launch_kwargs["executable_path"] = self.settings.executable_path
        proxy = _get_playwright_proxy()
        if proxy:
            launch_kwargs["proxy"] = proxy
            logger.info("Using HTTP proxy for browser: %s", proxy["server"])

        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(**launch_kwargs)
        self._page = self._browser.new_page()
        logger.info("Browser started (headless=%s)", self.settings.headless)

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        except PlaywrightError as e:
            logger.warning("Browser close failed: %s", e)
        finally:
            if self._playwright is not None:
                self._playwright.stop()
            self._playwright = self._browser = self._page = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.close()

    @property
    def page(self):
        if self._page is None:
            raise RuntimeError("CourseEnv.start() has not been called")
        return self._page

    # -- login / course --------------------------------------------------

    def login(self, username: str, password: str) -> None:
        page = self.page
        page.goto(self.settings.dashboard_url)
        self._pause(2.0)

        timeout_ms = self.settings.login_timeout_s * 1000
        try:
            page.locator(sel.LOGIN_BUTTON).first.wait_for(state="visible", timeout=timeout_ms)
            page.locator(sel.LOGIN_USERNAME).fill(username)
            submit = page.locator(sel.LOGIN_SUBMIT)
            submit.click()
            page.locator(sel.LOGIN_PASSWORD).fill(password)
            submit.click()
        except PlaywrightError as e:
            raise LoginError(f"Login form did not behave as expected: {e}") from e

        alert = PlaywrightElement(page.locator(sel.LOGIN_ALERT))
        dashboard = urlparse(self.settings.dashboard_url)
        deadline = time.time() + self.settings.login_timeout_s
        while time.time() < deadline:
            logger.info("Waiting for login to complete...")
            time.sleep(0.2)

            if alert.is_visible():
                raise LoginError("Login failed, invalid credentials")

            current = urlparse(page.url)
            if current.hostname == dashboard.hostname and current.path.startswith(dashboard.path):
                logger.info("Login successful")
                page.wait_for_load_state("domcontentloaded")
                return

        raise LoginError(f"Dashboard not reached within {self.settings.login_timeout_s:.0f}s")

    def open_course(self, button_id: str) -> bool:
        """Click the dashboard button of the course; False if it is not found."""
        button = PlaywrightElement(self.page.locator(f"button#{button_id}"))
        if not button.click(timeout=30_000):
            logger.warning("Course button #%s not found", button_id)
            return False

        logger.info("Navigating to the course...")
        self._pause(self.settings.course_open_wait_s)
        self.page.wait_for_load_state("domcontentloaded")
        return True

    # -- sections --------------------------------------------------------

    def module_root(self) -> PlaywrightElement:
        """Root of the document inside the course content iframe."""
        return PlaywrightElement(self.page.frame_locator(sel.MODULE_FRAME).locator(":root"))

    def sections(self) -> list[PlaywrightElement]:
        return list(self.module_root().children(sel.SECTIONS))

    @staticmethod
    def section_header_text(section) -> str | None:
        return text_of(section.find(sel.SECTION_HEADER))

    def is_section_completed(self, section) -> bool:
        text = self.section_header_text(section)
        logger.debug("Section header: %r", text)
        return not text or text.lower().startswith("complete")

    def scroll_through(self, section, max_steps: int = 300) -> None:
        """Wheel down until the section stops moving or is scrolled past."""
        section.find(sel.SECTION_HEADER).scroll_into_view()

        prev_y = None
        for _ in range(max_steps):
            box = section.bounding_box()
            if not box or box["y"] == prev_y:
                break
            if box["y"] < -box["height"]:
                break
            prev_y = box["y"]
            self.page.mouse.wheel(0, 200)
            self._pause(0.1)

        self.press("PageDown")
        self._pause(0.2)

    def press(self, key: str) -> None:
        self.page.keyboard.press(key)

    # -- sub-module navigation -------------------------------------------

    def _next_button(self) -> PlaywrightElement:
        return PlaywrightElement(self.page.locator(sel.NEXT_BUTTON))

    def _wait_for_next_enabled(self, tries: int = 100) -> None:
        button = self._next_button()
        self._pause(0.5)
        for _ in range(tries):
            time.sleep(0.3)
            if not button.exists() or button.get_attribute("disabled") is None:
                return

    def wait_for_module_progress(self) -> None:
        self._wait_for_next_enabled()
        progress = PlaywrightElement(
            self.page.frame_locator(sel.MODULE_FRAME).get_by_text(sel.PROGRESS_CHECK_TEXT))
        if progress.exists():
            progress.wait_for("hidden", 30_000)

    def go_to_next_submodule(self) -> bool:
        """Advance to the next sub-module; False at the end of the course."""
        self.wait_for_module_progress()
        button = self._next_button()
        if not button.exists() or button.get_attribute("disabled") is not None:
            return False

        button.click()
        self._wait_for_next_enabled()
        self._pause(0.5)
        return True
