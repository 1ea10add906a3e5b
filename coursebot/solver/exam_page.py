"""Assessment-level controls of an exam section.

Wraps the exam section element and exposes the handful of actions the
exam session needs: start, skip, submit, final submit, review and retry.
Each action is best effort; a control that is missing or does not react
within its timeout is logged by the element layer and otherwise ignored.
"""

from __future__ import annotations

import logging

from coursebot.environment import selectors as sel
from coursebot.environment.element import find_by_text, has_class

logger = logging.getLogger(__name__)


class ExamPage:
    def __init__(
        self,
        section,
        question_timeout_ms: float = 30_000,
        final_screen_timeout_ms: float = 60_000,
    ):
        self.section = section
        self.question_timeout_ms = question_timeout_ms
        self.final_screen_timeout_ms = final_screen_timeout_ms

    @staticmethod
    def is_exam_section(section) -> bool:
        return section.find(sel.EXAM_HINTS).exists()

    # -- read-only state -------------------------------------------------

    def is_passed(self) -> bool:
        text = (self.section.get_text() or "").lower()
        return sel.EXAM_PASSED_TEXT in text

    def has_retry(self) -> bool:
        return self.section.find(sel.EXAM_RETRY_BUTTON).is_visible()

    def has_countdown(self) -> bool:
        return self.section.find(sel.EXAM_COUNTDOWN).exists()

    def is_started(self) -> bool:
        return self._skip_question_button().is_visible()

    def questions(self) -> list:
        return list(self.section.children(sel.QUESTIONS))

    def has_pending_question(self) -> bool:
        return self.section.find(sel.QUESTION_SUBMIT_BUTTON).exists()

    def is_submit_disabled(self) -> bool:
        return has_class(self.section.find(sel.QUESTION_SUBMIT_BUTTON), sel.DISABLED_CLASS)

    def snapshot_html(self) -> str | None:
        return self.section.inner_html()

    # -- controls --------------------------------------------------------

    def _skip_question_button(self):
        button = self.section.find(sel.SKIP_QUESTION)
        if button.exists():
            return button
        return find_by_text(self.section, sel.LABELS, sel.SKIP_QUESTION_TEXT) or button

    def _skip_all_button(self):
        button = self.section.find(sel.SKIP_ALL)
        if button.exists():
            return button
        return find_by_text(self.section, sel.LABELS, sel.SKIP_ALL_TEXT) or button

    def begin(self) -> None:
        if self.is_started():
            logger.info("Exam already started, not pressing start")
            return
        logger.info("Starting exam...")
        self.section.find(sel.EXAM_START_BUTTON).force_click()

    def wait_for_questions(self) -> bool:
        return self.section.find(sel.QUESTIONS).wait_for("attached", self.question_timeout_ms)

    def retry(self) -> bool:
        return self.section.find(sel.EXAM_RETRY_BUTTON).click()

    def skip_question(self) -> bool:
        return self._skip_question_button().click()

    def skip_all(self) -> None:
        button = self._skip_all_button()
        button.click()
        button.force_click()
        self.wait_for_final_screen()

    def submit_question(self) -> bool:
        return self.section.find(sel.QUESTION_SUBMIT_BUTTON).force_click()

    def wait_for_final_screen(self) -> bool:
        return self.section.find(sel.EXAM_FINAL_SCREEN).wait_for(
            "attached", self.final_screen_timeout_ms)

    def submit_assessment(self) -> bool:
        """Confirm and submit the whole attempt."""
        self.wait_for_final_screen()
        self.section.find(sel.EXAM_CONFIRM_CHECKBOX).click()

        final_submit = self.section.find(sel.EXAM_FINAL_SUBMIT)
        if not final_submit.exists():
            logger.info("No final submit control, assuming the attempt is already submitted")
            return False
        return final_submit.click()

    def open_review(self) -> bool:
        return self.section.find(sel.EXAM_REVIEW_BUTTON).click()
