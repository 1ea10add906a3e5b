"""Non-exam activities found in course sections, and their dispatcher.

Each :class:`ActivityKind` has a static detector that inspects a section
and a handler that runs a fixed interaction sequence.  The dispatcher
checks the kinds in priority order and runs every matching handler once;
a handler that fails is logged and does not stop the ones after it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from coursebot.environment import selectors as sel
from coursebot.environment.element import find_by_text, has_class, pause
from coursebot.solver.answers import AnswerCache, QuestionError
from coursebot.solver.question_classifier import question_identity
from coursebot.solver.question_handlers import apply_answer, build_handler, extract_answer

logger = logging.getLogger(__name__)

# Makes an external link inert so pressing it registers the visit
# without leaving the course.
_NEUTRALIZE_LINK_JS = """\
(a) => {
    a.href = '#';
    a.removeAttribute('target');
    a.addEventListener('click', (e) => { e.preventDefault(); e.stopImmediatePropagation(); });
}"""


class ActivityKind(Enum):
    ASSESSMENT_SUBMIT = "assessment_submit"
    VIDEO_PLAYER = "video_player"
    CONTENT_LINKS = "content_links"
    ACCORDION = "accordion"
    CONTENT_TABS = "content_tabs"
    CHECK_YOUR_ANSWER = "check_your_answer"


@dataclass
class ActivityResult:
    kind: ActivityKind
    success: bool = False
    actions_log: list[str] = field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------

def _is_single_submit_assessment(section) -> bool:
    return has_class(section, sel.SINGLE_SUBMIT_CLASS)


def _has_video(section) -> bool:
    return section.find(sel.VIDEO_IFRAMES).exists()


def _has_content_links(section) -> bool:
    return section.find(sel.CONTENT_LINKS).exists()


def _has_accordion(section) -> bool:
    return section.find(sel.ACCORDION_BUTTONS).exists()


def _has_tabs(section) -> bool:
    return section.find(sel.TAB_WIDGETS).exists()


def _has_check_button(section) -> bool:
    return any(
        find_by_text(container, sel.BUTTONS, sel.CHECK_TEXT) is not None
        for container in section.children(sel.CHECK_CONTAINERS)
    )


# Priority order: assessments first.
DETECTORS: dict[ActivityKind, Callable[[object], bool]] = {
    ActivityKind.ASSESSMENT_SUBMIT: _is_single_submit_assessment,
    ActivityKind.VIDEO_PLAYER: _has_video,
    ActivityKind.CONTENT_LINKS: _has_content_links,
    ActivityKind.ACCORDION: _has_accordion,
    ActivityKind.CONTENT_TABS: _has_tabs,
    ActivityKind.CHECK_YOUR_ANSWER: _has_check_button,
}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class ActivityHandlers:
    """Dispatch to the right handler method.

    *popup_root* is the element notification popups are rendered under
    (the course content frame); without it popups are left alone.
    """

    def __init__(self, popup_root=None, pace: float = 1.0,
                 video_end_timeout_ms: float = 60_000):
        self.popup_root = popup_root
        self.pace = pace
        self.video_end_timeout_ms = video_end_timeout_ms

    def _pause(self, seconds: float) -> None:
        pause(seconds, self.pace)

    def handle(self, kind: ActivityKind, section) -> ActivityResult:
        dispatch = {
            ActivityKind.ASSESSMENT_SUBMIT: self.handle_assessment_submit,
            ActivityKind.VIDEO_PLAYER: self.handle_video_player,
            ActivityKind.CONTENT_LINKS: self.handle_content_links,
            ActivityKind.ACCORDION: self.handle_accordion,
            ActivityKind.CONTENT_TABS: self.handle_content_tabs,
            ActivityKind.CHECK_YOUR_ANSWER: self.handle_check_your_answer,
        }
        logger.info("Doing %s activity...", kind.value)
        try:
            result = dispatch[kind](section)
        except Exception as e:
            logger.warning("Activity %s error: %s", kind.name, e, exc_info=True)
            return ActivityResult(kind, error=str(e), actions_log=[f"error: {e}"])
        logger.info("%s activity complete", kind.value)
        return result

    def close_notify_popup(self) -> bool:
        if self.popup_root is None:
            return False
        button = self.popup_root.find(sel.NOTIFY_CLOSE_BUTTON)
        if not button.exists():
            return False
        return button.force_click()

    # -- single-submit assessment ----------------------------------------

    @staticmethod
    def _assessment_submitted(section) -> bool:
        return section.find(sel.ACTIVITY_RESET).exists()

    def _reset_assessment(self, section) -> None:
        section.find(sel.ACTIVITY_RESET).click()
        self._pause(0.1)

    def _submit_assessment(self, section) -> None:
        if self._assessment_submitted(section):
            return

        submit = section.find(sel.ACTIVITY_SUBMIT)
        submit.click()
        self._pause(0.1)

        # Unanswered questions ask for a "submit anyway" confirmation.
        if submit.exists():
            section.find(sel.ACTIVITY_SUBMIT_ANYWAY).click()
            submit.click()

        self._pause(0.1)
        self.close_notify_popup()

    def _submit_and_check(self, section, question) -> bool:
        self._submit_assessment(section)
        return has_class(question, sel.CORRECT_CLASS)

    def handle_assessment_submit(self, section) -> ActivityResult:
        result = ActivityResult(ActivityKind.ASSESSMENT_SUBMIT)
        answers = AnswerCache()

        if self._assessment_submitted(section):
            self._reset_assessment(section)

        # Submitting blank reveals feedback for the questions that have it.
        self._submit_assessment(section)
        for question in section.children(sel.QUESTIONS):
            try:
                answers.merge(extract_answer(question, pace=self.pace))
            except QuestionError as e:
                logger.warning("Could not read answer: %s", e)
        self._reset_assessment(section)
        result.actions_log.append(f"assessment: {len(answers)} answers from feedback")

        for question in list(section.children(sel.QUESTIONS)):
            question_id = question_identity(question)
            if question_id is None or question_id in answers:
                continue
            handler = build_handler(question, pace=self.pace)
            if handler is None:
                continue

            outcome = handler.brute_force_solve(
                oracle=lambda q=question: self._submit_and_check(section, q),
                reset=lambda: self._reset_assessment(section),
            )
            result.actions_log.extend(outcome.actions_log)
            if outcome.success:
                answers.merge(outcome.answer)
            if self._assessment_submitted(section):
                self._reset_assessment(section)

        recognised = applied = 0
        for question in section.children(sel.QUESTIONS):
            if build_handler(question, pace=self.pace) is None:
                continue
            recognised += 1
            answer = answers.get(question_identity(question))
            if answer is None:
                continue
            try:
                if apply_answer(question, answer, pace=self.pace):
                    applied += 1
            except QuestionError as e:
                logger.warning("Question %s: %s", answer.question_id, e)
            self._pause(0.1)

        self._submit_assessment(section)
        result.actions_log.append(f"assessment: applied {applied} answers")
        result.success = applied == recognised
        return result

    # -- video -----------------------------------------------------------

    def _watch_video(self, frame) -> bool:
        play = frame.find(sel.VIDEO_PLAY)
        play.click()
        self._pause(1.0)

        progress = frame.find(sel.VIDEO_PROGRESS)
        box = progress.bounding_box()
        if not box:
            return False

        # Seek to the very end of the progress bar.
        progress.click_at(box["width"] - 2, box["height"] / 2)
        self._pause(1.0)

        if frame.find(sel.VIDEO_PAUSED).exists():
            play.click()

        return frame.find(sel.VIDEO_ENDED).wait_for("attached", self.video_end_timeout_ms)

    def handle_video_player(self, section) -> ActivityResult:
        result = ActivityResult(ActivityKind.VIDEO_PLAYER)
        for iframe in section.children(sel.VIDEO_IFRAMES):
            if not iframe.is_visible():
                continue
            ended = self._watch_video(iframe.frame())
            result.actions_log.append(f"video: ended={ended}")
        result.success = True
        return result

    # -- content links ---------------------------------------------------

    def _open_content_link(self, widget) -> None:
        if not widget.is_visible():
            return

        dialog_button = widget.find(sel.CONTENT_LINK_DIALOG)
        if dialog_button.exists():
            dialog_button.click()
        else:
            anchor = widget.find(sel.CONTENT_LINK_ANCHOR)
            anchor.evaluate(_NEUTRALIZE_LINK_JS)
            anchor.click()
        self._pause(0.2)

    def handle_content_links(self, section) -> ActivityResult:
        result = ActivityResult(ActivityKind.CONTENT_LINKS)
        for widget in section.children(sel.CONTENT_LINKS):
            try:
                self._open_content_link(widget)
                result.actions_log.append("links: opened")
            except Exception as e:
                logger.warning("Content link failed: %s", e)
                result.actions_log.append(f"links: error {e}")
        result.success = True
        return result

    # -- accordion / tabs ------------------------------------------------

    def handle_accordion(self, section) -> ActivityResult:
        result = ActivityResult(ActivityKind.ACCORDION)
        for button in section.children(sel.ACCORDION_BUTTONS):
            button.click()
            self._pause(0.1)
            result.actions_log.append("accordion: opened item")
        result.success = True
        return result

    def handle_content_tabs(self, section) -> ActivityResult:
        result = ActivityResult(ActivityKind.CONTENT_TABS)
        for widget in section.children(sel.TAB_WIDGETS):
            for tab in widget.children(sel.TAB_BUTTONS):
                tab.click()
                self._pause(0.04)
                result.actions_log.append("tabs: visited tab")
        result.success = True
        return result

    # -- check your answer -----------------------------------------------

    def _check_answer(self, container) -> bool:
        show_me = find_by_text(container, sel.BUTTONS, sel.SHOW_ME_TEXT)
        if show_me is not None:
            show_me.click()

        check = find_by_text(container, sel.BUTTONS, sel.CHECK_TEXT)
        if check is None:
            return False
        check.click()
        self.close_notify_popup()
        return True

    def handle_check_your_answer(self, section) -> ActivityResult:
        result = ActivityResult(ActivityKind.CHECK_YOUR_ANSWER)
        for container in section.children(sel.CHECK_CONTAINERS):
            if self._check_answer(container):
                result.actions_log.append("check: pressed")
            self._pause(0.05)
        result.success = True
        return result


class ActivityDispatcher:
    """Runs every activity found in a section, in priority order."""

    def __init__(self, handlers: ActivityHandlers | None = None):
        self.handlers = handlers or ActivityHandlers()

    def detect(self, section) -> list[ActivityKind]:
        found = []
        for kind, detector in DETECTORS.items():
            try:
                if detector(section):
                    found.append(kind)
            except Exception as e:
                logger.warning("Detector %s error: %s", kind.name, e)
        return found

    def run(self, section) -> list[ActivityResult]:
        return [self.handlers.handle(kind, section) for kind in self.detect(section)]
