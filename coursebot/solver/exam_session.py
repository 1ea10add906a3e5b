"""State machine for one assessment instance.

    NOT_STARTED -> COLLECTING_ANSWERS -> ANSWERING_QUESTIONS -> FINAL_SUBMITTED
                \\-> SKIPPED         (timed exam, never attempted)
                \\-> ALREADY_PASSED  (nothing to do)

Collecting: skip every question, submit, open the review and harvest the
revealed answers into the shared :class:`AnswerCache`, then retry.  Passes
repeat until the cap is hit or a pass stops adding new answers.

Answering: on a fresh attempt, take the newest rendered question, replay
its cached answer and submit, or skip it when no usable answer exists.
Coverage below the threshold is escalated to the operator before the
final submit.
"""

from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from coursebot.environment.element import pause
from coursebot.solver.answers import AnswerCache, QuestionError, describe
from coursebot.solver.question_classifier import classify_question, question_identity
from coursebot.solver.question_handlers import apply_answer, build_handler

logger = logging.getLogger(__name__)

Checkpoint = Callable[[str], None]


class ExamError(Exception):
    """The session cannot continue (e.g. no questions were ever revealed)."""


class ExamPhase(Enum):
    NOT_STARTED = "not_started"
    COLLECTING_ANSWERS = "collecting_answers"
    ANSWERING_QUESTIONS = "answering_questions"
    FINAL_SUBMITTED = "final_submitted"
    SKIPPED = "skipped"
    ALREADY_PASSED = "already_passed"


@dataclass
class ExamSettings:
    max_collection_passes: int = 3
    module_exam_passes: int = 1
    min_new_answers_per_pass: int = 0
    coverage_threshold: float = 0.7
    question_timeout_ms: int = 30_000
    final_screen_timeout_ms: int = 60_000
    pace: float = 1.0
    snapshot_dir: str | None = None

    @classmethod
    def from_config(cls, config: dict) -> ExamSettings:
        exam = config.get("exam") or {}
        run = config.get("run") or {}
        defaults = cls()
        return cls(
            max_collection_passes=exam.get("max_collection_passes", defaults.max_collection_passes),
            module_exam_passes=exam.get("module_exam_passes", defaults.module_exam_passes),
            min_new_answers_per_pass=exam.get("min_new_answers_per_pass",
                                              defaults.min_new_answers_per_pass),
            coverage_threshold=exam.get("coverage_threshold", defaults.coverage_threshold),
            question_timeout_ms=exam.get("question_timeout_ms", defaults.question_timeout_ms),
            final_screen_timeout_ms=exam.get("final_screen_timeout_ms",
                                             defaults.final_screen_timeout_ms),
            pace=run.get("pace", defaults.pace),
            snapshot_dir=run.get("snapshot_dir"),
        )


@dataclass
class ExamResult:
    phase: ExamPhase = ExamPhase.NOT_STARTED
    title: str | None = None
    total_questions: int = 0
    answered: int = 0
    skipped: int = 0
    collection_passes: int = 0
    new_answers_per_pass: list[int] = field(default_factory=list)
    cached_answers: int = 0
    operator_prompted: bool = False
    more_to_answer: int = 0
    elapsed_seconds: float = 0.0

    @property
    def coverage(self) -> float:
        if not self.total_questions:
            return 0.0
        return (self.total_questions - self.skipped) / self.total_questions


def is_module_exam(title: str | None) -> bool:
    """Module tests/quizzes present the same questions on every attempt."""
    if not title:
        return False
    text = title.lower()
    return "module" in text and any(w in text for w in ("test", "quiz", "assessment"))


def required_answers(total: int, threshold: float) -> int:
    # round() first: 0.7 * 10 is 7.000000000000001 in floating point.
    return math.ceil(round(threshold * total, 9))


class ExamSession:
    """Drives one exam section from entry to final submit."""

    def __init__(
        self,
        page,
        cache: AnswerCache,
        checkpoint: Checkpoint,
        settings: ExamSettings | None = None,
        title: str | None = None,
    ):
        self.page = page
        self.cache = cache
        self.checkpoint = checkpoint
        self.settings = settings or ExamSettings()
        self.title = title

        self.phase = ExamPhase.NOT_STARTED
        self.total_questions = 0
        self.skipped_count = 0
        self.answered_count = 0
        self.new_answers_per_pass: list[int] = []
        self.operator_prompted = False
        self.more_to_answer = 0

    def _pause(self, seconds: float) -> None:
        pause(seconds, self.settings.pace)

    def run(self) -> ExamResult:
        t0 = time.time()
        self._run()
        return ExamResult(
            phase=self.phase,
            title=self.title,
            total_questions=self.total_questions,
            answered=self.answered_count,
            skipped=self.skipped_count,
            collection_passes=len(self.new_answers_per_pass),
            new_answers_per_pass=list(self.new_answers_per_pass),
            cached_answers=len(self.cache),
            operator_prompted=self.operator_prompted,
            more_to_answer=self.more_to_answer,
            elapsed_seconds=time.time() - t0,
        )

    def _run(self) -> None:
        if self.page.is_passed():
            logger.info("Exam already passed: %s", self.title)
            self.phase = ExamPhase.ALREADY_PASSED
            return

        if self.page.has_retry():
            self.page.retry()

        self.page.begin()
        self.page.wait_for_questions()

        if self.page.has_countdown():
            logger.info("Timed exam, skipping it: %s", self.title)
            self.phase = ExamPhase.SKIPPED
            return

        self.phase = ExamPhase.COLLECTING_ANSWERS
        self._collect_answers()

        self.phase = ExamPhase.ANSWERING_QUESTIONS
        self._answer_questions()
        self._check_coverage()

        self.page.submit_assessment()
        self._pause(1.0)
        self.phase = ExamPhase.FINAL_SUBMITTED
        logger.info("Exam submitted: %d/%d answered, %d skipped",
                    self.answered_count, self.total_questions, self.skipped_count)

    # ------------------------------------------------------------------
    # Collecting
    # ------------------------------------------------------------------

    def _collection_passes(self) -> int:
        if is_module_exam(self.title):
            return self.settings.module_exam_passes
        return self.settings.max_collection_passes

    def _collect_answers(self) -> None:
        passes = self._collection_passes()

        for n in range(passes):
            logger.info("Collecting answers: pass %d/%d", n + 1, passes)
            self.page.begin()
            self.page.skip_all()
            self.page.submit_assessment()
            self._pause(0.5)
            self.page.open_review()

            questions = self.page.questions()
            self._save_snapshot(n)

            new_answers = 0
            for question in questions:
                try:
                    if self._harvest(question):
                        new_answers += 1
                except QuestionError as e:
                    logger.warning("Could not read answer: %s", e)

            if n == 0:
                self.total_questions = len(questions)
            self.new_answers_per_pass.append(new_answers)
            logger.info("Pass %d: %d questions revealed, %d new answers, %d cached",
                        n + 1, len(questions), new_answers, len(self.cache))

            self.page.retry()
            self._pause(0.3)

            if new_answers <= self.settings.min_new_answers_per_pass:
                logger.info("Pass %d added too few answers, stopping collection", n + 1)
                break

    def _harvest(self, question) -> bool:
        kind = classify_question(question)
        if kind is None:
            logger.debug("Skipping unrecognised question %s", question_identity(question))
            return False
        handler = build_handler(question, kind, pace=self.settings.pace)
        return self.cache.merge(handler.extract_correct_answer())

    def _save_snapshot(self, pass_index: int) -> None:
        if not self.settings.snapshot_dir:
            return
        html = self.page.snapshot_html()
        if not html:
            return
        slug = re.sub(r"[^a-z0-9]+", "_", (self.title or "exam").lower()).strip("_")
        path = Path(self.settings.snapshot_dir) / f"{slug}_review{pass_index + 1}.html"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        logger.info("Saved review snapshot to %s", path)

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    def _answer_questions(self) -> None:
        if not self.total_questions:
            raise ExamError("No questions were revealed while collecting answers")

        self.page.begin()
        self.page.wait_for_questions()

        for i in range(self.total_questions):
            self._pause(0.05)

            questions = self.page.questions()
            if not questions:
                logger.info("No more questions after %d", i)
                break

            # Newly presented questions are rendered last.
            question = questions[-1]
            question_id = question_identity(question)
            answer = self.cache.get(question_id)
            if answer is None:
                logger.info("No answer for question %s, skipping", question_id)
                self._skip()
                continue

            logger.info("Question (%s) %d/%d, type: %s, answer: %s",
                        question_id, i + 1, self.total_questions,
                        answer.kind.name, describe(answer))
            try:
                applied = apply_answer(question, answer, pace=self.settings.pace)
            except QuestionError as e:
                logger.warning("Question %s: %s", question_id, e)
                self._skip()
                continue

            if not applied:
                logger.info("Question %s is no longer recognised, skipping", question_id)
                self._skip()
                continue

            self._submit_or_skip()

        if self.page.has_pending_question():
            self._pause(0.1)
            self.page.skip_all()

    def _skip(self) -> None:
        self.skipped_count += 1
        self.page.skip_question()

    def _submit_or_skip(self) -> None:
        if self.page.is_submit_disabled():
            self._pause(0.1)
            if self.page.is_submit_disabled():
                logger.info("Submit is disabled, answer incomplete; skipping question")
                self._skip()
                return
        self.page.submit_question()
        self.answered_count += 1

    # ------------------------------------------------------------------
    # Coverage
    # ------------------------------------------------------------------

    def _check_coverage(self) -> None:
        total = self.total_questions
        required = required_answers(total, self.settings.coverage_threshold)
        answered = total - self.skipped_count
        if answered >= required:
            return

        self.more_to_answer = required - answered
        self.operator_prompted = True
        self.checkpoint(
            f"Skipped {self.skipped_count} of {total} questions. "
            f"Answer {self.more_to_answer} more by hand, then press Enter to submit."
        )
