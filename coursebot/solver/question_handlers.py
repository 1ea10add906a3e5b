"""Question handlers, one per :class:`QuestionKind`, plus shared utilities.

Every handler wraps a single question element and offers:

* ``extract_correct_answer()`` -- read the review/feedback rendering,
* ``apply(answer)`` -- reproduce a known answer on a fresh question,
* ``pseudo_answer()`` -- fill in *something*, used for probing,
* ``brute_force_solve(oracle, reset)`` -- discover the answer by trial.

``oracle()`` submits the current guess and reports whether the platform
marked the question correct.  ``reset()`` returns the question to an
unanswered state; it may be ``None`` when the widget has no reset control.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterator, Optional, Sequence

from coursebot.environment import selectors as sel
from coursebot.environment.element import has_class, pause, text_of
from coursebot.solver.answers import (
    Answer,
    AnswerTypeMismatch,
    CategoryMatchAnswer,
    ChoiceAnswer,
    DropdownMatchAnswer,
)
from coursebot.solver.question_classifier import (
    QuestionKind,
    classify_question,
    question_identity,
)

logger = logging.getLogger(__name__)

Oracle = Callable[[], bool]
Reset = Optional[Callable[[], None]]


# ---------------------------------------------------------------------------
# Result data class
# ---------------------------------------------------------------------------

@dataclass
class HandlerResult:
    answer: Answer | None = None
    success: bool = False
    oracle_calls: int = 0
    actions_log: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Subset enumeration
# ---------------------------------------------------------------------------

def _combinations(k: int, items: tuple) -> Iterator[tuple]:
    if k <= 0 or k > len(items):
        return
    if k == len(items):
        yield items
        return
    if k == 1:
        for item in items:
            yield (item,)
        return

    head, rest = items[0], items[1:]
    # Subsets containing the head come before the ones without it.
    for subset in _combinations(k - 1, rest):
        yield (head,) + subset
    yield from _combinations(k, rest)


class Combinations:
    """Every size-*k* subset of *items*, inclusion-first.

    ``Combinations(2, "ABC")`` yields ``AB, AC, BC``.  Iterating again
    starts over.
    """

    def __init__(self, k: int, items: Sequence):
        self.k = k
        self.items = tuple(items)

    def __iter__(self) -> Iterator[tuple]:
        return _combinations(self.k, self.items)

    def __len__(self) -> int:
        n = len(self.items)
        if self.k <= 0 or self.k > n:
            return 0
        return math.comb(n, self.k)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class QuestionHandler:
    kind: ClassVar[QuestionKind]
    answer_type: ClassVar[type]

    def __init__(self, question, pace: float = 1.0):
        self.question = question
        self.pace = pace

    @property
    def question_id(self) -> str | None:
        return question_identity(self.question)

    def _check_answer(self, answer: Answer) -> None:
        if not isinstance(answer, self.answer_type):
            raise AnswerTypeMismatch(self.kind, answer)

    @staticmethod
    def _consult(oracle: Oracle, result: HandlerResult) -> bool:
        result.oracle_calls += 1
        return bool(oracle())

    def extract_correct_answer(self) -> Answer | None:
        raise NotImplementedError

    def apply(self, answer: Answer) -> None:
        raise NotImplementedError

    def pseudo_answer(self):
        raise NotImplementedError

    def brute_force_solve(self, oracle: Oracle, reset: Reset) -> HandlerResult:
        raise NotImplementedError


class ChoiceHandler(QuestionHandler):
    """Single- and multiple-choice questions."""

    kind = QuestionKind.SINGLE_OR_MULTI_CHOICE
    answer_type = ChoiceAnswer

    def options(self) -> list:
        return list(self.question.children(sel.CHOICE_OPTIONS))

    @staticmethod
    def option_id(option) -> str | None:
        value = option.find(sel.CHOICE_OPTION_INPUT).get_attribute(sel.OPTION_ID_ATTR)
        if value is None:
            return None
        return value.strip() or None

    @staticmethod
    def is_selected(option) -> bool:
        return has_class(option.find(sel.CHOICE_OPTION_LABEL), sel.SELECTED_CLASS)

    def _select(self, option) -> None:
        option.find(sel.CHOICE_OPTION_LABEL).click()

    def _ids(self, options) -> tuple[str, ...]:
        ids = (self.option_id(o) for o in options)
        return tuple(i for i in ids if i is not None)

    def is_exclusive(self) -> bool:
        """True for radio-style questions (exactly one selectable option)."""
        return any(
            o.find(sel.CHOICE_OPTION_INPUT).get_attribute("type") == "radio"
            for o in self.options()
        )

    def extract_correct_answer(self) -> ChoiceAnswer | None:
        question_id = self.question_id
        if question_id is None:
            return None

        correct = [o for o in self.options() if has_class(o, sel.CORRECT_CLASS)]
        ids = self._ids(correct)
        if not ids:
            return None
        return ChoiceAnswer(question_id, ids)

    def apply(self, answer: Answer) -> None:
        self._check_answer(answer)
        wanted = set(answer.options)
        found = set()
        for option in self.options():
            option_id = self.option_id(option)
            if option_id in wanted:
                self._select(option)
                found.add(option_id)

        missing = wanted - found
        if missing:
            logger.warning("Question %s: options %s not rendered",
                           answer.question_id, sorted(missing))

    def pseudo_answer(self) -> int:
        """Select every option; returns how many were clicked."""
        options = self.options()
        for option in options:
            self._select(option)
        return len(options)

    def max_selectable(self, reset: Reset) -> int:
        """How many options the widget lets us select at once."""
        if self.is_exclusive():
            return 1

        self.pseudo_answer()
        pause(0.2, self.pace)
        count = sum(1 for o in self.options() if self.is_selected(o))
        if reset is not None:
            reset()
        return count

    def brute_force_solve(self, oracle: Oracle, reset: Reset) -> HandlerResult:
        result = HandlerResult()
        question_id = self.question_id
        if question_id is None:
            result.actions_log.append("choice: no question id")
            return result

        result.answer = ChoiceAnswer(question_id)

        if reset is None:
            # Without a reset control every guess after the first would be
            # made on a dirty question.
            self.pseudo_answer()
            pause(0.2, self.pace)
            if self._consult(oracle, result):
                selected = [o for o in self.options() if self.is_selected(o)]
                result.answer = ChoiceAnswer(question_id, self._ids(selected))
                result.success = True
            result.actions_log.append(f"choice: single best-effort attempt, success={result.success}")
            return result

        k = self.max_selectable(reset)
        if k == 0:
            logger.error("Question %s: could not determine selectable option count", question_id)
            result.actions_log.append("choice: k=0")
            return result

        options = self.options()
        guesses = Combinations(k, options)
        logger.info("Question %s: brute forcing %d option(s) out of %d (%d guesses)",
                    question_id, k, len(options), len(guesses))

        for guess in guesses:
            for option in guess:
                self._select(option)

            if self._consult(oracle, result):
                result.answer = ChoiceAnswer(question_id, self._ids(guess))
                result.success = True
                result.actions_log.append(
                    f"choice: guess {result.oracle_calls}/{len(guesses)} correct")
                return result
            reset()

        result.actions_log.append(f"choice: all {len(guesses)} guesses failed")
        return result


class CategoryMatchHandler(QuestionHandler):
    """Drag-to-category style matching, answered by clicking pairs."""

    kind = QuestionKind.CATEGORY_MATCH
    answer_type = CategoryMatchAnswer

    def left_items(self) -> list:
        return list(self.question.children(sel.CATEGORY_LEFT_ITEMS))

    def right_items(self) -> list:
        return list(self.question.children(sel.CATEGORY_RIGHT_ITEMS))

    @staticmethod
    def item_id(item) -> str | None:
        return text_of(item.find(sel.CATEGORY_ITEM_TEXT))

    def _pair(self, left, right) -> None:
        left.click()
        pause(0.01, self.pace)
        right.click()
        pause(0.01, self.pace)

    def extract_correct_answer(self) -> CategoryMatchAnswer | None:
        question_id = self.question_id
        if question_id is None:
            return None

        pairs: dict[str, str] = {}
        for row in self.question.children(sel.FEEDBACK_ROWS):
            cells = list(row.children(sel.FEEDBACK_CELLS))
            if len(cells) < 2:
                continue
            left, right = text_of(cells[0]), text_of(cells[1])
            if left and right:
                pairs[left] = right

        if not pairs:
            return None
        return CategoryMatchAnswer(question_id, pairs)

    def apply(self, answer: Answer) -> None:
        self._check_answer(answer)
        rights: dict[str, object] = {}
        for item in self.right_items():
            rights.setdefault(self.item_id(item), item)

        for left in self.left_items():
            left_id = self.item_id(left)
            target = answer.pairs.get(left_id) if left_id else None
            if target is None:
                logger.debug("Question %s: no pairing for %r", answer.question_id, left_id)
                continue
            right = rights.get(target)
            if right is None:
                logger.warning("Question %s: right item %r not rendered",
                               answer.question_id, target)
                continue
            self._pair(left, right)

    def _shared_attribute(self, lefts: list) -> str | None:
        if not lefts:
            return None
        for attr in sel.CATEGORY_SHARED_ID_ATTRS:
            if lefts[0].get_attribute(attr):
                return attr
        return None

    def pseudo_answer(self) -> dict[str, str]:
        """Pair items by a shared id attribute, or positionally.

        Returns the pairing that was clicked, keyed by item id.
        """
        lefts, rights = self.left_items(), self.right_items()
        attr = self._shared_attribute(lefts)

        if attr is None:
            matched = list(zip(lefts, rights))
        else:
            by_attr = {}
            for right in rights:
                value = right.get_attribute(attr)
                if value:
                    by_attr[value] = right
            matched = []
            for left in lefts:
                right = by_attr.get(left.get_attribute(attr) or "")
                if right is not None:
                    matched.append((left, right))

        applied: dict[str, str] = {}
        for left, right in matched:
            self._pair(left, right)
            left_id, right_id = self.item_id(left), self.item_id(right)
            if left_id and right_id:
                applied[left_id] = right_id
        return applied

    def brute_force_solve(self, oracle: Oracle, reset: Reset) -> HandlerResult:
        result = HandlerResult()
        question_id = self.question_id
        if question_id is None:
            result.actions_log.append("category: no question id")
            return result

        applied = self.pseudo_answer()
        passed = self._consult(oracle, result)

        feedback = self.extract_correct_answer()
        if feedback is not None:
            result.answer = feedback
            result.success = True
            result.actions_log.append("category: read feedback table")
        elif passed:
            result.answer = CategoryMatchAnswer(question_id, applied)
            result.success = True
            result.actions_log.append("category: pseudo answer accepted")
        else:
            result.answer = CategoryMatchAnswer(question_id)
            result.actions_log.append("category: pseudo answer rejected, no feedback")
        return result


class DropdownMatchHandler(QuestionHandler):
    """One dropdown per statement, each with a list of text options."""

    kind = QuestionKind.DROPDOWN_MATCH
    answer_type = DropdownMatchAnswer

    def dropdowns(self) -> list:
        return list(self.question.children(sel.DROPDOWNS))

    def _select(self, dropdown, text: str) -> bool:
        for option in dropdown.children(sel.DROPDOWN_OPTIONS):
            if text_of(option) == text:
                return option.js_click()
        return False

    def extract_correct_answer(self) -> DropdownMatchAnswer | None:
        question_id = self.question_id
        if question_id is None:
            return None

        selections: dict[int, str] = {}
        for index, dropdown in enumerate(self.dropdowns()):
            text = text_of(dropdown.find(sel.DROPDOWN_BUTTON_TEXT))
            if text:
                selections[index] = text

        if not selections:
            return None
        return DropdownMatchAnswer(question_id, selections)

    def apply(self, answer: Answer) -> None:
        self._check_answer(answer)
        for index, dropdown in enumerate(self.dropdowns()):
            text = answer.selections.get(index)
            if not text:
                continue
            if not self._select(dropdown, text):
                logger.warning("Question %s: option %r missing from dropdown %d",
                               answer.question_id, text, index)

    def pseudo_answer(self) -> int:
        """Pick the first option of every dropdown."""
        dropdowns = self.dropdowns()
        for dropdown in dropdowns:
            dropdown.find(sel.DROPDOWN_BUTTON).js_click()
            dropdown.find(sel.DROPDOWN_OPTIONS).js_click()
        return len(dropdowns)

    def brute_force_solve(self, oracle: Oracle, reset: Reset) -> HandlerResult:
        result = HandlerResult()
        question_id = self.question_id
        if question_id is None:
            result.actions_log.append("dropdown: no question id")
            return result

        result.answer = DropdownMatchAnswer(question_id)

        self.pseudo_answer()
        if self._consult(oracle, result):
            result.answer = self.extract_correct_answer() or result.answer
            result.success = True
            result.actions_log.append("dropdown: first options accepted")
            return result

        show_correct = self.question.find(sel.SHOW_CORRECT_BUTTON)
        if not show_correct.exists():
            result.actions_log.append("dropdown: rejected, no show-answer control")
            return result

        show_correct.force_click()
        pause(0.1, self.pace)
        revealed = self.extract_correct_answer()
        if revealed is None:
            result.actions_log.append("dropdown: show-answer revealed nothing")
            return result

        result.answer = revealed
        result.success = True
        if reset is not None:
            reset()
            self.apply(revealed)
            passed = self._consult(oracle, result)
            result.actions_log.append(f"dropdown: replayed revealed answer, passed={passed}")
        else:
            result.actions_log.append("dropdown: revealed answer, no reset to replay")
        return result


HANDLERS: dict[QuestionKind, type[QuestionHandler]] = {
    QuestionKind.SINGLE_OR_MULTI_CHOICE: ChoiceHandler,
    QuestionKind.CATEGORY_MATCH: CategoryMatchHandler,
    QuestionKind.DROPDOWN_MATCH: DropdownMatchHandler,
}


def build_handler(question, kind: QuestionKind | None = None,
                  pace: float = 1.0) -> QuestionHandler | None:
    """Handler for *question*, or ``None`` when its kind is unknown."""
    if kind is None:
        kind = classify_question(question)
    if kind is None:
        return None
    return HANDLERS[kind](question, pace=pace)


def extract_answer(question, pace: float = 1.0) -> Answer | None:
    handler = build_handler(question, pace=pace)
    if handler is None:
        return None
    return handler.extract_correct_answer()


def apply_answer(question, answer: Answer, pace: float = 1.0) -> bool:
    """Apply *answer*; False when the question kind is not recognised.

    Raises :class:`AnswerTypeMismatch` when the question's kind differs
    from the answer's.
    """
    handler = build_handler(question, pace=pace)
    if handler is None:
        return False
    handler.apply(answer)
    return True
