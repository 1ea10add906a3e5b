"""Detect which question kind a question component holds.

Classification only reads attributes and checks for child widgets; it
never clicks.  Markup that matches no known kind, or more than one, is
reported as ``None`` so the caller skips the question instead of guessing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from coursebot.environment import selectors as sel

logger = logging.getLogger(__name__)


class QuestionKind(Enum):
    SINGLE_OR_MULTI_CHOICE = "single_or_multi_choice"
    CATEGORY_MATCH = "category_match"
    DROPDOWN_MATCH = "dropdown_match"


@dataclass
class DetectionResult:
    kind: QuestionKind | None
    signals: dict[str, bool] = field(default_factory=dict)


_CLASS_MARKERS: dict[QuestionKind, tuple[str, ...]] = {
    QuestionKind.SINGLE_OR_MULTI_CHOICE: sel.CHOICE_CLASS_MARKERS,
    QuestionKind.CATEGORY_MATCH: sel.CATEGORY_CLASS_MARKERS,
    QuestionKind.DROPDOWN_MATCH: sel.DROPDOWN_CLASS_MARKERS,
}

_WIDGET_MARKERS: dict[QuestionKind, str] = {
    QuestionKind.SINGLE_OR_MULTI_CHOICE: sel.CHOICE_WIDGET,
    QuestionKind.CATEGORY_MATCH: sel.CATEGORY_WIDGET,
    QuestionKind.DROPDOWN_MATCH: sel.DROPDOWN_WIDGET,
}


def question_identity(question) -> str | None:
    """Stable id of a question across attempts, or ``None``."""
    value = question.get_attribute(sel.QUESTION_ID_ATTR)
    if value is None:
        return None
    return value.strip() or None


class QuestionClassifier:
    """Maps a question element to a :class:`QuestionKind`."""

    def detect(self, question) -> DetectionResult:
        signals: dict[str, bool] = {}

        tokens = set((question.get_attribute("class") or "").split())
        by_class = []
        for kind, markers in _CLASS_MARKERS.items():
            hit = any(m in tokens for m in markers)
            signals[f"class:{kind.value}"] = hit
            if hit:
                by_class.append(kind)

        if len(by_class) == 1:
            return DetectionResult(by_class[0], signals)
        if len(by_class) > 1:
            logger.info("Ambiguous question classes %s, skipping", sorted(tokens))
            return DetectionResult(None, signals)

        by_widget = []
        for kind, selector in _WIDGET_MARKERS.items():
            hit = question.find(selector).exists()
            signals[f"widget:{kind.value}"] = hit
            if hit:
                by_widget.append(kind)

        if len(by_widget) == 1:
            return DetectionResult(by_widget[0], signals)

        logger.debug("Unrecognised question (classes=%s, widgets=%s)",
                     sorted(tokens), [k.name for k in by_widget])
        return DetectionResult(None, signals)


_classifier = QuestionClassifier()


def classify_question(question) -> QuestionKind | None:
    return _classifier.detect(question).kind
