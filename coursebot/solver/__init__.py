"""Answer discovery and replay for course quizzes, plus non-exam activities."""

from __future__ import annotations

from coursebot.solver.activity_handlers import (
    ActivityDispatcher,
    ActivityHandlers,
    ActivityKind,
    ActivityResult,
)
from coursebot.solver.answers import (
    AnswerCache,
    AnswerTypeMismatch,
    CategoryMatchAnswer,
    ChoiceAnswer,
    DropdownMatchAnswer,
    QuestionError,
)
from coursebot.solver.exam_page import ExamPage
from coursebot.solver.exam_session import (
    ExamError,
    ExamPhase,
    ExamResult,
    ExamSession,
    ExamSettings,
)
from coursebot.solver.question_classifier import (
    DetectionResult,
    QuestionClassifier,
    QuestionKind,
    classify_question,
)
from coursebot.solver.question_handlers import (
    Combinations,
    HandlerResult,
    build_handler,
)

__all__ = [
    "ActivityDispatcher",
    "ActivityHandlers",
    "ActivityKind",
    "ActivityResult",
    "AnswerCache",
    "AnswerTypeMismatch",
    "CategoryMatchAnswer",
    "ChoiceAnswer",
    "Combinations",
    "DetectionResult",
    "DropdownMatchAnswer",
    "ExamError",
    "ExamPage",
    "ExamPhase",
    "ExamResult",
    "ExamSession",
    "ExamSettings",
    "HandlerResult",
    "QuestionClassifier",
    "QuestionError",
    "QuestionKind",
    "build_handler",
    "classify_question",
]
