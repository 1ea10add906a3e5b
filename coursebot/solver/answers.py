"""Answer model and the answer cache.

An answer is one of three frozen dataclasses, tagged by the
:class:`QuestionKind` it belongs to.  The cache maps question identity to
answer for the lifetime of the process; it is never written to disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import ClassVar, Iterator, Mapping, Union

from coursebot.solver.question_classifier import QuestionKind

logger = logging.getLogger(__name__)


class QuestionError(Exception):
    """Problem confined to a single question; the session carries on."""


class AnswerTypeMismatch(QuestionError):
    def __init__(self, expected: QuestionKind, answer):
        self.expected = expected
        self.answer = answer
        super().__init__(
            f"{type(answer).__name__} ({answer.kind.name}) cannot be applied "
            f"to a {expected.name} question"
        )


@dataclass(frozen=True)
class ChoiceAnswer:
    """All option identifiers that must be selected, in document order."""

    kind: ClassVar[QuestionKind] = QuestionKind.SINGLE_OR_MULTI_CHOICE

    question_id: str
    options: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not self.options


@dataclass(frozen=True)
class CategoryMatchAnswer:
    """Left item id -> right item id."""

    kind: ClassVar[QuestionKind] = QuestionKind.CATEGORY_MATCH

    question_id: str
    pairs: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "pairs", MappingProxyType(dict(self.pairs)))

    def is_empty(self) -> bool:
        return not self.pairs


@dataclass(frozen=True)
class DropdownMatchAnswer:
    """Dropdown position -> display text of the correct option."""

    kind: ClassVar[QuestionKind] = QuestionKind.DROPDOWN_MATCH

    question_id: str
    selections: Mapping[int, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "selections", MappingProxyType(dict(self.selections)))

    def is_empty(self) -> bool:
        return not self.selections


Answer = Union[ChoiceAnswer, CategoryMatchAnswer, DropdownMatchAnswer]


def answer_to_dict(answer: Answer) -> dict:
    """Plain, JSON-ready copy of *answer* including its kind."""
    data = {"kind": answer.kind.name}
    for f in fields(answer):
        value = getattr(answer, f.name)
        data[f.name] = dict(value) if isinstance(value, Mapping) else value
    return data


def describe(answer: Answer) -> str:
    if isinstance(answer, ChoiceAnswer):
        return ", ".join(answer.options)
    if isinstance(answer, CategoryMatchAnswer):
        return ", ".join(f"{k} -> {v}" for k, v in answer.pairs.items())
    return ", ".join(f"#{k}: {v}" for k, v in sorted(answer.selections.items()))


class AnswerCache:
    """Question identity -> answer.

    Only non-empty answers are accepted and a cached answer is never
    replaced; a later pass can only fill identities that had none.
    """

    def __init__(self) -> None:
        self._answers: dict[str, Answer] = {}

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers

    def __iter__(self) -> Iterator[Answer]:
        return iter(self._answers.values())

    def get(self, question_id: str | None) -> Answer | None:
        if question_id is None:
            return None
        return self._answers.get(question_id)

    def identities(self) -> list[str]:
        return list(self._answers)

    def merge(self, answer: Answer | None) -> bool:
        """Add *answer*; True if its identity was not cached before."""
        if answer is None or answer.is_empty():
            return False

        existing = self._answers.get(answer.question_id)
        if existing is not None:
            if existing.kind is not answer.kind:
                logger.warning(
                    "Question %s re-extracted as %s, keeping cached %s",
                    answer.question_id, answer.kind.name, existing.kind.name,
                )
            return False

        self._answers[answer.question_id] = answer
        logger.debug("Cached %s answer for %s: %s",
                     answer.kind.name, answer.question_id, describe(answer))
        return True
