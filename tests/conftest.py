"""Fakes of the interactive element capability set, shared by the tests."""

from __future__ import annotations

import pytest

from coursebot.environment import selectors as sel
from coursebot.environment.snapshot import SnapshotElement


class FakeElement:
    """In-memory element.

    ``kids`` maps an exact selector string to a list of children (or a
    callable returning one).  ``exists`` may be a callable so controls can
    appear and disappear as the fake UI changes state.
    """

    def __init__(self, attrs=None, text=None, kids=None, on_click=None,
                 exists=True, visible=True, name=""):
        self.attrs = dict(attrs or {})
        self.text = text
        self.kids = dict(kids or {})
        self.on_click = on_click
        self._exists = exists
        self.visible = visible
        self.name = name
        self.clicks: list[str] = []
        self.evaluated: list[str] = []

    def __repr__(self):
        return f"FakeElement({self.name or self.attrs})"

    def exists(self) -> bool:
        return self._exists() if callable(self._exists) else self._exists

    def is_visible(self) -> bool:
        return self.exists() and self.visible

    def _click(self, how: str) -> bool:
        if not self.exists():
            return False
        self.clicks.append(how)
        if self.on_click is not None:
            self.on_click(self)
        return True

    def click(self, timeout=0) -> bool:
        return self._click("click")

    def force_click(self, timeout=0) -> bool:
        return self._click("force_click")

    def js_click(self, timeout=0) -> bool:
        return self._click("js_click")

    def click_at(self, x, y, timeout=0) -> bool:
        return self._click(f"click_at({x},{y})")

    def get_attribute(self, name):
        if not self.exists():
            return None
        return self.attrs.get(name)

    def get_text(self):
        if not self.exists():
            return None
        return self.text

    def inner_html(self):
        return f"<div>{self.text or ''}</div>" if self.exists() else None

    def wait_for(self, state="visible", timeout=0) -> bool:
        if state in ("attached", "visible"):
            return self.exists()
        return not self.exists()

    def children(self, selector):
        value = self.kids.get(selector, [])
        if callable(value):
            value = value()
        return iter([k for k in value if k.exists()])

    def find(self, selector):
        for child in self.children(selector):
            return child
        return FakeElement(exists=False, name=f"missing {selector}")

    def frame(self):
        return self.kids.get("__frame__", FakeElement(exists=False))

    def bounding_box(self):
        return self.attrs.get("__box__")

    def evaluate(self, script, arg=None):
        self.evaluated.append(script)
        return None

    def scroll_into_view(self, timeout=0) -> bool:
        return self.exists()


MISSING = FakeElement(exists=False, name="missing")


def add_class(element: FakeElement, name: str) -> None:
    tokens = (element.attrs.get("class") or "").split()
    if name not in tokens:
        tokens.append(name)
    element.attrs["class"] = " ".join(tokens)


def remove_class(element: FakeElement, name: str) -> None:
    tokens = (element.attrs.get("class") or "").split()
    element.attrs["class"] = " ".join(t for t in tokens if t != name)


class FakeChoiceQuestion:
    """Choice question whose labels toggle selection like the real widget.

    Checkbox questions refuse selections beyond *limit*, which is how the
    platform caps a multi-select at the number of correct options.
    """

    def __init__(self, question_id, option_ids, correct=(), radio=False,
                 limit=None, reveal=False):
        self.option_ids = list(option_ids)
        self.correct = set(correct)
        self.radio = radio
        self.limit = 1 if radio else (limit or len(self.option_ids))
        self.selected: list[str] = []
        self.labels: dict[str, FakeElement] = {}

        options = []
        for oid in self.option_ids:
            label = FakeElement(attrs={"class": "mcq__item-label"},
                                on_click=lambda _el, oid=oid: self.toggle(oid),
                                name=f"label {oid}")
            option_input = FakeElement(attrs={
                sel.OPTION_ID_ATTR: oid,
                "type": "radio" if radio else "checkbox",
            })
            option_class = "mcq__item"
            if reveal and oid in self.correct:
                option_class += " is-correct"
            options.append(FakeElement(
                attrs={"class": option_class},
                kids={sel.CHOICE_OPTION_INPUT: [option_input], sel.CHOICE_OPTION_LABEL: [label]},
                name=f"option {oid}",
            ))
            self.labels[oid] = label

        self.element = FakeElement(
            attrs={sel.QUESTION_ID_ATTR: question_id, "class": "component is-question mcq"},
            kids={sel.CHOICE_OPTIONS: options},
            name=f"question {question_id}",
        )

    def toggle(self, oid):
        if self.radio:
            self.selected = [oid]
        elif oid in self.selected:
            self.selected.remove(oid)
        elif len(self.selected) < self.limit:
            self.selected.append(oid)
        for option_id, label in self.labels.items():
            if option_id in self.selected:
                add_class(label, sel.SELECTED_CLASS)
            else:
                remove_class(label, sel.SELECTED_CLASS)

    def reset(self):
        for oid in list(self.selected):
            self.selected.remove(oid)
            remove_class(self.labels[oid], sel.SELECTED_CLASS)
        remove_class(self.element, sel.CORRECT_CLASS)

    def is_right(self) -> bool:
        return set(self.selected) == self.correct

    def mark(self):
        """Render submit feedback on the question element."""
        if self.is_right():
            add_class(self.element, sel.CORRECT_CLASS)
        else:
            remove_class(self.element, sel.CORRECT_CLASS)


# ---------------------------------------------------------------------------
# Review-page markup for the snapshot backend
# ---------------------------------------------------------------------------

def choice_html(question_id, option_ids, correct=(), radio=True) -> str:
    kind = "radio" if radio else "checkbox"
    items = "".join(
        f'<div class="mcq__item{" is-correct" if oid in correct else ""}">'
        f'<input type="{kind}" {sel.OPTION_ID_ATTR}="{oid}">'
        f'<label class="mcq__item-label">Option {oid}</label></div>'
        for oid in option_ids
    )
    return (
        f'<div class="component is-question mcq" {sel.QUESTION_ID_ATTR}="{question_id}">'
        f'<div class="mcq__widget">{items}</div></div>'
    )


def category_html(question_id, pairs: dict) -> str:
    rows = "".join(f"<tr><td>{left}</td><td>{right}</td></tr>" for left, right in pairs.items())
    return (
        f'<div class="component is-question objectmatching" {sel.QUESTION_ID_ATTR}="{question_id}">'
        f'<div class="categories-container"></div>'
        f'<table class="table-feedback">{rows}</table></div>'
    )


def dropdown_html(question_id, texts: list) -> str:
    dropdowns = "".join(
        '<div class="matching__item"><button class="dropdown__btn">'
        f'<div class="dropdown__inner">{text}</div></button></div>'
        for text in texts
    )
    return (
        f'<div class="component is-question matching" {sel.QUESTION_ID_ATTR}="{question_id}">'
        f"{dropdowns}</div>"
    )


def review_page(*questions_html: str) -> SnapshotElement:
    body = "".join(questions_html)
    return SnapshotElement.from_html(f'<div class="block__container">{body}</div>')


def review_questions(*questions_html: str) -> list:
    return list(review_page(*questions_html).children(sel.QUESTIONS))


# ---------------------------------------------------------------------------
# Exam page
# ---------------------------------------------------------------------------

class FakeExamPage:
    """Scripted assessment.

    *review_passes* is what the review shows after each collection pass
    (the last entry repeats).  *attempt* is the question sequence of the
    answering attempt; submit and skip both advance it.  Only actions are
    recorded in ``actions``; reads are free.
    """

    def __init__(self, review_passes=(), attempt=(), passed=False, countdown=False,
                 retry_shown=False, disabled=()):
        self.review_passes = [list(p) for p in review_passes]
        self.attempt = list(attempt)
        self.passed = passed
        self.countdown = countdown
        self.retry_shown = retry_shown
        self.disabled = set(disabled)

        self.actions: list[str] = []
        self.mode = None
        self.pass_index = 0
        self.position = 0
        self.submitted_ids: list[str] = []
        self.skipped_ids: list[str] = []

    # reads
    def is_passed(self):
        return self.passed

    def has_retry(self):
        return self.retry_shown

    def has_countdown(self):
        return self.countdown

    def questions(self):
        if self.mode == "review" and self.review_passes:
            return self.review_passes[min(self.pass_index, len(self.review_passes) - 1)]
        if self.mode == "attempt" and self.position < len(self.attempt):
            return self.attempt[: self.position + 1]
        return []

    def _current_id(self):
        return self.attempt[self.position].get_attribute(sel.QUESTION_ID_ATTR)

    def has_pending_question(self):
        return self.mode == "attempt" and self.position < len(self.attempt)

    def is_submit_disabled(self):
        return self._current_id() in self.disabled

    def snapshot_html(self):
        return "<div>review</div>"

    # actions
    def begin(self):
        self.actions.append("begin")
        self.mode = "attempt"
        self.position = 0

    def wait_for_questions(self):
        self.actions.append("wait_for_questions")
        return True

    def retry(self):
        self.actions.append("retry")
        if self.mode == "review":
            self.pass_index += 1
        self.mode = None
        return True

    def skip_question(self):
        self.actions.append("skip_question")
        self.skipped_ids.append(self._current_id())
        self.position += 1
        return True

    def skip_all(self):
        self.actions.append("skip_all")
        self.mode = "final"

    def submit_question(self):
        self.actions.append("submit_question")
        self.submitted_ids.append(self._current_id())
        self.position += 1
        return True

    def submit_assessment(self):
        self.actions.append("submit_assessment")
        self.mode = "final"
        return True

    def open_review(self):
        self.actions.append("open_review")
        self.mode = "review"
        return True


class CheckpointRecorder:
    def __init__(self):
        self.messages: list[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def checkpoint():
    return CheckpointRecorder()
