import pytest

from coursebot.environment import selectors as sel
from coursebot.solver.answers import (
    AnswerTypeMismatch,
    CategoryMatchAnswer,
    ChoiceAnswer,
    DropdownMatchAnswer,
)
from coursebot.solver.question_handlers import (
    CategoryMatchHandler,
    ChoiceHandler,
    DropdownMatchHandler,
    apply_answer,
    build_handler,
    extract_answer,
)

from conftest import (
    FakeChoiceQuestion,
    FakeElement,
    category_html,
    choice_html,
    dropdown_html,
    review_questions,
)


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("correct_index", [0, 1, 3])
def test_single_choice_brute_force_takes_at_most_i_plus_one_guesses(correct_index):
    ids = ["0", "1", "2", "3"]
    fake = FakeChoiceQuestion("q1", ids, correct=[ids[correct_index]], radio=True)
    handler = ChoiceHandler(fake.element, pace=0)

    result = handler.brute_force_solve(oracle=fake.is_right, reset=fake.reset)

    assert result.success
    assert result.answer == ChoiceAnswer("q1", (ids[correct_index],))
    assert result.oracle_calls == correct_index + 1


def test_multi_choice_brute_force_probes_selection_limit():
    fake = FakeChoiceQuestion("q2", ["a", "b", "c"], correct=["b", "c"], limit=2)
    handler = ChoiceHandler(fake.element, pace=0)

    assert handler.max_selectable(reset=fake.reset) == 2
    assert fake.selected == []

    result = handler.brute_force_solve(oracle=fake.is_right, reset=fake.reset)
    assert result.success
    assert result.answer.options == ("b", "c")
    # ab, ac, bc
    assert result.oracle_calls == 3


def test_brute_force_exhausted_returns_empty_answer():
    fake = FakeChoiceQuestion("q3", ["a", "b"], correct=["z"], radio=True)
    result = ChoiceHandler(fake.element, pace=0).brute_force_solve(
        oracle=fake.is_right, reset=fake.reset)

    assert not result.success
    assert result.answer.is_empty()
    assert result.oracle_calls == 2
    assert fake.selected == []


def test_brute_force_without_reset_makes_one_attempt():
    fake = FakeChoiceQuestion("q4", ["a", "b", "c"], correct=["a", "b", "c"])
    result = ChoiceHandler(fake.element, pace=0).brute_force_solve(
        oracle=fake.is_right, reset=None)

    assert result.success
    assert result.oracle_calls == 1
    assert result.answer.options == ("a", "b", "c")


def test_brute_force_without_identity_does_nothing():
    fake = FakeChoiceQuestion("q5", ["a"], correct=["a"], radio=True)
    del fake.element.attrs[sel.QUESTION_ID_ATTR]
    calls = []
    result = ChoiceHandler(fake.element, pace=0).brute_force_solve(
        oracle=lambda: calls.append(1) or True, reset=fake.reset)
    assert result.answer is None
    assert not result.success
    assert calls == []


def test_choice_extract_and_apply():
    revealed = FakeChoiceQuestion("q6", ["0", "1", "2"], correct=["0", "2"], reveal=True)
    answer = ChoiceHandler(revealed.element).extract_correct_answer()
    assert answer == ChoiceAnswer("q6", ("0", "2"))

    fresh = FakeChoiceQuestion("q6", ["2", "1", "0"], correct=["0", "2"])
    ChoiceHandler(fresh.element, pace=0).apply(answer)
    assert sorted(fresh.selected) == ["0", "2"]
    assert fresh.is_right()


def test_choice_extract_without_marked_options_is_none():
    fake = FakeChoiceQuestion("q7", ["0", "1"], correct=["1"])
    assert ChoiceHandler(fake.element).extract_correct_answer() is None


def test_apply_rejects_other_answer_kinds():
    fake = FakeChoiceQuestion("q8", ["0"], correct=["0"])
    with pytest.raises(AnswerTypeMismatch):
        ChoiceHandler(fake.element).apply(DropdownMatchAnswer("q8", {0: "x"}))
    with pytest.raises(AnswerTypeMismatch):
        apply_answer(fake.element, CategoryMatchAnswer("q8", {"a": "b"}), pace=0)


def test_apply_answer_on_unrecognised_question_returns_false():
    unknown = FakeElement(attrs={"class": "component text", sel.QUESTION_ID_ATTR: "x"})
    assert apply_answer(unknown, ChoiceAnswer("x", ("1",)), pace=0) is False
    assert build_handler(unknown) is None
    assert extract_answer(unknown) is None


# ---------------------------------------------------------------------------
# Category match
# ---------------------------------------------------------------------------

def _item(text, log, **attrs):
    label = FakeElement(text=text)
    return FakeElement(attrs=attrs, kids={sel.CATEGORY_ITEM_TEXT: [label]},
                       on_click=lambda _el: log.append(text), name=text)


def _category_question(lefts, rights, rows=(), **extra_kids):
    log = []
    kids = {
        sel.CATEGORY_LEFT_ITEMS: [_item(t, log, **a) for t, a in lefts],
        sel.CATEGORY_RIGHT_ITEMS: [_item(t, log, **a) for t, a in rights],
        sel.FEEDBACK_ROWS: [
            FakeElement(kids={sel.FEEDBACK_CELLS: [FakeElement(text=l), FakeElement(text=r)]})
            for l, r in rows
        ],
    }
    kids.update(extra_kids)
    question = FakeElement(
        attrs={"class": "component is-question objectmatching", sel.QUESTION_ID_ATTR: "m1"},
        kids=kids,
    )
    return question, log


def test_category_apply_clicks_pairs_and_skips_unknown_items():
    question, log = _category_question(
        lefts=[("HTTP", {}), ("TCP", {}), ("ARP", {})],
        rights=[("Transport", {}), ("Application", {})],
    )
    answer = CategoryMatchAnswer("m1", {"HTTP": "Application", "TCP": "Transport", "ARP": "Link"})
    CategoryMatchHandler(question, pace=0).apply(answer)
    assert log == ["HTTP", "Application", "TCP", "Transport"]


def test_category_pseudo_answer_pairs_by_shared_attribute():
    question, log = _category_question(
        lefts=[("HTTP", {"data-id": "1"}), ("TCP", {"data-id": "2"})],
        rights=[("Transport", {"data-id": "2"}), ("Application", {"data-id": "1"})],
    )
    applied = CategoryMatchHandler(question, pace=0).pseudo_answer()
    assert applied == {"HTTP": "Application", "TCP": "Transport"}
    assert log == ["HTTP", "Application", "TCP", "Transport"]


def test_category_pseudo_answer_pairs_positionally_without_attribute():
    question, _ = _category_question(
        lefts=[("HTTP", {}), ("TCP", {})],
        rights=[("Transport", {}), ("Application", {})],
    )
    applied = CategoryMatchHandler(question, pace=0).pseudo_answer()
    assert applied == {"HTTP": "Transport", "TCP": "Application"}


def test_category_brute_force_prefers_feedback_table():
    question, _ = _category_question(
        lefts=[("HTTP", {})], rights=[("Transport", {})],
        rows=[("HTTP", "Application")],
    )
    result = CategoryMatchHandler(question, pace=0).brute_force_solve(
        oracle=lambda: False, reset=None)
    assert result.success
    assert result.oracle_calls == 1
    assert result.answer.pairs == {"HTTP": "Application"}


def test_category_brute_force_keeps_accepted_pseudo_answer():
    question, _ = _category_question(lefts=[("HTTP", {})], rights=[("Application", {})])
    result = CategoryMatchHandler(question, pace=0).brute_force_solve(
        oracle=lambda: True, reset=None)
    assert result.success
    assert result.answer.pairs == {"HTTP": "Application"}


def test_category_brute_force_rejected_without_feedback_is_empty():
    question, _ = _category_question(lefts=[("HTTP", {})], rights=[("Transport", {})])
    result = CategoryMatchHandler(question, pace=0).brute_force_solve(
        oracle=lambda: False, reset=None)
    assert not result.success
    assert result.answer.is_empty()


# ---------------------------------------------------------------------------
# Dropdown match
# ---------------------------------------------------------------------------

class FakeDropdown:
    def __init__(self, options):
        self.value = None
        self.inner = FakeElement(text="Select", exists=lambda: True)
        self.options = [
            FakeElement(text=text, on_click=lambda _el, t=text: self.choose(t), name=text)
            for text in options
        ]
        self.element = FakeElement(kids={
            sel.DROPDOWN_BUTTON: [FakeElement(name="dropdown button")],
            sel.DROPDOWN_BUTTON_TEXT: [self.inner],
            sel.DROPDOWN_OPTIONS: self.options,
        })

    def choose(self, text):
        self.value = text
        self.inner.text = text


def _dropdown_question(dropdowns, show_correct=None):
    kids = {sel.DROPDOWNS: [d.element for d in dropdowns]}
    if show_correct is not None:
        kids[sel.SHOW_CORRECT_BUTTON] = [show_correct]
    return FakeElement(
        attrs={"class": "component is-question matching", sel.QUESTION_ID_ATTR: "d1"},
        kids=kids,
    )


def test_dropdown_apply_selects_by_text():
    dropdowns = [FakeDropdown(["TCP", "UDP"]), FakeDropdown(["TCP", "UDP"])]
    question = _dropdown_question(dropdowns)
    DropdownMatchHandler(question, pace=0).apply(DropdownMatchAnswer("d1", {0: "UDP", 1: "TCP"}))
    assert [d.value for d in dropdowns] == ["UDP", "TCP"]
    assert dropdowns[0].options[1].clicks == ["js_click"]


def test_dropdown_extract_reads_button_text():
    dropdowns = [FakeDropdown(["TCP"]), FakeDropdown(["UDP"])]
    dropdowns[0].choose("TCP")
    dropdowns[1].inner.text = "  "
    answer = DropdownMatchHandler(_dropdown_question(dropdowns)).extract_correct_answer()
    assert answer == DropdownMatchAnswer("d1", {0: "TCP"})


def test_dropdown_brute_force_uses_revealed_answer():
    dropdowns = [FakeDropdown(["TCP", "UDP"])]
    correct = {"value": "UDP"}

    def reveal(_el):
        dropdowns[0].choose(correct["value"])

    question = _dropdown_question(dropdowns, show_correct=FakeElement(on_click=reveal))
    resets = []
    result = DropdownMatchHandler(question, pace=0).brute_force_solve(
        oracle=lambda: dropdowns[0].value == "UDP",
        reset=lambda: resets.append(1),
    )
    assert result.success
    assert result.answer == DropdownMatchAnswer("d1", {0: "UDP"})
    assert result.oracle_calls == 2
    assert resets == [1]


def test_dropdown_brute_force_without_show_answer_is_empty():
    dropdowns = [FakeDropdown(["TCP", "UDP"])]
    result = DropdownMatchHandler(_dropdown_question(dropdowns), pace=0).brute_force_solve(
        oracle=lambda: False, reset=None)
    assert not result.success
    assert result.answer.is_empty()


# ---------------------------------------------------------------------------
# Extraction from saved markup
# ---------------------------------------------------------------------------

def test_extract_from_review_markup():
    choice, category, dropdown = review_questions(
        choice_html("c1", ["0", "1", "2"], correct=["1", "2"], radio=False),
        category_html("m1", {"HTTP": "Application", "TCP": "Transport"}),
        dropdown_html("d1", ["Router", "Switch"]),
    )
    assert extract_answer(choice) == ChoiceAnswer("c1", ("1", "2"))
    assert extract_answer(category) == CategoryMatchAnswer(
        "m1", {"HTTP": "Application", "TCP": "Transport"})
    assert extract_answer(dropdown) == DropdownMatchAnswer("d1", {0: "Router", 1: "Switch"})
