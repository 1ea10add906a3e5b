"""Selector strings and attribute names for the course player markup.

Everything markup-specific lives here so the solver modules only refer to
names.  Question, exam and activity selectors are plain CSS so they
evaluate the same way in Playwright and in the BeautifulSoup snapshot
backend; the login selectors use Playwright's text pseudo-classes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Course shell / navigation
# ---------------------------------------------------------------------------

MODULE_FRAME = "iframe[aria-label='Course content']"
SECTIONS = ".article__container div.article"
SECTION_HEADER = (
    ".component__header .component__content h1, "
    ".article__header .article__title-inner, "
    ".component__widget .module-title"
)
NEXT_BUTTON = "div.fullscreen button:has(.icon-right-arrow)"
PROGRESS_CHECK_TEXT = "Checking for course progress.."
NOTIFY_CLOSE_BUTTON = ".notify__popup button.notify__close-btn"

LOGIN_BUTTON = "button:has-text('Login')"
LOGIN_USERNAME = "input#username"
LOGIN_PASSWORD = "input#password"
LOGIN_SUBMIT = "input#kc-login[type='submit']"
LOGIN_ALERT = "[role='alert'] .alert__message"

# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

QUESTION_ID_ATTR = "data-socialgoodpulse-id"
QUESTIONS = "div.block__container div.component.is-question"

SELECTED_CLASS = "is-selected"
CORRECT_CLASS = "is-correct"
DISABLED_CLASS = "is-disabled"

# Class tokens on the question element, per question kind.
CHOICE_CLASS_MARKERS = ("mcq",)
CATEGORY_CLASS_MARKERS = ("objectmatching",)
DROPDOWN_CLASS_MARKERS = ("matching", "matchinggraphic")

# Child widgets, used when no class token matched.
CHOICE_WIDGET = "div.mcq__widget"
CATEGORY_WIDGET = "div.categories-container"
DROPDOWN_WIDGET = "matching-dropdown-view, .matching__item"

CHOICE_OPTIONS = "div.mcq__widget .mcq__item"
CHOICE_OPTION_INPUT = "input"
CHOICE_OPTION_LABEL = "label"
OPTION_ID_ATTR = "data-socialgoodpulse-index"

CATEGORY_LEFT_ITEMS = "div.categories-container .item button"
CATEGORY_RIGHT_ITEMS = "div.options-container .item button"
CATEGORY_ITEM_TEXT = ".category-item-text"
CATEGORY_SHARED_ID_ATTRS = ("data-id", "data-itemindex")
FEEDBACK_ROWS = ".table-feedback tr"
FEEDBACK_CELLS = "td"

DROPDOWNS = DROPDOWN_WIDGET
DROPDOWN_BUTTON = "button.dropdown__btn"
DROPDOWN_BUTTON_TEXT = "button.dropdown__btn div.dropdown__inner"
DROPDOWN_OPTIONS = "ul.dropdown__list li.dropdown__item"
SHOW_CORRECT_BUTTON = "button.show-answer-on-submit"

# ---------------------------------------------------------------------------
# Exams
# ---------------------------------------------------------------------------

EXAM_HINTS = "div.secure-one-question__widget, div.assesment-1q"
EXAM_PASSED_TEXT = "you have passed the exam"
EXAM_START_BUTTON = ".start-button[role='button']"
EXAM_RETRY_BUTTON = "button.assessmentResults__retry-btn"
EXAM_REVIEW_BUTTON = "button.review-assessment-button"
EXAM_COUNTDOWN = ".secure-toolbar-container .abs__timer .timer-clock b"
EXAM_FINAL_SCREEN = "div.component .final-screen-inner .assessment-status"
EXAM_CONFIRM_CHECKBOX = "input[type='checkbox']#confirm-exam"
EXAM_FINAL_SUBMIT = "button.adaptive-assessment-submit"
QUESTION_SUBMIT_BUTTON = "div.abs__btn-arrow-container button.submit-button"

LABELS = "label"
SKIP_QUESTION = "label[for='skip-question']"
SKIP_QUESTION_TEXT = "Skip Question"
SKIP_ALL = "label[for='skip-all-question'], button.abs_skip-all-button"
SKIP_ALL_TEXT = "Skip All"

# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------

BUTTONS = "button"

SINGLE_SUBMIT_CLASS = "assessmentsinglesubmit"
ACTIVITY_SUBMIT = ".btn__container button.btn__action[aria-label='Submit']"
ACTIVITY_SUBMIT_ANYWAY = ".btn__container button.submit__anyway-checkbox-container"
ACTIVITY_RESET = ".btn__container button.btn__action[aria-label='Reset']"

VIDEO_IFRAMES = "div.brightcove__inner iframe"
VIDEO_PLAY = "button.vjs-big-play-button"
VIDEO_PROGRESS = "div.vjs-progress-holder.vjs-slider"
VIDEO_PAUSED = ".vjs-paused video"
VIDEO_ENDED = ".vjs-ended video"

CONTENT_LINKS = "div.content-links-widget"
CONTENT_LINK_DIALOG = "button.open-dialog.btn__action"
CONTENT_LINK_ANCHOR = "a.btn__action"

ACCORDION_BUTTONS = "div.component.accordion button.accordion__item-btn"

TAB_WIDGETS = "div.component__widget.tab__widget"
TAB_BUTTONS = "button.tabs__nav-item-btn"

CHECK_CONTAINERS = ".component__widget .btn__container"
CHECK_TEXT = "Check"
SHOW_ME_TEXT = "Show Me"
