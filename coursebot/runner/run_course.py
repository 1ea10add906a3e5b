#!/usr/bin/env python3
"""Main entry point: work through every sub-module of the chosen course.

Credentials come from the environment (``.env`` is loaded first):
USERNAME, PASSWORD and COURSE_BTN_ID (the id of the course's button on the
dashboard).

Usage:
    python -m coursebot.runner.run_course                         # config/course_config.yaml
    python -m coursebot.runner.run_course --headless
    python -m coursebot.runner.run_course --pace 0.5              # halve every settle delay
    python -m coursebot.runner.run_course --config my.yaml --output results/run1.json
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

from coursebot.environment.course_env import (
    CONFIG_PATH,
    CourseEnv,
    CourseSettings,
    LoginError,
    is_numbered_header,
    load_config,
)
from coursebot.environment.element import pause
from coursebot.environment.operator import wait_for_operator
from coursebot.runner.metrics import ExamMetrics, RunMetrics, SectionMetrics
from coursebot.solver import (
    ActivityDispatcher,
    ActivityHandlers,
    AnswerCache,
    ExamError,
    ExamPage,
    ExamSession,
    ExamSettings,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

REQUIRED_ENV = ("USERNAME", "PASSWORD", "COURSE_BTN_ID")


def read_credentials() -> dict[str, str]:
    """Required environment values; exits with status 1 if any is missing."""
    missing = [key for key in REQUIRED_ENV if not os.environ.get(key)]
    if missing:
        for key in missing:
            logger.error("Missing environment variable: %s", key)
        sys.exit(1)
    return {key: os.environ[key] for key in REQUIRED_ENV}


class CourseRunner:
    """Module/section loop over an already opened course.

    One :class:`AnswerCache` lives for the whole run and is shared by every
    exam session, so answers learned in one exam carry over to the next.
    """

    def __init__(self, env, exam_settings: ExamSettings | None = None,
                 checkpoint=wait_for_operator, max_modules: int | None = None):
        self.env = env
        self.exam_settings = exam_settings or ExamSettings()
        self.checkpoint = checkpoint
        self.max_modules = max_modules
        self.cache = AnswerCache()
        self.metrics = RunMetrics()
        self._dispatcher: ActivityDispatcher | None = None

    @property
    def dispatcher(self) -> ActivityDispatcher:
        if self._dispatcher is None:
            handlers = ActivityHandlers(popup_root=self.env.module_root(),
                                        pace=self.exam_settings.pace)
            self._dispatcher = ActivityDispatcher(handlers)
        return self._dispatcher

    def _pause(self, seconds: float) -> None:
        pause(seconds, self.exam_settings.pace)

    def incomplete_sections(self) -> list:
        pending = []
        for section in self.env.sections():
            if self.env.is_section_completed(section):
                continue
            if is_numbered_header(self.env.section_header_text(section)):
                continue
            pending.append(section)
        return pending

    def run_exam(self, section, title: str | None) -> None:
        settings = self.exam_settings
        page = ExamPage(section, settings.question_timeout_ms, settings.final_screen_timeout_ms)
        session = ExamSession(page, self.cache, self.checkpoint, settings, title=title)
        try:
            result = session.run()
        except ExamError as e:
            logger.error("Exam %r aborted: %s", title, e)
            self.metrics.add_exam(ExamMetrics(title=title, phase=session.phase.value, error=str(e)))
            return
        self.metrics.add_exam(ExamMetrics.from_result(result))

    def run_activities(self, section, title: str | None) -> None:
        t0 = time.time()
        self.env.scroll_through(section)
        results = self.dispatcher.run(section)
        self.metrics.add_section(SectionMetrics(
            title=title,
            activities=[r.kind.value for r in results],
            failed=[r.kind.value for r in results if not r.success],
            elapsed_seconds=time.time() - t0,
        ))

    def complete_section(self, section) -> None:
        title = self.env.section_header_text(section)
        if ExamPage.is_exam_section(section):
            self.run_exam(section, title)
        else:
            self.run_activities(section, title)

    def complete_module(self) -> None:
        focused = False
        for section in self.incomplete_sections():
            title = self.env.section_header_text(section)
            logger.info("Section: %s", title)
            try:
                # The first click moves keyboard focus into the content frame.
                if not focused:
                    section.click()
                    focused = True
                self.complete_section(section)
            except Exception as e:
                logger.error("Error completing section %r: %s", title, e, exc_info=True)
                self.metrics.add_section(SectionMetrics(title=title, error=str(e)))

        self.env.press("End")
        self._pause(0.15)

    def run(self) -> RunMetrics:
        self.metrics.start()
        module_count = 0
        while True:
            module_count += 1
            logger.info("Module %d", module_count)

            self.complete_module()
            self.metrics.modules_completed += 1
            self.env.press("End")
            self._pause(0.2)

            if self.max_modules and module_count >= self.max_modules:
                logger.info("Reached max_modules=%d, stopping", self.max_modules)
                break
            if not self.env.go_to_next_submodule():
                logger.info("All modules completed!")
                break

        self.metrics.finish()
        return self.metrics


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Work through a course, exams included")
    parser.add_argument("--config", default=str(CONFIG_PATH), help="YAML config path")
    parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    parser.add_argument("--output", default=None, help="Metrics output path")
    parser.add_argument("--pace", type=float, default=None,
                        help="Multiplier for fixed UI delays (0 disables them)")
    args = parser.parse_args(argv)

    credentials = read_credentials()
    config = load_config(args.config)
    run_cfg = config.setdefault("run", {})
    if args.pace is not None:
        run_cfg["pace"] = args.pace
    if args.headless:
        config.setdefault("course", {})["headless"] = True
    output_path = args.output or run_cfg.get("output") or str(PROJECT_ROOT / "results" / "metrics.json")

    exit_code = 0
    with CourseEnv(CourseSettings.from_config(config)) as env:
        runner = CourseRunner(
            env,
            ExamSettings.from_config(config),
            max_modules=run_cfg.get("max_modules"),
        )
        try:
            env.login(credentials["USERNAME"], credentials["PASSWORD"])
            if not env.open_course(credentials["COURSE_BTN_ID"]):
                wait_for_operator("Could not open the course automatically. "
                                  "Navigate to it in the browser, then press Enter.")
            runner.run()
        except LoginError as e:
            logger.error("%s", e)
            exit_code = 1
        except Exception as e:
            logger.error("Course run error: %s", e, exc_info=True)

        runner.metrics.save(output_path)
        runner.metrics.print_summary()
        if not exit_code:
            wait_for_operator("Course run finished. Press Enter to close the browser.")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
