"""Metrics tracking for a course run."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from coursebot.solver.exam_session import ExamPhase, ExamResult


@dataclass
class ExamMetrics:
    """Metrics for one exam section."""
    title: Optional[str]
    phase: str = ExamPhase.NOT_STARTED.value
    total_questions: int = 0
    answered: int = 0
    skipped: int = 0
    collection_passes: int = 0
    cached_answers: int = 0
    operator_prompted: bool = False
    elapsed_seconds: float = 0.0
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: ExamResult) -> ExamMetrics:
        return cls(
            title=result.title,
            phase=result.phase.value,
            total_questions=result.total_questions,
            answered=result.answered,
            skipped=result.skipped,
            collection_passes=result.collection_passes,
            cached_answers=result.cached_answers,
            operator_prompted=result.operator_prompted,
            elapsed_seconds=result.elapsed_seconds,
        )

    @property
    def submitted(self) -> bool:
        return self.phase == ExamPhase.FINAL_SUBMITTED.value


@dataclass
class SectionMetrics:
    """Metrics for one non-exam section."""
    title: Optional[str]
    activities: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    error: Optional[str] = None


@dataclass
class RunMetrics:
    """Aggregate metrics for a whole course run."""
    exams: list[ExamMetrics] = field(default_factory=list)
    sections: list[SectionMetrics] = field(default_factory=list)
    modules_completed: int = 0
    total_elapsed_seconds: float = 0.0
    start_time: float = 0.0

    def start(self):
        self.start_time = time.time()

    def finish(self):
        self.total_elapsed_seconds = time.time() - self.start_time

    def add_exam(self, metrics: ExamMetrics):
        self.exams.append(metrics)

    def add_section(self, metrics: SectionMetrics):
        self.sections.append(metrics)

    @property
    def exams_submitted(self) -> int:
        return sum(1 for e in self.exams if e.submitted)

    @property
    def questions_skipped(self) -> int:
        return sum(e.skipped for e in self.exams)

    @property
    def operator_prompts(self) -> int:
        return sum(1 for e in self.exams if e.operator_prompted)

    @property
    def section_errors(self) -> int:
        return (sum(1 for s in self.sections if s.error or s.failed)
                + sum(1 for e in self.exams if e.error))

    def to_dict(self) -> dict:
        return {
            "summary": {
                "modules_completed": self.modules_completed,
                "sections_completed": len(self.sections),
                "exams_seen": len(self.exams),
                "exams_submitted": self.exams_submitted,
                "questions_skipped": self.questions_skipped,
                "operator_prompts": self.operator_prompts,
                "section_errors": self.section_errors,
                "total_elapsed_seconds": round(self.total_elapsed_seconds, 1),
            },
            "exams": [
                {
                    "title": e.title,
                    "phase": e.phase,
                    "total_questions": e.total_questions,
                    "answered": e.answered,
                    "skipped": e.skipped,
                    "collection_passes": e.collection_passes,
                    "cached_answers": e.cached_answers,
                    "operator_prompted": e.operator_prompted,
                    "elapsed_seconds": round(e.elapsed_seconds, 2),
                    "error": e.error,
                }
                for e in self.exams
            ],
            "sections": [
                {
                    "title": s.title,
                    "activities": s.activities,
                    "failed": s.failed,
                    "elapsed_seconds": round(s.elapsed_seconds, 2),
                    "error": s.error,
                }
                for s in self.sections
            ],
        }

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def print_summary(self):
        d = self.to_dict()["summary"]
        print(f"\n{'='*50}")
        print("Run Summary")
        print(f"{'='*50}")
        for k, v in d.items():
            print(f"  {k}: {v}")
        print(f"{'='*50}")
