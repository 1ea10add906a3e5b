#!/usr/bin/env python3
"""Read the answer key out of saved exam review pages.

Review snapshots are written by the exam session when ``run.snapshot_dir``
is set.  This runs the same classifier and extractors over them, offline.

Usage:
    python scripts/extract_answers.py results/snapshots/*.html
    python scripts/extract_answers.py review.html --output answers.json
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from coursebot.environment import selectors as sel
from coursebot.environment.snapshot import SnapshotElement
from coursebot.solver.answers import AnswerCache, answer_to_dict
from coursebot.solver.question_classifier import classify_question, question_identity
from coursebot.solver.question_handlers import extract_answer

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def extract_from_file(path: Path, cache: AnswerCache) -> dict:
    root = SnapshotElement.from_file(path)
    stats = {"questions": 0, "unrecognised": 0, "new_answers": 0}
    for question in root.children(sel.QUESTIONS):
        stats["questions"] += 1
        if classify_question(question) is None:
            stats["unrecognised"] += 1
            logger.info("%s: unrecognised question %s", path.name, question_identity(question))
            continue
        if cache.merge(extract_answer(question, pace=0)):
            stats["new_answers"] += 1
    return stats


def main():
    parser = argparse.ArgumentParser(description="Extract answers from saved review pages")
    parser.add_argument("paths", nargs="+", type=Path)
    parser.add_argument("--output", default=None, help="Write answers as JSON here")
    args = parser.parse_args()

    cache = AnswerCache()
    for path in args.paths:
        stats = extract_from_file(path, cache)
        print(f"{path}: {stats['questions']} questions, {stats['new_answers']} new answers, "
              f"{stats['unrecognised']} unrecognised")

    answers = {
        answer.question_id: answer_to_dict(answer) for answer in cache
    }
    print(f"\n{len(answers)} answers total")

    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump(answers, f, indent=2)
        print(f"Saved to {args.output}")
    else:
        print(json.dumps(answers, indent=2))


if __name__ == "__main__":
    main()
