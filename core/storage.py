"""
CSV persistence for learned answers and per-job outcomes.

answers file:     "questionType","questionText","answer"
outcome buckets:  <output_dir>/{success,failed,skipped}.csv with
                  "company","title","link","location"
"""
import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from easy_apply.models import AnswerRecord, Job, JobOutcome

logger = logging.getLogger(__name__)

PLACEHOLDER_ANSWERS = {"option", "n/a", "none", "null"}
PLACEHOLDER_PREFIXES = ("select", "choose")


def is_placeholder_answer(answer: Optional[str]) -> bool:
    """True for values that are UI placeholders rather than real answers."""
    if not answer or len(answer.strip()) <= 2:
        return True
    lowered = answer.strip().lower()
    return lowered.startswith(PLACEHOLDER_PREFIXES) or lowered in PLACEHOLDER_ANSWERS


def _write_rows(path: Path, rows: List[list], mode: str = "a"):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, mode, newline="", encoding="utf-8") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL)
        writer.writerows(rows)


def load_saved_answers(path: Path) -> List[AnswerRecord]:
    """
    Load previously saved answers, dropping placeholder values.

    A missing file is not an error; the run simply starts with an empty memory.
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No saved answers file found: {path}")
        return []

    answers = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        for row in csv.reader(f):
            if len(row) < 3:
                continue
            category, question, answer = (part.strip() for part in row[:3])
            if is_placeholder_answer(answer):
                continue
            answers.append(AnswerRecord(category=category, question=question, answer=answer))

    logger.info(f"Loaded {len(answers)} saved answers from {path}")
    return answers


def save_answer(
    path: Path,
    existing: List[AnswerRecord],
    category: str,
    question: str,
    answer: str,
) -> bool:
    """
    Append an answer unless one already exists for the same question.

    Args:
        path: Answers CSV file.
        existing: Answers already persisted (checked case-insensitively).
        category: Field category of the question.
        question: Question text.
        answer: Answer text.

    Returns:
        True if a row was written, False on duplicate.
    """
    key = (category.lower(), question.lower())
    if any((a.category.lower(), a.question.lower()) == key for a in existing):
        return False
    _write_rows(Path(path), [[category, question, answer]])
    existing.append(AnswerRecord(category=category, question=question, answer=answer))
    return True


def replace_answer(
    path: Path,
    existing: List[AnswerRecord],
    category: str,
    question: str,
    answer: str,
) -> None:
    """
    Persist ``answer`` for the question, overwriting a previous value.

    The file is rewritten through a temporary file so a crash never leaves a
    half-written answers file behind.
    """
    key = (category.lower(), question.lower())
    kept = [a for a in existing if (a.category.lower(), a.question.lower()) != key]
    kept.append(AnswerRecord(category=category, question=question, answer=answer))
    existing[:] = kept

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".answers-", suffix=".csv")
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_ALL)
            writer.writerows([[a.category, a.question, a.answer] for a in kept])
        os.replace(tmp_name, path)
    except Exception:
        os.unlink(tmp_name)
        raise


def append_job_result(path: Path, company: str, title: str, link: str, location: str) -> None:
    """Append one job to an outcome CSV."""
    _write_rows(Path(path), [[company, title, link, location]])


class RunStorage:
    """Binds the CSV helpers to the directories of one run."""

    def __init__(self, output_dir: Path, answers_file: Path):
        self.output_dir = Path(output_dir)
        self.answers_file = Path(answers_file)
        self.saved_answers: List[AnswerRecord] = []

    def load_answers(self) -> List[AnswerRecord]:
        self.saved_answers = load_saved_answers(self.answers_file)
        return list(self.saved_answers)

    def persist_answer(self, record: AnswerRecord) -> None:
        """Save a new answer or overwrite a stale one (last write wins)."""
        if is_placeholder_answer(record.answer):
            return
        if save_answer(self.answers_file, self.saved_answers, record.category, record.question, record.answer):
            return
        key = (record.category.lower(), record.question.lower())
        current = next(
            (a for a in self.saved_answers if (a.category.lower(), a.question.lower()) == key),
            None,
        )
        if current is not None and current.answer != record.answer:
            replace_answer(self.answers_file, self.saved_answers, record.category, record.question, record.answer)

    def bucket_path(self, outcome: JobOutcome) -> Path:
        return self.output_dir / f"{outcome.value}.csv"

    def record_job(self, outcome: JobOutcome, job: Job) -> None:
        append_job_result(self.bucket_path(outcome), job.company, job.title, job.link, job.location)
        logger.debug(f"Recorded {outcome.value}: {job.title} @ {job.company}")
