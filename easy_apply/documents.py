"""Documents offered to upload slots: resume (optionally tailored) and cover letter."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Optional

from easy_apply.exceptions import AnswerUnavailableError
from easy_apply.models import Job
from llm.cover_letter_generator import save_cover_letter
from llm.exceptions import CoverLetterSaveError

if TYPE_CHECKING:
    from config import AppConfig

logger = logging.getLogger(__name__)

URN_TYPE_RX = re.compile(r"upload-([a-z-]+)-urn")

COVER_LETTER_ATTRIBUTE_KEYWORDS = (
    "cover", "coverletter", "cover-letter",
    "lettre", "motivation",
    "anschreiben", "bewerbung",
    "carta", "presentacion",
    "lettera", "presentazione",
    "carta-apresentacao",
)
COVER_LETTER_TEXT_KEYWORDS = (
    "cover letter", "coverletter",
    "lettre de motivation", "lettre motivation",
    "anschreiben", "motivationsschreiben",
    "carta de presentación", "carta de presentacion", "carta presentación",
    "lettera di presentazione",
    "carta de apresentação",
)
RESUME_TEXT_RX = re.compile(r"\b(resume|résumé|cv|lebenslauf|curriculum)\b")


class DocumentType(str, Enum):
    RESUME = "resume"
    COVER_LETTER = "cover_letter"


@dataclass
class DocumentDetection:
    document_type: DocumentType
    detected_by: str


def detect_document_type(
    element_id: str = "",
    attributes: str = "",
    question: str = "",
) -> DocumentDetection:
    """
    Decide whether an upload slot wants a resume or a cover letter.

    Order: the URN embedded in the file input id, then id/name/aria-label
    keywords, then the question text. Defaults to resume.

    Args:
        element_id: id attribute of the file input.
        attributes: id, name and aria-label joined by spaces.
        question: The slot's question/label text.
    """
    input_id = (element_id or "").lower()
    match = URN_TYPE_RX.search(input_id)
    if match:
        doc_type = match.group(1)
        if "cover" in doc_type or "letter" in doc_type:
            return DocumentDetection(DocumentType.COVER_LETTER, "urn-pattern")
        if "resume" in doc_type or "cv" in doc_type:
            return DocumentDetection(DocumentType.RESUME, "urn-pattern")
    if "jobs-document-upload-file-input-urn" in input_id and "upload-resume" not in input_id:
        return DocumentDetection(DocumentType.COVER_LETTER, "urn-pattern")

    combined = f"{input_id} {(attributes or '').lower()}"
    if any(keyword in combined for keyword in COVER_LETTER_ATTRIBUTE_KEYWORDS):
        return DocumentDetection(DocumentType.COVER_LETTER, "attribute")

    lowered_question = (question or "").lower()
    if any(keyword in lowered_question for keyword in COVER_LETTER_TEXT_KEYWORDS):
        return DocumentDetection(DocumentType.COVER_LETTER, "question-text")
    if RESUME_TEXT_RX.search(lowered_question):
        return DocumentDetection(DocumentType.RESUME, "question-text")

    return DocumentDetection(DocumentType.RESUME, "default")


class PendingResume:
    """
    A background resume-tailoring task joined exactly once.

    ``consume`` awaits the task the first time and caches the outcome; later
    calls return the cached path. A failed or cancelled task yields the
    fallback (original) resume.
    """

    def __init__(self, task: "asyncio.Task[Path]", fallback: Optional[Path]):
        self._task = task
        self._fallback = fallback
        self._consumed = False
        self._result: Optional[Path] = None

    @classmethod
    def start(cls, coro: Awaitable[Path], fallback: Optional[Path]) -> "PendingResume":
        return cls(asyncio.ensure_future(coro), fallback)

    @property
    def consumed(self) -> bool:
        return self._consumed

    async def consume(self) -> Optional[Path]:
        if self._consumed:
            return self._result
        self._consumed = True
        try:
            self._result = await self._task
            logger.info(f"[DOCS] Using tailored resume: {self._result}")
        except asyncio.CancelledError:
            logger.warning("[DOCS] Resume tailoring was cancelled, using original resume")
            self._result = self._fallback
        except Exception as e:
            logger.warning(f"[DOCS] Resume tailoring failed ({e}), using original resume")
            self._result = self._fallback
        return self._result

    async def discard(self) -> None:
        """Cancel the task if nobody consumed it."""
        if self._consumed:
            return
        self._consumed = True
        self._result = self._fallback
        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except (asyncio.CancelledError, Exception) as e:
            logger.debug(f"[DOCS] Discarded tailoring task ended with: {type(e).__name__}")


class DocumentProvider:
    """Resolves file paths for upload slots during one application."""

    def __init__(self, app_config: "AppConfig", answerer=None):
        self.app_config = app_config
        self.answerer = answerer
        self.base_resume: Optional[Path] = app_config.easy_apply.resume_path
        self.cover_letter: Optional[Path] = app_config.easy_apply.cover_letter_path
        self.pending_resume: Optional[PendingResume] = None
        self.job: Optional[Job] = None
        self._generated: list = []
        self._cover_failed = False
        self._job_cover: Optional[Path] = None

    def begin_job(self, job: Job, pending_resume: Optional[PendingResume] = None) -> None:
        self.job = job
        self.pending_resume = pending_resume
        self._cover_failed = False
        self._job_cover = None

    @staticmethod
    def _existing(path: Optional[Path]) -> Optional[Path]:
        if path and Path(path).exists():
            return Path(path)
        if path:
            logger.warning(f"[DOCS] Configured document not found: {path}")
        return None

    async def resume_path(self) -> Optional[Path]:
        if self.pending_resume is not None:
            tailored = await self.pending_resume.consume()
            if tailored:
                return self._existing(tailored)
        return self._existing(self.base_resume)

    async def cover_letter_path(self) -> Optional[Path]:
        """Configured cover letter, or one generated on demand for the current job."""
        configured = self._existing(self.cover_letter)
        if configured:
            return configured
        if self._job_cover is not None:
            return self._job_cover
        if self.answerer is None or self.job is None or self._cover_failed:
            return None
        try:
            text = await self.answerer.write_cover_letter(self.job)
            saved = await asyncio.to_thread(
                save_cover_letter, self.job, text, str(self.app_config.easy_apply.generated_documents_dir)
            )
        except (AnswerUnavailableError, CoverLetterSaveError) as e:
            # Do not retry generation for every cover-letter slot of this job
            self._cover_failed = True
            logger.error(f"[DOCS] Could not generate cover letter: {e}")
            return None
        path = Path(saved)
        self._generated.append(path)
        self._job_cover = path
        return path

    def track_generated(self, path: Path) -> None:
        self._generated.append(Path(path))

    async def end_job(self) -> None:
        """Drop the pending tailoring task and delete generated files if configured."""
        if self.pending_resume is not None:
            await self.pending_resume.discard()
            self.pending_resume = None
        if self.app_config.easy_apply.delete_generated_after_use:
            for path in self._generated:
                try:
                    path.unlink(missing_ok=True)
                    logger.debug(f"[DOCS] Removed generated document: {path}")
                except OSError as e:
                    logger.warning(f"[DOCS] Failed to delete generated document {path}: {e}")
        self._generated = []
        self.job = None
