"""
Base interface for field strategies.

A strategy recognizes one kind of form group (``can_handle``) and fills it
(``handle``). Answers are resolved in a fixed order: answer memory, then the
category's profile heuristics, then the AI answerer. After an answer is
applied the group's inline error is checked; a visible error triggers one
corrective AI query, and only the value that passed is remembered.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from config import AppConfig
from easy_apply.answer_memory import AnswerMemory
from easy_apply.documents import DocumentProvider
from easy_apply.exceptions import AnswerUnavailableError, FieldValidationError
from easy_apply.field_utils import extract_field_error, extract_question_text, raise_if_browser_closed
from easy_apply.models import FieldCategory
from easy_apply.normalizer import QuestionNormalizer
from easy_apply.smart_matcher import SmartFieldMatcher

logger = logging.getLogger(__name__)


class Answerer(Protocol):
    """AI answering capability consumed by the strategies."""

    profile: Any

    async def answer_textual(self, question: str) -> str: ...

    async def answer_textual_with_retry(self, question: str, previous_answer: str, error_text: str) -> str: ...

    async def answer_numeric(self, question: str, default: float = 3) -> float: ...

    async def answer_numeric_with_retry(
        self, question: str, previous_answer: str, error_text: str, default: float = 3
    ) -> float: ...

    async def answer_from_options(self, question: str, options: List[str]) -> str: ...

    async def answer_from_options_with_retry(
        self, question: str, options: List[str], previous_answer: str, error_text: str
    ) -> str: ...

    async def answer_checkbox_selection(self, question: str, options: List[str]) -> List[int]: ...

    def set_job_context(self, context: Dict[str, Any]) -> None: ...

    async def tailor_resume_to_job(self, job_description: str, base_resume: str) -> str: ...


@dataclass
class StrategyContext:
    """Collaborators shared by all strategies of one session."""

    page: Page
    answerer: Answerer
    memory: AnswerMemory
    app_config: AppConfig
    normalizer: QuestionNormalizer
    matcher: SmartFieldMatcher
    documents: Optional[DocumentProvider] = None


ApplyFn = Callable[[str], Awaitable[None]]
RetryFn = Callable[[str, str], Awaitable[str]]


class FieldStrategy(ABC):
    """Abstract base class for field strategies."""

    category: FieldCategory = FieldCategory.TEXT

    def __init__(self, ctx: StrategyContext):
        self.ctx = ctx
        self.page = ctx.page
        self.answerer = ctx.answerer
        self.memory = ctx.memory
        self.normalizer = ctx.normalizer
        self.matcher = ctx.matcher
        self.timeouts = ctx.app_config.performance

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def can_handle(self, group: Locator) -> bool:
        """Return True if this strategy recognizes the group."""

    @abstractmethod
    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        """
        Fill the group.

        Args:
            group: The form group locator.
            retry_mode: True when the step is being refilled after the form
                rejected it.

        Returns:
            True if the field ended up answered without a visible error.
        """

    async def question_for(self, group: Locator) -> str:
        return await extract_question_text(group)

    def recall(self, question: str, category: Optional[FieldCategory] = None) -> Optional[str]:
        return self.memory.lookup((category or self.category).value, question)

    def remember(self, question: str, answer: str, category: Optional[FieldCategory] = None) -> None:
        self.memory.remember((category or self.category).value, question, answer)

    async def pause(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def count(self, locator: Locator) -> int:
        try:
            return await locator.count()
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            return 0

    async def apply_with_validation(
        self,
        group: Locator,
        question: str,
        answer: str,
        apply: ApplyFn,
        retry: RetryFn,
        category: Optional[FieldCategory] = None,
    ) -> bool:
        """
        Apply ``answer`` and run the single corrective retry on a field error.

        When the group already shows an error (the form was rejected and is
        being refilled) the retry runs immediately with ``answer`` as the
        rejected value, so a known-bad value is not typed in again.

        Returns:
            True when no error is visible after the last applied value.

        Raises:
            FieldValidationError: the corrected answer was rejected too.
        """
        category = category or self.category
        pending_error = await extract_field_error(group)
        if pending_error is None:
            await apply(answer)
            await self.pause(self.timeouts.medium_wait)
            pending_error = await extract_field_error(group)
            if pending_error is None:
                self.remember(question, answer, category)
                return True

        logger.warning(f"[{self.name}] Validation error for '{question}': {pending_error}")
        try:
            corrected = await retry(answer, pending_error)
        except AnswerUnavailableError as e:
            logger.warning(f"[{self.name}] No corrected answer for '{question}': {e}")
            return False
        if not corrected or not str(corrected).strip():
            return False

        corrected = str(corrected)
        await apply(corrected)
        await self.pause(self.timeouts.medium_wait)
        still_failing = await extract_field_error(group)
        if still_failing is not None:
            raise FieldValidationError(question, still_failing)
        self.remember(question, corrected, category)
        logger.info(f"[{self.name}] Retry answer applied for '{question}': '{corrected[:50]}'")
        return True
