"""
AI answering capability used by the field strategies.

All provider calls are blocking LangChain invocations; they run in a worker
thread behind a circuit breaker so a failing provider turns into
AnswerUnavailableError quickly instead of stalling every field.
"""
import logging
import re
from typing import Any, Dict, List, Optional

import pybreaker

from config import AppConfig
from core.logger import get_structured_logger
from core.resilience import call_blocking_with_breaker, create_ai_breaker
from easy_apply.exceptions import AnswerUnavailableError
from easy_apply.models import Job
from easy_apply.normalizer import QuestionNormalizer
from llm import prompts
from llm.cover_letter_generator import generate_cover_letter
from llm.exceptions import CoverLetterGenerationError, LLMGenerationError
from llm.llm_client import LLMClient
from llm.resume_utils import resume_to_yaml
from llm.schemas import ResumeProfile
from llm.utils import format_prompt, numbered, truncate

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)

NUMBER_RX = re.compile(r"-?\d+(?:[.,]\d+)?")
INDEX_RX = re.compile(r"\d+")
OPTION_MATCH_THRESHOLD = 60
MAX_TAILORING_DESCRIPTION_CHARS = 8000


class LLMAnswerer:
    """Answers form questions from the candidate's resume and the current job."""

    def __init__(
        self,
        llm: LLMClient,
        profile: Optional[ResumeProfile],
        app_config: AppConfig,
        breaker: Optional[pybreaker.CircuitBreaker] = None,
        normalizer: Optional[QuestionNormalizer] = None,
    ):
        self.llm = llm
        self.profile = profile
        self.app_config = app_config
        self.breaker = breaker or create_ai_breaker(app_config)
        self.normalizer = normalizer or QuestionNormalizer()
        self.job_context: Dict[str, Any] = {}
        self._resume_yaml = resume_to_yaml(profile)

    def set_job_context(self, context: Dict[str, Any]) -> None:
        """Attach title/company/location/description of the job being applied to."""
        self.job_context = dict(context)
        structured_logger.debug("job_context_set", **{k: v for k, v in context.items() if k != "description"})

    def _system_message(self) -> str:
        job_lines = "\n".join(f"{key}: {value}" for key, value in self.job_context.items() if value)
        return format_prompt(
            prompts.SYSTEM_PROMPT,
            resume=self._resume_yaml or "No resume provided.",
            job_context=job_lines or "No job context.",
        )

    async def _complete(self, prompt: str, question: str) -> str:
        try:
            answer = await call_blocking_with_breaker(
                self.breaker, self.llm.generate_response, prompt, self._system_message()
            )
        except pybreaker.CircuitBreakerError as e:
            raise AnswerUnavailableError(question, "AI circuit breaker is open") from e
        except LLMGenerationError as e:
            raise AnswerUnavailableError(question, e.message) from e
        answer = (answer or "").strip().strip('"').strip()
        if not answer:
            raise AnswerUnavailableError(question, "empty AI response")
        return answer

    def _match_option(self, answer: str, options: List[str], question: str) -> str:
        match = self.normalizer.match_option(answer, options, threshold=OPTION_MATCH_THRESHOLD)
        if match is None:
            raise AnswerUnavailableError(question, f"AI answer '{answer}' matches none of the options")
        return match

    @staticmethod
    def _parse_number(text: str, default: float) -> float:
        match = NUMBER_RX.search(text or "")
        if not match:
            return default
        value = float(match.group(0).replace(",", "."))
        return int(value) if value.is_integer() else value

    async def answer_textual(self, question: str) -> str:
        prompt = format_prompt(prompts.TEXTUAL_PROMPT, question=question)
        answer = await self._complete(prompt, question)
        logger.info(f"[AI] Q: '{truncate(question, 60)}' -> '{truncate(answer, 60)}'")
        return answer

    async def answer_textual_with_retry(self, question: str, previous_answer: str, error_text: str) -> str:
        prompt = format_prompt(
            prompts.TEXTUAL_RETRY_PROMPT, question=question, previous_answer=previous_answer, error=error_text
        )
        answer = await self._complete(prompt, question)
        logger.info(f"[AI] Retry Q: '{truncate(question, 60)}' -> '{truncate(answer, 60)}'")
        return answer

    async def answer_numeric(self, question: str, default: float = 3) -> float:
        prompt = format_prompt(prompts.NUMERIC_PROMPT, question=question, default=default)
        return self._parse_number(await self._complete(prompt, question), default)

    async def answer_numeric_with_retry(
        self, question: str, previous_answer: str, error_text: str, default: float = 3
    ) -> float:
        prompt = format_prompt(
            prompts.NUMERIC_RETRY_PROMPT, question=question, previous_answer=previous_answer, error=error_text
        )
        return self._parse_number(await self._complete(prompt, question), default)

    async def answer_from_options(self, question: str, options: List[str]) -> str:
        if not options:
            raise AnswerUnavailableError(question, "no options to choose from")
        prompt = format_prompt(prompts.OPTIONS_PROMPT, question=question, options="\n".join(options))
        return self._match_option(await self._complete(prompt, question), options, question)

    async def answer_from_options_with_retry(
        self, question: str, options: List[str], previous_answer: str, error_text: str
    ) -> str:
        prompt = format_prompt(
            prompts.OPTIONS_RETRY_PROMPT,
            question=question,
            options="\n".join(options),
            previous_answer=previous_answer,
            error=error_text,
        )
        return self._match_option(await self._complete(prompt, question), options, question)

    async def answer_checkbox_selection(self, question: str, options: List[str]) -> List[int]:
        """
        Pick a subset of options.

        Returns:
            Sorted, de-duplicated 1-based indices within ``1..len(options)``.
        """
        prompt = format_prompt(prompts.CHECKBOX_SELECTION_PROMPT, question=question, options=numbered(options))
        answer = await self._complete(prompt, question)
        indices = sorted({int(m) for m in INDEX_RX.findall(answer) if 1 <= int(m) <= len(options)})
        if not indices:
            raise AnswerUnavailableError(question, f"no valid option indices in '{answer}'")
        return indices

    async def tailor_resume_to_job(self, job_description: str, base_resume: str) -> str:
        """
        Rewrite the YAML resume for the job.

        Returns:
            The tailored resume as YAML text.
        """
        prompt = format_prompt(
            prompts.TAILOR_RESUME_PROMPT,
            job_description=truncate(job_description, MAX_TAILORING_DESCRIPTION_CHARS),
            resume=base_resume,
        )
        return await self._complete(prompt, "tailor_resume")

    async def write_cover_letter(self, job: Job) -> str:
        try:
            return await call_blocking_with_breaker(self.breaker, generate_cover_letter, job, self.profile, self.llm)
        except pybreaker.CircuitBreakerError as e:
            raise AnswerUnavailableError("cover_letter", "AI circuit breaker is open") from e
        except CoverLetterGenerationError as e:
            raise AnswerUnavailableError("cover_letter", e.message) from e
