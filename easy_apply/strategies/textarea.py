import logging

from playwright.async_api import Locator

from easy_apply.field_utils import input_value
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy

logger = logging.getLogger(__name__)

# Longer existing content is treated as written by the user
KEEP_EXISTING_CHARS = 50


class TextareaStrategy(FieldStrategy):
    """Long-form answers ("Tell us about yourself", motivation, summaries)."""

    category = FieldCategory.TEXTAREA

    async def can_handle(self, group: Locator) -> bool:
        return await self.count(group.locator("textarea")) > 0

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        textarea = group.locator("textarea").first
        if await self.count(textarea) == 0:
            return False

        question = await self.question_for(group)
        existing = await input_value(textarea)
        if len(existing.strip()) > KEEP_EXISTING_CHARS:
            logger.debug(f"[TEXTAREA] Keeping existing content for '{question}'")
            return True

        answer = self.recall(question)
        if answer is None:
            answer = await self.answerer.answer_textual(question)
        logger.info(f"[TEXTAREA] Q: '{question}' -> [{len(answer)} chars]")

        async def apply(value: str) -> None:
            await textarea.click()
            await textarea.fill("")
            await textarea.fill(value)
            await self.pause(self.timeouts.short_wait)

        async def retry(previous: str, error_text: str) -> str:
            return await self.answerer.answer_textual_with_retry(question, previous, error_text)

        return await self.apply_with_validation(group, question, answer, apply, retry)
