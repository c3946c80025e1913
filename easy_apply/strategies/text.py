import logging
from typing import Optional

from playwright.async_api import Locator

from easy_apply.field_utils import input_value
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy
from llm.utils import truncate

logger = logging.getLogger(__name__)

EXCLUDED_INPUT_TYPES = ("button", "submit", "checkbox", "radio", "file", "hidden")
NUMERIC_INPUT_MODES = ("numeric", "decimal")
NUMERIC_NAME_HINTS = ("numeric", "number")
# Phone ids contain "phoneNumber" but phone answers are text (prefix, spaces)
NUMERIC_NAME_EXCLUDES = ("phone",)


def format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


class TextInputStrategy(FieldStrategy):
    """Single-line inputs: names, contact details, URLs and numeric answers."""

    category = FieldCategory.TEXT

    async def _text_input(self, group: Locator) -> Optional[Locator]:
        inputs = group.locator("input")
        for index in range(await self.count(inputs)):
            candidate = inputs.nth(index)
            input_type = (await candidate.get_attribute("type") or "text").lower()
            if input_type not in EXCLUDED_INPUT_TYPES:
                return candidate
        return None

    async def can_handle(self, group: Locator) -> bool:
        return await self._text_input(group) is not None

    async def is_numeric(self, control: Locator) -> bool:
        if (await control.get_attribute("type") or "").lower() == "number":
            return True
        if (await control.get_attribute("inputmode") or "").lower() in NUMERIC_INPUT_MODES:
            return True
        hints = f"{await control.get_attribute('id') or ''} {await control.get_attribute('name') or ''}".lower()
        if any(word in hints for word in NUMERIC_NAME_EXCLUDES):
            return False
        return any(hint in hints for hint in NUMERIC_NAME_HINTS)

    async def fill(self, control: Locator, value: str) -> None:
        await control.click()
        await control.fill("")
        await control.fill(value)
        await self.pause(self.timeouts.short_wait)

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        control = await self._text_input(group)
        if control is None:
            return False

        question = await self.question_for(group)
        numeric = await self.is_numeric(control)
        category = FieldCategory.NUMERIC if numeric else FieldCategory.TEXT

        existing = await input_value(control)
        if existing.strip():
            logger.debug(f"[TEXT] Replacing prefilled value '{truncate(existing, 50)}' for '{question}'")

        answer = self.recall(question, category)
        if answer is not None:
            logger.debug(f"[TEXT] Memory answer for '{question}'")
        if answer is None:
            match = await self.matcher.match_by_element(control) or self.matcher.match_by_question(question)
            if match:
                logger.info(f"[SMART] Matched {match.field_type} by {match.matched_by}")
                answer = match.value
        if answer is None:
            if numeric:
                answer = format_number(await self.answerer.answer_numeric(question))
            else:
                answer = await self.answerer.answer_textual(question)

        logger.info(f"[TEXT] Q: '{question}' -> '{truncate(answer, 50)}'")

        async def apply(value: str) -> None:
            await self.fill(control, value)

        async def retry(previous: str, error_text: str) -> str:
            if numeric:
                return format_number(await self.answerer.answer_numeric_with_retry(question, previous, error_text))
            return await self.answerer.answer_textual_with_retry(question, previous, error_text)

        return await self.apply_with_validation(group, question, answer, apply, retry, category)
