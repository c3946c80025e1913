import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from core.selectors import catalog
from easy_apply.field_utils import raise_if_browser_closed
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy

logger = logging.getLogger(__name__)

SUGGESTION_TIMEOUT_MS = 3000


class TypeaheadStrategy(FieldStrategy):
    """Autocomplete inputs (location, school, company): type, then pick a suggestion."""

    category = FieldCategory.TYPEAHEAD

    async def _input(self, group: Locator) -> Optional[Locator]:
        candidate = group.locator(catalog.css("typeahead_input")).first
        if await self.count(candidate) > 0:
            return candidate
        return None

    async def can_handle(self, group: Locator) -> bool:
        return await self._input(group) is not None

    async def select_suggestion(self, answer: str) -> bool:
        """Click the suggestion matching ``answer``, else the first one."""
        options = self.page.locator(catalog.css("typeahead_option"))
        try:
            await options.first.wait_for(state="visible", timeout=SUGGESTION_TIMEOUT_MS)
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.debug("[TYPEAHEAD] No suggestions appeared")
            return False

        total = await self.count(options)
        target = self.normalizer.normalize_text(answer)
        for index in range(total):
            option = options.nth(index)
            text = self.normalizer.normalize_text((await option.text_content()) or "")
            if text and (text == target or text in target or target in text):
                await option.click()
                await self.pause(self.timeouts.medium_wait)
                logger.debug(f"[TYPEAHEAD] Selected matching suggestion '{text}'")
                return True
        if total > 0:
            await options.first.click()
            await self.pause(self.timeouts.medium_wait)
            logger.debug("[TYPEAHEAD] Selected first suggestion")
            return True
        return False

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        control = await self._input(group)
        if control is None:
            return False

        question = await self.question_for(group)
        answer = self.recall(question)
        if answer is None:
            match = await self.matcher.match_by_element(control) or self.matcher.match_by_question(question)
            answer = match.value if match else None
        if answer is None:
            answer = await self.answerer.answer_textual(question)
        logger.info(f"[TYPEAHEAD] Q: '{question}' -> '{answer}'")

        async def apply(value: str) -> None:
            await control.click()
            await control.fill("")
            await control.press_sequentially(value, delay=self.timeouts.typing_delay)
            await self.pause(self.timeouts.long_wait)
            await self.select_suggestion(value)

        async def retry(previous: str, error_text: str) -> str:
            return await self.answerer.answer_textual_with_retry(question, previous, error_text)

        return await self.apply_with_validation(group, question, answer, apply, retry)
