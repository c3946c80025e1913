import logging
from typing import List, Optional

from playwright.async_api import Locator

from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy

logger = logging.getLogger(__name__)

PHONE_PREFIX_HINTS = ("phone", "prefix", "country code")
SCHOOL_HINTS = ("school", "university", "college", "institution")


def is_school_question(question: str) -> bool:
    lowered = question.lower()
    return any(hint in lowered for hint in SCHOOL_HINTS)


def is_phone_prefix_question(question: str) -> bool:
    lowered = question.lower()
    return any(hint in lowered for hint in PHONE_PREFIX_HINTS)


class DropdownStrategy(FieldStrategy):
    """<select> fields: phone country code, experience levels, schools, ..."""

    category = FieldCategory.DROPDOWN

    async def can_handle(self, group: Locator) -> bool:
        return await self.count(group.locator("select")) > 0

    async def options(self, select: Locator) -> List[str]:
        """Option labels, without the leading "Select an option" placeholder."""
        elements = select.locator("option")
        labels = []
        for index in range(await self.count(elements)):
            option = elements.nth(index)
            text = ((await option.text_content()) or "").strip()
            value = await option.get_attribute("value")
            if index == 0 and (not value or "select" in text.lower()):
                continue
            if text:
                labels.append(text)
        return labels

    def pick(self, answer: Optional[str], options: List[str]) -> Optional[str]:
        """Exact normalized match, then containment either way."""
        if not answer:
            return None
        target = self.normalizer.normalize_text(answer)
        if not target:
            return None
        normalized = [(option, self.normalizer.normalize_text(option)) for option in options]
        for option, option_norm in normalized:
            if option_norm == target:
                return option
        for option, option_norm in normalized:
            if option_norm and (target in option_norm or option_norm in target):
                return option
        return None

    def heuristic(self, question: str, options: List[str]) -> Optional[str]:
        if is_school_question(question):
            logger.debug("[DROPDOWN] School field detected")
            return self.matcher.match_school(options)
        if is_phone_prefix_question(question):
            logger.debug("[DROPDOWN] Phone prefix field detected")
            return self.matcher.match_phone_prefix(options)
        return None

    def options_for_ai(self, question: str, options: List[str]) -> List[str]:
        limit = self.ctx.app_config.easy_apply.max_dropdown_options
        if len(options) <= limit:
            return options
        logger.warning(f"[DROPDOWN] Large dropdown ({len(options)} options) truncated to {limit} for the AI")
        if is_school_question(question):
            logger.error(f"[DROPDOWN] Resume school not found, the AI only sees the first {limit} schools")
        return options[:limit]

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        select = group.locator("select").first
        if await self.count(select) == 0:
            return False

        question = await self.question_for(group)
        options = await self.options(select)
        if not options:
            logger.warning(f"[DROPDOWN] No options found for '{question}'")
            return False

        answer = self.pick(self.recall(question), options)
        if answer is None:
            answer = self.pick(self.heuristic(question, options), options)
            if answer is not None:
                logger.info(f"[SMART] Dropdown heuristic picked '{answer}'")
        if answer is None:
            ai_options = self.options_for_ai(question, options)
            answer = self.pick(await self.answerer.answer_from_options(question, ai_options), options)
        if answer is None:
            logger.warning(f"[DROPDOWN] No option matches the answer for '{question}'")
            return False
        logger.info(f"[DROPDOWN] Q: '{question}' -> '{answer}'")

        async def apply(value: str) -> None:
            await select.select_option(label=value)
            await self.pause(self.timeouts.medium_wait)

        async def retry(previous: str, error_text: str) -> str:
            corrected = await self.answerer.answer_from_options_with_retry(
                question, self.options_for_ai(question, options), previous, error_text
            )
            return self.pick(corrected, options) or ""

        return await self.apply_with_validation(group, question, answer, apply, retry)
