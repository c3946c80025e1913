import logging
import re
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Locator

from easy_apply.field_utils import visible_text
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy
from llm.prompts import DATE_HINT

logger = logging.getLogger(__name__)

ISO_DATE_RX = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
US_DATE_RX = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
YEAR_RX = re.compile(r"\b(?:19|20)\d{2}\b")
DATE_LABEL_RX = re.compile(r"\b(date|when|start|end)\b", re.IGNORECASE)
MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)
MONTH_SELECT = 'select[id*="month"], select[name*="month"]'
YEAR_SELECT = 'select[id*="year"], select[name*="year"]'


@dataclass
class DateParts:
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None


def parse_date_answer(answer: str) -> DateParts:
    """
    Extract year/month/day from a free-form date answer.

    Accepts ``YYYY-MM-DD``, ``MM/DD/YYYY`` and "<month name> <year>".
    Missing parts stay None.
    """
    text = answer or ""
    iso = ISO_DATE_RX.search(text)
    if iso:
        return DateParts(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
    us = US_DATE_RX.search(text)
    if us:
        return DateParts(int(us.group(3)), int(us.group(1)), int(us.group(2)))

    parts = DateParts()
    lowered = text.lower()
    for index, name in enumerate(MONTH_NAMES):
        if name in lowered:
            parts.month = index + 1
            break
    year = YEAR_RX.search(text)
    if year:
        parts.year = int(year.group(0))
    return parts


def format_date_for_input(answer: str) -> Optional[str]:
    """``YYYY-MM-DD`` for native date inputs; month and day default to 1."""
    parts = parse_date_answer(answer)
    if not parts.year:
        return None
    return f"{parts.year}-{(parts.month or 1):02d}-{(parts.day or 1):02d}"


class DateStrategy(FieldStrategy):
    """Native date inputs, month/year select pairs and date-worded text inputs."""

    category = FieldCategory.DATE

    async def can_handle(self, group: Locator) -> bool:
        if await self.count(group.locator('input[type="date"]')) > 0:
            return True
        if await self.count(group.locator(f"{MONTH_SELECT}, {YEAR_SELECT}")) > 0:
            return True
        label = group.locator("label").first
        if await self.count(label) == 0:
            return False
        if not DATE_LABEL_RX.search(await visible_text(label) or ""):
            return False
        has_text_input = await self.count(group.locator('input[type="text"]')) > 0
        has_choices = await self.count(group.locator("select, input[type=radio], input[type=checkbox]")) > 0
        return has_text_input and not has_choices

    async def _answer(self, question: str) -> str:
        answer = self.recall(question)
        if answer is None:
            answer = await self.answerer.answer_textual(f"{question} {DATE_HINT}")
        return answer

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        question = await self.question_for(group)
        date_input = group.locator('input[type="date"]').first
        month_select = group.locator(MONTH_SELECT).first
        year_select = group.locator(YEAR_SELECT).first
        text_input = group.locator('input[type="text"]').first

        if await self.count(date_input) > 0:
            target = "native"
        elif await self.count(month_select) > 0 or await self.count(year_select) > 0:
            target = "selects"
        elif await self.count(text_input) > 0:
            target = "text"
        else:
            logger.warning(f"[DATE] No date control found for '{question}'")
            return False

        answer = await self._answer(question)
        if target == "native" and format_date_for_input(answer) is None:
            logger.warning(f"[DATE] Could not parse a date from '{answer}'")
            return False

        async def apply(value: str) -> None:
            if target == "native":
                formatted = format_date_for_input(value)
                if formatted:
                    await date_input.fill(formatted)
            elif target == "selects":
                parts = parse_date_answer(value)
                if parts.month and await self.count(month_select) > 0:
                    await month_select.select_option(value=f"{parts.month:02d}")
                if parts.year and await self.count(year_select) > 0:
                    await year_select.select_option(value=str(parts.year))
            else:
                await text_input.fill("")
                await text_input.fill(value)
            await self.pause(self.timeouts.short_wait)

        async def retry(previous: str, error_text: str) -> str:
            return await self.answerer.answer_textual_with_retry(f"{question} {DATE_HINT}", previous, error_text)

        logger.info(f"[DATE] Q: '{question}' -> '{answer}'")
        return await self.apply_with_validation(group, question, answer, apply, retry)
