import logging
from typing import Dict, List, Optional, Tuple

from playwright.async_api import Locator

from core.resilience import resilient_click
from easy_apply.field_utils import visible_text
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy

logger = logging.getLogger(__name__)


class RadioStrategy(FieldStrategy):
    """Single-choice radio groups (Yes/No, work arrangement, ...)."""

    category = FieldCategory.RADIO

    async def can_handle(self, group: Locator) -> bool:
        return await self.count(group.locator("input[type=radio]")) > 0

    async def options(self, group: Locator) -> Tuple[List[str], Dict[str, Locator]]:
        """Option labels in page order and the label locator for each."""
        radios = group.locator("input[type=radio]")
        labels: List[str] = []
        by_label: Dict[str, Locator] = {}
        for index in range(await self.count(radios)):
            radio_id = await radios.nth(index).get_attribute("id")
            if not radio_id:
                continue
            label = group.locator(f'label[for="{radio_id}"]').first
            if await self.count(label) == 0:
                continue
            text = await visible_text(label)
            if text and text not in by_label:
                labels.append(text)
                by_label[text] = label
        return labels, by_label

    def choose(self, answer: Optional[str], labels: List[str]) -> Optional[str]:
        if not answer:
            return None
        return self.normalizer.find_exact(answer, labels) or self.normalizer.find_best_match(answer, labels)

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        question = await self.question_for(group)
        labels, by_label = await self.options(group)
        if not labels:
            logger.warning(f"[RADIO] No options found for '{question}'")
            return False

        answer = self.choose(self.recall(question), labels)
        if answer is None:
            answer = self.choose(await self.answerer.answer_from_options(question, labels), labels)
        if answer is None:
            logger.warning(f"[RADIO] No option matches the answer for '{question}'")
            return False
        logger.info(f"[RADIO] Q: '{question}' -> '{answer}'")

        async def apply(value: str) -> None:
            await resilient_click(by_label[value], self.ctx.app_config, name=f"radio:{value}")

        async def retry(previous: str, error_text: str) -> str:
            corrected = await self.answerer.answer_from_options_with_retry(question, labels, previous, error_text)
            return self.choose(corrected, labels) or ""

        return await self.apply_with_validation(group, question, answer, apply, retry)
