import logging
from typing import List, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from easy_apply.field_utils import raise_if_browser_closed, visible_text
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy

logger = logging.getLogger(__name__)

CONSENT_KEYWORDS = (
    "agree", "accept", "consent", "acknowledge", "confirm",
    "terms", "privacy", "policy", "understand", "certify",
)
YES_NO = ["Yes", "No"]
SELECTION_SEPARATOR = " | "


def is_consent(text: str) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in CONSENT_KEYWORDS)


class CheckboxStrategy(FieldStrategy):
    """
    Checkbox fields.

    A single consent checkbox (terms, privacy, certification) is checked
    without asking. Any other single checkbox is a yes/no question. Groups of
    several checkboxes are multi-choice: the AI picks a subset by index.
    """

    category = FieldCategory.CHECKBOX

    async def can_handle(self, group: Locator) -> bool:
        return await self.count(group.locator('input[type="checkbox"]')) > 0

    async def label_for(self, group: Locator, checkbox: Locator) -> str:
        checkbox_id = await checkbox.get_attribute("id")
        if checkbox_id:
            label = group.locator(f'label[for="{checkbox_id}"]').first
            if await self.count(label) > 0:
                text = await visible_text(label)
                if text:
                    return text
        parent_label = checkbox.locator("xpath=ancestor::label")
        if await self.count(parent_label) > 0:
            return await visible_text(parent_label.first) or ""
        return await visible_text(checkbox.locator("xpath=..")) or ""

    async def set_checked(self, group: Locator, checkbox: Locator, checked: bool) -> None:
        try:
            if checked:
                await checkbox.check()
            else:
                await checkbox.uncheck()
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            # Styled checkboxes hide the input behind their label
            if await checkbox.is_checked() == checked:
                return
            checkbox_id = await checkbox.get_attribute("id")
            if not checkbox_id:
                raise
            await group.locator(f'label[for="{checkbox_id}"]').first.click()

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        checkboxes = group.locator('input[type="checkbox"]')
        total = await self.count(checkboxes)
        if total == 0:
            return False
        question = await self.question_for(group)
        if total == 1:
            return await self._handle_single(group, checkboxes.first, question, retry_mode)
        return await self._handle_multiple(group, checkboxes, total, question)

    async def _handle_single(self, group: Locator, checkbox: Locator, question: str, retry_mode: bool) -> bool:
        if await checkbox.is_checked():
            logger.debug(f"[CHECKBOX] Already checked: '{question}'")
            return True

        label = await self.label_for(group, checkbox)
        if retry_mode or is_consent(label) or is_consent(question):
            await self.set_checked(group, checkbox, True)
            logger.info(f"[CHECKBOX] Checked '{(label or question)[:50]}'")
            return True

        prompt = f"{question} - {label}" if label and label != question else question
        answer = self.recall(prompt)
        if answer is None or self.normalizer.find_exact(answer, YES_NO) is None:
            answer = await self.answerer.answer_from_options(prompt, YES_NO)
        answer = self.normalizer.find_exact(answer, YES_NO) or "No"

        async def apply(value: str) -> None:
            await self.set_checked(group, checkbox, value == "Yes")

        async def retry(previous: str, error_text: str) -> str:
            corrected = await self.answerer.answer_from_options_with_retry(prompt, YES_NO, previous, error_text)
            return self.normalizer.find_exact(corrected, YES_NO) or ""

        logger.info(f"[CHECKBOX] Q: '{prompt[:60]}' -> '{answer}'")
        return await self.apply_with_validation(group, prompt, answer, apply, retry)

    async def _options(self, group: Locator, checkboxes: Locator, total: int) -> List[Tuple[str, Locator]]:
        options = []
        for index in range(total):
            checkbox = checkboxes.nth(index)
            options.append((await self.label_for(group, checkbox) or f"Option {index + 1}", checkbox))
        return options

    async def _handle_multiple(self, group: Locator, checkboxes: Locator, total: int, question: str) -> bool:
        options = await self._options(group, checkboxes, total)
        labels = [label for label, _ in options]

        remembered = self.recall(question)
        selected: List[str] = []
        if remembered:
            selected = [
                match for match in (
                    self.normalizer.find_exact(part, labels) for part in remembered.split(SELECTION_SEPARATOR)
                ) if match
            ]
        if not selected:
            indices = await self.answerer.answer_checkbox_selection(question, labels)
            selected = [labels[i - 1] for i in indices if 1 <= i <= len(labels)]
        answer = SELECTION_SEPARATOR.join(selected)
        logger.info(f"[CHECKBOX] Q: '{question}' -> '{answer}'")

        async def apply(value: str) -> None:
            wanted = set(value.split(SELECTION_SEPARATOR))
            for label, checkbox in options:
                should_check = label in wanted
                if await checkbox.is_checked() != should_check:
                    await self.set_checked(group, checkbox, should_check)
                    await self.pause(self.timeouts.short_wait)

        async def retry(previous: str, error_text: str) -> str:
            indices = await self.answerer.answer_checkbox_selection(
                f"{question} (previous selection '{previous}' was rejected: {error_text})", labels
            )
            return SELECTION_SEPARATOR.join(labels[i - 1] for i in indices if 1 <= i <= len(labels))

        return await self.apply_with_validation(group, question, answer, apply, retry)
