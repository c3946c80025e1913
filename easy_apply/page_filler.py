"""
Form Page Filler: fills every visible form group of the current Easy Apply step.

Virtualized forms only render what is on screen, so the page is filled in
passes: each pass handles the groups not seen before, then scrolls the form
by 300px. Filling stops after a pass that handles nothing new.
"""
import logging
from typing import List, Optional, Set

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from config import AppConfig
from core.logger import bind_context, get_structured_logger
from core.selectors import catalog
from easy_apply.exceptions import AnswerUnavailableError, BrowserDisconnectedError, FieldValidationError
from easy_apply.field_utils import is_visible, raise_if_browser_closed, stable_key
from easy_apply.models import PageFillResult
from easy_apply.strategies import FieldStrategy
from easy_apply.strategies.file_upload import FileUploadStrategy

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)

SCROLL_STEP_PX = 300
# Groups without a stable key get a new one on every pass
MAX_PASSES = 10
DOCUMENT_BLOCK_XPATH = (
    'xpath=./ancestor::div[contains(@class,"jobs-document-upload") '
    'or contains(@class,"jobs-resume-picker")]'
)
SCROLL_JS = "(el, step) => { if ('scrollTop' in el) { el.scrollTop += step; } }"


class FormPageFiller:
    """Runs the field strategies over the groups of one form step."""

    def __init__(self, page: Page, strategies: List[FieldStrategy], app_config: AppConfig):
        self.page = page
        self.strategies = strategies
        self.app_config = app_config
        self.fail_threshold = app_config.easy_apply.fail_threshold
        self.file_strategy: Optional[FileUploadStrategy] = next(
            (s for s in strategies if isinstance(s, FileUploadStrategy)), None
        )

    async def find_groups(self) -> List[Locator]:
        """Form groups in catalog order, de-duplicated by bounding box."""
        groups: List[Locator] = []
        seen_boxes = set()
        for selector in catalog.get("form_section"):
            matches = self.page.locator(selector)
            try:
                total = await matches.count()
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                continue
            for index in range(total):
                group = matches.nth(index)
                try:
                    box = await group.bounding_box()
                except PlaywrightError as e:
                    raise_if_browser_closed(e)
                    continue
                if not box:
                    continue
                box_id = (box["x"], box["y"], box["width"], box["height"])
                if box_id in seen_boxes:
                    continue
                seen_boxes.add(box_id)
                groups.append(group)
        return groups

    async def pick_strategy(self, group: Locator) -> Optional[FieldStrategy]:
        for strategy in self.strategies:
            try:
                if await strategy.can_handle(group):
                    return strategy
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                logger.debug(f"[FILLER] {strategy.name}.can_handle failed: {e}")
        return None

    async def _run(
        self, strategy: FieldStrategy, group: Locator, retry_mode: bool, result: PageFillResult
    ) -> None:
        """Run one strategy; every outcome counts as processed."""
        result.fields_processed += 1
        try:
            if await strategy.handle(group, retry_mode=retry_mode):
                return
            logger.warning(f"[FILLER] {strategy.name} could not fill a field")
        except BrowserDisconnectedError:
            raise
        except (AnswerUnavailableError, FieldValidationError) as e:
            logger.warning(f"[FILLER] {e}")
            result.errors.append(str(e))
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.error(f"[FILLER] {strategy.name} failed: {e}")
            result.errors.append(str(e))
        except Exception as e:
            logger.error(f"[FILLER] {strategy.name} raised an unexpected error: {e}", exc_info=True)
            result.errors.append(str(e))
        result.fields_failed += 1

    async def _fill_document_blocks(self, processed: Set[str], retry_mode: bool, result: PageFillResult) -> int:
        """Handle bare file inputs whose upload block is not a form section."""
        if self.file_strategy is None:
            return 0
        handled = 0
        inputs = self.page.locator("form").first.locator(catalog.css("orphan_file_input"))
        try:
            total = await inputs.count()
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            return 0
        for index in range(total):
            block = inputs.nth(index).locator(DOCUMENT_BLOCK_XPATH).first
            try:
                if await block.count() == 0:
                    continue
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                continue
            key = await stable_key(block)
            if key in processed:
                continue
            processed.add(key)
            handled += 1
            logger.debug("[FILLER] Processing bare file input block")
            await self._run(self.file_strategy, block, retry_mode, result)
        return handled

    async def _scroll_form(self) -> None:
        try:
            await self.page.locator("form").first.evaluate(SCROLL_JS, SCROLL_STEP_PX)
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.debug(f"[FILLER] Form scroll failed: {e}")
        await self.page.wait_for_timeout(self.app_config.performance.short_wait)

    async def fill_current_page(self, retry_mode: bool = False) -> PageFillResult:
        """
        Fill all visible groups of the current step.

        Args:
            retry_mode: True when the step is refilled after the form rejected
                it; forwarded to the strategies.

        Returns:
            PageFillResult. ``success`` holds when fewer than
            ``fail_threshold`` of the processed fields failed; a page with
            nothing to fill is a success.

        Raises:
            BrowserDisconnectedError: if the browser went away.
        """
        result = PageFillResult()
        processed: Set[str] = set()

        for pass_index in range(1, MAX_PASSES + 1):
            newly_handled = 0
            groups = await self.find_groups()
            if pass_index == 1:
                logger.info(f"[FILLER] Found {len(groups)} form section(s) on this page")

            for group in groups:
                key = await stable_key(group)
                if key in processed or not await is_visible(group):
                    continue
                strategy = await self.pick_strategy(group)
                if strategy is None:
                    logger.debug("[FILLER] No strategy for section (probably not an input)")
                    continue
                processed.add(key)
                newly_handled += 1
                await self._run(strategy, group, retry_mode, result)

            newly_handled += await self._fill_document_blocks(processed, retry_mode, result)
            logger.debug(f"[FILLER] Pass {pass_index}: handled {newly_handled} new section(s)")
            if newly_handled == 0:
                break
            await self._scroll_form()
        else:
            logger.warning(f"[FILLER] Stopped after {MAX_PASSES} passes")

        result.success = (
            result.fields_processed == 0
            or result.fields_failed < result.fields_processed * self.fail_threshold
        )
        bind_context(structured_logger, retry_mode=retry_mode).info(
            "form_page_filled",
            processed=result.fields_processed,
            failed=result.fields_failed,
            success=result.success,
        )
        return result

