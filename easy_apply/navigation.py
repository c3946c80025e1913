"""
Navigation State Machine for the Easy Apply modal.

The modal state is never cached: every query reads the live page. A step is
advanced with ``click_primary_button``, which finds the single visible primary
action (Next, Review or Submit), clicks it and reports where the form ended up.
"""
import logging
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config import AppConfig
from core.logger import get_structured_logger
from core.resilience import resilient_click
from core.selectors import (
    DISCARD_TEXT,
    SAVE_DIALOG_TEXT,
    SUBMIT_ATTRIBUTE,
    SUBMIT_TEXT,
    SUCCESS_CONFIRMATIONS,
    SUCCESS_KEYWORD,
    catalog,
)
from core.utils import collapse_whitespace
from easy_apply.field_utils import raise_if_browser_closed
from easy_apply.models import ModalState, NavigationResult

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


def is_success_text(text: Optional[str]) -> bool:
    """'Your application was sent' / 'Application submitted' in any case."""
    lowered = (text or "").lower()
    return SUCCESS_KEYWORD in lowered and any(word in lowered for word in SUCCESS_CONFIRMATIONS)


class NavigationStateMachine:
    """Reads the modal state and moves the form forward one step at a time."""

    def __init__(self, page: Page, app_config: AppConfig):
        self.page = page
        self.app_config = app_config
        self.timeouts = app_config.performance
        self.dry_run = app_config.easy_apply.dry_run

    @property
    def modal(self) -> Locator:
        return self.page.locator(catalog.css("modal_container")).first

    async def _first_visible(self, role: str, scope: Optional[Locator] = None, enabled: bool = False) -> Optional[Locator]:
        """First visible (and optionally enabled) element for ``role``, in catalog order."""
        root = scope or self.page
        for selector in catalog.get(role):
            candidates = root.locator(selector)
            try:
                total = await candidates.count()
                for index in range(total):
                    candidate = candidates.nth(index)
                    if not await candidate.is_visible():
                        continue
                    if enabled and not await candidate.is_enabled():
                        continue
                    return candidate
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                logger.debug(f"[NAV] Selector '{selector}' failed: {e}")
        return None

    async def is_modal_open(self) -> bool:
        try:
            return await self.modal.count() > 0 and await self.modal.is_visible()
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            return False

    async def get_modal_state(self) -> ModalState:
        """Derive the modal state from the current DOM."""
        try:
            if await self.modal.count() == 0:
                return ModalState.CLOSED
            if is_success_text(await self.modal.text_content()):
                return ModalState.SUCCESS
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.error(f"[NAV] Error reading modal state: {e}")
            return ModalState.UNKNOWN

        for role, state in (
            ("submit_button", ModalState.SUBMIT),
            ("review_button", ModalState.REVIEW),
            ("next_button", ModalState.FORM),
        ):
            if await self._first_visible(role, scope=self.modal):
                return state
        if await self.has_validation_errors():
            return ModalState.ERROR
        return ModalState.UNKNOWN

    async def get_validation_errors(self) -> List[str]:
        """Visible inline error messages of the current step."""
        errors: List[str] = []
        for selector in catalog.get("field_error"):
            nodes = self.page.locator(selector)
            try:
                for index in range(await nodes.count()):
                    node = nodes.nth(index)
                    if not await node.is_visible():
                        continue
                    text = collapse_whitespace(await node.text_content())
                    if text and text not in errors:
                        errors.append(text)
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                logger.debug(f"[NAV] Error probe '{selector}' failed: {e}")
        return errors

    async def has_validation_errors(self) -> bool:
        errors = await self.get_validation_errors()
        if errors:
            logger.warning(f"[NAV] Validation errors: {errors}")
        return bool(errors)

    async def wait_for_modal_ready(self) -> None:
        """Wait for the loading spinner to go away."""
        spinner = self.page.locator(catalog.css("loading_spinner")).first
        try:
            await spinner.wait_for(state="hidden", timeout=self.timeouts.spinner_timeout)
        except PlaywrightTimeoutError:
            logger.debug("[NAV] Spinner still visible, continuing")
        except PlaywrightError as e:
            raise_if_browser_closed(e)
        await self.page.wait_for_timeout(self.timeouts.medium_wait)

    async def is_submit_button(self, button: Locator) -> bool:
        if await button.get_attribute(SUBMIT_ATTRIBUTE) is not None:
            return True
        label = f"{await button.get_attribute('aria-label') or ''} {await button.text_content() or ''}".lower()
        return any(word in label for word in SUBMIT_TEXT)

    async def uncheck_follow_company(self) -> None:
        """Do not follow the company as a side effect of applying."""
        checkbox = await self._first_visible("follow_company_checkbox", scope=self.modal)
        if checkbox is None:
            checkbox = self.modal.locator(catalog.css("follow_company_checkbox")).first
            if await checkbox.count() == 0:
                return
        try:
            if await checkbox.is_checked():
                await checkbox.uncheck(force=True)
                logger.info("[NAV] Unchecked 'follow company'")
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.warning(f"[NAV] Could not uncheck 'follow company': {e}")

    async def _handle_save_dialog(self) -> bool:
        """Answer a "Save this application?" prompt by keeping the application open."""
        dialog = await self._first_visible("save_dialog")
        if dialog is None:
            return False
        text = ((await dialog.text_content()) or "").lower()
        if not any(phrase in text for phrase in SAVE_DIALOG_TEXT):
            return False
        primary = await self._first_visible("save_dialog_primary", scope=dialog)
        if primary is None:
            return False
        logger.info("[NAV] 'Save this application?' dialog shown, choosing its primary action")
        await resilient_click(primary, self.app_config, name="save_dialog_primary")
        try:
            await self.page.wait_for_selector(
                catalog.css("modal_container"), state="visible", timeout=self.timeouts.modal_wait_timeout
            )
        except PlaywrightTimeoutError:
            logger.warning("[NAV] Form did not reopen after the save dialog")
        return True

    async def click_primary_button(self) -> NavigationResult:
        """
        Advance the form by one step.

        Returns:
            NavigationResult with ``submitted`` set once the Submit click closed
            the form or produced the confirmation, ``dry_run_stop`` set when the
            Submit click was skipped for a dry run, and the validation errors
            when the step was rejected.
        """
        await self.wait_for_modal_ready()
        button = await self._first_visible("primary_button", scope=self.modal, enabled=True)
        if button is None:
            state = await self.get_modal_state()
            if state == ModalState.SUCCESS:
                return NavigationResult(success=True, state=state, submitted=True)
            return NavigationResult(success=False, state=state, error="No primary button found")

        submitting = await self.is_submit_button(button)
        if submitting:
            await self.uncheck_follow_company()
            if self.dry_run:
                logger.info("[NAV] Dry run: stopping before submit")
                return NavigationResult(success=True, state=ModalState.SUBMIT, dry_run_stop=True)

        try:
            await resilient_click(button, self.app_config, name="submit" if submitting else "primary")
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            return NavigationResult(success=False, state=await self.get_modal_state(), error=f"Click failed: {e}")

        try:
            await button.wait_for(state="detached", timeout=self.timeouts.detach_timeout)
        except PlaywrightTimeoutError:
            logger.debug("[NAV] Primary button still attached after click")
        except PlaywrightError as e:
            raise_if_browser_closed(e)

        errors = await self.get_validation_errors()
        if errors:
            logger.warning(f"[NAV] Step rejected with {len(errors)} validation error(s)")
            return NavigationResult(
                success=False,
                state=ModalState.ERROR,
                error="Validation errors",
                validation_errors=errors,
            )

        if await self._handle_save_dialog():
            return NavigationResult(success=True, state=await self.get_modal_state())

        state = await self.get_modal_state()
        if state == ModalState.SUCCESS or (submitting and state == ModalState.CLOSED):
            structured_logger.info("application_submitted", state=state.value)
            return NavigationResult(success=True, state=state, submitted=True)
        logger.debug(f"[NAV] Clicked primary button -> {state.value}")
        return NavigationResult(success=True, state=state)

    async def _confirm_discard(self) -> None:
        button = await self._first_visible("discard_confirm_button")
        if button is None:
            return
        text = ((await button.text_content()) or "").lower()
        if any(word in text for word in DISCARD_TEXT) or await button.get_attribute("data-test-dialog-secondary-btn") is not None:
            await button.click()
            await self.page.wait_for_timeout(self.timeouts.medium_wait)
            logger.debug("[NAV] Discarded the application draft")

    async def close_modal(self) -> bool:
        """Dismiss the form (button, else Escape) and confirm discarding the draft."""
        try:
            dismiss = await self._first_visible("dismiss_button")
            if dismiss is not None:
                await dismiss.click()
            else:
                await self.page.keyboard.press("Escape")
            await self.page.wait_for_timeout(self.timeouts.medium_wait)
            await self._confirm_discard()
            return True
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.error(f"[NAV] Error closing modal: {e}")
            return False
