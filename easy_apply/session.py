"""
Application Session Controller: one Easy Apply attempt for one job.

Opens the job page, reads the description, optionally starts resume
tailoring in the background, opens the form and walks it step by step
(fill, then primary button) until it is submitted, rejected or the page
limit is hit. Failures close the form so the next job starts clean.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config import AppConfig
from core.logger import bind_context, get_structured_logger
from core.resilience import resilient_click
from core.selectors import catalog
from core.utils import construct_full_url, human_delay, wait_for_any_selector
from easy_apply.documents import DocumentProvider, PendingResume
from easy_apply.exceptions import (
    AlreadyAppliedError,
    BrowserDisconnectedError,
    EasyApplyError,
    NavigationError,
    PageLimitExceededError,
)
from easy_apply.field_utils import raise_if_browser_closed
from easy_apply.models import ApplicationResult, Job
from easy_apply.navigation import NavigationStateMachine
from easy_apply.page_filler import FormPageFiller
from easy_apply.strategies import Answerer
from llm.resume_utils import parse_tailored_resume, resume_to_yaml, save_resume_docx

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)

MODAL_OPEN_FAILED = "Could not open Easy Apply modal"
ALREADY_APPLIED = "Already applied to this job"
POST_SUBMIT_WAIT_MS = 2000
MODAL_RETRY_WAIT_MS = 3000


class ApplicationSession:
    """Applies to one job at a time on a shared page."""

    def __init__(
        self,
        page: Page,
        app_config: AppConfig,
        answerer: Answerer,
        filler: FormPageFiller,
        navigator: NavigationStateMachine,
        documents: Optional[DocumentProvider] = None,
    ):
        self.page = page
        self.app_config = app_config
        self.answerer = answerer
        self.filler = filler
        self.navigator = navigator
        self.documents = documents
        self.settings = app_config.easy_apply
        self.timeouts = app_config.performance

    async def apply(self, job: Job) -> ApplicationResult:
        """
        Apply to ``job``.

        Returns:
            ApplicationResult. ``already_applied`` is set (and the form never
            opened) when the page shows a previous application.

        Raises:
            BrowserDisconnectedError: if the browser went away.
        """
        job_logger = bind_context(structured_logger, job_title=job.title, company=job.company)
        job_logger.info("job_application_started", link=job.link)
        result = ApplicationResult(success=False, job_title=job.title, company=job.company)

        try:
            await self.page.goto(job.link, wait_until="domcontentloaded", timeout=self.timeouts.navigation_timeout)
            await human_delay(self.timeouts.long_wait, self.timeouts.long_wait + 500)

            description = await self.get_job_description()
            if description:
                job.description = description
                logger.debug(f"[SESSION] Job description extracted: {len(description)} chars")

            if self.documents is not None:
                self.documents.begin_job(job, self.start_tailoring(job))

            await self.open_easy_apply_modal(job)
            self.set_job_context(job)
            await self.process_all_pages(result)
            if not result.success:
                await self.cleanup_failure()

        except AlreadyAppliedError:
            logger.info(f"[SESSION] Skipping '{job.title}': already applied")
            result.already_applied = True
            result.error = ALREADY_APPLIED
        except BrowserDisconnectedError:
            raise
        except PlaywrightTimeoutError as e:
            logger.error(f"[SESSION] Timeout while applying to '{job.title}': {e}")
            result.error = f"Timeout: {e}"
            await self.cleanup_failure()
        except EasyApplyError as e:
            logger.error(f"[SESSION] {e}")
            result.error = str(e)
            await self.cleanup_failure()
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.error(f"[SESSION] Browser error while applying to '{job.title}': {e}")
            result.error = str(e)
            await self.cleanup_failure()
        except Exception as e:
            logger.error(f"[SESSION] Unexpected error while applying to '{job.title}': {e}", exc_info=True)
            result.error = str(e)
            await self.cleanup_failure()
        finally:
            if self.documents is not None:
                await self.documents.end_job()

        job_logger.info(
            "job_application_finished",
            success=result.success,
            submitted=result.submitted,
            pages=result.pages_completed,
            fields=result.total_fields,
            failed_fields=result.failed_fields,
            error=result.error,
        )
        return result

    def start_tailoring(self, job: Job) -> Optional[PendingResume]:
        """Start background resume tailoring when enabled and possible."""
        if not self.settings.tailor_resume:
            return None
        if not job.description or getattr(self.answerer, "profile", None) is None:
            logger.debug("[SESSION] Tailoring skipped: no description or no resume profile")
            return None
        logger.info(f"[SESSION] Tailoring resume for '{job.title}' in the background")
        return PendingResume.start(self.tailor_resume(job), fallback=self.settings.resume_path)

    async def tailor_resume(self, job: Job) -> Path:
        """Tailored resume document for ``job``; raises on any failure."""
        base_yaml = resume_to_yaml(self.answerer.profile)
        tailored_yaml = await self.answerer.tailor_resume_to_job(job.description or "", base_yaml)
        profile = parse_tailored_resume(tailored_yaml)
        stem = f"resume_{(job.company or 'company').lower().replace(' ', '_')}"[:80]
        path = await asyncio.to_thread(
            save_resume_docx, profile, self.settings.generated_documents_dir, stem
        )
        if self.documents is not None:
            self.documents.track_generated(path)
        return path

    def set_job_context(self, job: Job) -> None:
        description = (job.description or "")[: self.settings.max_description_chars]
        self.answerer.set_job_context(
            {
                "title": job.title,
                "company": job.company,
                "location": job.location,
                "description": description or "N/A",
            }
        )

    async def get_job_description(self) -> str:
        """Expand "show more" and read the first description container with text."""
        try:
            more = self.page.locator(catalog.css("show_more_description")).first
            if await more.is_visible():
                await more.click()
                await self.page.wait_for_timeout(self.timeouts.short_wait)
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.debug(f"[SESSION] 'Show more' not expanded: {e}")

        selectors = catalog.get("job_description")
        await wait_for_any_selector(self.page, selectors, timeout=self.timeouts.selector_timeout, state="attached")
        for selector in selectors:
            try:
                node = self.page.locator(selector).first
                if await node.count() == 0:
                    continue
                text = ((await node.text_content()) or "").strip()
                if text:
                    return text
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                logger.debug(f"[SESSION] Description selector '{selector}' failed: {e}")
        logger.warning("[SESSION] Could not find the job description")
        return ""

    async def is_already_applied(self) -> bool:
        for selector in catalog.get("already_applied_indicator"):
            try:
                indicator = self.page.locator(selector).first
                if await indicator.count() > 0 and await indicator.is_visible():
                    text = ((await indicator.text_content()) or "").strip()
                    logger.info(f"[SESSION] Already applied indicator found: '{text}'")
                    return True
            except PlaywrightError as e:
                raise_if_browser_closed(e)
        return False

    async def is_job_closed(self) -> bool:
        try:
            closed = self.page.locator(catalog.css("job_closed_indicator")).first
            return await closed.count() > 0
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            return False

    async def find_apply_button(self) -> Optional[Locator]:
        selectors = catalog.get("easy_apply_button")
        await wait_for_any_selector(self.page, selectors, timeout=self.timeouts.selector_timeout, state="attached")
        for selector in selectors:
            buttons = self.page.locator(selector)
            try:
                for index in range(await buttons.count()):
                    button = buttons.nth(index)
                    if await button.is_visible() and await button.is_enabled():
                        logger.debug(f"[SESSION] Easy Apply control found with '{selector}'")
                        return button
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                logger.debug(f"[SESSION] Apply selector '{selector}' failed: {e}")
        return None

    async def wait_for_modal(self) -> bool:
        container = catalog.css("modal_container")
        attempts = self.timeouts.modal_wait_attempts
        for attempt in range(1, attempts + 1):
            logger.debug(f"[SESSION] Modal wait attempt {attempt}/{attempts}")
            try:
                await self.page.wait_for_selector(container, state="visible", timeout=self.timeouts.modal_wait_timeout)
                return True
            except PlaywrightTimeoutError:
                if attempt < attempts:
                    await self.page.wait_for_timeout(MODAL_RETRY_WAIT_MS)
        return False

    async def open_easy_apply_modal(self, job: Job) -> None:
        """
        Open the application form.

        Raises:
            AlreadyAppliedError: the page shows a previous application.
            NavigationError: no apply control, or the form never appeared.
        """
        if await self.is_already_applied():
            raise AlreadyAppliedError(job.link)

        button = await self.find_apply_button()
        if button is None:
            if await self.is_job_closed():
                logger.warning("[SESSION] Job no longer accepts applications")
            else:
                logger.warning("[SESSION] Easy Apply button not found")
            raise NavigationError(MODAL_OPEN_FAILED)

        href = await button.get_attribute("href")
        if href:
            logger.info("[SESSION] Following Easy Apply link")
            await self.page.goto(
                construct_full_url(href), wait_until="domcontentloaded", timeout=self.timeouts.navigation_timeout
            )
        else:
            logger.info("[SESSION] Clicking Easy Apply button")
            await resilient_click(button, self.app_config, name="easy_apply_button")

        if not await self.wait_for_modal():
            logger.error(f"[SESSION] Modal did not appear after {self.timeouts.modal_wait_attempts} attempts")
            raise NavigationError(MODAL_OPEN_FAILED)
        await self.navigator.wait_for_modal_ready()

    async def _run_steps(self, result: ApplicationResult) -> None:
        max_pages = self.settings.max_pages
        max_retries = self.settings.max_retries
        retries = 0
        retry_mode = False

        for step in range(1, max_pages + 1):
            logger.info(f"[SESSION] ===== Step {step} =====")
            if not await self.navigator.is_modal_open():
                logger.info("[SESSION] Modal closed, application complete")
                result.success = True
                return

            page_result = await self.filler.fill_current_page(retry_mode=retry_mode)
            result.total_fields += page_result.fields_processed
            result.failed_fields += page_result.fields_failed

            nav = await self.navigator.click_primary_button()
            if nav.dry_run_stop:
                logger.info("[SESSION] Dry run: application not submitted")
                result.pages_completed = step
                result.success = True
                await self.navigator.close_modal()
                return

            if not nav.success:
                if nav.validation_errors:
                    retries += 1
                    if retries > max_retries:
                        raise NavigationError(
                            f"Validation errors: {', '.join(nav.validation_errors)}", nav.validation_errors
                        )
                    logger.warning(f"[SESSION] Validation errors on step {step}, retry {retries}/{max_retries}")
                    retry_mode = True
                    continue
                raise NavigationError(nav.error or "Navigation failed")

            if nav.submitted:
                result.pages_completed = step
                result.submitted = True
                result.success = True
                logger.info("[SESSION] Application submitted, waiting for the page to settle")
                await self.page.wait_for_timeout(POST_SUBMIT_WAIT_MS)
                return

            await self.page.wait_for_timeout(self.timeouts.long_wait)
            result.pages_completed = step
            if not await self.navigator.is_modal_open():
                logger.info("[SESSION] Modal closed after navigation, application complete")
                result.success = True
                return
            retries = 0
            retry_mode = False
            await self.navigator.wait_for_modal_ready()

        raise PageLimitExceededError(max_pages)

    async def process_all_pages(self, result: ApplicationResult) -> ApplicationResult:
        """
        Walk the form until it is submitted or fails.

        Returns:
            ``result`` with success, error, page and field counters filled in.
            Rejected steps are refilled up to ``max_retries`` times in a row;
            more than ``max_pages`` steps fail with "Exceeded maximum pages (N)".
        """
        try:
            await self._run_steps(result)
        except (NavigationError, PageLimitExceededError) as e:
            logger.error(f"[SESSION] {e}")
            result.success = False
            result.error = str(e)
        return result

    async def cleanup_failure(self) -> None:
        """Close a form left open by a failed attempt."""
        try:
            if await self.navigator.is_modal_open():
                await self.navigator.close_modal()
        except BrowserDisconnectedError:
            raise
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.warning(f"[SESSION] Cleanup after failure did not complete: {e}")
