"""
Search/Application Orchestrator.

Walks every (position, location) search in random order, pages through the
results until several pages in a row come back empty, and hands each eligible
job to the Application Session. Every job handed out ends up in exactly one
outcome bucket (success, failed or skipped).
"""
import logging
import random
import time
from itertools import product
from typing import Awaitable, Callable, List, Optional, Set

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from actions.fetch_jobs import fetch_page_jobs, offers_easy_apply
from config import AppConfig
from core.logger import bind_context, get_structured_logger
from core.status_reporter import StatusReporter
from core.storage import RunStorage
from core.utils import human_delay
from easy_apply.exceptions import BrowserDisconnectedError
from easy_apply.field_utils import raise_if_browser_closed
from easy_apply.models import ApplicationResult, Job, JobOutcome, SearchCombination
from easy_apply.normalizer import QuestionNormalizer
from easy_apply.session import MODAL_OPEN_FAILED, ApplicationSession

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)

FetchJobs = Callable[[Page, AppConfig, SearchCombination, int], Awaitable[List[Job]]]

FAILED_JOB_DELAY_MS = (3000, 5000)
PAGE_DELAY_MS = (1000, 2500)


class SearchOrchestrator:
    """Runs the whole search-and-apply session on one page."""

    def __init__(
        self,
        page: Page,
        app_config: AppConfig,
        session: ApplicationSession,
        storage: RunStorage,
        reporter: StatusReporter,
        normalizer: Optional[QuestionNormalizer] = None,
        fetch_jobs: FetchJobs = fetch_page_jobs,
        rng: Optional[random.Random] = None,
    ):
        self.page = page
        self.app_config = app_config
        self.session = session
        self.storage = storage
        self.reporter = reporter
        self.normalizer = normalizer or QuestionNormalizer()
        self.fetch_jobs = fetch_jobs
        self.rng = rng or random.Random()
        self.seen_links: Set[str] = set()
        self.jobs_processed = 0
        self.stopped = False
        self._last_heartbeat = time.monotonic()

        search = app_config.job_search
        self.company_blacklist = {self.normalizer.normalize_text(c) for c in search.company_blacklist if c.strip()}
        self.title_blacklist = [self.normalizer.normalize_text(t) for t in search.title_blacklist if t.strip()]

    def search_combinations(self) -> List[SearchCombination]:
        """All (position, location) pairs in random order."""
        search = self.app_config.job_search
        combinations = [SearchCombination(p, l) for p, l in product(search.positions, search.locations)]
        self.rng.shuffle(combinations)
        return combinations

    def is_blacklisted(self, job: Job) -> bool:
        """
        True for an already-seen link, a blacklisted company or a blacklisted title.

        Company names must match a blacklist entry exactly after normalization
        (case, accents, punctuation, whitespace). A title is blacklisted when it
        contains a blacklist phrase as whole words.
        """
        if job.link in self.seen_links:
            return True
        if self.normalizer.normalize_text(job.company) in self.company_blacklist:
            return True
        title = f" {self.normalizer.normalize_text(job.title)} "
        return any(f" {phrase} " in title for phrase in self.title_blacklist if phrase)

    def _heartbeat(self, stage: str, **details) -> bool:
        self._last_heartbeat = time.monotonic()
        if self.reporter.send_heartbeat(stage, details):
            return True
        self.stopped = True
        return False

    def _heartbeat_due(self) -> bool:
        interval = self.app_config.status.heartbeat_interval_seconds
        return time.monotonic() - self._last_heartbeat >= interval

    def record(self, outcome: JobOutcome, job: Job) -> None:
        self.jobs_processed += 1
        if outcome == JobOutcome.SUCCESS:
            self.reporter.record_applied()
        elif outcome == JobOutcome.FAILED:
            self.reporter.record_failed()
        else:
            self.reporter.record_skipped()
        try:
            self.storage.record_job(outcome, job)
        except OSError as e:
            logger.error(f"Could not record {outcome.value} job '{job.title}': {e}")

    def outcome_for(self, result: ApplicationResult) -> JobOutcome:
        if result.already_applied:
            return JobOutcome.SKIPPED
        if result.success:
            return JobOutcome.SUCCESS
        if result.error and MODAL_OPEN_FAILED in result.error:
            return JobOutcome.SKIPPED
        return JobOutcome.FAILED

    async def handle_job(self, job: Job) -> None:
        if not offers_easy_apply(job.apply_method):
            logger.info(f"No Easy Apply action for '{job.title}' ({job.apply_method}), skipping")
            self.record(JobOutcome.SKIPPED, job)
            return
        if self.is_blacklisted(job):
            logger.warning(f"Blacklisted or seen: '{job.title}' at '{job.company}', skipping")
            self.record(JobOutcome.SKIPPED, job)
            return

        # Attempted once per run, whatever the outcome
        self.seen_links.add(job.link)
        result = await self.session.apply(job)
        outcome = self.outcome_for(result)
        self.record(outcome, job)
        if outcome == JobOutcome.FAILED:
            logger.error(f"Application failed for '{job.title}' at '{job.company}': {result.error}")
            await human_delay(*FAILED_JOB_DELAY_MS)

    async def process_combination(self, combination: SearchCombination) -> None:
        """
        Page through one search until it runs dry or the run is stopped.

        A Playwright error on a result page ends this search only; the run
        moves on to the next combination unless the browser is gone.
        """
        max_empty_pages = self.app_config.job_search.max_empty_pages
        page_number = 0
        empty_pages = 0

        while empty_pages < max_empty_pages and not self.stopped:
            try:
                jobs = await self.fetch_jobs(self.page, self.app_config, combination, page_number)
                page_number += 1
                if not jobs:
                    empty_pages += 1
                    logger.info(f"Empty result page ({empty_pages}/{max_empty_pages})")
                    continue
                empty_pages = 0

                self.reporter.increment_jobs_found(len(jobs))
                if not self._heartbeat("jobs_found", count=len(jobs)):
                    return

                for job in jobs:
                    if self._heartbeat_due() and not self._heartbeat(
                        "applying_jobs",
                        position=combination.position,
                        location=combination.location,
                        page=page_number,
                    ):
                        return
                    await self.handle_job(job)

                await human_delay(*PAGE_DELAY_MS)
            except PlaywrightError as e:
                raise_if_browser_closed(e)
                logger.error(f"Error on result page {page_number + 1} of '{combination.position}': {e}")
                bind_context(structured_logger, position=combination.position, location=combination.location).error(
                    "search_page_failed", page=page_number, error=str(e)
                )
                return

    async def run(self) -> None:
        """
        Run every search combination.

        Raises:
            BrowserDisconnectedError: if the browser went away; the session is
                reported as failed first.
        """
        run_logger = bind_context(structured_logger, dry_run=self.app_config.easy_apply.dry_run)
        combinations = self.search_combinations()
        run_logger.info("search_started", combinations=len(combinations))

        try:
            for combination in combinations:
                logger.info(f"Starting search for '{combination.position}' in '{combination.location}'")
                if not self._heartbeat(
                    "searching_jobs", position=combination.position, location=combination.location
                ):
                    logger.warning("Session stopped by user during job search")
                    self.reporter.complete_session(False, "Stopped by user during search")
                    return
                await self.process_combination(combination)
                if self.stopped:
                    logger.warning("Session stopped by user")
                    self.reporter.complete_session(False, "Stopped by user")
                    return
        except BrowserDisconnectedError as e:
            run_logger.error("browser_disconnected", error=str(e))
            self.reporter.complete_session(False, f"Browser disconnected: {e}")
            raise

        if self.reporter.stats.jobs_found == 0:
            self.reporter.complete_session(True, "No matching jobs found")
        else:
            self.reporter.complete_session(True, f"Processed {self.jobs_processed} jobs")
        run_logger.info("search_finished", processed=self.jobs_processed)
