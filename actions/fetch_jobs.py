import logging
from typing import List, Optional
from urllib.parse import urlencode

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from config import AppConfig
from core.selectors import FOOTER_HINT_IGNORE, NO_EASY_APPLY_HINTS, NO_RESULTS_TEXT, catalog
from core.utils import collapse_whitespace, construct_full_url, strip_query, wait_for_any_selector
from easy_apply.field_utils import raise_if_browser_closed
from easy_apply.models import Job, SearchCombination

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.linkedin.com/jobs/search/"


def build_search_url(app_config: AppConfig, combination: SearchCombination, page_number: int) -> str:
    """Search URL for one result page (``page_number`` starts at 0)."""
    search = app_config.job_search
    params = {}
    if search.easy_apply_only:
        params["f_AL"] = "true"
    params.update(
        {
            "sortBy": search.sort_by,
            "f_TPR": search.date_posted,
            "distance": search.distance,
            "keywords": combination.position,
            "location": combination.location,
            "start": page_number * search.results_per_page,
        }
    )
    return f"{SEARCH_URL}?{urlencode(params)}"


async def _first_text(tile: Locator, role: str) -> str:
    for selector in catalog.get(role):
        node = tile.locator(selector).first
        if await node.count() > 0:
            text = collapse_whitespace(await node.text_content())
            if text:
                return text
    return ""


async def _apply_method(tile: Locator) -> str:
    """Footer hint of the tile ("Easy Apply", "Applied", ...), ignoring dates and view counts."""
    items = tile.locator(catalog.css("job_tile_footer"))
    for index in range(await items.count()):
        text = collapse_whitespace(await items.nth(index).text_content())
        if text and not any(hint in text.lower() for hint in FOOTER_HINT_IGNORE):
            return text
    return ""


def offers_easy_apply(apply_method: str) -> bool:
    """False when the footer shows there is no direct Easy Apply action."""
    return apply_method.strip().lower() not in NO_EASY_APPLY_HINTS


async def extract_job_from_tile(tile: Locator) -> Optional[Job]:
    """
    Read one result tile.

    Returns:
        The Job, or None for placeholders and tiles without a link or title.
    """
    try:
        link_node = tile.locator(catalog.css("job_tile_link")).first
        if await link_node.count() == 0:
            return None
        href = await link_node.get_attribute("href")
        title_node = link_node.locator("strong").first
        if await title_node.count() > 0:
            title = collapse_whitespace(await title_node.text_content())
        else:
            title = collapse_whitespace(await link_node.get_attribute("aria-label") or await link_node.text_content())
        if not href or not title:
            return None
        return Job(
            title=title,
            company=await _first_text(tile, "job_tile_company"),
            location=await _first_text(tile, "job_tile_location"),
            link=strip_query(construct_full_url(href)),
            apply_method=await _apply_method(tile),
        )
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        logger.debug(f"Could not read job tile: {e}")
        return None


async def _has_no_results(page: Page) -> bool:
    headline = page.locator(catalog.css("no_results")).first
    if await headline.count() == 0:
        return False
    text = collapse_whitespace(await headline.text_content()).lower()
    return any(phrase in text for phrase in NO_RESULTS_TEXT)


async def _ensure_all_jobs_are_loaded(page: Page) -> None:
    """Scroll the virtualized result list so every tile renders its content."""
    tiles = page.locator(catalog.css("job_tile"))
    try:
        total = await tiles.count()
        for index in range(total):
            await tiles.nth(index).scroll_into_view_if_needed()
            await page.wait_for_timeout(100)
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        logger.debug(f"Scrolling through result tiles stopped early: {e}")


async def fetch_page_jobs(
    page: Page, app_config: AppConfig, combination: SearchCombination, page_number: int
) -> List[Job]:
    """
    Open one search result page and return the jobs of its tiles.

    An empty list means an empty page: no tiles, or the "no results" headline.
    """
    url = build_search_url(app_config, combination, page_number)
    logger.info(f"Navigating to search page {page_number + 1}: {url}")
    await page.goto(url, wait_until="domcontentloaded", timeout=app_config.performance.navigation_timeout)

    found = await wait_for_any_selector(
        page,
        catalog.get("job_tile") + catalog.get("no_results"),
        timeout=app_config.performance.selector_timeout,
        state="attached",
    )
    if not found:
        logger.warning("Timeout waiting for job listings")
        return []
    if await _has_no_results(page):
        logger.info(f"No results for '{combination.position}' in '{combination.location}' (page {page_number + 1})")
        return []

    await _ensure_all_jobs_are_loaded(page)

    jobs: List[Job] = []
    seen_links = set()
    tiles = page.locator(catalog.css("job_tile"))
    total = await tiles.count()
    for index in range(total):
        job = await extract_job_from_tile(tiles.nth(index))
        if job is None or job.link in seen_links:
            continue
        seen_links.add(job.link)
        jobs.append(job)

    logger.info(f"Extracted {len(jobs)} job(s) from {total} tile(s)")
    return jobs
