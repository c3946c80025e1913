import asyncio
import logging
import random
import re
from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)

BASE_URL = "https://www.linkedin.com"

BROWSER_CLOSED_MARKERS = (
    "Target page, context or browser has been closed",
    "Target closed",
    "Browser closed",
    "Browser has been closed",
)


def construct_full_url(relative_path: str) -> str:
    """Constructs a full URL from a relative path."""
    return urljoin(BASE_URL, relative_path)


def strip_query(url: str) -> str:
    """Drops the query string and fragment so job links compare stably."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def collapse_whitespace(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def is_browser_closed_error(error: BaseException) -> bool:
    """True when a Playwright error means the browser/page is gone for good."""
    message = str(error)
    return any(marker in message for marker in BROWSER_CLOSED_MARKERS)


async def wait(time_ms: int):
    """Asynchronously waits for a specified amount of time in milliseconds."""
    await asyncio.sleep(time_ms / 1000.0)


async def human_delay(min_ms: int, max_ms: int):
    """Sleeps for a random duration in [min_ms, max_ms]."""
    await wait(random.randint(min_ms, max_ms))


def unique(items: Iterable[str]) -> list:
    """Order-preserving de-duplication."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


async def wait_for_any_selector(
    page: Page,
    selectors: list,
    timeout: int = 10000,
    state: str = "visible"
) -> Optional[tuple]:
    """
    Waits for ANY of the provided selectors to appear on the page.

    Args:
        page: Playwright page instance.
        selectors: List of CSS selectors to wait for.
        timeout: Maximum time to wait in milliseconds.
        state: Element state to wait for ("visible", "attached", "hidden").

    Returns:
        Tuple of (matched_selector, element_handle) if found, None if timeout.
    """
    async def wait_single(selector: str) -> Optional[tuple]:
        try:
            element: Optional[ElementHandle] = await page.wait_for_selector(
                selector,
                state=state,
                timeout=timeout
            )
            if element:
                return (selector, element)
        except Exception as e:
            logger.debug(f"Selector '{selector}' not found: {e}")
        return None

    if not selectors:
        return None

    tasks = [asyncio.create_task(wait_single(selector)) for selector in selectors]
    pending = set(tasks)
    try:
        while pending:
            done, pending = await asyncio.wait(
                pending,
                return_when=asyncio.FIRST_COMPLETED,
                timeout=timeout / 1000.0
            )
            if not done:
                break
            for task in done:
                result = task.result()
                if result:
                    logger.debug(f"Found element with selector: {result[0]}")
                    return result
        logger.debug(f"None of the selectors found: {selectors}")
        return None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
