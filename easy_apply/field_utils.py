"""
Helpers shared by the field strategies and the page filler: question text,
inline field errors and the stable identity of a form group.
"""
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from core.selectors import catalog
from core.utils import collapse_whitespace, is_browser_closed_error
from easy_apply.exceptions import BrowserDisconnectedError

logger = logging.getLogger(__name__)

UNKNOWN_QUESTION = "unknown_question"

# Screen-reader-only copies are removed; aria-hidden spans hold the visible text
VISIBLE_TEXT_JS = """
el => {
    const clone = el.cloneNode(true);
    clone.querySelectorAll('.visually-hidden, .sr-only').forEach(e => e.remove());
    return clone.textContent;
}
"""


def raise_if_browser_closed(error: BaseException) -> None:
    """Convert a closed-browser Playwright error into the fatal engine error."""
    if isinstance(error, BrowserDisconnectedError):
        raise error
    if is_browser_closed_error(error):
        raise BrowserDisconnectedError(str(error)) from error


def dedupe_doubled(text: str) -> str:
    """'Code paysCode pays' -> 'Code pays'."""
    trimmed = text.strip()
    if len(trimmed) < 4:
        return trimmed
    half = len(trimmed) // 2
    if len(trimmed) % 2 == 0 and trimmed[:half] == trimmed[half:]:
        return trimmed[:half].strip()
    return trimmed


async def visible_text(locator: Locator) -> Optional[str]:
    """Text content without screen-reader-only duplicates, or None when empty."""
    try:
        text = await locator.evaluate(VISIBLE_TEXT_JS)
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        text = await locator.text_content()
    text = collapse_whitespace(text)
    return text or None


async def extract_question_text(group: Locator) -> str:
    """
    Find the human-readable question of a form group.

    Sources in order: legend, label, the radio/checkbox/entity-list title
    attributes, the group's aria-label, and finally the input's name.

    Returns:
        The question text, or ``unknown_question``.
    """
    for selector in catalog.get("question_title"):
        try:
            node = group.locator(selector).first
            if await node.count() > 0:
                text = await visible_text(node)
                if text:
                    return dedupe_doubled(text)
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.debug(f"[FIELD] Question source '{selector}' failed: {e}")

    try:
        aria_label = await group.get_attribute("aria-label")
        if aria_label and aria_label.strip():
            return dedupe_doubled(collapse_whitespace(aria_label))

        control = group.locator("input, select, textarea").first
        if await control.count() > 0:
            name = await control.get_attribute("name")
            if name:
                return name
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        logger.debug(f"[FIELD] Attribute fallback failed: {e}")

    return UNKNOWN_QUESTION


async def extract_field_error(group: Locator) -> Optional[str]:
    """Return the inline validation message shown inside ``group``, if any."""
    for selector in catalog.get("field_error"):
        try:
            node = group.locator(selector).first
            if await node.count() > 0:
                text = collapse_whitespace(await node.text_content())
                if text:
                    return text
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.debug(f"[FIELD] Error probe '{selector}' failed: {e}")
    return None


async def stable_key(group: Locator) -> str:
    """
    Identity of a form group that survives re-renders and scrolling.

    Prefers the group's id, then the name of its first control, then the
    first 100 characters of its text.
    """
    try:
        group_id = await group.get_attribute("id")
        if group_id:
            return f"id:{group_id}"
        control = group.locator("input, select, textarea").first
        if await control.count() > 0:
            name = await control.get_attribute("name")
            if name:
                return f"name:{name}"
            control_id = await control.get_attribute("id")
            if control_id:
                return f"control:{control_id}"
        text = collapse_whitespace(await group.text_content())
        return f"text:{text[:100]}"
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        logger.debug(f"[FIELD] Could not compute stable key: {e}")
        return f"unkeyed:{id(group)}"


async def is_visible(locator: Locator) -> bool:
    try:
        return await locator.is_visible()
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        return False


async def input_value(locator: Locator) -> str:
    try:
        return (await locator.input_value()) or ""
    except PlaywrightError as e:
        raise_if_browser_closed(e)
        return ""
