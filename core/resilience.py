"""
Resilience patterns for the Easy Apply engine.

- Retry with exponential backoff for flaky page interactions (tenacity)
- Circuit breaker around AI calls so a failing provider degrades to
  "answer unavailable" quickly instead of stalling every field (pybreaker)
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar

import pybreaker
import structlog
from playwright.async_api import Locator
from tenacity import (
    after_log,
    before_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from config import AppConfig
from core.logger import bind_context, get_structured_logger
from core.utils import is_browser_closed_error

T = TypeVar("T")

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


def _is_retryable(error: BaseException) -> bool:
    # A closed browser never comes back; let it propagate immediately
    return not is_browser_closed_error(error)


def build_retry_config(app_config: AppConfig, max_attempts: Optional[int] = None) -> Dict[str, Any]:
    """
    Build tenacity keyword arguments from the resilience section of the config.

    Args:
        app_config: The application configuration object.
        max_attempts: Optional override of the configured attempt count.

    Returns:
        Keyword arguments for ``tenacity.retry``.
    """
    settings = app_config.resilience
    wait = wait_exponential(
        multiplier=settings.initial_wait,
        min=settings.initial_wait,
        max=settings.max_wait,
        exp_base=settings.exponential_base,
    )
    if settings.jitter:
        wait = wait + wait_random(0, settings.initial_wait)
    return {
        "stop": stop_after_attempt(max_attempts or settings.max_attempts),
        "wait": wait,
        "retry": retry_if_exception(_is_retryable),
        "reraise": True,
        "before": before_log(logger, logging.DEBUG),
        "after": after_log(logger, logging.DEBUG),
    }


async def resilient_click(
    locator: Locator,
    app_config: AppConfig,
    name: str = "click",
    timeout: Optional[int] = None,
    max_attempts: Optional[int] = None,
    force_on_retry: bool = True,
) -> None:
    """
    Click an element, retrying on transient failures.

    The first attempt is a normal click. Later attempts scroll the element into
    view and, when ``force_on_retry`` is set, bypass actionability checks since
    the usual cause is an overlay intercepting the pointer.

    Raises:
        The last Playwright error once all attempts are exhausted.
    """
    if timeout is None:
        timeout = app_config.performance.selector_timeout
    op_logger = bind_context(structured_logger, target=name)
    attempt = 0

    @retry(**build_retry_config(app_config, max_attempts))
    async def _click():
        nonlocal attempt
        attempt += 1
        if attempt == 1:
            await locator.click(timeout=timeout)
        else:
            op_logger.debug("click_retry", attempt=attempt)
            try:
                await locator.scroll_into_view_if_needed(timeout=timeout)
            except Exception as e:
                if is_browser_closed_error(e):
                    raise
                op_logger.debug("scroll_into_view_failed", error=str(e))
            await locator.click(timeout=timeout, force=force_on_retry)

    try:
        await _click()
    except Exception as e:
        op_logger.warning("click_failed_all_retries", attempts=attempt, error=str(e))
        raise


class AIBreakerListener(pybreaker.CircuitBreakerListener):
    """Logs state changes and failures of the AI circuit breaker."""

    def __init__(self, logger: structlog.BoundLogger):
        self.logger = logger

    def state_change(self, breaker, old_state, new_state):
        self.logger.warning(
            "circuit_breaker_state_change",
            breaker=breaker.name,
            old_state=str(old_state.name),
            new_state=str(new_state.name),
        )

    def failure(self, breaker, exc):
        self.logger.error(
            "circuit_breaker_failure",
            breaker=breaker.name,
            error=str(exc),
            failure_count=breaker.fail_counter,
            threshold=breaker.fail_max,
        )

    def success(self, breaker):
        self.logger.debug("circuit_breaker_success", breaker=breaker.name)


def create_ai_breaker(app_config: AppConfig, name: str = "ai_answerer") -> pybreaker.CircuitBreaker:
    """
    Create the circuit breaker used for AI answering calls.

    Args:
        app_config: The application configuration object.
        name: Breaker name used in logs.
    """
    return pybreaker.CircuitBreaker(
        fail_max=app_config.circuit_breaker.failure_threshold,
        reset_timeout=app_config.circuit_breaker.recovery_timeout,
        name=name,
        listeners=[AIBreakerListener(bind_context(structured_logger, breaker=name))],
    )


async def call_blocking_with_breaker(
    breaker: pybreaker.CircuitBreaker,
    func: Callable[..., T],
    *args,
    **kwargs,
) -> T:
    """
    Run a blocking callable in a worker thread behind ``breaker``.

    Raises:
        pybreaker.CircuitBreakerError: when the breaker is open.
        Exception: whatever ``func`` raised.
    """
    start_time = time.time()
    try:
        return await asyncio.to_thread(breaker.call, func, *args, **kwargs)
    finally:
        structured_logger.debug(
            "blocking_call_finished",
            func=getattr(func, "__name__", repr(func)),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
