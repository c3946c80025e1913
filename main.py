import asyncio
import logging
import sys

from playwright.async_api import async_playwright

# It's important to set up logging before other imports that might use it.
from core.logger import setup_logging
from config import AppConfig, config

setup_logging()
logger = logging.getLogger(__name__)


def validate_requirements(app_config: AppConfig) -> list[str]:
    """
    Check what the run needs before the browser starts.

    Returns:
        Human-readable problems; empty when the run can start.
    """
    problems = []
    if app_config.llm.requires_api_key() and not app_config.llm.LLM_API_KEY:
        problems.append(f"LLM_API_KEY is required for provider '{app_config.llm.LLM_PROVIDER}'")
    if not app_config.easy_apply.resume_path.exists():
        problems.append(f"Resume file not found: {app_config.easy_apply.resume_path}")
    return problems


async def run_session(app_config: AppConfig, browser_context) -> None:
    """Wire the engine for one run and execute it on the first page of the context."""
    from core.status_reporter import StatusReporter
    from core.storage import RunStorage
    from easy_apply.answer_memory import AnswerMemory
    from easy_apply.documents import DocumentProvider
    from easy_apply.navigation import NavigationStateMachine
    from easy_apply.normalizer import QuestionNormalizer
    from easy_apply.page_filler import FormPageFiller
    from easy_apply.session import ApplicationSession
    from easy_apply.smart_matcher import SmartFieldMatcher
    from easy_apply.strategies import StrategyContext, build_strategies
    from llm.answerer import LLMAnswerer
    from llm.client_factory import get_llm_client
    from llm.resume_utils import load_resume_profile
    from phases.orchestrator import SearchOrchestrator

    page = browser_context.pages[0] if browser_context.pages else await browser_context.new_page()

    profile = load_resume_profile(app_config.easy_apply.resume_profile_path)
    storage = RunStorage(app_config.storage.output_dir, app_config.storage.answers_file)
    normalizer = QuestionNormalizer()
    memory = AnswerMemory(normalizer=normalizer, records=storage.load_answers(), persist=storage.persist_answer)
    matcher = SmartFieldMatcher(profile, normalizer)
    answerer = LLMAnswerer(get_llm_client(app_config.llm), profile, app_config, normalizer=normalizer)
    documents = DocumentProvider(app_config, answerer=answerer)

    ctx = StrategyContext(
        page=page,
        answerer=answerer,
        memory=memory,
        app_config=app_config,
        normalizer=normalizer,
        matcher=matcher,
        documents=documents,
    )
    filler = FormPageFiller(page, build_strategies(ctx), app_config)
    navigator = NavigationStateMachine(page, app_config)
    session = ApplicationSession(page, app_config, answerer, filler, navigator, documents=documents)

    reporter = StatusReporter(app_config.status.stop_file)
    reporter.start_session()
    orchestrator = SearchOrchestrator(page, app_config, session, storage, reporter, normalizer=normalizer)
    await orchestrator.run()


# --- Main Orchestrator ---
async def main():
    """Main entry point for the LinkedIn Easy Apply bot."""
    from easy_apply.exceptions import BrowserDisconnectedError
    from llm.exceptions import ResumeReadError

    problems = validate_requirements(config)
    if problems:
        for problem in problems:
            logger.error(problem)
        sys.exit(1)

    mode = "DRY RUN" if config.easy_apply.dry_run else "SUBMIT"
    logger.info(f"Bot starting in {mode} mode")
    config.session.user_data_dir.mkdir(parents=True, exist_ok=True)

    async with async_playwright() as p:
        logger.info(f"Launching browser with persistent context from: {config.session.user_data_dir}")
        context = await p.chromium.launch_persistent_context(
            str(config.session.user_data_dir),
            headless=config.session.browser_headless,
            slow_mo=config.session.slow_mo_ms,
            args=["--disable-setuid-sandbox", "--no-sandbox"],
        )
        try:
            await run_session(config, context)
        except ResumeReadError as e:
            logger.error(f"Could not load resume profile: {e}")
            sys.exit(1)
        except BrowserDisconnectedError as e:
            logger.critical(f"Browser disconnected, aborting run: {e}")
            sys.exit(2)
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.debug(f"Browser context already closed: {e}")


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
