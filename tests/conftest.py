import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Adjust the python path to import the project modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import AppConfig
from easy_apply.answer_memory import AnswerMemory
from easy_apply.normalizer import QuestionNormalizer
from easy_apply.smart_matcher import SmartFieldMatcher
from easy_apply.strategies import StrategyContext
from llm.schemas import Education, PersonalInformation, ResumeProfile


def with_section(app_config: AppConfig, section: str, **updates) -> AppConfig:
    """Copy of ``app_config`` with fields of one nested section replaced."""
    updated = getattr(app_config, section).model_copy(update=updates)
    return app_config.model_copy(update={section: updated})


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Default configuration with fast waits and output under tmp_path."""
    cfg = AppConfig()
    cfg = with_section(
        cfg,
        "performance",
        short_wait=0,
        medium_wait=0,
        long_wait=0,
        selector_timeout=10,
        modal_wait_timeout=10,
        spinner_timeout=10,
        detach_timeout=10,
    )
    cfg = with_section(cfg, "resilience", max_attempts=1, initial_wait=0, max_wait=0, jitter=False)
    cfg = with_section(cfg, "storage", output_dir=tmp_path / "output", answers_file=tmp_path / "output" / "answers.csv")
    return with_section(cfg, "easy_apply", dry_run=False, tailor_resume=False, generated_documents_dir=tmp_path / "generated")


@pytest.fixture
def normalizer() -> QuestionNormalizer:
    return QuestionNormalizer()


@pytest.fixture
def profile() -> ResumeProfile:
    return ResumeProfile(
        personal_information=PersonalInformation(
            name="Ada",
            surname="Lovelace",
            email="ada@example.com",
            city="Boston",
            phone="+1 6175550100",
            phone_prefix="+1",
            phone_national="6175550100",
            github="https://github.com/ada",
        ),
        education_details=[Education(degree="MSc", university="Massachusetts Institute of Technology")],
        skills=["Python", "Playwright"],
    )


@pytest.fixture
def fake_answerer(profile):
    """AI answerer double; every answering coroutine is an AsyncMock."""
    answerer = MagicMock()
    answerer.profile = profile
    answerer.answer_textual = AsyncMock(return_value="AI answer")
    answerer.answer_textual_with_retry = AsyncMock(return_value="AI corrected answer")
    answerer.answer_numeric = AsyncMock(return_value=3)
    answerer.answer_numeric_with_retry = AsyncMock(return_value=5)
    answerer.answer_from_options = AsyncMock(return_value="Yes")
    answerer.answer_from_options_with_retry = AsyncMock(return_value="No")
    answerer.answer_checkbox_selection = AsyncMock(return_value=[1])
    answerer.tailor_resume_to_job = AsyncMock(return_value="")
    answerer.set_job_context = MagicMock()
    return answerer


@pytest.fixture
def mock_page():
    """Playwright page double whose waits return immediately."""
    page = MagicMock()
    page.wait_for_timeout = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.keyboard.press = AsyncMock()
    return page


@pytest.fixture
def memory(normalizer) -> AnswerMemory:
    return AnswerMemory(normalizer=normalizer)


@pytest.fixture
def strategy_ctx(mock_page, fake_answerer, memory, app_config, normalizer, profile) -> StrategyContext:
    return StrategyContext(
        page=mock_page,
        answerer=fake_answerer,
        memory=memory,
        app_config=app_config,
        normalizer=normalizer,
        matcher=SmartFieldMatcher(profile, normalizer),
    )


def async_locator(count: int = 1, **methods) -> MagicMock:
    """
    Locator double: ``count`` plus any async methods given as return values.

    ``first`` and ``nth()`` return the locator itself unless overridden.
    """
    locator = MagicMock()
    locator.count = AsyncMock(return_value=count)
    locator.first = locator
    locator.nth = MagicMock(return_value=locator)
    for name, value in methods.items():
        setattr(locator, name, AsyncMock(return_value=value))
    return locator


@pytest.fixture
def make_locator():
    return async_locator


@pytest.fixture
def configure():
    return with_section
