from unittest.mock import MagicMock

import pybreaker
import pytest

from easy_apply.exceptions import AnswerUnavailableError
from easy_apply.models import Job
from llm.answerer import LLMAnswerer
from llm.exceptions import CoverLetterGenerationError, LLMGenerationError


@pytest.fixture
def llm():
    client = MagicMock()
    client.generate_response.return_value = "Boston"
    return client


@pytest.fixture
def answerer(llm, profile, app_config):
    return LLMAnswerer(llm, profile, app_config, breaker=pybreaker.CircuitBreaker(fail_max=5))


@pytest.mark.asyncio
async def test_textual_answer_is_unquoted(answerer, llm):
    llm.generate_response.return_value = '  "Boston, MA"  '

    assert await answerer.answer_textual("Which city do you live in?") == "Boston, MA"


@pytest.mark.asyncio
async def test_system_message_carries_resume_and_job(answerer, llm):
    answerer.set_job_context({"title": "Backend Engineer", "company": "Acme", "description": ""})

    await answerer.answer_textual("Why Acme?")

    prompt, system_message = llm.generate_response.call_args.args
    assert "Why Acme?" in prompt
    assert "company: Acme" in system_message
    assert "description" not in system_message
    assert "Lovelace" in system_message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply, expected",
    [
        ("7", 7),
        ("About 4.5 years", 4.5),
        ("2,5", 2.5),
        ("none", 3),
    ],
)
async def test_numeric_answer_parsing(answerer, llm, reply, expected):
    llm.generate_response.return_value = reply

    assert await answerer.answer_numeric("Years of Python experience?") == expected


@pytest.mark.asyncio
async def test_option_answer_is_mapped_to_an_option(answerer, llm):
    llm.generate_response.return_value = "yes."

    assert await answerer.answer_from_options("Are you authorized to work?", ["Yes", "No"]) == "Yes"


@pytest.mark.asyncio
async def test_option_answer_outside_the_list_is_unavailable(answerer, llm):
    llm.generate_response.return_value = "Purple"

    with pytest.raises(AnswerUnavailableError, match="matches none of the options"):
        await answerer.answer_from_options("Are you authorized to work?", ["Yes", "No"])


@pytest.mark.asyncio
async def test_no_options_is_unavailable(answerer, llm):
    with pytest.raises(AnswerUnavailableError):
        await answerer.answer_from_options("Pick one", [])
    llm.generate_response.assert_not_called()


@pytest.mark.asyncio
async def test_retry_prompt_includes_error_and_previous_answer(answerer, llm):
    llm.generate_response.return_value = "617-555-0100"

    answer = await answerer.answer_textual_with_retry("Phone", "6175550100", "Enter a valid phone number")

    assert answer == "617-555-0100"
    prompt = llm.generate_response.call_args.args[0]
    assert "6175550100" in prompt
    assert "Enter a valid phone number" in prompt


@pytest.mark.asyncio
async def test_checkbox_indices_are_filtered_and_sorted(answerer, llm):
    llm.generate_response.return_value = "3, 1, 1 and 9"

    assert await answerer.answer_checkbox_selection("Skills", ["Python", "Go", "Rust"]) == [1, 3]


@pytest.mark.asyncio
async def test_checkbox_without_indices_is_unavailable(answerer, llm):
    llm.generate_response.return_value = "none of them"

    with pytest.raises(AnswerUnavailableError):
        await answerer.answer_checkbox_selection("Skills", ["Python", "Go"])


@pytest.mark.asyncio
async def test_empty_reply_is_unavailable(answerer, llm):
    llm.generate_response.return_value = '""'

    with pytest.raises(AnswerUnavailableError, match="empty AI response"):
        await answerer.answer_textual("Anything else?")


@pytest.mark.asyncio
async def test_generation_error_is_unavailable(answerer, llm):
    llm.generate_response.side_effect = LLMGenerationError(provider="openai", model="gpt-4o-mini")

    with pytest.raises(AnswerUnavailableError, match="Provider: openai"):
        await answerer.answer_textual("Why us?")


@pytest.mark.asyncio
async def test_open_breaker_fails_fast(answerer, llm):
    answerer.breaker.open()

    with pytest.raises(AnswerUnavailableError, match="circuit breaker is open"):
        await answerer.answer_textual("Why us?")
    llm.generate_response.assert_not_called()


@pytest.mark.asyncio
async def test_breaker_opens_after_repeated_failures(llm, profile, app_config):
    answerer = LLMAnswerer(llm, profile, app_config, breaker=pybreaker.CircuitBreaker(fail_max=2))
    llm.generate_response.side_effect = LLMGenerationError(provider="openai")

    for _ in range(2):
        with pytest.raises(AnswerUnavailableError):
            await answerer.answer_textual("Why us?")

    assert answerer.breaker.current_state == pybreaker.STATE_OPEN


@pytest.mark.asyncio
async def test_cover_letter_failure_is_unavailable(answerer, monkeypatch):
    job = Job(title="Backend Engineer", company="Acme", location="Remote", link="https://x/jobs/view/1/")

    def failing(job, profile, llm):
        raise CoverLetterGenerationError(job.title, job.company)

    monkeypatch.setattr("llm.answerer.generate_cover_letter", failing)

    with pytest.raises(AnswerUnavailableError) as exc_info:
        await answerer.write_cover_letter(job)

    assert exc_info.value.question == "cover_letter"
