import pytest
from pydantic import ValidationError

from config import AppConfig, EasyApplyConfig, JobSearchConfig, LLMSettings


@pytest.mark.parametrize("threshold", [0.0, -0.1, 1.5])
def test_fail_threshold_out_of_range(threshold):
    with pytest.raises(ValidationError, match="fail_threshold"):
        EasyApplyConfig(fail_threshold=threshold)


def test_fail_threshold_upper_bound_is_inclusive():
    assert EasyApplyConfig(fail_threshold=1.0).fail_threshold == 1.0


@pytest.mark.parametrize("field", ["max_pages", "max_retries"])
def test_step_limits_must_be_positive(field):
    with pytest.raises(ValidationError):
        EasyApplyConfig(**{field: 0})


def test_max_empty_pages_must_be_positive():
    with pytest.raises(ValidationError):
        JobSearchConfig(max_empty_pages=0)


def test_positions_are_required():
    with pytest.raises(ValidationError, match="positions"):
        AppConfig(job_search=JobSearchConfig(positions=[]))


def test_locations_are_required():
    with pytest.raises(ValidationError, match="locations"):
        AppConfig(job_search=JobSearchConfig(locations=[]))


def test_provider_is_lowercased():
    assert LLMSettings(LLM_PROVIDER="Anthropic").LLM_PROVIDER == "anthropic"


def test_unknown_provider_is_rejected():
    with pytest.raises(ValidationError):
        LLMSettings(LLM_PROVIDER="cohere")


@pytest.mark.parametrize(
    "provider, base_url, expected",
    [
        ("openai", None, True),
        ("ollama", None, False),
        ("openai", "http://localhost:8000/v1", False),
    ],
)
def test_requires_api_key(provider, base_url, expected):
    assert LLMSettings(LLM_PROVIDER=provider, LLM_BASE_URL=base_url).requires_api_key() is expected


def test_llm_settings_are_hashable():
    settings = LLMSettings(LLM_PROVIDER="openai", LLM_MODEL="gpt-4o-mini")

    assert hash(settings) == hash(LLMSettings(LLM_PROVIDER="openai", LLM_MODEL="gpt-4o-mini"))
