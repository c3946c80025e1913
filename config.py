from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class SessionConfig(BaseSettings):
    """Configuration for the persistent browser session."""

    user_data_dir: Path = Path("./linkedin_session")
    browser_headless: bool = False
    slow_mo_ms: int = 0


class LoggingConfig(BaseSettings):
    """Configuration for logging."""

    log_level: str = "DEBUG"  # DEBUG, INFO, WARNING, ERROR
    log_file_path: Optional[Path] = Path("./logs/application.log")


class ResilienceConfig(BaseSettings):
    """Retry policy for flaky page interactions (clicks, selector waits)."""

    max_attempts: int = 3
    initial_wait: float = 0.2  # seconds
    max_wait: float = 2.0  # seconds
    exponential_base: int = 2
    jitter: bool = True


class CircuitBreakerConfig(BaseSettings):
    """Configuration for the circuit breaker guarding AI calls."""

    failure_threshold: int = 5
    recovery_timeout: int = 60  # seconds


class JobSearchConfig(BaseSettings):
    """Parameters for job searching."""

    positions: List[str] = ["Software Engineer"]
    locations: List[str] = ["Remote"]
    company_blacklist: List[str] = []
    title_blacklist: List[str] = []
    easy_apply_only: bool = True
    sort_by: str = "DD"  # DD = Date Descending, R = Relevance
    date_posted: str = "r604800"  # r86400 = 24h, r604800 = week, r2592000 = month
    distance: str = "25"
    results_per_page: int = 25
    max_empty_pages: int = 3

    model_config = SettingsConfigDict(validate_assignment=True)

    @field_validator("max_empty_pages", "results_per_page")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class EasyApplyConfig(BaseSettings):
    """Settings for filling and submitting Easy Apply forms."""

    resume_path: Path = Field(Path("./resume.pdf"), validation_alias="RESUME_PATH")
    resume_profile_path: Optional[Path] = Field(
        Path("./config/resume_profile.yaml"), validation_alias="RESUME_PROFILE_PATH"
    )
    cover_letter_path: Optional[Path] = Field(None, validation_alias="COVER_LETTER_PATH")
    generated_documents_dir: Path = Path("./generated")
    delete_generated_after_use: bool = True
    dry_run: bool = Field(False, validation_alias="DRY_RUN")
    tailor_resume: bool = False
    max_pages: int = 15
    max_retries: int = 3
    fail_threshold: float = 0.5
    max_dropdown_options: int = 100
    max_description_chars: int = 500

    @field_validator("fail_threshold")
    @classmethod
    def threshold_in_range(cls, v: float) -> float:
        if not (0.0 < v <= 1.0):
            raise ValueError("fail_threshold must be in (0, 1]")
        return v

    @field_validator("max_pages", "max_retries")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class PerformanceConfig(BaseSettings):
    """Timeout settings for page interaction (all values in ms)."""

    navigation_timeout: int = 60000
    selector_timeout: int = 5000
    detach_timeout: int = 5000
    modal_wait_timeout: int = 5000
    modal_wait_attempts: int = 3
    spinner_timeout: int = 5000
    short_wait: int = 150
    medium_wait: int = 500
    long_wait: int = 1000
    upload_wait: int = 2000
    typing_delay: int = 50


class StatusConfig(BaseSettings):
    """Heartbeat / stop control for long runs."""

    heartbeat_interval_seconds: int = 45
    stop_file: Optional[Path] = Path("./STOP")


class StorageConfig(BaseSettings):
    """Where run outcomes and learned answers are written."""

    output_dir: Path = Path("./output")
    answers_file: Path = Path("./output/answers.csv")


class LLMSettings(BaseSettings):
    """LLM Configuration"""

    model_config = SettingsConfigDict(frozen=True)

    LLM_PROVIDER: str = "openai"
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT: int = 120
    LLM_MAX_RETRIES: int = 3
    LLM_BASE_URL: Optional[str] = None
    LLM_TEMPERATURE: float = 0.0
    LLM_API_KEY: str = ""

    @field_validator("LLM_PROVIDER")
    @classmethod
    def provider_must_be_known(cls, v: str) -> str:
        v = v.lower()
        if v not in ("openai", "anthropic", "google", "ollama"):
            raise ValueError(f"Unsupported LLM_PROVIDER: {v}")
        return v

    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def temperature_in_range(cls, v: float) -> float:
        if not (0.0 <= v <= 2.0):
            raise ValueError("must be between 0.0 and 2.0")
        return v

    def requires_api_key(self) -> bool:
        if self.LLM_PROVIDER == "ollama":
            return False
        return not (self.LLM_BASE_URL and "localhost" in self.LLM_BASE_URL)


class AppConfig(BaseSettings):
    """Root configuration class for the application."""

    session: SessionConfig = SessionConfig()
    logging: LoggingConfig = LoggingConfig()
    resilience: ResilienceConfig = ResilienceConfig()
    circuit_breaker: CircuitBreakerConfig = CircuitBreakerConfig()
    job_search: JobSearchConfig = JobSearchConfig()
    easy_apply: EasyApplyConfig = EasyApplyConfig()
    performance: PerformanceConfig = PerformanceConfig()
    status: StatusConfig = StatusConfig()
    storage: StorageConfig = StorageConfig()
    llm: LLMSettings = LLMSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_search_inputs(self) -> "AppConfig":
        if not self.job_search.positions:
            raise ValueError("job_search.positions must contain at least one position")
        if not self.job_search.locations:
            raise ValueError("job_search.locations must contain at least one location")
        return self


# Instantiate the main config object
config = AppConfig()
