from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ModalState(str, Enum):
    """State of the Easy Apply modal, always derived from the live page."""

    FORM = "form"
    REVIEW = "review"
    SUBMIT = "submit"
    SUCCESS = "success"
    CLOSED = "closed"
    ERROR = "error"
    UNKNOWN = "unknown"


class FieldCategory(str, Enum):
    """Answer-memory categories, one per kind of form control."""

    TEXT = "text"
    NUMERIC = "numeric"
    TEXTAREA = "textarea"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    TYPEAHEAD = "typeahead"
    DATE = "date"
    FILE = "file"


class JobOutcome(str, Enum):
    """Outcome buckets; each job lands in exactly one of them."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SearchCombination:
    position: str
    location: str


@dataclass
class Job:
    """A job posting discovered on a search results page."""

    title: str
    company: str
    location: str
    link: str
    apply_method: str = ""
    description: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for logging/LLM context."""
        payload = {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "link": self.link,
        }
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class AnswerRecord:
    """A remembered answer, keyed by (category, normalized question)."""

    category: str
    question: str
    answer: str


@dataclass
class PageFillResult:
    """Outcome of one fill pass over the current form step."""

    fields_processed: int = 0
    fields_failed: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = True


@dataclass
class NavigationResult:
    """Outcome of a primary-button click."""

    success: bool
    state: ModalState
    submitted: bool = False
    error: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)
    dry_run_stop: bool = False


@dataclass
class ApplicationResult:
    """Outcome of a single Easy Apply attempt."""

    success: bool
    job_title: str
    company: str
    error: Optional[str] = None
    already_applied: bool = False
    pages_completed: int = 0
    total_fields: int = 0
    failed_fields: int = 0
    submitted: bool = False

    @classmethod
    def failure(cls, job: Job, error: str, **kwargs) -> "ApplicationResult":
        return cls(success=False, job_title=job.title, company=job.company, error=error, **kwargs)
