from typing import List, Optional


class EasyApplyError(Exception):
    """Base class for errors raised by the Easy Apply engine."""


class FieldValidationError(EasyApplyError):
    """A field kept showing a validation error after its corrective retry."""

    def __init__(self, question: str, error_text: str):
        self.question = question
        self.error_text = error_text
        super().__init__(f"Validation error for '{question}': {error_text}")


class NavigationError(EasyApplyError):
    """The form could not be opened, advanced, or closed as expected."""

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []


class AlreadyAppliedError(EasyApplyError):
    """The job page shows that an application was already sent."""

    def __init__(self, job_link: str):
        self.job_link = job_link
        super().__init__(f"Already applied to {job_link}")


class AnswerUnavailableError(EasyApplyError):
    """Neither memory, heuristics nor the AI produced an answer."""

    def __init__(self, question: str, reason: Optional[str] = None):
        self.question = question
        self.reason = reason
        message = f"No answer available for '{question}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class BrowserDisconnectedError(EasyApplyError):
    """The browser, context or page was closed. Fatal for the whole run."""


class PageLimitExceededError(EasyApplyError):
    """The form did not reach submission within the configured page limit."""

    def __init__(self, max_pages: int):
        self.max_pages = max_pages
        super().__init__(f"Exceeded maximum pages ({max_pages})")
