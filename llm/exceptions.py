class LLMGenerationError(Exception):
    """Exception for errors when generating a response from LLM."""

    def __init__(
        self,
        message: str | None = None,
        prompt: str | None = None,
        provider: str | None = None,
        model: str | None = None,
    ):
        base_message = message if message is not None else "LLM generation error"
        details = []
        if provider is not None:
            details.append(f"Provider: {provider}")
        if model is not None:
            details.append(f"Model: {model}")
        if prompt is not None:
            details.append(f"Prompt: {prompt[:200]}.")
        full_message = " ".join([base_message] + details) if details else base_message
        self.message = full_message
        self.provider = provider
        self.model = model
        super().__init__(self.message)


class ResumeReadError(Exception):
    """Exception raised when reading the resume profile fails."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        self.message = (
            message if message is not None else f"Failed to read resume profile at: {path}"
        )
        super().__init__(self.message)


class CoverLetterGenerationError(Exception):
    """Exception thrown when there is a general error generating the cover letter."""

    def __init__(self, job_title: str, company: str):
        self.message = f"Error generating cover letter for '{job_title}' at '{company}'"
        super().__init__(self.message)


class CoverLetterSaveError(Exception):
    """Exception raised when saving cover letter fails."""

    def __init__(self, filename: str, output_dir: str):
        self.message = "Error saving cover letter."
        super().__init__(
            self.message,
            f"File name: {filename}",
            f"Directory for saving files: {output_dir}",
        )
