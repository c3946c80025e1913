import logging
import os
import re
from typing import Optional

from docx import Document
from pydantic import ValidationError

from easy_apply.models import Job
from llm.exceptions import (
    CoverLetterGenerationError,
    CoverLetterSaveError,
    LLMGenerationError,
)
from llm.llm_client import LLMClient
from llm.prompts import COVER_LETTER_PROMPT_STRUCTURED
from llm.resume_utils import resume_to_yaml
from llm.schemas import ResumeProfile
from llm.structured_schemas import LetterParts, join_parts
from llm.utils import format_prompt, truncate

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "not specified"
MAX_DESCRIPTION_CHARS = 6000
SYSTEM_MESSAGE = (
    "Output only via structured fields. "
    "No commentary or explanations outside the fields."
)


def generate_cover_letter(job: Job, profile: Optional[ResumeProfile], llm: LLMClient) -> str:
    """
    Generate a cover letter for ``job`` using a structured LLM response.

    A first failure (provider error or schema validation) gets one retry with
    the validation feedback appended to the prompt.

    Raises:
        CoverLetterGenerationError: if both attempts fail.
    """
    prompt = format_prompt(
        COVER_LETTER_PROMPT_STRUCTURED,
        job_title=job.title or NOT_SPECIFIED,
        company_name=job.company or NOT_SPECIFIED,
        location=job.location or NOT_SPECIFIED,
        description=truncate(job.description or NOT_SPECIFIED, MAX_DESCRIPTION_CHARS),
        resume_text=resume_to_yaml(profile) or NOT_SPECIFIED,
    )

    try:
        try:
            parts: LetterParts = llm.generate_structured_response(
                prompt=prompt, schema=LetterParts, system_message=SYSTEM_MESSAGE
            )
        except (LLMGenerationError, ValidationError) as e:
            logger.warning(f"Initial cover letter generation failed: {e}. Retrying with feedback...")
            feedback = (
                f"\n\nVALIDATION FEEDBACK:\n- {e}\n"
                "- Re-emit strictly via structured fields, plain text only (no markdown)."
            )
            parts = llm.generate_structured_response(
                prompt=prompt + feedback, schema=LetterParts, system_message=SYSTEM_MESSAGE
            )
    except (LLMGenerationError, ValidationError) as e:
        logger.error("Failed to generate cover letter even after retry.")
        raise CoverLetterGenerationError(job_title=job.title, company=job.company) from e

    logger.info(f"Cover letter generated for '{job.title}' at '{job.company}'")
    return join_parts(parts)


def cover_letter_filename(job: Job) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", f"{job.company}_{job.title}".lower()).strip("_")
    return f"cover_letter_{slug[:80] or 'job'}.docx"


def save_cover_letter(job: Job, cover_letter_text: str, output_dir: str) -> str:
    """
    Save a generated cover letter as a .docx file.

    Returns:
        str: Path to the saved file

    Raises:
        CoverLetterSaveError: if the directory or the document cannot be written.
    """
    filename = cover_letter_filename(job)
    try:
        os.makedirs(output_dir, exist_ok=True)
        filepath = os.path.join(output_dir, filename)

        document = Document()
        normalized_text = (cover_letter_text or "").replace("\r\n", "\n")
        paragraphs = [p.strip() for p in normalized_text.split("\n\n") if p.strip()]
        for paragraph in paragraphs or [normalized_text.strip()]:
            document.add_paragraph(paragraph)
        document.save(filepath)
    except OSError as e:
        logger.error(f"Failed to save cover letter: {str(e)}")
        raise CoverLetterSaveError(filename=filename, output_dir=str(output_dir)) from e

    logger.info(f"Cover letter saved to {filepath}")
    return filepath
