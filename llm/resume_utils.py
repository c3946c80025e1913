import logging
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from docx import Document
from pydantic import ValidationError

from llm.exceptions import ResumeReadError
from llm.schemas import ResumeProfile

logger = logging.getLogger(__name__)

YAML_FENCE_RX = re.compile(r"^```(?:yaml|yml)?\s*|\s*```$", re.MULTILINE)


def load_resume_profile(path: Optional[Path]) -> Optional[ResumeProfile]:
    """
    Load the structured resume profile (YAML).

    Returns:
        The profile, or None when no path is configured.

    Raises:
        ResumeReadError: If the file is missing, is not YAML, or does not
            match the profile schema.
    """
    if not path:
        return None
    profile_path = Path(path)
    try:
        with open(profile_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return ResumeProfile.model_validate(data)
    except FileNotFoundError as exc:
        logger.error("Resume profile not found at %s", profile_path)
        raise ResumeReadError(
            path=str(profile_path),
            message=f"Resume profile not found at {profile_path}",
        ) from exc
    except yaml.YAMLError as exc:
        logger.error("Invalid YAML in resume profile %s: %s", profile_path, exc)
        raise ResumeReadError(
            path=str(profile_path),
            message=f"Invalid YAML in resume profile {profile_path}",
        ) from exc
    except ValidationError as exc:
        logger.error("Invalid resume profile at %s: %s", profile_path, exc)
        raise ResumeReadError(
            path=str(profile_path),
            message=f"Invalid resume profile at {profile_path}",
        ) from exc


def resume_to_yaml(profile: Optional[ResumeProfile]) -> str:
    """Serialize the profile for prompts and tailoring."""
    if profile is None:
        return ""
    return yaml.safe_dump(profile.model_dump(exclude_none=True), allow_unicode=True, sort_keys=False)


def parse_tailored_resume(text: str) -> ResumeProfile:
    """
    Parse the YAML returned by the tailoring prompt.

    Raises:
        ValueError: if the text is not a YAML mapping matching the profile schema.
    """
    cleaned = YAML_FENCE_RX.sub("", (text or "").strip())
    try:
        data = yaml.safe_load(cleaned)
    except yaml.YAMLError as exc:
        raise ValueError(f"Tailored resume is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Tailored resume must be a YAML mapping")
    try:
        return ResumeProfile.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Tailored resume does not match the profile schema: {exc}") from exc


def _add_section(document: Any, title: str, lines) -> None:
    lines = [line for line in lines if line]
    if not lines:
        return
    document.add_heading(title, level=2)
    for line in lines:
        document.add_paragraph(line)


def save_resume_docx(profile: ResumeProfile, output_dir: Path, stem: str) -> Path:
    """
    Render a resume profile to a .docx file.

    Returns:
        Path of the written document.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / f"{stem}.docx"

    info = profile.personal_information
    document = Document()
    document.add_heading(info.full_name or "Resume", level=1)
    contact = " | ".join(
        part for part in (info.email, info.full_phone, info.city, info.linkedin, info.github) if part
    )
    if contact:
        document.add_paragraph(contact)

    experience_lines = []
    for item in profile.experience_details:
        header = " - ".join(part for part in (item.position, item.company, item.employment_period) if part)
        experience_lines.append(header)
        experience_lines.extend(f"• {bullet}" for bullet in item.key_responsibilities)
    _add_section(document, "Experience", experience_lines)

    _add_section(
        document,
        "Education",
        [
            ", ".join(part for part in (e.degree, e.field_of_study, e.university, e.graduation_year) if part)
            for e in profile.education_details
        ],
    )
    _add_section(document, "Skills", [", ".join(profile.skills)] if profile.skills else [])

    document.save(str(filepath))
    logger.info(f"Resume document saved to {filepath}")
    return filepath
