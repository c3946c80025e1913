import logging
import re

import pytest
from docx import Document

from llm.exceptions import ResumeReadError
from llm.resume_utils import load_resume_profile, parse_tailored_resume, resume_to_yaml, save_resume_docx

PROFILE_YAML = """
personal_information:
  name: Ada
  surname: Lovelace
  email: ada@example.com
  phone_prefix: "+1"
  phone_national: "6175550100"
experience_details:
  - position: Analyst
    company: Analytical Engine Co.
    employment_period: 1842 - 1843
    key_responsibilities:
      - Wrote the first published algorithm
skills: [Mathematics, Python]
"""


def test_load_resume_profile_success(tmp_path):
    profile_file = tmp_path / "profile.yaml"
    profile_file.write_text(PROFILE_YAML, encoding="utf-8")

    profile = load_resume_profile(profile_file)

    assert profile.personal_information.full_name == "Ada Lovelace"
    assert profile.personal_information.full_phone == "+1 6175550100"
    assert profile.skills == ["Mathematics", "Python"]


def test_load_resume_profile_without_path():
    assert load_resume_profile(None) is None


def test_load_resume_profile_file_not_found(tmp_path, caplog):
    missing = tmp_path / "missing.yaml"

    with caplog.at_level(logging.ERROR):
        with pytest.raises(ResumeReadError, match=re.escape(f"Resume profile not found at {missing}")):
            load_resume_profile(missing)

    assert "Resume profile not found" in caplog.text


def test_load_resume_profile_invalid_yaml(tmp_path):
    profile_file = tmp_path / "profile.yaml"
    profile_file.write_text("personal_information: [unclosed", encoding="utf-8")

    with pytest.raises(ResumeReadError, match="Invalid YAML"):
        load_resume_profile(profile_file)


def test_load_resume_profile_schema_mismatch(tmp_path):
    profile_file = tmp_path / "profile.yaml"
    profile_file.write_text("skills: 42\n", encoding="utf-8")

    with pytest.raises(ResumeReadError, match="Invalid resume profile"):
        load_resume_profile(profile_file)


def test_resume_to_yaml_round_trips(profile):
    text = resume_to_yaml(profile)

    assert parse_tailored_resume(text) == profile
    assert resume_to_yaml(None) == ""


def test_parse_tailored_resume_strips_code_fence():
    fenced = "```yaml\nskills:\n  - Python\n```"

    assert parse_tailored_resume(fenced).skills == ["Python"]


@pytest.mark.parametrize("text", ["- just\n- a list", "key: [unclosed", ""])
def test_parse_tailored_resume_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_tailored_resume(text)


def test_save_resume_docx(tmp_path):
    profile_file = tmp_path / "profile.yaml"
    profile_file.write_text(PROFILE_YAML, encoding="utf-8")
    profile = load_resume_profile(profile_file)

    path = save_resume_docx(profile, tmp_path / "generated", "resume_acme")

    assert path == tmp_path / "generated" / "resume_acme.docx"
    text = "\n".join(p.text for p in Document(str(path)).paragraphs)
    assert "Ada Lovelace" in text
    assert "Analyst - Analytical Engine Co. - 1842 - 1843" in text
    assert "Mathematics, Python" in text
