import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from easy_apply.documents import DocumentProvider, DocumentType, PendingResume, detect_document_type
from easy_apply.exceptions import AnswerUnavailableError
from easy_apply.models import Job


@pytest.mark.parametrize(
    "element_id, attributes, question, expected, detected_by",
    [
        (
            "jobs-document-upload-file-input-upload-cover-letter-urn-li-fs",
            "",
            "",
            DocumentType.COVER_LETTER,
            "urn-pattern",
        ),
        (
            "jobs-document-upload-file-input-upload-resume-urn-li-fs",
            "",
            "Cover letter",
            DocumentType.RESUME,
            "urn-pattern",
        ),
        ("file-1", "file-1 lettre-motivation", "", DocumentType.COVER_LETTER, "attribute"),
        ("file-2", "", "Lettre de motivation", DocumentType.COVER_LETTER, "question-text"),
        ("file-3", "", "Upload your CV", DocumentType.RESUME, "question-text"),
        ("", "", "", DocumentType.RESUME, "default"),
    ],
)
def test_detect_document_type(element_id, attributes, question, expected, detected_by):
    detection = detect_document_type(element_id, attributes, question)

    assert detection.document_type == expected
    assert detection.detected_by == detected_by


class TestPendingResume:
    @pytest.mark.asyncio
    async def test_task_is_joined_once(self, tmp_path):
        calls = 0
        tailored = tmp_path / "tailored.docx"

        async def tailor():
            nonlocal calls
            calls += 1
            return tailored

        pending = PendingResume.start(tailor(), fallback=tmp_path / "resume.pdf")

        assert await pending.consume() == tailored
        assert await pending.consume() == tailored
        assert pending.consumed is True
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failed_tailoring_falls_back_to_original(self, tmp_path):
        original = tmp_path / "resume.pdf"

        async def tailor():
            raise RuntimeError("model returned invalid YAML")

        pending = PendingResume.start(tailor(), fallback=original)

        assert await pending.consume() == original

    @pytest.mark.asyncio
    async def test_discard_cancels_unconsumed_task(self, tmp_path):
        started = asyncio.Event()

        async def tailor():
            started.set()
            await asyncio.sleep(60)

        pending = PendingResume.start(tailor(), fallback=tmp_path / "resume.pdf")
        await started.wait()

        await pending.discard()

        assert pending._task.cancelled()
        assert await pending.consume() == tmp_path / "resume.pdf"


@pytest.fixture
def resume_file(tmp_path):
    path = tmp_path / "resume.pdf"
    path.write_bytes(b"%PDF-1.4")
    return path


@pytest.fixture
def job():
    return Job(title="Backend Engineer", company="Acme", location="Remote", link="https://x/jobs/view/1/")


class TestDocumentProvider:
    @pytest.mark.asyncio
    async def test_resume_falls_back_when_tailoring_fails(self, app_config, configure, resume_file, job):
        cfg = configure(app_config, "easy_apply", resume_path=resume_file, cover_letter_path=None)
        provider = DocumentProvider(cfg)

        async def tailor():
            raise ValueError("tailoring failed")

        provider.begin_job(job, PendingResume.start(tailor(), fallback=resume_file))

        assert await provider.resume_path() == resume_file

    @pytest.mark.asyncio
    async def test_missing_resume_is_none(self, app_config, configure, tmp_path, job):
        cfg = configure(app_config, "easy_apply", resume_path=tmp_path / "missing.pdf")
        provider = DocumentProvider(cfg)
        provider.begin_job(job)

        assert await provider.resume_path() is None

    @pytest.mark.asyncio
    async def test_configured_cover_letter_wins(self, app_config, configure, resume_file, tmp_path, job):
        letter = tmp_path / "letter.pdf"
        letter.write_bytes(b"%PDF-1.4")
        answerer = MagicMock()
        answerer.write_cover_letter = AsyncMock()
        cfg = configure(app_config, "easy_apply", resume_path=resume_file, cover_letter_path=letter)
        provider = DocumentProvider(cfg, answerer=answerer)
        provider.begin_job(job)

        assert await provider.cover_letter_path() == letter
        answerer.write_cover_letter.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generated_cover_letter_is_reused_and_deleted(self, app_config, configure, resume_file, tmp_path, job):
        generated = tmp_path / "generated" / "cover_letter_acme.docx"
        generated.parent.mkdir(parents=True)
        generated.write_bytes(b"docx")
        answerer = MagicMock()
        answerer.write_cover_letter = AsyncMock(return_value="Dear hiring team, ...")
        cfg = configure(
            app_config, "easy_apply", resume_path=resume_file, cover_letter_path=None, delete_generated_after_use=True
        )
        provider = DocumentProvider(cfg, answerer=answerer)
        provider.begin_job(job)

        with patch("easy_apply.documents.save_cover_letter", return_value=str(generated)):
            first = await provider.cover_letter_path()
            second = await provider.cover_letter_path()

        assert first == second == generated
        answerer.write_cover_letter.assert_awaited_once_with(job)

        await provider.end_job()

        assert not generated.exists()

    @pytest.mark.asyncio
    async def test_cover_letter_generation_failure_is_not_retried(self, app_config, configure, resume_file, job):
        answerer = MagicMock()
        answerer.write_cover_letter = AsyncMock(side_effect=AnswerUnavailableError("cover_letter", "breaker open"))
        cfg = configure(app_config, "easy_apply", resume_path=resume_file, cover_letter_path=None)
        provider = DocumentProvider(cfg, answerer=answerer)
        provider.begin_job(job)

        assert await provider.cover_letter_path() is None
        assert await provider.cover_letter_path() is None
        answerer.write_cover_letter.assert_awaited_once()
