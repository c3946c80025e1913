import logging
import re
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from core.selectors import catalog
from easy_apply.documents import DocumentType, detect_document_type
from easy_apply.field_utils import raise_if_browser_closed, visible_text
from easy_apply.models import FieldCategory
from easy_apply.strategies.base import FieldStrategy

logger = logging.getLogger(__name__)

UPLOAD_TEXT_RX = re.compile(r"upload|attach|document", re.IGNORECASE)
FILE_CHOOSER_TIMEOUT_MS = 5000


class FileUploadStrategy(FieldStrategy):
    """
    Resume and cover-letter upload slots.

    The slot type comes from ``detect_document_type``. An upload already
    showing the expected filename is kept; LinkedIn's auto-selected previous
    file is replaced by the expected one. A slot with no file available is
    reported as handled since LinkedIn usually lets it be skipped.
    """

    category = FieldCategory.FILE

    async def can_handle(self, group: Locator) -> bool:
        if await self.count(group.locator('input[type="file"]')) > 0:
            return True
        if await self.count(group.locator("[data-test-document-upload]")) > 0:
            return True
        # Wording alone only counts when the group has no answerable control
        if await self.count(group.locator('select, textarea, input:not([type="file"])')) > 0:
            return False
        return await self.count(group.get_by_text(UPLOAD_TEXT_RX)) > 0

    async def detect(self, group: Locator, question: str) -> DocumentType:
        file_input = group.locator('input[type="file"]').first
        element_id, attributes = "", ""
        if await self.count(file_input) > 0:
            element_id = await file_input.get_attribute("id") or ""
            attributes = " ".join(
                value for value in [
                    element_id,
                    await file_input.get_attribute("name"),
                    await file_input.get_attribute("aria-label"),
                ] if value
            )
        detection = detect_document_type(element_id, attributes, question)
        logger.debug(f"[UPLOAD] '{question}' detected as {detection.document_type.value} by {detection.detected_by}")
        return detection.document_type

    async def expected_file(self, document_type: DocumentType) -> Optional[Path]:
        documents = self.ctx.documents
        if documents is None:
            return None
        if document_type == DocumentType.COVER_LETTER:
            return await documents.cover_letter_path()
        return await documents.resume_path()

    async def current_upload(self, group: Locator) -> Optional[str]:
        for selector in catalog.get("uploaded_document"):
            node = group.locator(selector).first
            if await self.count(node) > 0:
                text = await visible_text(node)
                if text:
                    return text
        return None

    async def select_previous(self, group: Locator, filename: str) -> bool:
        """Click a previously uploaded document card showing ``filename``."""
        cards = group.locator(catalog.css("previous_document_card"))
        for index in range(await self.count(cards)):
            card = cards.nth(index)
            if filename in ((await card.text_content()) or ""):
                await card.click()
                await self.pause(self.timeouts.medium_wait)
                return True
        return False

    async def upload(self, group: Locator, path: Path) -> bool:
        file_input = group.locator('input[type="file"]').first
        if await self.count(file_input) > 0:
            await file_input.set_input_files(str(path))
            await self.pause(self.timeouts.upload_wait)
            return True

        button = group.locator(catalog.css("upload_button")).first
        if await self.count(button) == 0:
            logger.warning("[UPLOAD] No file input or upload button found")
            return False
        try:
            async with self.page.expect_file_chooser(timeout=FILE_CHOOSER_TIMEOUT_MS) as chooser_info:
                await button.click()
            chooser = await chooser_info.value
            await chooser.set_files(str(path))
        except PlaywrightError as e:
            raise_if_browser_closed(e)
            logger.warning(f"[UPLOAD] File chooser upload failed: {e}")
            return False
        await self.pause(self.timeouts.upload_wait)
        return True

    async def handle(self, group: Locator, retry_mode: bool = False) -> bool:
        question = await self.question_for(group)
        document_type = await self.detect(group, question)
        path = await self.expected_file(document_type)
        if path is None:
            logger.warning(f"[UPLOAD] No {document_type.value} available for '{question}', leaving slot as is")
            return True

        existing = await self.current_upload(group)
        if existing and path.name in existing:
            logger.debug(f"[UPLOAD] '{path.name}' already uploaded")
            return True
        if existing:
            logger.info(f"[UPLOAD] Replacing auto-selected '{existing}' with '{path.name}'")
            if await self.select_previous(group, path.name):
                return True

        uploaded = await self.upload(group, path)
        if uploaded:
            logger.info(f"[UPLOAD] Uploaded {document_type.value}: {path.name}")
        return uploaded
