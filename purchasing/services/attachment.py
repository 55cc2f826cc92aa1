"""Attachment download resolution (inline Base64 rows or files on disk)."""

import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.exceptions import NotFoundError
from purchasing.domain.attachment import DB_STORAGE_PREFIX
from purchasing.repositories.attachment import AttachmentRepository
from purchasing.services.filenames import upload_root

logger = logging.getLogger(__name__)


@dataclass
class AttachmentContent:
    filename: str
    media_type: str
    content: bytes | None = None
    path: Path | None = None

    @property
    def inline(self) -> bool:
        return self.media_type == "application/pdf"


def _fallback_dirs() -> list[Path]:
    root = upload_root()
    return [root, root / "temp-pdf", root / "outgoing"]


class AttachmentService:
    def __init__(self, session: AsyncSession, client_id: str):
        self._repo = AttachmentRepository(session, client_id)

    async def resolve(self, attachment_id: str) -> AttachmentContent:
        attachment = await self._repo.get_with_data(attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment", attachment_id)

        media_type = (
            attachment.mime_type
            or mimetypes.guess_type(attachment.original_name)[0]
            or "application/octet-stream"
        )
        display_name = attachment.original_name or attachment.stored_name

        if attachment.stored_in_db:
            if attachment.file_data:
                try:
                    content = base64.b64decode(attachment.file_data, validate=True)
                except (binascii.Error, ValueError):
                    logger.error("Attachment %s has corrupt Base64 data", attachment_id)
                else:
                    return AttachmentContent(filename=display_name, media_type=media_type, content=content)

            name = attachment.file_path[len(DB_STORAGE_PREFIX):]
            for directory in _fallback_dirs():
                candidate = directory / name
                if candidate.is_file():
                    logger.info("Attachment %s served from disk fallback %s", attachment_id, candidate)
                    return AttachmentContent(filename=display_name, media_type=media_type, path=candidate)
            raise NotFoundError("Attachment file", attachment_id)

        path = Path(attachment.file_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        if not path.is_file():
            raise NotFoundError("Attachment file", attachment_id)
        return AttachmentContent(filename=display_name, media_type=media_type, path=path)
