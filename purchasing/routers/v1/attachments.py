"""Attachment download (/api/v1/attachments/{id}/download)."""

from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.config import settings
from purchasing.core.security import get_current_user
from purchasing.db.base import get_db
from purchasing.domain.user import User
from purchasing.services.attachment import AttachmentService

router = APIRouter(prefix="/attachments", tags=["Attachments"])


def content_disposition(filename: str, inline: bool) -> str:
    """RFC 5987 header value so Korean filenames survive every browser."""
    disposition = "inline" if inline else "attachment"
    return f"{disposition}; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/{attachment_id}/download")
async def download_attachment(
    attachment_id: str,
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    resolved = await AttachmentService(session, settings.default_client_id).resolve(attachment_id)
    headers = {"Content-Disposition": content_disposition(resolved.filename, resolved.inline)}
    if resolved.content is not None:
        return Response(content=resolved.content, media_type=resolved.media_type, headers=headers)
    return FileResponse(resolved.path, media_type=resolved.media_type, headers=headers)
