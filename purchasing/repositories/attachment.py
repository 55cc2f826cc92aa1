"""Attachment repository."""


from sqlalchemy.orm import undefer

from purchasing.domain.attachment import Attachment
from purchasing.repositories.base import BaseRepository


class AttachmentRepository(BaseRepository[Attachment]):
    model = Attachment

    async def get_with_data(self, attachment_id: str) -> Attachment | None:
        """Load an attachment including its (deferred) Base64 payload."""
        result = await self._session.execute(
            self._base_query()
            .where(Attachment.id == attachment_id)
            .options(undefer(Attachment.file_data))
        )
        return result.scalars().first()
