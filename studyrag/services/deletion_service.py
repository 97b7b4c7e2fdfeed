"""Removes one owner's chunks for a named source document."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from studyrag.models.filters import owner_source_scope
from studyrag.utils.errors import ValidationError
from studyrag.utils.text import is_blank

if TYPE_CHECKING:
    from studyrag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class DeletionService:
    """Deletes every chunk matching both an owner and a source name.

    Matching on the source name alone would also remove another owner's
    document with the same name, so the filter always carries both.
    """

    def __init__(self, vector_store: IVectorStoreProvider) -> None:
        self._vector_store = vector_store

    async def delete(self, owner_id: str, source_name: str) -> int:
        """Delete *owner_id*'s chunks for *source_name* and return how many.

        Returns ``0`` when nothing matched.  Every ingest generation stored
        under the name is removed.
        """
        if is_blank(owner_id):
            raise ValidationError("owner_id must not be blank")
        if is_blank(source_name):
            raise ValidationError("source_name must not be blank")

        candidates = await self._vector_store.get_by_filter(owner_source_scope(owner_id, source_name))
        if not candidates:
            logger.info("delete_no_match", owner_id=owner_id, source_name=source_name)
            return 0

        ids = [chunk_id for chunk_id, _ in candidates]
        await self._vector_store.delete_by_ids(ids)
        logger.info(
            "delete_complete",
            owner_id=owner_id,
            source_name=source_name,
            deleted_count=len(ids),
        )
        return len(ids)
