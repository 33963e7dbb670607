from __future__ import annotations

import logging
from typing import List, Optional

from memobridge.blinko_client import BlinkoClient, FileInfo, Note, UserInfo
from memobridge.media_group_cache import DEFAULT_GROUP_TTL_SECONDS, MediaGroupCache

LOGGER = logging.getLogger(__name__)


class FileTransferError(RuntimeError):
    """Raised when an attachment cannot be downloaded, uploaded or linked to its note."""


class NoteService:
    def __init__(
        self,
        client: BlinkoClient,
        cache: MediaGroupCache,
        group_ttl: float = DEFAULT_GROUP_TTL_SECONDS,
    ) -> None:
        self._client = client
        self._cache = cache
        self._group_ttl = group_ttl

    async def create_note(self, token: str, content: str, media_group_id: Optional[str] = None) -> Note:
        """Create a note, or reuse the one already created for ``media_group_id``."""
        if not media_group_id:
            return await self._create(token, content)

        async def factory() -> Note:
            return await self._create(token, content)

        return await self._cache.get_or_create(media_group_id, factory, ttl=self._group_ttl)

    async def _create(self, token: str, content: str) -> Note:
        note = await self._client.upsert_note(token, Note(content=content))
        LOGGER.info("Created note id=%s", note.id)
        return note

    async def attach_file(self, token: str, note: Note, data: bytes, filename: str) -> FileInfo:
        try:
            resource = await self._client.upload_file(token, data, filename)
            await self._client.upsert_note(
                token,
                Note(id=note.id, content=note.content, attachments=[resource], is_top=None),
            )
        except Exception as exc:
            raise FileTransferError(f"failed to save resource {filename!r}: {exc}") from exc
        LOGGER.info("Attached %s to note id=%s", resource.name or filename, note.id)
        return resource

    async def verify_token(self, token: str) -> UserInfo:
        return await self._client.get_user_detail(token)

    async def get_note(self, token: str, note_id: int) -> Note:
        return await self._client.get_note(token, note_id)

    async def search(self, token: str, query: str) -> List[Note]:
        return await self._client.list_notes(token, query)

    async def set_shared(self, token: str, note_id: int, shared: bool) -> None:
        await self._client.share_note(token, note_id, shared)
        LOGGER.info("Note id=%s shared=%s", note_id, shared)

    async def toggle_pin(self, token: str, note: Note) -> Note:
        pinned = not note.is_top
        await self._client.upsert_note(token, Note(id=note.id, content=note.content, is_top=pinned))
        LOGGER.info("Note id=%s pinned=%s", note.id, pinned)
        return Note(
            id=note.id,
            type=note.type,
            content=note.content,
            attachments=list(note.attachments),
            is_top=pinned,
            is_share=note.is_share,
        )


__all__ = ["FileTransferError", "NoteService"]
