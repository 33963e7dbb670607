import asyncio
import unittest
from typing import List

from memobridge.blinko_client import BlinkoError, FileInfo, Note
from memobridge.media_group_cache import MediaGroupCache
from memobridge.notes import FileTransferError, NoteService


class FakeBlinkoClient:
    def __init__(self) -> None:
        self.upserts: List[Note] = []
        self.uploads: List[tuple[bytes, str]] = []
        self.shared: List[tuple[int, bool]] = []
        self.fail_creates = 0
        self.fail_uploads = False
        self._next_id = 100

    async def upsert_note(self, token: str, note: Note) -> Note:
        await asyncio.sleep(0.005)
        if note.id is None and self.fail_creates:
            self.fail_creates -= 1
            raise BlinkoError(500, "server error")
        self.upserts.append(note)
        if note.id is None:
            self._next_id += 1
            return Note(id=self._next_id, content=note.content)
        return note

    async def upload_file(self, token: str, data: bytes, filename: str) -> FileInfo:
        if self.fail_uploads:
            raise BlinkoError(413, "too large")
        self.uploads.append((data, filename))
        return FileInfo(path=f"/api/file/{filename}", name=filename, size=len(data), type="")

    async def share_note(self, token: str, note_id: int, is_shared: bool) -> None:
        self.shared.append((note_id, is_shared))


class NoteServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.client = FakeBlinkoClient()
        self.cache = MediaGroupCache()
        self.service = NoteService(self.client, self.cache, group_ttl=60)

    def _creates(self) -> List[Note]:
        return [note for note in self.client.upserts if note.id is None]

    async def test_concurrent_group_messages_share_one_note(self) -> None:
        notes = await asyncio.gather(
            *(self.service.create_note("token", f"part {i}", media_group_id="album-1") for i in range(8))
        )
        self.assertEqual(len(self._creates()), 1)
        self.assertEqual({note.id for note in notes}, {notes[0].id})

    async def test_single_messages_are_not_coalesced(self) -> None:
        first = await self.service.create_note("token", "one")
        second = await self.service.create_note("token", "two")
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(len(self.cache), 0)

    async def test_different_groups_get_different_notes(self) -> None:
        first, second = await asyncio.gather(
            self.service.create_note("token", "a", media_group_id="album-1"),
            self.service.create_note("token", "b", media_group_id="album-2"),
        )
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(len(self._creates()), 2)

    async def test_failed_group_create_is_retried_by_next_message(self) -> None:
        self.client.fail_creates = 1
        with self.assertRaises(BlinkoError):
            await self.service.create_note("token", "a", media_group_id="album-1")
        note = await self.service.create_note("token", "b", media_group_id="album-1")
        self.assertEqual(note.content, "b")
        self.assertEqual(len(self._creates()), 1)

    async def test_attach_file_uploads_then_links(self) -> None:
        note = Note(id=5, content="caption")
        resource = await self.service.attach_file("token", note, b"data", "doc.pdf")
        self.assertEqual(self.client.uploads, [(b"data", "doc.pdf")])
        linked = self.client.upserts[-1]
        self.assertEqual(linked.id, 5)
        self.assertEqual(linked.content, "caption")
        self.assertEqual(linked.attachments, [resource])
        self.assertIsNone(linked.is_top)

    async def test_attach_file_failure_is_wrapped(self) -> None:
        self.client.fail_uploads = True
        with self.assertRaises(FileTransferError):
            await self.service.attach_file("token", Note(id=5, content="x"), b"data", "big.mov")
        self.assertEqual(self.client.upserts, [])

    async def test_toggle_pin(self) -> None:
        pinned = await self.service.toggle_pin("token", Note(id=9, content="x", is_share=True))
        self.assertTrue(pinned.is_top)
        self.assertTrue(pinned.is_share)
        self.assertTrue(self.client.upserts[-1].is_top)
        unpinned = await self.service.toggle_pin("token", pinned)
        self.assertFalse(unpinned.is_top)

    async def test_set_shared(self) -> None:
        await self.service.set_shared("token", 9, True)
        self.assertEqual(self.client.shared, [(9, True)])


if __name__ == "__main__":
    unittest.main()
