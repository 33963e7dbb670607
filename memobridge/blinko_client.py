from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

LOGGER = logging.getLogger(__name__)

API_PATH_NOTE_UPSERT = "/api/v1/note/upsert"
API_PATH_NOTE_DETAIL = "/api/v1/note/detail"
API_PATH_NOTE_LIST = "/api/v1/note/list"
API_PATH_NOTE_SHARE = "/api/v1/note/share"
API_PATH_FILE_UPLOAD = "/api/file/upload"
API_PATH_USER_DETAIL = "/api/v1/user/detail"


class BlinkoError(Exception):
    """Raised when the note server answers with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"blinko error: {status_code} {message}")
        self.status_code = status_code
        self.message = message


@dataclass(slots=True)
class FileInfo:
    path: str
    name: str
    size: Any = None
    type: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {"path": self.path, "name": self.name, "size": self.size, "type": self.type}

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "FileInfo":
        return cls(
            path=str(data.get("path") or ""),
            name=str(data.get("name") or ""),
            size=data.get("size"),
            type=str(data.get("type") or ""),
        )


@dataclass(slots=True)
class Note:
    content: str
    id: Optional[int] = None
    type: Optional[int] = None
    attachments: List[FileInfo] = field(default_factory=list)
    is_top: Optional[bool] = False
    is_share: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": self.content}
        if self.is_top is not None:
            payload["isTop"] = self.is_top
        if self.id:
            payload["id"] = self.id
        if self.type:
            payload["type"] = self.type
        if self.attachments:
            payload["attachments"] = [attachment.to_payload() for attachment in self.attachments]
        if self.is_share:
            payload["isShare"] = True
        return payload

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Note":
        attachments = data.get("attachments") or []
        return cls(
            id=data.get("id"),
            type=data.get("type"),
            content=data.get("content") or "",
            attachments=[FileInfo.from_payload(item) for item in attachments if isinstance(item, dict)],
            is_top=bool(data.get("isTop", False)),
            is_share=bool(data.get("isShare", False)),
        )


@dataclass(slots=True)
class UserInfo:
    id: Optional[int]
    name: str
    nickname: str


class BlinkoClient:
    """Async client for the Blinko note API.

    The access token is passed on every call since one client instance is
    shared by all chat users.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                LOGGER.debug("Creating async httpx client for Blinko at %s", self._base_url)
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    transport=self._transport,
                    headers={"Accept": "application/json"},
                )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, token: str, **kwargs: Any) -> Any:
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        response = await client.request(method, path, headers=headers, **kwargs)
        if not response.is_success:
            LOGGER.warning(
                "Blinko request failed (path=%s, status=%s, body=%s)",
                path,
                response.status_code,
                response.text,
            )
            raise BlinkoError(response.status_code, response.text)
        return response.json()

    async def upsert_note(self, token: str, note: Note) -> Note:
        data = await self._request("POST", API_PATH_NOTE_UPSERT, token, json=note.to_payload())
        return Note.from_payload(data)

    async def get_note(self, token: str, note_id: int) -> Note:
        data = await self._request("POST", API_PATH_NOTE_DETAIL, token, json={"id": note_id})
        return Note.from_payload(data)

    async def list_notes(self, token: str, search_text: str) -> List[Note]:
        data = await self._request("POST", API_PATH_NOTE_LIST, token, json={"searchText": search_text})
        return [Note.from_payload(item) for item in data or [] if isinstance(item, dict)]

    async def share_note(self, token: str, note_id: int, is_shared: bool) -> None:
        await self._request(
            "POST",
            API_PATH_NOTE_SHARE,
            token,
            json={"id": note_id, "isCancel": not is_shared},
        )

    async def upload_file(self, token: str, data: bytes, filename: str) -> FileInfo:
        payload = await self._request(
            "POST",
            API_PATH_FILE_UPLOAD,
            token,
            files={"file": (filename, data)},
        )
        return FileInfo(
            path=str(payload.get("filePath") or ""),
            name=str(payload.get("fileName") or filename),
            size=payload.get("size"),
            type=str(payload.get("type") or ""),
        )

    async def get_user_detail(self, token: str) -> UserInfo:
        data = await self._request("GET", API_PATH_USER_DETAIL, token)
        return UserInfo(
            id=data.get("id"),
            name=str(data.get("name") or ""),
            nickname=str(data.get("nickname") or data.get("name") or ""),
        )


__all__ = ["BlinkoClient", "BlinkoError", "FileInfo", "Note", "UserInfo"]
