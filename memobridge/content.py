"""Build note text and attachment lists from incoming Telegram messages."""

from __future__ import annotations

from typing import Any, List, Optional

from memobridge.formatting import entities_from_telegram, format_content

HIDDEN_USER_NAME = "Hidden User"


def _origin_name_and_username(origin: Any) -> tuple[str, str]:
    origin_type = str(getattr(origin, "type", ""))
    if origin_type == "user":
        user = origin.sender_user
        name = " ".join(part for part in [user.first_name, user.last_name] if part)
        return name, user.username or ""
    if origin_type == "hidden_user":
        return origin.sender_user_name or HIDDEN_USER_NAME, ""
    if origin_type == "chat":
        chat = origin.sender_chat
        return chat.title or "", chat.username or ""
    if origin_type == "channel":
        chat = origin.chat
        return chat.title or "", chat.username or ""
    return "", ""


def forward_header(origin: Any) -> Optional[str]:
    """Return the ``Forwarded from ...`` line for a forwarded message origin."""
    if origin is None:
        return None
    name, username = _origin_name_and_username(origin)
    if username:
        return f"Forwarded from [{name}](https://t.me/{username})"
    return f"Forwarded from {name}"


def message_content(message: Any) -> str:
    text = message.text or ""
    entities = message.entities
    if message.caption:
        text = message.caption
        entities = message.caption_entities
    if entities:
        text = format_content(text, entities_from_telegram(entities))

    header = forward_header(getattr(message, "forward_origin", None))
    if header is not None:
        text = f"{header}\n{text}"
    return text


def attached_file_ids(message: Any) -> List[str]:
    """File ids of the document, voice, video and largest photo size, in that order."""
    file_ids: List[str] = []
    for attachment in (message.document, message.voice, message.video):
        if attachment is not None:
            file_ids.append(attachment.file_id)
    if message.photo:
        file_ids.append(message.photo[-1].file_id)
    return file_ids


__all__ = ["attached_file_ids", "forward_header", "message_content"]
