"""Rewrite Telegram formatting entities into Markdown.

Telegram reports entity offsets and lengths in UTF-16 code units, so all
slicing happens on the UTF-16-LE encoding of the text (two bytes per unit).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

URL = "url"
TEXT_LINK = "text_link"
BOLD = "bold"
ITALIC = "italic"

SUPPORTED_KINDS = frozenset({URL, TEXT_LINK, BOLD, ITALIC})

_UTF16 = "utf-16-le"
_WHITESPACE_PATTERN = re.compile(r"\A(\s*)(.*?)(\s*)\Z", re.DOTALL)


@dataclass(slots=True, frozen=True)
class FormattingEntity:
    kind: str
    offset: int
    length: int
    url: Optional[str] = None

    @property
    def end(self) -> int:
        return self.offset + self.length


def _code_unit(encoded: bytes, index: int) -> int:
    return int.from_bytes(encoded[index * 2 : index * 2 + 2], "little")


def _snap(encoded: bytes, unit: int) -> int:
    """Clamp ``unit`` to the text and move it off the low half of a surrogate pair."""
    total = len(encoded) // 2
    unit = max(0, min(unit, total))
    if 0 < unit < total and 0xD800 <= _code_unit(encoded, unit - 1) <= 0xDBFF:
        return unit - 1
    return unit


def _decode_units(encoded: bytes, start: int, end: int) -> str:
    return encoded[_snap(encoded, start) * 2 : _snap(encoded, end) * 2].decode(_UTF16)


def utf16_slice(text: str, start: int, end: Optional[int] = None) -> str:
    """Return ``text[start:end]`` with both bounds counted in UTF-16 code units.

    A bound that lands between the two halves of a surrogate pair is moved to
    the start of that character.
    """
    encoded = text.encode(_UTF16)
    return _decode_units(encoded, start, len(encoded) // 2 if end is None else end)


def utf16_length(text: str) -> int:
    return len(text.encode(_UTF16)) // 2


def split_whitespace(text: str) -> Tuple[str, str, str]:
    match = _WHITESPACE_PATTERN.match(text)
    assert match is not None  # the pattern matches any string
    return match.group(1), match.group(2), match.group(3)


def _render(entity: FormattingEntity, core: str) -> str:
    if entity.kind == URL:
        return f"[{core}]({core})"
    if entity.kind == TEXT_LINK:
        return f"[{core}]({entity.url or ''})"
    if entity.kind == BOLD:
        return f"**{core}**"
    return f"*{core}*"


def format_content(text: str, entities: Sequence[FormattingEntity]) -> str:
    """Apply link, bold and italic entities to ``text`` as Markdown.

    Entities are taken in the order given. One that starts before the end of
    the last applied entity is dropped and its text stays as plain text.
    Whitespace at the edges of an entity is kept outside the markup, and an
    entity containing only whitespace is copied through unchanged.
    """
    if not entities:
        return text

    encoded = text.encode(_UTF16)
    total_units = len(encoded) // 2

    parts: List[str] = []
    cursor = 0
    for entity in entities:
        if entity.kind not in SUPPORTED_KINDS:
            continue
        if entity.offset < cursor or entity.length <= 0:
            continue
        start = _snap(encoded, entity.offset)
        end = _snap(encoded, entity.end)
        parts.append(_decode_units(encoded, cursor, start))
        cursor = end

        raw = _decode_units(encoded, start, end)
        leading, core, trailing = split_whitespace(raw)
        if not core:
            parts.append(raw)
            continue
        parts.append(f"{leading}{_render(entity, core)}{trailing}")

    parts.append(_decode_units(encoded, cursor, total_units))
    return "".join(parts)


def entities_from_telegram(entities: Optional[Iterable[object]]) -> List[FormattingEntity]:
    """Convert ``telegram.MessageEntity`` objects (or look-alikes) to ``FormattingEntity``."""
    converted: List[FormattingEntity] = []
    for entity in entities or ():
        converted.append(
            FormattingEntity(
                kind=str(getattr(entity, "type", "")),
                offset=int(getattr(entity, "offset", 0)),
                length=int(getattr(entity, "length", 0)),
                url=getattr(entity, "url", None),
            )
        )
    return converted


__all__ = [
    "BOLD",
    "FormattingEntity",
    "ITALIC",
    "SUPPORTED_KINDS",
    "TEXT_LINK",
    "URL",
    "entities_from_telegram",
    "format_content",
    "split_whitespace",
    "utf16_length",
    "utf16_slice",
]
