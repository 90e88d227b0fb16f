from __future__ import annotations

import re
from typing import Iterable

SEPARATOR = "   |   "
SENTENCE_TOKEN = "___SENTENCE___"
SENTENCE_LINE = "_" * 80

# Only these entities are decoded; anything else is left verbatim.
HTML_ENTITIES = (
    ("&nbsp;", " "),
    ("&#160;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)

_TR_OPEN_RE = re.compile(r"<tr[^>]*>", re.IGNORECASE)
_TR_CLOSE_RE = re.compile(r"</tr>", re.IGNORECASE)
_CELL_OPEN_RE = re.compile(r"<t[hd][^>]*>", re.IGNORECASE)
_CELL_CLOSE_RE = re.compile(r"</t[hd]>", re.IGNORECASE)
_REPEATED_PIPES_RE = re.compile(r"\s*\|\s*(\|\s*)+")
_HEADING_RE = re.compile(r"<h([1-6])[^>]*>(.*?)</h\1>", re.IGNORECASE | re.DOTALL)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_P_CLOSE_RE = re.compile(r"</p>\s*", re.IGNORECASE)
_P_OPEN_RE = re.compile(r"<p(?:\s[^>]*)?>", re.IGNORECASE)
_DIV_CLOSE_RE = re.compile(r"</div>\s*", re.IGNORECASE)
_DIV_OPEN_RE = re.compile(r"<div(?:\s[^>]*)?>", re.IGNORECASE)
_LI_OPEN_RE = re.compile(r"<li(?:\s[^>]*)?>\s*", re.IGNORECASE)
_LI_CLOSE_RE = re.compile(r"</li>", re.IGNORECASE)
_LIST_WRAPPER_RE = re.compile(r"</?(?:ul|ol)(?:\s[^>]*)?>", re.IGNORECASE)
_BOLD_TAG_RE = re.compile(r"</?(?:strong|b)(?:\s[^>]*)?>", re.IGNORECASE)
_ITALIC_TAG_RE = re.compile(r"</?(?:em|i)(?:\s[^>]*)?>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]+>")
_CRLF_RE = re.compile(r"\r\n?")

_PHASE_RE = re.compile(r"(?:^|\n)\s*(Phase\s*\d+\s*:)[ \t]*", re.IGNORECASE)
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+(?=[A-ZÄÖÜ])")
_INLINE_NUMBER_RE = re.compile(r"(\s)(\d+\.\s+)")

_TRAILING_PIPE_RE = re.compile(r"\s*\|\s*$")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_PIPE_RE = re.compile(r"\s*\|\s*")

_BOLD_MD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_MD_RE = re.compile(r"\*([^*]+)\*")


def to_text(value: object) -> str:
    """Coerce a payload value to a string; ``None`` becomes ``""``."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "\n".join(to_text(item) for item in value if item is not None)
    if isinstance(value, dict):
        return ""
    return str(value)


def decode_entities(text: str) -> str:
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return text


def _normalize_tables(text: str) -> str:
    text = _TR_OPEN_RE.sub("", text)
    text = _TR_CLOSE_RE.sub("\n", text)
    text = _CELL_OPEN_RE.sub("", text)
    text = _CELL_CLOSE_RE.sub(" | ", text)
    return _REPEATED_PIPES_RE.sub(" | ", text)


def _heading(match: re.Match[str]) -> str:
    return f"\n\n**{match.group(2).strip()}**\n\n"


def _phase(match: re.Match[str]) -> str:
    return f"\n\n**{match.group(1).strip()}**\n"


def _apply_active_heuristics(text: str) -> str:
    text = _PHASE_RE.sub(_phase, text)
    if "\n\n" not in text:
        text = _SENTENCE_BREAK_RE.sub("\n\n", text)
    return _INLINE_NUMBER_RE.sub(r"\1\n\2", text)


def normalize(html: object, *, active_mode: bool = False) -> str:
    """
    Convert an HTML fragment into light markdown.

    The rules run in a fixed order; later steps assume the tags handled by
    earlier steps are already gone.  Returns ``""`` for empty or ``None``
    input.
    """
    text = to_text(html)
    if not text:
        return ""
    text = _normalize_tables(text)
    text = _HEADING_RE.sub(_heading, text)
    text = _BR_RE.sub("\n", text)
    text = _P_CLOSE_RE.sub("\n\n", text)
    text = _P_OPEN_RE.sub("", text)
    text = _DIV_CLOSE_RE.sub("\n\n", text)
    text = _DIV_OPEN_RE.sub("", text)
    text = _LI_OPEN_RE.sub("- ", text)
    text = _LI_CLOSE_RE.sub("\n", text)
    text = _LIST_WRAPPER_RE.sub("", text)
    text = _BOLD_TAG_RE.sub("**", text)
    text = _ITALIC_TAG_RE.sub("*", text)
    text = _ANY_TAG_RE.sub("", text)
    text = decode_entities(text)
    text = _CRLF_RE.sub("\n", text)
    if active_mode:
        text = _apply_active_heuristics(text)
    text = "\n".join(_TRAILING_PIPE_RE.sub("", line).rstrip() for line in text.split("\n"))
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def sentence_underline(line: str) -> str:
    return line.replace(SENTENCE_TOKEN, SENTENCE_LINE)


def space_pipes(line: str) -> str:
    """Rewrite every pipe in ``line`` with the fixed column separator."""
    return _PIPE_RE.sub(SEPARATOR, line)


def strip_inline_markup(text: str) -> str:
    text = _BOLD_MD_RE.sub(r"\1", text)
    return _ITALIC_MD_RE.sub(r"\1", text)


def join_columns(values: Iterable[str]) -> str:
    return SEPARATOR.join(values)


__all__ = [
    "SEPARATOR",
    "SENTENCE_TOKEN",
    "SENTENCE_LINE",
    "decode_entities",
    "join_columns",
    "normalize",
    "sentence_underline",
    "space_pipes",
    "strip_inline_markup",
    "to_text",
]
