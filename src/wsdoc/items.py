from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Union

from .markup import SEPARATOR, sentence_underline, space_pipes

CHOICE_LABELS = ("a", "b", "c", "d")

_LIST_MARKER_RE = re.compile(r"^\s*(?:\d+\.|[-•]\s+)")
_QUESTION_RE = re.compile(r"^\d+\.")
# The label must be followed by whitespace so "U.S." or "e.g." keep their letters.
_LEADING_LABEL_RE = re.compile(r"^\s*(?:(?:[A-Za-z][).]|\d+\.)\s+|[-•]\s+)")
_MATCH_LEFT_RE = re.compile(r"^\d+\.\s*")
_MATCH_RIGHT_RE = re.compile(r"^[A-Za-z]\.\s*")


class Mode(Enum):
    PLAIN = "plain"
    ACTIVE = "active"
    IDIOMS = "idioms"
    MATCHING = "matching"


@dataclass(frozen=True, slots=True)
class Blank:
    pass


@dataclass(frozen=True, slots=True)
class Text:
    content: str


@dataclass(frozen=True, slots=True)
class Row:
    left: str
    right: str

    @property
    def line(self) -> str:
        return f"{self.left}{SEPARATOR}{self.right}"


LineItem = Union[Blank, Text, Row]
BLANK = Blank()


def text_items(lines: Iterable[str]) -> list[LineItem]:
    return [Text(line) if line.strip() else BLANK for line in lines]


def enumerate_preserve_blanks(lines: Iterable[str]) -> list[LineItem]:
    """
    Number every non-blank line that does not already carry a list marker.

    Blank lines and pre-marked lines do not advance the counter, so running
    this over its own output changes nothing.
    """
    items: list[LineItem] = []
    counter = 0
    for line in lines:
        if not line.strip():
            items.append(BLANK)
            continue
        if _LIST_MARKER_RE.match(line):
            items.append(Text(line))
            continue
        counter += 1
        items.append(Text(f"{counter}. {line}"))
    return items


def strip_leading_label(line: str) -> str:
    return _LEADING_LABEL_RE.sub("", line, count=1)


def _choice_label(index: int) -> str:
    return CHOICE_LABELS[min(index, len(CHOICE_LABELS) - 1)]


def build_idioms_blocks(text: str) -> list[LineItem]:
    """Group a multiple-choice exercise into question blocks with a)–d) options."""
    blocks: list[list[LineItem]] = []
    current: list[LineItem] | None = None
    option_index = 0
    for raw in text.split("\n"):
        line = sentence_underline(raw).strip()
        if not line:
            if current is not None:
                current.append(BLANK)
            continue
        if _QUESTION_RE.match(line):
            current = [Text(line)]
            blocks.append(current)
            option_index = 0
            continue
        option = Text(f"{_choice_label(option_index)}) {strip_leading_label(line)}")
        option_index += 1
        if current is None:
            # Options before any numbered question form a block of their own.
            current = []
            blocks.append(current)
        current.append(option)

    items: list[LineItem] = []
    for block in blocks:
        items.extend(block)
        items.append(BLANK)
    return items


def build_matching_rows(text: str) -> list[LineItem]:
    lines = [line.strip() for line in text.split("\n")]
    lines = [sentence_underline(line) for line in lines if line]
    left: list[str] = []
    right: list[str] = []
    for line in lines:
        if _MATCH_LEFT_RE.match(line):
            left.append(_MATCH_LEFT_RE.sub("", line, count=1))
        elif _MATCH_RIGHT_RE.match(line):
            right.append(_MATCH_RIGHT_RE.sub("", line, count=1))
        elif "|" in line:
            head, _, tail = line.partition("|")
            left.append(head.strip())
            # Columns past the second stay in the right cell, spaced like the first.
            right.append(space_pipes(tail.strip()))
        else:
            return [Text(line) for line in lines]
    count = max(len(left), len(right))
    left.extend([""] * (count - len(left)))
    right.extend([""] * (count - len(right)))
    return [Row(l, r) for l, r in zip(left, right)]


def coerce_mode(value: object) -> Mode:
    if isinstance(value, Mode):
        return value
    try:
        return Mode(str(value).lower())
    except ValueError:
        return Mode.PLAIN


def classify(text: str, mode: Mode | str = Mode.PLAIN) -> list[LineItem]:
    """
    Turn normalized text into line items for ``mode``.

    The result is already blank-collapsed. Unknown modes are treated as
    plain enumeration.
    """
    if not text:
        return []
    mode = coerce_mode(mode)
    if mode is Mode.IDIOMS:
        items = build_idioms_blocks(text)
    elif mode is Mode.MATCHING:
        items = build_matching_rows(text)
    else:
        lines = [sentence_underline(space_pipes(line).rstrip()) for line in text.split("\n")]
        if mode is Mode.ACTIVE:
            items = text_items(lines)
        else:
            items = enumerate_preserve_blanks(lines)
    return collapse_blanks(items)


def collapse_blanks(items: Iterable[LineItem]) -> list[LineItem]:
    """Collapse runs of blanks to one and drop leading/trailing blanks."""
    collapsed: list[LineItem] = []
    previous_blank = False
    for item in items:
        if isinstance(item, Blank):
            if not previous_blank:
                collapsed.append(item)
            previous_blank = True
            continue
        collapsed.append(item)
        previous_blank = False
    while collapsed and isinstance(collapsed[0], Blank):
        collapsed.pop(0)
    while collapsed and isinstance(collapsed[-1], Blank):
        collapsed.pop()
    return collapsed


__all__ = [
    "BLANK",
    "CHOICE_LABELS",
    "Blank",
    "LineItem",
    "Mode",
    "Row",
    "Text",
    "build_idioms_blocks",
    "build_matching_rows",
    "classify",
    "coerce_mode",
    "collapse_blanks",
    "enumerate_preserve_blanks",
    "strip_leading_label",
    "text_items",
]
