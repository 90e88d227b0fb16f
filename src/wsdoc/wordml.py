from __future__ import annotations

from typing import Iterable

from .items import Blank, LineItem, Row, Text, collapse_blanks, text_items
from .runs import StyledRun, split_runs

LITERAL_DELIMITER = "||"
LINE_BREAK = "<w:r><w:br/></w:r>"


def escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _escape_attr(text: str) -> str:
    return escape_text(text).replace('"', "&quot;")


def run_xml(run: StyledRun) -> str:
    props = ""
    if run.styled:
        props = "<w:rPr>" + ("<w:b/>" if run.bold else "") + ("<w:i/>" if run.italic else "") + "</w:rPr>"
    return f'<w:r>{props}<w:t xml:space="preserve">{escape_text(run.text)}</w:t></w:r>'


def line_xml(line: str) -> str:
    return "".join(run_xml(run) for run in split_runs(line))


def _item_line(item: LineItem) -> str:
    if isinstance(item, Row):
        return item.line
    if isinstance(item, Text):
        return item.content
    raise TypeError(f"Unsupported line item: {item!r}")


def emit(items: Iterable[LineItem]) -> str:
    """
    Render line items as WordprocessingML runs.

    Blanks become one line break, consecutive text lines are separated by
    exactly one line break, and nothing follows the last item.
    """
    collapsed = collapse_blanks(items)
    parts: list[str] = []
    for index, item in enumerate(collapsed):
        if isinstance(item, Blank):
            parts.append(LINE_BREAK)
            continue
        parts.append(line_xml(_item_line(item)))
        following = collapsed[index + 1] if index + 1 < len(collapsed) else None
        if following is not None and not isinstance(following, Blank):
            parts.append(LINE_BREAK)
    return "".join(parts)


def wrap(xml: str) -> str:
    return f"{LITERAL_DELIMITER}{xml}{LITERAL_DELIMITER}"


def is_literal(value: object) -> bool:
    return (
        isinstance(value, str)
        and len(value) >= 2 * len(LITERAL_DELIMITER)
        and value.startswith(LITERAL_DELIMITER)
        and value.endswith(LITERAL_DELIMITER)
    )


def unwrap(value: str) -> str:
    """Return the markup inside a literal-XML sentinel (or ``value`` unchanged)."""
    if not is_literal(value):
        return value
    return value[len(LITERAL_DELIMITER) : -len(LITERAL_DELIMITER)]


def render_lines(lines: Iterable[str]) -> str:
    return wrap(emit(text_items(lines)))


def hyperlink_field(url: str, label: str | None = None) -> str:
    """A HYPERLINK field run; unlike ``<w:hyperlink>`` it needs no relationship id."""
    display = label or url or "link"
    return (
        f'<w:fldSimple w:instr="HYPERLINK &quot;{_escape_attr(url)}&quot;">'
        '<w:r><w:rPr><w:rStyle w:val="Hyperlink"/></w:rPr>'
        f'<w:t xml:space="preserve">{escape_text(display)}</w:t></w:r>'
        "</w:fldSimple>"
    )


__all__ = [
    "LINE_BREAK",
    "LITERAL_DELIMITER",
    "emit",
    "escape_text",
    "hyperlink_field",
    "is_literal",
    "line_xml",
    "render_lines",
    "run_xml",
    "unwrap",
    "wrap",
]
