from __future__ import annotations

import re
from dataclasses import dataclass

# Bold first: "**x**" would otherwise match as an italic "*" + "*x*" pair.
_STYLED_SPAN_RE = re.compile(r"(\*\*[^*]+\*\*|\*[^*]+\*)")


@dataclass(frozen=True, slots=True)
class StyledRun:
    text: str
    bold: bool = False
    italic: bool = False

    @property
    def styled(self) -> bool:
        return self.bold or self.italic


def split_runs(line: str) -> list[StyledRun]:
    """
    Split one line of light markdown into plain, bold and italic runs.

    Spans do not nest: ``**bold *x* text**`` is not a bold run.
    """
    runs: list[StyledRun] = []
    rest = line or ""
    while rest:
        match = _STYLED_SPAN_RE.search(rest)
        if match is None:
            runs.append(StyledRun(rest))
            break
        start, end = match.span()
        if start > 0:
            runs.append(StyledRun(rest[:start]))
        token = match.group(0)
        if token.startswith("**"):
            runs.append(StyledRun(token[2:-2], bold=True))
        else:
            runs.append(StyledRun(token[1:-1], italic=True))
        rest = rest[end:]
    return runs


__all__ = ["StyledRun", "split_runs"]
