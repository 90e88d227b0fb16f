from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

from .items import Blank, LineItem, Mode, Row, classify, collapse_blanks, text_items
from .markup import (
    join_columns,
    normalize,
    sentence_underline,
    strip_inline_markup,
    to_text,
)
from .wordml import emit, hyperlink_field, render_lines, wrap

_DEBUG_LOG = False

MAX_PARAGRAPHS = 16
VOCAB_SLOTS = 3
HELP_LABEL = "help"
FALLBACK_SOURCE_LABEL = "source"

PUBLISHERS = {
    "cfr.org": "CFR",
    "forbes.com": "Forbes",
    "theguardian.com": "The Guardian",
    "nytimes.com": "The New York Times",
    "bbc.com": "BBC",
    "economist.com": "The Economist",
    "ft.com": "Financial Times",
    "wsj.com": "WSJ",
    "reuters.com": "Reuters",
    "apnews.com": "AP",
    "bloomberg.com": "Bloomberg",
}

# Checked in order; the first non-empty candidate wins.
WORD_BOX_ALIASES = (
    "_word_box_content",
    "_word_box",
    "_wordbox",
    "_options",
    "_choices",
    "_words",
)

# Key pattern -> exercise mode; first match wins, anything else is PLAIN.
MODE_RULES: tuple[tuple[re.Pattern[str], Mode], ...] = (
    (re.compile(r"^active_", re.IGNORECASE), Mode.ACTIVE),
    (re.compile(r"idioms", re.IGNORECASE), Mode.IDIOMS),
    (re.compile(r"matching", re.IGNORECASE), Mode.MATCHING),
)

_CONTENT_KEY_RE = re.compile(r"^(?P<base>.+)_content$", re.IGNORECASE)
_WORD_BOX_KEY_RE = re.compile(r"^(?P<base>.+)_word_box_content$", re.IGNORECASE)
_HELP_LINK_KEY_RE = re.compile(r"^help_link_", re.IGNORECASE)
_HELP_LINK_VARIANT_RE = re.compile(r"^(?P<base>help_link_\w+?_\d+)(?P<suffix>[ab])?$", re.IGNORECASE)
_DERIVED_SUFFIXES = ("_pretty", "_hyperlink_raw")


def set_debug_logging(enabled: bool) -> None:
    global _DEBUG_LOG
    _DEBUG_LOG = enabled


def _debug_log(message: str) -> None:
    if _DEBUG_LOG:
        print(f"[wsdoc debug] {message}")


@dataclass
class DeriveOptions:
    help_label_with_url: bool = False
    max_paragraphs: int = MAX_PARAGRAPHS


def mode_for_key(key: str, title: object = None) -> Mode:
    """Pick the exercise mode from the content key, then from its title."""
    for candidate in (key, to_text(title)):
        if not candidate:
            continue
        for pattern, mode in MODE_RULES:
            if pattern.search(candidate):
                return mode
    return Mode.PLAIN


def parse_word_list(value: object) -> list[str]:
    """
    Normalize a word box to a list of entries.

    Lists pass through; text is split on the first delimiter present out of
    ``|``, newline and comma.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [entry for entry in (to_text(item).strip() for item in value) if entry]
    text = to_text(value)
    for delimiter in ("|", "\n", ","):
        if delimiter in text:
            parts = text.split(delimiter)
            break
    else:
        parts = [text]
    return [part.strip() for part in parts if part.strip()]


def harvest_word_box(payload: Mapping[str, Any], base: str) -> list[str]:
    for suffix in WORD_BOX_ALIASES:
        entries = parse_word_list(payload.get(f"{base}{suffix}"))
        if entries:
            return entries
    return []


def publisher_label(url: object) -> str:
    """Short display label for an article URL, e.g. ``"The New York Times"``."""
    raw = to_text(url).strip()
    if not raw:
        return FALLBACK_SOURCE_LABEL
    if "://" not in raw:
        raw = f"https://{raw}"
    try:
        host = (urlparse(raw).hostname or "").lower()
    except ValueError:
        return FALLBACK_SOURCE_LABEL
    if host.startswith("www."):
        host = host[4:]
    if not host:
        return FALLBACK_SOURCE_LABEL
    if host in PUBLISHERS:
        return PUBLISHERS[host]
    first = host.split(".")[0]
    if not first:
        return FALLBACK_SOURCE_LABEL
    return first[0].upper() + first[1:]


def help_label(url: object, *, include_url: bool = False) -> str:
    target = to_text(url).strip()
    if not target:
        return ""
    if include_url:
        return f"{HELP_LABEL} ({target})"
    return HELP_LABEL


def plain_text(items: list[LineItem]) -> str:
    lines: list[str] = []
    for item in collapse_blanks(items):
        if isinstance(item, Blank):
            lines.append("")
        elif isinstance(item, Row):
            lines.append(item.line)
        else:
            lines.append(item.content)
    return strip_inline_markup("\n".join(lines))


def _rich(items: list[LineItem]) -> str:
    xml = emit(items)
    return wrap(xml) if xml else ""


def prose_fields(text: str) -> tuple[str, str]:
    """Rich and plain fields for text that has already been normalized."""
    items = text_items(sentence_underline(text).split("\n"))
    return _rich(items), plain_text(items)


def paragraph_fields(value: object) -> tuple[str, str]:
    return prose_fields(normalize(value))


def content_fields(value: object, mode: Mode) -> tuple[str, str]:
    text = normalize(value, active_mode=mode is Mode.ACTIVE)
    items = classify(text, mode)
    return _rich(items), plain_text(items)


def word_box_fields(entries: list[str]) -> tuple[str, str]:
    return join_columns(entries), render_lines(entries)


def vocabulary_words(payload: Mapping[str, Any], index: int) -> list[str]:
    words = (to_text(payload.get(f"article_vocab_p{index}_{slot}")).strip() for slot in range(1, VOCAB_SLOTS + 1))
    return [word for word in words if word]


def _guarded(label: str, func: Callable[[], Any], fallback: Any) -> Any:
    try:
        return func()
    except Exception as exc:  # one bad field must not abort the render
        _debug_log(f"failed to derive {label}: {exc!r}")
        return fallback


def _apply_defaults(result: dict[str, Any]) -> None:
    result.setdefault("midjourney_article_logo", "")
    result.setdefault("teacher_cloud_logo", "")
    if result.get("headline_article") and not result.get("headline_artikel"):
        result["headline_artikel"] = result["headline_article"]
    if result.get("headline_artikel") and not result.get("headline_article"):
        result["headline_article"] = result["headline_artikel"]


def _derive_links(source: Mapping[str, Any], result: dict[str, Any], options: DeriveOptions) -> None:
    if "source_link" in source:
        url = to_text(source["source_link"]).strip()
        label = _guarded("source_link", lambda: publisher_label(url), FALLBACK_SOURCE_LABEL) if url else ""
        result["source_link_pretty"] = label
        result["source_link_hyperlink_raw"] = wrap(hyperlink_field(url, label)) if url else ""

    labelled: dict[str, str] = {}
    for key, value in source.items():
        if not _HELP_LINK_KEY_RE.match(key) or key.endswith(_DERIVED_SUFFIXES):
            continue
        url = to_text(value).strip()
        label = _guarded(key, lambda: help_label(url, include_url=options.help_label_with_url), "")
        labelled[f"{key}_pretty"] = label
        result[f"{key}_pretty"] = label
        result[f"{key}_hyperlink_raw"] = wrap(hyperlink_field(url, label)) if url else ""

    # Templates reference numbered help links as _1, _1a or _1b; mirror labels
    # onto the variants the payload did not provide.
    for key in list(labelled):
        label = labelled[key]
        if not label:
            continue
        match = _HELP_LINK_VARIANT_RE.match(key[: -len("_pretty")])
        if not match:
            continue
        base = match.group("base")
        if match.group("suffix"):
            mirrors = [f"{base}_pretty"]
        else:
            mirrors = [f"{base}a_pretty", f"{base}b_pretty"]
        for mirror in mirrors:
            if mirror not in labelled:
                result.setdefault(mirror, label)


def _derive_word_boxes(source: Mapping[str, Any], result: dict[str, Any]) -> None:
    for key, value in source.items():
        if not _WORD_BOX_KEY_RE.match(key):
            continue
        entries = _guarded(key, lambda: parse_word_list(value), [])
        if not entries:
            continue
        line, rich = _guarded(key, lambda: word_box_fields(entries), ("", ""))
        result[f"{key}_line"] = line
        result[f"{key}_rich"] = rich


def _derive_article(source: Mapping[str, Any], result: dict[str, Any], options: DeriveOptions) -> None:
    paragraphs: list[str] = []
    for index in range(1, options.max_paragraphs + 1):
        key = f"article_text_paragraph{index}"
        if key in source:
            value = source[key]
            rich, plain = _guarded(key, lambda: paragraph_fields(value), ("", ""))
            result[f"{key}_rich"] = rich
            result[f"{key}_plain"] = plain
            text = _guarded(key, lambda: normalize(value), "")
            if text:
                paragraphs.append(text)

        words = _guarded(f"article_vocab_p{index}", lambda: vocabulary_words(source, index), [])
        if words:
            line, rich = _guarded(f"article_vocab_p{index}", lambda: word_box_fields(words), ("", ""))
            result[f"article_vocab_p{index}_line"] = line
            result[f"article_vocab_p{index}_rich"] = rich

    if paragraphs:
        rich, plain = _guarded("article_text_all", lambda: prose_fields("\n\n".join(paragraphs)), ("", ""))
        result["article_text_all_rich"] = rich
        result["article_text_all_plain"] = plain


def _derive_exercises(source: Mapping[str, Any], result: dict[str, Any]) -> None:
    for key, value in source.items():
        match = _CONTENT_KEY_RE.match(key)
        if not match or _WORD_BOX_KEY_RE.match(key):
            continue
        base = match.group("base")
        mode = mode_for_key(key, source.get(f"{base}_title"))
        rich, plain = _guarded(key, lambda: content_fields(value, mode), ("", ""))
        result[f"{key}_rich"] = rich
        result[f"{key}_plain"] = plain

        if mode is Mode.IDIOMS and f"{base}_word_box_content_line" not in result:
            entries = _guarded(f"{base} word box", lambda: harvest_word_box(source, base), [])
            if entries:
                line, box_rich = _guarded(f"{base} word box", lambda: word_box_fields(entries), ("", ""))
                result[f"{base}_word_box_content_line"] = line
                result[f"{base}_word_box_content_rich"] = box_rich


def derive(payload: object, *, options: DeriveOptions | None = None) -> dict[str, Any]:
    """
    Return a copy of ``payload`` enriched with the derived template fields.

    Derivation runs in three passes so that explicit word boxes are settled
    before idioms exercises look for fallbacks. The input mapping is never
    modified and malformed values only ever blank their own derived keys.
    """
    options = options or DeriveOptions()
    if not isinstance(payload, Mapping):
        _debug_log(f"payload is {type(payload).__name__}, expected a mapping")
        payload = {}
    source = {key: value for key, value in payload.items() if isinstance(key, str)}
    result: dict[str, Any] = dict(payload)

    _apply_defaults(result)
    _derive_links(source, result, options)
    _derive_word_boxes(source, result)
    _derive_article(source, result, options)
    _derive_exercises(source, result)
    return result


__all__ = [
    "DeriveOptions",
    "MODE_RULES",
    "PUBLISHERS",
    "WORD_BOX_ALIASES",
    "content_fields",
    "derive",
    "harvest_word_box",
    "help_label",
    "mode_for_key",
    "paragraph_fields",
    "parse_word_list",
    "plain_text",
    "prose_fields",
    "publisher_label",
    "set_debug_logging",
    "vocabulary_words",
    "word_box_fields",
]
