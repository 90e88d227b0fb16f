from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import IO, Any, Mapping

from docx.opc.exceptions import PackageNotFoundError
from docxtpl import DocxTemplate
from jinja2 import TemplateError
from markupsafe import Markup

from .fields import DeriveOptions, _debug_log, derive
from .wordml import is_literal, unwrap

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Only fields produced by ``derive`` may carry literal XML into the document.
LITERAL_SUFFIXES = ("_rich", "_hyperlink_raw")


class TemplateRenderError(RuntimeError):
    """Raised when a .docx template cannot be loaded or rendered."""


def build_context(payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Prepare a derived payload for docxtpl.

    Literal-XML fields lose their ``||`` sentinels and are marked safe so the
    autoescaping environment inserts them verbatim; use them in templates
    with the run tag, e.g. ``{{r article_text_paragraph1_rich}}``.  Any other
    key is escaped as text even when its value looks like a literal.
    """
    context: dict[str, Any] = {}
    for key, value in payload.items():
        if value is None:
            context[key] = ""
        elif str(key).endswith(LITERAL_SUFFIXES) and is_literal(value):
            context[key] = Markup(unwrap(value))
        else:
            context[key] = value
    return context


def render_docx(
    template: str | Path | IO[bytes],
    payload: Mapping[str, Any],
    *,
    derive_first: bool = True,
    options: DeriveOptions | None = None,
) -> bytes:
    data = derive(payload, options=options) if derive_first else dict(payload)
    context = build_context(data)
    try:
        doc = DocxTemplate(template)
        doc.render(context, autoescape=True)
    except (TemplateError, PackageNotFoundError, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
        _debug_log(f"template render failed: {exc!r}")
        raise TemplateRenderError(f"Failed to render template: {exc}") from exc
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


__all__ = ["DOCX_MEDIA_TYPE", "LITERAL_SUFFIXES", "TemplateRenderError", "build_context", "render_docx"]
