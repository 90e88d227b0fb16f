from .fields import DeriveOptions, derive, mode_for_key, parse_word_list, publisher_label
from .items import Blank, LineItem, Mode, Row, Text, classify, collapse_blanks
from .markup import SEPARATOR, normalize
from .render import DOCX_MEDIA_TYPE, TemplateRenderError, build_context, render_docx
from .runs import StyledRun, split_runs
from .wordml import emit, unwrap, wrap

__all__ = [
    "DeriveOptions",
    "derive",
    "mode_for_key",
    "parse_word_list",
    "publisher_label",
    "Blank",
    "LineItem",
    "Mode",
    "Row",
    "Text",
    "classify",
    "collapse_blanks",
    "SEPARATOR",
    "normalize",
    "DOCX_MEDIA_TYPE",
    "TemplateRenderError",
    "build_context",
    "render_docx",
    "StyledRun",
    "split_runs",
    "emit",
    "unwrap",
    "wrap",
]
