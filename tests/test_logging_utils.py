from __future__ import annotations

import logging

from wsdoc.logging_utils import PathOnlyAccessFormatter, build_uvicorn_log_config


def test_log_config_uses_path_only_formatter() -> None:
    config = build_uvicorn_log_config()
    assert config["formatters"]["access"]["()"] == "wsdoc.logging_utils.PathOnlyAccessFormatter"
    assert config["loggers"]["uvicorn"]["level"] == "INFO"


def test_log_config_debug_levels() -> None:
    config = build_uvicorn_log_config(debug=True)
    assert {logger["level"] for logger in config["loggers"].values()} == {"DEBUG"}


def test_access_formatter_drops_query_string() -> None:
    formatter = PathOnlyAccessFormatter(fmt="%(request_line)s", use_colors=False)
    record = logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:1", "POST", "/api/generate?key=secret", "1.1", 200),
        exc_info=None,
    )
    assert formatter.format(record) == "POST /api/generate HTTP/1.1"
    assert record.args[2] == "/api/generate?key=secret"
