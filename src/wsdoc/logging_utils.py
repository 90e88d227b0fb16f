from __future__ import annotations

from copy import copy, deepcopy
from typing import Any

from uvicorn.config import LOGGING_CONFIG
from uvicorn.logging import AccessFormatter as UvicornAccessFormatter


def _strip_query(value: str) -> str:
    path, _, _ = value.partition("?")
    return path


class PathOnlyAccessFormatter(UvicornAccessFormatter):
    """Uvicorn access log formatter that drops query strings (they may carry keys)."""

    def formatMessage(self, record):  # type: ignore[override]
        try:
            client_addr, method, full_path, http_version, status_code = record.args
        except (TypeError, ValueError):
            return super().formatMessage(record)
        path = _strip_query(full_path) if isinstance(full_path, str) else full_path
        new_record = copy(record)
        new_record.args = (client_addr, method, path, http_version, status_code)
        return super().formatMessage(new_record)


def build_uvicorn_log_config(*, debug: bool = False) -> dict[str, Any]:
    config = deepcopy(LOGGING_CONFIG)
    formatter = config.get("formatters", {}).get("access")
    if isinstance(formatter, dict):
        formatter["()"] = "wsdoc.logging_utils.PathOnlyAccessFormatter"
    if debug:
        for logger in config.get("loggers", {}).values():
            if isinstance(logger, dict):
                logger["level"] = "DEBUG"
    return config
