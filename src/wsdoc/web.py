from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .fields import DeriveOptions, _debug_log, derive
from .render import DOCX_MEDIA_TYPE, TemplateRenderError, render_docx


@dataclass(slots=True)
class WebConfig:
    template: Path
    allow_origins: tuple[str, ...] = ("*",)
    filename: str = "generated.docx"
    help_label_with_url: bool = False


def _coerce_payload(raw: Any) -> dict[str, Any]:
    """Accept a JSON object or a JSON-encoded string; anything else is empty."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
    if not isinstance(raw, dict):
        return {}
    return raw


def create_app(config: WebConfig) -> FastAPI:
    template = config.template.expanduser().resolve()
    if not template.is_file():
        raise FileNotFoundError(f"Template not found: {template}")

    options = DeriveOptions(help_label_with_url=config.help_label_with_url)
    app = FastAPI(title="wsdoc")
    app.state.config = config
    app.state.template = template
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allow_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    @app.middleware("http")
    async def no_store(request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store"
        return response

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @app.post("/api/derive")
    def api_derive(payload: Any = Body(None)) -> JSONResponse:
        return JSONResponse(derive(_coerce_payload(payload), options=options))

    @app.post("/api/generate")
    def api_generate(payload: Any = Body(None)) -> Response:
        data = _coerce_payload(payload)
        try:
            document = render_docx(template, data, options=options)
        except TemplateRenderError as exc:
            return JSONResponse({"error": str(exc)}, status_code=500)
        except Exception as exc:
            _debug_log(f"generate failed: {exc!r}")
            return JSONResponse({"error": str(exc) or exc.__class__.__name__}, status_code=500)
        return Response(
            content=document,
            media_type=DOCX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{config.filename}"'},
        )

    return app


__all__ = ["WebConfig", "create_app"]
