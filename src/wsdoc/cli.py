from __future__ import annotations

import argparse
import json
import os
import sys
from importlib import metadata
from pathlib import Path
from typing import Any

import tomllib
import uvicorn
from rich.console import Console

from .fields import DeriveOptions, derive, set_debug_logging
from .logging_utils import build_uvicorn_log_config
from .render import TemplateRenderError, render_docx
from .web import WebConfig, create_app

TEMPLATE_ENV = "WSDOC_TEMPLATE"

console = Console()


def _read_local_version() -> str | None:
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("wsdoc")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"wsdoc {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print per-field derivation failures and render errors.",
    )


def _add_template_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-t",
        "--template",
        default=os.environ.get(TEMPLATE_ENV),
        help=f"Path to the .docx template (default: ${TEMPLATE_ENV}).",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="wsdoc",
        description="Render worksheet payloads into Word documents. Commands: derive, render, web.",
    )
    _add_common_flags(ap)
    return ap


def build_derive_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="wsdoc derive",
        description="Print the payload enriched with *_rich / *_plain / *_line fields.",
    )
    _add_common_flags(ap)
    ap.add_argument("payload", help="Path to a JSON payload ('-' reads stdin).")
    ap.add_argument("-o", "--output", help="Write the derived JSON here instead of stdout.")
    ap.add_argument(
        "--help-with-url",
        action="store_true",
        help="Show help links as 'help (URL)' instead of 'help'.",
    )
    return ap


def build_render_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="wsdoc render",
        description="Render a JSON payload into a .docx through a docxtpl template.",
    )
    _add_common_flags(ap)
    ap.add_argument("payload", help="Path to a JSON payload ('-' reads stdin).")
    _add_template_flag(ap)
    ap.add_argument(
        "-o",
        "--output",
        help="Output .docx path (default: payload name with .docx suffix).",
    )
    ap.add_argument(
        "--help-with-url",
        action="store_true",
        help="Show help links as 'help (URL)' instead of 'help'.",
    )
    return ap


def build_web_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="wsdoc web",
        description="Serve the document generation endpoint.",
    )
    _add_common_flags(ap)
    _add_template_flag(ap)
    ap.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host interface for the web server (default: 0.0.0.0).",
    )
    ap.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the web server (default: 8000).",
    )
    ap.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin; repeat for several (default: any).",
    )
    ap.add_argument(
        "--filename",
        default="generated.docx",
        help="Download filename for generated documents (default: generated.docx).",
    )
    ap.add_argument(
        "--help-with-url",
        action="store_true",
        help="Show help links as 'help (URL)' instead of 'help'.",
    )
    return ap


def _load_payload(source: str) -> dict[str, Any]:
    if source == "-":
        raw = sys.stdin.read()
    else:
        path = Path(source).expanduser()
        if not path.is_file():
            raise SystemExit(f"Payload not found: {path}")
        raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Payload is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SystemExit("Payload must be a JSON object.")
    return payload


def _resolve_template(value: str | None) -> Path:
    if not value:
        raise SystemExit(f"No template given; pass --template or set ${TEMPLATE_ENV}.")
    path = Path(value).expanduser().resolve()
    if not path.is_file():
        raise SystemExit(f"Template not found: {path}")
    return path


def _run_derive(args: argparse.Namespace) -> int:
    payload = _load_payload(args.payload)
    derived = derive(payload, options=DeriveOptions(help_label_with_url=args.help_with_url))
    text = json.dumps(derived, ensure_ascii=False, indent=2)
    if args.output:
        output = Path(args.output).expanduser()
        output.write_text(text + "\n", encoding="utf-8")
        console.print(f"[green]Wrote[/green] {output}")
    else:
        console.print_json(text)
    return 0


def _run_render(args: argparse.Namespace) -> int:
    template = _resolve_template(args.template)
    payload = _load_payload(args.payload)
    if args.output:
        output = Path(args.output).expanduser()
    elif args.payload == "-":
        output = Path("generated.docx")
    else:
        output = Path(args.payload).expanduser().with_suffix(".docx")
    options = DeriveOptions(help_label_with_url=args.help_with_url)
    try:
        document = render_docx(template, payload, options=options)
    except TemplateRenderError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    output.write_bytes(document)
    console.print(f"[green]Wrote[/green] {output} ({len(document)} bytes)")
    return 0


def _run_web(args: argparse.Namespace) -> None:
    template = _resolve_template(args.template)
    config = WebConfig(
        template=template,
        allow_origins=tuple(args.allow_origins or ("*",)),
        filename=args.filename,
        help_label_with_url=args.help_with_url,
    )
    app = create_app(config)
    console.print(f"Serving wsdoc with template {template}")
    console.print(f"Web URL: http://{args.host}:{args.port}/api/generate")
    console.print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_config=build_uvicorn_log_config(debug=args.debug),
    )


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "derive":
        derive_args = build_derive_parser().parse_args(argv[1:])
        set_debug_logging(derive_args.debug)
        return _run_derive(derive_args)
    if argv and argv[0] == "render":
        render_args = build_render_parser().parse_args(argv[1:])
        set_debug_logging(render_args.debug)
        return _run_render(render_args)
    if argv and argv[0] == "web":
        web_args = build_web_parser().parse_args(argv[1:])
        set_debug_logging(web_args.debug)
        _run_web(web_args)
        return 0

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    parser.parse_args(argv)
    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
