"""FastAPI web service for Markdown export.

Endpoints::

    GET  /health        Health check.
    GET  /styles        List available style presets.
    GET  /formats       List available export formats.
    POST /export        Upload a .md file and receive the exported artifact.
    POST /export/text   Send raw Markdown text, receive the exported artifact.

Run::

    uvicorn mdbridge.server:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from mdbridge import __version__
from mdbridge.converter import Converter, ExportOptions
from mdbridge.errors import ExportError
from mdbridge.filenames import artifact_name
from mdbridge.logger import get_logger
from mdbridge.style_manager import StyleManager

logger = get_logger(__name__)

app = FastAPI(
    title="mdbridge",
    description="Markdown to HTML / DOCX export service",
    version=__version__,
)


def _content_disposition(filename: str) -> str:
    """Build Content-Disposition header, RFC 5987 for non-ASCII names."""
    try:
        filename.encode("ascii")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        encoded = quote(filename)
        return f"attachment; filename*=UTF-8''{encoded}"


def _make_converter(style: str, fmt: str, title: str) -> tuple[Converter, str]:
    try:
        fmt = Converter.check_format(fmt)
        converter = Converter(style_preset=style, options=ExportOptions(title=title))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return converter, fmt


async def _export(converter: Converter, md_text: str, fmt: str, title: str) -> Response:
    try:
        data = await converter.export_text(md_text, fmt)
    except ExportError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    filename = artifact_name(title, Converter.EXTENSIONS[fmt])
    return Response(
        content=data,
        media_type=Converter.MEDIA_TYPES[fmt],
        headers={"Content-Disposition": _content_disposition(filename)},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@app.get("/styles")
async def list_styles() -> dict[str, list[str]]:
    """List available style presets."""
    return {"presets": StyleManager.PRESETS}


@app.get("/formats")
async def list_formats() -> dict[str, list[str]]:
    return {"formats": Converter.FORMATS}


@app.post("/export")
async def export_file(
    file: UploadFile = File(...),
    format: str = Form("html"),
    style: str = Form("default"),
    encoding: str = Form("utf-8"),
) -> Response:
    """Upload a Markdown file and receive the exported artifact.

    - **file**: Markdown file (.md)
    - **format**: Export format (html, docx, pdf, md)
    - **style**: Style preset name (default, academic, business, minimal)
    - **encoding**: Source file encoding
    """
    raw = await file.read()
    try:
        md_text = raw.decode(encoding)
    except (LookupError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=400, detail=f"cannot decode upload: {exc}") from exc

    title = (file.filename or "document.md").rsplit(".", 1)[0]
    converter, fmt = _make_converter(style, format, title)
    logger.info("Exporting upload %s as %s", file.filename, fmt)
    return await _export(converter, md_text, fmt, title)


@app.post("/export/text")
async def export_text(
    markdown: str = Form(...),
    format: str = Form("html"),
    style: str = Form("default"),
    title: str = Form("document"),
) -> Response:
    """Send raw Markdown text and receive the exported artifact.

    - **markdown**: Markdown source text
    - **format**: Export format
    - **style**: Style preset name
    - **title**: Document title, also used for the download name
    """
    converter, fmt = _make_converter(style, format, title)
    return await _export(converter, markdown, fmt, title)
