"""High-level export orchestrator.

Parses a document's Markdown once and hands the tree to the renderer for the
requested format.  Image loading inside the renderers never fails an export;
a failure while assembling the artifact itself is raised as
:class:`~mdbridge.errors.ExportError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mdbridge.assets import AssetResolver
from mdbridge.docx_renderer import DocxRenderer
from mdbridge.errors import ExportError
from mdbridge.filenames import artifact_name
from mdbridge.html_renderer import HtmlRenderer
from mdbridge.logger import get_logger
from mdbridge.parser import MarkdownParser
from mdbridge.pdf_renderer import PdfRenderer
from mdbridge.style_manager import StyleManager
from mdbridge.sync import Document

logger = get_logger(__name__)


@dataclass
class ExportOptions:
    """Knobs shared by the renderers."""

    title: str = "Document"
    # Every DOCX image is embedded at this size; intrinsic size is not read.
    # PDF images take the width and keep their aspect ratio.
    image_width_px: int = 500
    image_height_px: int = 300
    fetch_timeout: float = 10.0


class Converter:
    """Export Markdown content as HTML, DOCX, PDF or Markdown.

    Usage::

        converter = Converter(style_preset="default")
        await converter.export_file("notes.md", fmt="docx")

        # or from string
        html_bytes = await converter.export_text("# Hello", "html")
    """

    STYLE_PRESETS = StyleManager.PRESETS
    FORMATS = ["html", "docx", "pdf", "md"]
    EXTENSIONS = {"html": "html", "docx": "docx", "pdf": "pdf", "md": "md"}
    MEDIA_TYPES = {
        "html": "text/html; charset=utf-8",
        "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "pdf": "application/pdf",
        "md": "text/markdown; charset=utf-8",
    }

    def __init__(
        self,
        style_preset: str = "default",
        options: Optional[ExportOptions] = None,
        resolver: Optional[AssetResolver] = None,
    ) -> None:
        self.style_manager = StyleManager(style_preset)
        self.options = options or ExportOptions()
        self.resolver = resolver or AssetResolver(timeout=self.options.fetch_timeout)
        self.parser = MarkdownParser()

    @classmethod
    def check_format(cls, fmt: str) -> str:
        fmt = fmt.lower().lstrip(".")
        if fmt not in cls.FORMATS:
            raise ValueError(f"Unknown format {fmt!r}. Choose from: {', '.join(cls.FORMATS)}")
        return fmt

    async def export_text(self, markdown_text: str, fmt: str = "html") -> bytes:
        """Convert Markdown text to the bytes of a *fmt* artifact.

        Args:
            markdown_text: Markdown source string.
            fmt: One of :attr:`FORMATS`.

        Returns:
            Artifact content as bytes.

        Raises:
            ValueError: *fmt* is not a known format.
            ExportError: The artifact could not be assembled.
        """
        fmt = self.check_format(fmt)
        if fmt == "md":
            return markdown_text.encode("utf-8")

        doc = self.parser.parse(markdown_text)
        renderer = self._renderer_for(fmt)
        try:
            data = await renderer.render(doc)
        except Exception as exc:
            logger.error("%s export failed: %s", fmt.upper(), exc)
            raise ExportError(f"{fmt.upper()} export failed: {exc}") from exc
        logger.info("Exported %s (%d bytes)", fmt.upper(), len(data))
        return data

    async def export_document(self, document: Document, fmt: str = "html") -> bytes:
        """Export the canonical text of *document*."""
        return await self.export_text(document.canonical_text, fmt)

    async def export_file(
        self,
        input_path: str | Path,
        output_path: str | Path | None = None,
        *,
        fmt: str = "html",
        encoding: str = "utf-8",
    ) -> Path:
        """Read a Markdown file and write the exported artifact.

        Args:
            input_path: Path to the input ``.md`` file.
            output_path: Where to write.  Defaults to a sanitised name built
                from the input file stem, next to the input.
            fmt: One of :attr:`FORMATS`.
            encoding: Text encoding of the source file.

        Returns:
            The path that was written.
        """
        fmt = self.check_format(fmt)
        input_path = Path(input_path)
        if output_path is None:
            output_path = input_path.with_name(artifact_name(input_path.stem, self.EXTENSIONS[fmt]))
        output_path = Path(output_path)

        md_text = input_path.read_text(encoding=encoding)
        data = await self.export_text(md_text, fmt)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except OSError as exc:
            raise ExportError(f"cannot write {output_path}: {exc}") from exc
        return output_path

    def _renderer_for(self, fmt: str) -> HtmlRenderer | DocxRenderer | PdfRenderer:
        if fmt == "html":
            return HtmlRenderer(self.style_manager, self.resolver, title=self.options.title)
        if fmt == "pdf":
            return PdfRenderer(
                self.style_manager,
                self.resolver,
                title=self.options.title,
                image_width_px=self.options.image_width_px,
            )
        return DocxRenderer(
            self.style_manager,
            self.resolver,
            title=self.options.title,
            image_width_px=self.options.image_width_px,
            image_height_px=self.options.image_height_px,
        )
