"""PDF renderer - lays the AST out as reportlab platypus flowables.

Mapping:

* headings -> bold paragraphs sized by the preset
* paragraphs -> ``Paragraph`` markup (``<b>``, ``<i>``, ``<font>``, ``<a>``)
* lists -> ``ListFlowable`` (bullets or numbers from the list start)
* code blocks -> bordered monospace blocks on a grey background
* block quotes -> indented italic paragraphs
* thematic breaks -> a full-width rule
* tables -> a gridded ``Table`` with the header row repeated per page
* images -> ``Image`` flowables at the configured width, aspect ratio kept

An image inside a paragraph splits the paragraph around it.  Images that
cannot be loaded or decoded are dropped.  Only the base-14 PDF fonts are
used, so preset families map to Helvetica, Times or Courier.
"""

from __future__ import annotations

import io
from typing import Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    Flowable,
    HRFlowable,
    Image,
    ListFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
    XPreformatted,
)

from mdbridge.assets import AssetResolver
from mdbridge.logger import get_logger
from mdbridge.parser import ASTNode, NodeType
from mdbridge.style_manager import StyleManager

logger = get_logger(__name__)

# 96 DPI
POINTS_PER_PIXEL = 0.75
DEFAULT_IMAGE_WIDTH_PX = 500

PAGE_MARGIN_PT = 40.0
# Frame padding on each side of the text frame
_FRAME_PADDING_PT = 6.0
FRAME_WIDTH_PT = A4[0] - 2 * PAGE_MARGIN_PT - 2 * _FRAME_PADDING_PT
FRAME_HEIGHT_PT = A4[1] - 2 * PAGE_MARGIN_PT - 2 * _FRAME_PADDING_PT

_ALIGN_MAP = {
    "left": TA_LEFT,
    "center": TA_CENTER,
    "right": TA_RIGHT,
    "both": TA_JUSTIFY,
}

# (regular, bold, italic, bold italic)
_FACES = {
    "Helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "Times-Roman": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "Courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}

_MONO_HINTS = ("courier", "consolas", "menlo", "monaco", "mono")
_SERIF_HINTS = ("times", "georgia", "cambria", "garamond", "serif")

Segment = Union[str, Flowable]


# ---------------------------------------------------------------------------
# reportlab helpers
# ---------------------------------------------------------------------------

def pdf_family(family: str) -> str:
    """Base-14 family standing in for a preset font *family*."""
    name = family.lower()
    if any(hint in name for hint in _MONO_HINTS):
        return "Courier"
    if "sans" not in name and any(hint in name for hint in _SERIF_HINTS):
        return "Times-Roman"
    return "Helvetica"


def pdf_font(family: str, *, bold: bool = False, italic: bool = False) -> str:
    return _FACES[pdf_family(family)][int(bold) + 2 * int(italic)]


def _attr(value: str) -> str:
    return escape(value, {'"': "&quot;"})


def _wrap(segments: list[Segment], open_tag: str, close_tag: str) -> list[Segment]:
    return [f"{open_tag}{s}{close_tag}" if isinstance(s, str) else s for s in segments]


# ---------------------------------------------------------------------------
# PdfRenderer
# ---------------------------------------------------------------------------

class PdfRenderer:
    """Render an :class:`~mdbridge.parser.ASTNode` document tree to PDF bytes."""

    def __init__(
        self,
        style_manager: Optional[StyleManager] = None,
        resolver: Optional[AssetResolver] = None,
        *,
        title: str = "",
        image_width_px: int = DEFAULT_IMAGE_WIDTH_PX,
    ) -> None:
        self.style: StyleManager = style_manager or StyleManager()
        self.resolver: AssetResolver = resolver or AssetResolver()
        self.title = title
        self.image_width = min(image_width_px * POINTS_PER_PIXEL, FRAME_WIDTH_PT)
        self._styles: dict[str, ParagraphStyle] = {}

    # ======================================================================
    # Public API
    # ======================================================================

    async def render(self, doc: ASTNode) -> bytes:
        """Return a complete PDF file as *bytes* for the given AST *doc*."""
        assert doc.type == NodeType.ROOT, f"Expected ROOT node, got {doc.type}"
        self._styles = {
            name: self._paragraph_style(name)
            for name in ("heading_1", "heading_2", "heading_3", "body",
                         "code_block", "blockquote", "list_item")
        }

        story: list[Flowable] = []
        for child in doc.children:
            story.extend(await self._render_node(child))

        buf = io.BytesIO()
        template = SimpleDocTemplate(
            buf,
            pagesize=A4,
            title=self.title,
            leftMargin=PAGE_MARGIN_PT,
            rightMargin=PAGE_MARGIN_PT,
            topMargin=PAGE_MARGIN_PT,
            bottomMargin=PAGE_MARGIN_PT,
        )
        template.build(story or [Spacer(1, 1)])
        return buf.getvalue()

    def _paragraph_style(self, name: str, **overrides) -> ParagraphStyle:
        entry = self.style.get_style(name)
        font, para = entry.font, entry.para
        attrs = dict(
            fontName=pdf_font(font.family, bold=font.bold, italic=font.italic),
            fontSize=font.size_pt,
            leading=font.size_pt * max(1.2, para.line_spacing),
            textColor=colors.HexColor(font.color),
            alignment=_ALIGN_MAP.get(para.align, TA_LEFT),
            leftIndent=para.left_margin_pt,
            spaceBefore=para.space_before_pt,
            spaceAfter=para.space_after_pt,
        )
        if para.border:
            attrs.update(borderWidth=0.5, borderColor=colors.HexColor("#cccccc"), borderPadding=4)
            if font.background:
                attrs["backColor"] = colors.HexColor(font.background)
        attrs.update(overrides)
        return ParagraphStyle(f"mdbridge-{self.style.preset}-{name}", **attrs)

    # ======================================================================
    # Node dispatch
    # ======================================================================

    async def _render_node(self, node: ASTNode) -> list[Flowable]:
        handler = getattr(self, f"_render_{node.type.value}", None)
        if handler is not None:
            return await handler(node)
        if node.type == NodeType.UNKNOWN:
            logger.debug("Passing through unknown node %r", node.tag)
        out: list[Flowable] = []
        for child in node.children:
            out.extend(await self._render_node(child))
        return out

    # ======================================================================
    # Per-NodeType renderers
    # ======================================================================

    async def _render_heading(self, node: ASTNode) -> list[Flowable]:
        style = self._styles[f"heading_{max(1, min(3, node.depth))}"]
        return await self._paragraphs(node.children, style)

    async def _render_paragraph(self, node: ASTNode) -> list[Flowable]:
        return await self._paragraphs(node.children, self._styles["body"])

    async def _render_code(self, node: ASTNode) -> list[Flowable]:
        return [XPreformatted(escape(node.value), self._styles["code_block"])]

    async def _render_blockquote(self, node: ASTNode) -> list[Flowable]:
        out: list[Flowable] = []
        for child in node.children:
            if child.type == NodeType.PARAGRAPH:
                out.extend(await self._paragraphs(child.children, self._styles["blockquote"]))
            else:
                out.extend(await self._render_node(child))
        return out

    async def _render_thematic_break(self, _node: ASTNode) -> list[Flowable]:
        return [HRFlowable(width="100%", thickness=0.5, color=colors.grey, spaceBefore=6, spaceAfter=6)]

    async def _render_list(self, node: ASTNode) -> list[Flowable]:
        items: list[list[Flowable]] = []
        for item in node.children:
            flowables = await self._render_list_item(item)
            items.append(flowables or [Paragraph("", self._styles["list_item"])])
        if not items:
            return []
        size = self._styles["list_item"].fontSize
        if node.ordered:
            return [ListFlowable(items, bulletType="1", start=node.start, bulletFontSize=size)]
        return [ListFlowable(items, bulletType="bullet", bulletFontSize=size)]

    async def _render_list_item(self, node: ASTNode) -> list[Flowable]:
        out: list[Flowable] = []
        for child in node.children:
            if child.type == NodeType.PARAGRAPH:
                out.extend(await self._paragraphs(child.children, self._styles["list_item"]))
            else:
                out.extend(await self._render_node(child))
        return out

    async def _render_image(self, node: ASTNode) -> list[Flowable]:
        image = await self._image(node)
        return [image] if image is not None else []

    async def _render_raw_markup(self, node: ASTNode) -> list[Flowable]:
        logger.debug("Raw markup is not carried into PDF: %.40r", node.value)
        return []

    async def _render_table(self, node: ASTNode) -> list[Flowable]:
        rows: list[list] = []
        header_rows = 0
        for row in node.children:
            header = bool(row.children) and all(cell.is_header for cell in row.children)
            if header and not rows:
                header_rows = 1
            name = "table_header" if header else "table_body"
            cells = []
            for cell in row.children:
                style = self._paragraph_style(
                    name, alignment=_ALIGN_MAP.get(cell.align, TA_LEFT), spaceBefore=0, spaceAfter=0
                )
                cells.append(await self._paragraphs(cell.children, style) or "")
            rows.append(cells)
        if not rows:
            return []

        width = max(len(r) for r in rows) or 1
        rows = [r + [""] * (width - len(r)) for r in rows]
        commands = [
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
        if header_rows:
            commands.append(("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f4f4f4")))
        table = Table(rows, colWidths=[FRAME_WIDTH_PT / width] * width, repeatRows=header_rows, hAlign="LEFT")
        table.setStyle(TableStyle(commands))
        return [table, Spacer(1, 6)]

    # ======================================================================
    # Inline markup
    # ======================================================================

    async def _paragraphs(self, nodes: list[ASTNode], style: ParagraphStyle) -> list[Flowable]:
        """Paragraphs for *nodes*, split wherever an image sits between text."""
        flowables: list[Flowable] = []
        pending: list[str] = []

        def flush() -> None:
            markup = "".join(pending).strip()
            if markup:
                flowables.append(Paragraph(markup, style))
            pending.clear()

        for segment in await self._inline_segments(nodes):
            if isinstance(segment, str):
                pending.append(segment)
            else:
                flush()
                flowables.append(segment)
        flush()
        return flowables

    async def _inline_segments(self, nodes: list[ASTNode]) -> list[Segment]:
        segments: list[Segment] = []
        for node in nodes:
            segments.extend(await self._inline_segment(node))
        return segments

    async def _inline_segment(self, node: ASTNode) -> list[Segment]:
        nt = node.type

        if nt == NodeType.TEXT:
            return [escape(node.value.replace("\n", " "))]

        if nt == NodeType.STRONG:
            return _wrap(await self._inline_segments(node.children), "<b>", "</b>")

        if nt == NodeType.EMPHASIS:
            return _wrap(await self._inline_segments(node.children), "<i>", "</i>")

        if nt == NodeType.INLINE_CODE:
            font = self.style.get_inline_code_font()
            face = pdf_font(font.family)
            back = f' backColor="{font.background}"' if font.background else ""
            return [f'<font face="{face}"{back}>{escape(node.value)}</font>']

        if nt == NodeType.LINK:
            color = self.style.get_style("link").font.color
            open_tag = f'<a href="{_attr(node.url)}" color="{color}"><u>'
            content = await self._inline_segments(node.children) or [escape(node.url)]
            return _wrap(content, open_tag, "</u></a>")

        if nt == NodeType.IMAGE:
            image = await self._image(node)
            return [image] if image is not None else []

        if nt == NodeType.LINE_BREAK:
            return ["<br/>"]

        if nt == NodeType.RAW_MARKUP:
            return []

        return await self._inline_segments(node.children)

    # ======================================================================
    # Images
    # ======================================================================

    async def _image(self, node: ASTNode) -> Optional[Image]:
        data = await self.resolver.load_bytes(node.url)
        if data is None:
            logger.warning("Dropping unreachable image %s from PDF export", node.url)
            return None
        try:
            width, height = ImageReader(io.BytesIO(data)).getSize()
            scale = min(self.image_width / width, FRAME_HEIGHT_PT / height)
            return Image(io.BytesIO(data), width=width * scale, height=height * scale)
        except (OSError, ValueError) as exc:
            logger.warning("Dropping image %s: format not supported by PDF (%s)", node.url, exc)
            return None
