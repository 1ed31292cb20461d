"""DOCX renderer - converts the AST into a Word document with python-docx.

Mapping:

* headings -> ``Heading 1..3`` paragraphs
* paragraphs -> paragraphs of styled runs (bold / italic / monospace / link)
* list items -> ``List Bullet`` paragraphs; nested lists are flattened
* code blocks -> monospaced paragraphs with a single-line border
* images -> picture runs at a fixed size; unloadable images are dropped
* table rows -> one paragraph per row, cells separated by tabs

Node types without a handler are transparent.
"""

from __future__ import annotations

import io
from typing import Optional

from docx import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import UnrecognizedImageError
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Emu, Pt, RGBColor
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from mdbridge.assets import AssetResolver
from mdbridge.logger import get_logger
from mdbridge.parser import ASTNode, NodeType
from mdbridge.style_manager import FontSpec, ParaSpec, StyleManager

logger = get_logger(__name__)

# 96 DPI
EMU_PER_PIXEL = 9525
DEFAULT_IMAGE_WIDTH_PX = 500
DEFAULT_IMAGE_HEIGHT_PX = 300

_ALIGN_MAP = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "both": WD_ALIGN_PARAGRAPH.JUSTIFY,
}


# ---------------------------------------------------------------------------
# python-docx helpers
# ---------------------------------------------------------------------------

def _apply_font(run: Run, font: FontSpec) -> None:
    run.font.name = font.family
    run.font.size = Pt(font.size_pt)
    run.bold = font.bold or None
    run.italic = font.italic or None
    run.underline = font.underline or None
    if font.color:
        run.font.color.rgb = RGBColor.from_string(font.color.lstrip("#").upper())


def _apply_para(paragraph: Paragraph, para: ParaSpec) -> None:
    if para.border:
        _add_border(paragraph)
    fmt = paragraph.paragraph_format
    fmt.alignment = _ALIGN_MAP.get(para.align, WD_ALIGN_PARAGRAPH.LEFT)
    fmt.space_before = Pt(para.space_before_pt)
    fmt.space_after = Pt(para.space_after_pt)
    fmt.line_spacing = para.line_spacing
    if para.left_margin_pt:
        fmt.left_indent = Pt(para.left_margin_pt)


def _add_border(paragraph: Paragraph) -> None:
    """Single-line box border around *paragraph* (must precede spacing in pPr)."""
    p_pr = paragraph._p.get_or_add_pPr()
    p_bdr = OxmlElement("w:pBdr")
    for side in ("top", "left", "bottom", "right"):
        edge = OxmlElement(f"w:{side}")
        edge.set(qn("w:val"), "single")
        edge.set(qn("w:sz"), "6")
        edge.set(qn("w:space"), "1")
        edge.set(qn("w:color"), "auto")
        p_bdr.append(edge)
    p_pr.append(p_bdr)


def _wrap_in_hyperlink(paragraph: Paragraph, run: Run, url: str) -> None:
    r_id = paragraph.part.relate_to(url, RT.HYPERLINK, is_external=True)
    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("r:id"), r_id)
    hyperlink.append(run._r)
    paragraph._p.append(hyperlink)


# ---------------------------------------------------------------------------
# DocxRenderer
# ---------------------------------------------------------------------------

class DocxRenderer:
    """Render an :class:`~mdbridge.parser.ASTNode` document tree to DOCX bytes."""

    def __init__(
        self,
        style_manager: Optional[StyleManager] = None,
        resolver: Optional[AssetResolver] = None,
        *,
        title: str = "",
        image_width_px: int = DEFAULT_IMAGE_WIDTH_PX,
        image_height_px: int = DEFAULT_IMAGE_HEIGHT_PX,
    ) -> None:
        self.style: StyleManager = style_manager or StyleManager()
        self.resolver: AssetResolver = resolver or AssetResolver()
        self.title = title
        self.image_width = Emu(image_width_px * EMU_PER_PIXEL)
        self.image_height = Emu(image_height_px * EMU_PER_PIXEL)
        self._doc = DocxDocument()

    # ======================================================================
    # Public API
    # ======================================================================

    async def render(self, doc: ASTNode) -> bytes:
        """Return a complete DOCX file as *bytes* for the given AST *doc*."""
        assert doc.type == NodeType.ROOT, f"Expected ROOT node, got {doc.type}"
        self._doc = DocxDocument()
        self._setup_document()

        for child in doc.children:
            await self._render_node(child)

        buf = io.BytesIO()
        self._doc.save(buf)
        return buf.getvalue()

    def _setup_document(self) -> None:
        body = self.style.get_body_font()
        normal = self._doc.styles["Normal"].font
        normal.name = body.family
        normal.size = Pt(body.size_pt)
        if self.title:
            self._doc.core_properties.title = self.title

    # ======================================================================
    # Node dispatch
    # ======================================================================

    async def _render_node(self, node: ASTNode) -> None:
        handler = getattr(self, f"_render_{node.type.value}", None)
        if handler is not None:
            await handler(node)
            return
        if node.type == NodeType.UNKNOWN:
            logger.debug("Passing through unknown node %r", node.tag)
        for child in node.children:
            await self._render_node(child)

    # ======================================================================
    # Per-NodeType renderers
    # ======================================================================

    async def _render_heading(self, node: ASTNode) -> None:
        style = self.style.get_heading_style(node.depth)
        paragraph = self._doc.add_paragraph(style=f"Heading {max(1, min(3, node.depth))}")
        _apply_para(paragraph, style.para)
        await self._add_inlines(paragraph, node.children, style.font)

    async def _render_paragraph(self, node: ASTNode) -> None:
        style = self.style.get_style("body")
        paragraph = self._doc.add_paragraph()
        _apply_para(paragraph, style.para)
        await self._add_inlines(paragraph, node.children, style.font)

    async def _render_code(self, node: ASTNode) -> None:
        style = self.style.get_style("code_block")
        paragraph = self._doc.add_paragraph()
        _apply_para(paragraph, style.para)
        _apply_font(paragraph.add_run(node.value), style.font)

    async def _render_list(self, node: ASTNode) -> None:
        for item in node.children:
            await self._render_list_item(item)

    async def _render_list_item(self, node: ASTNode) -> None:
        style = self.style.get_style("list_item")
        for child in node.children:
            if child.type == NodeType.PARAGRAPH:
                paragraph = self._doc.add_paragraph(style="List Bullet")
                _apply_para(paragraph, style.para)
                await self._add_inlines(paragraph, child.children, style.font)
            else:
                # nested lists land at the same level
                await self._render_node(child)

    async def _render_blockquote(self, node: ASTNode) -> None:
        style = self.style.get_style("blockquote")
        for child in node.children:
            if child.type == NodeType.PARAGRAPH:
                paragraph = self._doc.add_paragraph()
                _apply_para(paragraph, style.para)
                await self._add_inlines(paragraph, child.children, style.font)
            else:
                await self._render_node(child)

    async def _render_thematic_break(self, _node: ASTNode) -> None:
        paragraph = self._doc.add_paragraph()
        p_bdr = OxmlElement("w:pBdr")
        bottom = OxmlElement("w:bottom")
        bottom.set(qn("w:val"), "single")
        bottom.set(qn("w:sz"), "6")
        bottom.set(qn("w:space"), "1")
        bottom.set(qn("w:color"), "auto")
        p_bdr.append(bottom)
        paragraph._p.get_or_add_pPr().append(p_bdr)

    async def _render_image(self, node: ASTNode) -> None:
        """Standalone image; no paragraph at all when it cannot be loaded."""
        data = await self._load_image(node)
        if data is None:
            return
        paragraph = self._doc.add_paragraph()
        if not self._add_picture(paragraph, node, data):
            paragraph._p.getparent().remove(paragraph._p)

    async def _render_raw_markup(self, node: ASTNode) -> None:
        logger.debug("Raw markup is not carried into DOCX: %.40r", node.value)

    async def _render_table(self, node: ASTNode) -> None:
        for row in node.children:
            header = bool(row.children) and all(cell.is_header for cell in row.children)
            style = self.style.get_style("table_header" if header else "table_body")
            paragraph = self._doc.add_paragraph()
            _apply_para(paragraph, style.para)
            for idx, cell in enumerate(row.children):
                if idx:
                    _apply_font(paragraph.add_run("\t"), style.font)
                await self._add_inlines(paragraph, cell.children, style.font)

    # ======================================================================
    # Inline runs
    # ======================================================================

    async def _add_inlines(
        self,
        paragraph: Paragraph,
        nodes: list[ASTNode],
        font: FontSpec,
        link: str = "",
    ) -> None:
        for node in nodes:
            await self._add_inline(paragraph, node, font, link)

    async def _add_inline(
        self, paragraph: Paragraph, node: ASTNode, font: FontSpec, link: str
    ) -> None:
        nt = node.type

        if nt == NodeType.TEXT:
            if node.value:
                self._add_text_run(paragraph, node.value.replace("\n", " "), font, link)
            return

        if nt == NodeType.STRONG:
            await self._add_inlines(paragraph, node.children, font.derive(bold=True), link)
            return

        if nt == NodeType.EMPHASIS:
            await self._add_inlines(paragraph, node.children, font.derive(italic=True), link)
            return

        if nt == NodeType.INLINE_CODE:
            code_font = self.style.get_inline_code_font()
            self._add_text_run(paragraph, node.value, code_font.derive(size_pt=font.size_pt), link)
            return

        if nt == NodeType.LINK:
            link_font = self.style.get_style("link").font.derive(
                size_pt=font.size_pt, bold=font.bold, italic=font.italic
            )
            if node.children:
                await self._add_inlines(paragraph, node.children, link_font, node.url)
            else:
                self._add_text_run(paragraph, node.url, link_font, node.url)
            return

        if nt == NodeType.IMAGE:
            data = await self._load_image(node)
            if data is not None:
                self._add_picture(paragraph, node, data)
            return

        if nt == NodeType.LINE_BREAK:
            paragraph.add_run().add_break()
            return

        if nt == NodeType.RAW_MARKUP:
            return

        await self._add_inlines(paragraph, node.children, font, link)

    def _add_text_run(self, paragraph: Paragraph, text: str, font: FontSpec, link: str) -> None:
        run = paragraph.add_run(text)
        _apply_font(run, font)
        if link:
            _wrap_in_hyperlink(paragraph, run, link)

    # ======================================================================
    # Images
    # ======================================================================

    async def _load_image(self, node: ASTNode) -> Optional[bytes]:
        data = await self.resolver.load_bytes(node.url)
        if data is None:
            logger.warning("Dropping unreachable image %s from DOCX export", node.url)
        return data

    def _add_picture(self, paragraph: Paragraph, node: ASTNode, data: bytes) -> bool:
        run = paragraph.add_run()
        try:
            run.add_picture(io.BytesIO(data), width=self.image_width, height=self.image_height)
        except UnrecognizedImageError:
            logger.warning("Dropping image %s: format not supported by DOCX", node.url)
            run._r.getparent().remove(run._r)
            return False
        return True
