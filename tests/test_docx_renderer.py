"""Tests for the DOCX renderer."""

from __future__ import annotations

import io

import docx
import pytest
from docx.oxml.ns import qn
from docx.shared import Emu, Pt

from mdbridge.docx_renderer import EMU_PER_PIXEL, DocxRenderer
from mdbridge.parser import MarkdownParser
from mdbridge.style_manager import StyleManager


async def render(markdown: str, resolver=None, **kwargs):
    renderer = DocxRenderer(resolver=resolver, **kwargs)
    data = await renderer.render(MarkdownParser().parse(markdown))
    return docx.Document(io.BytesIO(data))


def texts(document) -> list[str]:
    return [p.text for p in document.paragraphs if p.text]


@pytest.mark.asyncio
class TestStructure:

    async def test_output_is_docx_package(self) -> None:
        data = await DocxRenderer().render(MarkdownParser().parse("# Hi"))
        assert data[:2] == b"PK"

    async def test_headings_use_native_styles(self) -> None:
        document = await render("# One\n\n## Two\n\n### Three\n\n###### Six")
        styles = [p.style.name for p in document.paragraphs]
        assert styles == ["Heading 1", "Heading 2", "Heading 3", "Heading 3"]
        assert texts(document) == ["One", "Two", "Three", "Six"]

    async def test_paragraph_runs(self) -> None:
        document = await render("plain **bold** *ital* `mono`")
        runs = document.paragraphs[0].runs
        by_text = {r.text: r for r in runs}
        assert by_text["bold"].bold
        assert by_text["ital"].italic
        assert by_text["mono"].font.name == "Courier New"
        assert not by_text["plain "].bold

    async def test_soft_break_becomes_space(self) -> None:
        document = await render("one\ntwo")
        assert texts(document) == ["one two"]

    async def test_list_items_are_flat_bullets(self) -> None:
        document = await render("- a\n- b\n  - nested\n\n1. ordered")
        items = [p for p in document.paragraphs if p.text]
        assert [p.text for p in items] == ["a", "b", "nested", "ordered"]
        assert {p.style.name for p in items} == {"List Bullet"}

    async def test_code_block_bordered_monospace(self) -> None:
        document = await render("```\nline 1\nline 2\n```")
        para = document.paragraphs[0]
        assert para.text == "line 1\nline 2"
        assert para.runs[0].font.name == "Courier New"
        assert para._p.pPr.find(qn("w:pBdr")) is not None

    async def test_business_preset_fonts(self) -> None:
        renderer = DocxRenderer(StyleManager("business"))
        data = await renderer.render(MarkdownParser().parse("`x`"))
        document = docx.Document(io.BytesIO(data))
        assert document.paragraphs[0].runs[0].font.name == "Consolas"
        assert document.styles["Normal"].font.name == "Arial"

    async def test_title_in_core_properties(self) -> None:
        document = await render("x", title="Report")
        assert document.core_properties.title == "Report"

    async def test_table_rows_as_paragraphs(self) -> None:
        document = await render("| A | B |\n|---|---|\n| 1 | 2 |")
        assert texts(document) == ["A\tB", "1\t2"]
        assert document.paragraphs[0].runs[0].bold

    async def test_raw_markup_and_unknown_nodes(self) -> None:
        document = await render("<div>x</div>\n\n~~gone~~ kept")
        assert texts(document) == ["gone kept"]

    async def test_sample_fixture(self, sample_md: str) -> None:
        document = await render(sample_md)
        assert "Project Notes" in texts(document)

    async def test_hyperlink_run_and_relationship(self) -> None:
        document = await render("see [site](https://example.com/a) now")
        para = document.paragraphs[0]
        links = para._p.findall(qn("w:hyperlink"))
        assert len(links) == 1
        assert "".join(t.text for t in links[0].iter(qn("w:t"))) == "site"
        rel = para.part.rels[links[0].get(qn("r:id"))]
        assert rel.is_external
        assert rel.target_ref == "https://example.com/a"

    async def test_blockquote_paragraphs(self) -> None:
        document = await render("> first\n>\n> second\n\nafter")
        quoted = [p for p in document.paragraphs if p.text in ("first", "second")]
        assert len(quoted) == 2
        for para in quoted:
            assert para.paragraph_format.left_indent == Pt(18)
            assert para.runs[0].italic
        assert document.paragraphs[-1].paragraph_format.left_indent is None

    async def test_thematic_break_is_bottom_border(self) -> None:
        document = await render("above\n\n---\n\nbelow")
        rule = document.paragraphs[1]
        assert rule.text == ""
        bottom = rule._p.pPr.find(qn("w:pBdr")).find(qn("w:bottom"))
        assert bottom.get(qn("w:val")) == "single"
        assert texts(document) == ["above", "below"]


@pytest.mark.asyncio
class TestImages:

    async def test_image_embedded_at_fixed_size(self, make_resolver, png_bytes) -> None:
        resolver = make_resolver({"C:\\img\\a.png": png_bytes})
        document = await render("![alt](C:\\img\\a.png)", resolver)
        assert len(document.inline_shapes) == 1
        shape = document.inline_shapes[0]
        assert shape.width == Emu(500 * EMU_PER_PIXEL)
        assert shape.height == Emu(300 * EMU_PER_PIXEL)

    async def test_configured_size(self, png_file) -> None:
        document = await render(f"![p]({png_file})", image_width_px=200, image_height_px=100)
        shape = document.inline_shapes[0]
        assert shape.width == Emu(200 * EMU_PER_PIXEL)
        assert shape.height == Emu(100 * EMU_PER_PIXEL)

    async def test_inline_image_between_text(self, png_file) -> None:
        document = await render(f"left ![p]({png_file}) right")
        assert len(document.inline_shapes) == 1
        assert texts(document) == ["left  right"]

    async def test_unreachable_image_dropped(self, tmp_path) -> None:
        missing = tmp_path / "missing.png"
        document = await render(f"Before\n\n![gone]({missing})\n\nAfter **end**")
        assert len(document.inline_shapes) == 0
        assert texts(document) == ["Before", "After end"]

    async def test_unreachable_inline_image_keeps_text(self, tmp_path) -> None:
        missing = tmp_path / "missing.png"
        document = await render(f"a ![gone]({missing}) b")
        assert len(document.inline_shapes) == 0
        assert texts(document) == ["a  b"]

    async def test_unsupported_image_format_dropped(self, tmp_path) -> None:
        bogus = tmp_path / "bogus.png"
        bogus.write_bytes(b"not really an image")
        document = await render(f"x ![b]({bogus}) y")
        assert len(document.inline_shapes) == 0
        assert texts(document) == ["x  y"]
