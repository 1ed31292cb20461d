"""Tests for the HTML renderer."""

from __future__ import annotations

import pytest

from mdbridge.html_renderer import HtmlRenderer, escape_html
from mdbridge.parser import ASTNode, MarkdownParser, NodeType
from mdbridge.style_manager import StyleManager


async def render(markdown: str, resolver=None, **kwargs) -> str:
    renderer = HtmlRenderer(resolver=resolver, **kwargs)
    data = await renderer.render(MarkdownParser().parse(markdown))
    return data.decode("utf-8")


class TestEscape:
    def test_five_characters(self) -> None:
        assert escape_html("""<a href="x">&'""") == "&lt;a href=&quot;x&quot;&gt;&amp;&#39;"


@pytest.mark.asyncio
class TestDocument:

    async def test_end_to_end_with_local_image(self, make_resolver, png_bytes) -> None:
        resolver = make_resolver({"C:\\img\\a.png": png_bytes})
        html = await render("# Title\n\nHello **world**.\n\n![alt](C:\\img\\a.png)", resolver)
        assert html.count("<h1>Title</h1>") == 1
        assert html.count("<p>Hello <strong>world</strong>.</p>") == 1
        assert html.count('<img src="data:image/png;base64,') == 1
        assert resolver.reads == ["C:\\img\\a.png"]

    async def test_self_contained_shell(self) -> None:
        html = await render("text", title="My <Doc>")
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>My &lt;Doc&gt;</title>" in html
        assert "<style>" in html
        assert '<meta charset="UTF-8">' in html

    async def test_preset_stylesheet(self) -> None:
        renderer = HtmlRenderer(StyleManager("academic"))
        html = (await renderer.render(MarkdownParser().parse("x"))).decode("utf-8")
        assert '"Times New Roman"' in html


@pytest.mark.asyncio
class TestImages:

    async def test_unreachable_image_keeps_original_url(self, tmp_path) -> None:
        missing = tmp_path / "missing.png"
        html = await render(f"before\n\n![gone]({missing})\n\nafter")
        assert f'<img src="{missing}" alt="gone" />' in html
        assert "data:" not in html
        assert html.index("before") < html.index("<img") < html.index("after")

    @pytest.mark.parametrize("markup, original", [
        ("![x](C:\\img\\missing.png)", "C:\\img\\missing.png"),
        ("![x](</tmp/my dir/missing.png>)", "/tmp/my dir/missing.png"),
    ])
    async def test_unreachable_reference_kept_as_written(self, make_resolver, markup, original) -> None:
        html = await render(markup, make_resolver({}))
        assert f'<img src="{original}" alt="x" />' in html
        assert "%5C" not in html and "%20" not in html

    async def test_real_file_embedded(self, png_file, png_bytes) -> None:
        html = await render(f"![p]({png_file})")
        assert '<img src="data:image/png;base64,' in html
        assert str(png_file) not in html

    async def test_unknown_extension_mime(self, tmp_path, png_bytes) -> None:
        path = tmp_path / "pixel.bin"
        path.write_bytes(png_bytes)
        html = await render(f"![p]({path})")
        assert 'src="data:application/octet-stream;base64,' in html

    async def test_image_title(self, make_resolver, png_bytes) -> None:
        resolver = make_resolver({"/x/a.gif": png_bytes})
        html = await render('![a](/x/a.gif "Caption")', resolver)
        assert 'src="data:image/gif;base64,' in html
        assert 'title="Caption"' in html


@pytest.mark.asyncio
class TestNodeMapping:

    async def test_text_is_escaped(self) -> None:
        html = await render("Tom & Jerry's \"q\" 1 < 2")
        assert "<p>Tom &amp; Jerry&#39;s &quot;q&quot; 1 &lt; 2</p>" in html

    async def test_code_block(self) -> None:
        html = await render("```python\nif a < b:\n    pass\n```")
        assert '<pre><code class="language-python">if a &lt; b:\n    pass</code></pre>' in html

    async def test_inline_elements(self) -> None:
        html = await render('*em* `x<y` [l](https://e.com "T")  \nnext')
        assert "<em>em</em>" in html
        assert "<code>x&lt;y</code>" in html
        assert '<a href="https://e.com" title="T">l</a>' in html
        assert "<br />" in html

    async def test_lists(self) -> None:
        html = await render("- a\n- b\n")
        assert "<ul>\n<li>a</li>\n<li>b</li>\n</ul>" in html

    async def test_loose_list_keeps_paragraphs(self) -> None:
        html = await render("- a\n\n- b\n")
        assert "<li><p>a</p></li>" in html

    async def test_ordered_list_start(self) -> None:
        html = await render("3. c\n4. d\n")
        assert '<ol start="3">\n<li>c</li>' in html

    async def test_blockquote_and_rule(self) -> None:
        html = await render("> q\n\n---")
        assert "<blockquote><p>q</p></blockquote>" in html
        assert "<hr />" in html

    async def test_raw_markup_passthrough(self) -> None:
        html = await render("<div class=\"x\">raw</div>\n")
        assert '<div class="x">raw</div>' in html

    async def test_table(self) -> None:
        html = await render("| A | B |\n|:-|-:|\n| 1 | 2 |")
        assert "<thead>\n<tr><th" in html
        assert '<th style="text-align: left">A</th>' in html
        assert '<td style="text-align: right">2</td>' in html
        assert "<tbody>" in html

    async def test_unknown_node_is_transparent(self) -> None:
        html = await render("~~gone~~ kept")
        assert "<p>gone kept</p>" in html
        assert "<del>" not in html and "<s>" not in html

    async def test_unknown_node_without_children(self) -> None:
        root = ASTNode(type=NodeType.ROOT, children=[
            ASTNode(type=NodeType.PARAGRAPH, children=[
                ASTNode(type=NodeType.TEXT, value="x"),
                ASTNode(type=NodeType.UNKNOWN, tag="footnote_ref"),
            ]),
        ])
        html = (await HtmlRenderer().render(root)).decode("utf-8")
        assert "<p>x</p>" in html

    async def test_sample_fixture(self, sample_md: str) -> None:
        html = await render(sample_md)
        assert "<h1>Project Notes</h1>" in html
        assert "<table>" in html
        assert 'class="language-python"' in html
