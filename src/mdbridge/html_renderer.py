"""HTML renderer - converts the AST into one self-contained HTML document.

Local images are embedded as ``data:`` URIs; images that cannot be loaded keep
their original reference so the export still completes.  Node types without
a handler are transparent: their children are rendered without any wrapping
markup.
"""

from __future__ import annotations

from typing import Optional

from mdbridge.assets import AssetResolver, mime_type_for, normalize, to_data_uri
from mdbridge.logger import get_logger
from mdbridge.parser import ASTNode, NodeType
from mdbridge.style_manager import StyleManager

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def escape_html(s: str) -> str:
    """Escape the five HTML special characters."""
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def _is_header_row(row: ASTNode) -> bool:
    return bool(row.children) and all(cell.is_header for cell in row.children)


_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>
{style}
    </style>
</head>
<body>
{body}
</body>
</html>
"""


# ---------------------------------------------------------------------------
# HtmlRenderer
# ---------------------------------------------------------------------------

class HtmlRenderer:
    """Render an :class:`~mdbridge.parser.ASTNode` document tree to HTML bytes."""

    def __init__(
        self,
        style_manager: Optional[StyleManager] = None,
        resolver: Optional[AssetResolver] = None,
        *,
        title: str = "Document",
    ) -> None:
        self.style: StyleManager = style_manager or StyleManager()
        self.resolver: AssetResolver = resolver or AssetResolver()
        self.title = title

    # ======================================================================
    # Public API
    # ======================================================================

    async def render(self, doc: ASTNode) -> bytes:
        """Return a complete HTML document as UTF-8 *bytes* for *doc*."""
        assert doc.type == NodeType.ROOT, f"Expected ROOT node, got {doc.type}"
        body = await self._render_node(doc)
        return self._package_html(body).encode("utf-8")

    # ======================================================================
    # Node dispatch
    # ======================================================================

    async def _render_node(self, node: ASTNode) -> str:
        handler = getattr(self, f"_render_{node.type.value}", None)
        if handler is not None:
            return await handler(node)
        return await self._render_transparent(node)

    async def _render_children(self, node: ASTNode, sep: str = "") -> str:
        parts = [await self._render_node(child) for child in node.children]
        return sep.join(parts)

    async def _render_transparent(self, node: ASTNode) -> str:
        if node.type == NodeType.UNKNOWN:
            logger.debug("Passing through unknown node %r", node.tag)
        return await self._render_children(node)

    # ======================================================================
    # Per-NodeType renderers
    # ======================================================================

    async def _render_root(self, node: ASTNode) -> str:
        return await self._render_children(node, "\n")

    async def _render_heading(self, node: ASTNode) -> str:
        return f"<h{node.depth}>{await self._render_children(node)}</h{node.depth}>"

    async def _render_paragraph(self, node: ASTNode) -> str:
        return f"<p>{await self._render_children(node)}</p>"

    async def _render_text(self, node: ASTNode) -> str:
        return escape_html(node.value)

    async def _render_strong(self, node: ASTNode) -> str:
        return f"<strong>{await self._render_children(node)}</strong>"

    async def _render_emphasis(self, node: ASTNode) -> str:
        return f"<em>{await self._render_children(node)}</em>"

    async def _render_inline_code(self, node: ASTNode) -> str:
        return f"<code>{escape_html(node.value)}</code>"

    async def _render_code(self, node: ASTNode) -> str:
        lang = f' class="language-{escape_html(node.language)}"' if node.language else ""
        return f"<pre><code{lang}>{escape_html(node.value)}</code></pre>"

    async def _render_link(self, node: ASTNode) -> str:
        title = f' title="{escape_html(node.title)}"' if node.title else ""
        content = await self._render_children(node)
        return f'<a href="{escape_html(node.url)}"{title}>{content}</a>'

    async def _render_image(self, node: ASTNode) -> str:
        alt = escape_html(node.alt or "")
        title = f' title="{escape_html(node.title)}"' if node.title else ""
        data = await self.resolver.load_bytes(node.url)
        if data is None:
            logger.warning("Keeping original reference for unreachable image %s", node.url)
            return f'<img src="{escape_html(node.url)}" alt="{alt}"{title} />'
        src = to_data_uri(data, mime_type_for(normalize(node.url)))
        return f'<img src="{src}" alt="{alt}"{title} />'

    async def _render_list(self, node: ASTNode) -> str:
        tag = "ol" if node.ordered else "ul"
        start = f' start="{node.start}"' if node.ordered and node.start != 1 else ""
        if node.tight:
            items = "\n".join([await self._render_tight_item(item) for item in node.children])
        else:
            items = await self._render_children(node, "\n")
        return f"<{tag}{start}>\n{items}\n</{tag}>"

    async def _render_list_item(self, node: ASTNode) -> str:
        return f"<li>{await self._render_children(node)}</li>"

    async def _render_tight_item(self, node: ASTNode) -> str:
        """List item of a tight list: paragraphs lose their ``<p>`` wrapper."""
        parts: list[str] = []
        for child in node.children:
            if child.type == NodeType.PARAGRAPH:
                parts.append(await self._render_children(child))
            else:
                parts.append(await self._render_node(child))
        return f"<li>{''.join(parts)}</li>"

    async def _render_blockquote(self, node: ASTNode) -> str:
        content = await self._render_children(node, "\n")
        return f"<blockquote>{content}</blockquote>"

    async def _render_thematic_break(self, _node: ASTNode) -> str:
        return "<hr />"

    async def _render_line_break(self, _node: ASTNode) -> str:
        return "<br />"

    async def _render_raw_markup(self, node: ASTNode) -> str:
        return node.value

    # -- tables -------------------------------------------------------------

    async def _render_table(self, node: ASTNode) -> str:
        head = [row for row in node.children if _is_header_row(row)]
        body = [row for row in node.children if not _is_header_row(row)]
        parts = ["<table>"]
        if head:
            parts.append("<thead>")
            parts.extend([await self._render_table_row(row) for row in head])
            parts.append("</thead>")
        if body:
            parts.append("<tbody>")
            parts.extend([await self._render_table_row(row) for row in body])
            parts.append("</tbody>")
        parts.append("</table>")
        return "\n".join(parts)

    async def _render_table_row(self, node: ASTNode) -> str:
        return f"<tr>{await self._render_children(node)}</tr>"

    async def _render_table_cell(self, node: ASTNode) -> str:
        tag = "th" if node.is_header else "td"
        align = f' style="text-align: {node.align}"' if node.align else ""
        return f"<{tag}{align}>{await self._render_children(node)}</{tag}>"

    # ======================================================================
    # Packaging
    # ======================================================================

    def _package_html(self, body: str) -> str:
        style = "\n".join(f"        {line}" for line in self.style.stylesheet().splitlines())
        return _HTML_TEMPLATE.format(
            title=escape_html(self.title),
            style=style,
            body=body,
        )
