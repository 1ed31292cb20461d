"""Serialize an :class:`~mdbridge.parser.ASTNode` tree back to Markdown.

This is the rich view's "save" direction: whatever structure the view holds is
written out as canonical Markdown text.  Output is normalised (ATX headings,
``-`` bullets, fenced code, one blank line between blocks) so that
``serialize(parse(serialize(parse(text))))`` equals ``serialize(parse(text))``.
"""

from __future__ import annotations

import re
from itertools import groupby

from mdbridge.logger import get_logger
from mdbridge.parser import ASTNode, NodeType

logger = get_logger(__name__)

_ESCAPE_RE = re.compile(r"([\\`*_\[\]<])")
_LINE_START_RE = re.compile(r"^(\s*)(?:([#>+=-])|(\d+)([.)]))", re.MULTILINE)


def _escape_line_start(m: re.Match) -> str:
    if m.group(2):
        return m.group(1) + "\\" + m.group(2)
    # Only the delimiter of an ordered-list marker is escapable.
    return m.group(1) + m.group(3) + "\\" + m.group(4)


def _escape_text(text: str) -> str:
    escaped = _ESCAPE_RE.sub(r"\\\1", text)
    return _LINE_START_RE.sub(_escape_line_start, escaped)


def _code_span(value: str) -> str:
    longest = max((len(run) for run in re.findall(r"`+", value)), default=0)
    fence = "`" * (longest + 1)
    if value.startswith("`") or value.endswith("`") or longest:
        return f"{fence} {value} {fence}"
    return f"{fence}{value}{fence}"


def _indent(text: str, first: str, rest: str) -> str:
    lines = text.split("\n")
    out = [first + lines[0]]
    out.extend((rest + line) if line else "" for line in lines[1:])
    return "\n".join(out)


class MarkdownSerializer:
    """Render an AST to Markdown text."""

    def serialize(self, root: ASTNode) -> str:
        blocks = self._render_blocks(root.children)
        text = "\n\n".join(b for b in blocks if b)
        return text + "\n" if text else ""

    # ======================================================================
    # Block level
    # ======================================================================

    def _render_blocks(self, nodes: list[ASTNode]) -> list[str]:
        out: list[str] = []
        for node in nodes:
            rendered = self._render_block(node)
            if rendered:
                out.append(rendered)
        return out

    def _render_block(self, node: ASTNode) -> str:
        handler = getattr(self, f"_block_{node.type.value}", None)
        if handler is not None:
            return handler(node)
        if node.type in _INLINE_TYPES:
            return self._render_inlines([node])
        return self._block_transparent(node)

    def _block_transparent(self, node: ASTNode) -> str:
        if node.type != NodeType.UNKNOWN:
            logger.debug("No block serializer for %s", node.type.value)
        if not node.children:
            return ""
        if all(child.type in _INLINE_TYPES for child in node.children):
            return self._render_inlines(node.children)
        return "\n\n".join(self._render_blocks(node.children))

    def _block_root(self, node: ASTNode) -> str:
        return "\n\n".join(self._render_blocks(node.children))

    def _block_heading(self, node: ASTNode) -> str:
        content = self._render_inlines(node.children).replace("\n", " ")
        return f"{'#' * node.depth} {content}".rstrip()

    def _block_paragraph(self, node: ASTNode) -> str:
        return self._render_inlines(node.children)

    def _block_code(self, node: ASTNode) -> str:
        longest = max((len(run) for run in re.findall(r"^`{3,}", node.value, re.MULTILINE)), default=0)
        fence = "`" * max(3, longest + 1)
        return f"{fence}{node.language}\n{node.value}\n{fence}"

    def _block_blockquote(self, node: ASTNode) -> str:
        inner = "\n\n".join(self._render_blocks(node.children))
        return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))

    def _block_thematic_break(self, _node: ASTNode) -> str:
        return "---"

    def _block_raw_markup(self, node: ASTNode) -> str:
        return node.value

    def _block_list(self, node: ASTNode) -> str:
        items: list[str] = []
        number = node.start
        for item in node.children:
            marker = f"{number}. " if node.ordered else "- "
            body = self._render_list_item_body(item, tight=node.tight)
            items.append(_indent(body, marker, " " * len(marker)))
            number += 1
        return ("\n" if node.tight else "\n\n").join(items)

    def _render_list_item_body(self, item: ASTNode, *, tight: bool) -> str:
        children = item.children if item.type == NodeType.LIST_ITEM else [item]
        blocks = self._render_blocks(children)
        return ("\n" if tight else "\n\n").join(blocks)

    def _block_list_item(self, node: ASTNode) -> str:
        return _indent(self._render_list_item_body(node, tight=True), "- ", "  ")

    def _block_table(self, node: ASTNode) -> str:
        if not node.children:
            return ""
        rows = [
            [self._render_inlines(cell.children).replace("|", "\\|").replace("\n", " ")
             for cell in row.children]
            for row in node.children
        ]
        width = max(len(r) for r in rows)
        rows = [r + [""] * (width - len(r)) for r in rows]
        aligns = [cell.align for cell in node.children[0].children]
        aligns += [""] * (width - len(aligns))
        delim = []
        for align in aligns:
            delim.append({"left": ":---", "center": ":---:", "right": "---:"}.get(align, "---"))
        lines = ["| " + " | ".join(rows[0]) + " |", "| " + " | ".join(delim) + " |"]
        lines.extend("| " + " | ".join(r) + " |" for r in rows[1:])
        return "\n".join(lines)

    # ======================================================================
    # Inline level
    # ======================================================================

    def _render_inlines(self, nodes: list[ASTNode]) -> str:
        # Adjacent text nodes are escaped as one run so line starts are seen.
        parts: list[str] = []
        for is_text, group in groupby(nodes, key=lambda n: n.type == NodeType.TEXT):
            if is_text:
                parts.append(_escape_text("".join(n.value for n in group)))
            else:
                parts.extend(self._render_inline(n) for n in group)
        return "".join(parts)

    def _render_inline(self, node: ASTNode) -> str:
        nt = node.type

        if nt == NodeType.TEXT:
            return _escape_text(node.value)

        if nt == NodeType.STRONG:
            return f"**{self._render_inlines(node.children)}**"

        if nt == NodeType.EMPHASIS:
            return f"*{self._render_inlines(node.children)}*"

        if nt == NodeType.INLINE_CODE:
            return _code_span(node.value)

        if nt == NodeType.LINK:
            title = f' "{node.title}"' if node.title else ""
            return f"[{self._render_inlines(node.children)}]({_url(node.url)}{title})"

        if nt == NodeType.IMAGE:
            # Always the original reference, never a display-only form.
            title = f' "{node.title}"' if node.title else ""
            return f"![{_escape_text(node.alt)}]({_url(node.url)}{title})"

        if nt == NodeType.LINE_BREAK:
            return "\\\n"

        if nt == NodeType.RAW_MARKUP:
            return node.value

        return self._render_inlines(node.children)


def _url(url: str) -> str:
    if not url or any(ch in url for ch in " ()<>"):
        return f"<{url}>"
    return url


_INLINE_TYPES = frozenset({
    NodeType.TEXT,
    NodeType.STRONG,
    NodeType.EMPHASIS,
    NodeType.INLINE_CODE,
    NodeType.LINK,
    NodeType.IMAGE,
    NodeType.LINE_BREAK,
})
