"""Markdown parser that produces the document AST used by every renderer.

Uses mistune v3 in AST mode (CommonMark plus tables) and converts its token
stream into the closed set of :class:`ASTNode` variants below.  Tokens with no
matching variant become :attr:`NodeType.UNKNOWN` nodes that renderers treat
as transparent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional
from urllib.parse import unquote

import mistune

from mdbridge.logger import get_logger

logger = get_logger(__name__)

MAX_HEADING_DEPTH = 3


# ---------------------------------------------------------------------------
# AST node definitions
# ---------------------------------------------------------------------------

class NodeType(Enum):
    ROOT = "root"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    STRONG = "strong"
    EMPHASIS = "emphasis"
    INLINE_CODE = "inline_code"
    CODE = "code"
    LINK = "link"
    IMAGE = "image"
    LIST = "list"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    THEMATIC_BREAK = "thematic_break"
    LINE_BREAK = "line_break"
    RAW_MARKUP = "raw_markup"
    TABLE = "table"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"
    UNKNOWN = "unknown"


@dataclass
class ASTNode:
    type: NodeType
    children: list[ASTNode] = field(default_factory=list)
    # text / inline_code / code / raw_markup
    value: str = ""
    # Heading
    depth: int = 0
    # Code block
    language: str = ""
    # Link / Image
    url: str = ""
    title: str = ""
    alt: str = ""
    # List
    ordered: bool = False
    start: int = 1
    tight: bool = True
    # Table cell
    align: str = ""
    is_header: bool = False
    # Unknown: name of the source token
    tag: str = ""

    def walk(self) -> Iterator[ASTNode]:
        """Yield this node and every descendant in document order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def plain_text(self) -> str:
        """Concatenated text content of this subtree."""
        if self.type == NodeType.IMAGE:
            return self.alt
        parts = [self.value] if self.value else []
        parts.extend(child.plain_text() for child in self.children)
        return "".join(parts)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class MarkdownParser:
    """Parse Markdown text into an :class:`ASTNode` tree.

    Parsing never raises on malformed input; mistune always produces a
    best-effort token stream.
    """

    def __init__(self) -> None:
        self._md = mistune.create_markdown(
            renderer=None,  # AST mode
            plugins=["table", "strikethrough"],
        )
        self._source = ""

    # -- public API ---------------------------------------------------------

    def parse(self, markdown_text: str) -> ASTNode:
        """Return a *ROOT* ``ASTNode`` for *markdown_text*."""
        self._source = markdown_text or ""
        tokens: list[dict[str, Any]] = self._md(markdown_text or "")  # type: ignore[assignment]
        return ASTNode(type=NodeType.ROOT, children=self._convert_tokens(tokens))

    # -- token conversion ---------------------------------------------------

    def _convert_tokens(self, tokens: list[dict[str, Any]]) -> list[ASTNode]:
        nodes: list[ASTNode] = []
        for tok in tokens:
            node = self._convert_token(tok)
            if node is not None:
                nodes.append(node)
        return nodes

    def _convert_token(self, tok: dict[str, Any]) -> Optional[ASTNode]:
        ttype = tok.get("type", "")
        handler = getattr(self, f"_handle_{ttype}", None)
        if handler:
            return handler(tok)
        logger.debug("Unmapped token %r kept as transparent node", ttype)
        return ASTNode(
            type=NodeType.UNKNOWN,
            tag=str(ttype),
            children=self._convert_children(tok.get("children")),
        )

    def _convert_children(self, children: Any) -> list[ASTNode]:
        if children is None:
            return []
        if isinstance(children, str):
            return [ASTNode(type=NodeType.TEXT, value=children)] if children else []
        if isinstance(children, list):
            return self._convert_tokens(children)
        return []

    # -- block handlers -----------------------------------------------------

    def _handle_heading(self, tok: dict) -> ASTNode:
        level = tok.get("attrs", {}).get("level", 1)
        return ASTNode(
            type=NodeType.HEADING,
            depth=max(1, min(MAX_HEADING_DEPTH, int(level))),
            children=self._convert_children(tok.get("children") or tok.get("text", "")),
        )

    def _handle_paragraph(self, tok: dict) -> ASTNode:
        return ASTNode(
            type=NodeType.PARAGRAPH,
            children=self._convert_children(tok.get("children") or tok.get("text", "")),
        )

    def _handle_block_text(self, tok: dict) -> ASTNode:
        """Block text inside tight list items."""
        return self._handle_paragraph(tok)

    def _handle_thematic_break(self, _tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.THEMATIC_BREAK)

    def _handle_block_code(self, tok: dict) -> ASTNode:
        """Fenced / indented code block."""
        attrs = tok.get("attrs", {})
        info = (attrs.get("info") or "").strip()
        return ASTNode(
            type=NodeType.CODE,
            value=_strip_final_newline(tok.get("raw", "")),
            language=info.split()[0] if info else "",
        )

    def _handle_block_quote(self, tok: dict) -> ASTNode:
        return ASTNode(
            type=NodeType.BLOCKQUOTE,
            children=self._convert_children(tok.get("children", [])),
        )

    def _handle_block_html(self, tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.RAW_MARKUP, value=_strip_final_newline(tok.get("raw", "")))

    def _handle_blank_line(self, _tok: dict) -> Optional[ASTNode]:
        return None

    # -- inline handlers ----------------------------------------------------

    def _handle_text(self, tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.TEXT, value=str(tok.get("raw", "")))

    def _handle_strong(self, tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.STRONG, children=self._convert_children(tok.get("children")))

    def _handle_emphasis(self, tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.EMPHASIS, children=self._convert_children(tok.get("children")))

    def _handle_codespan(self, tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.INLINE_CODE, value=str(tok.get("raw", "")))

    def _handle_inline_html(self, tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.RAW_MARKUP, value=str(tok.get("raw", "")))

    def _handle_linebreak(self, _tok: dict) -> ASTNode:
        return ASTNode(type=NodeType.LINE_BREAK)

    def _handle_softbreak(self, _tok: dict) -> ASTNode:
        # A soft break is whitespace inside a paragraph.
        return ASTNode(type=NodeType.TEXT, value="\n")

    # -- link / image -------------------------------------------------------

    def _handle_link(self, tok: dict) -> ASTNode:
        attrs = tok.get("attrs", {})
        return ASTNode(
            type=NodeType.LINK,
            url=self._href(attrs),
            title=attrs.get("title") or "",
            children=self._convert_children(tok.get("children")),
        )

    def _href(self, attrs: dict) -> str:
        """The destination as written in the source.

        mistune percent-encodes destinations (a Windows backslash becomes
        ``%5C``, a space ``%20``).  When that form does not occur in the source
        the encoding was added by the parser and is undone.
        """
        url = attrs.get("url", "")
        if "%" not in url or url in self._source:
            return url
        return unquote(url)

    def _handle_image(self, tok: dict) -> ASTNode:
        attrs = tok.get("attrs", {})
        alt = attrs.get("alt") or _extract_text(tok.get("children"))
        return ASTNode(
            type=NodeType.IMAGE,
            url=self._href(attrs),
            title=attrs.get("title") or "",
            alt=alt,
        )

    # -- lists --------------------------------------------------------------

    def _handle_list(self, tok: dict) -> ASTNode:
        attrs = tok.get("attrs", {})
        start = attrs.get("start", 1)
        return ASTNode(
            type=NodeType.LIST,
            ordered=bool(attrs.get("ordered", False)),
            start=1 if start is None else int(start),
            tight=bool(tok.get("tight", True)),
            children=self._convert_children(tok.get("children", [])),
        )

    def _handle_list_item(self, tok: dict) -> ASTNode:
        return ASTNode(
            type=NodeType.LIST_ITEM,
            children=self._convert_children(tok.get("children", [])),
        )

    # -- table --------------------------------------------------------------

    def _handle_table(self, tok: dict) -> ASTNode:
        rows: list[ASTNode] = []
        for child in tok.get("children", []):
            ctype = child.get("type", "")
            if ctype == "table_head":
                # table_head holds its cells directly (one implicit row)
                rows.append(self._make_table_row(child.get("children", []), is_header=True))
            elif ctype == "table_body":
                for row in child.get("children", []):
                    rows.append(self._make_table_row(row.get("children", []), is_header=False))
        return ASTNode(type=NodeType.TABLE, children=rows)

    def _make_table_row(self, cell_tokens: list[dict], *, is_header: bool) -> ASTNode:
        cells: list[ASTNode] = []
        for cell_tok in cell_tokens:
            cell_attrs = cell_tok.get("attrs", {})
            cells.append(ASTNode(
                type=NodeType.TABLE_CELL,
                children=self._convert_children(cell_tok.get("children", [])),
                align=cell_attrs.get("align") or "",
                is_header=bool(cell_attrs.get("head", is_header)),
            ))
        return ASTNode(type=NodeType.TABLE_ROW, children=cells)


# -- helpers ----------------------------------------------------------------

def _strip_final_newline(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


def _extract_text(children: Any) -> str:
    if isinstance(children, str):
        return children
    if isinstance(children, list):
        parts: list[str] = []
        for c in children:
            if isinstance(c, dict):
                parts.append(c.get("raw") or _extract_text(c.get("children")))
            elif isinstance(c, str):
                parts.append(c)
        return "".join(parts)
    return ""
