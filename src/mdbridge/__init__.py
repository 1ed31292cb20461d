"""mdbridge: keep a rich view and a Markdown source view in sync, and export.

The canonical form of a document is Markdown text.  Exports parse that text
once with :class:`~mdbridge.parser.MarkdownParser` and hand the tree to one of
the renderers (HTML, DOCX, PDF) via :class:`~mdbridge.converter.Converter`.
"""

__version__ = "0.3.0"

from mdbridge.converter import Converter, ExportOptions
from mdbridge.errors import ExportError, MdBridgeError
from mdbridge.parser import ASTNode, MarkdownParser, NodeType
from mdbridge.sync import Document, SyncController, ViewMode

__all__ = [
    "__version__",
    "ASTNode",
    "Converter",
    "Document",
    "ExportError",
    "ExportOptions",
    "MarkdownParser",
    "MdBridgeError",
    "NodeType",
    "SyncController",
    "ViewMode",
]
