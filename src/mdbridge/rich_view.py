"""Contract between the sync controller and a structured (rich) editing view.

A real rich editor widget lives outside this package; it only has to satisfy
:class:`RichView`.  :class:`TreeRichView` is an in-memory implementation that
keeps an :class:`~mdbridge.parser.ASTNode` tree, used for headless editing and
in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from mdbridge.assets import AssetResolver
from mdbridge.errors import SerializationUnavailable
from mdbridge.logger import get_logger
from mdbridge.parser import ASTNode, MarkdownParser, NodeType
from mdbridge.serializer import MarkdownSerializer

logger = get_logger(__name__)

ChangeListener = Callable[[str], None]


class RichView(Protocol):
    """What the sync controller needs from a rich editing widget."""

    def serialize_to_markup(self) -> str:
        """Current content as Markdown; may raise :class:`SerializationUnavailable`."""
        ...

    def replace_content(self, markup: str) -> None:
        """Replace the whole structured tree with the parsed *markup*."""
        ...

    def subscribe(self, listener: ChangeListener) -> None:
        """Register *listener* to receive the serialization after each change."""
        ...


@dataclass
class RichImageNode(ASTNode):
    """Image node of the rich view.

    ``url`` is the original reference and is the only one ever serialized.
    ``display_url`` is derived once, when the node is created, for on-screen
    use.
    """

    display_url: str = ""


class TreeRichView:
    """In-memory rich view backed by an AST.

    Mirrors how editor widgets behave: :meth:`replace_content` fires the
    change channel like any other update, and serialization is unavailable
    until the Markdown extension is ready.
    """

    def __init__(
        self,
        markup: str = "",
        *,
        resolver: Optional[AssetResolver] = None,
        ready: bool = True,
    ) -> None:
        self._parser = MarkdownParser()
        self._serializer = MarkdownSerializer()
        self._resolver = resolver or AssetResolver()
        self._listeners: list[ChangeListener] = []
        self._ready = ready
        self.tree: ASTNode = self._build_tree(markup)
        # Rich-view-only state (cursor, selection, pending marks) that a
        # content replacement throws away.
        self.selection: Any = None

    # -- RichView contract --------------------------------------------------

    def serialize_to_markup(self) -> str:
        if not self._ready:
            raise SerializationUnavailable("markdown serializer is not initialised")
        return self._serializer.serialize(self.tree)

    def replace_content(self, markup: str) -> None:
        self.tree = self._build_tree(markup)
        self.selection = None
        self._notify()

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    # -- editing ------------------------------------------------------------

    def mark_ready(self) -> None:
        self._ready = True

    @property
    def ready(self) -> bool:
        return self._ready

    def apply_edit(self, edit: Callable[[ASTNode], None]) -> None:
        """Mutate the tree in place as a user would, then notify listeners."""
        edit(self.tree)
        self._notify()

    def images(self) -> list[RichImageNode]:
        return [n for n in self.tree.walk() if isinstance(n, RichImageNode)]

    # -- internals ----------------------------------------------------------

    def _notify(self) -> None:
        if not self._listeners or not self._ready:
            return
        markup = self.serialize_to_markup()
        for listener in list(self._listeners):
            listener(markup)

    def _build_tree(self, markup: str) -> ASTNode:
        root = self._parser.parse(markup)
        self._swap_images(root)
        return root

    def _swap_images(self, node: ASTNode) -> None:
        for idx, child in enumerate(node.children):
            if child.type == NodeType.IMAGE and not isinstance(child, RichImageNode):
                node.children[idx] = RichImageNode(
                    type=NodeType.IMAGE,
                    url=child.url,
                    title=child.title,
                    alt=child.alt,
                    display_url=self._resolver.resolve_for_display(child.url),
                )
            else:
                self._swap_images(child)
