"""Keep the rich view and the Markdown source view consistent.

Exactly one view is active at a time.  Switching views converts the content
once, and only when something actually changed; edits echoed back by a
programmatic content replacement are ignored so that
notify -> replace -> notify cannot loop.

Everything here runs on a single thread.  The ``_applying`` flag is enough
for that; a multi-threaded host must confine the controller to one thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from mdbridge.errors import SerializationUnavailable
from mdbridge.logger import get_logger
from mdbridge.rich_view import RichView
from mdbridge.source_view import SourceBuffer

logger = get_logger(__name__)


class ViewMode(Enum):
    RICH = "rich"
    SOURCE = "source"


class SyncResult(Enum):
    CONVERTED = "converted"
    SKIPPED = "skipped"


@dataclass
class Document:
    """Canonical Markdown text of a document plus sync bookkeeping.

    ``last_synced_text`` is the value last pushed into the inactive view; a
    view switch compares against it to decide whether to convert at all.
    """

    canonical_text: str = ""
    last_synced_text: str = ""
    title: str = ""
    _listeners: list[Callable[[str], None]] = field(default_factory=list, repr=False)

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def update(self, text: str) -> None:
        """Set new canonical text and tell subscribers if it changed."""
        if text == self.canonical_text:
            return
        self.canonical_text = text
        for listener in list(self._listeners):
            listener(text)


class SyncController:
    """Own the active view and move content between the two views."""

    def __init__(
        self,
        document: Document,
        rich_view: RichView,
        source: Optional[SourceBuffer] = None,
    ) -> None:
        self.document = document
        self.rich_view = rich_view
        self.source = source or SourceBuffer()
        self._mode = ViewMode.RICH
        self._applying = False

        self.rich_view.subscribe(self._on_rich_changed)
        self.source.subscribe(self._on_source_changed)
        self._push_to_views(document.canonical_text)

    @property
    def mode(self) -> ViewMode:
        return self._mode

    # ======================================================================
    # View switching
    # ======================================================================

    def switch_to(self, mode: ViewMode) -> SyncResult:
        """Make *mode* the active view, converting content if needed."""
        if mode == self._mode:
            return SyncResult.SKIPPED

        if mode == ViewMode.SOURCE:
            result = self._enter_source()
        else:
            result = self._enter_rich()

        self._mode = mode
        logger.debug("Active view is now %s (%s)", mode.value, result.value)
        return result

    def toggle(self) -> SyncResult:
        target = ViewMode.SOURCE if self._mode == ViewMode.RICH else ViewMode.RICH
        return self.switch_to(target)

    def _enter_source(self) -> SyncResult:
        try:
            markup = self.rich_view.serialize_to_markup()
        except SerializationUnavailable as exc:
            logger.warning("Rich view serialization unavailable (%s); using last canonical text", exc)
            self.source.set_text(self.document.canonical_text)
            return SyncResult.CONVERTED

        self.source.set_text(markup)
        self.document.last_synced_text = markup
        return SyncResult.CONVERTED

    def _enter_rich(self) -> SyncResult:
        text = self.source.text
        if text == self.document.last_synced_text:
            logger.debug("Source unchanged since last sync; rich view left as is")
            return SyncResult.SKIPPED

        self._apply(lambda: self.rich_view.replace_content(text))
        self.document.last_synced_text = text
        self.document.update(text)
        return SyncResult.CONVERTED

    # ======================================================================
    # External replacement (document reloaded, another document opened)
    # ======================================================================

    def load(self, text: str) -> None:
        """Push externally supplied content into the views, whatever is active."""
        if text == self.document.last_synced_text and text == self.document.canonical_text:
            return
        self._push_to_views(text)
        self.document.update(text)

    def _push_to_views(self, text: str) -> None:
        self._apply(lambda: self.rich_view.replace_content(text))
        self.source.set_text(text)
        self.document.last_synced_text = text

    # ======================================================================
    # Change notifications
    # ======================================================================

    def _apply(self, replace: Callable[[], None]) -> None:
        self._applying = True
        try:
            replace()
        finally:
            self._applying = False

    def _on_rich_changed(self, markup: str) -> None:
        if self._applying or self._mode != ViewMode.RICH:
            return
        self.document.last_synced_text = markup
        self.document.update(markup)

    def _on_source_changed(self, text: str) -> None:
        if self._applying or self._mode != ViewMode.SOURCE:
            return
        self.document.update(text)
