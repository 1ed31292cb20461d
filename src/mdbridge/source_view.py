"""Plain-text Markdown source buffer."""

from __future__ import annotations

from typing import Callable

ChangeListener = Callable[[str], None]


class SourceBuffer:
    """Holds the source view's text and reports user edits.

    Programmatic updates through :meth:`set_text` do not reach listeners.
    """

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._listeners: list[ChangeListener] = []
        self._updating_programmatically = False

    @property
    def text(self) -> str:
        return self._text

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def set_text(self, text: str) -> None:
        """Set the buffer content programmatically."""
        self._updating_programmatically = True
        try:
            self._text = text
        finally:
            self._updating_programmatically = False

    def type_text(self, text: str) -> None:
        """Replace the buffer content as the user would."""
        self._text = text
        self._on_buffer_changed()

    def _on_buffer_changed(self) -> None:
        if self._updating_programmatically:
            return
        for listener in list(self._listeners):
            listener(self._text)
