"""Tests for the view synchronisation controller."""

from __future__ import annotations

import logging

import pytest

from mdbridge.parser import ASTNode, NodeType
from mdbridge.rich_view import TreeRichView
from mdbridge.source_view import SourceBuffer
from mdbridge.sync import Document, SyncController, SyncResult, ViewMode


def make_controller(text: str, *, ready: bool = True) -> tuple[SyncController, list[str]]:
    document = Document(canonical_text=text)
    updates: list[str] = []
    document.subscribe(updates.append)
    controller = SyncController(document, TreeRichView(ready=ready), SourceBuffer())
    return controller, updates


class TestInitialState:
    def test_starts_in_rich_mode_with_content_pushed(self) -> None:
        controller, updates = make_controller("# Hi\n")
        assert controller.mode is ViewMode.RICH
        assert controller.rich_view.serialize_to_markup() == "# Hi\n"
        assert controller.source.text == "# Hi\n"
        assert controller.document.last_synced_text == "# Hi\n"
        assert updates == []

    def test_same_mode_is_skipped(self) -> None:
        controller, _ = make_controller("x")
        assert controller.switch_to(ViewMode.RICH) is SyncResult.SKIPPED


class TestRichToSource:
    def test_serialization_becomes_source_and_last_synced(self) -> None:
        controller, _ = make_controller("* a\n* b\n")
        assert controller.switch_to(ViewMode.SOURCE) is SyncResult.CONVERTED
        assert controller.mode is ViewMode.SOURCE
        assert controller.source.text == "- a\n- b\n"
        assert controller.document.last_synced_text == "- a\n- b\n"

    @pytest.mark.parametrize("text", [
        "![a](C:\\img\\a.png)\n",
        "![a](</tmp/my dir/a.png>)\n",
        "# 2024\\. Review\n\na\n3\\) b\n",
    ])
    def test_switch_keeps_canonical_text(self, text: str) -> None:
        controller, updates = make_controller(text)
        controller.switch_to(ViewMode.SOURCE)
        assert controller.source.text == text
        controller.switch_to(ViewMode.RICH)
        controller.switch_to(ViewMode.SOURCE)
        assert controller.source.text == text
        assert updates == []

    def test_serialization_unavailable_falls_back(self, caplog) -> None:
        controller, _ = make_controller("*raw* text", ready=False)
        controller.source.set_text("stale")
        with caplog.at_level(logging.WARNING, logger="mdbridge"):
            result = controller.switch_to(ViewMode.SOURCE)
        assert result is SyncResult.CONVERTED
        assert controller.source.text == "*raw* text"
        assert "serialization unavailable" in caplog.text


class TestSourceToRich:
    def test_unchanged_source_keeps_rich_state(self) -> None:
        controller, updates = make_controller("# Hi\n")
        controller.switch_to(ViewMode.SOURCE)
        view = controller.rich_view
        view.selection = "cursor"
        tree = view.tree

        assert controller.switch_to(ViewMode.RICH) is SyncResult.SKIPPED
        assert view.selection == "cursor"
        assert view.tree is tree
        assert updates == []

    def test_edited_source_replaces_rich_content(self) -> None:
        controller, updates = make_controller("# Hi\n")
        controller.switch_to(ViewMode.SOURCE)
        controller.source.type_text("# Changed\n")
        assert controller.document.canonical_text == "# Changed\n"

        controller.rich_view.selection = "cursor"
        assert controller.switch_to(ViewMode.RICH) is SyncResult.CONVERTED
        assert controller.rich_view.serialize_to_markup() == "# Changed\n"
        assert controller.rich_view.selection is None
        assert controller.document.last_synced_text == "# Changed\n"
        assert updates == ["# Changed\n"]

    def test_toggle_round_trip(self) -> None:
        controller, _ = make_controller("text")
        assert controller.toggle() is SyncResult.CONVERTED
        assert controller.mode is ViewMode.SOURCE
        assert controller.toggle() is SyncResult.SKIPPED
        assert controller.mode is ViewMode.RICH


class TestNotifications:
    def test_rich_edit_updates_document(self) -> None:
        controller, updates = make_controller("# Hi\n")

        def add_para(root: ASTNode) -> None:
            root.children.append(ASTNode(
                type=NodeType.PARAGRAPH,
                children=[ASTNode(type=NodeType.TEXT, value="more")],
            ))

        controller.rich_view.apply_edit(add_para)
        assert updates == ["# Hi\n\nmore\n"]
        assert controller.document.canonical_text == "# Hi\n\nmore\n"

    def test_programmatic_replacement_is_not_echoed(self) -> None:
        controller, updates = make_controller("")
        # The rich view normalises "* item" to "- item"; an echo would show up
        # as a second update.
        controller.load("* item")
        assert updates == ["* item"]
        assert controller.document.canonical_text == "* item"

    def test_source_edits_ignored_while_rich_active(self) -> None:
        controller, updates = make_controller("a")
        controller.source.type_text("typed into hidden view")
        assert updates == []
        assert controller.document.canonical_text == "a"

    def test_source_set_text_does_not_notify(self) -> None:
        buffer = SourceBuffer()
        seen: list[str] = []
        buffer.subscribe(seen.append)
        buffer.set_text("programmatic")
        buffer.type_text("user")
        assert seen == ["user"]


class TestExternalLoad:
    @pytest.mark.parametrize("mode", [ViewMode.RICH, ViewMode.SOURCE])
    def test_load_reaches_active_view(self, mode: ViewMode) -> None:
        controller, updates = make_controller("old")
        controller.switch_to(mode)
        controller.load("# New doc\n")

        assert controller.mode is mode
        assert controller.source.text == "# New doc\n"
        assert controller.rich_view.serialize_to_markup() == "# New doc\n"
        assert controller.document.last_synced_text == "# New doc\n"
        assert updates == ["# New doc\n"]

    def test_load_after_load_then_switch_is_noop(self) -> None:
        controller, _ = make_controller("old")
        controller.switch_to(ViewMode.SOURCE)
        controller.load("fresh\n")
        assert controller.switch_to(ViewMode.RICH) is SyncResult.SKIPPED

    def test_load_same_text_is_ignored(self) -> None:
        controller, updates = make_controller("same")
        controller.rich_view.selection = "cursor"
        controller.load("same")
        assert controller.rich_view.selection == "cursor"
        assert updates == []
