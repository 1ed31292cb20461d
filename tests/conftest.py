"""Shared fixtures."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from mdbridge.assets import AssetResolver
from mdbridge.errors import AssetUnreachable

FIXTURE_DIR = Path(__file__).parent / "fixtures"

# 1x1 RGBA PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class StubFileResolver(AssetResolver):
    """Resolver whose local reads come from an in-memory table."""

    def __init__(self, files: dict[str, bytes], **kwargs) -> None:
        super().__init__(**kwargs)
        self.files = files
        self.reads: list[str] = []

    async def _read_local(self, path: str) -> bytes:
        self.reads.append(path)
        if path not in self.files:
            raise AssetUnreachable(path, "No such file or directory")
        return self.files[path]


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "pixel.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def sample_md() -> str:
    return (FIXTURE_DIR / "sample.md").read_text(encoding="utf-8")


@pytest.fixture
def make_resolver():
    """Factory for :class:`StubFileResolver` instances."""
    return StubFileResolver
