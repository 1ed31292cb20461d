"""Tests for the FastAPI web service."""

from __future__ import annotations

import io
from pathlib import Path

import docx
import pytest
from httpx import ASGITransport, AsyncClient

from mdbridge.server import app

FIXTURE_DIR = Path(__file__).parent / "fixtures"
SAMPLE_MD = FIXTURE_DIR / "sample.md"

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
def client():
    """Create an async test client."""
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.asyncio
class TestInfoEndpoints:

    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "version" in data

    async def test_list_styles(self, client):
        resp = await client.get("/styles")
        assert resp.status_code == 200
        assert "default" in resp.json()["presets"]

    async def test_list_formats(self, client):
        resp = await client.get("/formats")
        assert resp.json() == {"formats": ["html", "docx", "pdf", "md"]}


@pytest.mark.asyncio
class TestExportFileEndpoint:

    async def test_html_upload(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("test.md", b"# Hello\n\nWorld", "text/markdown")},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "<h1>Hello</h1>" in resp.text

    async def test_docx_upload(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("myfile.md", b"# Hello", "text/markdown")},
            data={"format": "docx", "style": "academic"},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"] == DOCX_MEDIA_TYPE
        assert 'filename="myfile.docx"' in resp.headers["content-disposition"]
        assert docx.Document(io.BytesIO(resp.content)).paragraphs[0].text == "Hello"

    async def test_pdf_upload(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("report.md", b"# Hello\n\nWorld", "text/markdown")},
            data={"format": "pdf"},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert 'filename="report.pdf"' in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF-")

    async def test_non_ascii_filename(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("노트.md", "# 제목".encode("utf-8"), "text/markdown")},
        )
        assert resp.status_code == 200
        disposition = resp.headers["content-disposition"]
        assert disposition.startswith("attachment; filename*=UTF-8''")
        assert "%EB%85%B8%ED%8A%B8.html" in disposition

    async def test_bad_encoding(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("x.md", b"\xff\xfe", "text/markdown")},
        )
        assert resp.status_code == 400

    async def test_unknown_format(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("x.md", b"x", "text/markdown")},
            data={"format": "rtf"},
        )
        assert resp.status_code == 400
        assert "rtf" in resp.json()["detail"]

    async def test_sample_fixture(self, client):
        resp = await client.post(
            "/export",
            files={"file": ("sample.md", SAMPLE_MD.read_bytes(), "text/markdown")},
            data={"format": "docx"},
        )
        assert resp.status_code == 200
        assert len(resp.content) > 0


@pytest.mark.asyncio
class TestExportTextEndpoint:

    async def test_export_text(self, client):
        resp = await client.post(
            "/export/text",
            data={"markdown": "# Hello\n\nParagraph.", "title": "greeting"},
        )
        assert resp.status_code == 200
        assert "<title>greeting</title>" in resp.text
        assert 'filename="greeting.html"' in resp.headers["content-disposition"]

    async def test_markdown_format(self, client):
        resp = await client.post(
            "/export/text",
            data={"markdown": "*keep*", "format": "md"},
        )
        assert resp.status_code == 200
        assert resp.content == b"*keep*"

    async def test_unknown_style(self, client):
        resp = await client.post(
            "/export/text",
            data={"markdown": "x", "style": "fancy"},
        )
        assert resp.status_code == 400

    async def test_table_conversion(self, client):
        md = "| A | B |\n|---|---|\n| 1 | 2 |"
        resp = await client.post("/export/text", data={"markdown": md, "format": "docx"})
        assert resp.status_code == 200
