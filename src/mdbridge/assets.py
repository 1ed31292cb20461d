"""Image reference handling: classification, normalisation and loading.

A reference is either *remote* or a *local absolute* path.  Local paths show
up in many spellings (``file:///C:/x.png``, ``/C:/x.png``, ``C:%5Cx.png``);
:func:`normalize` folds them into one form before anything else looks at them.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import re
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import quote, unquote

import httpx

from mdbridge.errors import AssetUnreachable
from mdbridge.logger import get_logger

logger = get_logger(__name__)

_FILE_SCHEME = "file://"
_DRIVE_RE = re.compile(r"^[A-Za-z]:(?:[\\/]|$)")
_SEPARATOR_BEFORE_DRIVE_RE = re.compile(r"^[\\/](?=[A-Za-z]:)")
_IMAGE_REF_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_DATA_URI_RE = re.compile(r"^data:([^;,]*)(;base64)?,(.*)$", re.DOTALL)

MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


class RefKind(Enum):
    REMOTE = "remote"
    LOCAL_ABSOLUTE = "local_absolute"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def normalize(path: str) -> str:
    """Percent-decode, drop ``file://`` and a separator in front of a drive."""
    clean = path
    try:
        clean = unquote(clean, errors="strict")
    except UnicodeDecodeError:
        logger.debug("Malformed percent-encoding in %r, using it undecoded", path)

    if clean.startswith(_FILE_SCHEME):
        clean = clean[len(_FILE_SCHEME):]

    return _SEPARATOR_BEFORE_DRIVE_RE.sub("", clean, count=1)


def classify(path: str) -> RefKind:
    """Return :attr:`RefKind.LOCAL_ABSOLUTE` for drive or POSIX absolute paths."""
    normalized = normalize(path)
    if _DRIVE_RE.match(normalized) or normalized.startswith("/"):
        return RefKind.LOCAL_ABSOLUTE
    return RefKind.REMOTE


def is_local_path(path: str) -> bool:
    return classify(path) is RefKind.LOCAL_ABSOLUTE


def mime_type_for(path: str) -> str:
    """MIME type from the file extension of *path*."""
    name = path.split("?", 1)[0].split("#", 1)[0]
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def encode_path_for_markup(path: str) -> str:
    """Forward slashes and ``%20`` so a local path survives in ``![](...)``."""
    return path.replace("\\", "/").replace(" ", "%20")


def extract_image_paths(markup: str) -> list[str]:
    return [m.group(2) for m in _IMAGE_REF_RE.finditer(markup)]


def replace_image_paths(markup: str, replacer: Callable[[str], str]) -> str:
    return _IMAGE_REF_RE.sub(
        lambda m: f"![{m.group(1)}]({replacer(m.group(2))})", markup
    )


def default_display_bridge(local_path: str) -> str:
    """Asset-protocol URL a webview can load for a local file."""
    return "asset://localhost/" + quote(local_path.replace("\\", "/"), safe="")


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class AssetResolver:
    """Turn image references into display URLs and, for export, into bytes.

    Args:
        display_bridge: Converts a normalised local path into something the
            rich view can display.  Defaults to :func:`default_display_bridge`.
        client: Optional shared ``httpx.AsyncClient`` for remote fetches.
        timeout: Timeout in seconds for remote fetches when no client is given.
    """

    def __init__(
        self,
        display_bridge: Optional[Callable[[str], str]] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._display_bridge = display_bridge or default_display_bridge
        self._client = client
        self._timeout = timeout

    def resolve_for_display(self, path: str) -> str:
        """Display reference for *path*; never used for serialization."""
        if classify(path) is RefKind.REMOTE:
            return path
        return self._display_bridge(normalize(path))

    async def load_bytes(self, path: str) -> Optional[bytes]:
        """Return the bytes behind *path*, or ``None`` when unreachable."""
        try:
            if classify(path) is RefKind.LOCAL_ABSOLUTE:
                return await self._read_local(normalize(path))
            return await self._fetch_remote(path)
        except AssetUnreachable as exc:
            logger.warning("%s", exc)
            return None

    # -- readers ------------------------------------------------------------

    async def _read_local(self, path: str) -> bytes:
        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as exc:
            raise AssetUnreachable(path, exc.strerror or str(exc)) from exc
        logger.debug("Read local asset %s (%d bytes)", path, len(data))
        return data

    async def _fetch_remote(self, url: str) -> bytes:
        match = _DATA_URI_RE.match(url)
        if match:
            return _decode_data_uri(url, match)

        if not url.lower().startswith(("http://", "https://")):
            raise AssetUnreachable(url, "not a local path or http(s) URL")

        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True
                ) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AssetUnreachable(url, str(exc) or type(exc).__name__) from exc

        logger.debug("Fetched remote asset %s (%d bytes)", url, len(response.content))
        return response.content


def _decode_data_uri(url: str, match: re.Match) -> bytes:
    payload = match.group(3)
    if not match.group(2):
        return unquote(payload).encode("utf-8")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AssetUnreachable(url[:40] + "...", "invalid base64 payload") from exc
