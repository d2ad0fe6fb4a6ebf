"""Turn a request source (path, URL, bytes, raw text) into upload bytes.

File reads and URL downloads happen here, before anything is sent to the
extraction backend, so an unreadable source surfaces as ``EncodingError``
rather than as a backend rejection.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from pathlib import Path

import httpx

from text_extraction.errors import EncodingError
from text_extraction.types import BytesSource, FileSource, Source, TextSource, UrlSource

logger = logging.getLogger(__name__)

_DEFAULT_DOWNLOAD_NAME = "download"


@dataclass(frozen=True)
class PreparedSource:
    fingerprint: str
    filename: str
    data: bytes | None  # None for URL sources until downloaded
    url: str | None = None


@dataclass(frozen=True)
class Upload:
    filename: str
    data: bytes
    content_type: str


def content_fingerprint(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


def url_fingerprint(url: str) -> str:
    return "url:" + hashlib.sha256(url.encode("utf-8")).hexdigest()


def guess_content_type(filename: str) -> str:
    ctype, _ = mimetypes.guess_type(filename)
    return ctype or "application/octet-stream"


def _normalize_url(raw: str) -> httpx.URL:
    # Fragments never reach the server; drop them so they don't split the cache
    try:
        url = httpx.URL(raw.strip().split("#", 1)[0])
    except httpx.InvalidURL as e:
        raise EncodingError(f"Invalid source URL {raw!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise EncodingError(f"Unsupported source URL {raw!r}: only http(s) is accepted")
    return url


def _filename_from_url(url: httpx.URL) -> str:
    name = posixpath.basename(url.path.rstrip("/"))
    return name or _DEFAULT_DOWNLOAD_NAME


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise EncodingError(f"No such file: {path}") from e
    except IsADirectoryError as e:
        raise EncodingError(f"Source is a directory, not a file: {path}") from e
    except OSError as e:
        raise EncodingError(f"Could not read {path}: {e}") from e


class SourceLoader:
    """Reads local sources and downloads URL sources with a size cap."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        max_download_bytes: int = 50_000_000,
        timeout_s: float = 30.0,
    ) -> None:
        self._http = http_client
        self._max_bytes = max(1, int(max_download_bytes))
        self._timeout_s = timeout_s

    async def prepare(self, source: Source) -> PreparedSource:
        """Fingerprint a source. Local sources are read in full here."""
        if isinstance(source, FileSource):
            data = await asyncio.to_thread(_read_file, source.path)
            return PreparedSource(
                fingerprint=content_fingerprint(data),
                filename=source.path.name,
                data=data,
            )
        if isinstance(source, BytesSource):
            if not source.filename:
                raise EncodingError("Byte sources require a filename")
            return PreparedSource(
                fingerprint=content_fingerprint(source.data),
                filename=source.filename,
                data=source.data,
            )
        if isinstance(source, TextSource):
            try:
                data = source.text.encode("utf-8")
            except UnicodeEncodeError as e:
                raise EncodingError(f"Raw text is not encodable as UTF-8: {e}") from e
            return PreparedSource(
                fingerprint=content_fingerprint(data),
                filename=source.filename,
                data=data,
            )
        if isinstance(source, UrlSource):
            url = _normalize_url(source.url)
            return PreparedSource(
                fingerprint=url_fingerprint(str(url)),
                filename=_filename_from_url(url),
                data=None,
                url=str(url),
            )
        raise TypeError(f"Unsupported source type: {type(source).__name__}")

    async def load(self, prepared: PreparedSource) -> Upload:
        """Return upload bytes, downloading URL sources on demand."""
        if prepared.data is not None:
            return Upload(
                filename=prepared.filename,
                data=prepared.data,
                content_type=guess_content_type(prepared.filename),
            )
        assert prepared.url is not None
        data, content_type = await self._download(prepared.url)
        return Upload(
            filename=prepared.filename,
            data=data,
            content_type=content_type or guess_content_type(prepared.filename),
        )

    async def _download(self, url: str) -> tuple[bytes, str | None]:
        if self._http is not None:
            return await self._stream(self._http, url)
        async with httpx.AsyncClient(timeout=self._timeout_s, follow_redirects=True) as client:
            return await self._stream(client, url)

    async def _stream(self, client: httpx.AsyncClient, url: str) -> tuple[bytes, str | None]:
        logger.debug("Downloading source %s", url)
        try:
            async with client.stream("GET", url) as resp:
                if resp.status_code != 200:
                    raise EncodingError(f"Could not download {url}: HTTP {resp.status_code}")
                buf = bytearray()
                async for chunk in resp.aiter_bytes():
                    buf.extend(chunk)
                    if len(buf) > self._max_bytes:
                        raise EncodingError(
                            f"Source {url} exceeds the {self._max_bytes} byte download limit"
                        )
                ctype = resp.headers.get("content-type")
        except httpx.HTTPError as e:
            raise EncodingError(f"Could not download {url}: {e}") from e

        if ctype:
            ctype = ctype.split(";", 1)[0].strip() or None
        return bytes(buf), ctype
