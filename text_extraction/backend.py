"""HTTP client for the extraction backend.

The client is stateless between calls: every method is a single round trip
and nothing about a task is remembered locally, so the poller can call
``query_status`` as often as it likes.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from text_extraction.config import DEFAULT_API_VERSION, DEFAULT_BASE_URL
from text_extraction.errors import ProtocolError, TransportError
from text_extraction.models import StatusResponse, SubmitResponse
from text_extraction.sources import Upload
from text_extraction.types import (
    Completed,
    ExtractionOptions,
    ExtractionResult,
    Failed,
    Pending,
    Processing,
    TaskHandle,
    TaskStatus,
)

logger = logging.getLogger(__name__)

_DEFAULT_FAILURE_REASON = "Text extraction failed"
_ERROR_BODY_PREVIEW = 200


def _describe_failure(resp: httpx.Response) -> str:
    body = resp.text.strip()
    if len(body) > _ERROR_BODY_PREVIEW:
        body = body[:_ERROR_BODY_PREVIEW] + "..."
    return f"HTTP {resp.status_code}" + (f": {body}" if body else "")


class ExtractionBackendClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version.strip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def __aenter__(self) -> ExtractionBackendClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _url(self, *segments: str) -> str:
        return "/".join([self._base_url, "api", self._api_version, *segments])

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {type(e).__name__}: {e}") from e
        if not resp.is_success:
            raise TransportError(
                f"{method} {url} rejected: {_describe_failure(resp)}",
                status_code=resp.status_code,
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise ProtocolError(f"Backend returned non-JSON body from {resp.request.url}") from e

    async def submit(self, upload: Upload, options: ExtractionOptions) -> TaskHandle:
        """Upload a document and return the backend's task handle."""
        data: dict[str, str] = {}
        if options.ocr_strategy is not None:
            data["ocr_strategy"] = options.ocr_strategy.value
        if options.use_cache is not None:
            data["use_cache"] = "true" if options.use_cache else "false"

        resp = await self._send(
            "POST",
            self._url("extract"),
            files={"file": (upload.filename, upload.data, upload.content_type)},
            data=data,
        )
        try:
            parsed = SubmitResponse.model_validate(self._json(resp))
        except ValidationError as e:
            raise ProtocolError(f"Submit response missing a valid task_id: {e.errors()!r}") from e

        logger.info("Submitted %s (%d bytes) as task %s", upload.filename, len(upload.data), parsed.task_id)
        return parsed.task_id

    async def query_status(self, handle: TaskHandle) -> TaskStatus:
        # The handle is untrusted: encode it as exactly one path segment
        resp = await self._send("GET", self._url("status", quote(handle, safe="")))
        payload = self._json(resp)
        try:
            parsed = StatusResponse.model_validate(payload)
        except ValidationError as e:
            raw_status = payload.get("status") if isinstance(payload, dict) else None
            raise ProtocolError(
                f"Unrecognized status response for task {handle!r} (status={raw_status!r})"
            ) from e

        if parsed.status == "pending":
            return Pending()
        if parsed.status == "processing":
            return Processing()
        if parsed.status == "failed":
            return Failed(reason=parsed.error or _DEFAULT_FAILURE_REASON)
        if parsed.result is None:
            raise ProtocolError(f"Task {handle!r} reported completed without a result")
        return Completed(
            result=ExtractionResult(
                content=parsed.result.content,
                metadata=parsed.result.metadata or {},
            )
        )

    async def clear_cache(self) -> None:
        """Ask the backend to drop its own result cache."""
        await self._send("POST", self._url("clear-cache"))
        logger.info("Backend cache cleared")
