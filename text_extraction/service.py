"""Extraction orchestrator: cache lookup, submit, poll, cache populate."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from text_extraction.backend import ExtractionBackendClient
from text_extraction.cache import CacheStore, DirectoryCacheStore, InMemoryCacheStore, make_cache_key
from text_extraction.config import ExtractionConfig
from text_extraction.errors import CacheError, ExtractionError, TransportError
from text_extraction.poller import PollPolicy, TaskPoller
from text_extraction.sources import SourceLoader
from text_extraction.types import ExtractionRequest, ExtractionResult

logger = logging.getLogger(__name__)


class TextExtractionService:
    """Public entry point used by the ingestion pipeline.

    All collaborators are injected; use ``from_config`` for the default
    httpx backend and a cache store chosen by configuration.
    """

    def __init__(
        self,
        *,
        backend: ExtractionBackendClient,
        cache: CacheStore,
        poller: TaskPoller,
        sources: SourceLoader | None = None,
        clear_backend_cache: bool = True,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._poller = poller
        self._sources = sources or SourceLoader()
        self._clear_backend_cache = clear_backend_cache

    @classmethod
    def from_config(cls, cfg: ExtractionConfig | None = None) -> TextExtractionService:
        cfg = cfg or ExtractionConfig.from_env()
        cfg.validate()

        # Cache first: it can fail, and nothing is open yet to clean up
        cache: CacheStore
        if cfg.cache_dir:
            cache = DirectoryCacheStore(cfg.cache_dir)
        else:
            cache = InMemoryCacheStore(max_entries=cfg.cache_max_entries)

        backend = ExtractionBackendClient(
            cfg.base_url,
            cfg.api_version,
            timeout_s=cfg.http_timeout_s,
        )

        return cls(
            backend=backend,
            cache=cache,
            poller=TaskPoller(
                backend,
                PollPolicy(max_attempts=cfg.poll_max_attempts, delay_s=cfg.poll_delay_s),
            ),
            sources=SourceLoader(
                max_download_bytes=cfg.max_download_bytes,
                timeout_s=cfg.http_timeout_s,
            ),
            clear_backend_cache=cfg.clear_backend_cache,
        )

    async def __aenter__(self) -> TextExtractionService:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._backend.aclose()

    @property
    def cache(self) -> CacheStore:
        return self._cache

    async def extract_text(self, request: ExtractionRequest) -> ExtractionResult:
        """Return extracted text for ``request``, from cache when possible.

        Raises:
            EncodingError: the source could not be read (no network call made).
            TransportError, ProtocolError: backend unreachable or misbehaving.
            ExtractionFailed: the backend reported the task as failed.
            ExtractionTimeoutError: the poll budget ran out.
        """
        prepared = await self._sources.prepare(request.source)
        options = request.options

        key: str | None = None
        generation: int | None = None
        if options.cache_enabled:
            key = make_cache_key(prepared.fingerprint, options)
            generation = self._cache.generation
            try:
                cached = await self._cache.lookup(key)
            except CacheError as e:
                logger.warning("Cache lookup failed, extracting anyway: %s", e)
                cached = None
            if cached is not None:
                logger.debug("Cache hit for %s (%s)", prepared.filename, key[:12])
                return cached

        upload = await self._sources.load(prepared)
        handle = await self._backend.submit(upload, options)
        result = await self._poller.wait_for_result(handle)

        if key is not None:
            try:
                stored = await self._cache.insert(key, result, generation=generation)
            except CacheError as e:
                logger.warning("Cache insert failed for task %s: %s", handle, e)
            else:
                if not stored:
                    logger.info("Cache cleared while task %s was running; result not cached", handle)

        return result

    async def extract_many(
        self,
        requests: Sequence[ExtractionRequest],
        *,
        concurrency: int = 4,
    ) -> list[ExtractionResult | ExtractionError]:
        """Extract several documents with bounded concurrency.

        Per-request ``ExtractionError``s are returned in place of results, in
        input order. Any other exception cancels the remaining requests and
        propagates wrapped in an ``ExceptionGroup``.
        """
        sem = asyncio.Semaphore(max(1, concurrency))

        async def worker(req: ExtractionRequest) -> ExtractionResult | ExtractionError:
            async with sem:
                try:
                    return await self.extract_text(req)
                except ExtractionError as e:
                    return e

        # TaskGroup cancels the remaining workers if one raises something unexpected
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(worker(r)) for r in requests]
        return [t.result() for t in tasks]

    async def clear_cache(self) -> None:
        """Drop every cached result, locally and (if configured) on the backend.

        Raises:
            CacheError: either cache could not be cleared.
        """
        await self._cache.clear()
        logger.info("Local extraction cache cleared")

        if self._clear_backend_cache:
            try:
                await self._backend.clear_cache()
            except TransportError as e:
                raise CacheError(f"Failed to clear backend cache: {e}") from e
