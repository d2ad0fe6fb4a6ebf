"""Content-keyed cache of extraction results.

Stores are async so a remote implementation can share the protocol. Every
store tracks a *generation* that increases on each ``clear()``. Callers
capture the generation before starting a slow extraction and pass it to
``insert``; a write carrying an older generation is rejected so results
computed before a clear never show up as valid entries after it.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import tempfile
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from text_extraction.errors import CacheError
from text_extraction.types import ExtractionOptions, ExtractionResult

logger = logging.getLogger(__name__)

_KEY_VERSION = "v1"


def make_cache_key(fingerprint: str, options: ExtractionOptions) -> str:
    """Derive the cache key from a document fingerprint and the options that affect output."""
    strategy = options.ocr_strategy.value if options.ocr_strategy is not None else ""
    raw = f"{_KEY_VERSION}|fp:{fingerprint}|ocr:{strategy}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    result: ExtractionResult
    inserted_at: datetime
    generation: int


class CacheStore(Protocol):
    @property
    def generation(self) -> int: ...

    async def lookup(self, key: str) -> ExtractionResult | None: ...

    async def insert(
        self, key: str, result: ExtractionResult, *, generation: int | None = None
    ) -> bool: ...

    async def clear(self) -> None: ...


class InMemoryCacheStore:
    """Process-local store. ``max_entries=None`` keeps every entry; an int enables LRU eviction."""

    def __init__(self, *, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._entries)

    async def lookup(self, key: str) -> ExtractionResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._max_entries is not None:
                self._entries.move_to_end(key)
            return entry.result

    async def insert(
        self, key: str, result: ExtractionResult, *, generation: int | None = None
    ) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("Dropping stale cache write for %s (gen %d != %d)", key, generation, self._generation)
                return False

            existing = self._entries.get(key)
            if existing is not None and existing.result == result:
                return True

            self._entries[key] = CacheEntry(
                result=result,
                inserted_at=datetime.now(UTC),
                generation=self._generation,
            )
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted cache entry %s", evicted)
            return True

    async def clear(self) -> None:
        with self._lock:
            self._entries = OrderedDict()
            self._generation += 1


class DirectoryCacheStore:
    """Cache persisted as one JSON file per key under ``root``.

    Entries record the generation they were written under; entries from an
    older generation are ignored on lookup, so a clear that is interrupted
    half-way through deleting files still invalidates all of them.
    """

    _GENERATION_FILE = "GENERATION"
    _ENTRIES_DIR = "entries"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._entries_dir = self._root / self._ENTRIES_DIR
        self._lock = threading.Lock()
        try:
            self._entries_dir.mkdir(parents=True, exist_ok=True)
            self._generation = self._read_generation()
        except OSError as e:
            raise CacheError(f"Cache directory {self._root} is not usable: {e}") from e

    @property
    def generation(self) -> int:
        return self._generation

    async def lookup(self, key: str) -> ExtractionResult | None:
        return await asyncio.to_thread(self._lookup_sync, key)

    async def insert(
        self, key: str, result: ExtractionResult, *, generation: int | None = None
    ) -> bool:
        return await asyncio.to_thread(self._insert_sync, key, result, generation)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear_sync)

    # -- sync internals -------------------------------------------------------

    def _path_for(self, key: str) -> Path:
        return self._entries_dir / f"{key}.json"

    def _read_generation(self) -> int:
        p = self._root / self._GENERATION_FILE
        try:
            return int(p.read_text(encoding="utf-8").strip() or "0")
        except FileNotFoundError:
            return 0
        except ValueError as e:
            # Resetting would revive entries invalidated by earlier clears
            raise CacheError(f"Corrupt cache generation marker at {p}") from e

    def _write_atomic(self, path: Path, text: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=path.suffix)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _lookup_sync(self, key: str) -> ExtractionResult | None:
        try:
            raw = self._path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Cache read failed for {key}: {e}") from e

        try:
            obj: dict[str, Any] = json.loads(raw)
            if int(obj["generation"]) != self._generation:
                return None
            res = obj["result"]
            return ExtractionResult(content=res["content"], metadata=res.get("metadata") or {})
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", key, e)
            return None

    def _insert_sync(self, key: str, result: ExtractionResult, generation: int | None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            existing = self._lookup_sync(key)
            if existing is not None and existing == result:
                return True
            payload = {
                "key": key,
                "generation": self._generation,
                "inserted_at": datetime.now(UTC).isoformat(),
                "result": result.to_dict(),
            }
            try:
                self._write_atomic(self._path_for(key), json.dumps(payload, ensure_ascii=False))
            except (OSError, TypeError, ValueError) as e:
                raise CacheError(f"Cache write failed for {key}: {e}") from e
            return True

    def _clear_sync(self) -> None:
        with self._lock:
            new_gen = self._generation + 1
            try:
                # Bump the marker first: once it lands every old entry is invalid
                self._write_atomic(self._root / self._GENERATION_FILE, str(new_gen))
                self._generation = new_gen
                for p in self._entries_dir.glob("*.json"):
                    p.unlink(missing_ok=True)
            except OSError as e:
                raise CacheError(f"Cache clear failed under {self._root}: {e}") from e
