"""Unit tests for cache keys and the cache stores."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from text_extraction.cache import DirectoryCacheStore, InMemoryCacheStore, make_cache_key
from text_extraction.errors import CacheError
from text_extraction.types import ExtractionOptions, ExtractionResult, OcrStrategy

RESULT = ExtractionResult(content="page one\npage two", metadata={"source": "a.pdf"})
OTHER = ExtractionResult(content="different", metadata={})


class TestCacheKey:
    def test_same_document_same_options_same_key(self):
        a = make_cache_key("sha256:abc", ExtractionOptions(ocr_strategy=OcrStrategy.TESSERACT))
        b = make_cache_key("sha256:abc", ExtractionOptions(ocr_strategy="tesseract"))
        assert a == b

    def test_ocr_strategies_never_collide(self):
        keys = {
            make_cache_key("sha256:abc", ExtractionOptions(ocr_strategy=s))
            for s in [None, *OcrStrategy]
        }
        assert len(keys) == len(OcrStrategy) + 1

    def test_use_cache_flag_does_not_change_key(self):
        assert make_cache_key("fp", ExtractionOptions(use_cache=True)) == make_cache_key(
            "fp", ExtractionOptions()
        )

    def test_different_documents_differ(self):
        opts = ExtractionOptions()
        assert make_cache_key("sha256:abc", opts) != make_cache_key("sha256:abd", opts)


class TestInMemoryCacheStore:
    async def test_lookup_miss_then_hit(self):
        store = InMemoryCacheStore()
        assert await store.lookup("k") is None
        assert await store.insert("k", RESULT)
        assert await store.lookup("k") == RESULT

    async def test_insert_same_content_is_noop(self):
        store = InMemoryCacheStore()
        await store.insert("k", RESULT)
        await store.insert("k", ExtractionResult(content=RESULT.content, metadata=dict(RESULT.metadata)))
        assert len(store) == 1
        assert await store.lookup("k") == RESULT

    async def test_last_write_wins(self):
        store = InMemoryCacheStore()
        await store.insert("k", RESULT)
        await store.insert("k", OTHER)
        assert await store.lookup("k") == OTHER

    async def test_clear_removes_everything_and_bumps_generation(self):
        store = InMemoryCacheStore()
        await store.insert("a", RESULT)
        await store.insert("b", OTHER)
        gen = store.generation

        await store.clear()

        assert len(store) == 0
        assert await store.lookup("a") is None
        assert store.generation == gen + 1

    async def test_stale_generation_write_is_rejected(self):
        store = InMemoryCacheStore()
        gen = store.generation
        await store.clear()

        assert await store.insert("k", RESULT, generation=gen) is False
        assert await store.lookup("k") is None
        assert await store.insert("k", RESULT, generation=store.generation) is True

    async def test_unbounded_by_default(self):
        store = InMemoryCacheStore()
        for i in range(500):
            await store.insert(f"k{i}", RESULT)
        assert len(store) == 500

    async def test_lru_eviction_when_bounded(self):
        store = InMemoryCacheStore(max_entries=2)
        await store.insert("a", RESULT)
        await store.insert("b", RESULT)
        await store.lookup("a")  # a is now most recent
        await store.insert("c", RESULT)

        assert await store.lookup("a") == RESULT
        assert await store.lookup("b") is None
        assert await store.lookup("c") == RESULT

    def test_rejects_non_positive_bound(self):
        with pytest.raises(ValueError):
            InMemoryCacheStore(max_entries=0)

    async def test_concurrent_inserts_and_lookups(self):
        store = InMemoryCacheStore()

        async def writer(i: int) -> None:
            await store.insert(f"k{i}", ExtractionResult(content=f"c{i}"))
            await asyncio.sleep(0)

        async def reader(i: int) -> ExtractionResult | None:
            await asyncio.sleep(0)
            return await store.lookup(f"k{i}")

        await asyncio.gather(*[writer(i) for i in range(50)], *[reader(i) for i in range(50)])
        for i in range(50):
            assert (await store.lookup(f"k{i}")) == ExtractionResult(content=f"c{i}")


class TestDirectoryCacheStore:
    async def test_round_trip_survives_reopen(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path / "cache")
        await store.insert("k", RESULT)

        reopened = DirectoryCacheStore(tmp_path / "cache")
        assert await reopened.lookup("k") == RESULT

    async def test_clear_invalidates_and_persists_generation(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path)
        await store.insert("k", RESULT)
        await store.clear()

        assert await store.lookup("k") is None
        assert DirectoryCacheStore(tmp_path).generation == 1

    async def test_entries_from_older_generation_are_ignored(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path)
        await store.insert("k", RESULT)
        # Simulate a clear that bumped the marker but died before deleting files
        (tmp_path / "GENERATION").write_text("7", encoding="utf-8")

        assert await DirectoryCacheStore(tmp_path).lookup("k") is None

    async def test_stale_generation_write_is_rejected(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path)
        gen = store.generation
        await store.clear()
        assert await store.insert("k", RESULT, generation=gen) is False
        assert not list((tmp_path / "entries").glob("*.json"))

    async def test_corrupt_entry_is_a_miss(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path)
        (tmp_path / "entries" / "k.json").write_text("{not json", encoding="utf-8")
        assert await store.lookup("k") is None

    async def test_entry_file_format(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path)
        await store.insert("k", RESULT)
        obj = json.loads((tmp_path / "entries" / "k.json").read_text(encoding="utf-8"))
        assert obj["generation"] == 0
        assert obj["result"] == {"content": RESULT.content, "metadata": {"source": "a.pdf"}}
        assert "inserted_at" in obj

    async def test_corrupt_generation_marker_raises(self, tmp_path: Path):
        store = DirectoryCacheStore(tmp_path)
        await store.insert("k", RESULT)
        await store.clear()
        (tmp_path / "GENERATION").write_text("garbage", encoding="utf-8")

        with pytest.raises(CacheError, match="generation marker"):
            DirectoryCacheStore(tmp_path)

    def test_unusable_directory_raises_cache_error(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(CacheError):
            DirectoryCacheStore(blocker)
