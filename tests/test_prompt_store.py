"""Prompt association and history store tests."""

from __future__ import annotations

import asyncio
import json
import random

from core.blob_store import MemoryBlobStore
from video.prompt_store import (
    PROMPT_HISTORY_KEY,
    PROMPT_STORAGE_KEY,
    PromptAssociationStore,
    PromptHistoryStore,
)


class Tick:
    """Clock that moves forward one second per call."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return self.now


class BrokenBlobStore(MemoryBlobStore):
    """Blob store whose I/O fails for selected keys."""

    def __init__(self, fail_keys: set[str], fail_reads: bool = False) -> None:
        super().__init__()
        self.fail_keys = fail_keys
        self.fail_reads = fail_reads

    async def get(self, key):
        if self.fail_reads and key in self.fail_keys:
            raise OSError("disk unavailable")
        return await super().get(key)

    async def set(self, key, value):
        if key in self.fail_keys:
            raise OSError("disk full")
        await super().set(key, value)

    async def remove(self, key):
        if key in self.fail_keys:
            raise OSError("read-only")
        await super().remove(key)


def history_store(max_items: int = 100) -> PromptHistoryStore:
    return PromptHistoryStore(MemoryBlobStore(), max_items=max_items, clock=Tick())


def test_get_returns_saved_association():
    store = PromptAssociationStore(MemoryBlobStore(), clock=Tick())

    asyncio.run(store.save("video_1", "a cat", "sora-2", "1280x720", "8"))
    association = asyncio.run(store.get("video_1"))

    assert association is not None
    assert association.job_id == "video_1"
    assert association.prompt == "a cat"
    assert association.model == "sora-2"
    assert association.size == "1280x720"
    assert association.seconds == "8"
    assert association.created_at == 1_700_000_001.0


def test_get_unknown_job_is_absent():
    store = PromptAssociationStore(MemoryBlobStore())
    assert asyncio.run(store.get("video_missing")) is None


def test_save_is_last_write_wins_per_job():
    store = PromptAssociationStore(MemoryBlobStore())

    asyncio.run(store.save("video_1", "first", "sora-2", "1280x720", "8"))
    asyncio.run(store.save("video_2", "other", "sora-2", "1280x720", "4"))
    asyncio.run(store.save("video_1", "second", "sora-2-pro", "720x1280", "12"))

    assert asyncio.run(store.get("video_1")).prompt == "second"
    assert asyncio.run(store.get("video_2")).prompt == "other"


def test_unparsable_blob_reads_as_absent_and_is_replaced_on_save():
    blobs = MemoryBlobStore({PROMPT_STORAGE_KEY: "{not json"})
    store = PromptAssociationStore(blobs)

    assert asyncio.run(store.get("video_1")) is None

    asyncio.run(store.save("video_1", "a cat", "sora-2", "1280x720", "8"))
    assert asyncio.run(store.get("video_1")).prompt == "a cat"


def test_malformed_record_reads_as_absent():
    blobs = MemoryBlobStore({PROMPT_STORAGE_KEY: json.dumps({"video_1": {"prompt": "no settings"}})})
    assert asyncio.run(PromptAssociationStore(blobs).get("video_1")) is None


def test_save_swallows_write_failures():
    store = PromptAssociationStore(BrokenBlobStore({PROMPT_STORAGE_KEY}))

    asyncio.run(store.save("video_1", "a cat", "sora-2", "1280x720", "8"))

    assert asyncio.run(store.get("video_1")) is None


def test_get_swallows_read_failures():
    store = PromptAssociationStore(BrokenBlobStore({PROMPT_STORAGE_KEY}, fail_reads=True))
    assert asyncio.run(store.get("video_1")) is None


def test_clear_all_removes_both_blobs():
    blobs = MemoryBlobStore()
    associations = PromptAssociationStore(blobs)
    history = PromptHistoryStore(blobs)
    asyncio.run(associations.save("video_1", "a cat", "sora-2", "1280x720", "8"))
    asyncio.run(history.record("a cat", "sora-2", "1280x720", "8"))

    asyncio.run(associations.clear_all())

    assert asyncio.run(blobs.get(PROMPT_STORAGE_KEY)) is None
    assert asyncio.run(blobs.get(PROMPT_HISTORY_KEY)) is None
    assert asyncio.run(history.list()) == []


def test_clear_all_swallows_failures():
    store = PromptAssociationStore(BrokenBlobStore({PROMPT_STORAGE_KEY}))
    asyncio.run(store.clear_all())


def test_recording_same_prompt_twice_merges_into_one_entry():
    store = history_store()

    asyncio.run(store.record("x", "sora-2", "1280x720", "4"))
    asyncio.run(store.record("x", "sora-2-pro", "720x1280", "12"))
    entries = asyncio.run(store.list())

    assert len(entries) == 1
    entry = entries[0]
    assert entry.use_count == 2
    assert (entry.model, entry.size, entry.seconds) == ("sora-2-pro", "720x1280", "12")
    assert entry.last_used_at == 1_700_000_002.0


def test_prompt_identity_is_case_sensitive():
    store = history_store()

    asyncio.run(store.record("A cat", "sora-2", "1280x720", "8"))
    asyncio.run(store.record("a cat", "sora-2", "1280x720", "8"))

    assert len(asyncio.run(store.list())) == 2


def test_history_never_exceeds_capacity():
    store = history_store()

    for i in range(150):
        asyncio.run(store.record(f"prompt {i}", "sora-2", "1280x720", "8"))
        assert len(asyncio.run(store.list())) <= 100

    entries = asyncio.run(store.list())
    assert len(entries) == 100
    assert entries[0].prompt == "prompt 149"
    assert entries[-1].prompt == "prompt 50"


def test_list_is_sorted_by_recency_for_any_stored_order():
    times = list(range(20))
    random.Random(7).shuffle(times)
    stored = [
        {"prompt": f"p{t}", "model": "sora-2", "size": "1280x720", "seconds": "8",
         "last_used_at": float(t), "use_count": 1}
        for t in times
    ]
    store = PromptHistoryStore(MemoryBlobStore({PROMPT_HISTORY_KEY: json.dumps(stored)}))

    entries = asyncio.run(store.list())

    stamps = [entry.last_used_at for entry in entries]
    assert stamps == sorted(stamps, reverse=True)
    assert len(entries) == 20


def test_prompt_falls_out_once_past_position_100():
    store = history_store()
    asyncio.run(store.record("x", "sora-2", "1280x720", "8"))
    asyncio.run(store.record("x", "sora-2", "1280x720", "8"))

    for i in range(99):
        asyncio.run(store.record(f"unique {i}", "sora-2", "1280x720", "8"))
    assert "x" in [entry.prompt for entry in asyncio.run(store.list())]

    asyncio.run(store.record("unique 99", "sora-2", "1280x720", "8"))
    prompts = [entry.prompt for entry in asyncio.run(store.list())]
    assert "x" not in prompts
    assert len(prompts) == 100


def test_eviction_uses_insertion_order_not_recency():
    store = history_store()
    asyncio.run(store.record("x", "sora-2", "1280x720", "8"))
    for i in range(99):
        asyncio.run(store.record(f"unique {i}", "sora-2", "1280x720", "8"))

    # Reuse keeps "x" in its tail slot even though it is now the most recent
    asyncio.run(store.record("x", "sora-2", "1280x720", "8"))
    assert asyncio.run(store.list())[0].prompt == "x"

    asyncio.run(store.record("one more", "sora-2", "1280x720", "8"))
    assert "x" not in [entry.prompt for entry in asyncio.run(store.list())]


def test_record_swallows_write_failures():
    store = PromptHistoryStore(BrokenBlobStore({PROMPT_HISTORY_KEY}))

    asyncio.run(store.record("a cat", "sora-2", "1280x720", "8"))

    assert asyncio.run(store.list()) == []


def test_list_swallows_read_failures():
    store = PromptHistoryStore(BrokenBlobStore({PROMPT_HISTORY_KEY}, fail_reads=True))
    assert asyncio.run(store.list()) == []


def test_malformed_history_entries_are_skipped():
    stored = [
        {"prompt": "good", "model": "sora-2", "size": "1280x720", "seconds": "8", "last_used_at": 1.0, "use_count": 1},
        {"prompt": "bad", "use_count": 0},
    ]
    store = PromptHistoryStore(MemoryBlobStore({PROMPT_HISTORY_KEY: json.dumps(stored)}))

    assert [entry.prompt for entry in asyncio.run(store.list())] == ["good"]
