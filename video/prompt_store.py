"""
Local prompt bookkeeping for video jobs.

The API does not always echo the prompt back, so we keep two documents
in the blob store:

- an association per job id (prompt + settings used to create it)
- a deduplicated, capped history of distinct prompts for reuse

Neither store ever raises to its caller. A failed write is logged and
dropped so it cannot take video creation down with it.
"""
import json
import time
import logging
from typing import Callable, Dict, List, Optional
from pydantic import ValidationError
from core.blob_store import BlobStore
from video.schemas import PromptAssociation, PromptHistoryEntry

logger = logging.getLogger(__name__)

PROMPT_STORAGE_KEY = "sora-video-prompts"
PROMPT_HISTORY_KEY = "sora-prompt-history"
MAX_HISTORY_ITEMS = 100


async def _load_json(store: BlobStore, key: str, expected: type):
    """
    Read and decode a blob.

    Missing or unparsable blobs read as an empty container of the expected
    type. Store I/O errors propagate.
    """
    raw = await store.get(key)
    if not raw:
        return expected()
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning(f"Discarding unparsable blob '{key}'")
        return expected()
    if not isinstance(data, expected):
        logger.warning(f"Discarding blob '{key}' with unexpected shape {type(data).__name__}")
        return expected()
    return data


class PromptAssociationStore:
    """job id -> PromptAssociation, persisted as one JSON object."""

    def __init__(self, store: BlobStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    async def save(self, job_id: str, prompt: str, model: str, size: str, seconds: str) -> None:
        """
        Remember which prompt and settings created a job.

        Upserts by job id. Failures are logged, never raised.
        """
        try:
            prompts: Dict[str, dict] = await _load_json(self.store, PROMPT_STORAGE_KEY, dict)
            association = PromptAssociation(
                job_id=job_id,
                prompt=prompt,
                model=model,
                size=size,
                seconds=str(seconds),
                created_at=self.clock(),
            )
            prompts[job_id] = association.model_dump()
            await self.store.set(PROMPT_STORAGE_KEY, json.dumps(prompts))
            logger.info(f"Prompt saved for video {job_id} ({len(prompt)} chars)")
        except Exception as e:
            logger.error(f"Failed to save prompt for video {job_id}: {e}", exc_info=True)

    async def get(self, job_id: str) -> Optional[PromptAssociation]:
        """
        Look up the association for a job.

        Returns:
            PromptAssociation if found, None otherwise (including on read errors)
        """
        try:
            prompts = await _load_json(self.store, PROMPT_STORAGE_KEY, dict)
            record = prompts.get(job_id)
            if record is None:
                return None
            return PromptAssociation.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed prompt record for video {job_id}: {e}")
            return None
        except Exception as e:
            logger.error(f"Failed to get prompt for video {job_id}: {e}", exc_info=True)
            return None

    async def clear_all(self) -> None:
        """Drop every association and the whole prompt history."""
        try:
            await self.store.remove(PROMPT_STORAGE_KEY)
            await self.store.remove(PROMPT_HISTORY_KEY)
            logger.info("Prompt storage cleared")
        except Exception as e:
            logger.error(f"Failed to clear prompt storage: {e}", exc_info=True)


class PromptHistoryStore:
    """
    Distinct prompts with their latest settings and a use counter.

    Identity is the exact prompt text. Entries are kept in insertion order
    (new prompts go to the front, reused ones stay where they are) and the
    list is cut to max_items from that order. list() sorts by recency.
    """

    def __init__(
        self,
        store: BlobStore,
        max_items: int = MAX_HISTORY_ITEMS,
        clock: Callable[[], float] = time.time
    ):
        self.store = store
        self.max_items = max_items
        self.clock = clock

    async def _entries(self) -> List[PromptHistoryEntry]:
        entries = []
        for item in await _load_json(self.store, PROMPT_HISTORY_KEY, list):
            try:
                entries.append(PromptHistoryEntry.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed prompt history entry")
        return entries

    async def record(self, prompt: str, model: str, size: str, seconds: str) -> None:
        """Add a prompt use. Failures are logged, never raised."""
        try:
            history = await self._entries()
            now = self.clock()
            existing = next((entry for entry in history if entry.prompt == prompt), None)

            if existing:
                existing.last_used_at = now
                existing.use_count += 1
                existing.model = model
                existing.size = size
                existing.seconds = str(seconds)
            else:
                history.insert(0, PromptHistoryEntry(
                    prompt=prompt,
                    model=model,
                    size=size,
                    seconds=str(seconds),
                    last_used_at=now,
                    use_count=1,
                ))

            trimmed = history[:self.max_items]
            await self.store.set(
                PROMPT_HISTORY_KEY,
                json.dumps([entry.model_dump() for entry in trimmed])
            )
        except Exception as e:
            logger.error(f"Failed to add to prompt history: {e}", exc_info=True)

    async def list(self) -> List[PromptHistoryEntry]:
        """All entries, most recently used first. Empty on read errors."""
        try:
            history = await self._entries()
        except Exception as e:
            logger.error(f"Failed to get prompt history: {e}", exc_info=True)
            return []
        return sorted(history, key=lambda entry: entry.last_used_at, reverse=True)
