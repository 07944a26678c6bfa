"""
User-facing video lifecycle actions.

Each action composes the API client with the local prompt stores and
returns an ActionResult. API and validation failures come back as failed
results with a classified message; nothing here raises for them.

Per-job view of the lifecycle:

    (no local record) -> submitted -> polling -> completed | failed

Download is only permitted from completed.
"""
import time
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional
from video.base import (
    VideoClient,
    VideoApiError,
    COMPLETED,
    DEFAULT_MODEL,
    DEFAULT_SIZE,
    DEFAULT_SECONDS,
)
from video.errors import classify_error
from video.prompt_store import PromptAssociationStore, PromptHistoryStore
from video.schemas import ActionResult, GenerationJob, GenerationParams, PromptHistoryEntry

logger = logging.getLogger(__name__)

Confirm = Callable[[str], Awaitable[bool]]
Clipboard = Callable[[str], None]

DEFAULT_LIST_LIMIT = 100


def _first_present(*values):
    """Return the first value that is not None or empty."""
    for value in values:
        if value:
            return value
    return None


class GenerationLifecycleActions:
    """
    Submit, poll, download, copy, regenerate and delete video jobs.

    Args:
        client: The remote video API
        associations: job id -> prompt store
        history: Distinct prompt history store
        downloads_dir: Where downloaded videos are written
        clipboard: Optional callable that receives copied text
        clock: Epoch-seconds source, used for filenames and expiry checks
    """

    def __init__(
        self,
        client: VideoClient,
        associations: PromptAssociationStore,
        history: PromptHistoryStore,
        downloads_dir: Path,
        clipboard: Optional[Clipboard] = None,
        clock: Callable[[], float] = time.time
    ):
        self.client = client
        self.associations = associations
        self.history = history
        self.downloads_dir = Path(downloads_dir)
        self.clipboard = clipboard
        self.clock = clock

    async def submit(
        self,
        prompt: str,
        model: str = DEFAULT_MODEL,
        size: str = DEFAULT_SIZE,
        seconds: str = DEFAULT_SECONDS
    ) -> ActionResult:
        """
        Start a new generation and remember its prompt locally.

        Nothing is written locally unless the remote create succeeds.
        """
        if not prompt or not prompt.strip():
            return ActionResult(ok=False, title="Prompt Required", message="Please enter a video description")

        logger.info(f"Creating video model={model} size={size} seconds={seconds}")
        try:
            video = await self.client.create_video(prompt, model, size=size, seconds=seconds)
        except (VideoApiError, ValueError) as e:
            return ActionResult(ok=False, title="Failed to Create Video", message=classify_error(e))

        logger.info(f"Video created successfully: {video.id} ({video.status})")

        # The stores swallow their own errors, so one failing cannot skip the other
        await self.associations.save(video.id, prompt, model, size, seconds)
        await self.history.record(prompt, model, size, seconds)

        return ActionResult(
            ok=True,
            title="Video Generation Started",
            message=f"Video ID: {video.id}",
            job_id=video.id,
            status=video.status,
            progress=video.progress,
        )

    async def check_status(self, job: GenerationJob) -> ActionResult:
        """Live status read. Never touches the local stores."""
        try:
            current = await self.client.get_video(job.id)
        except VideoApiError as e:
            return ActionResult(ok=False, title="Failed to Check Status", message=classify_error(e), job_id=job.id)

        return ActionResult(
            ok=True,
            title=f"Status: {current.status}",
            message=f"Progress: {current.progress or 0}%",
            job_id=current.id,
            status=current.status,
            progress=current.progress,
        )

    def download_expires_at(self, job: GenerationJob) -> int:
        return job.download_expires_at

    def is_download_expired(self, job: GenerationJob) -> bool:
        """Advisory: lets a UI mark the download as expired. Not enforced."""
        return job.is_download_expired(self.clock())

    async def download(self, job: GenerationJob) -> ActionResult:
        """
        Save a completed video to the downloads directory.

        The job is re-fetched first in case it changed (or was deleted)
        since the caller's snapshot was taken.
        """
        if job.status != COMPLETED:
            return ActionResult(
                ok=False,
                title="Video Not Ready",
                message="Video must be completed before downloading",
                job_id=job.id,
                status=job.status,
            )

        fallback_url = self.client.get_video_page_url(job.id)
        logger.info(f"Downloading video {job.id}")
        try:
            current = await self.client.get_video(job.id)
            if current.status != COMPLETED:
                return ActionResult(
                    ok=False,
                    title="Video Not Ready",
                    message=f"Status changed to: {current.status}",
                    job_id=job.id,
                    status=current.status,
                )

            if current.is_download_expired(self.clock()):
                logger.warning(f"Video {job.id} is past its download window, trying anyway")

            content = await self.client.download_video(job.id)

            self.downloads_dir.mkdir(parents=True, exist_ok=True)
            file_path = self.downloads_dir / f"sora-{job.id}-{int(self.clock() * 1000)}.mp4"
            await asyncio.to_thread(file_path.write_bytes, content)
        except (VideoApiError, OSError) as e:
            message = classify_error(e)
            logger.error(f"Download video failed for {job.id}: {message}")
            return ActionResult(
                ok=False,
                title="Download Failed",
                message=message,
                job_id=job.id,
                fallback_url=fallback_url,
            )

        logger.info(f"Video downloaded successfully: {job.id} -> {file_path}")
        return ActionResult(
            ok=True,
            title="Video Downloaded",
            message=f"Saved to {file_path}",
            job_id=job.id,
            status=COMPLETED,
            file_path=str(file_path),
        )

    def _copy(self, text: str) -> None:
        if self.clipboard is not None:
            self.clipboard(text)

    async def copy_url(self, job: GenerationJob) -> ActionResult:
        if job.status != COMPLETED:
            return ActionResult(
                ok=False,
                title="Video Not Ready",
                message="Video must be completed to get URL",
                job_id=job.id,
            )

        url = self.client.get_video_page_url(job.id)
        self._copy(url)
        return ActionResult(ok=True, title="URL Copied", message="Video URL copied to clipboard", job_id=job.id, content=url)

    async def resolve_generation_params(self, job: GenerationJob) -> Optional[GenerationParams]:
        """
        Work out the prompt and settings a job was generated with.

        Priority:
            1. The job record itself, when it carries a prompt
            2. The local association saved at submit time

        Returns:
            GenerationParams, or None when neither source has a prompt
        """
        if job.prompt:
            return GenerationParams(prompt=job.prompt, model=job.model or DEFAULT_MODEL, size=job.size, seconds=job.seconds)

        stored = await self.associations.get(job.id)
        if stored and stored.prompt:
            return GenerationParams(
                prompt=stored.prompt,
                model=_first_present(stored.model, job.model, DEFAULT_MODEL),
                size=_first_present(stored.size, job.size),
                seconds=_first_present(stored.seconds, job.seconds),
            )
        return None

    async def resolve_prompt(self, job: GenerationJob) -> Optional[str]:
        params = await self.resolve_generation_params(job)
        return params.prompt if params else None

    async def copy_prompt(self, job: GenerationJob) -> ActionResult:
        prompt = await self.resolve_prompt(job)
        if not prompt:
            return ActionResult(
                ok=False,
                title="No Prompt Available",
                message="This video doesn't have an associated prompt",
                job_id=job.id,
            )

        self._copy(prompt)
        return ActionResult(ok=True, title="Prompt Copied", message="Video prompt copied to clipboard", job_id=job.id, content=prompt)

    async def regenerate(self, job: GenerationJob) -> ActionResult:
        """
        Start a new job with the same prompt and settings.

        The original job is left alone; the new one gets its own
        association and history entry.
        """
        params = await self.resolve_generation_params(job)
        if params is None:
            return ActionResult(
                ok=False,
                title="Cannot Regenerate",
                message="This video doesn't have an associated prompt to regenerate from",
                job_id=job.id,
            )

        logger.info(f"Regenerating video {job.id}")
        result = await self.submit(
            params.prompt,
            model=params.model,
            size=params.size or DEFAULT_SIZE,
            seconds=params.seconds or DEFAULT_SECONDS,
        )
        if result.ok:
            logger.info(f"Video regenerated successfully: {job.id} -> {result.job_id}")
            result.title = "Video Regeneration Started"
            result.message = f"New video ID: {result.job_id}"
        else:
            logger.error(f"Regenerate video failed for {job.id}: {result.message}")
            if result.title == "Failed to Create Video":
                result.title = "Regeneration Failed"
        return result

    async def delete(self, job: GenerationJob, confirm: Confirm) -> ActionResult:
        """
        Delete a job remotely after the user confirms.

        Local associations and history are kept, so the prompt can still
        be reused after the video is gone.
        """
        confirmed = await confirm(f"Are you sure you want to delete video {job.id}?")
        if not confirmed:
            return ActionResult(ok=False, title="Delete Cancelled", job_id=job.id)

        logger.info(f"Deleting video {job.id}")
        try:
            await self.client.delete_video(job.id)
        except VideoApiError as e:
            return ActionResult(ok=False, title="Failed to Delete Video", message=classify_error(e), job_id=job.id)

        logger.info(f"Video deleted successfully: {job.id}")
        return ActionResult(ok=True, title="Video Deleted", job_id=job.id)

    async def list_videos(self, limit: int = DEFAULT_LIST_LIMIT) -> ActionResult:
        try:
            page = await self.client.list_videos(limit=limit)
        except VideoApiError as e:
            return ActionResult(ok=False, title="Failed to Load Videos", message=classify_error(e))
        return ActionResult(ok=True, title=f"{len(page.items)} videos", videos=page.items, has_more=page.has_more)

    async def prompt_history(self) -> List[PromptHistoryEntry]:
        return await self.history.list()

    async def clear_prompt_storage(self) -> None:
        await self.associations.clear_all()
