from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional
from video.schemas import GenerationJob

QUEUED = "queued"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATUSES = {COMPLETED, FAILED}

MODELS = ("sora-2", "sora-2-pro")
SIZES = ("1280x720", "720x1280", "1792x1024", "1024x1792")
ALLOWED_SECONDS = ("4", "8", "12")

DEFAULT_MODEL = "sora-2"
DEFAULT_SIZE = "1280x720"
DEFAULT_SECONDS = "8"


class VideoApiError(Exception):
    """
    Any failed call to the video API.

    Non-2xx responses and transport failures both end up here, with the
    best human-readable message that could be recovered.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


@dataclass
class VideoPage:
    """One page of jobs, exactly as the server returned it."""
    items: List[GenerationJob] = field(default_factory=list)
    has_more: bool = False


class VideoClient(ABC):
    """
    Abstract interface for the remote video API.

    Implementations must not retry on their own; retry policy belongs
    to the caller.
    """

    @abstractmethod
    async def create_video(
        self,
        prompt: str,
        model: str,
        size: Optional[str] = None,
        seconds: Optional[str] = None
    ) -> GenerationJob:
        """
        Create a new video generation job.

        Raises:
            ValueError: If seconds is not an allowed duration
            VideoApiError: If the remote rejects the request
        """
        pass

    @abstractmethod
    async def list_videos(
        self,
        limit: Optional[int] = None,
        starting_after: Optional[str] = None,
        ending_before: Optional[str] = None
    ) -> VideoPage:
        pass

    @abstractmethod
    async def get_video(self, video_id: str) -> GenerationJob:
        pass

    @abstractmethod
    async def delete_video(self, video_id: str) -> None:
        pass

    @abstractmethod
    async def download_video(self, video_id: str) -> bytes:
        """
        Fetch the rendered video bytes.

        Raises:
            VideoApiError: With the remote's text when the content is gone
        """
        pass

    @abstractmethod
    def get_video_content_url(self, video_id: str) -> str:
        pass

    @abstractmethod
    def get_video_page_url(self, video_id: str) -> str:
        pass
