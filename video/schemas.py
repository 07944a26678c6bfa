import time
from pydantic import BaseModel, Field, field_validator
from typing import Optional

# Downloads expire one hour after the job was created
DOWNLOAD_WINDOW_SECONDS = 60 * 60


class JobError(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None


class GenerationJob(BaseModel):
    """
    A video generation job as the remote API reports it.

    Read-only to this client. Status moves queued -> in_progress ->
    completed | failed on the server; we only ever observe it.
    """
    id: str
    status: str  # "queued" | "in_progress" | "completed" | "failed"
    model: Optional[str] = None
    size: Optional[str] = None
    seconds: Optional[str] = None
    progress: Optional[int] = None
    prompt: Optional[str] = None
    error: Optional[JobError] = None
    created_at: int = 0

    @field_validator("seconds", mode="before")
    @classmethod
    def _seconds_as_string(cls, value):
        return None if value is None else str(value)

    @field_validator("progress", mode="before")
    @classmethod
    def _whole_percent(cls, value):
        return None if value is None else int(value)

    @property
    def download_expires_at(self) -> int:
        """Epoch seconds after which the remote stops serving the content."""
        return self.created_at + DOWNLOAD_WINDOW_SECONDS

    def is_download_expired(self, now: Optional[float] = None) -> bool:
        """Advisory only: the remote decides, and reports it on download."""
        if self.status != "completed":
            return False
        now = time.time() if now is None else now
        return now > self.download_expires_at


class PromptAssociation(BaseModel):
    """Binds a job id to the prompt and settings it was created with."""
    job_id: str
    prompt: str
    model: str
    size: str
    seconds: str
    created_at: float


class PromptHistoryEntry(BaseModel):
    """Most recent settings for one distinct prompt text."""
    prompt: str
    model: str
    size: str
    seconds: str
    last_used_at: float
    use_count: int = Field(1, ge=1)


class GenerationParams(BaseModel):
    prompt: str
    model: str
    size: Optional[str] = None
    seconds: Optional[str] = None


class ActionResult(BaseModel):
    """
    Outcome of a lifecycle action, ready for a UI to render.

    Failures carry a user-facing message instead of raising.
    """
    ok: bool
    title: str
    message: Optional[str] = None
    job_id: Optional[str] = None
    status: Optional[str] = None
    progress: Optional[int] = None
    content: Optional[str] = None
    file_path: Optional[str] = None
    fallback_url: Optional[str] = None
    videos: list[GenerationJob] = []
    has_more: Optional[bool] = None
