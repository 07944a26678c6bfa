"""
OpenAI video (Sora) API client.

Every call goes through one request primitive that attaches the bearer
token and turns any failure into a VideoApiError.
"""
import logging
from typing import Any, Dict, Optional
import httpx
from pydantic import ValidationError
from core.config import DEFAULT_API_BASE_URL, DEFAULT_SORA_BASE_URL, DEFAULT_REQUEST_TIMEOUT
from video.base import VideoClient, VideoApiError, VideoPage, ALLOWED_SECONDS
from video.schemas import GenerationJob

logger = logging.getLogger(__name__)


class SoraVideoClient(VideoClient):
    """
    Authenticated gateway to the /videos endpoints.

    A fresh httpx.AsyncClient is opened per request. Pass a transport to
    route requests somewhere other than the network.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_API_BASE_URL,
        sora_base_url: str = DEFAULT_SORA_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            raise RuntimeError(
                "OPENAI_API_KEY is required but not found in environment variables. "
                "Please set OPENAI_API_KEY in your .env file or environment."
            )
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.sora_base_url = sora_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _send(self, method: str, endpoint: str, headers: Dict[str, str], **kwargs) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {self.api_key}", **headers}
        try:
            async with self._client() as client:
                return await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Network error calling {endpoint}: {e}", exc_info=True)
            raise VideoApiError(f"Network error: {str(e) or type(e).__name__}") from e

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Send a JSON request and return the decoded body.

        Returns None for empty bodies (e.g. 204 on delete).

        Raises:
            VideoApiError: On any non-2xx response or transport failure
        """
        logger.info(f"Making request to {endpoint} ({method})")
        response = await self._send(
            method,
            endpoint,
            {"Content-Type": "application/json"},
            json=json,
            params=params
        )

        if not response.is_success:
            message, error_type = _extract_error(response)
            logger.error(
                f"API request failed: {endpoint} status={response.status_code} "
                f"type={error_type} message={message}"
            )
            raise VideoApiError(message, status_code=response.status_code, error_type=error_type)

        if not response.content:
            logger.info(f"Request successful: {endpoint} (empty body)")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Unparsable response from {endpoint}: {response.text[:200]}")
            raise VideoApiError(f"Invalid response from API: {e}", status_code=response.status_code) from e

        logger.info(f"Request successful: {endpoint}")
        return data

    async def create_video(
        self,
        prompt: str,
        model: str,
        size: Optional[str] = None,
        seconds: Optional[str] = None
    ) -> GenerationJob:
        payload: Dict[str, Any] = {"prompt": prompt, "model": model}
        if size:
            payload["size"] = size
        if seconds is not None:
            seconds = str(seconds)
            if seconds not in ALLOWED_SECONDS:
                raise ValueError(
                    f"Invalid duration '{seconds}'. Allowed: {', '.join(ALLOWED_SECONDS)}"
                )
            payload["seconds"] = seconds

        data = await self._request("POST", "/videos", json=payload)
        return _parse_job(data, "/videos")

    async def list_videos(
        self,
        limit: Optional[int] = None,
        starting_after: Optional[str] = None,
        ending_before: Optional[str] = None
    ) -> VideoPage:
        params: Dict[str, Any] = {}
        if limit:
            params["limit"] = str(limit)
        if starting_after:
            params["starting_after"] = starting_after
        if ending_before:
            params["ending_before"] = ending_before

        data = await self._request("GET", "/videos", params=params or None)
        if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
            logger.error(f"Unexpected list response from /videos: {str(data)[:200]}")
            raise VideoApiError("Invalid response from API: expected a list of videos")
        items = [_parse_job(item, "/videos") for item in data.get("data", [])]
        return VideoPage(items=items, has_more=bool(data.get("has_more", False)))

    async def get_video(self, video_id: str) -> GenerationJob:
        data = await self._request("GET", f"/videos/{video_id}")
        return _parse_job(data, f"/videos/{video_id}")

    async def delete_video(self, video_id: str) -> None:
        await self._request("DELETE", f"/videos/{video_id}")

    async def download_video(self, video_id: str) -> bytes:
        endpoint = f"/videos/{video_id}/content"
        logger.info(f"Downloading video {video_id}")
        response = await self._send("GET", endpoint, {})

        if not response.is_success:
            error_text = response.text or response.reason_phrase
            logger.error(
                f"Failed to download video {video_id}: status={response.status_code} error={error_text}"
            )
            raise VideoApiError(
                f"Failed to download video ({response.status_code}): {error_text}",
                status_code=response.status_code
            )

        logger.info(
            f"Video download successful: {video_id} "
            f"({response.headers.get('content-type')}, {len(response.content)} bytes)"
        )
        return response.content

    def get_video_content_url(self, video_id: str) -> str:
        return f"{self.base_url}/videos/{video_id}/content"

    def get_video_page_url(self, video_id: str) -> str:
        return f"{self.sora_base_url}/video/{video_id}"


def _parse_job(data: Any, endpoint: str) -> GenerationJob:
    """Validate a job body, reporting schema mismatches as VideoApiError."""
    if not isinstance(data, dict):
        logger.error(f"Unexpected job response from {endpoint}: {str(data)[:200]}")
        raise VideoApiError("Invalid response from API: expected a video object")
    try:
        return GenerationJob.model_validate(data)
    except ValidationError as e:
        logger.error(f"Malformed job from {endpoint}: {e}")
        raise VideoApiError(f"Invalid response from API: {e.error_count()} invalid field(s) in video") from e


def _extract_error(response: httpx.Response):
    """Pull error.message / error.type out of a JSON body, else use the status line."""
    fallback = f"HTTP {response.status_code}: {response.reason_phrase}"
    try:
        body = response.json()
    except ValueError:
        return fallback, None

    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return fallback, None
    return error.get("message") or fallback, error.get("type")
