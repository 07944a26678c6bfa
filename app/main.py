"""
Wiring for the Sora video client.

Builds the API client, the blob-backed prompt stores and the lifecycle
actions from Settings. UIs call build_actions() once and then drive the
returned object.
"""
import logging
from typing import Optional
from core.blob_store import BlobStore, SQLBlobStore
from core.config import Settings, load_settings
from video.actions import GenerationLifecycleActions, Clipboard
from video.base import VideoClient
from video.client import SoraVideoClient
from video.prompt_store import PromptAssociationStore, PromptHistoryStore

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_actions(
    settings: Optional[Settings] = None,
    client: Optional[VideoClient] = None,
    store: Optional[BlobStore] = None,
    clipboard: Optional[Clipboard] = None
) -> GenerationLifecycleActions:
    """
    Assemble GenerationLifecycleActions.

    Args:
        settings: Configuration; loaded from the environment when omitted
        client: Override the API client (defaults to SoraVideoClient)
        store: Override the blob store (defaults to SQLBlobStore)
        clipboard: Optional callable that receives copied text

    Raises:
        RuntimeError: If no client is given and OPENAI_API_KEY is not set
    """
    settings = settings or load_settings()

    if client is None:
        client = SoraVideoClient(
            api_key=settings.api_key,
            base_url=settings.api_base_url,
            sora_base_url=settings.sora_base_url,
            timeout=settings.request_timeout,
        )
    if store is None:
        store = SQLBlobStore(settings.database_url)

    logger.info(f"Video actions ready (downloads -> {settings.downloads_dir})")
    return GenerationLifecycleActions(
        client=client,
        associations=PromptAssociationStore(store),
        history=PromptHistoryStore(store),
        downloads_dir=settings.downloads_dir,
        clipboard=clipboard,
    )
