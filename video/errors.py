"""
Turn raw API/transport errors into messages a user can act on.

Rules are evaluated top to bottom and the first match wins, so specific
patterns must sit above generic ones ("Invalid value ... 401" is still an
invalid value). Add new cases as rows in ERROR_RULES.
"""
import re
import logging
from typing import Callable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "An unexpected error occurred. Please try again."

ORGANIZATION_NOT_VERIFIED = (
    "Your OpenAI organization needs to be verified to use Sora. "
    "Visit platform.openai.com/settings/organization/general to verify your organization. "
    "Access may take up to 15 minutes after verification."
)
INVALID_DURATION = "Invalid duration selected. Please choose 4, 8, or 12 seconds."
INVALID_API_KEY = "Invalid API key. Please check your OpenAI API key in preferences."
ACCESS_DENIED = "Access denied. Your API key may not have permission to use this feature."
RATE_LIMITED = "Rate limit exceeded. Please wait a moment and try again."
SERVICE_UNAVAILABLE = "OpenAI service is temporarily unavailable. Please try again later."
DOWNLOAD_EXPIRED = (
    "Video download has expired (downloads expire after 1 hour). "
    "Please view the video in your browser instead."
)
NETWORK_ERROR = "Network error. Please check your internet connection."

INVALID_VALUE_PATTERN = re.compile(r"Invalid value: '([^']+)'\. Supported values are: (.+)")

Predicate = Callable[[str], bool]
Render = Union[str, Callable[[str], str]]


def _contains(*needles: str) -> Predicate:
    return lambda message: any(needle in message for needle in needles)


def _invalid_selection(message: str) -> str:
    value, supported = INVALID_VALUE_PATTERN.search(message).groups()
    return f'Invalid selection: "{value}". Please choose from: {supported}'


ERROR_RULES: List[Tuple[Predicate, Render]] = [
    (_contains("organization must be verified"), ORGANIZATION_NOT_VERIFIED),
    (_contains("Invalid type for 'seconds'"), INVALID_DURATION),
    (lambda message: INVALID_VALUE_PATTERN.search(message) is not None, _invalid_selection),
    (_contains("API Error"), lambda message: message.replace("API Error: ", "")),
    (_contains("401", "Unauthorized"), INVALID_API_KEY),
    (_contains("403", "Forbidden"), ACCESS_DENIED),
    (_contains("429", "Rate limit"), RATE_LIMITED),
    (_contains("500", "502", "503"), SERVICE_UNAVAILABLE),
    (_contains("no longer available", "Downloads expire"), DOWNLOAD_EXPIRED),
    (_contains("Network", "fetch"), NETWORK_ERROR),
]


def _message_of(raw) -> Optional[str]:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, BaseException):
        return getattr(raw, "message", None) or str(raw)
    return None


def classify_error(raw) -> str:
    """
    Map an error (exception or message string) to a user-facing message.

    Never raises. Unmatched messages come back unchanged; inputs without
    a message get FALLBACK_MESSAGE.
    """
    try:
        message = _message_of(raw)
        if not message or not isinstance(message, str):
            return FALLBACK_MESSAGE

        for predicate, render in ERROR_RULES:
            if predicate(message):
                return render(message) if callable(render) else render
        return message
    except Exception:
        logger.warning("Error classification failed", exc_info=True)
        return FALLBACK_MESSAGE
