"""
Client-side input checks.

Every check raises a VALIDATION TuteliqError before any network call is made.
"""

from typing import Any, Optional, Sequence
from urllib.parse import urlparse

from ..errors import validation_error
from ..models.voice_stream import (
    ANALYSIS_TYPES,
    MAX_INTERVAL_SECONDS,
    MIN_INTERVAL_SECONDS,
    VoiceStreamConfig,
)

MAX_CONTENT_LENGTH = 50_000
MAX_MESSAGES = 100
MAX_EXTERNAL_ID_LENGTH = 255
MAX_WEBHOOK_NAME_LENGTH = 100
MAX_WEBHOOK_EVENTS = 5


def validate_content(content: Optional[str], field_name: str = "Content") -> str:
    if content is None or not str(content).strip():
        raise validation_error(f"{field_name} is required")
    if len(content) > MAX_CONTENT_LENGTH:
        raise validation_error(
            f"{field_name} exceeds maximum length of {MAX_CONTENT_LENGTH} characters"
        )
    return content


def validate_messages(messages: Optional[Sequence[Any]]) -> Sequence[Any]:
    """Check message batch size, and that every message carries content."""
    if not messages:
        raise validation_error("Messages array cannot be empty")
    if len(messages) > MAX_MESSAGES:
        raise validation_error(f"Messages array exceeds maximum count of {MAX_MESSAGES}")
    for index, message in enumerate(messages):
        content = getattr(message, "content", None)
        if not content:
            raise validation_error(f"Message at index {index} has no content")
        if len(content) > MAX_CONTENT_LENGTH:
            raise validation_error(
                f"Message at index {index} exceeds maximum length of "
                f"{MAX_CONTENT_LENGTH} characters"
            )
    return messages


def validate_external_id(external_id: Optional[str]) -> None:
    if external_id is not None and len(external_id) > MAX_EXTERNAL_ID_LENGTH:
        raise validation_error(
            f"external_id exceeds maximum length of {MAX_EXTERNAL_ID_LENGTH} characters"
        )


def validate_child_age(child_age: Optional[int]) -> None:
    if child_age is not None and not 1 <= child_age <= 18:
        raise validation_error("Child age must be between 1 and 18")


def validate_webhook(
    name: Optional[str] = None,
    url: Optional[str] = None,
    events: Optional[Sequence[str]] = None,
) -> None:
    """Check the webhook fields that are present (all optional for updates)."""
    if name is not None and not 0 < len(name.strip()) <= MAX_WEBHOOK_NAME_LENGTH:
        raise validation_error(
            f"Webhook name must be between 1 and {MAX_WEBHOOK_NAME_LENGTH} characters"
        )
    if url is not None:
        parsed = urlparse(url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise validation_error("Webhook URL must be a valid HTTPS URL")
    if events is not None and not 0 < len(events) <= MAX_WEBHOOK_EVENTS:
        raise validation_error(
            f"Webhook must subscribe to between 1 and {MAX_WEBHOOK_EVENTS} events"
        )


def validate_voice_config(config: VoiceStreamConfig) -> None:
    interval = config.interval_seconds
    if interval is not None and not MIN_INTERVAL_SECONDS <= interval <= MAX_INTERVAL_SECONDS:
        raise validation_error(
            f"interval_seconds must be between {MIN_INTERVAL_SECONDS} "
            f"and {MAX_INTERVAL_SECONDS}"
        )
    if config.analysis_types is not None:
        unknown = [t for t in config.analysis_types if t not in ANALYSIS_TYPES]
        if unknown:
            raise validation_error(
                f"Unknown analysis types: {', '.join(unknown)}",
                details={"allowed": list(ANALYSIS_TYPES)},
            )
