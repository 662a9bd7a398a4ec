"""
Voice streaming models.

Covers the session configuration sent to the server, the events the server
pushes back, and the callback set a caller registers for those events.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

ANALYSIS_TYPES = ("bullying", "unsafe", "grooming", "emotions")
MIN_INTERVAL_SECONDS = 5
MAX_INTERVAL_SECONDS = 30


# Server frames are decoded leniently: a field that is missing, null or of the
# wrong type falls back to its default instead of dropping the whole event.


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _integer(value: Any, default: int = 0) -> int:
    try:
        return int(_number(value, default))
    except (ValueError, OverflowError):
        # nan or inf
        return default


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _records(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


@dataclass
class VoiceStreamContext:
    language: Optional[str] = None
    age_group: Optional[str] = None
    relationship: Optional[str] = None
    platform: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        payload: Dict[str, str] = {}
        if self.language:
            payload["language"] = self.language
        if self.age_group:
            payload["ageGroup"] = self.age_group
        if self.relationship:
            payload["relationship"] = self.relationship
        if self.platform:
            payload["platform"] = self.platform
        return payload


@dataclass
class VoiceStreamConfig:
    """
    Configuration for a voice streaming session.

    Attributes:
        interval_seconds: Flush interval in seconds (5-30, server default 10)
        analysis_types: Analyses to run on each flush
        context: Additional context for analysis
    """

    interval_seconds: Optional[int] = None
    analysis_types: Optional[List[str]] = None
    context: Optional[VoiceStreamContext] = None

    def to_message(self) -> Dict[str, Any]:
        """Build the ``config`` control frame."""
        message: Dict[str, Any] = {"type": "config"}
        if self.interval_seconds is not None:
            message["interval_seconds"] = self.interval_seconds
        if self.analysis_types is not None:
            message["analysis_types"] = list(self.analysis_types)
        if self.context is not None:
            message["context"] = self.context.to_payload()
        return message


# Server -> client events


@dataclass
class VoiceReadyEvent:
    session_id: str
    config: Dict[str, Any] = field(default_factory=dict)
    type: str = "ready"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VoiceReadyEvent":
        return VoiceReadyEvent(
            session_id=_text(data.get("session_id")),
            config=_mapping(data.get("config")),
        )


@dataclass
class VoiceTranscriptionSegment:
    start: float
    end: float
    text: str


@dataclass
class VoiceTranscriptionEvent:
    text: str
    segments: List[VoiceTranscriptionSegment]
    flush_index: int
    type: str = "transcription"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VoiceTranscriptionEvent":
        return VoiceTranscriptionEvent(
            text=_text(data.get("text")),
            segments=[
                VoiceTranscriptionSegment(
                    start=_number(seg.get("start")),
                    end=_number(seg.get("end")),
                    text=_text(seg.get("text")),
                )
                for seg in _records(data.get("segments"))
            ],
            flush_index=_integer(data.get("flush_index")),
        )


@dataclass
class VoiceAlertEvent:
    category: str
    severity: str
    risk_score: float
    details: Dict[str, Any]
    flush_index: int
    type: str = "alert"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VoiceAlertEvent":
        return VoiceAlertEvent(
            category=_text(data.get("category")),
            severity=_text(data.get("severity")),
            risk_score=_number(data.get("risk_score")),
            details=_mapping(data.get("details")),
            flush_index=_integer(data.get("flush_index")),
        )


@dataclass
class VoiceSessionSummaryEvent:
    session_id: str
    duration_seconds: float
    overall_risk: str
    overall_risk_score: float
    total_flushes: int
    transcript: str
    type: str = "session_summary"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VoiceSessionSummaryEvent":
        return VoiceSessionSummaryEvent(
            session_id=_text(data.get("session_id")),
            duration_seconds=_number(data.get("duration_seconds")),
            overall_risk=_text(data.get("overall_risk")),
            overall_risk_score=_number(data.get("overall_risk_score")),
            total_flushes=_integer(data.get("total_flushes")),
            transcript=_text(data.get("transcript")),
        )


@dataclass
class VoiceConfigUpdatedEvent:
    config: Dict[str, Any] = field(default_factory=dict)
    type: str = "config_updated"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VoiceConfigUpdatedEvent":
        return VoiceConfigUpdatedEvent(config=_mapping(data.get("config")))


@dataclass
class VoiceErrorEvent:
    code: str
    message: str
    type: str = "error"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "VoiceErrorEvent":
        return VoiceErrorEvent(
            code=_text(data.get("code")),
            message=_text(data.get("message")),
        )


VoiceStreamEvent = Union[
    VoiceReadyEvent,
    VoiceTranscriptionEvent,
    VoiceAlertEvent,
    VoiceSessionSummaryEvent,
    VoiceConfigUpdatedEvent,
    VoiceErrorEvent,
]

EVENT_TYPES = {
    "ready": VoiceReadyEvent,
    "transcription": VoiceTranscriptionEvent,
    "alert": VoiceAlertEvent,
    "session_summary": VoiceSessionSummaryEvent,
    "config_updated": VoiceConfigUpdatedEvent,
    "error": VoiceErrorEvent,
}


def parse_voice_event(data: Mapping[str, Any]) -> Optional[VoiceStreamEvent]:
    """Build the typed event for a decoded frame, or None for unknown types."""
    event_type = data.get("type")
    event_cls = EVENT_TYPES.get(event_type) if isinstance(event_type, str) else None
    if event_cls is None:
        return None
    return event_cls.from_dict(data)


# Handler callbacks. Each may be a plain function or a coroutine function.

Handler = Callable[..., Union[None, Awaitable[None]]]


@dataclass
class VoiceStreamHandlers:
    """
    Callbacks for voice stream events.

    Handlers run on the session's reader loop, one event at a time. A
    handler must not await ``session.end()``: the summary it waits for is
    delivered by the same loop. Exceptions raised by a handler are logged
    and do not stop the session.
    """

    on_ready: Optional[Handler] = None
    on_transcription: Optional[Handler] = None
    on_alert: Optional[Handler] = None
    on_session_summary: Optional[Handler] = None
    on_config_updated: Optional[Handler] = None
    on_error: Optional[Handler] = None
    on_close: Optional[Handler] = None  # called with (code, reason)
