"""
Tuteliq - AI-powered child safety analysis.

Async client for the Tuteliq REST API plus live voice stream moderation.
"""

import logging

from .client import Tuteliq, __version__
from .config import Settings, settings
from .errors import (
    ErrorKind,
    TuteliqError,
    VoiceStreamError,
    VoiceStreamErrorKind,
)
from .models import (
    AnalyzeResult,
    Audience,
    BullyingResult,
    EmotionMessage,
    EmotionTrend,
    GroomingMessage,
    ReportMessage,
    VoiceStreamConfig,
    VoiceStreamContext,
    VoiceStreamHandlers,
)
from .services import VoiceStreamSession, VoiceStreamState, open_voice_stream
from .utils import RetryPolicy, with_retry

# Library logging stays silent unless the application configures handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AnalyzeResult",
    "Audience",
    "BullyingResult",
    "EmotionMessage",
    "EmotionTrend",
    "ErrorKind",
    "GroomingMessage",
    "ReportMessage",
    "RetryPolicy",
    "Settings",
    "Tuteliq",
    "TuteliqError",
    "VoiceStreamConfig",
    "VoiceStreamContext",
    "VoiceStreamError",
    "VoiceStreamErrorKind",
    "VoiceStreamHandlers",
    "VoiceStreamSession",
    "VoiceStreamState",
    "__version__",
    "open_voice_stream",
    "settings",
    "with_retry",
]
