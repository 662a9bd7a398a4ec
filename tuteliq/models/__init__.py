"""
Typed request and result models for the Tuteliq API.
"""

from .account import AccountDeletionResult, AccountExportResult
from .analysis import EmotionMessage, EmotionsResult, EmotionTrend
from .common import RateLimitInfo, RequestMeta, Usage
from .guidance import ActionPlanResult, Audience
from .policy import PolicyConfigResponse
from .pricing import PricingDetailPlan, PricingDetailsResult, PricingPlan, PricingResult
from .reports import ReportMessage, ReportResult
from .safety import AnalyzeResult, BullyingResult, GroomingMessage, GroomingResult, UnsafeResult
from .voice_stream import (
    VoiceAlertEvent,
    VoiceConfigUpdatedEvent,
    VoiceErrorEvent,
    VoiceReadyEvent,
    VoiceSessionSummaryEvent,
    VoiceStreamConfig,
    VoiceStreamContext,
    VoiceStreamEvent,
    VoiceStreamHandlers,
    VoiceTranscriptionEvent,
    VoiceTranscriptionSegment,
    parse_voice_event,
)
from .webhooks import (
    CreateWebhookResult,
    DeleteWebhookResult,
    RegenerateSecretResult,
    TestWebhookResult,
    UpdateWebhookResult,
    Webhook,
    WebhookListResult,
)

__all__ = [
    "AccountDeletionResult",
    "AccountExportResult",
    "ActionPlanResult",
    "AnalyzeResult",
    "Audience",
    "BullyingResult",
    "CreateWebhookResult",
    "DeleteWebhookResult",
    "EmotionMessage",
    "EmotionsResult",
    "EmotionTrend",
    "GroomingMessage",
    "GroomingResult",
    "PolicyConfigResponse",
    "PricingDetailPlan",
    "PricingDetailsResult",
    "PricingPlan",
    "PricingResult",
    "RateLimitInfo",
    "RegenerateSecretResult",
    "ReportMessage",
    "ReportResult",
    "RequestMeta",
    "TestWebhookResult",
    "UnsafeResult",
    "UpdateWebhookResult",
    "Usage",
    "VoiceAlertEvent",
    "VoiceConfigUpdatedEvent",
    "VoiceErrorEvent",
    "VoiceReadyEvent",
    "VoiceSessionSummaryEvent",
    "VoiceStreamConfig",
    "VoiceStreamContext",
    "VoiceStreamEvent",
    "VoiceStreamHandlers",
    "VoiceTranscriptionEvent",
    "VoiceTranscriptionSegment",
    "Webhook",
    "WebhookListResult",
    "parse_voice_event",
]
