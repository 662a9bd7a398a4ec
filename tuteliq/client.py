"""
Async client for the Tuteliq child-safety API.

Wraps the REST endpoints (safety detection, emotion analysis, guidance,
incident reports, policy, webhooks, pricing and account data) and opens
voice streaming sessions. Every request carries the bearer API key, is
checked client-side before it is sent, and is retried on transient
failures (rate limits, 5xx, network errors, timeouts).
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote

import httpx

from .config import Settings, settings
from .errors import ErrorKind, TuteliqError, error_from_response, validation_error
from .models.account import AccountDeletionResult, AccountExportResult
from .models.analysis import EmotionMessage, EmotionsResult
from .models.common import RateLimitInfo, RequestMeta, Usage
from .models.guidance import ActionPlanResult, Audience
from .models.policy import PolicyConfigResponse
from .models.pricing import PricingDetailsResult, PricingResult
from .models.reports import ReportMessage, ReportResult
from .models.safety import (
    AnalyzeResult,
    BullyingResult,
    GroomingMessage,
    GroomingResult,
    UnsafeResult,
)
from .models.voice_stream import VoiceStreamConfig, VoiceStreamHandlers
from .models.webhooks import (
    CreateWebhookResult,
    DeleteWebhookResult,
    RegenerateSecretResult,
    TestWebhookResult,
    UpdateWebhookResult,
    WebhookListResult,
)
from .services.voice_stream import VoiceStreamSession
from .utils.retry import RetryPolicy, with_retry
from .utils.usage import parse_rate_limit, parse_usage
from .utils.validation import (
    validate_child_age,
    validate_content,
    validate_external_id,
    validate_messages,
    validate_webhook,
)

logger = logging.getLogger(__name__)

__version__ = "1.0.0"

MIN_API_KEY_LENGTH = 10
MIN_TIMEOUT, MAX_TIMEOUT = 1.0, 120.0
MIN_RETRIES, MAX_RETRIES = 0, 10

ANALYZE_TYPES = ("bullying", "unsafe")

# Risk level thresholds for combined analysis, highest first
RISK_LEVELS = (
    (0.9, "critical"),
    (0.7, "high"),
    (0.5, "medium"),
    (0.3, "low"),
)

Context = Union[str, Mapping[str, Any]]


def _normalize_context(context: Optional[Context]) -> Optional[Dict[str, Any]]:
    """A bare string context names the platform; mappings pass through."""
    if context is None:
        return None
    if isinstance(context, str):
        return {"platform": context}
    return dict(context)


def _timestamp(value: Optional[Union[str, datetime]]) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _coerce(message: Any, cls: type) -> Any:
    return cls(**message) if isinstance(message, Mapping) else message


def risk_level_for(score: float) -> str:
    for threshold, level in RISK_LEVELS:
        if score >= threshold:
            return level
    return "safe"


class Tuteliq:
    """
    Tuteliq API client.

    Example:
        >>> async with Tuteliq("your-api-key") as client:
        ...     result = await client.detect_bullying("you're such a loser", context="chat")
        ...     print(result.is_bullying, result.severity)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        voice_stream_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Settings] = None,
    ):
        """
        Initialize the client. Unset arguments fall back to TUTELIQ_* settings.

        Args:
            api_key: Tuteliq API key
            base_url: REST API base URL
            voice_stream_url: WebSocket endpoint for voice streaming
            timeout: Per-request timeout in seconds (1-120)
            retries: Retries for transient failures (0-10)
            retry_delay: First backoff delay in seconds
            http_client: Optional shared httpx.AsyncClient (not closed by this client)
            config: Settings instance to read defaults from

        Raises:
            ValueError: If the API key, timeout or retry settings are invalid
        """
        cfg = config or settings

        api_key = cfg.API_KEY if api_key is None else api_key
        if not api_key:
            raise ValueError("API key is required")
        if len(api_key) < MIN_API_KEY_LENGTH:
            raise ValueError("API key is too short")

        timeout = cfg.TIMEOUT if timeout is None else timeout
        if not MIN_TIMEOUT <= timeout <= MAX_TIMEOUT:
            raise ValueError(
                f"Timeout must be between {MIN_TIMEOUT:g} and {MAX_TIMEOUT:g} seconds"
            )

        retries = cfg.RETRIES if retries is None else retries
        if not MIN_RETRIES <= retries <= MAX_RETRIES:
            raise ValueError(f"Retries must be between {MIN_RETRIES} and {MAX_RETRIES}")

        retry_delay = cfg.RETRY_DELAY if retry_delay is None else retry_delay
        if retry_delay <= 0:
            raise ValueError("Retry delay must be positive")

        self._api_key = api_key
        self._base_url = (base_url or cfg.BASE_URL).rstrip("/")
        self._voice_stream_url = voice_stream_url or cfg.VOICE_STREAM_URL
        self._timeout = timeout
        self._retry_policy = RetryPolicy(
            max_retries=retries,
            initial_delay=retry_delay,
            max_delay=max(cfg.MAX_RETRY_DELAY, retry_delay),
        )
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "User-Agent": f"tuteliq-python/{__version__}",
        }
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

        # Accounting from the most recent successful response
        self.usage: Optional[Usage] = None
        self.rate_limit: Optional[RateLimitInfo] = None
        self.last_request_id: Optional[str] = None
        self.last_latency_ms: Optional[float] = None

    @property
    def last_request_meta(self) -> Optional[RequestMeta]:
        if self.last_latency_ms is None:
            return None
        return RequestMeta(
            request_id=self.last_request_id,
            latency_ms=self.last_latency_ms,
            usage=self.usage,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "Tuteliq":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --- Safety detection ------------------------------------------------

    async def detect_bullying(
        self,
        content: str,
        *,
        context: Optional[Context] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> BullyingResult:
        """Detect bullying in a single piece of content."""
        body = self._content_body(content, context, external_id, metadata)
        data = await self._request("POST", "/api/v1/safety/bullying", body)
        return BullyingResult.from_dict(data)

    async def detect_grooming(
        self,
        messages: Sequence[Union[GroomingMessage, Mapping[str, Any]]],
        *,
        child_age: Optional[int] = None,
        context: Optional[Context] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GroomingResult:
        """
        Detect grooming patterns in a conversation.

        Args:
            messages: Conversation, oldest first; each has a role
                ("adult", "child", ...) and content
            child_age: Age of the child in the conversation
            context: Platform name or context mapping
            external_id: Your identifier, echoed back and sent to webhooks
            metadata: Custom key-value pairs stored with the result
        """
        messages = [_coerce(m, GroomingMessage) for m in messages or []]
        validate_messages(messages)
        validate_child_age(child_age)
        validate_external_id(external_id)

        ctx = _normalize_context(context) or {}
        if child_age is not None:
            ctx["child_age"] = child_age

        body: Dict[str, Any] = {
            "messages": [{"sender_role": m.role, "text": m.content} for m in messages],
        }
        if ctx:
            body["context"] = ctx
        self._add_tracking(body, external_id, metadata)

        data = await self._request("POST", "/api/v1/safety/grooming", body)
        return GroomingResult.from_dict(data)

    async def detect_unsafe(
        self,
        content: str,
        *,
        context: Optional[Context] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UnsafeResult:
        """Detect unsafe content (self-harm, violence, sexual content, ...)."""
        body = self._content_body(content, context, external_id, metadata)
        data = await self._request("POST", "/api/v1/safety/unsafe", body)
        return UnsafeResult.from_dict(data)

    async def analyze(
        self,
        content: str,
        *,
        include: Iterable[str] = ANALYZE_TYPES,
        context: Optional[Context] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AnalyzeResult:
        """
        Run several detections on the same content and combine them.

        The combined risk score is the highest component score, and the
        recommended action comes from that component.
        """
        include = tuple(include)
        unknown = [name for name in include if name not in ANALYZE_TYPES]
        if unknown or not include:
            raise validation_error(
                f"include must be a non-empty subset of {', '.join(ANALYZE_TYPES)}",
                details={"unknown": unknown},
            )
        validate_content(content)

        kwargs = {"context": context, "external_id": external_id, "metadata": metadata}
        bullying_task = self.detect_bullying(content, **kwargs) if "bullying" in include else None
        unsafe_task = self.detect_unsafe(content, **kwargs) if "unsafe" in include else None

        results = await asyncio.gather(*(t for t in (bullying_task, unsafe_task) if t is not None))
        results_iter = iter(results)
        bullying = next(results_iter) if bullying_task is not None else None
        unsafe = next(results_iter) if unsafe_task is not None else None

        return self._combine(bullying, unsafe, external_id, metadata)

    # --- Emotion analysis ------------------------------------------------

    async def analyze_emotions(
        self,
        content: Optional[str] = None,
        *,
        messages: Optional[Sequence[Union[EmotionMessage, Mapping[str, Any]]]] = None,
        context: Optional[Context] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EmotionsResult:
        """Summarize emotions in a single message or a message history."""
        if not content and not messages:
            raise validation_error("Either content or messages is required")
        validate_external_id(external_id)

        if messages:
            items = [_coerce(m, EmotionMessage) for m in messages]
            validate_messages(items)
            payload_messages = [self._message_payload(m) for m in items]
        else:
            validate_content(content)
            payload_messages = [{"sender": "user", "text": content}]

        body: Dict[str, Any] = {"messages": payload_messages}
        ctx = _normalize_context(context)
        if ctx:
            body["context"] = ctx
        self._add_tracking(body, external_id, metadata)

        data = await self._request("POST", "/api/v1/analysis/emotions", body)
        return EmotionsResult.from_dict(data)

    # --- Guidance and reports --------------------------------------------

    async def get_action_plan(
        self,
        situation: str,
        *,
        child_age: Optional[int] = None,
        audience: Union[Audience, str] = Audience.PARENT,
        severity: Optional[str] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActionPlanResult:
        """Get step-by-step guidance for a situation, tailored to an audience."""
        if not situation or not situation.strip():
            raise validation_error("Situation description is required")
        validate_content(situation, field_name="Situation description")
        validate_child_age(child_age)
        validate_external_id(external_id)
        try:
            role = Audience(audience)
        except ValueError:
            raise validation_error(
                f"Unknown audience: {audience}",
                details={"allowed": [a.value for a in Audience]},
            ) from None

        body: Dict[str, Any] = {"situation": situation, "role": role.value}
        if child_age is not None:
            body["child_age"] = child_age
        if severity:
            body["severity"] = severity
        self._add_tracking(body, external_id, metadata)

        data = await self._request("POST", "/api/v1/guidance/action-plan", body)
        return ActionPlanResult.from_dict(data)

    async def generate_report(
        self,
        messages: Sequence[Union[ReportMessage, Mapping[str, Any]]],
        *,
        child_age: Optional[int] = None,
        incident: Optional[Mapping[str, Any]] = None,
        external_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ReportResult:
        """
        Generate an incident report from the messages involved.

        Args:
            messages: Messages involved in the incident
            child_age: Age of the child
            incident: Optional ``type``, ``occurred_at`` and ``notes``
            external_id: Your identifier, echoed back and sent to webhooks
            metadata: Custom key-value pairs stored with the result
        """
        items = [_coerce(m, ReportMessage) for m in messages or []]
        validate_messages(items)
        validate_child_age(child_age)
        validate_external_id(external_id)

        meta: Dict[str, Any] = {}
        if child_age is not None:
            meta["child_age"] = child_age
        if incident:
            if incident.get("type"):
                meta["type"] = incident["type"]
            if incident.get("occurred_at"):
                meta["occurred_at"] = _timestamp(incident["occurred_at"])
            if incident.get("notes"):
                meta["notes"] = incident["notes"]

        body: Dict[str, Any] = {"messages": [self._message_payload(m) for m in items]}
        if meta:
            body["meta"] = meta
        self._add_tracking(body, external_id, metadata)

        data = await self._request("POST", "/api/v1/reports/incident", body)
        return ReportResult.from_dict(data)

    # --- Policy ----------------------------------------------------------

    async def get_policy(self) -> PolicyConfigResponse:
        data = await self._request("GET", "/api/v1/policy")
        return PolicyConfigResponse.from_dict(data)

    async def set_policy(self, config: Mapping[str, Any]) -> PolicyConfigResponse:
        """Update the moderation policy; only the sections given are changed."""
        if not config:
            raise validation_error("Policy config cannot be empty")
        data = await self._request("PUT", "/api/v1/policy", {"config": dict(config)})
        return PolicyConfigResponse.from_dict(data)

    # --- Webhooks --------------------------------------------------------

    async def list_webhooks(self) -> WebhookListResult:
        data = await self._request("GET", "/api/v1/webhooks")
        return WebhookListResult.from_dict(data)

    async def create_webhook(
        self,
        name: str,
        url: str,
        events: Sequence[str],
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> CreateWebhookResult:
        """Create a webhook. The signing secret is only returned by this call."""
        if name is None or url is None or events is None:
            raise validation_error("Webhook name, url and events are required")
        validate_webhook(name=name, url=url, events=events)

        body: Dict[str, Any] = {"name": name, "url": url, "events": list(events)}
        if headers:
            body["headers"] = dict(headers)

        data = await self._request("POST", "/api/v1/webhooks", body)
        return CreateWebhookResult.from_dict(data)

    async def update_webhook(
        self,
        webhook_id: str,
        *,
        name: Optional[str] = None,
        url: Optional[str] = None,
        events: Optional[Sequence[str]] = None,
        is_active: Optional[bool] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> UpdateWebhookResult:
        """Update a webhook; only the arguments that are not None are sent."""
        validate_webhook(name=name, url=url, events=events)

        body: Dict[str, Any] = {}
        if name is not None:
            body["name"] = name
        if url is not None:
            body["url"] = url
        if events is not None:
            body["events"] = list(events)
        if is_active is not None:
            body["is_active"] = is_active
        if headers is not None:
            body["headers"] = dict(headers)

        data = await self._request("PUT", self._webhook_path(webhook_id), body)
        return UpdateWebhookResult.from_dict(data)

    async def delete_webhook(self, webhook_id: str) -> DeleteWebhookResult:
        data = await self._request("DELETE", self._webhook_path(webhook_id))
        # 204 No Content carries no body
        return DeleteWebhookResult.from_dict(data or {"success": True})

    async def test_webhook(self, webhook_id: str) -> TestWebhookResult:
        """Send a test payload to the webhook and report delivery."""
        data = await self._request("POST", self._webhook_path(webhook_id, "test"))
        return TestWebhookResult.from_dict(data)

    async def regenerate_webhook_secret(self, webhook_id: str) -> RegenerateSecretResult:
        data = await self._request("POST", self._webhook_path(webhook_id, "regenerate-secret"))
        return RegenerateSecretResult.from_dict(data)

    # --- Pricing ---------------------------------------------------------

    async def get_pricing(self) -> PricingResult:
        data = await self._request("GET", "/api/v1/pricing")
        return PricingResult.from_dict(data)

    async def get_pricing_details(self) -> PricingDetailsResult:
        data = await self._request("GET", "/api/v1/pricing/details")
        return PricingDetailsResult.from_dict(data)

    # --- Account data (GDPR) ---------------------------------------------

    async def delete_account_data(self) -> AccountDeletionResult:
        """Erase all stored data for this account (right to erasure)."""
        data = await self._request("DELETE", "/api/v1/account/data")
        return AccountDeletionResult.from_dict(data)

    async def export_account_data(self) -> AccountExportResult:
        """Export all stored data for this account (right to data portability)."""
        data = await self._request("GET", "/api/v1/account/export")
        return AccountExportResult.from_dict(data)

    # --- Voice streaming -------------------------------------------------

    def voice_stream(
        self,
        config: Optional[VoiceStreamConfig] = None,
        handlers: Optional[VoiceStreamHandlers] = None,
    ) -> VoiceStreamSession:
        """
        Open a live voice moderation session.

        Returns immediately; the connection is established in the background.
        Use ``async with client.voice_stream(...) as session`` to wait for the
        ready event and close the session on exit.
        """
        return VoiceStreamSession.open(
            self._api_key, config, handlers, url=self._voice_stream_url
        )

    # --- Request helpers -------------------------------------------------

    def _content_body(
        self,
        content: str,
        context: Optional[Context],
        external_id: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        validate_content(content)
        validate_external_id(external_id)

        body: Dict[str, Any] = {"text": content}
        ctx = _normalize_context(context)
        if ctx:
            body["context"] = ctx
        self._add_tracking(body, external_id, metadata)
        return body

    @staticmethod
    def _add_tracking(
        body: Dict[str, Any],
        external_id: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> None:
        if external_id:
            body["external_id"] = external_id
        if metadata:
            body["metadata"] = metadata

    @staticmethod
    def _message_payload(message: Union[EmotionMessage, ReportMessage]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"sender": message.sender, "text": message.content}
        timestamp = _timestamp(message.timestamp)
        if timestamp:
            payload["timestamp"] = timestamp
        return payload

    @staticmethod
    def _webhook_path(webhook_id: str, action: Optional[str] = None) -> str:
        if not webhook_id:
            raise validation_error("Webhook ID is required")
        path = f"/api/v1/webhooks/{quote(webhook_id, safe='')}"
        return f"{path}/{action}" if action else path

    @staticmethod
    def _combine(
        bullying: Optional[BullyingResult],
        unsafe: Optional[UnsafeResult],
        external_id: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> AnalyzeResult:
        findings: List[str] = []
        if bullying is not None and bullying.is_bullying:
            findings.append(
                f"Bullying detected ({bullying.severity})" if bullying.severity else "Bullying detected"
            )
        if unsafe is not None and unsafe.unsafe:
            if unsafe.categories:
                findings.append(f"Unsafe content detected: {', '.join(unsafe.categories)}")
            else:
                findings.append("Unsafe content detected")

        components = [r for r in (bullying, unsafe) if r is not None]
        top = max(components, key=lambda r: r.risk_score)

        return AnalyzeResult(
            risk_level=risk_level_for(top.risk_score),
            risk_score=top.risk_score,
            summary=". ".join(findings) if findings else "No safety concerns detected",
            recommended_action=top.recommended_action or "none",
            bullying=bullying,
            unsafe=unsafe,
            external_id=external_id,
            metadata=metadata,
        )

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send a request with retries and return the decoded JSON object.

        Only the exchange is retried. Once a 2xx response arrives the request
        counts as accepted, so a body that fails to decode is raised once.
        """
        url = f"{self._base_url}{path}"

        async def attempt() -> httpx.Response:
            return await self._send(method, url, body)

        response = await with_retry(
            attempt, self._retry_policy, operation_name=f"{method} {path}"
        )
        return self._decode(response)

    async def _send(
        self,
        method: str,
        url: str,
        body: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        start = time.monotonic()
        try:
            response = await self._http.request(
                method,
                url,
                json=body,
                headers=self._headers,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise TuteliqError(
                ErrorKind.TIMEOUT, f"Request timed out after {self._timeout:g}s"
            ) from e
        except httpx.TransportError as e:
            raise TuteliqError(ErrorKind.NETWORK, f"Network error: {e}") from e

        latency_ms = (time.monotonic() - start) * 1000

        if not response.is_success:
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
            error = error_from_response(response.status_code, error_body, response.headers)
            logger.debug(
                f"{method} {url} -> {response.status_code} ({error.kind.value}) "
                f"request_id={response.headers.get('x-request-id')}"
            )
            raise error

        self._record_meta(response.headers, latency_ms)
        logger.debug(f"{method} {url} -> {response.status_code} in {latency_ms:.1f}ms")
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        # 204 No Content and other empty bodies
        if not response.content.strip():
            return {}

        try:
            data = response.json()
        except ValueError as e:
            raise TuteliqError(
                ErrorKind.SERVER,
                "Failed to decode response body",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise TuteliqError(
                ErrorKind.SERVER,
                "Expected JSON object in response body",
                status_code=response.status_code,
            )

        return data

    def _record_meta(self, headers: Mapping[str, str], latency_ms: float) -> None:
        usage = parse_usage(headers)
        if usage is not None:
            self.usage = usage
        rate_limit = parse_rate_limit(headers)
        if rate_limit is not None:
            self.rate_limit = rate_limit
        self.last_request_id = headers.get("x-request-id")
        self.last_latency_ms = latency_ms
