"""Webhook management models."""

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional


@dataclass
class Webhook:
    id: str
    name: str
    url: str
    events: List[str]
    is_active: bool
    failure_count: int
    created_at: str
    updated_at: str
    last_triggered_at: Optional[str] = None
    last_error: Optional[str] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Webhook":
        return Webhook(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            url=str(data.get("url", "")),
            events=list(data.get("events") or []),
            is_active=bool(data.get("is_active", False)),
            failure_count=int(data.get("failure_count", 0)),
            created_at=str(data.get("created_at", "")),
            updated_at=str(data.get("updated_at", "")),
            last_triggered_at=data.get("last_triggered_at"),
            last_error=data.get("last_error"),
        )


@dataclass
class WebhookListResult:
    webhooks: List[Webhook]

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "WebhookListResult":
        return WebhookListResult(
            webhooks=[Webhook.from_dict(it) for it in data.get("webhooks") or []]
        )


@dataclass
class CreateWebhookResult:
    """Created webhook. ``secret`` is only returned here; store it securely."""

    id: str
    name: str
    url: str
    secret: str
    events: List[str]
    is_active: bool
    created_at: str

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "CreateWebhookResult":
        return CreateWebhookResult(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            url=str(data.get("url", "")),
            secret=str(data.get("secret", "")),
            events=list(data.get("events") or []),
            is_active=bool(data.get("is_active", False)),
            created_at=str(data.get("created_at", "")),
        )


@dataclass
class UpdateWebhookResult:
    id: str
    name: str
    url: str
    events: List[str]
    is_active: bool
    updated_at: str

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "UpdateWebhookResult":
        return UpdateWebhookResult(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            url=str(data.get("url", "")),
            events=list(data.get("events") or []),
            is_active=bool(data.get("is_active", False)),
            updated_at=str(data.get("updated_at", "")),
        )


@dataclass
class DeleteWebhookResult:
    success: bool
    message: str

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "DeleteWebhookResult":
        return DeleteWebhookResult(
            success=bool(data.get("success", False)),
            message=str(data.get("message", "")),
        )


@dataclass
class TestWebhookResult:
    __test__ = False  # not a pytest test class

    success: bool
    status_code: int
    latency_ms: float
    error: Optional[str] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "TestWebhookResult":
        return TestWebhookResult(
            success=bool(data.get("success", False)),
            status_code=int(data.get("status_code", 0)),
            latency_ms=float(data.get("latency_ms", 0.0)),
            error=data.get("error"),
        )


@dataclass
class RegenerateSecretResult:
    secret: str

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "RegenerateSecretResult":
        return RegenerateSecretResult(secret=str(data.get("secret", "")))
