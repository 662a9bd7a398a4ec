"""Policy configuration models."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class PolicyConfigResponse:
    """
    Result of reading or writing the account's moderation policy.

    ``config`` is kept as the API's nested mapping (bullying, grooming,
    selfHarm, hateSpeech, threats, sexualContent, violence,
    emotionMonitoring, incidentReporting).
    """

    success: bool
    config: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PolicyConfigResponse":
        return PolicyConfigResponse(
            success=bool(data.get("success", False)),
            config=data.get("config"),
            message=data.get("message"),
        )
