"""Emotion analysis models."""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union


class EmotionTrend(str, enum.Enum):
    """Overall emotional direction across the analysed messages."""

    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


@dataclass
class EmotionMessage:
    sender: str
    content: str
    timestamp: Optional[Union[str, datetime]] = None


@dataclass
class EmotionsResult:
    dominant_emotions: List[str]
    emotion_scores: Dict[str, float]
    trend: str
    summary: str
    recommended_followup: str
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def trend_enum(self) -> Optional[EmotionTrend]:
        """Trend as an EmotionTrend, or None for values this client does not know."""
        try:
            return EmotionTrend(self.trend)
        except ValueError:
            return None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "EmotionsResult":
        return EmotionsResult(
            dominant_emotions=list(data.get("dominant_emotions") or []),
            emotion_scores={
                k: float(v) for k, v in (data.get("emotion_scores") or {}).items()
            },
            trend=str(data.get("trend", "")),
            summary=str(data.get("summary", "")),
            recommended_followup=str(data.get("recommended_followup", "")),
            external_id=data.get("external_id"),
            metadata=data.get("metadata"),
        )
