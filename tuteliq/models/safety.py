"""Safety detection models (bullying, grooming, unsafe content)."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class GroomingMessage:
    """One message in a conversation checked for grooming."""

    role: str  # e.g. "adult", "child", "unknown"
    content: str


@dataclass
class BullyingResult:
    is_bullying: bool
    bullying_type: List[str]
    confidence: float
    severity: str
    rationale: str
    recommended_action: str
    risk_score: float
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "BullyingResult":
        return BullyingResult(
            is_bullying=bool(data.get("is_bullying", False)),
            bullying_type=list(data.get("bullying_type") or []),
            confidence=float(data.get("confidence", 0.0)),
            severity=str(data.get("severity", "")),
            rationale=str(data.get("rationale", "")),
            recommended_action=str(data.get("recommended_action", "")),
            risk_score=float(data.get("risk_score", 0.0)),
            external_id=data.get("external_id"),
            metadata=data.get("metadata"),
            raw=dict(data),
        )


@dataclass
class GroomingResult:
    grooming_risk: str
    confidence: float
    flags: List[str]
    rationale: str
    risk_score: float
    recommended_action: str
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "GroomingResult":
        return GroomingResult(
            grooming_risk=str(data.get("grooming_risk", "")),
            confidence=float(data.get("confidence", 0.0)),
            flags=list(data.get("flags") or []),
            rationale=str(data.get("rationale", "")),
            risk_score=float(data.get("risk_score", 0.0)),
            recommended_action=str(data.get("recommended_action", "")),
            external_id=data.get("external_id"),
            metadata=data.get("metadata"),
            raw=dict(data),
        )


@dataclass
class UnsafeResult:
    unsafe: bool
    categories: List[str]
    severity: str
    confidence: float
    risk_score: float
    rationale: str
    recommended_action: str
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "UnsafeResult":
        return UnsafeResult(
            unsafe=bool(data.get("unsafe", False)),
            categories=list(data.get("categories") or []),
            severity=str(data.get("severity", "")),
            confidence=float(data.get("confidence", 0.0)),
            risk_score=float(data.get("risk_score", 0.0)),
            rationale=str(data.get("rationale", "")),
            recommended_action=str(data.get("recommended_action", "")),
            external_id=data.get("external_id"),
            metadata=data.get("metadata"),
            raw=dict(data),
        )


@dataclass
class AnalyzeResult:
    """Combined outcome of running several detections on the same content."""

    risk_level: str  # "safe" | "low" | "medium" | "high" | "critical"
    risk_score: float
    summary: str
    recommended_action: str
    bullying: Optional[BullyingResult] = None
    unsafe: Optional[UnsafeResult] = None
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
