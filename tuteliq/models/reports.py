"""Incident report models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union


@dataclass
class ReportMessage:
    sender: str
    content: str
    timestamp: Optional[Union[str, datetime]] = None


@dataclass
class ReportResult:
    summary: str
    risk_level: str  # "low" | "medium" | "high" | "critical"
    categories: List[str]
    recommended_next_steps: List[str]
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ReportResult":
        return ReportResult(
            summary=str(data.get("summary", "")),
            risk_level=str(data.get("risk_level", "")),
            categories=list(data.get("categories") or []),
            recommended_next_steps=list(data.get("recommended_next_steps") or []),
            external_id=data.get("external_id"),
            metadata=data.get("metadata"),
        )
