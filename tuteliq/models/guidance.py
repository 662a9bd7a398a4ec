"""Action plan models."""

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


class Audience(str, enum.Enum):
    """Target audience for action plans."""

    CHILD = "child"
    PARENT = "parent"
    EDUCATOR = "educator"
    PLATFORM = "platform"


@dataclass
class ActionPlanResult:
    audience: str
    steps: List[str]
    tone: str
    reading_level: Optional[str] = None
    external_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ActionPlanResult":
        return ActionPlanResult(
            audience=str(data.get("audience", "")),
            steps=list(data.get("steps") or []),
            tone=str(data.get("tone", "")),
            reading_level=data.get("reading_level"),
            external_id=data.get("external_id"),
            metadata=data.get("metadata"),
        )
