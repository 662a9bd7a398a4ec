"""Account data management models (GDPR erasure and portability)."""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping


@dataclass
class AccountDeletionResult:
    message: str
    deleted_count: int

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "AccountDeletionResult":
        return AccountDeletionResult(
            message=str(data.get("message", "")),
            deleted_count=int(data.get("deleted_count", 0)),
        )


@dataclass
class AccountExportResult:
    user_id: str
    exported_at: str
    data: Dict[str, List[Any]]

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "AccountExportResult":
        return AccountExportResult(
            user_id=str(data.get("userId", "")),
            exported_at=str(data.get("exportedAt", "")),
            data=dict(data.get("data") or {}),
        )
