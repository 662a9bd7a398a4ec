"""Pricing plan models."""

from dataclasses import dataclass
from typing import Any, List, Mapping


@dataclass
class PricingPlan:
    """A public pricing plan."""

    name: str
    price: str
    period: str
    description: str
    features: List[str]
    is_popular: bool
    cta: str
    cta_link: str

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PricingPlan":
        return PricingPlan(
            name=str(data.get("name", "")),
            price=str(data.get("price", "")),
            period=str(data.get("period", "")),
            description=str(data.get("description", "")),
            features=list(data.get("features") or []),
            is_popular=bool(data.get("is_popular", False)),
            cta=str(data.get("cta", "")),
            cta_link=str(data.get("cta_link", "")),
        )


@dataclass
class PricingResult:
    plans: List[PricingPlan]

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PricingResult":
        return PricingResult(plans=[PricingPlan.from_dict(p) for p in data.get("plans") or []])


@dataclass
class PricingDetailPlan:
    """A detailed pricing plan (requires auth)."""

    id: str
    name: str
    tier: str
    description: str
    price_monthly: float
    price_yearly: float
    api_calls_per_month: int
    rate_limit: int
    features: List[str]
    is_popular: bool

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PricingDetailPlan":
        return PricingDetailPlan(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            tier=str(data.get("tier", "")),
            description=str(data.get("description", "")),
            price_monthly=float(data.get("price_monthly", 0.0)),
            price_yearly=float(data.get("price_yearly", 0.0)),
            api_calls_per_month=int(data.get("api_calls_per_month", 0)),
            rate_limit=int(data.get("rate_limit", 0)),
            features=list(data.get("features") or []),
            is_popular=bool(data.get("is_popular", False)),
        )


@dataclass
class PricingDetailsResult:
    plans: List[PricingDetailPlan]

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PricingDetailsResult":
        return PricingDetailsResult(
            plans=[PricingDetailPlan.from_dict(p) for p in data.get("plans") or []]
        )
