"""
pricewatch/domain/pricing.py

Structured pricing representation captured from one page at one point in time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "BillingPeriod":
        if isinstance(value, BillingPeriod):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "month": cls.MONTHLY,
            "monthly": cls.MONTHLY,
            "year": cls.YEARLY,
            "yearly": cls.YEARLY,
            "annual": cls.YEARLY,
            "annually": cls.YEARLY,
            "one-time": cls.ONE_TIME,
            "one_time": cls.ONE_TIME,
            "onetime": cls.ONE_TIME,
            "lifetime": cls.ONE_TIME,
        }
        return aliases.get(text, cls.UNKNOWN)


@dataclass(frozen=True)
class PricingPlan:
    """
    One plan as displayed on a pricing page.

    `price_numeric` is None exactly when the plan is contact-sales or the
    display price could not be parsed.
    """

    name: str
    price_raw: str | None = None
    price_numeric: float | None = None
    billing: BillingPeriod = BillingPeriod.UNKNOWN
    features: tuple[str, ...] = ()
    cta: str | None = None
    badges: tuple[str, ...] = ()
    credits: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "price_raw": self.price_raw,
            "price_numeric": self.price_numeric,
            "billing": self.billing.value,
            "features": list(self.features),
            "cta": self.cta,
            "badges": list(self.badges),
            "credits": self.credits,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PricingPlan":
        numeric = payload.get("price_numeric")
        return cls(
            name=str(payload.get("name") or ""),
            price_raw=payload.get("price_raw"),
            price_numeric=float(numeric) if numeric is not None else None,
            billing=BillingPeriod.coerce(payload.get("billing")),
            features=tuple(str(item) for item in payload.get("features") or ()),
            cta=payload.get("cta"),
            badges=tuple(str(item) for item in payload.get("badges") or ()),
            credits=payload.get("credits"),
        )


@dataclass(frozen=True)
class PricingSchema:
    """
    Immutable pricing capture for one (competitor, region, point in time).
    """

    plans: tuple[PricingPlan, ...]
    has_free_tier: bool
    highlighted_plan: str | None
    currency: str
    captured_at: datetime
    source_url: str
    extras: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plans": [plan.to_dict() for plan in self.plans],
            "has_free_tier": self.has_free_tier,
            "highlighted_plan": self.highlighted_plan,
            "currency": self.currency,
            "captured_at": self.captured_at.isoformat(),
            "source_url": self.source_url,
            "extras": dict(self.extras),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PricingSchema":
        captured_raw = payload.get("captured_at")
        captured_at = (
            captured_raw
            if isinstance(captured_raw, datetime)
            else datetime.fromisoformat(str(captured_raw))
        )
        return cls(
            plans=tuple(PricingPlan.from_dict(item) for item in payload.get("plans") or ()),
            has_free_tier=bool(payload.get("has_free_tier")),
            highlighted_plan=payload.get("highlighted_plan"),
            currency=str(payload.get("currency") or "USD"),
            captured_at=captured_at,
            source_url=str(payload.get("source_url") or ""),
            extras=dict(payload.get("extras") or {}),
        )
