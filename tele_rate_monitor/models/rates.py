"""Rate observation and analytics dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ..errors import ValidationError

Source = Literal["live", "synthetic"]

DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class RateObservation:
    timestamp: int  # epoch millis
    rate: float
    source: Source = "live"

    def __post_init__(self) -> None:
        if not isinstance(self.rate, (int, float)) or self.rate <= 0:
            raise ValidationError(f"rate must be positive, got {self.rate!r}")

    @property
    def is_synthetic(self) -> bool:
        return self.source == "synthetic"


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Derived metrics in percent; None marks a metric without enough data."""

    trend7d: float | None
    trend30d: float | None
    volatility: float | None
    projection7d: float | None


@dataclass(frozen=True)
class MarketInsights:
    high: float
    low: float
    average: float
    current: float
    current_vs_average: float
    volatility: float
    trend30d: float
    risk_level: "RiskLevel"


class Signal(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    MODERATE_BUY = "MODERATE_BUY"
    HOLD = "HOLD"
    NEUTRAL = "NEUTRAL"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class Recommendation:
    signal: Signal
    risk_level: RiskLevel
    trend7d: float
    volatility: float
