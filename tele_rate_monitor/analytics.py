"""Trend, volatility and projection analytics over a rate series.

All functions are pure: they read the window they are given and return a
number (percent) or raise a ``DataError``. The 7-day and 30-day trends are the
same ``trend()`` call over ``series.slice(7)`` and ``series.slice(30)``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from .errors import DataError, DegenerateRegressionError, InsufficientDataError
from .models.rates import AnalyticsSnapshot, MarketInsights, RateObservation, RiskLevel
from .series import RateSeries

logger = logging.getLogger(__name__)

TREND_WINDOW_SHORT_DAYS = 7
TREND_WINDOW_LONG_DAYS = 30
VOLATILITY_WINDOW_DAYS = 30
PROJECTION_LOOKBACK_POINTS = 14
PROJECTION_HORIZON = 7
MIN_PROJECTION_POINTS = 5
INSIGHTS_WINDOW_DAYS = 30
MIN_INSIGHT_POINTS = 30

# Display thresholds, percent.
DIRECTIONAL_THRESHOLD = 1.0
VOLATILITY_HIGH = 2.0
VOLATILITY_MODERATE = 1.0


def _rates(window: Sequence[RateObservation]) -> list[float]:
    return [obs.rate for obs in window]


def trend(
    window: Sequence[RateObservation], default: float | None = None
) -> float:
    """Percentage change from the first to the last observation.

    Args:
        window: Ordered observations.
        default: Value to return instead of raising when fewer than two
            points are available. Callers must opt in explicitly.

    Raises:
        InsufficientDataError: fewer than two points and no default given.
    """
    rates = _rates(window)
    if len(rates) < 2:
        if default is not None:
            return default
        raise InsufficientDataError(2, len(rates))
    first, last = rates[0], rates[-1]
    return (last - first) / first * 100


def volatility(window: Sequence[RateObservation]) -> float:
    """Coefficient of variation (population std / mean) in percent."""
    rates = _rates(window)
    if len(rates) < 2:
        raise InsufficientDataError(2, len(rates))
    if min(rates) == max(rates):
        return 0.0
    mean = math.fsum(rates) / len(rates)
    variance = math.fsum((r - mean) ** 2 for r in rates) / len(rates)
    return math.sqrt(variance) / mean * 100


def projection(window: Sequence[RateObservation]) -> float:
    """Projected percentage change ``PROJECTION_HORIZON`` points ahead.

    Fits an ordinary least-squares line of rate against sequential index over
    the last ``PROJECTION_LOOKBACK_POINTS`` observations and compares the
    extrapolated value with the last actual rate.
    """
    rates = _rates(window)
    if len(rates) < MIN_PROJECTION_POINTS:
        raise InsufficientDataError(MIN_PROJECTION_POINTS, len(rates))
    recent = rates[-PROJECTION_LOOKBACK_POINTS:]
    n = len(recent)

    sum_x = sum_y = sum_xy = sum_xx = 0.0
    for x, y in enumerate(recent):
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_xx += x * x

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        raise DegenerateRegressionError("regression denominator is zero")
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    future_x = (n - 1) + PROJECTION_HORIZON
    projected = slope * future_x + intercept
    current = recent[-1]
    return (projected - current) / current * 100


def classify_trend(value: float) -> str:
    if abs(value) > DIRECTIONAL_THRESHOLD:
        return "up" if value > 0 else "down"
    return "neutral"


classify_projection = classify_trend


def classify_volatility(value: float) -> str:
    if value > VOLATILITY_HIGH:
        return "high"
    if value > VOLATILITY_MODERATE:
        return "moderate"
    return "low"


def _safe(metric: str, fn, window) -> float | None:
    try:
        return fn(window)
    except DataError as exc:
        logger.debug("Skipping %s: %s", metric, exc)
        return None


def snapshot(series: RateSeries) -> AnalyticsSnapshot:
    """Compute every metric independently; missing data leaves a field None."""
    return AnalyticsSnapshot(
        trend7d=_safe("trend7d", trend, series.slice(TREND_WINDOW_SHORT_DAYS)),
        trend30d=_safe("trend30d", trend, series.slice(TREND_WINDOW_LONG_DAYS)),
        volatility=_safe(
            "volatility", volatility, series.slice(VOLATILITY_WINDOW_DAYS)
        ),
        projection7d=_safe(
            "projection7d", projection, series.slice(TREND_WINDOW_LONG_DAYS)
        ),
    )


def assess_risk(volatility_pct: float, trend30d_pct: float) -> RiskLevel:
    if volatility_pct > 3 or abs(trend30d_pct) > 5:
        return RiskLevel.HIGH
    if volatility_pct > 1.5 or abs(trend30d_pct) > 2:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def market_insights(series: RateSeries, current_rate: float | None = None) -> MarketInsights:
    """Historical high/low/average and current-vs-average over the last 30 days.

    Raises:
        InsufficientDataError: fewer than ``MIN_INSIGHT_POINTS`` observations.
    """
    window = series.slice(INSIGHTS_WINDOW_DAYS)
    rates = window.rates()
    if len(rates) < MIN_INSIGHT_POINTS:
        raise InsufficientDataError(MIN_INSIGHT_POINTS, len(rates))
    current = current_rate if current_rate is not None else rates[-1]
    average = math.fsum(rates) / len(rates)
    vol = volatility(window)
    trend30d = trend(window)
    return MarketInsights(
        high=max(rates),
        low=min(rates),
        average=average,
        current=current,
        current_vs_average=(current - average) / average * 100,
        volatility=vol,
        trend30d=trend30d,
        risk_level=assess_risk(vol, trend30d),
    )
