"""Investment signal decision table."""

from __future__ import annotations

from dataclasses import dataclass

from . import analytics
from .errors import InsufficientDataError
from .models.rates import Recommendation, RiskLevel, Signal
from .series import RateSeries

MIN_RECOMMENDATION_POINTS = 7


@dataclass(frozen=True)
class SignalCopy:
    label: str
    summary: str
    action: str
    risk_label: str


SIGNAL_COPY: dict[Signal, SignalCopy] = {
    Signal.STRONG_BUY: SignalCopy(
        label="🟢 STRONG BUY SIGNAL",
        summary=(
            "{base} is strengthening significantly ({trend}) with low volatility. "
            "This is an excellent opportunity to convert {base} to {quote}."
        ),
        action="Consider converting a significant portion of your {base} holdings to {quote}.",
        risk_label="Low",
    ),
    Signal.MODERATE_BUY: SignalCopy(
        label="🟡 MODERATE BUY",
        summary=(
            "{base} is showing positive momentum ({trend}) with manageable volatility. "
            "Good opportunity for gradual {quote} investment."
        ),
        action="Consider dollar-cost averaging into {quote} positions.",
        risk_label="Medium",
    ),
    Signal.HOLD: SignalCopy(
        label="🔴 HOLD/WAIT",
        summary=(
            "{base} is weakening ({trend}). Not an optimal time for {quote} investment. "
            "Wait for {base} to strengthen before converting."
        ),
        action="Hold {base} and wait for better exchange rates.",
        risk_label="High if converting now",
    ),
    Signal.NEUTRAL: SignalCopy(
        label="🟡 NEUTRAL",
        summary=(
            "{base} is showing mixed signals with {trend} recent change. "
            "Market conditions are uncertain."
        ),
        action="Monitor closely and consider small test conversions.",
        risk_label="Medium",
    ),
}

_RISK_BY_SIGNAL = {
    Signal.STRONG_BUY: RiskLevel.LOW,
    Signal.MODERATE_BUY: RiskLevel.MEDIUM,
    Signal.HOLD: RiskLevel.HIGH,
    Signal.NEUTRAL: RiskLevel.MEDIUM,
}


def recommend(trend7d: float, volatility: float) -> Recommendation:
    """Map the 7-day trend and volatility (both percent) to a signal.

    Rows are checked in order and the first match wins.
    """
    if trend7d > 2 and volatility < 2:
        signal = Signal.STRONG_BUY
    elif trend7d > 0.5 and volatility < 3:
        signal = Signal.MODERATE_BUY
    elif trend7d < -2:
        signal = Signal.HOLD
    else:
        signal = Signal.NEUTRAL
    return Recommendation(
        signal=signal,
        risk_level=_RISK_BY_SIGNAL[signal],
        trend7d=trend7d,
        volatility=volatility,
    )


def recommend_for_series(series: RateSeries) -> Recommendation:
    if len(series) < MIN_RECOMMENDATION_POINTS:
        raise InsufficientDataError(MIN_RECOMMENDATION_POINTS, len(series))
    trend7d = analytics.trend(series.slice(analytics.TREND_WINDOW_SHORT_DAYS))
    vol = analytics.volatility(series.slice(analytics.VOLATILITY_WINDOW_DAYS))
    return recommend(trend7d, vol)
