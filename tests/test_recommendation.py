import pytest

from tele_rate_monitor.errors import InsufficientDataError
from tele_rate_monitor.models.rates import RiskLevel, Signal
from tele_rate_monitor.recommendation import SIGNAL_COPY, recommend, recommend_for_series

from conftest import make_series


@pytest.mark.parametrize(
    "trend7d, vol, signal, risk",
    [
        (2.5, 1.0, Signal.STRONG_BUY, RiskLevel.LOW),
        (2.5, 2.0, Signal.MODERATE_BUY, RiskLevel.MEDIUM),
        (1.0, 2.9, Signal.MODERATE_BUY, RiskLevel.MEDIUM),
        (1.0, 3.0, Signal.NEUTRAL, RiskLevel.MEDIUM),
        (-2.5, 0.5, Signal.HOLD, RiskLevel.HIGH),
        (-2.0, 0.5, Signal.NEUTRAL, RiskLevel.MEDIUM),
        (0.5, 0.1, Signal.NEUTRAL, RiskLevel.MEDIUM),
    ],
)
def test_decision_table(trend7d: float, vol: float, signal: Signal, risk: RiskLevel) -> None:
    rec = recommend(trend7d, vol)

    assert rec.signal == signal
    assert rec.risk_level == risk
    assert rec.trend7d == trend7d
    assert rec.volatility == vol


def test_strong_buy_for_rising_week() -> None:
    series = make_series([0.0270, 0.0271, 0.0272, 0.0273, 0.0274, 0.0276, 0.0278])

    rec = recommend_for_series(series)

    assert rec.signal == Signal.STRONG_BUY
    assert rec.trend7d == pytest.approx(2.96, abs=0.01)
    assert rec.volatility < 2


def test_requires_seven_points() -> None:
    with pytest.raises(InsufficientDataError):
        recommend_for_series(make_series([0.027] * 6))


def test_every_signal_has_copy() -> None:
    for signal in Signal:
        copy = SIGNAL_COPY[signal]
        assert copy.label
        assert "{base}" in copy.summary or "{quote}" in copy.summary
