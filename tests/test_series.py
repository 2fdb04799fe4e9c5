import pytest

from tele_rate_monitor.errors import EmptySeriesError, OutOfOrderError
from tele_rate_monitor.models.rates import DAY_MS
from tele_rate_monitor.series import RateSeries

from conftest import DAY0, make_series, obs


def test_append_rejects_older_timestamp_and_keeps_series() -> None:
    series = make_series([0.027, 0.0271])

    with pytest.raises(OutOfOrderError):
        series.append(obs(0, 0.03))

    assert [o.rate for o in series] == [0.027, 0.0271]


def test_append_equal_timestamp_overwrites_last_entry() -> None:
    series = make_series([0.027, 0.0271])

    overwritten = series.append(obs(1, 0.0275))

    assert overwritten is True
    assert len(series) == 2
    assert series.latest().rate == 0.0275
    assert series.previous().rate == 0.027


def test_latest_on_empty_series_raises() -> None:
    with pytest.raises(EmptySeriesError):
        RateSeries().latest()
    assert RateSeries().previous() is None


def test_slice_is_boundary_inclusive() -> None:
    series = make_series([0.027 + i * 0.0001 for i in range(10)])

    window = series.slice(7)

    assert len(window) == 8
    assert window[0].timestamp == DAY0 + 2 * DAY_MS
    assert window[-1].timestamp == DAY0 + 9 * DAY_MS


def test_slice_short_history_returns_everything() -> None:
    series = make_series([0.027, 0.028])

    assert len(series.slice(30)) == 2
    assert len(RateSeries().slice(30)) == 0


def test_slice_window_is_restartable() -> None:
    series = make_series([0.027, 0.0271, 0.0272])
    window = series.slice(7)

    assert window.rates() == [0.027, 0.0271, 0.0272]
    assert list(window) == list(window)
    assert window[1:] == [obs(1, 0.0271), obs(2, 0.0272)]


def test_slice_respects_gaps_in_days() -> None:
    series = RateSeries([obs(0, 0.027), obs(20, 0.028), obs(25, 0.029)])

    assert series.slice(7).rates() == [0.028, 0.029]


def test_extend_skips_entries_at_or_before_tail() -> None:
    series = make_series([0.027, 0.0271])
    skipped = series.extend([obs(3, 0.03), obs(0, 0.02), obs(1, 0.02), obs(2, 0.0272)])

    assert skipped == 2
    assert [o.rate for o in series] == [0.027, 0.0271, 0.0272, 0.03]


def test_has_synthetic_flags_tagged_entries() -> None:
    series = make_series([0.027])
    assert not series.has_synthetic

    series.append(obs(1, 0.0271, source="synthetic"))

    assert series.has_synthetic


def test_synthetic_does_not_overwrite_live_entry() -> None:
    series = make_series([0.027, 0.0275])

    assert series.append(obs(1, 0.029, source="synthetic")) is False

    assert series.latest().source == "live"
    assert series.latest().rate == 0.0275


def test_live_overwrites_synthetic_entry() -> None:
    series = RateSeries([obs(0, 0.026, source="synthetic")])

    assert series.append(obs(0, 0.027)) is True

    assert not series.has_synthetic


def test_replace_synthetic_keeps_live_entries_and_older_synthetic() -> None:
    series = RateSeries(
        [
            obs(0, 0.026, source="synthetic"),
            obs(1, 0.026, source="synthetic"),
            obs(2, 0.026, source="synthetic"),
            obs(3, 0.0275),
        ]
    )

    added = series.replace_synthetic([obs(1, 0.0271), obs(2, 0.0272), obs(3, 0.0299)])

    assert added == 2
    assert [o.rate for o in series] == [0.026, 0.0271, 0.0272, 0.0275]
    assert [o.source for o in series] == ["synthetic", "live", "live", "live"]


def test_replace_synthetic_ignores_synthetic_input() -> None:
    series = RateSeries([obs(0, 0.026, source="synthetic")])

    assert series.replace_synthetic([obs(1, 0.027, source="synthetic")]) == 0
    assert len(series) == 1
