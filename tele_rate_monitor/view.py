"""HTML rendering for bot replies."""

from __future__ import annotations

import html
from collections.abc import Sequence
from datetime import datetime, timezone

from . import analytics
from .alerting import format_rate, format_threshold
from .models.rates import (
    AnalyticsSnapshot,
    MarketInsights,
    RateObservation,
    Recommendation,
)
from .recommendation import SIGNAL_COPY

SPARK_BLOCKS = "▁▂▃▄▅▆▇█"
SPARK_WIDTH = 28

_TREND_ICONS = {"up": "📈", "down": "📉", "neutral": "➖"}
_VOLATILITY_ICONS = {"high": "🔴", "moderate": "🟡", "low": "🟢"}
_RISK_ICONS = {"LOW": "🟢", "MEDIUM": "🟡", "HIGH": "🔴"}


def bold(text: str) -> str:
    return f"<b>{html.escape(str(text))}</b>"


def code(text: str) -> str:
    return f"<code>{html.escape(str(text))}</code>"


def chunk(msg: str, size: int = 4000) -> list[str]:
    """Split message into chunks on line boundaries, none longer than size."""
    if len(msg) <= size:
        return [msg]

    chunks: list[str] = []
    current = ""
    for line in msg.splitlines():
        while len(line) > size:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:size])
            line = line[size:]
        added = len(line) + (1 if current else 0)
        if current and len(current) + added > size:
            chunks.append(current)
            current = line
        else:
            current = f"{current}\n{line}" if current else line
    if current:
        chunks.append(current)
    return chunks


def format_pct(value: float | None, signed: bool = True) -> str:
    if value is None:
        return "n/a"
    return f"{value:+.2f}%" if signed else f"{value:.2f}%"


def trend_indicator(value: float | None) -> str:
    if value is None:
        return "❔"
    return _TREND_ICONS[analytics.classify_trend(value)]


def volatility_indicator(value: float | None) -> str:
    if value is None:
        return "❔"
    return _VOLATILITY_ICONS[analytics.classify_volatility(value)]


def _format_day(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def sparkline(rates: Sequence[float], width: int = SPARK_WIDTH) -> str:
    """Text chart of the rates, resampled down to ``width`` characters."""
    if not rates:
        return ""
    if len(rates) > width:
        step = len(rates) / width
        rates = [rates[int(i * step)] for i in range(width - 1)] + [rates[-1]]
    low, high = min(rates), max(rates)
    span = high - low
    if span == 0:
        return SPARK_BLOCKS[len(SPARK_BLOCKS) // 2] * len(rates)
    top = len(SPARK_BLOCKS) - 1
    return "".join(SPARK_BLOCKS[round((r - low) / span * top)] for r in rates)


def _synthetic_note(synthetic: bool) -> list[str]:
    if not synthetic:
        return []
    return ["<i>⚠️ Live data unavailable: showing synthetic rates.</i>"]


def render_rate(
    latest: RateObservation,
    previous: RateObservation | None,
    base: str,
    quote: str,
) -> str:
    lines = [
        f"<b>{html.escape(base)} → {html.escape(quote)}:</b> {code(format_rate(latest.rate))}",
        f"<b>Date:</b> {_format_day(latest.timestamp)}",
    ]
    if previous is not None:
        change = (latest.rate - previous.rate) / previous.rate * 100
        lines.append(
            f"<b>Change:</b> {trend_indicator(change)} {format_pct(change)} "
            f"(prev {format_rate(previous.rate)})"
        )
    lines.extend(_synthetic_note(latest.is_synthetic))
    return "\n".join(lines)


def render_snapshot(snapshot: AnalyticsSnapshot, synthetic: bool = False) -> str:
    lines = [
        bold("Trend analysis:"),
        f"7-day trend: {trend_indicator(snapshot.trend7d)} {format_pct(snapshot.trend7d)}",
        f"30-day trend: {trend_indicator(snapshot.trend30d)} {format_pct(snapshot.trend30d)}",
        f"Volatility: {volatility_indicator(snapshot.volatility)} "
        f"{format_pct(snapshot.volatility, signed=False)}",
        f"7-day projection: {trend_indicator(snapshot.projection7d)} "
        f"{format_pct(snapshot.projection7d)}",
    ]
    if all(
        value is None
        for value in (
            snapshot.trend7d,
            snapshot.trend30d,
            snapshot.volatility,
            snapshot.projection7d,
        )
    ):
        lines.append("<i>Not enough data yet.</i>")
    lines.extend(_synthetic_note(synthetic))
    return "\n".join(lines)


def render_history(window: Sequence[RateObservation], period_label: str) -> str:
    if not window:
        return "<i>No rate history yet.</i>"
    rates = [obs.rate for obs in window]
    first, last = window[0], window[-1]
    change = (last.rate - first.rate) / first.rate * 100
    lines = [
        bold(f"History ({period_label}):"),
        f"{_format_day(first.timestamp)} → {_format_day(last.timestamp)} "
        f"({len(window)} points)",
        f"<code>{sparkline(rates)}</code>",
        f"<b>High:</b> {format_rate(max(rates))} | <b>Low:</b> {format_rate(min(rates))}",
        f"<b>Change:</b> {trend_indicator(change)} {format_pct(change)}",
    ]
    lines.extend(_synthetic_note(any(obs.is_synthetic for obs in window)))
    return "\n".join(lines)


def render_recommendation(
    rec: Recommendation, base: str, quote: str, synthetic: bool = False
) -> str:
    copy = SIGNAL_COPY[rec.signal]
    values = {"base": base, "quote": quote, "trend": format_pct(rec.trend7d)}
    lines = [
        bold(copy.label),
        html.escape(copy.summary.format(**values)),
        "",
        f"<b>Recommended action:</b> {html.escape(copy.action.format(**values))}",
        f"<b>Risk:</b> {html.escape(copy.risk_label)}",
        f"<i>7-day trend {format_pct(rec.trend7d)}, "
        f"volatility {format_pct(rec.volatility, signed=False)}</i>",
    ]
    lines.extend(_synthetic_note(synthetic))
    return "\n".join(lines)


def render_insights(
    insights: MarketInsights, base: str, quote: str, synthetic: bool = False
) -> str:
    risk = insights.risk_level.value
    lines = [
        bold(f"Market insights ({base}/{quote}, {analytics.INSIGHTS_WINDOW_DAYS}d):"),
        f"<b>High:</b> {format_rate(insights.high)} | <b>Low:</b> {format_rate(insights.low)}",
        f"<b>Average:</b> {format_rate(insights.average)}",
        f"<b>Current:</b> {format_rate(insights.current)} "
        f"({format_pct(insights.current_vs_average)} vs average)",
        f"<b>Volatility:</b> {volatility_indicator(insights.volatility)} "
        f"{format_pct(insights.volatility, signed=False)}",
        f"<b>30-day trend:</b> {trend_indicator(insights.trend30d)} "
        f"{format_pct(insights.trend30d)}",
        f"<b>Risk:</b> {_RISK_ICONS[risk]} {risk}",
    ]
    lines.extend(_synthetic_note(synthetic))
    return "\n".join(lines)


def render_alert_status(statuses: Sequence, base: str, quote: str) -> str:
    if not statuses:
        return (
            "<b>Alert:</b> none configured.\n"
            "<i>Usage:</i> /alert set &lt;threshold&gt; (e.g. 0.0285)"
        )
    lines = []
    for status in statuses:
        rule = status.rule
        state = "triggered" if status.triggered else "armed"
        if not rule.enabled:
            state = "off"
        lines.append(
            f"<b>Alert:</b> {'ON' if rule.enabled else 'OFF'} for {code(status.masked_recipient)}"
        )
        lines.append(
            f"Notify when {html.escape(base)} ≥ {code(format_threshold(rule.threshold))} "
            f"{html.escape(quote)} ({state})"
        )
    return "\n".join(lines)


def _format_timestamp(ts: float | None) -> str:
    if not ts:
        return "never"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def _p95(samples: list[float]) -> float:
    if not samples:
        return 0.0
    ordered = sorted(samples)
    idx = max(0, int(round(0.95 * (len(ordered) - 1))))
    return ordered[idx]


def render_command_metrics(metrics: dict) -> str:
    if not metrics:
        return "<i>No command metrics recorded yet.</i>"

    lines = [bold("Command Metrics:")]
    for name in sorted(metrics):
        entry = metrics[name]
        lines.append(
            f"{code(name)} runs {entry.count} ok {entry.success} err {entry.error} "
            f"rl {entry.rate_limited} avg {entry.avg_latency_s * 1000:.1f}ms "
            f"p95 {_p95(entry.latencies_s) * 1000:.1f}ms "
            f"last {html.escape(_format_timestamp(entry.last_run_ts))}"
        )
    return "\n".join(lines)

