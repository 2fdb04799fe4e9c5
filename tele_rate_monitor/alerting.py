"""Threshold alert evaluation and parsing helpers."""

from __future__ import annotations

import logging
import time

from .alert_store import AlertStore
from .models.alerts import AlertRule, EpisodeState, FireEvent, NoAction

logger = logging.getLogger(__name__)

RATE_DECIMALS = 6


def parse_threshold(raw: str | None) -> tuple[float | None, str | None]:
    cleaned = (raw or "").strip().replace(",", ".")
    if not cleaned:
        return None, "Threshold is required"
    try:
        value = float(cleaned)
    except ValueError:
        return None, "Expected numeric value"
    if value != value or value in (float("inf"), float("-inf")):
        return None, "Expected finite value"
    if value <= 0:
        return None, "Threshold must be positive"
    return value, None


def format_rate(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{RATE_DECIMALS}f}"


format_threshold = format_rate


def mask_recipient(recipient: str) -> str:
    """Mask the middle of a contact handle for read-back."""
    text = str(recipient or "")
    if len(text) > 7:
        return f"{text[:3]}{'*' * (len(text) - 7)}{text[-4:]}"
    if len(text) > 2:
        return f"{'*' * (len(text) - 2)}{text[-2:]}"
    return "*" * len(text)


def _now_ms() -> int:
    return int(time.time() * 1000)


class AlertEvaluator:
    """Per-rule ARMED/FIRED state machine.

    A rule fires once when the observed rate reaches its threshold and stays
    FIRED until the rate drops back below it. Episodes live in the store so
    rule edits (which reset them) and evaluation share one source of truth.
    """

    def __init__(self, store: AlertStore) -> None:
        self.store = store

    def evaluate(
        self, rule: AlertRule, observed_rate: float, now_ms: int | None = None
    ) -> FireEvent | object:
        if not rule.enabled:
            return NoAction
        episode = self.store.episode_for(rule.id)
        crossed = observed_rate >= rule.threshold

        if episode.state is EpisodeState.ARMED and crossed:
            fired_at = now_ms if now_ms is not None else _now_ms()
            episode.state = EpisodeState.FIRED
            episode.fired_at = fired_at
            episode.fired_rate = observed_rate
            self.store.save()
            logger.info(
                "Alert %s fired: rate %s >= threshold %s",
                rule.id,
                format_rate(observed_rate),
                format_threshold(rule.threshold),
            )
            return FireEvent(
                rule_id=rule.id,
                recipient=rule.recipient,
                threshold=rule.threshold,
                observed_rate=observed_rate,
                fired_at=fired_at,
            )

        if episode.state is EpisodeState.FIRED and not crossed:
            episode.state = EpisodeState.ARMED
            episode.fired_at = None
            episode.fired_rate = None
            self.store.save()
            logger.info(
                "Alert %s re-armed: rate %s < threshold %s",
                rule.id,
                format_rate(observed_rate),
                format_threshold(rule.threshold),
            )
        return NoAction

    def evaluate_all(
        self, observed_rate: float, now_ms: int | None = None
    ) -> list[FireEvent]:
        events: list[FireEvent] = []
        for rule in self.store.rules():
            result = self.evaluate(rule, observed_rate, now_ms)
            if isinstance(result, FireEvent):
                events.append(result)
        return events
