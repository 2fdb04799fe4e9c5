"""Monitoring session: rate series, analytics, alerts and delivery.

One evaluation cycle runs per new observation: append to the series, build the
analytics snapshot and recommendation, evaluate alert rules and dispatch any
fire events. ``append + evaluate`` and every rule edit hold the same lock, so
an edit that resets an episode never races with a fire decision. Delivery
happens after the lock is released; the episode is already FIRED by then.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from . import analytics
from .alert_store import AlertStore
from .alerting import AlertEvaluator, mask_recipient
from .errors import DataError, DeliveryError, EmptySeriesError
from .models.alerts import AlertEpisode, AlertRule, FireEvent
from .models.rates import (
    AnalyticsSnapshot,
    MarketInsights,
    RateObservation,
    Recommendation,
)
from .notify import DeliveryReceipt, NotificationDispatcher
from .recommendation import recommend_for_series
from .series import RateSeries
from .sources import RateSource

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    observation: RateObservation
    snapshot: AnalyticsSnapshot
    recommendation: Recommendation | None
    events: list[FireEvent] = field(default_factory=list)
    receipts: list[DeliveryReceipt] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class AlertCheck:
    observed_rate: float
    events: list[FireEvent] = field(default_factory=list)
    receipts: list[DeliveryReceipt] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AlertStatus:
    rule: AlertRule
    episode: AlertEpisode | None

    @property
    def masked_recipient(self) -> str:
        return mask_recipient(self.rule.recipient)

    @property
    def triggered(self) -> bool:
        return self.episode is not None and not self.episode.armed


class RateMonitor:
    def __init__(
        self,
        source: RateSource,
        dispatcher: NotificationDispatcher,
        store: AlertStore | None = None,
        series: RateSeries | None = None,
    ) -> None:
        self.source = source
        self.dispatcher = dispatcher
        self.store = store if store is not None else AlertStore()
        self.series = series if series is not None else RateSeries()
        self.evaluator = AlertEvaluator(self.store)
        self._lock = asyncio.Lock()

    # Evaluation cycle

    async def evaluate_and_maybe_dispatch(
        self, observation: RateObservation
    ) -> CycleResult:
        """Run one evaluation cycle for a new observation.

        Synthetic observations are stored for display but never evaluated
        against alert rules.

        Raises:
            OutOfOrderError: the observation is older than the series tail;
                nothing is evaluated.
        """
        warnings: list[str] = []
        async with self._lock:
            self.series.append(observation)
            snapshot = analytics.snapshot(self.series)
            recommendation = self._recommendation_or_none()
            if observation.is_synthetic:
                logger.warning(
                    "Skipping alert evaluation for synthetic rate=%.6f",
                    observation.rate,
                )
                warnings.append("Live rate unavailable; alerts not evaluated")
                events = []
            else:
                events = self.evaluator.evaluate_all(
                    observation.rate, observation.timestamp
                )

        result = CycleResult(
            observation=observation,
            snapshot=snapshot,
            recommendation=recommendation,
            events=events,
            warnings=warnings,
        )
        await self._dispatch_all(result)
        return result

    async def _dispatch_all(self, result: CycleResult | AlertCheck) -> None:
        for event in result.events:
            try:
                receipt = await self.dispatcher.dispatch(event)
            except DeliveryError as exc:
                logger.exception(
                    "Alert delivery to %s failed", mask_recipient(event.recipient)
                )
                result.warnings.append(
                    f"Alert for {mask_recipient(event.recipient)} fired but "
                    f"delivery failed: {exc.reason}"
                )
                continue
            result.receipts.append(receipt)

    async def check_alerts(self) -> CycleResult | None:
        """Re-evaluate every rule against the latest observation."""
        async with self._lock:
            try:
                latest = self.series.latest()
            except EmptySeriesError:
                return None
            snapshot = analytics.snapshot(self.series)
            recommendation = self._recommendation_or_none()
            if latest.is_synthetic:
                logger.warning("Latest observation is synthetic; skipping alert check")
                events = []
            else:
                events = self.evaluator.evaluate_all(latest.rate)
        result = CycleResult(
            observation=latest,
            snapshot=snapshot,
            recommendation=recommendation,
            events=events,
        )
        await self._dispatch_all(result)
        return result

    async def check_rate(self, observed_rate: float) -> AlertCheck:
        """Evaluate every enabled rule against a caller-supplied rate.

        The rate is not stored in the series.
        """
        async with self._lock:
            events = self.evaluator.evaluate_all(observed_rate)
        check = AlertCheck(observed_rate=observed_rate, events=events)
        await self._dispatch_all(check)
        return check

    # Refresh from the rate source

    async def refresh_current(self) -> CycleResult:
        observation = await asyncio.to_thread(self.source.fetch_current_rate)
        logger.info(
            "Fetched %s rate %.6f", observation.source, observation.rate
        )
        return await self.evaluate_and_maybe_dispatch(observation)

    async def refresh_history(self, window_days: int) -> int:
        """Merge a historical range into the series; returns points added."""
        observations = await asyncio.to_thread(
            self.source.fetch_historical_range, window_days
        )
        async with self._lock:
            if self.series.has_synthetic and any(
                not obs.is_synthetic for obs in observations
            ):
                added = self.series.replace_synthetic(observations)
            else:
                before = len(self.series)
                self.series.extend(observations)
                added = len(self.series) - before
        synthetic = sum(1 for obs in observations if obs.is_synthetic)
        if synthetic:
            logger.warning(
                "History refresh used %d synthetic observation(s)", synthetic
            )
        logger.info("History refresh added %d observation(s)", added)
        return added

    # Presentation

    def latest(self) -> RateObservation:
        return self.series.latest()

    def get_analytics_snapshot(self) -> AnalyticsSnapshot:
        return analytics.snapshot(self.series)

    def get_recommendation(self) -> Recommendation:
        return recommend_for_series(self.series)

    def get_market_insights(self) -> MarketInsights:
        return analytics.market_insights(self.series)

    def _recommendation_or_none(self) -> Recommendation | None:
        try:
            return recommend_for_series(self.series)
        except DataError as exc:
            logger.debug("No recommendation: %s", exc)
            return None

    # Alert rules

    async def save_alert_rule(
        self,
        recipient: str,
        threshold: float | None,
        enabled: bool,
        rule_id: str | None = None,
    ) -> AlertRule:
        async with self._lock:
            return self.store.save_rule(recipient, threshold, enabled, rule_id)

    async def set_alert_enabled(self, rule_id: str, enabled: bool) -> AlertRule | None:
        async with self._lock:
            return self.store.set_enabled(rule_id, enabled)

    async def remove_alert_rule(self, rule_id: str) -> bool:
        async with self._lock:
            return self.store.remove_rule(rule_id)

    async def reset_alerts(self) -> int:
        async with self._lock:
            return self.store.reset_all()

    def alert_status(self, rule_id: str | None = None) -> list[AlertStatus]:
        rules = self.store.rules()
        if rule_id is not None:
            rules = [rule for rule in rules if rule.id == str(rule_id)]
        return [
            AlertStatus(rule=rule, episode=self.store.peek_episode(rule.id))
            for rule in rules
        ]


def build_monitor(bot=None, state_file: str | None = None) -> RateMonitor:
    """Wire a monitor from configuration.

    Without a bot the dispatcher runs in demo mode and only logs alerts.
    """
    from . import config
    from .notify import DemoSender, TelegramSender
    from .sources import FallbackRateSource, HttpRateSource, SyntheticDataSource

    settings = config.settings
    live = HttpRateSource(
        base=settings.RATE_BASE,
        quote=settings.RATE_QUOTE,
        api_url=settings.RATE_API_URL,
        history_url=settings.RATE_HISTORY_URL,
        timeout=settings.RATE_TIMEOUT_S,
        max_retries=settings.RATE_MAX_RETRIES,
    )
    source = FallbackRateSource(live, SyntheticDataSource(seed=settings.SYNTHETIC_SEED))
    sender = TelegramSender(bot) if bot is not None else DemoSender()
    dispatcher = NotificationDispatcher(
        sender, base=settings.RATE_BASE, quote=settings.RATE_QUOTE
    )
    store = AlertStore(state_file)
    store.load()
    return RateMonitor(source=source, dispatcher=dispatcher, store=store)
