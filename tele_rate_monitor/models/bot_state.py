"""Bot runtime state (monitor session, scheduler, auth grants, metrics)."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from ..monitor import RateMonitor
from .metrics import CommandMetrics

MAX_LATENCY_SAMPLES = 200


@dataclass
class BotState:
    """Runtime state for the bot: the monitoring session and bookkeeping."""

    monitor: RateMonitor
    scheduler: object | None = None

    # Auth grants (user_id -> monotonic expiry timestamp)
    auth_grants: dict[int, float] = field(default_factory=dict)

    # History period per chat (chat_id -> period key such as "30d")
    history_period: dict[int, str] = field(default_factory=dict)

    command_metrics: dict[str, CommandMetrics] = field(default_factory=dict)

    def metrics_for(self, name: str) -> CommandMetrics:
        return self.command_metrics.setdefault(name, CommandMetrics())

    def record_command(
        self, name: str, latency_s: float, ok: bool, error_msg: str | None
    ) -> None:
        metrics = self.metrics_for(name)
        metrics.count += 1
        metrics.last_run_ts = time.time()
        if ok:
            metrics.success += 1
        else:
            metrics.error += 1
            metrics.last_error = error_msg
        metrics.total_latency_s += latency_s
        metrics.max_latency_s = max(metrics.max_latency_s, latency_s)
        metrics.latencies_s.append(latency_s)
        if len(metrics.latencies_s) > MAX_LATENCY_SAMPLES:
            metrics.latencies_s.pop(0)

    def record_rate_limited(self, name: str) -> None:
        metrics = self.metrics_for(name)
        metrics.rate_limited += 1


BOT_STATE_KEY = "state"
