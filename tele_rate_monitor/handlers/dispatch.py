"""Dispatch layer: applies rate limiting then calls the real handlers."""

from __future__ import annotations

from . import alerts, meta, rates
from .common import rate_limit


# Meta
cmd_start = rate_limit(meta.cmd_start, name="start")
cmd_help = rate_limit(meta.cmd_help, name="help")
cmd_whoami = rate_limit(meta.cmd_whoami, name="whoami")
cmd_auth = rate_limit(meta.cmd_auth, name="auth")
cmd_metrics = rate_limit(meta.cmd_metrics, name="metrics")

# Rates
cmd_rate = rate_limit(rates.cmd_rate, name="rate")
cmd_trend = rate_limit(rates.cmd_trend, name="trend")
cmd_history = rate_limit(rates.cmd_history, name="history")
cmd_advice = rate_limit(rates.cmd_advice, name="advice")
cmd_insights = rate_limit(rates.cmd_insights, name="insights")

# Alerts
cmd_alert = rate_limit(alerts.cmd_alert, name="alert")
cmd_resetalerts = rate_limit(alerts.cmd_resetalerts, name="resetalerts")
