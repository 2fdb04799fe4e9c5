"""Command registry (single source of truth for help + wiring)."""

from __future__ import annotations

from .models.command_spec import CommandSpec, Group


_RATE_COMMANDS = (
    CommandSpec("rate", "Rates", "/rate", "current rate and daily change", "cmd_rate"),
    CommandSpec(
        "trend",
        "Rates",
        "/trend",
        "7/30-day trend, volatility and projection",
        "cmd_trend",
    ),
    CommandSpec(
        "history",
        "Rates",
        "/history [7d|30d|90d|1y]",
        "rate history with sparkline",
        "cmd_history",
    ),
    CommandSpec(
        "advice",
        "Rates",
        "/advice",
        "investment recommendation",
        "cmd_advice",
        aliases=("recommend",),
    ),
    CommandSpec(
        "insights",
        "Rates",
        "/insights",
        "30-day market insights and risk",
        "cmd_insights",
    ),
)

_ALERT_COMMANDS = (
    CommandSpec(
        "alert",
        "Alerts",
        "/alert [status|set <threshold>|on|off|remove]",
        "threshold alert for this chat",
        "cmd_alert",
    ),
    CommandSpec(
        "resetalerts",
        "Alerts",
        "/resetalerts",
        "re-arm every alert (requires /auth)",
        "cmd_resetalerts",
        sensitive=True,
    ),
)

_INFO_COMMANDS = (
    CommandSpec("start", "Info", "/start", "show help", "cmd_start"),
    CommandSpec("help", "Info", "/help", "this menu", "cmd_help"),
    CommandSpec("whoami", "Info", "/whoami", "show chat and user info", "cmd_whoami"),
    CommandSpec(
        "auth",
        "Info",
        "/auth <code>",
        "authorize sensitive commands for 24 hours",
        "cmd_auth",
    ),
    CommandSpec(
        "metrics",
        "Info",
        "/metrics",
        "command metrics summary",
        "cmd_metrics",
        sensitive=True,
    ),
)

COMMANDS: tuple[CommandSpec, ...] = (
    *_RATE_COMMANDS,
    *_ALERT_COMMANDS,
    *_INFO_COMMANDS,
)

GROUP_ORDER: tuple[Group, ...] = ("Rates", "Alerts", "Info")
