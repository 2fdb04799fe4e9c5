"""Rate, analytics and recommendation commands."""

from __future__ import annotations

import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ParseMode

from .. import config, view
from ..errors import DataError, EmptySeriesError
from ..monitor import RateMonitor
from .common import get_state, guard, record_error

logger = logging.getLogger(__name__)

HISTORY_PERIODS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_PERIOD = "30d"


def normalize_period(raw: str | None) -> str | None:
    key = (raw or "").strip().lower()
    aliases = {"7": "7d", "30": "30d", "90": "90d", "365": "1y", "365d": "1y"}
    key = aliases.get(key, key)
    return key if key in HISTORY_PERIODS else None


def build_period_keyboard(selected: str) -> InlineKeyboardMarkup:
    buttons = [
        InlineKeyboardButton(
            f"• {key} •" if key == selected else key,
            callback_data=f"history:{key}",
        )
        for key in HISTORY_PERIODS
    ]
    return InlineKeyboardMarkup([buttons])


def render_history_for(monitor: RateMonitor, period: str) -> str:
    window = monitor.series.slice(HISTORY_PERIODS[period])
    return view.render_history(list(window), period)


async def _ensure_observation(monitor: RateMonitor) -> None:
    """Fetch a first observation when the series is still empty."""
    if len(monitor.series):
        return
    result = await monitor.refresh_current()
    for warning in result.warnings:
        logger.warning(warning)


async def cmd_rate(update, context) -> None:
    if not await guard(update, context):
        return
    monitor = get_state(context.application).monitor
    try:
        await _ensure_observation(monitor)
        msg = view.render_rate(
            monitor.latest(),
            monitor.series.previous(),
            config.RATE_BASE,
            config.RATE_QUOTE,
        )
    except Exception as e:
        await record_error("rate", "Rate lookup failed", e, update.message.reply_text)
        return
    await update.message.reply_text(msg, parse_mode=ParseMode.HTML)


async def cmd_trend(update, context) -> None:
    if not await guard(update, context):
        return
    monitor = get_state(context.application).monitor
    try:
        await _ensure_observation(monitor)
        snapshot = monitor.get_analytics_snapshot()
    except Exception as e:
        await record_error("trend", "Trend analysis failed", e, update.message.reply_text)
        return
    msg = view.render_snapshot(snapshot, synthetic=monitor.series.has_synthetic)
    await update.message.reply_text(msg, parse_mode=ParseMode.HTML)


async def cmd_history(update, context) -> None:
    if not await guard(update, context):
        return
    state = get_state(context.application)
    chat_id = update.effective_chat.id
    if context.args:
        period = normalize_period(context.args[0])
        if period is None:
            await update.message.reply_text(
                f"Unknown period. Use one of: {', '.join(HISTORY_PERIODS)}"
            )
            return
    else:
        period = state.history_period.get(chat_id, DEFAULT_PERIOD)
    state.history_period[chat_id] = period
    msg = render_history_for(state.monitor, period)
    await update.message.reply_text(
        msg, parse_mode=ParseMode.HTML, reply_markup=build_period_keyboard(period)
    )


async def cmd_advice(update, context) -> None:
    if not await guard(update, context):
        return
    monitor = get_state(context.application).monitor
    try:
        rec = monitor.get_recommendation()
    except DataError as e:
        await update.message.reply_text(f"📊 Not enough data for a recommendation yet ({e}).")
        return
    msg = view.render_recommendation(
        rec, config.RATE_BASE, config.RATE_QUOTE, synthetic=monitor.series.has_synthetic
    )
    await update.message.reply_text(msg, parse_mode=ParseMode.HTML)


async def cmd_insights(update, context) -> None:
    if not await guard(update, context):
        return
    monitor = get_state(context.application).monitor
    try:
        insights = monitor.get_market_insights()
    except EmptySeriesError:
        await update.message.reply_text("📊 No rate data yet.")
        return
    except DataError as e:
        await update.message.reply_text(f"📊 Not enough data for insights yet ({e}).")
        return
    msg = view.render_insights(
        insights, config.RATE_BASE, config.RATE_QUOTE, synthetic=monitor.series.has_synthetic
    )
    await update.message.reply_text(msg, parse_mode=ParseMode.HTML)
