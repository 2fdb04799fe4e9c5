"""Callback query handlers for inline keyboard buttons."""

from __future__ import annotations

import logging

from telegram.constants import ParseMode
from telegram.error import BadRequest

from .alerts import render_alert_overview
from .common import allowed, get_state
from .rates import build_period_keyboard, normalize_period, render_history_for

logger = logging.getLogger(__name__)


async def _safe_edit_message_text(query, text: str, **kwargs) -> None:
    try:
        await query.edit_message_text(text, **kwargs)
    except BadRequest as exc:
        if "Message is not modified" in str(exc):
            return
        raise


async def _handle_history(query, state, chat_id: int, payload: str) -> None:
    period = normalize_period(payload)
    if period is None:
        await query.answer("Unknown period")
        return
    state.history_period[chat_id] = period
    await query.answer()
    await _safe_edit_message_text(
        query,
        render_history_for(state.monitor, period),
        parse_mode=ParseMode.HTML,
        reply_markup=build_period_keyboard(period),
    )


async def _handle_alert(query, state, chat_id: int, action: str) -> None:
    monitor = state.monitor
    recipient = str(chat_id)
    rule = monitor.store.get_rule(recipient)
    if rule is None:
        await query.answer("No alert configured")
        return
    if action == "toggle":
        await monitor.set_alert_enabled(recipient, not rule.enabled)
    elif action == "remove":
        await monitor.remove_alert_rule(recipient)
    else:
        await query.answer("Unknown action")
        return
    await query.answer()
    msg, keyboard = render_alert_overview(monitor, chat_id)
    await _safe_edit_message_text(
        query, msg, parse_mode=ParseMode.HTML, reply_markup=keyboard
    )


async def handle_callback_query(update, context) -> None:
    query = update.callback_query
    if query is None:
        return
    if not allowed(update):
        await query.answer("⛔ Not authorized")
        return
    chat_id = update.effective_chat.id
    state = get_state(context.application)
    prefix, _, payload = (query.data or "").partition(":")
    if prefix == "history":
        await _handle_history(query, state, chat_id, payload)
    elif prefix == "alert":
        await _handle_alert(query, state, chat_id, payload)
    else:
        logger.debug("Ignoring callback data %r", query.data)
        await query.answer()
