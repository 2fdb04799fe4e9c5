from __future__ import annotations

import html
import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ParseMode

from .. import config, view
from ..alerting import format_threshold, parse_threshold
from ..errors import ValidationError
from ..monitor import RateMonitor
from .common import get_state, guard, guard_sensitive, reply_usage

logger = logging.getLogger(__name__)

_USAGE = "/alert [status|set &lt;threshold&gt;|on|off|remove]"


def build_alert_keyboard(rule) -> InlineKeyboardMarkup | None:
    if rule is None:
        return None
    toggle_label = "Disable" if rule.enabled else "Enable"
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(toggle_label, callback_data="alert:toggle"),
                InlineKeyboardButton("Remove", callback_data="alert:remove"),
            ]
        ]
    )


def render_alert_overview(
    monitor: RateMonitor, chat_id: int
) -> tuple[str, InlineKeyboardMarkup | None]:
    recipient = str(chat_id)
    statuses = monitor.alert_status(recipient)
    msg = view.render_alert_status(statuses, config.RATE_BASE, config.RATE_QUOTE)
    return msg, build_alert_keyboard(monitor.store.get_rule(recipient))


async def cmd_alert(update, context) -> None:
    if not await guard(update, context):
        return
    chat_id = update.effective_chat.id if update.effective_chat else None
    if chat_id is None:
        return
    monitor = get_state(context.application).monitor
    recipient = str(chat_id)

    args = [a.strip() for a in (context.args or []) if a.strip()]
    action = args[0].lower() if args else "status"

    if action in {"status", "list"}:
        msg, keyboard = render_alert_overview(monitor, chat_id)
        await update.message.reply_text(
            msg, parse_mode=ParseMode.HTML, reply_markup=keyboard
        )
        return

    if action in {"set", "add"}:
        if len(args) < 2:
            await reply_usage(update, "/alert set &lt;threshold&gt; (e.g. 0.0285)")
            return
        threshold, error = parse_threshold(args[1])
        if error:
            await update.message.reply_text(f"❌ {error}")
            return
        try:
            rule = await monitor.save_alert_rule(recipient, threshold, True)
        except ValidationError as e:
            await update.message.reply_text(f"❌ {e}")
            return
        await update.message.reply_text(
            f"✅ Alert set: notify when {html.escape(config.RATE_BASE)} ≥ "
            f"<code>{format_threshold(rule.threshold)}</code> "
            f"{html.escape(config.RATE_QUOTE)}",
            parse_mode=ParseMode.HTML,
        )
        return

    if action in {"on", "off"}:
        rule = await monitor.set_alert_enabled(recipient, action == "on")
        if rule is None:
            await update.message.reply_text(
                "No alert configured. Use /alert set <threshold> first."
            )
            return
        await update.message.reply_text(
            f"Alert: <b>{'ON' if rule.enabled else 'OFF'}</b>",
            parse_mode=ParseMode.HTML,
        )
        return

    if action in {"remove", "delete", "rm"}:
        removed = await monitor.remove_alert_rule(recipient)
        await update.message.reply_text(
            "🗑 Alert removed." if removed else "No alert configured."
        )
        return

    await reply_usage(update, _USAGE)


async def cmd_resetalerts(update, context) -> None:
    if not await guard_sensitive(update, context):
        return
    monitor = get_state(context.application).monitor
    count = await monitor.reset_alerts()
    logger.info("Reset %d alert episode(s)", count)
    await update.message.reply_text(f"🔄 Re-armed {count} alert(s).")
