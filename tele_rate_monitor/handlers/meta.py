from __future__ import annotations

import logging
import time

import pyotp
from telegram.constants import ParseMode

from .. import config, view
from ..background import ensure_started
from ..commands import COMMANDS, GROUP_ORDER
from .common import auth_ttl_seconds, get_state, guard, guard_sensitive

logger = logging.getLogger(__name__)


def _render_help() -> str:
    by_group: dict[str, list[str]] = {}
    for spec in COMMANDS:
        line = f"{spec.usage} – {spec.description}"
        if spec.sensitive:
            line += " 🔒"
        by_group.setdefault(spec.group, []).append(line)
    lines: list[str] = [
        f"Hi! I track the {config.RATE_BASE} → {config.RATE_QUOTE} rate. Commands:\n"
    ]
    for group in GROUP_ORDER:
        entries = by_group.get(group, [])
        if not entries:
            continue
        lines.append(group)
        lines.extend(entries)
        lines.append("")
    return "\n".join(lines).strip()


async def cmd_start(update, context) -> None:
    if not await guard(update, context):
        return
    try:
        ensure_started(context.application)
    except RuntimeError as e:
        logger.debug("ensure_started failed: %s", e)
    await update.message.reply_text(_render_help())


async def cmd_help(update, context) -> None:
    await cmd_start(update, context)


async def cmd_whoami(update, context) -> None:
    c = update.effective_chat
    u = update.effective_user
    username = f"@{u.username}" if u and u.username else "(no username)"
    msg = f"chat_id: {c.id}\nchat_type: {c.type}\nuser: {username}"
    await update.message.reply_text(msg)


async def cmd_auth(update, context) -> None:
    if not await guard(update, context):
        return
    if not config.BOT_AUTH_TOTP_SECRET:
        await update.message.reply_text("⛔ BOT_AUTH_TOTP_SECRET is not configured.")
        return
    if not context.args:
        await update.message.reply_text("Usage: /auth <code>")
        return
    provided = "".join(context.args).strip().replace("-", "")
    if not provided.isdigit():
        await update.message.reply_text("❌ Invalid auth code.")
        return
    try:
        valid = pyotp.TOTP(config.BOT_AUTH_TOTP_SECRET).verify(
            provided, valid_window=1
        )
    except Exception as e:
        logger.exception("TOTP validation failed")
        await update.message.reply_text(f"❌ Auth error: {e}")
        return
    if not valid:
        await update.message.reply_text("❌ Invalid auth code.")
        return
    state = get_state(context.application)
    state.auth_grants[update.effective_user.id] = (
        time.monotonic() + auth_ttl_seconds()
    )
    await update.message.reply_text("✅ Authorized for 24 hours.")


async def cmd_metrics(update, context) -> None:
    if not await guard_sensitive(update, context):
        return
    state = get_state(context.application)
    msg = view.render_command_metrics(state.command_metrics)
    for part in view.chunk(msg):
        await update.message.reply_text(part, parse_mode=ParseMode.HTML)
