"""Shared handler helpers: auth guard, rate limit, error replies."""

from __future__ import annotations

import functools
import html
import logging
import time
from typing import TYPE_CHECKING, Callable

from telegram.constants import ParseMode

from .. import config
from ..state import BotState, get_state

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from telegram import Update
    from telegram.ext import ContextTypes


# Global rate limit (seconds) for all commands.
_last_command_ts = 0.0
# Handlers only interleave at await points, so a plain float check is enough.
_DAY_S = 24 * 60 * 60  # 24 hours
_AUTH_TTL_S = _DAY_S


def auth_ttl_seconds() -> int:
    return _AUTH_TTL_S


async def record_error(
    command: str,
    message: str,
    exc: Exception,
    reply,
    log: logging.Logger | None = None,
):
    (log or logger).exception("%s: %s", command, message)
    await reply(f"❌ Error: {html.escape(str(exc))}", parse_mode=ParseMode.HTML)


def allowed(update: "Update") -> bool:
    """Check if the update sender is authorized to use the bot.

    Args:
        update: Telegram Update object containing chat information

    Returns:
        True if the chat ID is in the ALLOWED list, False otherwise.

    Note:
        Returns False if ALLOWED_CHAT_IDS is empty or update has no chat.
    """
    if not config.ALLOWED:
        return False
    if not update.effective_chat:
        return False
    chat_id = update.effective_chat.id
    effective_user = getattr(update, "effective_user", None)
    user_id = getattr(effective_user, "id", None)
    # Only private chats where chat_id == user_id and the user is allow-listed.
    if user_id is None:
        return chat_id in config.ALLOWED
    return chat_id == user_id and user_id in config.ALLOWED


async def guard(update: "Update", context: "ContextTypes.DEFAULT_TYPE") -> bool:
    """Check authorization before running a command.

    Args:
        update: Telegram Update object
        context: Telegram context object

    Returns:
        True if authorized, False otherwise. Sends "⛔ Not authorized" on
        failure.

    Note:
        Every rate and alert command goes through this guard.
    """
    if allowed(update):
        return True
    if update and update.effective_chat:
        await update.effective_chat.send_message("⛔ Not authorized")
    return False


def _auth_valid(state: BotState, user_id: int) -> bool:
    now = time.monotonic()
    expiry = state.auth_grants.get(user_id)
    if not expiry or expiry <= now:
        state.auth_grants.pop(user_id, None)
        return False
    return True


async def guard_sensitive(
    update: "Update", context: "ContextTypes.DEFAULT_TYPE"
) -> bool:
    if not await guard(update, context):
        return False
    if not config.BOT_AUTH_TOTP_SECRET:
        if update and update.effective_chat:
            await update.effective_chat.send_message(
                "⛔ Auth secret not configured. Set BOT_AUTH_TOTP_SECRET."
            )
        return False
    if not update or not update.effective_user:
        return False
    state = get_state(context.application)
    if _auth_valid(state, update.effective_user.id):
        return True
    if update and update.effective_chat:
        await update.effective_chat.send_message(
            "🔒 Please authenticate with /auth <code> (valid for 24 hours)."
        )
    return False


def rate_limit(func: Callable, name: str | None = None) -> Callable:
    """Decorator to enforce global rate limiting on command handlers.

    Args:
        func: The async command handler function to wrap
        name: Metrics key; defaults to the handler name without ``cmd_``

    Returns:
        Wrapped function that enforces rate limiting based on config.RATE_LIMIT_S

    Note:
        Uses a global timestamp check, so the limit applies across all
        commands. A limited command gets a wait notice and is counted in
        ``rate_limited``; every other run is timed and recorded in the
        command metrics.
    """

    command_name = name or func.__name__.removeprefix("cmd_")

    @functools.wraps(func)
    async def wrapper(
        update: "Update", context: "ContextTypes.DEFAULT_TYPE", *args, **kwargs
    ):
        global _last_command_ts
        now = time.monotonic()
        elapsed = now - _last_command_ts
        state = get_state(context.application)

        if elapsed < config.RATE_LIMIT_S:
            if update and getattr(update, "effective_message", None):
                try:
                    await update.effective_message.reply_text(
                        f"⏱ Rate limit: please wait {config.RATE_LIMIT_S - elapsed:.1f}s",
                    )
                except Exception as e:
                    logger.debug("rate-limit notice failed to send: %s", e)
            state.record_rate_limited(command_name)
            return

        _last_command_ts = now
        start = time.perf_counter()
        try:
            result = await func(update, context, *args, **kwargs)
        except Exception as e:
            state.record_command(
                command_name, time.perf_counter() - start, ok=False, error_msg=str(e)
            )
            raise
        state.record_command(
            command_name, time.perf_counter() - start, ok=True, error_msg=None
        )
        return result

    return wrapper


async def reply_usage(update: "Update", usage_html: str) -> None:
    await update.message.reply_text(
        f"<i>Usage:</i> {usage_html}", parse_mode=ParseMode.HTML
    )
