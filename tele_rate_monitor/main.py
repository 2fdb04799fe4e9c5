"""Entrypoint for running the Telegram bot from the package.

This module wires up the Application, registers handlers and runs polling.
"""

from __future__ import annotations

import logging

from telegram import BotCommand
from telegram.ext import Application, CallbackQueryHandler, CommandHandler

from . import config
from .background import ensure_started
from .commands import COMMANDS
from .handlers import dispatch
from .handlers.callbacks import handle_callback_query
from .logger import setup_logging
from .monitor import build_monitor
from .runtime import STARTUP_TIME
from .state import BOT_STATE_KEY, BotState, get_state

logger = logging.getLogger(__name__)


def build_application() -> Application:
    if config.TOKEN is None:
        raise RuntimeError("BOT_TOKEN environment variable is not set")

    app = Application.builder().token(config.TOKEN).build()

    monitor = build_monitor(bot=app.bot, state_file=config.STATE_FILE)
    app.bot_data.setdefault(BOT_STATE_KEY, BotState(monitor=monitor))

    for spec in COMMANDS:
        fn = getattr(dispatch, spec.handler)
        app.add_handler(CommandHandler([spec.name, *spec.aliases], fn))

    app.add_handler(CallbackQueryHandler(handle_callback_query))

    app.post_init = on_startup
    app.post_shutdown = on_shutdown
    return app


async def register_bot_commands(app: Application) -> None:
    """Register bot commands for Telegram autocomplete."""
    try:
        bot_commands = [BotCommand(spec.name, spec.description) for spec in COMMANDS]
        await app.bot.set_my_commands(bot_commands)
        logger.info("Registered %d commands for autocomplete", len(bot_commands))
    except Exception as e:
        logger.warning("Failed to register bot commands: %s", e)


async def on_startup(app: Application) -> None:
    """Load history, start refresh jobs and notify allowed chats."""
    state = get_state(app)
    # History first: later history merges never overwrite newer entries.
    try:
        added = await state.monitor.refresh_history(config.HISTORY_DAYS)
        logger.info("Loaded %d historical observation(s)", added)
    except Exception:
        logger.exception("Initial history load failed")

    ensure_started(app)
    await register_bot_commands(app)

    if not config.ALLOWED:
        logger.warning("No ALLOWED_CHAT_IDS configured, skipping startup notification")
        return

    startup_msg = (
        f"💱 Rate monitor for {config.RATE_BASE} → {config.RATE_QUOTE} started at "
        f"{STARTUP_TIME.strftime('%Y-%m-%d %H:%M:%S')}"
    )
    for chat_id in config.ALLOWED:
        try:
            await app.bot.send_message(chat_id=chat_id, text=startup_msg)
        except Exception as e:
            logger.warning(
                "Failed to send startup notification to chat_id %s: %s", chat_id, e
            )


async def on_shutdown(app: Application) -> None:
    state = get_state(app)
    if state.scheduler is not None:
        await state.scheduler.stop()
    state.monitor.store.save()


def run() -> None:
    setup_logging()
    logger.info("Starting tele_rate_monitor")
    app = build_application()
    # keep stop_signals None so container shutdown behaves normally
    app.run_polling(stop_signals=None)


if __name__ == "__main__":
    run()
