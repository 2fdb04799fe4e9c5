"""Shared access to BotState stored on the Application."""

from __future__ import annotations

from .models.bot_state import BOT_STATE_KEY, BotState


def get_state(app) -> BotState:
    """Retrieve the bot state from application data.

    Args:
        app: The Telegram Application instance

    Returns:
        BotState holding the monitoring session and runtime bookkeeping.

    Raises:
        RuntimeError: if the Application was not built by ``build_application``
            and no state was seeded.
    """
    state = app.bot_data.get(BOT_STATE_KEY)
    if state is None:
        raise RuntimeError("Bot state is not initialised; use build_application()")
    return state


__all__ = ["BOT_STATE_KEY", "BotState", "get_state"]
