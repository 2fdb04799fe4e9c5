"""Alert delivery through a messaging capability (Telegram or demo log)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .alerting import format_rate, format_threshold, mask_recipient
from .errors import DeliveryError
from .models.alerts import FireEvent

logger = logging.getLogger(__name__)

ALERT_TEMPLATE = (
    "🚨 {base} Investment Alert: {base} has strengthened to {rate} {quote} per "
    "{base}, reaching your target threshold of {threshold}. "
    "Consider investing in {quote} now!"
)


class MessageSender(Protocol):
    name: str

    async def send_message(self, recipient: str, text: str) -> str | None:
        """Deliver ``text`` and return a provider message id if there is one."""


class TelegramSender:
    name = "telegram"

    def __init__(self, bot) -> None:
        self._bot = bot

    async def send_message(self, recipient: str, text: str) -> str | None:
        message = await self._bot.send_message(chat_id=recipient, text=text)
        message_id = getattr(message, "message_id", None)
        return str(message_id) if message_id is not None else None


class DemoSender:
    """Logs messages instead of sending them (no bot token configured)."""

    name = "demo"

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, recipient: str, text: str) -> str | None:
        self.sent.append((recipient, text))
        logger.info("Alert (demo mode) to %s: %s", mask_recipient(recipient), text)
        return None


@dataclass(frozen=True)
class DeliveryReceipt:
    recipient: str
    provider: str
    message_id: str | None = None

    @property
    def demo(self) -> bool:
        return self.provider == DemoSender.name


def build_alert_message(event: FireEvent, base: str = "THB", quote: str = "USD") -> str:
    return ALERT_TEMPLATE.format(
        base=base,
        quote=quote,
        rate=format_rate(event.observed_rate),
        threshold=format_threshold(event.threshold),
    )


class NotificationDispatcher:
    """Sends one message per FireEvent; never retries.

    The evaluator already guarantees at most one FireEvent per episode, so
    the dispatcher does not deduplicate.
    """

    def __init__(self, sender: MessageSender, base: str = "THB", quote: str = "USD") -> None:
        self.sender = sender
        self.base = base
        self.quote = quote

    async def send_text(self, recipient: str, text: str) -> DeliveryReceipt:
        try:
            message_id = await self.sender.send_message(recipient, text)
        except Exception as exc:
            raise DeliveryError(recipient, str(exc) or type(exc).__name__) from exc
        return DeliveryReceipt(
            recipient=recipient, provider=self.sender.name, message_id=message_id
        )

    async def dispatch(self, event: FireEvent) -> DeliveryReceipt:
        text = build_alert_message(event, self.base, self.quote)
        receipt = await self.send_text(event.recipient, text)
        logger.info(
            "Alert %s delivered via %s to %s",
            event.rule_id,
            receipt.provider,
            mask_recipient(event.recipient),
        )
        return receipt
