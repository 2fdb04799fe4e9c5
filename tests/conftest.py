"""Shared test fixtures and dummy classes."""

from __future__ import annotations

from typing import Any

import pytest

from tele_rate_monitor.alert_store import AlertStore
from tele_rate_monitor.models.rates import DAY_MS, RateObservation
from tele_rate_monitor.monitor import RateMonitor
from tele_rate_monitor.notify import DemoSender, NotificationDispatcher
from tele_rate_monitor.series import RateSeries
from tele_rate_monitor.state import BOT_STATE_KEY, BotState

DAY0 = 1_700_000_000_000 - (1_700_000_000_000 % DAY_MS)


def obs(day: int, rate: float, source: str = "live") -> RateObservation:
    return RateObservation(timestamp=DAY0 + day * DAY_MS, rate=rate, source=source)


def make_series(rates: list[float], start_day: int = 0) -> RateSeries:
    return RateSeries(obs(start_day + i, rate) for i, rate in enumerate(rates))


class DummyChat:
    """Dummy Telegram chat for testing."""

    def __init__(self, chat_id: int) -> None:
        self.id = chat_id
        self.type = "private"
        self.sent: list[str] = []

    async def send_message(self, text: str) -> None:
        self.sent.append(text)


class DummyUser:
    """Dummy Telegram user for testing."""

    def __init__(self, user_id: int, username: str | None = None) -> None:
        self.id = user_id
        self.username = username


class DummyMessage:
    """Dummy Telegram message for testing."""

    def __init__(self) -> None:
        self.replies: list[str] = []
        self.kwargs: list[dict[str, Any]] = []

    async def reply_text(self, text: str, **kwargs: Any) -> None:
        self.replies.append(text)
        self.kwargs.append(kwargs)


class DummyQuery:
    """Dummy callback query for inline keyboard tests."""

    def __init__(self, data: str) -> None:
        self.data = data
        self.answers: list[str | None] = []
        self.edits: list[str] = []
        self.edit_kwargs: list[dict[str, Any]] = []

    async def answer(self, text: str | None = None, **_: Any) -> None:
        self.answers.append(text)

    async def edit_message_text(self, text: str, **kwargs: Any) -> None:
        self.edits.append(text)
        self.edit_kwargs.append(kwargs)


class DummyUpdate:
    """Dummy Telegram update for testing."""

    def __init__(self, chat_id: int, user_id: int, callback_data: str | None = None) -> None:
        self.effective_chat = DummyChat(chat_id)
        self.effective_user = DummyUser(user_id)
        self.message = DummyMessage()
        self.effective_message = self.message
        self.callback_query = DummyQuery(callback_data) if callback_data else None


class DummyApplication:
    """Dummy Telegram application for testing."""

    def __init__(self) -> None:
        self.bot_data: dict[str, object] = {}


class DummyContext:
    """Dummy Telegram context for testing."""

    def __init__(self, args: list[str] | None = None) -> None:
        self.args = args or []
        self.application = DummyApplication()
        self.application.bot_data[BOT_STATE_KEY] = BotState(monitor=make_monitor())


class DummyResponse:
    """Dummy HTTP response for testing."""

    def __init__(self, data: object, status: int = 200, text: str = "") -> None:
        self._data = data
        self.status_code = status
        self.text = text or str(data)
        self.ok = 200 <= status < 300

    def json(self) -> object:
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class FakeSource:
    """Rate source that replays queued observations."""

    name = "fake"

    def __init__(
        self,
        current: list[RateObservation] | None = None,
        history: list[RateObservation] | None = None,
    ) -> None:
        self.current = list(current or [])
        self.history = list(history or [])
        self.history_calls: list[int] = []

    def fetch_current_rate(self) -> RateObservation:
        return self.current.pop(0)

    def fetch_historical_range(self, window_days: int) -> list[RateObservation]:
        self.history_calls.append(window_days)
        return list(self.history)


class RecordingSender:
    """Message sender that records deliveries and can be told to fail."""

    name = "recording"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, recipient: str, text: str) -> str | None:
        if self.fail:
            raise ConnectionError("provider unreachable")
        self.sent.append((recipient, text))
        return f"msg-{len(self.sent)}"


def make_monitor(
    rates: list[float] | None = None,
    sender=None,
    source: FakeSource | None = None,
    store: AlertStore | None = None,
) -> RateMonitor:
    dispatcher = NotificationDispatcher(sender or DemoSender(), base="THB", quote="USD")
    return RateMonitor(
        source=source or FakeSource(),
        dispatcher=dispatcher,
        store=store or AlertStore(),
        series=make_series(rates or []),
    )


def install_state(context: DummyContext, monitor: RateMonitor) -> BotState:
    state = BotState(monitor=monitor)
    context.application.bot_data[BOT_STATE_KEY] = state
    return state


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()
