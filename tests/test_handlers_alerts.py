import pytest

from tele_rate_monitor import config
from tele_rate_monitor.handlers import alerts, callbacks

from conftest import DummyContext, DummyUpdate, install_state, make_monitor


@pytest.fixture(autouse=True)
def allow_chat(monkeypatch) -> None:
    monkeypatch.setattr(config, "ALLOWED", {123})


def _setup(args: list[str] | None = None):
    update = DummyUpdate(chat_id=123, user_id=123)
    context = DummyContext(args=args)
    monitor = make_monitor([0.027])
    install_state(context, monitor)
    return update, context, monitor


@pytest.mark.asyncio
async def test_alert_status_without_rule_shows_usage() -> None:
    update, context, _ = _setup()

    await alerts.cmd_alert(update, context)

    assert "none configured" in update.message.replies[0]
    assert update.message.kwargs[0]["reply_markup"] is None


@pytest.mark.asyncio
async def test_alert_set_creates_rule_for_chat() -> None:
    update, context, monitor = _setup(["set", "0.0285"])

    await alerts.cmd_alert(update, context)

    rule = monitor.store.get_rule("123")
    assert rule.threshold == 0.0285
    assert rule.enabled
    assert "<code>0.028500</code>" in update.message.replies[0]


@pytest.mark.asyncio
async def test_alert_set_rejects_bad_threshold() -> None:
    update, context, monitor = _setup(["set", "-1"])

    await alerts.cmd_alert(update, context)

    assert update.message.replies == ["❌ Threshold must be positive"]
    assert monitor.store.get_rule("123") is None


@pytest.mark.asyncio
async def test_alert_set_without_value_shows_usage() -> None:
    update, context, _ = _setup(["set"])

    await alerts.cmd_alert(update, context)

    assert update.message.replies[0].startswith("<i>Usage:</i> /alert set")


@pytest.mark.asyncio
async def test_alert_off_and_on() -> None:
    update, context, monitor = _setup(["off"])

    await alerts.cmd_alert(update, context)
    assert update.message.replies[0].startswith("No alert configured")

    await monitor.save_alert_rule("123", 0.0275, True)
    await alerts.cmd_alert(update, context)
    assert update.message.replies[1] == "Alert: <b>OFF</b>"
    assert not monitor.store.get_rule("123").enabled

    context.args = ["on"]
    await alerts.cmd_alert(update, context)
    assert monitor.store.get_rule("123").enabled


@pytest.mark.asyncio
async def test_alert_status_shows_masked_recipient_and_state() -> None:
    update, context, monitor = _setup()
    await monitor.save_alert_rule("123", 0.0275, True)
    await monitor.check_rate(0.028)

    await alerts.cmd_alert(update, context)

    text = update.message.replies[0]
    assert "<code>*23</code>" in text
    assert "(triggered)" in text
    assert update.message.kwargs[0]["reply_markup"] is not None


@pytest.mark.asyncio
async def test_alert_remove() -> None:
    update, context, monitor = _setup(["remove"])
    await monitor.save_alert_rule("123", 0.0275, True)

    await alerts.cmd_alert(update, context)

    assert update.message.replies == ["🗑 Alert removed."]
    assert monitor.store.get_rule("123") is None


@pytest.mark.asyncio
async def test_unknown_action_shows_usage() -> None:
    update, context, _ = _setup(["explode"])

    await alerts.cmd_alert(update, context)

    assert "<i>Usage:</i> /alert [status|set" in update.message.replies[0]


@pytest.mark.asyncio
async def test_toggle_button_disables_rule() -> None:
    update = DummyUpdate(chat_id=123, user_id=123, callback_data="alert:toggle")
    context = DummyContext()
    monitor = make_monitor()
    install_state(context, monitor)
    await monitor.save_alert_rule("123", 0.0275, True)

    await callbacks.handle_callback_query(update, context)

    assert not monitor.store.get_rule("123").enabled
    assert "<b>Alert:</b> OFF" in update.callback_query.edits[0]


@pytest.mark.asyncio
async def test_button_without_rule_answers_only() -> None:
    update = DummyUpdate(chat_id=123, user_id=123, callback_data="alert:remove")
    context = DummyContext()
    install_state(context, make_monitor())

    await callbacks.handle_callback_query(update, context)

    assert update.callback_query.answers == ["No alert configured"]
    assert update.callback_query.edits == []


@pytest.mark.asyncio
async def test_callback_from_unlisted_chat_is_refused() -> None:
    update = DummyUpdate(chat_id=7, user_id=7, callback_data="alert:toggle")
    context = DummyContext()

    await callbacks.handle_callback_query(update, context)

    assert update.callback_query.answers == ["⛔ Not authorized"]
