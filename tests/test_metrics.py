import time

import pytest

from tele_rate_monitor import config
from tele_rate_monitor.handlers import common, meta
from tele_rate_monitor.handlers.common import get_state

from conftest import DummyContext, DummyUpdate


@pytest.mark.asyncio
async def test_rate_limit_records_success(monkeypatch) -> None:
    monkeypatch.setattr(config, "RATE_LIMIT_S", 0.0)
    monkeypatch.setattr(common, "_last_command_ts", 0.0)

    async def handler(update, context) -> None:
        return None

    wrapped = common.rate_limit(handler, name="rate")
    context = DummyContext()

    await wrapped(DummyUpdate(1, 1), context)

    metrics = get_state(context.application).command_metrics["rate"]
    assert (metrics.count, metrics.success, metrics.error) == (1, 1, 0)
    assert metrics.last_run_ts is not None


@pytest.mark.asyncio
async def test_rate_limit_records_error(monkeypatch) -> None:
    monkeypatch.setattr(config, "RATE_LIMIT_S", 0.0)
    monkeypatch.setattr(common, "_last_command_ts", 0.0)

    async def handler(update, context) -> None:
        raise RuntimeError("boom")

    wrapped = common.rate_limit(handler, name="trend")
    context = DummyContext()

    with pytest.raises(RuntimeError):
        await wrapped(DummyUpdate(1, 1), context)

    metrics = get_state(context.application).command_metrics["trend"]
    assert (metrics.count, metrics.success, metrics.error) == (1, 0, 1)
    assert metrics.last_error == "boom"


@pytest.mark.asyncio
async def test_rate_limit_rejects_burst(monkeypatch) -> None:
    monkeypatch.setattr(config, "RATE_LIMIT_S", 100.0)
    monkeypatch.setattr(common, "_last_command_ts", time.monotonic())
    calls = []

    async def handler(update, context) -> None:
        calls.append(1)

    wrapped = common.rate_limit(handler, name="history")
    update = DummyUpdate(1, 1)
    context = DummyContext()

    await wrapped(update, context)

    metrics = get_state(context.application).command_metrics["history"]
    assert calls == []
    assert metrics.rate_limited == 1
    assert metrics.count == 0
    assert update.message.replies[0].startswith("⏱ Rate limit")


@pytest.mark.asyncio
async def test_metrics_command_hides_last_error(monkeypatch) -> None:
    async def allow_guard(update, context) -> bool:
        return True

    monkeypatch.setattr(meta, "guard_sensitive", allow_guard)
    update = DummyUpdate(1, 1)
    context = DummyContext()
    metrics = get_state(context.application).metrics_for("alert")
    metrics.count = 1
    metrics.error = 1
    metrics.last_error = "secret boom"

    await meta.cmd_metrics(update, context)

    assert "<code>alert</code> runs 1" in update.message.replies[0]
    assert "secret boom" not in update.message.replies[0]
