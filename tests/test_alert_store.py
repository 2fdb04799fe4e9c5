import json

import pytest

from tele_rate_monitor.alert_store import AlertStore
from tele_rate_monitor.alerting import AlertEvaluator
from tele_rate_monitor.errors import ValidationError
from tele_rate_monitor.models.alerts import EpisodeState


def test_save_rule_validates_before_mutating() -> None:
    store = AlertStore()
    rule = store.save_rule("111", 0.0275, True)

    with pytest.raises(ValidationError):
        store.save_rule("111", -1, True)
    with pytest.raises(ValidationError):
        store.save_rule("", 0.0275, True)
    with pytest.raises(ValidationError):
        store.save_rule("222", None, True)

    assert store.rules() == [rule]


def test_recipient_is_stable_identity() -> None:
    store = AlertStore()
    store.save_rule("111", 0.0275, True)
    store.save_rule("111", 0.0280, True)

    assert len(store) == 1
    assert store.get_rule("111").threshold == 0.0280


def test_saving_identical_values_keeps_episode() -> None:
    store = AlertStore()
    rule = store.save_rule("111", 0.0275, True)
    AlertEvaluator(store).evaluate(rule, 0.028)

    store.save_rule("111", 0.0275, True)

    assert store.peek_episode("111").state is EpisodeState.FIRED


def test_disabling_destroys_episode_and_keeps_threshold() -> None:
    store = AlertStore()
    rule = store.save_rule("111", 0.0275, True)
    AlertEvaluator(store).evaluate(rule, 0.028)

    disabled = store.save_rule("111", None, False)

    assert disabled.threshold == 0.0275
    assert not disabled.enabled
    assert store.peek_episode("111") is None


def test_recipient_change_moves_rule() -> None:
    store = AlertStore()
    store.save_rule("111", 0.0275, True)

    store.save_rule("222", 0.0275, True, rule_id="111")

    assert store.get_rule("111") is None
    assert store.get_rule("222") is not None


def test_recipient_change_onto_existing_rule_is_rejected() -> None:
    store = AlertStore()
    first = store.save_rule("111", 0.0275, True)
    second = store.save_rule("222", 0.0290, True)

    with pytest.raises(ValidationError):
        store.save_rule("222", 0.0280, True, rule_id="111")

    assert store.get_rule("111") == first
    assert store.get_rule("222") == second


def test_set_enabled_and_remove() -> None:
    store = AlertStore()
    store.save_rule("111", 0.0275, True)

    assert store.set_enabled("111", False).enabled is False
    assert store.set_enabled("missing", True) is None
    assert store.remove_rule("111") is True
    assert store.remove_rule("111") is False


def test_reset_all_rearms_every_episode() -> None:
    store = AlertStore()
    evaluator = AlertEvaluator(store)
    for recipient in ("111", "222"):
        evaluator.evaluate(store.save_rule(recipient, 0.0275, True), 0.028)

    assert store.reset_all() == 2
    assert store.peek_episode("111") is None
    assert store.reset_all() == 0


def test_save_and_load_round_trip(tmp_path) -> None:
    path = tmp_path / "state" / "alerts.json"
    store = AlertStore(path)
    rule = store.save_rule("111", 0.0275, True)
    store.save_rule("222", 0.03, False)
    AlertEvaluator(store).evaluate(rule, 0.028, now_ms=42)

    loaded = AlertStore(path)
    loaded.load()

    assert {r.recipient for r in loaded.rules()} == {"111", "222"}
    episode = loaded.peek_episode("111")
    assert episode.state is EpisodeState.FIRED
    assert episode.fired_at == 42
    assert loaded.peek_episode("222") is None


def test_load_skips_malformed_rules(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    path.write_text(
        json.dumps(
            {
                "rules": [
                    {"recipient": "", "threshold": 0.03, "enabled": True},
                    {"recipient": "111", "threshold": 0, "enabled": True},
                    {"recipient": "222", "threshold": 0.03, "enabled": True},
                ]
            }
        )
    )
    store = AlertStore(path)
    store.load()

    assert [r.recipient for r in store.rules()] == ["222"]


def test_load_logs_corrupt_file(tmp_path, caplog) -> None:
    path = tmp_path / "alerts.json"
    path.write_text("{not json")
    store = AlertStore(path)

    store.load()

    assert len(store) == 0
    assert "Failed to load alert state" in caplog.text


def test_clear_drops_rules_and_episodes() -> None:
    store = AlertStore()
    store.save_rule("111", 0.0275, True)
    store.episode_for("111")

    store.clear()

    assert store.rules() == []
    assert store.peek_episode("111") is None
