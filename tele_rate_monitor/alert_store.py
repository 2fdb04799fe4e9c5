"""Alert rule ownership and episode state, keyed by a stable rule id."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .errors import ValidationError
from .models.alerts import AlertEpisode, AlertRule, EpisodeState

logger = logging.getLogger(__name__)


class AlertStore:
    """Rules and their episodes.

    The rule id is the recipient. Any edit to a rule drops its episode so the
    next evaluation starts a fresh ARMED episode; disabling or removing a rule
    destroys it. With a ``state_file`` the store persists itself as JSON.
    """

    def __init__(self, state_file: Path | str | None = None) -> None:
        self._rules: dict[str, AlertRule] = {}
        self._episodes: dict[str, AlertEpisode] = {}
        self._state_file = Path(state_file) if state_file else None

    def __len__(self) -> int:
        return len(self._rules)

    def rules(self) -> list[AlertRule]:
        return list(self._rules.values())

    def enabled_rules(self) -> list[AlertRule]:
        return [rule for rule in self._rules.values() if rule.enabled]

    def get_rule(self, rule_id: str) -> AlertRule | None:
        return self._rules.get(str(rule_id))

    def save_rule(
        self,
        recipient: str | None,
        threshold: float | None,
        enabled: bool,
        rule_id: str | None = None,
    ) -> AlertRule:
        """Create or edit a rule.

        Args:
            recipient: Contact handle; becomes the rule id.
            threshold: Positive rate. May be omitted when disabling an
                existing rule.
            enabled: Whether the rule is evaluated.
            rule_id: Id of the rule being edited when the recipient changes.

        Raises:
            ValidationError: recipient or threshold missing/invalid, or the
                new recipient already owns another rule. The stored rule is
                left unchanged.
        """
        recipient = str(recipient or "").strip()
        existing_id = str(rule_id) if rule_id else recipient
        existing = self._rules.get(existing_id)

        if threshold is None and existing is not None and not enabled:
            threshold = existing.threshold
        if not recipient:
            raise ValidationError("Recipient is required")
        if threshold is None:
            raise ValidationError("Threshold is required")
        try:
            threshold = float(threshold)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Threshold must be a number") from exc
        if not threshold > 0:
            raise ValidationError("Threshold must be positive")

        rule = AlertRule(recipient=recipient, threshold=threshold, enabled=bool(enabled))
        if existing == rule and existing_id == rule.id:
            return existing

        if existing is not None and existing_id != rule.id and rule.id in self._rules:
            raise ValidationError(f"Recipient {rule.id} already has an alert")
        if existing is not None and existing_id != rule.id:
            self._rules.pop(existing_id, None)
            self._episodes.pop(existing_id, None)
        self._rules[rule.id] = rule
        self._episodes.pop(rule.id, None)
        logger.info(
            "Alert rule %s saved (threshold=%s, enabled=%s)",
            rule.id,
            rule.threshold,
            rule.enabled,
        )
        self.save()
        return rule

    def set_enabled(self, rule_id: str, enabled: bool) -> AlertRule | None:
        rule = self.get_rule(rule_id)
        if rule is None:
            return None
        return self.save_rule(rule.recipient, rule.threshold, enabled)

    def remove_rule(self, rule_id: str) -> bool:
        removed = self._rules.pop(str(rule_id), None)
        self._episodes.pop(str(rule_id), None)
        if removed is None:
            return False
        logger.info("Alert rule %s removed", rule_id)
        self.save()
        return True

    def episode_for(self, rule_id: str) -> AlertEpisode:
        episode = self._episodes.get(rule_id)
        if episode is None:
            episode = AlertEpisode(rule_id=rule_id)
            self._episodes[rule_id] = episode
        return episode

    def peek_episode(self, rule_id: str) -> AlertEpisode | None:
        return self._episodes.get(str(rule_id))

    def reset_episode(self, rule_id: str) -> bool:
        if self._episodes.pop(str(rule_id), None) is None:
            return False
        self.save()
        return True

    def reset_all(self) -> int:
        count = len(self._episodes)
        self._episodes.clear()
        if count:
            self.save()
        return count

    def clear(self) -> None:
        self._rules.clear()
        self._episodes.clear()

    def to_dict(self) -> dict[str, list[dict[str, object]]]:
        return {
            "rules": [
                {
                    "recipient": rule.recipient,
                    "threshold": rule.threshold,
                    "enabled": rule.enabled,
                }
                for rule in self._rules.values()
            ],
            "episodes": [
                {
                    "rule_id": ep.rule_id,
                    "state": ep.state.value,
                    "fired_at": ep.fired_at,
                    "fired_rate": ep.fired_rate,
                }
                for ep in self._episodes.values()
                if ep.rule_id in self._rules
            ],
        }

    def save(self) -> None:
        """Persist rules and episodes to disk."""
        if self._state_file is None:
            return
        try:
            self._state_file.parent.mkdir(parents=True, exist_ok=True)
            self._state_file.write_text(json.dumps(self.to_dict(), indent=2))
        except Exception:
            logger.exception("Failed to save alert state")

    def load(self) -> None:
        """Load persisted rules and episodes from disk."""
        if self._state_file is None:
            return
        try:
            if not self._state_file.exists():
                return
            data = json.loads(self._state_file.read_text())
            rules: dict[str, AlertRule] = {}
            for raw in data.get("rules", []):
                recipient = str(raw.get("recipient") or "").strip()
                threshold = float(raw.get("threshold") or 0)
                if not recipient or threshold <= 0:
                    logger.warning("Skipping malformed stored rule: %s", raw)
                    continue
                rule = AlertRule(recipient, threshold, bool(raw.get("enabled")))
                rules[rule.id] = rule
            episodes: dict[str, AlertEpisode] = {}
            for raw in data.get("episodes", []):
                rule_id = str(raw.get("rule_id") or "")
                rule = rules.get(rule_id)
                if rule is None or not rule.enabled:
                    continue
                episodes[rule_id] = AlertEpisode(
                    rule_id=rule_id,
                    state=EpisodeState(raw.get("state", EpisodeState.ARMED.value)),
                    fired_at=raw.get("fired_at"),
                    fired_rate=raw.get("fired_rate"),
                )
            self._rules = rules
            self._episodes = episodes
            logger.info(
                "Loaded %d alert rule(s) from %s", len(rules), self._state_file
            )
        except Exception:
            logger.exception("Failed to load alert state")
