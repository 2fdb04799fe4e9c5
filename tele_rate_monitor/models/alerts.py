"""Alert rule/episode dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EpisodeState(str, Enum):
    ARMED = "ARMED"
    FIRED = "FIRED"


@dataclass(frozen=True)
class AlertRule:
    recipient: str
    threshold: float
    enabled: bool = True

    @property
    def id(self) -> str:
        return self.recipient


@dataclass
class AlertEpisode:
    rule_id: str
    state: EpisodeState = EpisodeState.ARMED
    fired_at: int | None = None
    fired_rate: float | None = None

    @property
    def armed(self) -> bool:
        return self.state is EpisodeState.ARMED


@dataclass(frozen=True)
class FireEvent:
    rule_id: str
    recipient: str
    threshold: float
    observed_rate: float
    fired_at: int


class _NoAction:
    _instance: "_NoAction | None" = None

    def __new__(cls) -> "_NoAction":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoAction"


NoAction = _NoAction()
