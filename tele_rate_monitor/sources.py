"""Exchange rate sources: live HTTP APIs and a seeded synthetic fallback."""

from __future__ import annotations

import logging
import math
import random
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

import requests

from .errors import UpstreamFailure, ValidationError
from .models.rates import DAY_MS, RateObservation

__all__ = [
    "RateSource",
    "HttpRateSource",
    "SyntheticDataSource",
    "FallbackRateSource",
    "day_start_ms",
]

logger = logging.getLogger(__name__)

_USER_AGENT = "tele-rate-monitor/1.0 (+https://github.com/)"
_RETRY_DELAY = 0.5


class RateSource(Protocol):
    name: str

    def fetch_current_rate(self) -> RateObservation: ...

    def fetch_historical_range(self, window_days: int) -> list[RateObservation]: ...


def day_start_ms(ts_ms: int) -> int:
    """Floor an epoch-millis timestamp to the start of its UTC day."""
    return ts_ms - (ts_ms % DAY_MS)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _date_ms(day: date) -> int:
    dt = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _request_with_retry(
    url: str,
    params: dict[str, Any] | None,
    timeout: float,
    max_retries: int,
) -> requests.Response:
    """HTTP GET with bounded retries on timeouts, connection errors and 5xx."""
    headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
    for attempt in range(max_retries + 1):
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=timeout)
            if resp.status_code >= 500 and attempt < max_retries:
                time.sleep(_RETRY_DELAY * (attempt + 1))
                continue
            return resp
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError):
            if attempt < max_retries:
                time.sleep(_RETRY_DELAY * (attempt + 1))
                continue
            raise
    raise RuntimeError("Request failed after retries")


class HttpRateSource:
    """Live rates.

    The current rate comes from an exchangerate-api style ``latest`` endpoint
    quoted in ``quote`` (the base rate is inverted); history comes from a
    frankfurter style time-series endpoint.
    """

    name = "live"

    def __init__(
        self,
        base: str = "THB",
        quote: str = "USD",
        api_url: str = "https://api.exchangerate-api.com/v4/latest/{quote}",
        history_url: str = "https://api.frankfurter.app/{start}..{end}",
        timeout: float = 10.0,
        max_retries: int = 2,
    ) -> None:
        self.base = base
        self.quote = quote
        self.api_url = api_url
        self.history_url = history_url
        self.timeout = timeout
        self.max_retries = max_retries

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = _request_with_retry(url, params, self.timeout, self.max_retries)
        except requests.exceptions.RequestException as exc:
            raise UpstreamFailure(f"rate API request failed: {exc}") from exc
        if not resp.ok:
            raise UpstreamFailure(f"rate API HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamFailure("rate API returned invalid JSON") from exc

    def fetch_current_rate(self) -> RateObservation:
        url = self.api_url.format(base=self.base, quote=self.quote)
        data = self._get_json(url)
        rates = data.get("rates") if isinstance(data, dict) else None
        quoted = (rates or {}).get(self.base)
        try:
            quoted = float(quoted)
        except (TypeError, ValueError):
            raise UpstreamFailure(f"rate API response has no {self.base} rate")
        if quoted <= 0:
            raise UpstreamFailure(f"rate API returned non-positive {self.base} rate")
        updated_s = data.get("time_last_updated")
        ts_ms = int(updated_s) * 1000 if isinstance(updated_s, (int, float)) else _now_ms()
        return RateObservation(timestamp=day_start_ms(ts_ms), rate=1 / quoted)

    def fetch_historical_range(self, window_days: int) -> list[RateObservation]:
        end = datetime.now(timezone.utc).date()
        start = end - timedelta(days=int(window_days))
        url = self.history_url.format(
            base=self.base,
            quote=self.quote,
            start=start.isoformat(),
            end=end.isoformat(),
        )
        data = self._get_json(url, params={"from": self.base, "to": self.quote})
        by_day = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(by_day, dict) or not by_day:
            raise UpstreamFailure("history API returned no rates")

        out: list[RateObservation] = []
        for day_raw, values in by_day.items():
            try:
                day = date.fromisoformat(day_raw)
                rate = float((values or {})[self.quote])
                out.append(RateObservation(timestamp=_date_ms(day), rate=rate))
            except (KeyError, TypeError, ValueError, ValidationError):
                logger.debug("Skipping malformed history entry %s=%s", day_raw, values)
        if not out:
            raise UpstreamFailure("history API returned no usable rates")
        out.sort(key=lambda o: o.timestamp)
        return out


class SyntheticDataSource:
    """Deterministic random-walk rates for when the live source is down.

    Every observation is tagged ``source="synthetic"``. History for a given
    seed and end day is reproducible; values stay within ``[low, high]``.
    """

    name = "synthetic"

    def __init__(
        self,
        seed: int = 2750,
        base_rate: float = 0.0275,
        low: float = 0.025,
        high: float = 0.030,
        step: float = 0.001,
    ) -> None:
        self.seed = seed
        self.base_rate = base_rate
        self.low = low
        self.high = high
        self.step = step
        self._rng = random.Random(seed)

    def _clamp(self, value: float) -> float:
        return max(self.low, min(self.high, value))

    def fetch_current_rate(self, now_ms: int | None = None) -> RateObservation:
        ts = day_start_ms(now_ms if now_ms is not None else _now_ms())
        rate = self._clamp(self.base_rate + (self._rng.random() - 0.5) * 0.002)
        return RateObservation(timestamp=ts, rate=round(rate, 6), source="synthetic")

    def fetch_historical_range(
        self, window_days: int, now_ms: int | None = None
    ) -> list[RateObservation]:
        end = day_start_ms(now_ms if now_ms is not None else _now_ms())
        rng = random.Random(f"{self.seed}:{end}")
        rate = self.base_rate
        out: list[RateObservation] = []
        for i in range(int(window_days), -1, -1):
            drift = math.sin(i / 10) * 0.0005
            noise = (rng.random() - 0.5) * self.step
            rate = self._clamp(rate + drift + noise)
            out.append(
                RateObservation(
                    timestamp=end - i * DAY_MS, rate=round(rate, 6), source="synthetic"
                )
            )
        return out


class FallbackRateSource:
    """Try the primary source; on ``UpstreamFailure`` use the fallback."""

    def __init__(self, primary: RateSource, fallback: RateSource) -> None:
        self.primary = primary
        self.fallback = fallback
        self.last_used: str | None = None

    @property
    def name(self) -> str:
        return f"{self.primary.name}+{self.fallback.name}"

    def fetch_current_rate(self) -> RateObservation:
        try:
            obs = self.primary.fetch_current_rate()
            self.last_used = self.primary.name
            return obs
        except UpstreamFailure as exc:
            logger.warning(
                "Current rate fetch failed (%s); using %s data", exc, self.fallback.name
            )
        obs = self.fallback.fetch_current_rate()
        self.last_used = self.fallback.name
        return obs

    def fetch_historical_range(self, window_days: int) -> list[RateObservation]:
        try:
            data = self.primary.fetch_historical_range(window_days)
            self.last_used = self.primary.name
            return data
        except UpstreamFailure as exc:
            logger.warning(
                "History fetch failed (%s); using %s data", exc, self.fallback.name
            )
        data = self.fallback.fetch_historical_range(window_days)
        self.last_used = self.fallback.name
        return data
