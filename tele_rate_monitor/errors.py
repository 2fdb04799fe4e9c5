"""Error taxonomy for the rate monitor.

DataError subclasses are contained per evaluation cycle (the dependent view is
skipped). UpstreamFailure covers the rate source and the messaging provider.
ValidationError and OutOfOrderError are raised before any state is mutated.
"""

from __future__ import annotations


class RateMonitorError(Exception):
    """Base class for all rate monitor errors."""


class DataError(RateMonitorError):
    """Analytics input is insufficient or degenerate."""


class InsufficientDataError(DataError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"need at least {required} points, have {available}")


class DegenerateRegressionError(DataError):
    """Regression denominator is zero."""


class EmptySeriesError(DataError):
    """The rate series has no observations."""


class UpstreamFailure(RateMonitorError):
    """The rate source or messaging provider failed."""


class DeliveryError(UpstreamFailure):
    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"delivery failed: {reason}")


class ValidationError(RateMonitorError):
    """Malformed rule or payload; rejected before any state change."""


class OutOfOrderError(RateMonitorError):
    def __init__(self, timestamp: int, last_timestamp: int) -> None:
        self.timestamp = timestamp
        self.last_timestamp = last_timestamp
        super().__init__(
            f"timestamp {timestamp} is older than last stored {last_timestamp}"
        )
