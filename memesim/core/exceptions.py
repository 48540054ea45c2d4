"""
Exceptions raised by memesim.

    MemesimError
    ├── ConfigError
    │   └── UnknownStrategyError
    ├── MarketDataError
    └── InvariantViolation
        ├── DuplicatePositionError
        ├── NoOpenPositionError
        └── LedgerError

InvariantViolation subclasses abort the replay of a single instrument and
become diagnostics on the run result. MarketDataError ends the whole run.
"""

from typing import Any


class MemesimError(Exception):
    """
    Root of the hierarchy.

    ``code`` is a short machine-readable tag (``"insufficient_cash"``) that
    ends up in serialized run errors; ``details`` carries context values.
    """

    default_message = "memesim error"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = dict(details or {})
        super().__init__(self.message)

    def __str__(self) -> str:
        text = self.message if not self.code else f"{self.message} [{self.code}]"
        return f"{text} {self.details}" if self.details else text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, details={self.details!r})"


class ConfigError(MemesimError):
    default_message = "invalid configuration"


class UnknownStrategyError(ConfigError):
    """Name matches no strategy and no legacy alias."""

    def __init__(self, name: str, details: dict[str, Any] | None = None):
        self.name = name
        super().__init__(f"Unknown strategy: {name!r}", "unknown_strategy", details)


class MarketDataError(MemesimError):
    """
    A market data adapter could not answer.

    ``retryable`` tells callers whether trying again may help (timeouts,
    rate limits) or not (unknown instrument, malformed request).
    """

    default_message = "market data request failed"

    def __init__(
        self,
        message: str | None = None,
        retryable: bool = True,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.retryable = retryable
        super().__init__(message, code, details)

    def __str__(self) -> str:
        return f"{super().__str__()} (retryable={self.retryable})"


class InvariantViolation(MemesimError):
    """A position or ledger rule was broken during replay."""

    default_message = "invariant violated"


class _InstrumentViolation(InvariantViolation):
    template = "{instrument_id}"
    tag: str | None = None

    def __init__(self, instrument_id: str, details: dict[str, Any] | None = None):
        self.instrument_id = instrument_id
        super().__init__(self.template.format(instrument_id=instrument_id), self.tag, details)


class DuplicatePositionError(_InstrumentViolation):
    template = "Position already open for {instrument_id}"
    tag = "duplicate_position"


class NoOpenPositionError(_InstrumentViolation):
    template = "No open position for {instrument_id}"
    tag = "no_open_position"


class LedgerError(InvariantViolation):
    """Cash would drop below zero."""

    default_message = "insufficient cash in ledger"
