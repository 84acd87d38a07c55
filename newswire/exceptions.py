"""Exception hierarchy for newswire."""


class NewswireError(Exception):
    """Base application exception."""


class RelayError(NewswireError):
    """Raised when a relay cannot deliver the target document."""

    def __init__(self, message: str, relay: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.relay = relay
        self.status_code = status_code


class RateLimitedError(RelayError):
    """Raised when a relay answers HTTP 429."""


class RelayTimeoutError(RelayError):
    """Raised when a relay attempt exceeds its abort timeout."""


class RelayEnvelopeError(RelayError):
    """Raised when a relay response body does not match its envelope format."""


class AggregationError(NewswireError):
    """Raised when an aggregation cycle produces no usable source at all."""
