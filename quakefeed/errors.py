# quakefeed/errors.py
"""Exceptions raised by the outer layers (server, client, feed ledger).

The execution and tally phases never let these escape; they turn them into
exit codes instead.
"""


class QuakeFeedError(Exception):
    """Base class for all QuakeFeed errors."""


class FetchError(QuakeFeedError):
    """Upstream earthquake API could not be reached or returned garbage."""


class DecodeError(QuakeFeedError):
    """Bytes could not be decoded into an EarthquakeReading."""


class RequestNotTransmitted(QuakeFeedError):
    """latest_answer() was called before any request was transmitted."""


class UnknownRequest(QuakeFeedError):
    """A result was posted for a request id the feed never issued."""


class QuorumError(QuakeFeedError):
    """Not enough valid reveals were collected to run a tally."""
