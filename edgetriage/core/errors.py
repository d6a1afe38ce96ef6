from __future__ import annotations


class TriageError(ValueError):
    """Request-level failure. Surface the message to the caller, do not retry."""


class ParseError(TriageError):
    pass


class InvalidWindow(TriageError):
    pass


class NoValidTimestamps(TriageError):
    pass


class SourceError(TriageError):
    """The CSV text could not be obtained from its source."""
