from __future__ import annotations


class ScoringError(Exception):
    """Base class for errors raised by the scoring layer."""


class StorageError(ScoringError):
    """The result store could not be read or written."""


class ScorerError(ScoringError):
    """The external scorer failed or returned output we cannot use."""


class ScorerTimeoutError(ScorerError):
    """The external scorer did not answer in time."""


class NotFoundError(ScoringError):
    """The restaurant id is unknown."""
