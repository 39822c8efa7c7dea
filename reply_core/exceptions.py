"""
Exception hierarchy for the reply core.

None of these escape the public entry points under normal operation; they
signal failures between components so the resilience layer and the
persistence boundary can log and absorb them.
"""


class ReplyCoreError(Exception):
    """Base exception for reply core failures."""
    pass


class UpstreamGenerationError(ReplyCoreError):
    """Raised when an upstream generation provider returns unusable output."""
    pass


class StateStoreError(ReplyCoreError):
    """Raised when persisted key-value state cannot be read or written."""
    pass
