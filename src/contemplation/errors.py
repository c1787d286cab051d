"""
Errors surfaced to callers of the contemplation manager.
"""


class ContemplationError(RuntimeError):
    """Base class for contemplation loop failures."""


class ContemplationNotRunningError(ContemplationError):
    """An operation needed the loop but no subprocess is running."""

    def __init__(self, message: str = "Contemplation loop not running. Call start_contemplation first."):
        super().__init__(message)


class ContemplationStartError(ContemplationError):
    """The contemplation subprocess could not be started."""
