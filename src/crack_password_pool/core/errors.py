"""
Exception types shared across the crack password pool.
"""


class CrackPoolError(Exception):
    """Base class for all errors raised by this package."""
    pass


class NoCandidatesError(CrackPoolError):
    """Raised when the untested set is empty. A control condition, not a bug."""

    def __init__(self, message: str = "No candidates left to test."):
        super().__init__(message)


class PoolShutdownError(CrackPoolError, RuntimeError):
    """Raised when work is submitted to a worker pool that is no longer running."""
    pass


class TesterError(CrackPoolError):
    """Raised by a tester when a trial could not be performed."""
    pass


class DictionaryError(CrackPoolError):
    """Raised when a dictionary store cannot be read or written."""
    pass


class ConfigError(CrackPoolError):
    """Raised when configuration values are invalid."""
    pass
