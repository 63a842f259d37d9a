"""
Exception types raised by the PropertyGPT core.
"""


class PropertyGPTError(Exception):
    """Base class for all PropertyGPT errors."""


class ProviderError(PropertyGPTError):
    """Raw market data could not be fetched or parsed."""

    def __init__(self, message: str, location: str = "", timeframe: str = ""):
        super().__init__(message)
        self.location = location
        self.timeframe = timeframe


class GenerativeBackendError(PropertyGPTError):
    """The language model call failed or returned unusable output."""


class CacheError(PropertyGPTError):
    """A cache read or write failed."""
