"""Failures raised by the country refresh pipeline."""
from enum import Enum


class ExternalSource(str, Enum):
    COUNTRIES = "countries"
    RATES = "rates"


class RefreshError(Exception):
    """Base class for every refresh failure."""


class ExternalSourceError(RefreshError):
    """One of the upstream feeds failed or returned an unusable payload."""

    def __init__(self, source, message=""):
        self.source = ExternalSource(source)
        self.message = message or f"{self.source.value} API failed"
        super().__init__(self.message)


class PersistenceError(RefreshError):
    """The database rejected part of the batch; the transaction was rolled back."""


class RenderError(RefreshError):
    """The summary artifact could not be rendered or written."""


class RefreshInProgressError(RefreshError):
    """Another refresh is already running in this process."""
