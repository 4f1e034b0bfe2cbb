class UnsafeUrlError(ValueError):
    """Raised when a URL fails validation or targets a private network."""

    def __init__(self, reason: str, url: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.url = url


class LookupFailed(Exception):
    """Raised by single-purpose lookups that have no degraded answer."""


class ExtractionFailed(Exception):
    """Raised when a page was fetched but yielded no readable article."""
