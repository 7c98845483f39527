"""
Exception classes for the FilmWatch worker.
"""


class FilmWatchError(Exception):
    """Base exception for all worker errors."""
    pass


class ConfigurationError(FilmWatchError):
    """Raised when required settings are missing or inconsistent."""
    pass


class ResolutionError(FilmWatchError):
    """Raised when no topic id can be derived from a URL."""

    def __init__(self, url: str):
        super().__init__(f"No topic id in URL: {url}")
        self.url = url


class FetchError(FilmWatchError):
    """Raised when a listing or detail page cannot be fetched in time."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class ExtractionError(FilmWatchError):
    """Raised when a detail page yields no usable film record."""
    pass


class PublishError(FilmWatchError):
    """Raised when the notification channel rejects or fails a message."""
    pass


class StoreIOError(FilmWatchError):
    """Raised when the seen-set cannot be read or written."""
    pass


class RunInProgressError(FilmWatchError):
    """Raised when a run is triggered while another one is active."""
    pass
