"""Custom exceptions for the scraper service."""


class ScraperError(Exception):
    """Base exception for scraper-related errors."""
    pass


class LoginRequiredError(ScraperError):
    """Raised when a task needs a session but no cookies or credentials are usable."""
    pass


class SessionStoreError(ScraperError):
    """Raised when the session cookie backend cannot be read or written."""
    pass


class InvalidTaskError(ScraperError):
    """Raised when a task descriptor cannot be executed at all."""
    pass


class UnknownTaskTypeError(InvalidTaskError):
    """Raised when a task names a type no extractor handles."""

    def __init__(self, message: str = "unknown_type") -> None:
        super().__init__(message)
