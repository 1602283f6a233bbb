"""Custom exception classes for the application."""
from typing import Any


class AppException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ScrapingError(AppException):
    """Error during scraping operation."""
    pass


class NavigationError(ScrapingError):
    """Page navigation failed after all retry attempts."""
    pass


class CaptchaError(ScrapingError):
    """CAPTCHA detected and could not be solved."""
    pass


class AlreadyRunningError(AppException):
    """A scraping run is already in progress (runs are rejected, not queued)."""
    pass


class UnknownSourceError(AppException):
    """No adapter registered for the requested source."""
    pass


class ImportFormatError(AppException):
    """Imported payload is not valid listing JSON."""
    pass
