"""Error taxonomy for library scans, lookups and playback."""

from typing import Optional


class LibraryError(Exception):
    """Base class for every error raised by the core."""


class ConfigurationError(LibraryError):
    """Credential or root folder configuration is missing."""


class RootNotFound(LibraryError):
    """No folder matches the expected root name and no explicit id is set."""


class RemoteUnavailable(LibraryError):
    """A Drive listing or fetch call failed (non-2xx or network failure)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFound(LibraryError):
    """A requested video id does not exist in the current catalog."""


class PlaybackError(LibraryError):
    """The media backend rejected a play, seek or display request."""
