"""Exception types shared across the autotagger package."""

from typing import Optional, Sequence


class AutotaggerError(Exception):
    """Base exception for all autotagger errors."""


class ConfigurationError(AutotaggerError):
    """A required setting (API key, tool path) is missing or invalid."""


class MissingDataError(AutotaggerError):
    """Expected data was not found. Callers usually skip the item and continue."""


class NoSubtitleTrackError(MissingDataError):
    """A container file has no usable subtitle track."""


class NoSubtitlesFoundError(MissingDataError):
    """The subtitle provider returned no subtitles for an episode."""


class ExternalToolError(AutotaggerError):
    """An external program (mkvextract, vobsubocr, java) failed.

    Attributes:
        command: The argument list that was executed
        returncode: Process exit status, or None if the program could not be started
    """

    def __init__(self, message: str, command: Optional[Sequence[str]] = None, returncode: Optional[int] = None):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode


class ProviderError(AutotaggerError):
    """A metadata or subtitle provider request failed (network or authentication)."""


class RenameError(AutotaggerError):
    """Renaming a matched video file or removing its sidecar failed."""
