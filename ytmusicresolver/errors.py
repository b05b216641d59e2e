"""Error kinds raised or reported by the plugin and the cookie manager."""

from typing import Optional


class YTMusicPluginError(Exception):
    """Base class for every error this package raises or reports.

    Attributes:
        code: Short machine-readable error code, mirroring the host
            framework's error codes.
    """

    code = "YTMUSIC_PLUGIN_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class InvalidInput(YTMusicPluginError):
    """Malformed identifier or wrong argument type. A caller bug."""

    code = "INVALID_TYPE"


class UpstreamFetchFailure(YTMusicPluginError):
    """The search API or the stream-info client failed."""


class NoPlayableContent(YTMusicPluginError):
    """A collection resolved but none of its tracks could be converted."""


class CredentialIOFailure(YTMusicPluginError):
    """The cookie file could not be read or written."""

    code = "COOKIE_IO_ERROR"


class AutomationUnavailable(YTMusicPluginError):
    """No browser automation driver is configured or it failed to start."""

    code = "AUTOMATION_UNAVAILABLE"
