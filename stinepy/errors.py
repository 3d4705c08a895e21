"""
Exception hierarchy.

Everything raised on purpose by stinepy derives from StineError, so callers can
catch the whole family at once. Network problems are NOT part of it: errors from
requests (ConnectionError, Timeout, HTTPError, ...) are passed through untouched,
which lets a caller tell "the network is down" apart from "the portal rejected me".
"""

from __future__ import annotations


class StineError(Exception):
    """Base class of all stinepy errors."""


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthError(StineError):
    """The portal refused the login or the session."""


class WrongCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__("Wrong password or username")


class AccessBlockedError(AuthError):
    def __init__(self, minutes: int) -> None:
        self.minutes = minutes
        super().__init__(f"Blocked access for {minutes} minutes, due to wrong credentials")


class AccessDeniedError(AuthError):
    def __init__(self) -> None:
        super().__init__("Access denied")


class TemporarilyLockedError(AuthError):
    def __init__(self) -> None:
        super().__init__(
            "Access denied: due to too many failed login attempts, the account is temporarily locked"
        )


class SessionTimeoutError(AuthError):
    def __init__(self) -> None:
        super().__init__("Timeout: the session expired")


class MissingHeaderError(AuthError):
    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"Login response is missing the {header!r} header")


# ---------------------------------------------------------------------------
# Portal / pages
# ---------------------------------------------------------------------------


class PortalError(StineError):
    """Unrecognised failure reported by the portal."""


class PageStructureError(StineError):
    """A required element is missing from a page, i.e. the page layout changed."""


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class NotFoundError(StineError):
    """Key not present in the cache."""


class CacheError(StineError):
    """Reading or writing a cache file failed."""


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class DateParseError(StineError, ValueError):
    """A date string could not be turned into an instant."""


class DateNormalizationError(DateParseError):
    pass


class MissingSeparatorError(DateParseError):
    def __init__(self, text: str) -> None:
        super().__init__(f"Missing ' - ' or ' to ' separator in period {text!r}")


class NonexistentTimeError(DateParseError):
    """Wall-clock time falls into a daylight saving gap."""
