"""Custom exception hierarchy for pyhasync."""

from __future__ import annotations


class HaSyncError(Exception):
    """Base exception for all pyhasync errors."""


class HaConfigError(HaSyncError):
    """Invalid or missing configuration (URL, token)."""


class HaConnectionError(HaSyncError):
    """Socket-level failure or no live connection."""


class HaConnectionClosedError(HaConnectionError):
    """The connection was torn down while a request was still pending."""


class HaAuthenticationError(HaSyncError):
    """The server rejected the access token (``auth_invalid``)."""


class HaTimeoutError(HaSyncError):
    """No response arrived before the deadline.

    The connection itself stays up; only the request is abandoned.
    """

    def __init__(self, message: str, *, request_id: int | None = None) -> None:
        self.request_id = request_id
        super().__init__(message)


class HaProtocolError(HaSyncError):
    """Malformed or unexpected frame."""


class HaCommandError(HaSyncError):
    """The server answered a request with ``success: false``."""

    def __init__(self, message: str, *, code: str = "", request_id: int | None = None) -> None:
        self.code = code
        self.request_id = request_id
        super().__init__(message)


class HaUnsupportedCommandError(HaSyncError):
    """The entity does not advertise the capability the command needs.

    Raised synchronously, before any network I/O, so the caller can
    grey out the control.
    """

    def __init__(self, message: str, *, entity_id: str = "", axis: str = "") -> None:
        self.entity_id = entity_id
        self.axis = axis
        super().__init__(message)
