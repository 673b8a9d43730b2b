"""Error taxonomy for tuyalink.

Every error raised by the library derives from :class:`TuyaError` and carries
an :class:`ErrorKind`, so callers can either catch a subclass or dispatch on
``err.kind``::

    try:
        await client.get_status(device_id, uid)
    except TuyaError as err:
        match err.kind:
            case ErrorKind.NOT_FOUND:
                ...
"""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    NO_LINKED_ACCOUNT = "no_linked_account"
    AMBIGUOUS_ACCOUNT = "ambiguous_account"
    NETWORK = "network"
    API = "api"


class TuyaError(Exception):
    """Base class for all tuyalink errors."""

    kind: ErrorKind

    def __init__(self, message: str, *, detail: object = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ConfigurationError(TuyaError):
    """Required configuration is missing. Never retried."""

    kind = ErrorKind.CONFIGURATION


class NotFoundError(TuyaError):
    """No stored credential for the requested account."""

    kind = ErrorKind.NOT_FOUND


class NoLinkedAccountError(TuyaError):
    """Account resolution found no linked accounts."""

    kind = ErrorKind.NO_LINKED_ACCOUNT


class AmbiguousAccountError(TuyaError):
    """Account resolution found several linked accounts and none was requested."""

    kind = ErrorKind.AMBIGUOUS_ACCOUNT


class NetworkError(TuyaError):
    """The upstream API answered with a non-2xx HTTP status.

    ``status`` is the HTTP status code and ``body`` the raw response text.
    """

    kind = ErrorKind.NETWORK

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Tuya API request failed with status {status}", detail=body)
        self.status = status
        self.body = body


class ApiError(TuyaError):
    """The upstream envelope reported ``success: false``.

    ``code`` is Tuya's error code (if any); ``detail`` is the full envelope.
    """

    kind = ErrorKind.API

    def __init__(self, message: str, *, code: int | None = None, detail: object = None) -> None:
        super().__init__(message, detail=detail)
        self.code = code
