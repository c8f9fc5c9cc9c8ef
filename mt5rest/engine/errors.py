"""Exception taxonomy for gateway calls and streams.

One-shot requests raise these synchronously to their caller. Inside a
subscription loop, DialError/ReadError/WriteError only drive reconnects and
DecodeError only drops the offending frame.
"""

from __future__ import annotations


class MT5Error(Exception):
    """Base class for everything raised by mt5rest."""


class DialError(MT5Error):
    """Transport or handshake failure while opening a request or a stream."""


class ReadError(MT5Error):
    """A live stream failed mid-read (peer close, network error, local close)."""


class WriteError(MT5Error):
    """Sending on a stream failed because the connection is no longer live."""


class DecodeError(MT5Error):
    """Payload did not match the expected shape."""


class AuthError(MT5Error):
    """Gateway refused to create a session."""


class HTTPError(MT5Error):
    """Gateway replied with an unexpected HTTP status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"HTTP error {status}: {body}")
        self.status = status
        self.body = body


class APIError(MT5Error):
    """Gateway reported an exception (delivered as HTTP 201)."""

    def __init__(self, code: str, message: str, stackTrace: str = ""):
        super().__init__(f"API error [{code}]: {message}" if code else f"API error: {message}")
        self.code = code
        self.message = message
        self.stackTrace = stackTrace
